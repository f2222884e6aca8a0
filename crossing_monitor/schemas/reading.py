import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Severity(str, Enum):
    """Congestion level, ordered LOW < MODERATE < HIGH."""

    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    # str already orders alphabetically, so every operator is spelled out
    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {Severity.LOW: 0, Severity.MODERATE: 1, Severity.HIGH: 2}


class SpeedSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_kmh: int
    free_flow_kmh: int
    percent_of_free_flow: int


class WeatherSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    temperature_c: int
    precipitation_mm: float
    wind_kmh: int
    code: int
    condition: str
    icon: str


class Reading(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime.datetime
    crossing_id: str
    route_id: str
    traffic_min: int
    normal_min: int
    distance_km: float
    delay_min: int
    severity: Severity
    speed: SpeedSample | None = None
    weather: WeatherSnapshot | None = None


class SeriesWindow(BaseModel):
    route_id: str
    hours: float
    count: int
    labels: list[str] = []
    traffic: list[int] = []
    normal: list[int] = []
