import datetime

from pydantic import BaseModel, ConfigDict, Field

from crossing_monitor.schemas.reading import Reading, Severity, WeatherSnapshot


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    label: str = ""


class RouteConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, pattern=r"^[A-Za-z0-9_-]+$")
    name: str
    origin: GeoPoint
    destination: GeoPoint
    log_file: str = Field(min_length=1)


class CrossingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, pattern=r"^[A-Za-z0-9_-]+$")
    name: str
    short_name: str = ""
    description: str = ""
    routes: tuple[RouteConfig, ...] = Field(min_length=1)


class RouteStatus(BaseModel):
    id: str
    name: str
    origin_label: str
    destination_label: str
    latest: Reading | None = None
    trend: str | None = None  # "up" | "down" | "steady"
    readings_in_memory: int = 0


class CrossingStatus(BaseModel):
    id: str
    name: str
    short_name: str
    description: str
    worst: Severity | None = None
    routes: list[RouteStatus] = []


class StatusSnapshot(BaseModel):
    generated_at: datetime.datetime
    interval_min: int
    weather: WeatherSnapshot | None = None
    crossings: list[CrossingStatus] = []
