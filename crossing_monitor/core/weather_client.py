"""Open-Meteo current weather, cached so every poll cycle costs at most one call."""

import logging
import time
from collections.abc import Callable

import httpx

from crossing_monitor.config import settings
from crossing_monitor.core.telemetry import Telemetry
from crossing_monitor.core.tomtom_client import round_half_up
from crossing_monitor.schemas.reading import WeatherSnapshot

logger = logging.getLogger(__name__)

FORECAST_PATH = "/v1/forecast"
CURRENT_FIELDS = "temperature_2m,precipitation,weather_code,wind_speed_10m"

# WMO weather code ranges: (inclusive upper bound, description, icon)
WEATHER_CODES: list[tuple[int, str, str]] = [
    (0, "Clear sky", "☀️"),
    (2, "Partly cloudy", "⛅"),
    (3, "Overcast", "☁️"),
    (49, "Foggy", "🌫️"),
    (59, "Drizzle", "🌧️"),
    (69, "Rain", "🌧️"),
    (79, "Snow", "❄️"),
    (82, "Rain showers", "🌦️"),
    (86, "Snow showers", "🌨️"),
    (99, "Thunderstorm", "⛈️"),
]
UNKNOWN_WEATHER = ("Unknown", "🌡️")


def describe_weather(code: int) -> tuple[str, str]:
    """Return (description, icon) for a WMO weather code."""
    if code < 0:
        return UNKNOWN_WEATHER
    for upper, description, icon in WEATHER_CODES:
        if code <= upper:
            return description, icon
    return UNKNOWN_WEATHER


def parse_current_weather(data: dict) -> WeatherSnapshot:
    current = data["current"]
    code = int(current["weather_code"])
    condition, icon = describe_weather(code)
    return WeatherSnapshot(
        temperature_c=round_half_up(float(current["temperature_2m"])),
        precipitation_mm=float(current.get("precipitation") or 0.0),
        wind_kmh=round_half_up(float(current["wind_speed_10m"])),
        code=code,
        condition=condition,
        icon=icon,
    )


class WeatherClient:
    """Fetches weather for one fixed coordinate with a TTL cache.

    A cached snapshot is returned as-is until the TTL expires. Failed
    fetches are not cached, so the next call tries again.
    """

    def __init__(
        self,
        lat: float | None = None,
        lon: float | None = None,
        ttl_seconds: float | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.lat = lat if lat is not None else settings.weather_lat
        self.lon = lon if lon is not None else settings.weather_lon
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.weather_ttl_seconds
        self._clock = clock
        self._cached: WeatherSnapshot | None = None
        self._fetched_at: float | None = None
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.weather_base_url,
            timeout=timeout or settings.request_timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def cached(self) -> WeatherSnapshot | None:
        return self._cached

    def _cache_fresh(self) -> bool:
        return (
            self._cached is not None
            and self._fetched_at is not None
            and self._clock() - self._fetched_at < self.ttl_seconds
        )

    async def current(self) -> Telemetry[WeatherSnapshot]:
        """Current weather, from cache when fresh. Never raises."""
        if self._cache_fresh():
            return Telemetry.ok(self._cached)

        params = {
            "latitude": self.lat,
            "longitude": self.lon,
            "current": CURRENT_FIELDS,
            "timezone": settings.weather_timezone,
            "wind_speed_unit": "kmh",
        }
        try:
            resp = await self._client.get(FORECAST_PATH, params=params)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Weather fetch failed: %s", e)
            return Telemetry.failed(f"{type(e).__name__}: {e}")

        if not isinstance(data, dict) or not data.get("current"):
            return Telemetry.no_data()
        try:
            snapshot = parse_current_weather(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed weather payload: %r", e)
            return Telemetry.failed(f"Malformed weather payload: {e!r}")

        self._cached = snapshot
        self._fetched_at = self._clock()
        logger.info(
            "Weather: %s %s %d°C wind %d km/h",
            snapshot.icon, snapshot.condition, snapshot.temperature_c, snapshot.wind_kmh,
        )
        return Telemetry.ok(snapshot)
