"""Read-only views over the series store for the HTTP layer."""

import datetime
import logging
from zoneinfo import ZoneInfo

from crossing_monitor.core.classifier import worst
from crossing_monitor.core.series_store import SeriesStore
from crossing_monitor.schemas.reading import Reading, SeriesWindow, WeatherSnapshot
from crossing_monitor.schemas.route import CrossingConfig, CrossingStatus, RouteStatus, StatusSnapshot

logger = logging.getLogger(__name__)

# Minutes of change across the last three readings that count as a trend
TREND_THRESHOLD_MIN = 2
DEFAULT_WINDOW_HOURS = 12
# 12h at a 5 minute cadence
DEFAULT_WINDOW_LIMIT = 144


def trend(readings: list[Reading]) -> str | None:
    """Direction of travel time over the last three readings."""
    if len(readings) < 3:
        return None
    first, latest = readings[-3].traffic_min, readings[-1].traffic_min
    diff = latest - first
    if diff >= TREND_THRESHOLD_MIN:
        return "up"
    if diff <= -TREND_THRESHOLD_MIN:
        return "down"
    return "steady"


class TrafficQuery:
    """Query facade. Never mutates the store."""

    def __init__(
        self,
        crossings: list[CrossingConfig],
        store: SeriesStore,
        interval_min: int = 5,
        display_tz: str = "Asia/Nicosia",
    ) -> None:
        self.crossings = crossings
        self.store = store
        self.interval_min = interval_min
        self.display_tz = ZoneInfo(display_tz)
        self._crossings_by_id = {c.id: c for c in crossings}

    def get_crossing(self, crossing_id: str) -> CrossingConfig | None:
        return self._crossings_by_id.get(crossing_id)

    def has_route(self, route_id: str) -> bool:
        return self.store.has_route(route_id)

    def _route_status(self, route) -> RouteStatus:
        recent = self.store.recent(route.id, 3)
        return RouteStatus(
            id=route.id,
            name=route.name,
            origin_label=route.origin.label,
            destination_label=route.destination.label,
            latest=recent[-1] if recent else None,
            trend=trend(recent),
            readings_in_memory=self.store.count(route.id),
        )

    def crossing_status(self, crossing_id: str) -> CrossingStatus | None:
        crossing = self.get_crossing(crossing_id)
        if crossing is None:
            return None
        routes = [self._route_status(r) for r in crossing.routes]
        return CrossingStatus(
            id=crossing.id,
            name=crossing.name,
            short_name=crossing.short_name,
            description=crossing.description,
            worst=worst(r.latest.severity if r.latest else None for r in routes),
            routes=routes,
        )

    def latest(self, route_id: str) -> Reading | None:
        return self.store.latest(route_id)

    def recent(self, route_id: str, n: int) -> list[Reading]:
        return self.store.recent(route_id, n)

    def latest_weather(self) -> WeatherSnapshot | None:
        """Weather from the newest reading that carries one."""
        newest: Reading | None = None
        for route_id in self.store.route_ids():
            latest = self.store.latest(route_id)
            if latest is None or latest.weather is None:
                continue
            if newest is None or latest.timestamp > newest.timestamp:
                newest = latest
        return newest.weather if newest else None

    def snapshot(self) -> StatusSnapshot:
        return StatusSnapshot(
            generated_at=datetime.datetime.now(datetime.timezone.utc),
            interval_min=self.interval_min,
            weather=self.latest_weather(),
            crossings=[self.crossing_status(c.id) for c in self.crossings],
        )

    def series(
        self,
        route_id: str,
        hours: float = DEFAULT_WINDOW_HOURS,
        limit: int = DEFAULT_WINDOW_LIMIT,
        now: datetime.datetime | None = None,
    ) -> SeriesWindow:
        """Chart window: readings from the last `hours`, capped at the newest `limit`."""
        now = now or datetime.datetime.now(datetime.timezone.utc)
        readings = self.store.since(route_id, now - datetime.timedelta(hours=hours))
        if limit > 0:
            readings = readings[-limit:]
        return SeriesWindow(
            route_id=route_id,
            hours=hours,
            count=len(readings),
            labels=[r.timestamp.astimezone(self.display_tz).strftime("%H:%M") for r in readings],
            traffic=[r.traffic_min for r in readings],
            normal=[r.normal_min for r in readings],
        )

    def recent_feed(self, limit: int = 40, crossing_id: str | None = None) -> list[Reading]:
        """Readings from all routes (or one crossing), newest first."""
        if crossing_id is not None:
            crossing = self.get_crossing(crossing_id)
            route_ids = [r.id for r in crossing.routes] if crossing else []
        else:
            route_ids = self.store.route_ids()
        merged: list[Reading] = []
        for route_id in route_ids:
            merged.extend(self.store.recent(route_id, limit))
        merged.sort(key=lambda r: r.timestamp, reverse=True)
        return merged[:limit]

    def log_bytes(self, route_id: str) -> bytes | None:
        return self.store.full_log(route_id)

    def log_filename(self, route_id: str) -> str:
        return self.store.log_path(route_id).name
