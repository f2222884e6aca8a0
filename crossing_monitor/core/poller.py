"""Poll cycle: measure every route, classify, store and publish the readings."""

import asyncio
import datetime
import logging
from dataclasses import dataclass, field
from enum import Enum

from crossing_monitor.core.broadcaster import Broadcaster
from crossing_monitor.core.classifier import DEFAULT_THRESHOLDS, SeverityThresholds, classify
from crossing_monitor.core.series_store import SeriesStore
from crossing_monitor.core.telemetry import Telemetry
from crossing_monitor.core.tomtom_client import RouteMeasurement, TomTomClient
from crossing_monitor.core.weather_client import WeatherClient
from crossing_monitor.exceptions import PersistenceError, UpstreamError
from crossing_monitor.schemas.reading import Reading, SpeedSample, WeatherSnapshot
from crossing_monitor.schemas.route import CrossingConfig, RouteConfig

logger = logging.getLogger(__name__)


class PollerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"


@dataclass
class CycleReport:
    started_at: datetime.datetime
    finished_at: datetime.datetime | None = None
    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    # Readings kept in memory whose log write failed
    not_persisted: list[str] = field(default_factory=list)


@dataclass
class RouteHealth:
    consecutive_failures: int = 0
    total_failures: int = 0
    last_error: str | None = None
    last_success: datetime.datetime | None = None
    last_failure: datetime.datetime | None = None


def make_reading(
    crossing_id: str,
    route_id: str,
    measurement: RouteMeasurement,
    timestamp: datetime.datetime,
    thresholds: SeverityThresholds = DEFAULT_THRESHOLDS,
    speed: SpeedSample | None = None,
    weather: WeatherSnapshot | None = None,
) -> Reading:
    # Rounding can put the live time under the baseline; delay never goes negative
    delay = max(0, measurement.traffic_min - measurement.normal_min)
    return Reading(
        timestamp=timestamp,
        crossing_id=crossing_id,
        route_id=route_id,
        traffic_min=measurement.traffic_min,
        normal_min=measurement.normal_min,
        distance_km=measurement.distance_km,
        delay_min=delay,
        severity=classify(delay, thresholds),
        speed=speed,
        weather=weather,
    )


class TrafficPoller:
    """Runs poll cycles across every configured route.

    Routes are polled concurrently and independently: each route task has
    its own error handling, so one route failing never touches another
    route's result.
    """

    def __init__(
        self,
        crossings: list[CrossingConfig],
        client: TomTomClient,
        store: SeriesStore,
        weather: WeatherClient | None = None,
        broadcaster: Broadcaster | None = None,
        thresholds: SeverityThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self.crossings = crossings
        self.client = client
        self.store = store
        self.weather = weather
        self.broadcaster = broadcaster
        self.thresholds = thresholds

        self.state = PollerState.IDLE
        self.cycles_completed = 0
        self.last_report: CycleReport | None = None
        self.last_weather: Telemetry[WeatherSnapshot] | None = None
        self._health: dict[str, RouteHealth] = {
            route.id: RouteHealth() for crossing in crossings for route in crossing.routes
        }

    def targets(self) -> list[tuple[CrossingConfig, RouteConfig]]:
        return [(c, r) for c in self.crossings for r in c.routes]

    async def poll_cycle(self) -> CycleReport:
        """Poll every route once. Never raises for per-route failures."""
        report = CycleReport(started_at=datetime.datetime.now(datetime.timezone.utc))
        self.state = PollerState.POLLING
        try:
            weather: WeatherSnapshot | None = None
            if self.weather is not None:
                # One weather lookup per cycle, shared by all routes
                self.last_weather = await self.weather.current()
                weather = self.last_weather.value_or_none()

            tasks = [
                asyncio.create_task(
                    self._poll_route(crossing, route, weather, report),
                    name=f"poll:{route.id}",
                )
                for crossing, route in self.targets()
            ]
            await asyncio.gather(*tasks)
        finally:
            report.finished_at = datetime.datetime.now(datetime.timezone.utc)
            self.state = PollerState.IDLE
            self.cycles_completed += 1
            self.last_report = report

        logger.info(
            "Poll cycle done: %d ok, %d failed",
            len(report.succeeded), len(report.failed),
        )
        return report

    async def _poll_route(
        self,
        crossing: CrossingConfig,
        route: RouteConfig,
        weather: WeatherSnapshot | None,
        report: CycleReport,
    ) -> Reading | None:
        label = f"[{crossing.short_name or crossing.name}] {route.name}"
        health = self._health[route.id]
        try:
            measurement, speed = await asyncio.gather(
                self.client.measure(route.origin, route.destination),
                self.client.fetch_speed(route.origin),
            )
        except UpstreamError as e:
            self._record_failure(route.id, e.reason, report)
            logger.warning("%s: %s", label, e.reason)
            return None
        except Exception as e:
            self._record_failure(route.id, f"{type(e).__name__}: {e}", report)
            logger.exception("%s: unexpected error while measuring", label)
            return None

        reading = make_reading(
            crossing.id,
            route.id,
            measurement,
            timestamp=datetime.datetime.now(datetime.timezone.utc),
            thresholds=self.thresholds,
            speed=speed.value_or_none(),
            weather=weather,
        )

        try:
            self.store.append(route.id, reading)
        except PersistenceError as e:
            report.not_persisted.append(route.id)
            logger.error("%s: reading kept in memory only: %s", label, e)

        health.consecutive_failures = 0
        health.last_success = reading.timestamp
        report.succeeded.append(route.id)

        speed_note = ""
        if reading.speed is not None:
            speed_note = f"  {reading.speed.current_kmh}km/h ({reading.speed.percent_of_free_flow}%)"
        logger.info(
            "%s: %dmin  delay:+%d  %s%s",
            label, reading.traffic_min, reading.delay_min, reading.severity.value, speed_note,
        )

        if self.broadcaster is not None:
            try:
                await self.broadcaster.publish(reading)
            except Exception:
                logger.exception("%s: failed to publish reading", label)

        return reading

    def _record_failure(self, route_id: str, reason: str, report: CycleReport) -> None:
        health = self._health[route_id]
        health.consecutive_failures += 1
        health.total_failures += 1
        health.last_error = reason
        health.last_failure = datetime.datetime.now(datetime.timezone.utc)
        report.failed[route_id] = reason

    def route_health(self, route_id: str) -> RouteHealth:
        return self._health[route_id]

    def get_diagnostics(self) -> dict:
        report = self.last_report
        weather_status = self.last_weather.status.value if self.last_weather else None
        return {
            "state": self.state.value,
            "cycles_completed": self.cycles_completed,
            "weather_status": weather_status,
            "last_cycle": None if report is None else {
                "started_at": report.started_at.isoformat(),
                "finished_at": report.finished_at.isoformat() if report.finished_at else None,
                "succeeded": list(report.succeeded),
                "failed": dict(report.failed),
                "not_persisted": list(report.not_persisted),
            },
            "routes": [
                {
                    "route_id": route_id,
                    "consecutive_failures": h.consecutive_failures,
                    "total_failures": h.total_failures,
                    "last_error": h.last_error,
                    "last_success": h.last_success.isoformat() if h.last_success else None,
                    "last_failure": h.last_failure.isoformat() if h.last_failure else None,
                    "readings_in_memory": self.store.count(route_id),
                }
                for route_id, h in self._health.items()
            ],
        }
