"""Per-route reading history: a bounded in-memory deque plus an append-only CSV log."""

import csv
import datetime
import io
import logging
from collections import deque
from pathlib import Path

from crossing_monitor.exceptions import PersistenceError
from crossing_monitor.schemas.reading import Reading
from crossing_monitor.schemas.route import CrossingConfig

logger = logging.getLogger(__name__)

LOG_HEADER = ["timestamp", "crossing", "route", "traffic_min", "normal_min", "delay_min", "traffic_level"]
DEFAULT_HISTORY_LIMIT = 1000


def format_timestamp(ts: datetime.datetime) -> str:
    """ISO-8601 UTC with milliseconds and a Z suffix, e.g. 2025-03-01T08:15:00.000Z."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=datetime.timezone.utc)
    ts = ts.astimezone(datetime.timezone.utc)
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CsvLog:
    """Append-only CSV file for one route. Survives restarts; never rewritten."""

    def __init__(self, path: Path, crossing_name: str, route_name: str) -> None:
        self.path = path
        self.crossing_name = crossing_name
        self.route_name = route_name

    def ensure(self) -> bool:
        """Write the header if the file is missing or empty. Returns True if written."""
        if self.path.exists() and self.path.stat().st_size > 0:
            return False
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", newline="", encoding="utf-8") as f:
            csv.writer(f, lineterminator="\n").writerow(LOG_HEADER)
        return True

    def format_row(self, reading: Reading) -> str:
        buf = io.StringIO()
        # Strings quoted, numbers bare
        csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n").writerow([
            format_timestamp(reading.timestamp),
            self.crossing_name,
            self.route_name,
            reading.traffic_min,
            reading.normal_min,
            reading.delay_min,
            reading.severity.value,
        ])
        return buf.getvalue()

    def append(self, reading: Reading) -> None:
        self.ensure()
        with self.path.open("a", newline="", encoding="utf-8") as f:
            f.write(self.format_row(reading))

    def read_bytes(self) -> bytes | None:
        if not self.path.is_file():
            return None
        return self.path.read_bytes()


class RouteSeries:
    def __init__(self, log: CsvLog, limit: int) -> None:
        self.log = log
        self.readings: deque[Reading] = deque(maxlen=limit)


class SeriesStore:
    """Reading history keyed by route id.

    Each route has exactly one writer (the poller task for that route), and
    the deque is only ever appended to or evicted from the left, so readers
    always see a consistent sequence.
    """

    def __init__(
        self,
        crossings: list[CrossingConfig],
        log_dir: str | Path = ".",
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        if history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        self.log_dir = Path(log_dir)
        self.history_limit = history_limit
        self._series: dict[str, RouteSeries] = {}
        for crossing in crossings:
            for route in crossing.routes:
                log = CsvLog(self.log_dir / route.log_file, crossing.name, route.name)
                self._series[route.id] = RouteSeries(log, history_limit)

    def _get(self, route_id: str) -> RouteSeries:
        try:
            return self._series[route_id]
        except KeyError:
            raise KeyError(f"Unknown route: {route_id}") from None

    def route_ids(self) -> list[str]:
        return list(self._series)

    def has_route(self, route_id: str) -> bool:
        return route_id in self._series

    def ensure_logs(self) -> None:
        """Create every missing log file with its header line."""
        for route_id, series in self._series.items():
            try:
                if series.log.ensure():
                    logger.info("Created log %s for route %s", series.log.path, route_id)
            except OSError as e:
                raise PersistenceError(route_id, str(series.log.path), str(e)) from e

    def append(self, route_id: str, reading: Reading) -> None:
        """Add a reading to memory, then to the durable log.

        The in-memory append always takes effect. A failed log write is
        raised as PersistenceError afterwards.
        """
        series = self._get(route_id)
        series.readings.append(reading)
        try:
            series.log.append(reading)
        except OSError as e:
            raise PersistenceError(route_id, str(series.log.path), str(e)) from e

    def latest(self, route_id: str) -> Reading | None:
        readings = self._get(route_id).readings
        return readings[-1] if readings else None

    def recent(self, route_id: str, n: int) -> list[Reading]:
        """Up to n most recent readings, oldest first."""
        if n <= 0:
            return []
        readings = list(self._get(route_id).readings)
        return readings[-n:]

    def all(self, route_id: str) -> list[Reading]:
        return list(self._get(route_id).readings)

    def since(self, route_id: str, cutoff: datetime.datetime) -> list[Reading]:
        return [r for r in self._get(route_id).readings if r.timestamp >= cutoff]

    def count(self, route_id: str) -> int:
        return len(self._get(route_id).readings)

    def full_log(self, route_id: str) -> bytes | None:
        """Raw durable-log contents, or None if the file is missing."""
        return self._get(route_id).log.read_bytes()

    def log_path(self, route_id: str) -> Path:
        return self._get(route_id).log.path
