"""Crossing and route definitions, built in or loaded from a JSON file."""

import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from crossing_monitor.exceptions import ConfigurationError
from crossing_monitor.schemas.route import CrossingConfig

logger = logging.getLogger(__name__)

DEFAULT_CROSSINGS: list[dict] = [
    {
        "id": "metehan",
        "name": "Agios Dometios / Metehan",
        "short_name": "Metehan",
        "description": "Main Nicosia city crossing",
        "routes": [
            {
                "id": "metehan-s2n",
                "name": "South to North",
                "log_file": "log-metehan-s2n.csv",
                "origin": {"lat": 35.17738946649458, "lng": 33.323703790315996, "label": "South"},
                "destination": {"lat": 35.18248230357691, "lng": 33.32297160214468, "label": "North"},
            },
            {
                "id": "metehan-n2s",
                "name": "North to South",
                "log_file": "log-metehan-n2s.csv",
                "origin": {"lat": 35.189972638909815, "lng": 33.3267300933598, "label": "North"},
                "destination": {"lat": 35.17997580404659, "lng": 33.32508411149086, "label": "South"},
            },
        ],
    },
    {
        "id": "astromeritis",
        "name": "Astromeritis / Zodia",
        "short_name": "Astromeritis",
        "description": "West Nicosia crossing",
        "routes": [
            {
                "id": "astromeritis-s2n",
                "name": "South to North",
                "log_file": "log-astromeritis-s2n.csv",
                "origin": {"lat": 35.14493622086859, "lng": 33.03599537704171, "label": "South"},
                "destination": {"lat": 35.15883484408819, "lng": 33.01875938024711, "label": "North"},
            },
            {
                "id": "astromeritis-n2s",
                "name": "North to South",
                "log_file": "log-astromeritis-n2s.csv",
                "origin": {"lat": 35.15883484408819, "lng": 33.01876659029276, "label": "North"},
                "destination": {"lat": 35.14498045733702, "lng": 33.03600414981479, "label": "South"},
            },
        ],
    },
]

_adapter = TypeAdapter(list[CrossingConfig])


def parse_crossings(raw: list[dict] | str | bytes) -> list[CrossingConfig]:
    """Validate crossing definitions from Python data or a JSON document.

    Raises ConfigurationError on schema errors, an empty list, or route ids
    / log files / crossing ids that are not unique.
    """
    try:
        if isinstance(raw, (str, bytes)):
            crossings = _adapter.validate_json(raw)
        else:
            crossings = _adapter.validate_python(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Malformed crossing configuration: {e}") from e

    if not crossings:
        raise ConfigurationError("No crossings configured")

    seen_crossings: set[str] = set()
    seen_routes: set[str] = set()
    seen_logs: set[str] = set()
    for crossing in crossings:
        if crossing.id in seen_crossings:
            raise ConfigurationError(f"Duplicate crossing id: {crossing.id}")
        seen_crossings.add(crossing.id)
        for route in crossing.routes:
            if route.id in seen_routes:
                raise ConfigurationError(f"Duplicate route id: {route.id}")
            if route.log_file in seen_logs:
                raise ConfigurationError(f"Log file shared by several routes: {route.log_file}")
            seen_routes.add(route.id)
            seen_logs.add(route.log_file)
    return crossings


def load_crossings(path: str | None = None) -> list[CrossingConfig]:
    """Load crossings from a JSON file, or the built-in set when no path is given."""
    if not path:
        return parse_crossings(DEFAULT_CROSSINGS)

    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        raise ConfigurationError(f"Cannot read crossings file {path}: {e}") from e

    crossings = parse_crossings(raw)
    logger.info("Loaded %d crossings from %s", len(crossings), path)
    return crossings
