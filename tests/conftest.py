import copy
import datetime

import pytest

from crossing_monitor.core.classifier import classify
from crossing_monitor.core.series_store import SeriesStore
from crossing_monitor.crossings import parse_crossings
from crossing_monitor.schemas.reading import Reading

T0 = datetime.datetime(2025, 3, 1, 8, 15, tzinfo=datetime.timezone.utc)

CROSSINGS = [
    {
        "id": "alpha",
        "name": "Alpha, Old Town",
        "short_name": "Alpha",
        "description": "City crossing",
        "routes": [
            {
                "id": "alpha-s2n",
                "name": "South to North",
                "log_file": "log-alpha-s2n.csv",
                "origin": {"lat": 35.177, "lng": 33.323, "label": "South"},
                "destination": {"lat": 35.182, "lng": 33.322, "label": "North"},
            },
            {
                "id": "alpha-n2s",
                "name": "North to South",
                "log_file": "log-alpha-n2s.csv",
                "origin": {"lat": 35.189, "lng": 33.326, "label": "North"},
                "destination": {"lat": 35.179, "lng": 33.325, "label": "South"},
            },
        ],
    },
    {
        "id": "beta",
        "name": "Beta",
        "short_name": "Beta",
        "description": "West crossing",
        "routes": [
            {
                "id": "beta-s2n",
                "name": "South to North",
                "log_file": "log-beta-s2n.csv",
                "origin": {"lat": 35.144, "lng": 33.035, "label": "South"},
                "destination": {"lat": 35.158, "lng": 33.018, "label": "North"},
            },
        ],
    },
]


@pytest.fixture
def raw_crossings():
    return copy.deepcopy(CROSSINGS)


@pytest.fixture
def crossings():
    return parse_crossings(CROSSINGS)


@pytest.fixture
def store(crossings, tmp_path):
    s = SeriesStore(crossings, log_dir=tmp_path, history_limit=10)
    s.ensure_logs()
    return s


@pytest.fixture
def make_reading():
    """Factory for readings spaced one poll interval (5 min) apart."""

    def _make(route_id="alpha-s2n", step=0, traffic=17, normal=9, crossing_id="alpha", weather=None):
        delay = max(0, traffic - normal)
        return Reading(
            timestamp=T0 + datetime.timedelta(minutes=5 * step),
            crossing_id=crossing_id,
            route_id=route_id,
            traffic_min=traffic,
            normal_min=normal,
            distance_km=1.2,
            delay_min=delay,
            severity=classify(delay),
            weather=weather,
        )

    return _make
