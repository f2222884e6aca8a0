"""Tests for the read-only TrafficQuery facade."""

import datetime

from crossing_monitor.core.query import TrafficQuery, trend
from crossing_monitor.schemas.reading import Severity, WeatherSnapshot

SUNNY = WeatherSnapshot(
    temperature_c=24, precipitation_mm=0.0, wind_kmh=8, code=0, condition="Clear sky", icon="☀️",
)


def test_trend(make_reading):
    assert trend([make_reading(step=0), make_reading(step=1)]) is None
    rising = [make_reading(step=i, traffic=t) for i, t in enumerate([10, 11, 12])]
    falling = [make_reading(step=i, traffic=t) for i, t in enumerate([14, 13, 11])]
    flat = [make_reading(step=i, traffic=t) for i, t in enumerate([10, 12, 11])]
    assert trend(rising) == "up"
    assert trend(falling) == "down"
    assert trend(flat) == "steady"


def test_worst_severity_per_crossing(crossings, store, make_reading):
    store.append("alpha-s2n", make_reading(route_id="alpha-s2n", traffic=9, normal=9))
    store.append("alpha-n2s", make_reading(route_id="alpha-n2s", traffic=43, normal=10))
    store.append("beta-s2n", make_reading(route_id="beta-s2n", crossing_id="beta", traffic=14, normal=9))

    query = TrafficQuery(crossings, store)
    assert query.crossing_status("alpha").worst is Severity.HIGH
    assert query.crossing_status("beta").worst is Severity.MODERATE


def test_worst_is_none_without_readings(crossings, store):
    query = TrafficQuery(crossings, store)
    status = query.crossing_status("alpha")
    assert status.worst is None
    assert all(r.latest is None for r in status.routes)


def test_unknown_crossing(crossings, store):
    assert TrafficQuery(crossings, store).crossing_status("gamma") is None


def test_snapshot_contains_every_route(crossings, store, make_reading):
    store.append("alpha-s2n", make_reading(weather=SUNNY))
    query = TrafficQuery(crossings, store, interval_min=5)
    snap = query.snapshot()

    assert [c.id for c in snap.crossings] == ["alpha", "beta"]
    alpha_routes = {r.id: r for r in snap.crossings[0].routes}
    assert alpha_routes["alpha-s2n"].latest.traffic_min == 17
    assert alpha_routes["alpha-s2n"].origin_label == "South"
    assert alpha_routes["alpha-n2s"].latest is None
    assert snap.weather == SUNNY
    assert snap.interval_min == 5


def test_queries_do_not_mutate_store(crossings, store, make_reading):
    for i in range(5):
        store.append("alpha-s2n", make_reading(step=i))
    before = store.all("alpha-s2n")

    query = TrafficQuery(crossings, store)
    query.snapshot()
    query.series("alpha-s2n")
    query.recent_feed()
    query.log_bytes("alpha-s2n")

    assert store.all("alpha-s2n") == before


def test_series_window(crossings, store, make_reading):
    for i in range(6):
        store.append("alpha-s2n", make_reading(step=i, traffic=10 + i, normal=9))
    query = TrafficQuery(crossings, store)
    now = datetime.datetime(2025, 3, 1, 8, 40, tzinfo=datetime.timezone.utc)

    # readings at 08:15..08:40; only the last 15 minutes
    window = query.series("alpha-s2n", hours=0.25, now=now)
    assert window.count == 4
    assert window.traffic == [12, 13, 14, 15]
    assert window.normal == [9, 9, 9, 9]
    # Nicosia is UTC+2 in March before DST
    assert window.labels == ["10:25", "10:30", "10:35", "10:40"]

    capped = query.series("alpha-s2n", hours=12, limit=2, now=now)
    assert capped.traffic == [14, 15]


def test_recent_feed_is_newest_first(crossings, store, make_reading):
    store.append("alpha-s2n", make_reading(route_id="alpha-s2n", step=0))
    store.append("beta-s2n", make_reading(route_id="beta-s2n", crossing_id="beta", step=1))
    store.append("alpha-n2s", make_reading(route_id="alpha-n2s", step=2))

    query = TrafficQuery(crossings, store)
    feed = query.recent_feed()
    assert [r.route_id for r in feed] == ["alpha-n2s", "beta-s2n", "alpha-s2n"]
    assert len(query.recent_feed(limit=2)) == 2

    alpha_only = query.recent_feed(crossing_id="alpha")
    assert [r.route_id for r in alpha_only] == ["alpha-n2s", "alpha-s2n"]


def test_log_bytes(crossings, store, tmp_path, make_reading):
    store.append("beta-s2n", make_reading(route_id="beta-s2n", crossing_id="beta"))
    query = TrafficQuery(crossings, store)
    assert query.log_bytes("beta-s2n") == (tmp_path / "log-beta-s2n.csv").read_bytes()
    assert query.log_filename("beta-s2n") == "log-beta-s2n.csv"


def test_latest_and_recent(crossings, store, make_reading):
    query = TrafficQuery(crossings, store)
    assert query.latest("alpha-s2n") is None
    for i in range(4):
        store.append("alpha-s2n", make_reading(step=i, traffic=10 + i))
    assert query.latest("alpha-s2n").traffic_min == 13
    assert [r.traffic_min for r in query.recent("alpha-s2n", 2)] == [12, 13]
