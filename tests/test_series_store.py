"""Tests for SeriesStore (bounded memory + CSV durable log)."""

import datetime

import pytest

from crossing_monitor.core.series_store import LOG_HEADER, SeriesStore, format_timestamp
from crossing_monitor.exceptions import PersistenceError

HEADER_LINE = ",".join(LOG_HEADER)


def _lines(path):
    return path.read_text(encoding="utf-8").splitlines()


def test_ensure_logs_writes_header_once(store, tmp_path):
    path = tmp_path / "log-alpha-s2n.csv"
    assert _lines(path) == [HEADER_LINE]
    store.ensure_logs()
    assert _lines(path) == [HEADER_LINE]


def test_row_format_quotes_strings(store, tmp_path, make_reading):
    store.append("alpha-s2n", make_reading(traffic=17, normal=9))
    lines = _lines(tmp_path / "log-alpha-s2n.csv")
    assert lines[0] == "timestamp,crossing,route,traffic_min,normal_min,delay_min,traffic_level"
    # Crossing name contains a comma and must stay one field
    assert lines[1] == '"2025-03-01T08:15:00.000Z","Alpha, Old Town","South to North",17,9,8,"MODERATE"'


def test_format_timestamp_converts_to_utc():
    ts = datetime.datetime(2025, 3, 1, 10, 15, 30, 123456,
                           tzinfo=datetime.timezone(datetime.timedelta(hours=2)))
    assert format_timestamp(ts) == "2025-03-01T08:15:30.123Z"


def test_latest_recent_all(store, make_reading):
    assert store.latest("alpha-s2n") is None
    assert store.recent("alpha-s2n", 5) == []

    readings = [make_reading(step=i, traffic=10 + i) for i in range(4)]
    for r in readings:
        store.append("alpha-s2n", r)

    assert store.latest("alpha-s2n") == readings[-1]
    assert store.recent("alpha-s2n", 2) == readings[-2:]
    assert store.recent("alpha-s2n", 100) == readings
    assert store.recent("alpha-s2n", 0) == []
    assert store.all("alpha-s2n") == readings
    # Other routes are untouched
    assert store.all("alpha-n2s") == []


def test_capacity_evicts_oldest_but_log_keeps_everything(crossings, tmp_path, make_reading):
    store = SeriesStore(crossings, log_dir=tmp_path, history_limit=3)
    store.ensure_logs()
    readings = [make_reading(step=i, traffic=10 + i) for i in range(4)]
    for r in readings:
        store.append("alpha-s2n", r)

    held = store.all("alpha-s2n")
    assert len(held) == 3
    assert readings[0] not in held
    assert held[-1] == readings[-1]

    # header + one row per append, nothing truncated by eviction
    assert len(_lines(tmp_path / "log-alpha-s2n.csv")) == 1 + 4


def test_never_exceeds_capacity(crossings, tmp_path, make_reading):
    store = SeriesStore(crossings, log_dir=tmp_path, history_limit=5)
    for i in range(20):
        store.append("beta-s2n", make_reading(route_id="beta-s2n", crossing_id="beta", step=i))
        assert store.count("beta-s2n") <= 5


def test_append_creates_missing_log(crossings, tmp_path, make_reading):
    store = SeriesStore(crossings, log_dir=tmp_path / "logs", history_limit=10)
    assert store.full_log("alpha-s2n") is None
    store.append("alpha-s2n", make_reading())
    assert _lines(tmp_path / "logs" / "log-alpha-s2n.csv")[0] == HEADER_LINE


def test_empty_existing_log_gets_header(crossings, tmp_path, make_reading):
    path = tmp_path / "log-alpha-s2n.csv"
    path.touch()
    store = SeriesStore(crossings, log_dir=tmp_path, history_limit=10)
    store.ensure_logs()
    store.append("alpha-s2n", make_reading())
    lines = _lines(path)
    assert lines[0] == HEADER_LINE
    assert len(lines) == 2


def test_full_log_returns_raw_bytes(store, tmp_path, make_reading):
    store.append("alpha-s2n", make_reading())
    assert store.full_log("alpha-s2n") == (tmp_path / "log-alpha-s2n.csv").read_bytes()


def test_restart_keeps_log_but_not_memory(crossings, tmp_path, make_reading):
    first = SeriesStore(crossings, log_dir=tmp_path)
    first.ensure_logs()
    first.append("alpha-s2n", make_reading(step=0))

    second = SeriesStore(crossings, log_dir=tmp_path)
    second.ensure_logs()
    assert second.all("alpha-s2n") == []
    second.append("alpha-s2n", make_reading(step=1))

    lines = _lines(tmp_path / "log-alpha-s2n.csv")
    assert lines.count(HEADER_LINE) == 1
    assert len(lines) == 3


def test_write_failure_keeps_reading_in_memory(crossings, tmp_path, make_reading):
    # A directory where the log file should be makes every append fail
    (tmp_path / "log-alpha-s2n.csv").mkdir()
    store = SeriesStore(crossings, log_dir=tmp_path)
    reading = make_reading()

    with pytest.raises(PersistenceError) as exc:
        store.append("alpha-s2n", reading)

    assert exc.value.route_id == "alpha-s2n"
    assert store.latest("alpha-s2n") == reading


def test_since_filters_by_timestamp(store, make_reading):
    readings = [make_reading(step=i) for i in range(4)]
    for r in readings:
        store.append("alpha-s2n", r)
    assert store.since("alpha-s2n", readings[2].timestamp) == readings[2:]


def test_unknown_route_raises_key_error(store, make_reading):
    with pytest.raises(KeyError):
        store.latest("nowhere")
    with pytest.raises(KeyError):
        store.append("nowhere", make_reading(route_id="nowhere"))


def test_invalid_history_limit(crossings, tmp_path):
    with pytest.raises(ValueError):
        SeriesStore(crossings, log_dir=tmp_path, history_limit=0)
