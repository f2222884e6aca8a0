"""Tests for crossing configuration loading."""

import json

import pytest

from crossing_monitor.crossings import DEFAULT_CROSSINGS, load_crossings, parse_crossings
from crossing_monitor.exceptions import ConfigurationError


def test_default_crossings_load():
    crossings = load_crossings()
    assert [c.id for c in crossings] == ["metehan", "astromeritis"]
    assert [r.id for r in crossings[0].routes] == ["metehan-s2n", "metehan-n2s"]
    assert crossings[0].routes[0].log_file == "log-metehan-s2n.csv"
    assert len(DEFAULT_CROSSINGS) == 2


def test_load_from_json_file(tmp_path, raw_crossings):
    path = tmp_path / "crossings.json"
    path.write_text(json.dumps(raw_crossings))
    crossings = load_crossings(str(path))
    assert [c.id for c in crossings] == ["alpha", "beta"]
    assert crossings[0].routes[1].origin.label == "North"


def test_missing_file_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_crossings(str(tmp_path / "nope.json"))


def test_malformed_json_is_configuration_error():
    with pytest.raises(ConfigurationError):
        parse_crossings(b"{not json")


def test_bad_coordinates_rejected(raw_crossings):
    raw_crossings[0]["routes"][0]["origin"]["lat"] = 123.0
    with pytest.raises(ConfigurationError):
        parse_crossings(raw_crossings)


def test_crossing_without_routes_rejected(raw_crossings):
    raw_crossings[1]["routes"] = []
    with pytest.raises(ConfigurationError):
        parse_crossings(raw_crossings)


def test_duplicate_route_id_rejected(raw_crossings):
    raw_crossings[1]["routes"][0]["id"] = "alpha-s2n"
    with pytest.raises(ConfigurationError, match="Duplicate route id"):
        parse_crossings(raw_crossings)


def test_shared_log_file_rejected(raw_crossings):
    raw_crossings[1]["routes"][0]["log_file"] = "log-alpha-s2n.csv"
    with pytest.raises(ConfigurationError, match="Log file"):
        parse_crossings(raw_crossings)


def test_empty_configuration_rejected():
    with pytest.raises(ConfigurationError):
        parse_crossings([])
