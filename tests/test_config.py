from __future__ import annotations

from stride_tracker import config


def test_env_helpers_parse_and_fall_back(monkeypatch):
    monkeypatch.setenv("STRIDE_TEST_FLOAT", "2.5")
    monkeypatch.setenv("STRIDE_TEST_INT", "not-a-number")
    monkeypatch.setenv("STRIDE_TEST_BOOL", "Yes")
    monkeypatch.setenv("STRIDE_TEST_STR", "   ")

    assert config._env_float("STRIDE_TEST_FLOAT", 1.0) == 2.5
    assert config._env_int("STRIDE_TEST_INT", 7) == 7
    assert config._env_bool("STRIDE_TEST_BOOL", False) is True
    assert config._env_str("STRIDE_TEST_STR", "fallback") == "fallback"
    assert config._env_float("STRIDE_TEST_MISSING", 3.0) == 3.0


def test_route_thresholds_exceed_filter_thresholds():
    assert config.ROUTE_MIN_DISTANCE_M > config.FIX_MIN_DISTANCE_M
    assert config.ROUTE_MIN_INTERVAL_SECONDS > config.FIX_MIN_INTERVAL_SECONDS
