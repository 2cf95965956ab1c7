"""Fix filter accept/reject rules."""

from __future__ import annotations

import logging

import pytest

from stride_tracker.fix_filter import FixFilter, FixFilterConfig, RejectReason
from stride_tracker.geo import destination_point
from stride_tracker.units import UnitSystem


@pytest.fixture
def fix_filter():
    return FixFilter(FixFilterConfig(), UnitSystem.IMPERIAL)


def test_first_fix_always_accepted_even_when_stationary(fix_filter, fix_factory):
    decision = fix_filter.accept(fix_factory(speed=0.0))

    assert decision.accepted
    assert decision.distance_m == 0.0
    assert not decision.speed_in_range
    assert fix_filter.last_accepted is not None


def test_identical_fix_twice_rejects_second(fix_filter, fix_factory):
    fix = fix_factory(t=10.0)
    assert fix_filter.accept(fix).accepted

    second = fix_filter.accept(fix)

    assert not second.accepted
    assert second.reason is RejectReason.TOO_SOON


def test_stationary_fix_after_interval_is_too_close(fix_filter, fix_factory):
    fix_filter.accept(fix_factory(t=0.0))

    decision = fix_filter.accept(fix_factory(t=5.0))

    assert not decision.accepted
    assert decision.reason is RejectReason.TOO_CLOSE


def test_speed_above_range_rejected(fix_filter, fix_factory):
    start = fix_factory(t=0.0)
    fix_filter.accept(start)
    fast = UnitSystem.IMPERIAL.speed_to_mps(30.0)
    moved = destination_point(start.coordinate, 0.0, fast * 3)

    decision = fix_filter.accept(fix_factory(moved, t=3.0, speed=fast))

    assert not decision.accepted
    assert decision.reason is RejectReason.SPEED_OUT_OF_RANGE
    assert decision.speed == pytest.approx(30.0)


def test_position_jump_rejected_and_last_fix_kept(fix_filter, fix_factory):
    start = fix_factory(t=0.0, speed=3.0)
    fix_filter.accept(start)
    jumped = destination_point(start.coordinate, 90.0, 500.0)

    decision = fix_filter.accept(fix_factory(jumped, t=3.0, speed=3.0))

    assert not decision.accepted
    assert decision.reason is RejectReason.TELEPORT
    assert fix_filter.last_accepted == start


def test_plausible_track_is_accepted(fix_filter, track_factory):
    decisions = [fix_filter.accept(fix) for fix in track_factory(6)]

    assert all(d.accepted for d in decisions)
    assert all(d.speed_in_range for d in decisions)
    assert sum(d.distance_m for d in decisions) == pytest.approx(50.0, abs=1e-3)


def test_ratio_threshold_is_configurable(fix_factory):
    loose = FixFilter(FixFilterConfig(max_distance_ratio=1000.0), UnitSystem.IMPERIAL)
    start = fix_factory(t=0.0, speed=3.0)
    loose.accept(start)
    jumped = destination_point(start.coordinate, 90.0, 500.0)

    assert loose.accept(fix_factory(jumped, t=3.0, speed=3.0)).accepted


def test_evaluate_does_not_update_state(fix_filter, track_factory):
    first, second = track_factory(2)
    fix_filter.accept(first)

    assert fix_filter.evaluate(second).accepted
    assert fix_filter.last_accepted == first


def test_reset_accepts_next_fix_unconditionally(fix_filter, fix_factory):
    fix = fix_factory(t=0.0)
    fix_filter.accept(fix)
    fix_filter.reset()

    assert fix_filter.accept(fix).accepted


def test_rejection_logged_at_debug(fix_filter, fix_factory, caplog):
    fix = fix_factory(t=0.0)
    fix_filter.accept(fix)

    with caplog.at_level(logging.DEBUG, logger="stride_tracker.fix_filter"):
        fix_filter.accept(fix)

    assert "too_soon" in caplog.text
