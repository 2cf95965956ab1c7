"""Gem calculation and reward ledger bookkeeping."""

from __future__ import annotations

import logging
from datetime import date, timedelta

import pytest

from stride_tracker.models import RewardLedger
from stride_tracker.rewards import (
    RewardBook,
    add_daily_progress,
    apply_daily_reset,
    award,
    calculate_reward,
    daily_progress_fraction,
    daily_progress_text,
    reward_breakdown,
    spend,
)
from stride_tracker.storage import UserRepository
from stride_tracker.units import METERS_PER_MILE, UnitSystem

TODAY = date(2025, 6, 10)
IMPERIAL = UnitSystem.IMPERIAL


def test_one_mile_at_eight_mph_after_yesterday_earns_eighteen():
    ledger = RewardLedger(total_gems=40, last_reward_date=TODAY - timedelta(days=1))

    breakdown = reward_breakdown(METERS_PER_MILE, 8.0, ledger, TODAY, IMPERIAL)

    assert (breakdown.base, breakdown.speed_bonus, breakdown.distance_bonus, breakdown.streak_bonus) == (10, 2, 1, 5)
    assert breakdown.total == 18


@pytest.mark.parametrize(
    "distance_m, speed, last, expected",
    [
        (0.0, 0.0, None, 10),
        (500.0, 5.9, TODAY - timedelta(days=2), 10),
        (3.2 * METERS_PER_MILE, 12.0, TODAY, 10 + 4 + 3 + 5),
        (2.5 * METERS_PER_MILE, 7.9, None, 10 + 1 + 2),
    ],
)
def test_calculate_reward_components(distance_m, speed, last, expected):
    ledger = RewardLedger(last_reward_date=last)

    assert calculate_reward(distance_m, speed, ledger, TODAY, IMPERIAL) == expected


def test_metric_units_change_distance_bonus():
    ledger = RewardLedger()

    assert calculate_reward(5000.0, 0.0, ledger, TODAY, UnitSystem.METRIC) == 15
    assert calculate_reward(5000.0, 0.0, ledger, TODAY, IMPERIAL) == 13


def test_award_resets_daily_counter_before_adding():
    ledger = RewardLedger(
        total_gems=100,
        gems_earned_today=30,
        daily_seconds_completed=600,
        last_reward_date=TODAY - timedelta(days=1),
    )

    award(ledger, 12, TODAY)

    assert ledger.total_gems == 112
    assert ledger.gems_earned_today == 12
    assert ledger.daily_seconds_completed == 0
    assert ledger.last_reward_date == TODAY


def test_award_same_day_accumulates():
    ledger = RewardLedger(gems_earned_today=5, total_gems=5, last_reward_date=TODAY)

    award(ledger, 10, TODAY)

    assert ledger.gems_earned_today == 15
    assert ledger.total_gems == 15


def test_daily_reset_happens_once_per_day():
    ledger = RewardLedger(gems_earned_today=9, last_reward_date=TODAY - timedelta(days=3))

    assert apply_daily_reset(ledger, TODAY)
    ledger.gems_earned_today = 4
    assert not apply_daily_reset(ledger, TODAY)
    assert ledger.gems_earned_today == 4


def test_spend_rejects_overdraft_without_mutation():
    ledger = RewardLedger(total_gems=49)

    assert not spend(ledger, 50)
    assert ledger.total_gems == 49
    assert not spend(ledger, -1)
    assert spend(ledger, 49)
    assert ledger.total_gems == 0


def test_daily_progress_fraction_and_text():
    ledger = RewardLedger(daily_minutes_goal=15, last_reward_date=TODAY)

    add_daily_progress(ledger, 450, TODAY)

    assert daily_progress_fraction(ledger) == pytest.approx(0.5)
    assert daily_progress_text(ledger) == "7m 30s remaining"
    add_daily_progress(ledger, 600, TODAY)
    assert daily_progress_text(ledger) == "Goal completed!"


def test_reward_book_persists_every_mutation(repository):
    book = RewardBook(repository=repository, today=lambda: TODAY, units=IMPERIAL)

    breakdown = book.award_for_run(METERS_PER_MILE, 8.0)
    assert book.spend(5)

    stored = repository.load_ledger()
    assert stored.total_gems == breakdown.total - 5
    assert stored.last_reward_date == TODAY
    assert book.ledger == stored


def test_reward_book_ledger_is_a_copy():
    book = RewardBook(RewardLedger(total_gems=10), today=lambda: TODAY)

    snapshot = book.ledger
    snapshot.total_gems = 999

    assert book.total_gems == 10


def test_reward_book_refused_spend_logged(caplog):
    book = RewardBook(RewardLedger(total_gems=10), today=lambda: TODAY)

    with caplog.at_level(logging.INFO, logger="stride_tracker.rewards"):
        assert not book.spend(50)

    assert "refused" in caplog.text
    assert book.total_gems == 10


def test_set_daily_goal_validates():
    book = RewardBook(RewardLedger(), today=lambda: TODAY)

    with pytest.raises(ValueError):
        book.set_daily_goal(0)
    book.set_daily_goal(30)
    assert book.ledger.daily_minutes_goal == 30


def test_reward_book_survives_storage_failure(failing_store, caplog):
    store = failing_store("reward_ledger")
    repository = UserRepository(store, "runner-1")
    book = RewardBook(repository=repository, today=lambda: TODAY, units=IMPERIAL)

    with caplog.at_level(logging.WARNING, logger="stride_tracker.rewards"):
        breakdown = book.award_for_run(METERS_PER_MILE, 8.0)
        book.add_daily_progress(600)

    assert book.total_gems == breakdown.total
    assert "Failed to persist reward ledger" in caplog.text
    assert repository.load_ledger().total_gems == 0

    store.failing = False
    assert book.spend(3)
    assert repository.load_ledger().total_gems == breakdown.total - 3
