"""Gem rewards and the per-user reward ledger.

``calculate_reward`` is pure: given a finished session's distance and average
speed plus the ledger as it stood before the run, it returns the gem award.
The remaining helpers mutate a ``RewardLedger`` in place and apply the lazy
daily reset before any write. ``RewardBook`` wraps a ledger with a lock and
persistence for use from several threads.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import TYPE_CHECKING, Callable, Optional

from .config import (
    REWARD_BASE_GEMS,
    REWARD_SPEED_BONUS_CAP,
    REWARD_SPEED_BONUS_FLOOR,
    REWARD_STREAK_BONUS,
)
from .models import RewardLedger
from .units import UnitSystem, default_unit_system

if TYPE_CHECKING:
    from .storage import UserRepository

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RewardBreakdown:
    base: int
    speed_bonus: int
    distance_bonus: int
    streak_bonus: int

    @property
    def total(self) -> int:
        return self.base + self.speed_bonus + self.distance_bonus + self.streak_bonus


def reward_breakdown(
    distance_m: float,
    average_speed: float,
    ledger: RewardLedger,
    today: date,
    units: UnitSystem | None = None,
) -> RewardBreakdown:
    units = units or default_unit_system()
    speed_bonus = int(
        min(max(average_speed - REWARD_SPEED_BONUS_FLOOR, 0.0), REWARD_SPEED_BONUS_CAP)
    )
    distance_units = units.to_units(max(distance_m, 0.0))
    distance_bonus = int(math.floor(distance_units)) if math.isfinite(distance_units) else 0
    last = ledger.last_reward_date
    streak = last is not None and (last == today or last == today - timedelta(days=1))
    return RewardBreakdown(
        base=REWARD_BASE_GEMS,
        speed_bonus=speed_bonus,
        distance_bonus=distance_bonus,
        streak_bonus=REWARD_STREAK_BONUS if streak else 0,
    )


def calculate_reward(
    distance_m: float,
    average_speed: float,
    ledger: RewardLedger,
    today: date,
    units: UnitSystem | None = None,
) -> int:
    """Gems earned for a run. ``average_speed`` is in distance units per hour."""

    return reward_breakdown(distance_m, average_speed, ledger, today, units).total


def apply_daily_reset(ledger: RewardLedger, today: date) -> bool:
    """Zero the daily counters once per calendar day. Returns True on reset."""

    if ledger.last_reward_date is None:
        ledger.last_reward_date = today
        return False
    if ledger.last_reward_date == today:
        return False
    ledger.gems_earned_today = 0
    ledger.daily_seconds_completed = 0
    ledger.last_reward_date = today
    return True


def award(ledger: RewardLedger, gems: int, today: date) -> None:
    if ledger.last_reward_date != today:
        apply_daily_reset(ledger, today)
    ledger.total_gems += gems
    ledger.gems_earned_today += gems
    ledger.last_reward_date = today


def spend(ledger: RewardLedger, amount: int) -> bool:
    if amount < 0 or ledger.total_gems < amount:
        return False
    ledger.total_gems -= amount
    return True


def add_daily_progress(ledger: RewardLedger, seconds: int, today: date) -> None:
    apply_daily_reset(ledger, today)
    ledger.daily_seconds_completed += max(0, int(seconds))


def daily_progress_fraction(ledger: RewardLedger) -> float:
    goal_seconds = ledger.daily_minutes_goal * 60
    if goal_seconds <= 0:
        return 0.0
    return ledger.daily_seconds_completed / goal_seconds


def daily_progress_text(ledger: RewardLedger) -> str:
    remaining = max(0, ledger.daily_minutes_goal * 60 - ledger.daily_seconds_completed)
    if remaining == 0:
        return "Goal completed!"
    mins, secs = divmod(remaining, 60)
    return f"{mins}m {secs}s remaining"


class RewardBook:
    """Thread-safe owner of one user's ledger.

    Every mutation is persisted through the repository when one is given.
    """

    def __init__(
        self,
        ledger: RewardLedger | None = None,
        *,
        repository: Optional["UserRepository"] = None,
        today: Callable[[], date],
        units: UnitSystem | None = None,
    ) -> None:
        if ledger is None:
            ledger = repository.load_ledger() if repository else RewardLedger()
        self._ledger = ledger
        self._repository = repository
        self._today = today
        self._units = units or default_unit_system()
        self._lock = threading.RLock()

    @property
    def ledger(self) -> RewardLedger:
        """Copy of the current ledger."""

        with self._lock:
            return replace(self._ledger)

    @property
    def total_gems(self) -> int:
        with self._lock:
            return self._ledger.total_gems

    def _persist(self) -> None:
        if self._repository is None:
            return
        try:
            self._repository.save_ledger(self._ledger)
        except OSError as exc:
            # In-memory ledger stays authoritative; the next write retries.
            _LOGGER.warning("Failed to persist reward ledger: %s", exc)

    def award_for_run(self, distance_m: float, average_speed: float) -> RewardBreakdown:
        with self._lock:
            today = self._today()
            breakdown = reward_breakdown(
                distance_m, average_speed, self._ledger, today, self._units
            )
            award(self._ledger, breakdown.total, today)
            self._persist()
            _LOGGER.info(
                "Awarded %d gems (base=%d speed=%d distance=%d streak=%d) total=%d",
                breakdown.total,
                breakdown.base,
                breakdown.speed_bonus,
                breakdown.distance_bonus,
                breakdown.streak_bonus,
                self._ledger.total_gems,
            )
            return breakdown

    def spend(self, amount: int) -> bool:
        with self._lock:
            ok = spend(self._ledger, amount)
            if ok:
                self._persist()
            else:
                _LOGGER.info(
                    "Spend of %d gems refused (balance=%d)",
                    amount,
                    self._ledger.total_gems,
                )
            return ok

    def refund(self, amount: int) -> None:
        with self._lock:
            self._ledger.total_gems += max(0, amount)
            self._persist()

    def add_daily_progress(self, seconds: int) -> float:
        """Add run time to today's goal; returns the new progress fraction."""

        with self._lock:
            add_daily_progress(self._ledger, seconds, self._today())
            self._persist()
            return daily_progress_fraction(self._ledger)

    def set_daily_goal(self, minutes: int) -> None:
        if minutes <= 0:
            raise ValueError("daily goal must be positive")
        with self._lock:
            self._ledger.daily_minutes_goal = minutes
            self._persist()


__all__ = [
    "RewardBreakdown",
    "reward_breakdown",
    "calculate_reward",
    "apply_daily_reset",
    "award",
    "spend",
    "add_daily_progress",
    "daily_progress_fraction",
    "daily_progress_text",
    "RewardBook",
]
