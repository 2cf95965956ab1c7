"""Achievement evaluation over the completed-session history.

The evaluator is stateless: each call recomputes every aggregate from the full
history it is given, then compares against the previously unlocked set so
that unlocks are monotonic and fire exactly once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta, tzinfo
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

from .config import STREAK_LOOKBACK_DAYS
from .models import Achievement, AchievementCategory, RunSession
from .units import METERS_PER_MILE
from .utils import local_date


class AchievementMetric(str, Enum):
    BEST_DISTANCE_M = "best_distance_m"
    BEST_PACE = "best_pace"
    LONGEST_DURATION_S = "longest_duration_s"
    DAY_STREAK = "day_streak"
    SESSION_COUNT = "session_count"
    LIFETIME_DISTANCE_M = "lifetime_distance_m"


@dataclass(frozen=True, slots=True)
class AchievementDefinition:
    id: str
    title: str
    description: str
    category: AchievementCategory
    metric: AchievementMetric
    target: float

    @property
    def lower_is_better(self) -> bool:
        return self.metric is AchievementMetric.BEST_PACE

    def is_met(self, current: float) -> bool:
        if self.lower_is_better:
            return 0 < current <= self.target
        return current >= self.target

    def progress(self, current: float) -> float:
        if self.lower_is_better:
            if current <= 0:
                return 0.0
            return min(self.target / current, 1.0)
        if self.target <= 0:
            return 1.0
        return max(0.0, min(current / self.target, 1.0))


_D = AchievementDefinition
_C = AchievementCategory
_M = AchievementMetric

DEFAULT_ACHIEVEMENTS: List[AchievementDefinition] = [
    _D("5k_runner", "5K Runner", "Run 5 kilometers in a single session",
       _C.DISTANCE, _M.BEST_DISTANCE_M, 3.1 * METERS_PER_MILE),
    _D("10k_runner", "10K Runner", "Run 10 kilometers in a single session",
       _C.DISTANCE, _M.BEST_DISTANCE_M, 6.2 * METERS_PER_MILE),
    _D("half_marathon", "Half Marathon", "Run 13.1 miles in a single session",
       _C.DISTANCE, _M.BEST_DISTANCE_M, 13.1 * METERS_PER_MILE),
    _D("speed_demon", "Speed Demon", "Average a pace faster than 7:00",
       _C.SPEED, _M.BEST_PACE, 7.0),
    _D("sprint_king", "Sprint King", "Average a pace faster than 6:00",
       _C.SPEED, _M.BEST_PACE, 6.0),
    _D("elite_runner", "Elite Runner", "Average a pace faster than 5:00",
       _C.SPEED, _M.BEST_PACE, 5.0),
    _D("endurance_runner", "Endurance Runner", "Run for 2 hours straight",
       _C.ENDURANCE, _M.LONGEST_DURATION_S, 7200),
    _D("frequent_runner", "Frequent Runner", "Complete 10 runs",
       _C.FREQUENCY, _M.SESSION_COUNT, 10),
    _D("dedicated_runner", "Dedicated Runner", "Complete 50 runs",
       _C.FREQUENCY, _M.SESSION_COUNT, 50),
    _D("veteran_runner", "Veteran Runner", "Complete 100 runs",
       _C.FREQUENCY, _M.SESSION_COUNT, 100),
    _D("ten_miler", "Ten Miler", "Run 10 miles total",
       _C.MILESTONE, _M.LIFETIME_DISTANCE_M, 10 * METERS_PER_MILE),
    _D("hundred_miler", "Hundred Miler", "Run 100 miles total",
       _C.MILESTONE, _M.LIFETIME_DISTANCE_M, 100 * METERS_PER_MILE),
    _D("streak_3", "Warming Up", "Run three days in a row",
       _C.CONSISTENCY, _M.DAY_STREAK, 3),
    _D("streak_7", "Week Warrior", "Run seven days in a row",
       _C.CONSISTENCY, _M.DAY_STREAK, 7),
    _D("streak_30", "Unstoppable", "Run thirty days in a row",
       _C.CONSISTENCY, _M.DAY_STREAK, 30),
]


@dataclass(frozen=True, slots=True)
class HistoryAggregates:
    best_distance_m: float = 0.0
    best_pace: float = 0.0
    longest_duration_s: float = 0.0
    day_streak: int = 0
    session_count: int = 0
    lifetime_distance_m: float = 0.0

    def value(self, metric: AchievementMetric) -> float:
        return float(getattr(self, metric.value))


@dataclass(slots=True)
class AchievementEvaluation:
    achievements: List[Achievement]
    newly_unlocked: List[Achievement] = field(default_factory=list)
    aggregates: HistoryAggregates = field(default_factory=HistoryAggregates)

    def unlocked_dates(self) -> Dict[str, date]:
        return {
            a.id: a.unlocked_date
            for a in self.achievements
            if a.is_unlocked and a.unlocked_date is not None
        }


def day_streak(
    session_days: Iterable[date],
    today: date,
    lookback_days: int = STREAK_LOOKBACK_DAYS,
) -> int:
    """Consecutive days ending today that contain at least one session."""

    days: Set[date] = set(session_days)
    streak = 0
    for offset in range(lookback_days):
        if today - timedelta(days=offset) not in days:
            break
        streak += 1
    return streak


def aggregate_history(
    sessions: Sequence[RunSession],
    today: date,
    tz: Optional[tzinfo] = None,
) -> HistoryAggregates:
    completed = [s for s in sessions if not s.is_active]
    if not completed:
        return HistoryAggregates()
    paces = [s.average_pace for s in completed if s.distance_m > 0 and s.average_pace > 0]
    return HistoryAggregates(
        best_distance_m=max(s.distance_m for s in completed),
        best_pace=min(paces) if paces else 0.0,
        longest_duration_s=max(s.duration_seconds for s in completed),
        day_streak=day_streak((local_date(s.start_time, tz) for s in completed), today),
        session_count=len(completed),
        lifetime_distance_m=sum(s.distance_m for s in completed),
    )


class AchievementEvaluator:
    """Recomputes achievement progress from a session history.

    Pace targets are minutes per distance unit, matching ``RunSession.average_pace``.
    """

    def __init__(
        self,
        definitions: Sequence[AchievementDefinition] | None = None,
        *,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.definitions = list(definitions or DEFAULT_ACHIEVEMENTS)
        ids = [d.id for d in self.definitions]
        if len(ids) != len(set(ids)):
            raise ValueError("achievement ids must be unique")
        self.tz = tz

    def evaluate(
        self,
        sessions: Sequence[RunSession],
        today: date,
        previously_unlocked: Mapping[str, date] | None = None,
    ) -> AchievementEvaluation:
        previous = dict(previously_unlocked or {})
        aggregates = aggregate_history(sessions, today, self.tz)
        achievements: List[Achievement] = []
        newly: List[Achievement] = []
        for definition in self.definitions:
            current = aggregates.value(definition.metric)
            unlocked_date = previous.get(definition.id)
            was_unlocked = definition.id in previous
            met = definition.is_met(current)
            if not was_unlocked and met:
                unlocked_date = today
            achievement = Achievement(
                id=definition.id,
                title=definition.title,
                description=definition.description,
                category=definition.category,
                target=definition.target,
                current=current,
                progress=1.0 if was_unlocked else definition.progress(current),
                is_unlocked=was_unlocked or met,
                unlocked_date=unlocked_date,
            )
            achievements.append(achievement)
            if achievement.is_unlocked and not was_unlocked:
                newly.append(achievement)
        return AchievementEvaluation(achievements, newly, aggregates)


__all__ = [
    "AchievementMetric",
    "AchievementDefinition",
    "DEFAULT_ACHIEVEMENTS",
    "HistoryAggregates",
    "AchievementEvaluation",
    "AchievementEvaluator",
    "aggregate_history",
    "day_streak",
]
