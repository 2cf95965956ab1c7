"""Notification sink interface and a guard that keeps delivery failures local."""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Protocol, Tuple

from .models import Achievement

_LOGGER = logging.getLogger(__name__)


class GoalKind(str, Enum):
    DAILY = "daily"


class NotificationSink(Protocol):
    def achievement_unlocked(self, achievement: Achievement) -> None: ...

    def goal_progress(self, kind: GoalKind, fraction: float) -> None: ...


class LoggingNotificationSink:
    """Sink that only writes log lines."""

    def achievement_unlocked(self, achievement: Achievement) -> None:
        _LOGGER.info("Achievement unlocked: %s (%s)", achievement.title, achievement.id)

    def goal_progress(self, kind: GoalKind, fraction: float) -> None:
        _LOGGER.info("%s goal progress: %d%%", kind.value.title(), int(fraction * 100))


class RecordingNotificationSink:
    """Keeps every event in memory; handy for embedding and tests."""

    def __init__(self) -> None:
        self.unlocked: List[Achievement] = []
        self.progress: List[Tuple[GoalKind, float]] = []

    def achievement_unlocked(self, achievement: Achievement) -> None:
        self.unlocked.append(achievement)

    def goal_progress(self, kind: GoalKind, fraction: float) -> None:
        self.progress.append((kind, fraction))


class SafeNotifier:
    """Fire-and-forget wrapper: sink errors are logged, never raised."""

    def __init__(self, sink: NotificationSink | None = None) -> None:
        self._sink = sink or LoggingNotificationSink()

    def achievement_unlocked(self, achievement: Achievement) -> None:
        try:
            self._sink.achievement_unlocked(achievement)
        except Exception as exc:
            _LOGGER.warning(
                "Failed to deliver achievement notification %s: %s", achievement.id, exc
            )

    def goal_progress(self, kind: GoalKind, fraction: float) -> None:
        try:
            self._sink.goal_progress(kind, fraction)
        except Exception as exc:
            _LOGGER.warning("Failed to deliver %s goal notification: %s", kind.value, exc)


__all__ = [
    "GoalKind",
    "NotificationSink",
    "LoggingNotificationSink",
    "RecordingNotificationSink",
    "SafeNotifier",
]
