"""Session state machine for one user's tracked activities.

The machine owns the fix filter, distance accumulator, speed estimator and
route recorder for the live session. Fix ingestion, ticks and transitions may
arrive from different threads; all of them go through one re-entrant lock, so
the live state has a single owner. Persistence, notification and upload
happen after the lock is released.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import TYPE_CHECKING, Dict, List, Optional

from .achievements import AchievementEvaluation, AchievementEvaluator
from .errors import LocationPermissionError
from .events import SnapshotChannel
from .fix_filter import FixFilter, FixFilterConfig
from .location import LocationService
from .metrics import DistanceAccumulator, SpeedEstimator
from .models import LocationFix, RunSession, SessionSnapshot, SessionState
from .notifications import GoalKind, SafeNotifier
from .rewards import RewardBook, RewardBreakdown
from .route import RouteRecorder, RouteRecorderConfig
from .storage import UserRepository
from .units import UnitSystem, default_unit_system
from .utils import Clock, local_date, system_clock

if TYPE_CHECKING:
    from .services.sync_service import SyncService

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SessionOutcome:
    """Everything produced when a session ends."""

    session: RunSession
    average_speed: float
    abandoned: bool = False
    reward: Optional[RewardBreakdown] = None
    achievements: Optional[AchievementEvaluation] = None
    daily_progress: Optional[float] = None


class SessionStateMachine:
    """Idle -> Running -> (Paused <-> Running) -> Finished.

    Collaborators are injected; any of rewards, evaluator, repository and sync
    may be omitted, in which case that step is skipped.
    """

    def __init__(
        self,
        location: LocationService,
        *,
        rewards: RewardBook | None = None,
        evaluator: AchievementEvaluator | None = None,
        repository: UserRepository | None = None,
        notifier: SafeNotifier | None = None,
        sync: SyncService | None = None,
        channel: SnapshotChannel | None = None,
        clock: Clock | None = None,
        tz: tzinfo | None = None,
        units: UnitSystem | None = None,
        filter_config: FixFilterConfig | None = None,
        route_config: RouteRecorderConfig | None = None,
    ) -> None:
        self._location = location
        self._rewards = rewards
        self._evaluator = evaluator
        self._repository = repository
        self._notifier = notifier or SafeNotifier()
        self._sync = sync
        self.channel = channel if channel is not None else SnapshotChannel()
        self._clock = clock or system_clock(tz)
        self._tz = tz
        self.units = units or default_unit_system()

        self._filter = FixFilter(filter_config, self.units)
        self._distance = DistanceAccumulator()
        self._speed = SpeedEstimator()
        self._route = RouteRecorder(route_config)

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._session: Optional[RunSession] = None
        self._recent: List[RunSession] = (
            repository.load_sessions() if repository else []
        )
        self._unlocked: Dict[str, date] = (
            repository.load_unlocked() if repository else {}
        )
        self._last_evaluation: Optional[AchievementEvaluation] = None

    # -- read-only views --------------------------------------------------

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def current_session(self) -> Optional[RunSession]:
        with self._lock:
            return self._session.copy() if self._session else None

    @property
    def recent_sessions(self) -> List[RunSession]:
        """Finished sessions, newest first."""

        with self._lock:
            return [s.copy() for s in self._recent]

    @property
    def unlocked_achievements(self) -> Dict[str, date]:
        with self._lock:
            return dict(self._unlocked)

    @property
    def last_evaluation(self) -> Optional[AchievementEvaluation]:
        with self._lock:
            return self._last_evaluation

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            session=self._session.copy() if self._session else None,
            distance_m=self._distance.total_m,
            current_speed=self._speed.current_speed,
            average_speed=self._speed.average_speed,
            peak_speed=self._speed.peak_speed,
            moving_average_speed=self._speed.moving_average,
            pace=self._speed.pace,
        )

    def _today(self, moment: datetime) -> date:
        return local_date(moment, self._tz)

    # -- transitions ------------------------------------------------------

    def start(self) -> Optional[RunSession]:
        """Begin a new session. Raises ``LocationPermissionError`` without permission."""

        with self._lock:
            if self._state is not SessionState.IDLE:
                _LOGGER.debug("start ignored in state %s", self._state.value)
                return None
            if not self._location.permission_granted:
                raise LocationPermissionError("location permission not granted")
            self._reset_live_locked()
            self._session = RunSession(start_time=self._clock())
            self._state = SessionState.RUNNING
            _LOGGER.info("Session %s started", self._session.id)
            return self._session.copy()

    def pause(self) -> bool:
        with self._lock:
            if self._state is not SessionState.RUNNING:
                _LOGGER.debug("pause ignored in state %s", self._state.value)
                return False
            self._state = SessionState.PAUSED
            _LOGGER.info("Session %s paused", self._session.id if self._session else "?")
            return True

    def resume(self) -> bool:
        with self._lock:
            if self._state is not SessionState.PAUSED or self._session is None:
                _LOGGER.debug("resume ignored in state %s", self._state.value)
                return False
            self._state = SessionState.RUNNING
            _LOGGER.info("Session %s resumed", self._session.id)
            return True

    def reset(self) -> bool:
        """Re-arm a finished machine so the next session can start."""

        with self._lock:
            if self._state is not SessionState.FINISHED:
                return False
            self._state = SessionState.IDLE
            return True

    def finish(self) -> Optional[SessionOutcome]:
        """Complete a running session: reward, achievements, record, reset."""

        return self._end(abandoned=False)

    def stop(self) -> Optional[SessionOutcome]:
        """Abandon a running or paused session; it is still recorded, unrewarded."""

        return self._end(abandoned=True)

    # -- live updates -----------------------------------------------------

    def ingest(self, fix: LocationFix) -> bool:
        """Feed one fix. Returns True when it was accepted."""

        with self._lock:
            if self._state is not SessionState.RUNNING or self._session is None:
                return False
            decision = self._filter.accept(fix)
            if not decision.accepted:
                return False
            self._distance.add(decision.distance_m)
            if decision.speed_in_range:
                self._speed.record(decision.speed)
            self._route.offer(fix)
            self._session.distance_m = self._distance.total_m
            return True

    def tick(self) -> Optional[SessionSnapshot]:
        """Refresh duration / averages and publish a snapshot while running."""

        with self._lock:
            if self._state is not SessionState.RUNNING or self._session is None:
                return None
            session = self._session
            elapsed = (self._clock() - session.start_time).total_seconds()
            self._speed.update_average(self.units.to_units(self._distance.total_m), elapsed)
            session.duration_seconds = max(0.0, elapsed)
            session.distance_m = self._distance.total_m
            session.average_pace = self._speed.average_pace()
            session.max_speed = self._speed.peak_speed
            session.route = self._route.points
            snap = self._snapshot_locked()
        self.channel.publish(snap)
        return snap

    # -- internals --------------------------------------------------------

    def _reset_live_locked(self) -> None:
        self._filter.reset()
        self._distance.reset()
        self._speed.reset()
        self._route.reset()

    def _finalize_locked(self, now: datetime) -> tuple[RunSession, float]:
        assert self._session is not None
        live = self._session
        duration = max(0.0, (now - live.start_time).total_seconds())
        distance_m = self._distance.total_m
        distance_units = self.units.to_units(distance_m)
        average_speed = distance_units / (duration / 3600.0) if duration > 0 else 0.0
        average_pace = duration / (60.0 * distance_units) if distance_units > 0 else 0.0
        record = RunSession(
            id=live.id,
            start_time=live.start_time,
            end_time=now,
            distance_m=distance_m,
            duration_seconds=duration,
            average_pace=average_pace,
            max_speed=self._speed.peak_speed,
            route=self._route.points,
            is_active=False,
        )
        return record, average_speed

    def _end(self, *, abandoned: bool) -> Optional[SessionOutcome]:
        allowed = (
            (SessionState.RUNNING, SessionState.PAUSED)
            if abandoned
            else (SessionState.RUNNING,)
        )
        with self._lock:
            if self._state not in allowed or self._session is None:
                _LOGGER.debug(
                    "%s ignored in state %s",
                    "stop" if abandoned else "finish",
                    self._state.value,
                )
                return None
            now = self._clock()
            today = self._today(now)
            record, average_speed = self._finalize_locked(now)
            outcome = SessionOutcome(record, average_speed, abandoned=abandoned)

            if self._rewards is not None and not abandoned:
                outcome.reward = self._rewards.award_for_run(
                    record.distance_m, average_speed
                )
            self._recent.insert(0, record)
            if self._evaluator is not None:
                evaluation = self._evaluator.evaluate(self._recent, today, self._unlocked)
                self._unlocked.update(evaluation.unlocked_dates())
                self._last_evaluation = evaluation
                outcome.achievements = evaluation

            self._state = SessionState.FINISHED
            self._session = None
            self._reset_live_locked()
            recent = list(self._recent)
            unlocked = dict(self._unlocked)
            final_snapshot = SessionSnapshot(
                state=SessionState.FINISHED,
                session=record.copy(),
                distance_m=record.distance_m,
                average_speed=average_speed,
                peak_speed=record.max_speed,
            )

        _LOGGER.info(
            "Session %s %s: distance=%.1fm duration=%.0fs pace=%.2f",
            record.id,
            "stopped" if abandoned else "finished",
            record.distance_m,
            record.duration_seconds,
            record.average_pace,
        )
        try:
            self._after_commit(outcome, recent, unlocked)
        finally:
            self.channel.publish(final_snapshot)
        return outcome

    def _after_commit(
        self,
        outcome: SessionOutcome,
        recent: List[RunSession],
        unlocked: Dict[str, date],
    ) -> None:
        record = outcome.session
        if self._rewards is not None:
            outcome.daily_progress = self._rewards.add_daily_progress(
                int(record.duration_seconds)
            )
            self._notifier.goal_progress(GoalKind.DAILY, outcome.daily_progress)
        self._persist(recent, unlocked)
        if outcome.achievements is not None:
            for achievement in outcome.achievements.newly_unlocked:
                self._notifier.achievement_unlocked(achievement)
        if self._sync is not None:
            self._sync.submit(record)

    def _persist(self, recent: List[RunSession], unlocked: Dict[str, date]) -> None:
        if self._repository is None:
            return
        try:
            self._repository.save_sessions(recent)
            self._repository.save_unlocked(unlocked)
        except OSError as exc:
            _LOGGER.error("Failed to persist finished session: %s", exc)


__all__ = ["SessionStateMachine", "SessionOutcome"]
