"""Live tracking service.

Wires a ``LocationService`` to a ``SessionStateMachine``. Fixes delivered by
the location source are queued and drained by a pump thread; a ticker thread
refreshes duration and averages once per interval while a session runs.
Location updates are started on ``start_session`` and stopped as soon as the
session pauses or ends, so no fix is processed outside a running session.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Optional

from ..config import FIX_QUEUE_POLL_SECONDS, TICK_INTERVAL_SECONDS
from ..location import LocationService
from ..models import LocationFix, RunSession, SessionState
from ..session import SessionOutcome, SessionStateMachine


@dataclass(slots=True)
class TrackingServiceConfig:
    tick_interval: float = TICK_INTERVAL_SECONDS
    queue_poll: float = FIX_QUEUE_POLL_SECONDS
    logger: logging.Logger | None = None


class TrackingService:
    def __init__(
        self,
        machine: SessionStateMachine,
        location: LocationService,
        config: TrackingServiceConfig | None = None,
    ) -> None:
        self.config = config or TrackingServiceConfig()
        if self.config.tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        self._log = self.config.logger or logging.getLogger(self.__class__.__name__)
        self.machine = machine
        self._location = location
        self._fixes: "queue.Queue[LocationFix]" = queue.Queue()
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        with self._lock:
            return any(t.is_alive() for t in self._threads)

    @property
    def queued_fixes(self) -> int:
        return self._fixes.qsize()

    def _enqueue(self, fix: LocationFix) -> None:
        self._fixes.put(fix)

    def _pump(self) -> None:
        while not self._stop_event.is_set():
            try:
                fix = self._fixes.get(timeout=self.config.queue_poll)
            except queue.Empty:
                continue
            try:
                self.machine.ingest(fix)
            except Exception as exc:  # pragma: no cover
                self._log.error("Fix ingestion failed: %s", exc, exc_info=True)
            finally:
                self._fixes.task_done()

    def _tick_loop(self) -> None:
        while not self._stop_event.wait(self.config.tick_interval):
            try:
                self.machine.tick()
            except Exception as exc:  # pragma: no cover
                self._log.error("Tick failed: %s", exc, exc_info=True)

    def _start_workers(self) -> None:
        with self._lock:
            if any(t.is_alive() for t in self._threads):
                return
            self._stop_event.clear()
            self._threads = [
                threading.Thread(target=self._pump, name="fix-pump", daemon=True),
                threading.Thread(target=self._tick_loop, name="session-ticker", daemon=True),
            ]
            for thread in self._threads:
                thread.start()

    def _stop_workers(self) -> None:
        self._stop_event.set()
        with self._lock:
            threads, self._threads = self._threads, []
        for thread in threads:
            if thread is not threading.current_thread():
                thread.join(timeout=max(2.0, self.config.tick_interval * 2))

    def _discard_queued(self) -> int:
        dropped = 0
        while True:
            try:
                self._fixes.get_nowait()
            except queue.Empty:
                return dropped
            self._fixes.task_done()
            dropped += 1

    def wait_for_fixes(self, timeout: float = 2.0) -> bool:
        """Block until every queued fix has been ingested or ``timeout`` elapses."""

        done = threading.Event()

        def _join() -> None:
            self._fixes.join()
            done.set()

        threading.Thread(target=_join, name="fix-queue-join", daemon=True).start()
        return done.wait(timeout)

    def start_session(self) -> Optional[RunSession]:
        """Start a session and begin listening for fixes.

        ``LocationPermissionError`` propagates from the machine; nothing is
        started in that case.
        """

        if self.machine.state is SessionState.FINISHED:
            self.machine.reset()
        session = self.machine.start()
        if session is None:
            return None
        self._discard_queued()
        self._location.start_updates(self._enqueue)
        self._start_workers()
        self._log.info("Tracking started for session %s", session.id)
        return session

    def pause(self) -> bool:
        if not self.machine.pause():
            return False
        self._location.stop_updates()
        return True

    def resume(self) -> bool:
        if not self.machine.resume():
            return False
        self._discard_queued()
        self._location.start_updates(self._enqueue)
        return True

    def _end(self, abandoned: bool) -> Optional[SessionOutcome]:
        self._location.stop_updates()
        if self.machine.state is SessionState.RUNNING:
            self.wait_for_fixes(timeout=max(1.0, self.config.queue_poll * 5))
        outcome = self.machine.stop() if abandoned else self.machine.finish()
        if outcome is None:
            if self.machine.state is SessionState.RUNNING:
                self._location.start_updates(self._enqueue)
            return None
        self._stop_workers()
        dropped = self._discard_queued()
        if dropped:
            self._log.debug("Dropped %d late fixes", dropped)
        return outcome

    def finish(self) -> Optional[SessionOutcome]:
        return self._end(abandoned=False)

    def stop(self) -> Optional[SessionOutcome]:
        return self._end(abandoned=True)

    def shutdown(self) -> None:
        self._location.stop_updates()
        self._stop_workers()
        self._discard_queued()


__all__ = ["TrackingService", "TrackingServiceConfig"]
