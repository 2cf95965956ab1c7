"""Location-service collaborators that push fixes into a sink callable."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

import pandas as pd

from .models import LocationFix

_LOGGER = logging.getLogger(__name__)

FixSink = Callable[[LocationFix], None]

REPLAY_COLUMNS = ["latitude", "longitude", "timestamp_ms", "speed"]


class LocationService(Protocol):
    @property
    def permission_granted(self) -> bool: ...

    def start_updates(self, sink: FixSink) -> None: ...

    def stop_updates(self) -> None: ...


class ManualLocationService:
    """Delivers fixes handed to ``push`` while updates are active."""

    def __init__(self, permission_granted: bool = True) -> None:
        self._permission = permission_granted
        self._sink: Optional[FixSink] = None
        self._lock = threading.Lock()

    @property
    def permission_granted(self) -> bool:
        return self._permission

    def set_permission(self, granted: bool) -> None:
        self._permission = granted

    @property
    def active(self) -> bool:
        with self._lock:
            return self._sink is not None

    def start_updates(self, sink: FixSink) -> None:
        with self._lock:
            self._sink = sink

    def stop_updates(self) -> None:
        with self._lock:
            self._sink = None

    def push(self, fix: LocationFix) -> bool:
        """Forward ``fix`` to the sink; returns False when updates are stopped."""

        with self._lock:
            sink = self._sink
        if sink is None:
            return False
        sink(fix)
        return True


class ReplayLocationService:
    """Replays a recorded track on a background thread.

    ``speedup`` divides the real gaps between fixes; ``0`` replays as fast as
    possible.
    """

    def __init__(
        self,
        fixes: Sequence[LocationFix],
        *,
        speedup: float = 1.0,
        permission_granted: bool = True,
    ) -> None:
        self._fixes: List[LocationFix] = sorted(fixes, key=lambda f: f.timestamp_ms)
        self._speedup = speedup
        self._permission = permission_granted
        self._position = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.finished = threading.Event()

    @classmethod
    def from_csv(cls, path: str | Path, **kwargs) -> "ReplayLocationService":
        """Load fixes from a CSV with latitude, longitude, timestamp_ms, speed
        and optional horizontal_accuracy columns."""

        frame = pd.read_csv(path)
        missing = [col for col in REPLAY_COLUMNS if col not in frame.columns]
        if missing:
            raise ValueError(f"Replay CSV missing columns: {', '.join(missing)}")
        frame = frame.dropna(subset=REPLAY_COLUMNS)
        if "horizontal_accuracy" not in frame.columns:
            frame["horizontal_accuracy"] = 0.0
        frame["horizontal_accuracy"] = frame["horizontal_accuracy"].fillna(0.0)
        fixes = [
            LocationFix(
                coordinate=(float(row.latitude), float(row.longitude)),
                timestamp_ms=int(row.timestamp_ms),
                speed=float(row.speed),
                horizontal_accuracy=float(row.horizontal_accuracy),
            )
            for row in frame.itertuples(index=False)
        ]
        _LOGGER.info("Loaded %d replay fixes from %s", len(fixes), path)
        return cls(fixes, **kwargs)

    @property
    def permission_granted(self) -> bool:
        return self._permission

    def start_updates(self, sink: FixSink) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop.clear()
            self._thread = threading.Thread(
                target=self._run, args=(sink,), name="replay-location", daemon=True
            )
            self._thread.start()

    def stop_updates(self) -> None:
        self._stop.set()
        with self._lock:
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)

    def _run(self, sink: FixSink) -> None:
        previous: Optional[LocationFix] = None
        while self._position < len(self._fixes) and not self._stop.is_set():
            fix = self._fixes[self._position]
            if previous is not None and self._speedup > 0:
                gap = (fix.timestamp_ms - previous.timestamp_ms) / 1000.0 / self._speedup
                if self._stop.wait(max(0.0, gap)):
                    return
            sink(fix)
            previous = fix
            self._position += 1
        if self._position >= len(self._fixes):
            self.finished.set()


__all__ = [
    "FixSink",
    "LocationService",
    "ManualLocationService",
    "ReplayLocationService",
]
