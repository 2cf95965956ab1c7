"""Global pytest fixtures & helpers.

Adds project root to path and provides a controllable clock, in-memory
persistence, a manual location source and fix factories shared by the
tracker tests.
"""
from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from typing import List

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from stride_tracker.geo import destination_point
from stride_tracker.location import ManualLocationService
from stride_tracker.models import LatLon, LocationFix
from stride_tracker.notifications import RecordingNotificationSink
from stride_tracker.storage import MemoryStore, UserRepository
from stride_tracker.units import UnitSystem

ORIGIN: LatLon = (51.5007, -0.1246)
START = datetime(2025, 6, 10, 7, 0, 0, tzinfo=timezone.utc)
MPH_8_MPS = UnitSystem.IMPERIAL.speed_to_mps(8.0)


# --- Factory helpers -------------------------------------------------
class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FailingStore(MemoryStore):
    """Memory store whose writes to keys ending in ``fail_suffix`` raise ``OSError``."""

    def __init__(self, fail_suffix: str) -> None:
        super().__init__()
        self.fail_suffix = fail_suffix
        self.failing = True

    def set(self, key: str, value: str) -> None:
        if self.failing and key.endswith(self.fail_suffix):
            raise OSError("disk full")
        super().set(key, value)


def make_fix(
    coordinate: LatLon = ORIGIN,
    t: float = 0.0,
    speed: float = MPH_8_MPS,
) -> LocationFix:
    """Fix at ``t`` seconds after the epoch of the test track."""

    return LocationFix(coordinate=coordinate, timestamp_ms=int(t * 1000), speed=speed)


def make_track(
    count: int,
    step_m: float = 10.0,
    step_s: float = 3.0,
    speed: float | None = None,
    origin: LatLon = ORIGIN,
) -> List[LocationFix]:
    """Straight northbound track with evenly spaced fixes.

    The default speed matches ``step_m / step_s`` so every fix passes the
    jump check.
    """

    mps = speed if speed is not None else step_m / step_s
    fixes = []
    for i in range(count):
        point = destination_point(origin, 0.0, step_m * i)
        fixes.append(make_fix(point, step_s * i, mps))
    return fixes


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def repository(store):
    return UserRepository(store, "runner-1")


@pytest.fixture
def failing_store():
    """Factory for a store that refuses writes to one key."""

    return FailingStore


@pytest.fixture
def location():
    return ManualLocationService(permission_granted=True)


@pytest.fixture
def sink():
    return RecordingNotificationSink()


@pytest.fixture
def fix_factory():
    return make_fix


@pytest.fixture
def track_factory():
    return make_track
