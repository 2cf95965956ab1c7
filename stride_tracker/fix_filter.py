"""Validation of raw location fixes before they reach the accumulators."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import (
    FIX_EXPECTED_DISTANCE_FLOOR_M,
    FIX_MAX_DISTANCE_RATIO,
    FIX_MAX_SPEED,
    FIX_MIN_DISTANCE_M,
    FIX_MIN_INTERVAL_SECONDS,
    FIX_MIN_SPEED,
)
from .geo import geodesic_distance
from .models import LocationFix
from .units import UnitSystem, default_unit_system

_LOGGER = logging.getLogger(__name__)


class RejectReason(str, Enum):
    TOO_SOON = "too_soon"
    TOO_CLOSE = "too_close"
    SPEED_OUT_OF_RANGE = "speed_out_of_range"
    TELEPORT = "teleport"


@dataclass(slots=True)
class FixFilterConfig:
    """Thresholds for the fix filter. Speeds are in distance units per hour."""

    min_interval_seconds: float = FIX_MIN_INTERVAL_SECONDS
    min_distance_m: float = FIX_MIN_DISTANCE_M
    min_speed: float = FIX_MIN_SPEED
    max_speed: float = FIX_MAX_SPEED
    max_distance_ratio: float = FIX_MAX_DISTANCE_RATIO
    expected_distance_floor_m: float = FIX_EXPECTED_DISTANCE_FLOOR_M


@dataclass(frozen=True, slots=True)
class FilterDecision:
    """Outcome of filtering one fix.

    ``speed_in_range`` is reported separately because the first fix is always
    accepted even when its speed would fail the range gate.
    """

    accepted: bool
    distance_m: float = 0.0
    speed: float = 0.0
    speed_in_range: bool = False
    reason: Optional[RejectReason] = None


class FixFilter:
    """Accept or reject fixes relative to the last accepted one."""

    def __init__(
        self,
        config: FixFilterConfig | None = None,
        units: UnitSystem | None = None,
    ) -> None:
        self.config = config or FixFilterConfig()
        self.units = units or default_unit_system()
        self._last_accepted: Optional[LocationFix] = None

    @property
    def last_accepted(self) -> Optional[LocationFix]:
        return self._last_accepted

    def reset(self) -> None:
        self._last_accepted = None

    def evaluate(self, fix: LocationFix) -> FilterDecision:
        """Classify ``fix`` without updating filter state."""

        cfg = self.config
        speed = self.units.speed_from_mps(fix.speed)
        speed_ok = cfg.min_speed <= speed <= cfg.max_speed
        last = self._last_accepted
        if last is None:
            return FilterDecision(True, 0.0, speed, speed_ok)

        elapsed = fix.timestamp_s - last.timestamp_s
        if elapsed < cfg.min_interval_seconds:
            return FilterDecision(False, 0.0, speed, speed_ok, RejectReason.TOO_SOON)

        distance = geodesic_distance(last.coordinate, fix.coordinate)
        if distance < cfg.min_distance_m:
            return FilterDecision(
                False, distance, speed, speed_ok, RejectReason.TOO_CLOSE
            )
        if not speed_ok:
            return FilterDecision(
                False, distance, speed, speed_ok, RejectReason.SPEED_OUT_OF_RANGE
            )

        expected = max(fix.speed * elapsed, cfg.expected_distance_floor_m)
        if distance / expected > cfg.max_distance_ratio:
            return FilterDecision(
                False, distance, speed, speed_ok, RejectReason.TELEPORT
            )
        return FilterDecision(True, distance, speed, speed_ok)

    def accept(self, fix: LocationFix) -> FilterDecision:
        """Evaluate ``fix`` and remember it when accepted."""

        decision = self.evaluate(fix)
        if decision.accepted:
            self._last_accepted = fix
        else:
            _LOGGER.debug(
                "Rejected fix ts=%s reason=%s distance=%.2fm speed=%.2f",
                fix.timestamp_ms,
                decision.reason.value if decision.reason else "?",
                decision.distance_m,
                decision.speed,
            )
        return decision


__all__ = ["FixFilter", "FixFilterConfig", "FilterDecision", "RejectReason"]
