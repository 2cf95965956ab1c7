"""Unit conversion and formatting helpers."""

from __future__ import annotations

import math
from enum import Enum

from .config import DISTANCE_UNIT_SYSTEM

METERS_PER_MILE = 1609.34
METERS_PER_KILOMETER = 1000.0
SECONDS_PER_HOUR = 3600.0


class UnitSystem(str, Enum):
    IMPERIAL = "imperial"
    METRIC = "metric"

    @property
    def meters_per_unit(self) -> float:
        return METERS_PER_MILE if self is UnitSystem.IMPERIAL else METERS_PER_KILOMETER

    @property
    def distance_label(self) -> str:
        return "mi" if self is UnitSystem.IMPERIAL else "km"

    @property
    def speed_label(self) -> str:
        return "mph" if self is UnitSystem.IMPERIAL else "kph"

    @property
    def pace_label(self) -> str:
        return f"min/{self.distance_label}"

    def to_units(self, meters: float) -> float:
        """Convert metres to miles or kilometres."""

        return meters / self.meters_per_unit

    def speed_from_mps(self, meters_per_second: float) -> float:
        """Convert metres/second to distance units per hour."""

        return meters_per_second * SECONDS_PER_HOUR / self.meters_per_unit

    def speed_to_mps(self, units_per_hour: float) -> float:
        return units_per_hour * self.meters_per_unit / SECONDS_PER_HOUR


def default_unit_system() -> UnitSystem:
    try:
        return UnitSystem(DISTANCE_UNIT_SYSTEM.lower())
    except ValueError:
        return UnitSystem.IMPERIAL


def format_pace(minutes_per_unit: float) -> str:
    """Format a pace as ``m:ss``; non-finite or non-positive values show 0:00."""

    if not math.isfinite(minutes_per_unit) or minutes_per_unit <= 0:
        return "0:00"
    minutes = int(minutes_per_unit)
    seconds = int((minutes_per_unit - minutes) * 60)
    return f"{minutes}:{seconds:02d}"


def format_duration(seconds: float) -> str:
    """Format seconds as ``h:mm:ss`` (or ``m:ss`` below one hour)."""

    total = int(seconds)
    hours, rem = divmod(total, 3600)
    mins, secs = divmod(rem, 60)
    if hours > 0:
        return f"{hours}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"


def format_distance(meters: float, units: UnitSystem) -> str:
    if units is UnitSystem.IMPERIAL and units.to_units(meters) < 0.1:
        return f"{meters * 3.28084:.0f} ft"
    return f"{units.to_units(meters):.2f} {units.distance_label}"


__all__ = [
    "METERS_PER_MILE",
    "METERS_PER_KILOMETER",
    "UnitSystem",
    "default_unit_system",
    "format_pace",
    "format_duration",
    "format_distance",
]
