"""Distance accumulation and speed / pace estimation for a live session."""

from __future__ import annotations

from collections import deque
from typing import Deque

import numpy as np

from .config import PACE_MIN_SPEED, SPEED_BUFFER_SIZE
from .units import SECONDS_PER_HOUR


class DistanceAccumulator:
    """Running sum of validated displacements (metres)."""

    def __init__(self) -> None:
        self._total_m = 0.0
        self._segments = 0

    @property
    def total_m(self) -> float:
        return self._total_m

    @property
    def segments(self) -> int:
        return self._segments

    def add(self, distance_m: float) -> float:
        if distance_m > 0:
            self._total_m += distance_m
            self._segments += 1
        return self._total_m

    def reset(self) -> None:
        self._total_m = 0.0
        self._segments = 0


class SpeedEstimator:
    """Tracks current, peak, moving-average and average speed plus pace.

    All speeds are distance units per hour; pace is minutes per unit. The
    moving average over the last readings is informational only, the
    authoritative average comes from ``update_average``.
    """

    def __init__(
        self,
        buffer_size: int = SPEED_BUFFER_SIZE,
        pace_min_speed: float = PACE_MIN_SPEED,
    ) -> None:
        self._readings: Deque[float] = deque(maxlen=max(1, buffer_size))
        self._pace_min_speed = pace_min_speed
        self.current_speed = 0.0
        self.peak_speed = 0.0
        self.average_speed = 0.0
        self.pace = 0.0

    @property
    def moving_average(self) -> float:
        if not self._readings:
            return 0.0
        return float(np.mean(self._readings))

    def record(self, speed: float) -> None:
        """Register an instantaneous speed that passed the range gate."""

        self.current_speed = speed
        self._readings.append(speed)
        if speed > self.peak_speed:
            self.peak_speed = speed
        if speed > self._pace_min_speed:
            self.pace = 60.0 / speed

    def update_average(self, distance_units: float, elapsed_seconds: float) -> float:
        if elapsed_seconds > 0:
            self.average_speed = distance_units / (elapsed_seconds / SECONDS_PER_HOUR)
        return self.average_speed

    def average_pace(self) -> float:
        """Pace from the average speed, falling back to the instantaneous pace."""

        if self.average_speed > self._pace_min_speed:
            return 60.0 / self.average_speed
        return self.pace

    def reset(self) -> None:
        self._readings.clear()
        self.current_speed = 0.0
        self.peak_speed = 0.0
        self.average_speed = 0.0
        self.pace = 0.0


__all__ = ["DistanceAccumulator", "SpeedEstimator"]
