"""Route recording: decides which accepted fixes become polyline vertices."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from polyline import decode as polyline_decode
from polyline import encode as polyline_encode

from .config import (
    ROUTE_MIN_DISTANCE_M,
    ROUTE_MIN_INTERVAL_SECONDS,
    ROUTE_SIMPLIFICATION_TOLERANCE_M,
)
from .geo import geodesic_distance, simplify_route
from .models import LatLon, LocationFix


@dataclass(slots=True)
class RouteRecorderConfig:
    min_distance_m: float = ROUTE_MIN_DISTANCE_M
    min_interval_seconds: float = ROUTE_MIN_INTERVAL_SECONDS


class RouteRecorder:
    """Keeps a sparse vertex list independent of the distance accumulator."""

    def __init__(self, config: RouteRecorderConfig | None = None) -> None:
        self.config = config or RouteRecorderConfig()
        self._points: List[LatLon] = []
        self._last: Optional[LocationFix] = None

    @property
    def points(self) -> List[LatLon]:
        return list(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def should_add(self, fix: LocationFix) -> bool:
        if self._last is None:
            return True
        distance = geodesic_distance(self._last.coordinate, fix.coordinate)
        elapsed = fix.timestamp_s - self._last.timestamp_s
        return (
            distance > self.config.min_distance_m
            and elapsed > self.config.min_interval_seconds
        )

    def offer(self, fix: LocationFix) -> bool:
        """Append the fix's coordinate when it clears both thresholds."""

        if not self.should_add(fix):
            return False
        self._points.append(fix.coordinate)
        self._last = fix
        return True

    def reset(self) -> None:
        self._points.clear()
        self._last = None


def encode_route(
    points: Sequence[LatLon],
    tolerance_m: float = ROUTE_SIMPLIFICATION_TOLERANCE_M,
) -> str:
    """Simplify then encode a route as a Google polyline string."""

    if not points:
        return ""
    return polyline_encode(simplify_route(points, tolerance_m))


def decode_route(encoded: str) -> List[LatLon]:
    if not encoded:
        return []
    try:
        decoded = polyline_decode(encoded)
    except (ValueError, TypeError, IndexError) as exc:
        raise ValueError("Unable to decode route polyline") from exc
    return [(float(lat), float(lon)) for lat, lon in decoded]


__all__ = ["RouteRecorder", "RouteRecorderConfig", "encode_route", "decode_route"]
