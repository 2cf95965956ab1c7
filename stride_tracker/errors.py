"""Central error types used across the tracker."""

from __future__ import annotations


class TrackerError(RuntimeError):
    """Base error for stride tracker failures."""


class LocationPermissionError(TrackerError, PermissionError):
    """Raised when a session is started without location permission."""


class RecordNotFoundError(TrackerError):
    """Raised when a persisted record is missing or cannot be decoded."""


class SyncError(TrackerError):
    """Raised when a finished session cannot be uploaded."""


__all__ = [
    "TrackerError",
    "LocationPermissionError",
    "RecordNotFoundError",
    "SyncError",
]
