"""Service layer package.

Exports the long-running services that drive a session machine and upload
finished sessions.
"""

from .sync_service import SyncService, SyncServiceConfig
from .tracking_service import TrackingService, TrackingServiceConfig

__all__ = [
    "SyncService",
    "SyncServiceConfig",
    "TrackingService",
    "TrackingServiceConfig",
]
