"""Run tracking core: fix filtering, session state, rewards and achievements."""

from .achievements import AchievementEvaluator
from .edit_history import EditHistory
from .errors import LocationPermissionError, RecordNotFoundError, SyncError, TrackerError
from .models import LocationFix, RunSession, SessionSnapshot, SessionState
from .rewards import RewardBook
from .session import SessionOutcome, SessionStateMachine

__all__ = [
    "AchievementEvaluator",
    "EditHistory",
    "LocationFix",
    "LocationPermissionError",
    "RecordNotFoundError",
    "RewardBook",
    "RunSession",
    "SessionOutcome",
    "SessionSnapshot",
    "SessionState",
    "SessionStateMachine",
    "SyncError",
    "TrackerError",
]
