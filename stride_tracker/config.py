"""Central configuration for the stride tracker.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Every threshold can be overridden through environment
variables (optionally via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _env_str(key: str, default: str) -> str:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Units and calendar
# ---------------------------------------------------------------------------
# "imperial" reports miles / mph / min per mile, "metric" km / kph / min per km.
DISTANCE_UNIT_SYSTEM = _env_str("DISTANCE_UNIT_SYSTEM", "imperial")

# IANA zone used to decide what "today" means for rewards and streaks.
USER_TIMEZONE = _env_str("USER_TIMEZONE", "UTC")


# ---------------------------------------------------------------------------
# Fix filter
# ---------------------------------------------------------------------------
# Minimum seconds between two accepted fixes.
FIX_MIN_INTERVAL_SECONDS = _env_float("FIX_MIN_INTERVAL_SECONDS", 1.0)

# Minimum displacement (metres) from the last accepted fix.
FIX_MIN_DISTANCE_M = _env_float("FIX_MIN_DISTANCE_M", 1.0)

# Accepted range for the device-reported speed, in distance units per hour.
# The floor drops stationary jitter, the ceiling drops GPS spikes.
FIX_MIN_SPEED = _env_float("FIX_MIN_SPEED", 0.1)
FIX_MAX_SPEED = _env_float("FIX_MAX_SPEED", 25.0)

# Reject a fix whose displacement exceeds the reported speed's expectation by
# more than this factor (teleport / multipath guard).
FIX_MAX_DISTANCE_RATIO = _env_float("FIX_MAX_DISTANCE_RATIO", 10.0)

# Floor (metres) for the expected displacement to avoid dividing by zero.
FIX_EXPECTED_DISTANCE_FLOOR_M = _env_float("FIX_EXPECTED_DISTANCE_FLOOR_M", 0.1)


# ---------------------------------------------------------------------------
# Speed / pace
# ---------------------------------------------------------------------------
# Number of instantaneous speed readings kept for the moving average.
SPEED_BUFFER_SIZE = _env_int("SPEED_BUFFER_SIZE", 10)

# Pace is only recomputed above this speed (units/hour).
PACE_MIN_SPEED = _env_float("PACE_MIN_SPEED", 0.5)


# ---------------------------------------------------------------------------
# Route recording
# ---------------------------------------------------------------------------
# Both thresholds must be exceeded before another vertex is added.
ROUTE_MIN_DISTANCE_M = _env_float("ROUTE_MIN_DISTANCE_M", 3.0)
ROUTE_MIN_INTERVAL_SECONDS = _env_float("ROUTE_MIN_INTERVAL_SECONDS", 2.0)

# Store finished routes as an encoded polyline. When False the persisted
# session carries no route.
PERSIST_ROUTE = _env_bool("PERSIST_ROUTE", True)

# Douglas-Peucker tolerance (metres) applied before persisting a route.
# Set to 0 to keep every recorded vertex.
ROUTE_SIMPLIFICATION_TOLERANCE_M = _env_float("ROUTE_SIMPLIFICATION_TOLERANCE_M", 3.0)


# ---------------------------------------------------------------------------
# Session ticking
# ---------------------------------------------------------------------------
# Period of the live snapshot tick (seconds).
TICK_INTERVAL_SECONDS = _env_float("TICK_INTERVAL_SECONDS", 1.0)

# How long the fix pump waits on an empty queue before re-checking shutdown.
FIX_QUEUE_POLL_SECONDS = _env_float("FIX_QUEUE_POLL_SECONDS", 0.2)

# Maximum buffered snapshots per polling subscriber (oldest dropped first).
SNAPSHOT_SUBSCRIBER_QUEUE_SIZE = _env_int("SNAPSHOT_SUBSCRIBER_QUEUE_SIZE", 32)


# ---------------------------------------------------------------------------
# Rewards and achievements
# ---------------------------------------------------------------------------
REWARD_BASE_GEMS = 10
# Speed bonus applies between these speeds (units/hour), one gem per unit.
REWARD_SPEED_BONUS_FLOOR = 6.0
REWARD_SPEED_BONUS_CAP = 4.0
REWARD_STREAK_BONUS = 5

DAILY_MINUTES_GOAL_DEFAULT = _env_int("DAILY_MINUTES_GOAL_DEFAULT", 15)

# Day-streak scan never looks further back than this.
STREAK_LOOKBACK_DAYS = 365


# ---------------------------------------------------------------------------
# Item layout / edit history
# ---------------------------------------------------------------------------
EDIT_HISTORY_CAPACITY = _env_int("EDIT_HISTORY_CAPACITY", 20)

# Return an item's gem cost when its placement is undone.
REFUND_ON_UNDO = _env_bool("REFUND_ON_UNDO", False)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------
# Directory (absolute or relative) for the JSON key-value store.
STORE_DIR = _env_str("STRIDE_STORE_DIR", "stride_data")

# Maximum number of finished sessions kept in the recent list.
RECENT_SESSIONS_LIMIT = _env_int("RECENT_SESSIONS_LIMIT", 500)


# ---------------------------------------------------------------------------
# Upload / sync
# ---------------------------------------------------------------------------
# Base URL of the remote session store. Uploads are skipped when empty.
SYNC_BASE_URL = _env_str("STRIDE_SYNC_BASE_URL", "")
SYNC_FINISH_PATH = "/functions/v1/finishRun"
SYNC_AUTH_TOKEN = os.getenv("STRIDE_SYNC_AUTH_TOKEN", "")

# Request timeout in seconds.
SYNC_REQUEST_TIMEOUT = _env_float("SYNC_REQUEST_TIMEOUT", 15.0)

# Background threads used for fire-and-forget uploads.
SYNC_MAX_WORKERS = _env_int("SYNC_MAX_WORKERS", 2)

# HTTP session pool sizes.
HTTP_POOL_CONNECTIONS = 4
HTTP_POOL_MAXSIZE = 4
