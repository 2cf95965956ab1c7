"""General utility helpers shared across modules."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal
from typing import Any, Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import USER_TIMEZONE

Clock = Callable[[], datetime]

_LOGGER = logging.getLogger(__name__)


def user_timezone(name: str = USER_TIMEZONE) -> tzinfo:
    """Resolve an IANA zone name, falling back to UTC."""

    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        _LOGGER.warning("Unknown timezone %r; falling back to UTC", name)
        return timezone.utc


def system_clock(tz: tzinfo | None = None) -> Clock:
    """Return a clock producing aware datetimes in ``tz`` (user zone by default)."""

    zone = tz or user_timezone()

    def _now() -> datetime:
        return datetime.now(zone)

    return _now


def local_date(moment: datetime, tz: tzinfo | None = None) -> date:
    """Calendar date of ``moment`` in ``tz`` (or its own zone when omitted)."""

    if tz is not None and moment.tzinfo is not None:
        return moment.astimezone(tz).date()
    return moment.date()


def _normalise_value(value: Any) -> Any:
    """Convert objects to JSON-friendly representations."""

    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore")
    if isinstance(value, set):
        return sorted(_normalise_value(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [_normalise_value(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _normalise_value(val) for key, val in value.items()}
    return value


def json_dumps_sorted(value: Any) -> str:
    """Return canonical JSON for persistence and comparisons."""

    normalised = _normalise_value(value)
    return json.dumps(normalised, sort_keys=True, separators=(",", ":"))
