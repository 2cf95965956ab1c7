"""Dataclasses describing fixes, sessions, ledgers, achievements and items."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .config import DAILY_MINUTES_GOAL_DEFAULT

LatLon = Tuple[float, float]


def _new_id() -> str:
    return uuid.uuid4().hex


def _parse_datetime(raw: Any) -> Optional[datetime]:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw)
    return None


def _parse_date(raw: Any) -> Optional[date]:
    if isinstance(raw, date) and not isinstance(raw, datetime):
        return raw
    if isinstance(raw, str) and raw:
        return date.fromisoformat(raw[:10])
    return None


@dataclass(frozen=True, slots=True)
class LocationFix:
    """One raw geolocation sample as delivered by the location service.

    ``speed`` is the device-reported instantaneous speed in metres/second and
    ``horizontal_accuracy`` the reported accuracy radius in metres.
    """

    coordinate: LatLon
    timestamp_ms: int
    speed: float
    horizontal_accuracy: float = 0.0

    @property
    def latitude(self) -> float:
        return self.coordinate[0]

    @property
    def longitude(self) -> float:
        return self.coordinate[1]

    @property
    def timestamp_s(self) -> float:
        return self.timestamp_ms / 1000.0


class SessionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


@dataclass
class RunSession:
    """One tracked activity from start to finish.

    ``average_pace`` is expressed in minutes per distance unit and
    ``max_speed`` in distance units per hour (see ``units.UnitSystem``).
    """

    start_time: datetime
    id: str = field(default_factory=_new_id)
    end_time: Optional[datetime] = None
    distance_m: float = 0.0
    duration_seconds: float = 0.0
    average_pace: float = 0.0
    max_speed: float = 0.0
    route: List[LatLon] = field(default_factory=list)
    is_active: bool = True

    def copy(self) -> "RunSession":
        return replace(self, route=list(self.route))

    def to_dict(self, *, encoded_route: Optional[str] = None) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "distance_m": self.distance_m,
            "duration_seconds": self.duration_seconds,
            "average_pace": self.average_pace,
            "max_speed": self.max_speed,
            "route_polyline": encoded_route or "",
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(
        cls, payload: Dict[str, Any], *, route: Optional[List[LatLon]] = None
    ) -> "RunSession":
        start = _parse_datetime(payload.get("start_time"))
        if start is None:
            raise ValueError("session payload has no start_time")
        return cls(
            id=str(payload["id"]),
            start_time=start,
            end_time=_parse_datetime(payload.get("end_time")),
            distance_m=float(payload.get("distance_m", 0.0)),
            duration_seconds=float(payload.get("duration_seconds", 0.0)),
            average_pace=float(payload.get("average_pace", 0.0)),
            max_speed=float(payload.get("max_speed", 0.0)),
            route=list(route or []),
            is_active=bool(payload.get("is_active", False)),
        )


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Immutable view of the live session published to subscribers."""

    state: SessionState
    session: Optional[RunSession]
    distance_m: float = 0.0
    current_speed: float = 0.0
    average_speed: float = 0.0
    peak_speed: float = 0.0
    moving_average_speed: float = 0.0
    pace: float = 0.0


@dataclass
class RewardLedger:
    """Per-user gem balance and daily goal progress."""

    total_gems: int = 0
    gems_earned_today: int = 0
    last_reward_date: Optional[date] = None
    daily_seconds_completed: int = 0
    daily_minutes_goal: int = DAILY_MINUTES_GOAL_DEFAULT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_gems": self.total_gems,
            "gems_earned_today": self.gems_earned_today,
            "last_reward_date": (
                self.last_reward_date.isoformat() if self.last_reward_date else None
            ),
            "daily_seconds_completed": self.daily_seconds_completed,
            "daily_minutes_goal": self.daily_minutes_goal,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "RewardLedger":
        goal = int(payload.get("daily_minutes_goal") or 0)
        return cls(
            total_gems=max(0, int(payload.get("total_gems", 0))),
            gems_earned_today=int(payload.get("gems_earned_today", 0)),
            last_reward_date=_parse_date(payload.get("last_reward_date")),
            daily_seconds_completed=int(payload.get("daily_seconds_completed", 0)),
            daily_minutes_goal=goal if goal > 0 else DAILY_MINUTES_GOAL_DEFAULT,
        )


class AchievementCategory(str, Enum):
    DISTANCE = "distance"
    SPEED = "speed"
    ENDURANCE = "endurance"
    FREQUENCY = "frequency"
    MILESTONE = "milestone"
    CONSISTENCY = "consistency"


@dataclass(frozen=True, slots=True)
class Achievement:
    id: str
    title: str
    description: str
    category: AchievementCategory
    target: float
    current: float = 0.0
    progress: float = 0.0
    is_unlocked: bool = False
    unlocked_date: Optional[date] = None


class ItemType(str, Enum):
    HOUSE = "house"
    PARK = "park"
    OFFICE = "office"
    MALL = "mall"
    SKYSCRAPER = "skyscraper"
    MONUMENT = "monument"

    @property
    def cost(self) -> int:
        return _ITEM_COSTS[self]


_ITEM_COSTS = {
    ItemType.HOUSE: 50,
    ItemType.PARK: 100,
    ItemType.OFFICE: 200,
    ItemType.MALL: 300,
    ItemType.SKYSCRAPER: 500,
    ItemType.MONUMENT: 1000,
}


@dataclass(frozen=True, slots=True)
class PlacedItem:
    item_type: ItemType
    position: Tuple[float, float]
    placed_at: datetime
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "item_type": self.item_type.value,
            "position": list(self.position),
            "placed_at": self.placed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "PlacedItem":
        placed_at = _parse_datetime(payload.get("placed_at"))
        if placed_at is None:
            raise ValueError("item payload has no placed_at")
        x, y = payload["position"]
        return cls(
            id=str(payload["id"]),
            item_type=ItemType(payload["item_type"]),
            position=(float(x), float(y)),
            placed_at=placed_at,
        )


__all__ = [
    "LatLon",
    "LocationFix",
    "SessionState",
    "RunSession",
    "SessionSnapshot",
    "RewardLedger",
    "AchievementCategory",
    "Achievement",
    "ItemType",
    "PlacedItem",
]
