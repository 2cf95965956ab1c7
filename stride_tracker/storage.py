"""Key-value persistence for per-user tracker state.

Every record is a JSON document stored under a key namespaced by user id.
Missing or undecodable records are never fatal: the repository logs a warning
and hands back the default value.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import date
from hashlib import sha256
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, TypeVar

from .config import (
    PERSIST_ROUTE,
    RECENT_SESSIONS_LIMIT,
    ROUTE_SIMPLIFICATION_TOLERANCE_M,
    STORE_DIR,
)
from .errors import RecordNotFoundError
from .models import PlacedItem, RewardLedger, RunSession
from .route import decode_route, encode_route
from .utils import json_dumps_sorted

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

SESSIONS_KEY = "recent_sessions"
LEDGER_KEY = "reward_ledger"
ACHIEVEMENTS_KEY = "unlocked_achievements"
ITEMS_KEY = "layout_items"
PENDING_UPLOADS_KEY = "pending_uploads"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Thread-safe in-process store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)


class JsonFileStore:
    """One file per key under ``base_dir``; writes go through a temp file."""

    def __init__(self, base_dir: str | Path = STORE_DIR) -> None:
        base = Path(base_dir)
        self._base_dir = base if base.is_absolute() else Path.cwd() / base
        self._lock = threading.Lock()
        self._base_dir.mkdir(parents=True, exist_ok=True)
        _LOGGER.info("JSON store initialised dir=%s", self._base_dir)

    def _file_path(self, key: str) -> Path:
        # Hash keys so user identifiers never end up in file names.
        digest = sha256(key.encode("utf-8")).hexdigest()
        return self._base_dir / digest[0:2] / f"{digest}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._file_path(key)
        try:
            with path.open("r", encoding="utf-8") as handle:
                return handle.read()
        except FileNotFoundError:
            return None
        except OSError as exc:
            _LOGGER.error("Failed reading store file %s: %s", path, exc)
            return None

    def set(self, key: str, value: str) -> None:
        path = self._file_path(key)
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = path.with_suffix(".tmp")
            with temp_path.open("w", encoding="utf-8") as handle:
                handle.write(value)
            temp_path.replace(path)

    def delete(self, key: str) -> None:
        with self._lock:
            self._file_path(key).unlink(missing_ok=True)


class UserRepository:
    """Loads and saves one user's sessions, ledger, achievements and items."""

    def __init__(
        self,
        store: KeyValueStore,
        user_id: str,
        *,
        persist_route: bool = PERSIST_ROUTE,
        route_tolerance_m: float = ROUTE_SIMPLIFICATION_TOLERANCE_M,
        sessions_limit: int = RECENT_SESSIONS_LIMIT,
    ) -> None:
        if not user_id:
            raise ValueError("user_id must be non-empty")
        self._store = store
        self.user_id = user_id
        self._persist_route = persist_route
        self._route_tolerance_m = route_tolerance_m
        self._sessions_limit = max(1, sessions_limit)

    def _key(self, name: str) -> str:
        return f"{self.user_id}:{name}"

    def _load_json(self, name: str) -> Any:
        raw = self._store.get(self._key(name))
        if raw is None:
            raise RecordNotFoundError(f"{name} not stored for user {self.user_id}")
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise RecordNotFoundError(f"{name} is not valid JSON") from exc

    def _save_json(self, name: str, payload: Any) -> None:
        self._store.set(self._key(name), json_dumps_sorted(payload))

    def _load_or_default(
        self, name: str, decode: Callable[[Any], T], default: Callable[[], T]
    ) -> T:
        try:
            payload = self._load_json(name)
            return decode(payload)
        except RecordNotFoundError as exc:
            _LOGGER.debug("Using default %s: %s", name, exc)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            _LOGGER.warning(
                "Discarding undecodable %s for user %s: %s", name, self.user_id, exc
            )
        return default()

    # -- sessions ---------------------------------------------------------

    def _encode_session(self, session: RunSession) -> Dict[str, Any]:
        encoded = ""
        if self._persist_route and session.route:
            encoded = encode_route(session.route, self._route_tolerance_m)
        return session.to_dict(encoded_route=encoded)

    @staticmethod
    def _decode_session(payload: Dict[str, Any]) -> RunSession:
        route = decode_route(payload.get("route_polyline") or "")
        return RunSession.from_dict(payload, route=route)

    def load_sessions(self) -> List[RunSession]:
        def decode(payload: Any) -> List[RunSession]:
            return [self._decode_session(item) for item in payload]

        return self._load_or_default(SESSIONS_KEY, decode, list)

    def save_sessions(self, sessions: List[RunSession]) -> None:
        kept = sessions[: self._sessions_limit]
        self._save_json(SESSIONS_KEY, [self._encode_session(s) for s in kept])

    # -- reward ledger ----------------------------------------------------

    def load_ledger(self) -> RewardLedger:
        return self._load_or_default(LEDGER_KEY, RewardLedger.from_dict, RewardLedger)

    def save_ledger(self, ledger: RewardLedger) -> None:
        self._save_json(LEDGER_KEY, ledger.to_dict())

    # -- achievements -----------------------------------------------------

    def load_unlocked(self) -> Dict[str, date]:
        def decode(payload: Any) -> Dict[str, date]:
            return {str(k): date.fromisoformat(v) for k, v in payload.items()}

        return self._load_or_default(ACHIEVEMENTS_KEY, decode, dict)

    def save_unlocked(self, unlocked: Dict[str, date]) -> None:
        self._save_json(ACHIEVEMENTS_KEY, unlocked)

    # -- layout items -----------------------------------------------------

    def load_items(self) -> List[PlacedItem]:
        def decode(payload: Any) -> List[PlacedItem]:
            return [PlacedItem.from_dict(item) for item in payload]

        return self._load_or_default(ITEMS_KEY, decode, list)

    def save_items(self, items: List[PlacedItem]) -> None:
        self._save_json(ITEMS_KEY, [item.to_dict() for item in items])

    # -- pending uploads --------------------------------------------------

    def load_pending_uploads(self) -> Dict[str, RunSession]:
        def decode(payload: Any) -> Dict[str, RunSession]:
            return {str(k): self._decode_session(v) for k, v in payload.items()}

        return self._load_or_default(PENDING_UPLOADS_KEY, decode, dict)

    def save_pending_uploads(self, pending: Dict[str, RunSession]) -> None:
        self._save_json(
            PENDING_UPLOADS_KEY,
            {sid: self._encode_session(s) for sid, s in pending.items()},
        )


__all__ = ["KeyValueStore", "MemoryStore", "JsonFileStore", "UserRepository"]
