"""Session sync service.

Hands finished sessions to a ``SessionUploader`` on a small thread pool so the
caller never waits on the network. Failed uploads are kept in a pending queue
keyed by session id, persisted through the user repository, and retried on
demand via ``retry_pending``.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..config import SYNC_MAX_WORKERS
from ..errors import SyncError
from ..models import RunSession
from ..storage import UserRepository
from ..sync import SessionUploader


@dataclass(slots=True)
class SyncServiceConfig:
    max_workers: int = SYNC_MAX_WORKERS
    logger: logging.Logger | None = None


class SyncService:
    """Fire-and-forget uploads; failures land in a pending queue keyed by id."""

    def __init__(
        self,
        uploader: SessionUploader,
        repository: UserRepository | None = None,
        config: SyncServiceConfig | None = None,
    ) -> None:
        self.config = config or SyncServiceConfig()
        self._log = self.config.logger or logging.getLogger(self.__class__.__name__)
        self._uploader = uploader
        self._repository = repository
        self._lock = threading.Lock()
        self._pending: Dict[str, RunSession] = (
            repository.load_pending_uploads() if repository else {}
        )
        self._last_error: Optional[str] = None
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, self.config.max_workers),
            thread_name_prefix="session-sync",
        )

    @property
    def pending_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._pending)

    @property
    def last_error(self) -> Optional[str]:
        """Message of the most recent failure; cleared once the queue drains."""

        with self._lock:
            return self._last_error

    @property
    def has_sync_error(self) -> bool:
        with self._lock:
            return self._last_error is not None

    def _save_pending(self) -> None:
        if self._repository is not None:
            self._repository.save_pending_uploads(dict(self._pending))

    def submit(self, session: RunSession) -> Future:
        """Queue an upload and return immediately.

        If the pool no longer accepts work the session goes straight to the
        pending queue and the returned future resolves to ``False``.
        """

        session = session.copy()
        try:
            return self._executor.submit(self._upload_one, session)
        except RuntimeError as exc:
            self._record_failure(session, f"upload not scheduled: {exc}")
            rejected: Future = Future()
            rejected.set_result(False)
            return rejected

    def _upload_one(self, session: RunSession) -> bool:
        try:
            self._uploader.upload(session)
        except SyncError as exc:
            self._record_failure(session, str(exc))
            return False
        except Exception as exc:  # pragma: no cover
            self._log.error("Unexpected upload error for %s: %s", session.id, exc, exc_info=True)
            self._record_failure(session, str(exc))
            return False
        with self._lock:
            if self._pending.pop(session.id, None) is not None:
                self._save_pending()
            if not self._pending:
                self._last_error = None
        self._log.info("Uploaded session %s", session.id)
        return True

    def _record_failure(self, session: RunSession, message: str) -> None:
        with self._lock:
            self._pending[session.id] = session
            self._last_error = message
            self._save_pending()
        self._log.warning(
            "Session %s upload failed; kept for retry: %s", session.id, message
        )

    def retry_pending(self) -> List[Future]:
        with self._lock:
            queued = list(self._pending.values())
        if queued:
            self._log.info("Retrying %d pending session uploads", len(queued))
        return [self._executor.submit(self._upload_one, s) for s in queued]

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


__all__ = ["SyncService", "SyncServiceConfig"]
