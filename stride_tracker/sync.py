"""Upload collaborator for finished sessions."""

from __future__ import annotations

import logging
from typing import Any, Dict, Protocol

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import (
    HTTP_POOL_CONNECTIONS,
    HTTP_POOL_MAXSIZE,
    SYNC_AUTH_TOKEN,
    SYNC_BASE_URL,
    SYNC_FINISH_PATH,
    SYNC_REQUEST_TIMEOUT,
)
from .errors import SyncError
from .models import RunSession
from .units import UnitSystem, default_unit_system

_LOGGER = logging.getLogger(__name__)


class SessionUploader(Protocol):
    def upload(self, session: RunSession) -> None: ...


def _build_retry() -> Retry:
    return Retry(
        total=3,
        backoff_factor=1.0,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=["POST"],
    )


def create_sync_session() -> Session:
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=HTTP_POOL_CONNECTIONS,
        pool_maxsize=HTTP_POOL_MAXSIZE,
        max_retries=_build_retry(),
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(
        {
            "Accept-Encoding": "gzip, deflate",
            "Accept": "application/json",
        }
    )
    return session


def session_payload(session: RunSession, units: UnitSystem) -> Dict[str, Any]:
    """Body posted for a finished session: distance in units, speeds in units/hour."""

    distance_units = units.to_units(session.distance_m)
    hours = session.duration_seconds / 3600.0
    return {
        "runId": session.id,
        "distance": round(distance_units, 4),
        "duration": round(session.duration_seconds, 1),
        "averageSpeed": round(distance_units / hours, 4) if hours > 0 else 0.0,
        "peakSpeed": round(session.max_speed, 4),
        "startTime": session.start_time.isoformat(),
        "endTime": session.end_time.isoformat() if session.end_time else None,
    }


class HttpSessionUploader:
    """Posts finished sessions as JSON to the remote session store."""

    def __init__(
        self,
        base_url: str = SYNC_BASE_URL,
        *,
        token: str = SYNC_AUTH_TOKEN,
        timeout: float = SYNC_REQUEST_TIMEOUT,
        http_session: Session | None = None,
        units: UnitSystem | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required for HTTP uploads")
        self._url = base_url.rstrip("/") + SYNC_FINISH_PATH
        self._token = token
        self._timeout = timeout
        self._http = http_session or create_sync_session()
        self._units = units or default_unit_system()

    def upload(self, session: RunSession) -> None:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        payload = session_payload(session, self._units)
        _LOGGER.debug("Uploading session %s to %s", session.id, self._url)
        try:
            response = self._http.post(
                self._url, json=payload, headers=headers, timeout=self._timeout
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            body = exc.response.text[:200] if exc.response is not None else ""
            raise SyncError(f"Upload of {session.id} rejected: {exc} | {body}") from exc
        except requests.exceptions.RequestException as exc:
            raise SyncError(f"Upload of {session.id} failed: {exc}") from exc


__all__ = [
    "SessionUploader",
    "HttpSessionUploader",
    "create_sync_session",
    "session_payload",
]
