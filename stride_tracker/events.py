"""Typed channel used to publish live session snapshots."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Generic, List, Optional, TypeVar

from .config import SNAPSHOT_SUBSCRIBER_QUEUE_SIZE
from .models import SessionSnapshot

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription(Generic[T]):
    """Polling handle returned by ``Channel.subscribe``."""

    def __init__(self, channel: "Channel[T]", maxsize: int) -> None:
        self._channel = channel
        self._queue: "queue.Queue[T]" = queue.Queue(maxsize=max(1, maxsize))

    def _offer(self, value: T) -> None:
        # Never block the publisher: drop the oldest buffered value instead.
        while True:
            try:
                self._queue.put_nowait(value)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass

    def get(self, timeout: Optional[float] = None) -> Optional[T]:
        """Return the next value, or None when nothing arrives within ``timeout``."""

        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[T]:
        items: List[T] = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items

    def close(self) -> None:
        self._channel._remove_subscription(self)


class Channel(Generic[T]):
    """Fan-out of published values to listeners and polling subscriptions.

    Listener failures are logged and never reach the publisher.
    """

    def __init__(self, subscriber_queue_size: int = SNAPSHOT_SUBSCRIBER_QUEUE_SIZE):
        self._lock = threading.Lock()
        self._listeners: List[Callable[[T], None]] = []
        self._subscriptions: List[Subscription[T]] = []
        self._queue_size = subscriber_queue_size
        self._last: Optional[T] = None

    @property
    def last(self) -> Optional[T]:
        with self._lock:
            return self._last

    def add_listener(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """Register a push listener; returns a callable that removes it."""

        with self._lock:
            self._listeners.append(listener)

        def _remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _remove

    def subscribe(self, maxsize: Optional[int] = None) -> Subscription[T]:
        sub: Subscription[T] = Subscription(self, maxsize or self._queue_size)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def _remove_subscription(self, sub: Subscription[T]) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    def publish(self, value: T) -> None:
        with self._lock:
            self._last = value
            listeners = list(self._listeners)
            subscriptions = list(self._subscriptions)
        for sub in subscriptions:
            sub._offer(value)
        for listener in listeners:
            try:
                listener(value)
            except Exception as exc:
                _LOGGER.warning("Snapshot listener %r failed: %s", listener, exc)


SnapshotChannel = Channel[SessionSnapshot]


__all__ = ["Channel", "Subscription", "SnapshotChannel"]
