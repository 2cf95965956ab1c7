"""Bounded undo/redo history of full state snapshots."""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Generic, Optional, TypeVar

from .config import EDIT_HISTORY_CAPACITY

_LOGGER = logging.getLogger(__name__)

S = TypeVar("S")


class EditHistory(Generic[S]):
    """Undo/redo over immutable snapshots; both stacks evict their oldest entry."""

    def __init__(self, initial: S, capacity: int = EDIT_HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._current = initial
        self._undo: Deque[S] = deque(maxlen=capacity)
        self._redo: Deque[S] = deque(maxlen=capacity)

    @property
    def current(self) -> S:
        return self._current

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def apply(self, new_state: S) -> S:
        self._undo.append(self._current)
        self._current = new_state
        self._redo.clear()
        return self._current

    def undo(self) -> Optional[S]:
        """Step back one edit. Returns the state that was undone, or None."""

        if not self._undo:
            return None
        undone = self._current
        self._redo.append(self._current)
        self._current = self._undo.pop()
        _LOGGER.debug(
            "Undo performed undo=%d redo=%d", len(self._undo), len(self._redo)
        )
        return undone

    def redo(self) -> Optional[S]:
        """Re-apply one undone edit. Returns the state that was replaced, or None."""

        if not self._redo:
            return None
        replaced = self._current
        self._undo.append(self._current)
        self._current = self._redo.pop()
        _LOGGER.debug(
            "Redo performed undo=%d redo=%d", len(self._undo), len(self._redo)
        )
        return replaced

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()


__all__ = ["EditHistory"]
