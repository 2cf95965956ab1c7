"""Grid layout of purchased items, backed by the edit history."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional, Tuple

from .config import EDIT_HISTORY_CAPACITY, REFUND_ON_UNDO
from .edit_history import EditHistory
from .models import ItemType, PlacedItem
from .rewards import RewardBook
from .storage import UserRepository

_LOGGER = logging.getLogger(__name__)

Items = Tuple[PlacedItem, ...]


class ItemLayout:
    """Places and removes items, spending gems on placement.

    Undoing a placement does not return its cost unless ``refund_on_undo``
    is set; redoing a refunded placement charges again and is refused when
    the balance no longer covers it.
    """

    def __init__(
        self,
        rewards: RewardBook,
        *,
        repository: Optional[UserRepository] = None,
        clock: Callable[[], datetime],
        capacity: int = EDIT_HISTORY_CAPACITY,
        refund_on_undo: bool = REFUND_ON_UNDO,
    ) -> None:
        self._rewards = rewards
        self._repository = repository
        self._clock = clock
        self._refund_on_undo = refund_on_undo
        initial: Items = tuple(repository.load_items()) if repository else ()
        self._history: EditHistory[Items] = EditHistory(initial, capacity)
        self._lock = threading.Lock()

    @property
    def items(self) -> Items:
        with self._lock:
            return self._history.current

    @property
    def can_undo(self) -> bool:
        with self._lock:
            return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        with self._lock:
            return self._history.can_redo

    def can_afford(self, item_type: ItemType) -> bool:
        return self._rewards.total_gems >= item_type.cost

    def _persist(self) -> None:
        if self._repository is not None:
            self._repository.save_items(list(self._history.current))

    def place(
        self, item_type: ItemType, position: Tuple[float, float]
    ) -> Optional[PlacedItem]:
        with self._lock:
            if not self._rewards.spend(item_type.cost):
                return None
            item = PlacedItem(item_type=item_type, position=position, placed_at=self._clock())
            self._history.apply(self._history.current + (item,))
            self._persist()
            _LOGGER.info("Placed %s at %s for %d gems", item_type.value, position, item_type.cost)
            return item

    def remove(self, item_id: str) -> bool:
        with self._lock:
            current = self._history.current
            remaining = tuple(item for item in current if item.id != item_id)
            if len(remaining) == len(current):
                return False
            self._history.apply(remaining)
            self._persist()
            return True

    @staticmethod
    def _added(before: Items, after: Items) -> Tuple[PlacedItem, ...]:
        before_ids = {item.id for item in before}
        return tuple(item for item in after if item.id not in before_ids)

    def undo(self) -> bool:
        with self._lock:
            undone = self._history.undo()
            if undone is None:
                return False
            if self._refund_on_undo:
                for item in self._added(self._history.current, undone):
                    self._rewards.refund(item.item_type.cost)
            self._persist()
            return True

    def redo(self) -> bool:
        with self._lock:
            if not self._history.can_redo:
                return False
            if self._refund_on_undo:
                before = self._history.current
                self._history.redo()
                cost = sum(
                    item.item_type.cost
                    for item in self._added(before, self._history.current)
                )
                if cost and not self._rewards.spend(cost):
                    self._history.undo()
                    return False
            else:
                self._history.redo()
            self._persist()
            return True


__all__ = ["ItemLayout"]
