"""Item placement on the layout grid with gem spending and undo/redo."""

from __future__ import annotations

from datetime import date

from stride_tracker.layout import ItemLayout
from stride_tracker.models import ItemType, RewardLedger
from stride_tracker.rewards import RewardBook

TODAY = date(2025, 6, 10)


def _book(gems: int, repository=None) -> RewardBook:
    return RewardBook(RewardLedger(total_gems=gems), repository=repository, today=lambda: TODAY)


def test_place_spends_gems_and_records_item(clock):
    book = _book(120)
    layout = ItemLayout(book, clock=clock)

    item = layout.place(ItemType.PARK, (2.0, 3.0))

    assert item is not None
    assert item.placed_at == clock.now
    assert layout.items == (item,)
    assert book.total_gems == 20


def test_place_refused_when_balance_too_low(clock):
    book = _book(40)
    layout = ItemLayout(book, clock=clock)

    assert not layout.can_afford(ItemType.HOUSE)
    assert layout.place(ItemType.HOUSE, (0.0, 0.0)) is None
    assert layout.items == ()
    assert book.total_gems == 40
    assert not layout.can_undo


def test_undo_keeps_gems_spent_by_default(clock):
    book = _book(100)
    layout = ItemLayout(book, clock=clock)
    layout.place(ItemType.HOUSE, (0.0, 0.0))

    assert layout.undo()
    assert layout.items == ()
    assert book.total_gems == 50
    assert layout.redo()
    assert len(layout.items) == 1
    assert book.total_gems == 50


def test_refund_policy_returns_and_recharges_cost(clock):
    book = _book(100)
    layout = ItemLayout(book, clock=clock, refund_on_undo=True)
    layout.place(ItemType.HOUSE, (0.0, 0.0))

    layout.undo()
    assert book.total_gems == 100

    layout.redo()
    assert book.total_gems == 50
    assert len(layout.items) == 1


def test_refund_policy_redo_refused_without_funds(clock):
    book = _book(50)
    layout = ItemLayout(book, clock=clock, refund_on_undo=True)
    layout.place(ItemType.HOUSE, (0.0, 0.0))
    layout.undo()
    assert book.spend(50)

    assert not layout.redo()
    assert layout.items == ()
    assert layout.can_redo


def test_remove_is_undoable(clock):
    layout = ItemLayout(_book(500), clock=clock)
    first = layout.place(ItemType.HOUSE, (0.0, 0.0))
    second = layout.place(ItemType.PARK, (1.0, 0.0))

    assert layout.remove(first.id)
    assert layout.items == (second,)
    assert not layout.remove("missing")
    layout.undo()
    assert layout.items == (first, second)


def test_items_persist_through_repository(clock, repository):
    layout = ItemLayout(_book(1000, repository), repository=repository, clock=clock)
    layout.place(ItemType.MONUMENT, (4.0, 4.0))

    reloaded = ItemLayout(_book(0), repository=repository, clock=clock)

    assert [i.item_type for i in reloaded.items] == [ItemType.MONUMENT]
    assert not reloaded.can_undo
