"""Repository persistence and fallback to defaults on bad data."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from stride_tracker.geo import geodesic_distance
from stride_tracker.models import ItemType, PlacedItem, RewardLedger, RunSession
from stride_tracker.storage import JsonFileStore, MemoryStore, UserRepository

START = datetime(2025, 6, 10, 7, 0, tzinfo=timezone.utc)


def _finished(route=None, distance_m: float = 2000.0) -> RunSession:
    return RunSession(
        start_time=START,
        end_time=START + timedelta(minutes=15),
        distance_m=distance_m,
        duration_seconds=900.0,
        average_pace=12.07,
        max_speed=9.1,
        route=list(route or []),
        is_active=False,
    )


def test_missing_records_return_defaults(repository):
    assert repository.load_sessions() == []
    assert repository.load_ledger() == RewardLedger()
    assert repository.load_unlocked() == {}
    assert repository.load_items() == []
    assert repository.load_pending_uploads() == {}


def test_sessions_round_trip_without_route(store):
    repo = UserRepository(store, "u1", persist_route=False)
    session = _finished(route=[(51.5, -0.12), (51.501, -0.12)])

    repo.save_sessions([session])
    loaded = repo.load_sessions()

    assert len(loaded) == 1
    restored = loaded[0]
    assert restored.id == session.id
    assert restored.start_time == session.start_time
    assert restored.end_time == session.end_time
    assert restored.distance_m == session.distance_m
    assert restored.route == []
    assert not restored.is_active


def test_route_stored_as_polyline(store, track_factory):
    repo = UserRepository(store, "u1", persist_route=True, route_tolerance_m=0.0)
    route = [fix.coordinate for fix in track_factory(5, step_m=30.0)]

    repo.save_sessions([_finished(route)])
    restored = repo.load_sessions()[0].route

    assert len(restored) == len(route)
    assert all(geodesic_distance(a, b) < 1.5 for a, b in zip(route, restored))
    assert '"route_polyline":""' not in store.get("u1:recent_sessions")


def test_sessions_list_is_capped(store):
    repo = UserRepository(store, "u1", sessions_limit=3)
    sessions = [_finished(distance_m=float(i)) for i in range(5)]

    repo.save_sessions(sessions)

    assert [s.distance_m for s in repo.load_sessions()] == [0.0, 1.0, 2.0]


def test_corrupt_json_falls_back_with_warning(store, caplog):
    repo = UserRepository(store, "u1")
    store.set("u1:reward_ledger", "{not json")
    store.set("u1:recent_sessions", '[{"id": "x"}]')

    with caplog.at_level(logging.DEBUG, logger="stride_tracker.storage"):
        assert repo.load_ledger() == RewardLedger()
        assert repo.load_sessions() == []

    assert "Discarding undecodable recent_sessions" in caplog.text


def test_users_are_isolated(store):
    alice = UserRepository(store, "alice")
    bob = UserRepository(store, "bob")

    alice.save_ledger(RewardLedger(total_gems=70))

    assert bob.load_ledger().total_gems == 0
    assert alice.load_ledger().total_gems == 70


def test_unlocked_items_and_pending_round_trip(repository):
    unlocked = {"5k_runner": date(2025, 6, 1)}
    item = PlacedItem(ItemType.OFFICE, (1.0, 2.0), START)
    session = _finished()

    repository.save_unlocked(unlocked)
    repository.save_items([item])
    repository.save_pending_uploads({session.id: session})

    assert repository.load_unlocked() == unlocked
    assert repository.load_items() == [item]
    assert list(repository.load_pending_uploads()) == [session.id]


def test_empty_user_id_rejected():
    with pytest.raises(ValueError):
        UserRepository(MemoryStore(), "")


def test_json_file_store_round_trip(tmp_path):
    store = JsonFileStore(tmp_path / "data")

    assert store.get("k") is None
    store.set("k", '{"a": 1}')
    assert store.get("k") == '{"a": 1}'
    store.set("k", "[]")
    assert store.get("k") == "[]"
    assert not list((tmp_path / "data").rglob("*.tmp"))
    store.delete("k")
    assert store.get("k") is None


def test_json_file_store_backs_repository(tmp_path):
    repo = UserRepository(JsonFileStore(tmp_path), "u1")
    repo.save_ledger(RewardLedger(total_gems=12, last_reward_date=date(2025, 6, 9)))

    reloaded = UserRepository(JsonFileStore(tmp_path), "u1").load_ledger()

    assert reloaded.total_gems == 12
    assert reloaded.last_reward_date == date(2025, 6, 9)
