"""Snapshot channel fan-out."""

from __future__ import annotations

import logging

from stride_tracker.events import Channel, SnapshotChannel
from stride_tracker.models import SessionSnapshot, SessionState


def test_listeners_receive_values_and_can_be_removed():
    channel: Channel[int] = Channel()
    received = []
    remove = channel.add_listener(received.append)

    channel.publish(1)
    remove()
    channel.publish(2)

    assert received == [1]
    assert channel.last == 2


def test_subscription_drops_oldest_when_full():
    channel: Channel[int] = Channel()
    sub = channel.subscribe(maxsize=3)

    for value in range(5):
        channel.publish(value)

    assert sub.drain() == [2, 3, 4]
    assert sub.get(timeout=0.01) is None


def test_closed_subscription_stops_receiving():
    channel: Channel[int] = Channel()
    sub = channel.subscribe()
    channel.publish(1)
    sub.close()
    channel.publish(2)

    assert sub.drain() == [1]


def test_failing_listener_does_not_break_publish(caplog):
    channel = SnapshotChannel()
    good = []

    def bad(_snapshot):
        raise RuntimeError("boom")

    channel.add_listener(bad)
    channel.add_listener(good.append)
    snapshot = SessionSnapshot(state=SessionState.IDLE, session=None)

    with caplog.at_level(logging.WARNING, logger="stride_tracker.events"):
        channel.publish(snapshot)

    assert good == [snapshot]
    assert "boom" in caplog.text
