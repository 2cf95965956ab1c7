from __future__ import annotations

import pytest

from stride_tracker.location import ManualLocationService, ReplayLocationService


def test_manual_service_only_delivers_while_active(fix_factory):
    service = ManualLocationService()
    received = []

    assert not service.push(fix_factory())
    service.start_updates(received.append)
    assert service.push(fix_factory(t=1.0))
    service.stop_updates()
    assert not service.push(fix_factory(t=2.0))

    assert len(received) == 1


def test_replay_delivers_in_timestamp_order(track_factory):
    track = track_factory(5)
    service = ReplayLocationService(list(reversed(track)), speedup=0)
    received = []

    service.start_updates(received.append)

    assert service.finished.wait(2.0)
    assert received == track


def test_replay_from_csv(tmp_path):
    path = tmp_path / "track.csv"
    path.write_text(
        "latitude,longitude,timestamp_ms,speed\n"
        "51.5000,-0.1200,0,3.0\n"
        "51.5001,-0.1200,3000,3.0\n"
        ",,6000,3.0\n"
    )

    service = ReplayLocationService.from_csv(path, speedup=0)
    received = []
    service.start_updates(received.append)

    assert service.finished.wait(2.0)
    assert [f.timestamp_ms for f in received] == [0, 3000]
    assert received[1].latitude == pytest.approx(51.5001)
    assert received[0].horizontal_accuracy == 0.0


def test_replay_csv_requires_columns(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("lat,lon\n1,2\n")

    with pytest.raises(ValueError):
        ReplayLocationService.from_csv(path)
