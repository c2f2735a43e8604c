from __future__ import annotations

import io
import json
import time

from padelmotion.config.runtime import CaptureConfig
from padelmotion.dataio.session_store import DirectorySessionStore
from padelmotion.remote import listener
from padelmotion.remote.protocol import parse_ack
from padelmotion.sensors.motion import MotionReading, reading_to_json
from padelmotion.sensors.source import ReplaySource


def _commands(*messages) -> io.StringIO:
    return io.StringIO("".join(json.dumps(m) + "\n" for m in messages))


def _acks(writer: io.StringIO):
    return [parse_ack(json.loads(line)) for line in writer.getvalue().splitlines()]


def test_listener_runs_a_full_session(tmp_path) -> None:
    source = ReplaySource([MotionReading(timestamp=i / 60.0) for i in range(5)], loop=True)
    manager = listener.build_manager(source, tmp_path, CaptureConfig(sample_rate_hz=200.0))
    reader = _commands(
        {"command": "startSession"},
        {"command": "startMovementRecording", "movementType": "forehand", "handType": "right_hand"},
        {"command": "stopMovementRecording"},
        {"command": "endSession"},
    )
    writer = io.StringIO()

    assert listener.serve(manager, reader, writer) == 4

    acks = _acks(writer)
    assert [a.command for a in acks] == [
        "startSession",
        "startMovementRecording",
        "stopMovementRecording",
        "endSession",
    ]
    assert acks[-1].state == "idle"
    sessions = DirectorySessionStore(tmp_path).list_sessions()
    assert len(sessions) == 1
    assert sessions[0].movements[0].movement_type.value == "forehand"


def test_listener_saves_open_session_on_eof(tmp_path) -> None:
    source = ReplaySource([MotionReading(timestamp=0.0)], loop=True)
    manager = listener.build_manager(source, tmp_path, CaptureConfig())
    reader = _commands(
        {"command": "startSession"},
        {"command": "startMovementRecording", "movementType": "lob", "handType": "left_hand"},
    )
    listener.serve(manager, reader, io.StringIO())

    sessions = DirectorySessionStore(tmp_path).list_sessions()
    assert len(sessions) == 1
    assert len(sessions[0].movements) == 1
    assert sessions[0].movements[0].hand.value == "left_hand"


def test_listener_main_with_replay_file(tmp_path, monkeypatch, capsys) -> None:
    recording = tmp_path / "rec.jsonl"
    recording.write_text(
        "\n".join(reading_to_json(MotionReading(timestamp=i / 60.0)) for i in range(3)) + "\n",
        encoding="utf-8",
    )
    monkeypatch.setattr("sys.stdin", _commands({"command": "startSession"}, {"command": "endSession"}))

    code = listener.main(
        [
            "--replay",
            str(recording),
            "--data-root",
            str(tmp_path / "sessions"),
            "--config",
            str(tmp_path / "missing.yaml"),
        ]
    )

    assert code == 0
    out_lines = capsys.readouterr().out.splitlines()
    assert [json.loads(line)["ack"] for line in out_lines] == ["startSession", "endSession"]
    assert len(DirectorySessionStore(tmp_path / "sessions").list_sessions()) == 1


def test_one_shot_replay_feeds_every_movement(tmp_path) -> None:
    source = ReplaySource([MotionReading(timestamp=i / 60.0) for i in range(5)], loop=False)
    manager = listener.build_manager(source, tmp_path, CaptureConfig(sample_rate_hz=500.0))
    manager.start_session()

    counts = []
    for _ in range(2):
        manager.start_movement()
        deadline = time.monotonic() + 2.0
        while manager.stream.delivered < 5 and time.monotonic() < deadline:
            manager.owner.run_pending()
            time.sleep(0.005)
        result = manager.stop_movement()
        assert result.movement is not None
        counts.append(len(result.movement.samples))
    manager.end_session()

    assert counts == [5, 5]
