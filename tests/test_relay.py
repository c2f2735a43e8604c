from __future__ import annotations

import io
import json
from typing import Callable, Optional

import pytest

from padelmotion.core.capture_manager import CaptureSessionManager, CaptureState
from padelmotion.core.errors import ChannelUnreachable, MalformedCommand, SensorUnavailable
from padelmotion.core.models import Hand, MovementType
from padelmotion.core.owner import OwnerContext
from padelmotion.dataio.session_store import InMemorySessionStore
from padelmotion.remote.channel import LoopbackChannel, StreamChannel
from padelmotion.remote.protocol import (
    START_MOVEMENT,
    STOP_MOVEMENT,
    ConnectivityStatus,
    RelayCommand,
    decode_line,
    derive_status,
    parse_ack,
    parse_command,
)
from padelmotion.remote.relay import RelayController, RelayReceiver
from padelmotion.sensors.motion import MotionReading


class _IdleStream:
    def __init__(self) -> None:
        self.callback: Optional[Callable[[MotionReading], None]] = None
        self.starts = 0

    def start(self, callback) -> None:
        self.starts += 1
        self.callback = callback

    def stop(self) -> None:
        self.callback = None


def _setup():
    owner = OwnerContext()
    stream = _IdleStream()
    store = InMemorySessionStore()
    manager = CaptureSessionManager(stream, store, owner=owner)  # type: ignore[arg-type]
    controller_end, capture_end = LoopbackChannel.pair()
    controller = RelayController(controller_end)
    RelayReceiver(manager, capture_end)
    return owner, stream, store, manager, controller, controller_end


def test_parse_command_accepts_movement_start() -> None:
    cmd = parse_command({"command": START_MOVEMENT, "movementType": "smash", "handType": "left_hand"})
    assert cmd == RelayCommand(START_MOVEMENT, movement_type=MovementType.SMASH, hand=Hand.LEFT)
    assert cmd.to_message() == {"command": START_MOVEMENT, "movementType": "smash", "handType": "left_hand"}


@pytest.mark.parametrize(
    "message",
    [
        {},
        {"command": "START"},
        {"command": 3},
        {"command": START_MOVEMENT, "movementType": "cartwheel"},
        {"command": START_MOVEMENT, "handType": "foot"},
        ["startSession"],
    ],
)
def test_parse_command_rejects_malformed(message) -> None:
    with pytest.raises(MalformedCommand):
        parse_command(message)


def test_decode_line_rejects_non_objects() -> None:
    assert decode_line('{"command": "endSession"}') == {"command": "endSession"}
    with pytest.raises(MalformedCommand):
        decode_line("[1, 2]")
    with pytest.raises(MalformedCommand):
        decode_line("garbage")


def test_derive_status_first_failure_wins() -> None:
    assert derive_status(supported=False, paired=False, installed=False, reachable=False) is ConnectivityStatus.NOT_SUPPORTED
    assert derive_status(supported=True, paired=False, installed=True, reachable=True) is ConnectivityStatus.NOT_PAIRED
    assert derive_status(supported=True, paired=True, installed=False, reachable=True) is ConnectivityStatus.NOT_INSTALLED
    assert derive_status(supported=True, paired=True, installed=True, reachable=False) is ConnectivityStatus.NOT_REACHABLE
    status = derive_status(supported=True, paired=True, installed=True, reachable=True)
    assert status is ConnectivityStatus.REACHABLE
    assert status.color == "green"
    assert ConnectivityStatus.NOT_REACHABLE.color == "yellow"
    assert ConnectivityStatus.NOT_PAIRED.color == "red"
    assert all(s.title and s.description for s in ConnectivityStatus)


def test_full_exchange_over_loopback() -> None:
    owner, stream, store, manager, controller, _ = _setup()

    controller.start_session()
    owner.run_pending()
    controller.start_movement(MovementType.BACKHAND, Hand.LEFT)
    owner.run_pending()
    assert manager.state is CaptureState.MOVEMENT_ACTIVE
    assert controller.peer_state == CaptureState.MOVEMENT_ACTIVE.value

    stream.callback(MotionReading(timestamp=0.0))
    controller.stop_movement()
    owner.run_pending()
    controller.end_session()
    owner.run_pending()

    assert manager.state is CaptureState.IDLE
    sessions = store.list_sessions()
    assert len(sessions) == 1
    movement = sessions[0].movements[0]
    assert movement.movement_type is MovementType.BACKHAND
    assert movement.hand is Hand.LEFT
    assert controller.last_ack is not None
    assert controller.last_ack.command == "endSession"
    assert controller.ack_count == 4


def test_duplicate_start_movement_creates_one_movement() -> None:
    owner, stream, store, manager, controller, controller_end = _setup()
    controller.start_session()
    controller_end.duplicate = True
    controller.start_movement(MovementType.FOREHAND, Hand.RIGHT)
    controller_end.duplicate = False
    owner.run_pending()

    assert stream.starts == 1
    controller.stop_movement()
    controller.end_session()
    owner.run_pending()
    assert len(store.list_sessions()[0].movements) == 1


def test_stop_before_start_leaves_state_unchanged() -> None:
    owner, _stream, _store, manager, controller, _ = _setup()
    controller.start_session()
    owner.run_pending()

    controller.send(RelayCommand(STOP_MOVEMENT))
    owner.run_pending()
    assert manager.state is CaptureState.SESSION_ACTIVE
    assert controller.peer_state == CaptureState.SESSION_ACTIVE.value


def test_stop_with_no_prior_start_on_idle_unit() -> None:
    owner, _stream, _store, manager, controller, _ = _setup()
    controller.send(RelayCommand(STOP_MOVEMENT))
    owner.run_pending()
    assert manager.state is CaptureState.IDLE


def test_dropped_message_is_lost_not_retried() -> None:
    owner, _stream, _store, manager, controller, controller_end = _setup()
    controller_end.drop_next()
    controller.start_session()
    owner.run_pending()
    assert manager.state is CaptureState.IDLE
    assert controller.last_ack is None
    assert controller_end.dropped == 1


def test_send_while_unreachable_fails_fast() -> None:
    owner, _stream, _store, manager, controller, controller_end = _setup()
    controller_end.reachable = False
    assert controller.status is ConnectivityStatus.NOT_REACHABLE
    with pytest.raises(ChannelUnreachable):
        controller.start_session()
    owner.run_pending()
    assert manager.state is CaptureState.IDLE

    controller_end.reachable = True
    controller_end.installed = False
    with pytest.raises(ChannelUnreachable):
        controller.end_session()


def test_malformed_messages_are_ignored_without_reply() -> None:
    owner, _stream, _store, manager, controller, controller_end = _setup()
    controller_end.send({"command": "dance"})
    controller_end.send({"movementType": "lob"})
    owner.run_pending()
    assert manager.state is CaptureState.IDLE
    assert controller.ack_count == 0


def test_receiver_reports_unavailable_sensor_and_keeps_running() -> None:
    owner = OwnerContext()

    class _Broken(_IdleStream):
        def start(self, callback) -> None:
            raise SensorUnavailable("imu missing")

    manager = CaptureSessionManager(_Broken(), InMemorySessionStore(), owner=owner)  # type: ignore[arg-type]
    receiver = RelayReceiver(manager)
    receiver.handle_message({"command": "startSession"})
    future = receiver.handle_message({"command": START_MOVEMENT, "movementType": "serve", "handType": "right_hand"})
    owner.run_pending()
    assert future is not None
    result = future.result(timeout=0)
    assert isinstance(result.error, SensorUnavailable)
    assert manager.state is CaptureState.SESSION_ACTIVE


def test_stream_channel_dispatches_lines_and_writes_acks() -> None:
    owner = OwnerContext()
    manager = CaptureSessionManager(_IdleStream(), InMemorySessionStore(), owner=owner)  # type: ignore[arg-type]
    reader = io.StringIO('{"command":"startSession"}\nnot json\n\n{"command":"bogus"}\n')
    writer = io.StringIO()
    channel = StreamChannel(reader, writer)
    receiver = RelayReceiver(manager, channel)

    assert channel.serve() == 2
    owner.run_pending()
    assert receiver.ignored == 1

    acks = [parse_ack(json.loads(line)) for line in writer.getvalue().splitlines()]
    assert len(acks) == 1
    assert acks[0] is not None
    assert acks[0].command == "startSession"
    assert acks[0].state == CaptureState.SESSION_ACTIVE.value


def test_stream_channel_skips_invalid_utf8_and_keeps_serving() -> None:
    owner = OwnerContext()
    manager = CaptureSessionManager(_IdleStream(), InMemorySessionStore(), owner=owner)  # type: ignore[arg-type]
    raw = b'{"command":"startSession"}\n\xff\xfe garbage\n{"command":"endSession"}\n'
    writer = io.StringIO()
    channel = StreamChannel(io.TextIOWrapper(io.BytesIO(raw), encoding="utf-8"), writer)
    RelayReceiver(manager, channel)

    assert channel.serve() == 2
    owner.run_pending()

    acks = [parse_ack(json.loads(line)) for line in writer.getvalue().splitlines()]
    assert [a.command for a in acks if a is not None] == ["startSession", "endSession"]
    assert manager.state is CaptureState.IDLE


def test_stream_channel_accepts_binary_reader() -> None:
    received = []
    channel = StreamChannel(io.BytesIO(b'{"command":"stopMovementRecording"}\n\x80\n'), io.StringIO())
    channel.set_handler(received.append)
    assert channel.serve() == 1
    assert received == [{"command": "stopMovementRecording"}]


def test_unpaired_loopback_send_is_unreachable() -> None:
    lonely = LoopbackChannel("lonely")
    assert not lonely.status().can_send
    with pytest.raises(ChannelUnreachable):
        lonely.send({"command": "startSession"})
    assert lonely.sent == 0
