from __future__ import annotations

import threading

import pytest

from padelmotion.core.capture_manager import CaptureSessionManager, CaptureState
from padelmotion.core.models import Hand, MovementType
from padelmotion.core.owner import OwnerContext
from padelmotion.dataio.session_store import InMemorySessionStore
from padelmotion.remote.channel import LoopbackChannel
from padelmotion.remote.protocol import END_SESSION, START_MOVEMENT, START_SESSION
from padelmotion.remote.relay import RelayController, RelayReceiver
from padelmotion.tools.controller_cli import parse_verb, run_verbs


class _QuietStream:
    def start(self, callback) -> None:
        self.callback = callback

    def stop(self) -> None:
        self.callback = None


def test_parse_verb() -> None:
    assert parse_verb("start-session").command == START_SESSION
    assert parse_verb("END-SESSION").command == END_SESSION
    cmd = parse_verb("start-movement smash left")
    assert cmd.command == START_MOVEMENT
    assert cmd.movement_type is MovementType.SMASH
    assert cmd.hand is Hand.LEFT
    default = parse_verb("start-movement")
    assert (default.movement_type, default.hand) == (MovementType.UNKNOWN, Hand.RIGHT)


@pytest.mark.parametrize("text", ["", "jump", "stop-movement now", "start-movement smash left extra", "start-movement kick"])
def test_parse_verb_rejects(text: str) -> None:
    with pytest.raises(ValueError):
        parse_verb(text)


def test_run_verbs_against_owner_thread(capsys) -> None:
    owner = OwnerContext()
    store = InMemorySessionStore()
    manager = CaptureSessionManager(_QuietStream(), store, owner=owner)  # type: ignore[arg-type]
    controller_end, capture_end = LoopbackChannel.pair()
    controller = RelayController(controller_end)
    RelayReceiver(manager, capture_end)

    ready = threading.Event()

    def _owner_loop() -> None:
        owner.bind_to_current_thread()
        ready.set()
        owner.run_forever(poll_interval_s=0.01)

    thread = threading.Thread(target=_owner_loop, daemon=True)
    thread.start()
    ready.wait(1.0)
    try:
        failures = run_verbs(
            controller,
            ["start-session", "start-movement volley right", "stop-movement", "bogus", "status", "end-session"],
            reply_timeout_s=2.0,
        )
    finally:
        owner.stop()
        thread.join(2.0)

    assert failures == 1
    out = capsys.readouterr().out
    assert "startSession: sessionActive" in out
    assert "startMovementRecording: movementActive" in out
    assert "endSession: idle" in out
    assert manager.state is CaptureState.IDLE
    assert len(store.list_sessions()) == 1


def test_run_verbs_counts_unreachable_sends(capsys) -> None:
    controller_end, _capture_end = LoopbackChannel.pair()
    controller_end.reachable = False
    controller = RelayController(controller_end)
    assert run_verbs(controller, ["start-session", "# comment", ""], reply_timeout_s=0.1) == 1
    assert "error" in capsys.readouterr().err
