"""Wire format for the capture-unit relay.

Messages are flat JSON objects with a mandatory ``command`` key. Movement
start additionally carries ``movementType`` and ``handType``. The capture unit
answers every recognised command with an ``ack`` message that echoes the
command and reports its resulting capture state.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..core.errors import MalformedCommand
from ..core.models import Hand, MovementType

START_SESSION = "startSession"
END_SESSION = "endSession"
START_MOVEMENT = "startMovementRecording"
STOP_MOVEMENT = "stopMovementRecording"
ACK = "ack"

COMMANDS = frozenset({START_SESSION, END_SESSION, START_MOVEMENT, STOP_MOVEMENT})


@dataclass(frozen=True)
class RelayCommand:
    """One decoded relay verb."""

    command: str
    movement_type: MovementType = MovementType.UNKNOWN
    hand: Hand = Hand.RIGHT

    def to_message(self) -> Dict[str, Any]:
        message: Dict[str, Any] = {"command": self.command}
        if self.command == START_MOVEMENT:
            message["movementType"] = self.movement_type.value
            message["handType"] = self.hand.value
        return message


@dataclass(frozen=True)
class Ack:
    """Acknowledgement from the capture unit."""

    command: str
    state: str


def encode_message(message: Mapping[str, Any]) -> str:
    """Serialize ``message`` as one compact JSON line (without newline)."""
    return json.dumps(dict(message), separators=(",", ":"), sort_keys=True)


def decode_line(line: str | bytes) -> Dict[str, Any]:
    """Parse one JSON line into a message mapping."""
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    text = line.strip()
    if not text:
        raise MalformedCommand("empty message")
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedCommand(f"invalid JSON: {exc.msg}") from None
    if not isinstance(obj, dict):
        raise MalformedCommand(f"expected an object, got {type(obj).__name__}")
    return obj


def parse_command(message: Any) -> RelayCommand:
    """
    Validate ``message`` and return the command it carries.

    Raises :class:`MalformedCommand` for anything that is not one of the four
    known verbs, or a movement start with an unknown type/hand tag. Missing
    ``movementType``/``handType`` fall back to ``unknown``/``right_hand``.
    """
    if not isinstance(message, Mapping):
        raise MalformedCommand(f"expected a mapping, got {type(message).__name__}")
    command = message.get("command")
    if not isinstance(command, str) or command not in COMMANDS:
        raise MalformedCommand(f"unrecognised command {command!r}")
    if command != START_MOVEMENT:
        return RelayCommand(command)

    try:
        movement_type = MovementType.from_tag(message.get("movementType") or MovementType.UNKNOWN.value)
        hand = Hand.from_tag(message.get("handType") or Hand.RIGHT.value)
    except ValueError as exc:
        raise MalformedCommand(str(exc)) from None
    return RelayCommand(command, movement_type=movement_type, hand=hand)


def ack_message(command: str, state: str) -> Dict[str, Any]:
    return {"command": ACK, "ack": command, "state": state}


def parse_ack(message: Any) -> Optional[Ack]:
    """Return the :class:`Ack` in ``message`` or ``None`` if it is not one."""
    if not isinstance(message, Mapping) or message.get("command") != ACK:
        return None
    command = message.get("ack")
    state = message.get("state")
    if not isinstance(command, str) or not isinstance(state, str):
        return None
    return Ack(command=command, state=state)


class ConnectivityStatus(Enum):
    """Reachability of the capture unit as seen from the controller."""

    NOT_SUPPORTED = "notSupported"
    NOT_PAIRED = "notPaired"
    NOT_INSTALLED = "notInstalled"
    NOT_REACHABLE = "notReachable"
    REACHABLE = "reachable"

    @property
    def title(self) -> str:
        return _STATUS_TEXT[self][0]

    @property
    def description(self) -> str:
        return _STATUS_TEXT[self][1]

    @property
    def color(self) -> str:
        if self is ConnectivityStatus.REACHABLE:
            return "green"
        if self is ConnectivityStatus.NOT_REACHABLE:
            return "yellow"
        return "red"

    @property
    def can_send(self) -> bool:
        return self is ConnectivityStatus.REACHABLE


_STATUS_TEXT = {
    ConnectivityStatus.NOT_SUPPORTED: (
        "Not supported",
        "This machine has no transport to talk to a capture unit.",
    ),
    ConnectivityStatus.NOT_PAIRED: (
        "Not paired",
        "No capture unit is configured for this controller.",
    ),
    ConnectivityStatus.NOT_INSTALLED: (
        "Listener not installed",
        "The capture unit is configured but the listener is missing on it.",
    ),
    ConnectivityStatus.NOT_REACHABLE: (
        "Not reachable",
        "The capture unit is configured but cannot be reached right now.",
    ),
    ConnectivityStatus.REACHABLE: (
        "Connected",
        "The capture unit is reachable and ready for commands.",
    ),
}


def derive_status(*, supported: bool, paired: bool, installed: bool, reachable: bool) -> ConnectivityStatus:
    """Collapse the four transport flags into one status, first failure wins."""
    if not supported:
        return ConnectivityStatus.NOT_SUPPORTED
    if not paired:
        return ConnectivityStatus.NOT_PAIRED
    if not installed:
        return ConnectivityStatus.NOT_INSTALLED
    if not reachable:
        return ConnectivityStatus.NOT_REACHABLE
    return ConnectivityStatus.REACHABLE


__all__ = [
    "START_SESSION",
    "END_SESSION",
    "START_MOVEMENT",
    "STOP_MOVEMENT",
    "ACK",
    "COMMANDS",
    "RelayCommand",
    "Ack",
    "encode_message",
    "decode_line",
    "parse_command",
    "ack_message",
    "parse_ack",
    "ConnectivityStatus",
    "derive_status",
]
