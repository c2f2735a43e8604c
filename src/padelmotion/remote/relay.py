"""Controller and capture-unit ends of the relay protocol."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable, List, Mapping, Optional

from ..core.capture_manager import CaptureSessionManager, TransitionResult
from ..core.errors import ChannelUnreachable, MalformedCommand
from ..core.models import Hand, MovementType
from .channel import RelayChannel
from .protocol import (
    END_SESSION,
    START_MOVEMENT,
    START_SESSION,
    STOP_MOVEMENT,
    Ack,
    ConnectivityStatus,
    RelayCommand,
    ack_message,
    parse_ack,
    parse_command,
)

logger = logging.getLogger(__name__)

AckListener = Callable[[Ack], None]


class RelayController:
    """
    Sends recording verbs to the capture unit.

    Every send is gated on the channel's connectivity status and fails fast
    with :class:`ChannelUnreachable`; nothing is queued or retried.
    Acknowledgements may arrive on any thread and are recorded under a lock.
    """

    def __init__(self, channel: RelayChannel) -> None:
        self.channel = channel
        self._cond = threading.Condition()
        self._acks: List[Ack] = []
        self._listeners: List[AckListener] = []
        channel.set_handler(self._on_message)

    # ------------------------------------------------------------------ status
    @property
    def status(self) -> ConnectivityStatus:
        return self.channel.status()

    @property
    def last_ack(self) -> Optional[Ack]:
        with self._cond:
            return self._acks[-1] if self._acks else None

    @property
    def peer_state(self) -> Optional[str]:
        ack = self.last_ack
        return ack.state if ack is not None else None

    def add_ack_listener(self, listener: AckListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------ verbs
    def start_session(self) -> RelayCommand:
        return self.send(RelayCommand(START_SESSION))

    def start_movement(self, movement_type: MovementType, hand: Hand) -> RelayCommand:
        return self.send(RelayCommand(START_MOVEMENT, movement_type=movement_type, hand=hand))

    def stop_movement(self) -> RelayCommand:
        return self.send(RelayCommand(STOP_MOVEMENT))

    def end_session(self) -> RelayCommand:
        return self.send(RelayCommand(END_SESSION))

    def send(self, command: RelayCommand) -> RelayCommand:
        status = self.channel.status()
        if not status.can_send:
            logger.warning("Not sending %s: %s", command.command, status.title)
            raise ChannelUnreachable(f"Cannot send {command.command}: {status.description}")
        self.channel.send(command.to_message())
        logger.info("Sent %s", command.command)
        return command

    # ------------------------------------------------------------------ acks
    def wait_for_ack(self, command: str, timeout: float = 2.0, *, since: int = 0) -> Optional[Ack]:
        """
        Block until an ack for ``command`` newer than position ``since`` arrives.

        Returns ``None`` on timeout; a missing ack is not an error.
        """
        deadline = time.monotonic() + timeout
        with self._cond:
            while True:
                for ack in self._acks[since:]:
                    if ack.command == command:
                        return ack
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._cond.wait(remaining)

    @property
    def ack_count(self) -> int:
        with self._cond:
            return len(self._acks)

    def _on_message(self, message: Mapping[str, Any]) -> None:
        ack = parse_ack(message)
        if ack is None:
            logger.debug("Ignoring non-ack message from capture unit: %r", message)
            return
        with self._cond:
            self._acks.append(ack)
            self._cond.notify_all()
        logger.info("Capture unit acknowledged %s (state=%s)", ack.command, ack.state)
        for listener in list(self._listeners):
            try:
                listener(ack)
            except Exception:
                logger.exception("Ack listener %r failed", listener)


class RelayReceiver:
    """
    Capture-unit end: decodes inbound messages into manager transitions.

    :meth:`handle_message` may be called from any thread; the transition is
    marshalled onto the manager's owner context. Malformed and unknown
    messages are ignored without a reply. Repeated verbs are harmless because
    every transition is idempotent.
    """

    def __init__(self, manager: CaptureSessionManager, channel: RelayChannel | None = None) -> None:
        self.manager = manager
        self.channel = channel
        self.ignored = 0
        if channel is not None:
            channel.set_handler(self.handle_message)

    def handle_message(self, message: Any) -> Optional[Future]:
        try:
            command = parse_command(message)
        except MalformedCommand as exc:
            self.ignored += 1
            logger.warning("Ignoring relay message: %s", exc)
            return None
        return self.manager.owner.submit(self.apply, command)

    def apply(self, command: RelayCommand) -> TransitionResult:
        """Run ``command`` against the manager (owner thread only)."""
        manager = self.manager
        if command.command == START_SESSION:
            result = manager.start_session()
        elif command.command == START_MOVEMENT:
            result = manager.start_movement(command.movement_type, command.hand)
        elif command.command == STOP_MOVEMENT:
            result = manager.stop_movement()
        else:
            result = manager.end_session()

        if result.error is not None:
            logger.warning("%s reported %s: %s", command.command, type(result.error).__name__, result.error)
        self._acknowledge(command, result)
        return result

    def _acknowledge(self, command: RelayCommand, result: TransitionResult) -> None:
        if self.channel is None:
            return
        try:
            self.channel.send(ack_message(command.command, result.state.value))
        except ChannelUnreachable as exc:
            logger.warning("Ack for %s not delivered: %s", command.command, exc)


__all__ = ["AckListener", "RelayController", "RelayReceiver"]
