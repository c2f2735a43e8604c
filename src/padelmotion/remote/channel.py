"""Best-effort message channels used by the relay.

A channel moves flat JSON messages between the controller and the capture
unit. Delivery is fire-and-forget: nothing is retried, lost messages stay
lost, and :meth:`RelayChannel.send` fails fast with
:class:`~padelmotion.core.errors.ChannelUnreachable` when the peer cannot be
reached.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, BinaryIO, Callable, Dict, Mapping, Optional, Protocol, TextIO, Tuple

from ..core.errors import ChannelUnreachable, MalformedCommand
from .protocol import ConnectivityStatus, decode_line, derive_status, encode_message

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Dict[str, Any]], None]


class RelayChannel(Protocol):
    def send(self, message: Mapping[str, Any]) -> None:  # pragma: no cover - protocol
        ...

    def set_handler(self, handler: Optional[MessageHandler]) -> None:  # pragma: no cover - protocol
        ...

    def status(self) -> ConnectivityStatus:  # pragma: no cover - protocol
        ...


class LoopbackChannel:
    """
    In-process channel endpoint; create connected endpoints with :meth:`pair`.

    Messages round-trip through JSON and are delivered synchronously to the
    peer's handler on the sender's thread. ``drop_next`` and ``duplicate``
    simulate an unreliable link; the connectivity flags feed
    :func:`derive_status`.
    """

    def __init__(self, name: str = "loopback") -> None:
        self.name = name
        self.peer: Optional["LoopbackChannel"] = None
        self.supported = True
        self.paired = True
        self.installed = True
        self.reachable = True
        self.duplicate = False
        self._drop_next = 0
        self._handler: Optional[MessageHandler] = None
        self.sent = 0
        self.dropped = 0

    @classmethod
    def pair(cls) -> Tuple["LoopbackChannel", "LoopbackChannel"]:
        a, b = cls("controller"), cls("capture")
        a.peer, b.peer = b, a
        return a, b

    def set_handler(self, handler: Optional[MessageHandler]) -> None:
        self._handler = handler

    def drop_next(self, count: int = 1) -> None:
        self._drop_next += max(0, int(count))

    def status(self) -> ConnectivityStatus:
        return derive_status(
            supported=self.supported,
            paired=self.paired and self.peer is not None,
            installed=self.installed,
            reachable=self.reachable,
        )

    def send(self, message: Mapping[str, Any]) -> None:
        status = self.status()
        peer = self.peer
        if not status.can_send or peer is None:
            raise ChannelUnreachable(f"{self.name}: {status.title}")
        self.sent += 1
        if self._drop_next > 0:
            self._drop_next -= 1
            self.dropped += 1
            logger.debug("%s dropped %r", self.name, message)
            return
        line = encode_message(message)
        copies = 2 if self.duplicate else 1
        for _ in range(copies):
            peer._deliver(json.loads(line))

    def _deliver(self, message: Dict[str, Any]) -> None:
        handler = self._handler
        if handler is None:
            logger.debug("%s has no handler; message lost: %r", self.name, message)
            return
        try:
            handler(message)
        except Exception:
            logger.exception("%s handler failed for %r", self.name, message)


class StreamChannel:
    """
    Channel over a pair of streams carrying one JSON message per line.

    Used by the capture-unit listener (stdin/stdout). :meth:`serve` reads until
    EOF and dispatches each decoded message to the handler; undecodable lines
    are logged and skipped.
    """

    def __init__(self, reader: TextIO | BinaryIO, writer: TextIO) -> None:
        self._reader = reader
        self._writer = writer
        self._write_lock = threading.Lock()
        self._handler: Optional[MessageHandler] = None
        self._closed = False

    def set_handler(self, handler: Optional[MessageHandler]) -> None:
        self._handler = handler

    def status(self) -> ConnectivityStatus:
        return derive_status(supported=True, paired=True, installed=True, reachable=not self._closed)

    def send(self, message: Mapping[str, Any]) -> None:
        if self._closed:
            raise ChannelUnreachable("stream channel is closed")
        line = encode_message(message)
        with self._write_lock:
            try:
                self._writer.write(line + "\n")
                self._writer.flush()
            except (OSError, ValueError) as exc:
                self._closed = True
                raise ChannelUnreachable(f"write failed: {exc}") from exc

    def serve(self) -> int:
        """Dispatch incoming lines until EOF; returns the number dispatched."""
        dispatched = 0
        # Read raw bytes when the stream has them so invalid UTF-8 only spoils
        # its own line; decode_line replaces undecodable bytes.
        lines = getattr(self._reader, "buffer", self._reader)
        for raw in lines:
            if not raw.strip():
                continue
            try:
                message = decode_line(raw)
            except MalformedCommand as exc:
                logger.warning("Ignoring undecodable line: %s", exc)
                continue
            handler = self._handler
            if handler is None:
                continue
            try:
                handler(message)
            except Exception:
                logger.exception("Relay handler failed for %r", message)
            else:
                dispatched += 1
        logger.info("Relay input closed after %d messages", dispatched)
        return dispatched

    def close(self) -> None:
        self._closed = True


__all__ = ["MessageHandler", "RelayChannel", "LoopbackChannel", "StreamChannel"]
