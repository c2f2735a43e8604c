"""Error kinds surfaced by the capture pipeline and the relay protocol."""

from __future__ import annotations


class CaptureError(RuntimeError):
    """Base class for recoverable capture/relay failures."""


class SensorUnavailable(CaptureError):
    """The sensor source could not be opened; no readings were produced."""


class NoActiveSession(CaptureError):
    """A movement was requested while no session is open."""


class ChannelUnreachable(CaptureError):
    """The relay peer cannot be reached (or the send itself failed)."""


class PersistenceFailure(CaptureError):
    """Saving a finished session failed.

    The in-memory state has already moved on; the caller still holds the
    session (``TransitionResult.session``) and may retry the save itself.
    """


class MalformedCommand(ValueError):
    """A relay message could not be decoded into a known command."""


__all__ = [
    "CaptureError",
    "SensorUnavailable",
    "NoActiveSession",
    "ChannelUnreachable",
    "PersistenceFailure",
    "MalformedCommand",
]
