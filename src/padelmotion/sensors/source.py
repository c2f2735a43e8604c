"""Pluggable sensor sources polled by :class:`~padelmotion.core.sample_stream.SampleStream`."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Protocol, Sequence

from ..core.errors import SensorUnavailable
from .motion import MotionReading, parse_line

logger = logging.getLogger(__name__)


class SensorSource(Protocol):
    """
    Minimal driver interface.

    ``open()`` raises :class:`SensorUnavailable` when the hardware (or file)
    cannot be used. ``read()`` returns the newest reading, or ``None`` when no
    new reading is ready yet. ``exhausted`` turns true when a finite source has
    nothing more to give.
    """

    def open(self) -> None:  # pragma: no cover - protocol
        ...

    def read(self) -> Optional[MotionReading]:  # pragma: no cover - protocol
        ...

    def close(self) -> None:  # pragma: no cover - protocol
        ...

    @property
    def exhausted(self) -> bool:  # pragma: no cover - protocol
        ...


class ReplaySource:
    """
    Replays a fixed list of readings.

    With ``loop=True`` the sequence restarts after the last reading and every
    pass is shifted forward in time so sensor timestamps keep increasing.
    Without it, reopening an exhausted source replays it from the start.
    """

    def __init__(self, readings: Sequence[MotionReading], *, loop: bool = False, period_s: float = 1.0 / 60.0) -> None:
        self._readings: List[MotionReading] = list(readings)
        self._loop = bool(loop)
        self._period_s = float(period_s)
        self._pos = 0
        self._offset = 0.0
        self._opened = False

    def open(self) -> None:
        if not self._readings:
            raise SensorUnavailable("Replay source has no readings")
        if self.exhausted:
            # A finished one-shot replay starts over for the next movement.
            self._pos = 0
        self._opened = True

    def read(self) -> Optional[MotionReading]:
        if not self._opened:
            return None
        if self._pos >= len(self._readings):
            if not self._loop:
                return None
            span = self._readings[-1].timestamp - self._readings[0].timestamp
            self._offset += span + self._period_s
            self._pos = 0
        reading = self._readings[self._pos]
        self._pos += 1
        if self._offset:
            reading = _shift(reading, self._offset)
        return reading

    def close(self) -> None:
        self._opened = False

    @property
    def exhausted(self) -> bool:
        return not self._loop and self._pos >= len(self._readings)


class LineSource(ReplaySource):
    """Replay source loaded from a JSONL or CSV recording on disk."""

    def __init__(self, path: Path | str, *, loop: bool = False, period_s: float = 1.0 / 60.0) -> None:
        super().__init__([], loop=loop, period_s=period_s)
        self.path = Path(path)

    def open(self) -> None:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                self._readings = list(_parse_lines(fh))
        except OSError as exc:
            raise SensorUnavailable(f"Cannot open motion recording {self.path}: {exc}") from exc
        logger.info("Loaded %d readings from %s", len(self._readings), self.path)
        super().open()


class UnavailableSource:
    """Stand-in for hardware that is missing on this machine."""

    def __init__(self, reason: str = "No motion sensor available") -> None:
        self.reason = reason

    def open(self) -> None:
        raise SensorUnavailable(self.reason)

    def read(self) -> Optional[MotionReading]:
        return None

    def close(self) -> None:
        return None

    @property
    def exhausted(self) -> bool:
        return True


def _parse_lines(lines: Iterable[str]) -> Iterator[MotionReading]:
    for line in lines:
        reading = parse_line(line)
        if reading is not None:
            yield reading


def _shift(reading: MotionReading, offset: float) -> MotionReading:
    return MotionReading(
        timestamp=reading.timestamp + offset,
        user_acceleration=reading.user_acceleration,
        rotation_rate=reading.rotation_rate,
        attitude_euler=reading.attitude_euler,
        attitude_quaternion=reading.attitude_quaternion,
        gravity=reading.gravity,
        magnetic_field=reading.magnetic_field,
    )


__all__ = ["SensorSource", "ReplaySource", "LineSource", "UnavailableSource"]
