"""Fixed-rate, single-worker delivery of motion readings."""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Callable, Optional

from ..sensors.motion import MotionReading
from ..tools.debug import debug_enabled
from .errors import SensorUnavailable

if TYPE_CHECKING:  # pragma: no cover
    from ..sensors.source import SensorSource

logger = logging.getLogger(__name__)

DEFAULT_RATE_HZ = 60.0

ReadingCallback = Callable[[MotionReading], None]


def monotonic_controller(rate_hz: float):
    """Yield target monotonic_ns timestamps for a fixed sampling rate.

    Each step adds a fixed period to the *previous target* time, which keeps the
    long-term rate stable and avoids drift from small sleep() errors.
    """
    period = int(1e9 / rate_hz)
    next_t = time.monotonic_ns()
    while True:
        next_t += period
        yield next_t


class SampleStream:
    """
    Polls a :class:`SensorSource` at ``rate_hz`` on one dedicated thread.

    Readings are handed to the callback strictly one at a time and in sensor
    time order: invalid readings and readings whose timestamp goes backwards
    are dropped, never delivered. ``stop()`` is cooperative: it wakes the
    worker and joins it, but a callback that is already running finishes.
    """

    def __init__(
        self,
        source: "SensorSource",
        *,
        rate_hz: float = DEFAULT_RATE_HZ,
        stop_timeout_s: float = 1.0,
        name: str = "padelmotion-sample-stream",
    ) -> None:
        if rate_hz <= 0:
            raise ValueError(f"rate_hz must be > 0, got {rate_hz}")
        self.source = source
        self.rate_hz = float(rate_hz)
        self.stop_timeout_s = float(stop_timeout_s)
        self._name = name
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._lock = threading.Lock()
        self.delivered = 0
        self.dropped = 0

    @property
    def interval_s(self) -> float:
        return 1.0 / self.rate_hz

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self, callback: ReadingCallback) -> None:
        """
        Open the source and begin delivering readings.

        Raises :class:`SensorUnavailable` (and starts nothing) when the source
        cannot be opened.
        """
        with self._lock:
            if self.running:
                raise RuntimeError("SampleStream is already running")
            try:
                self.source.open()
            except SensorUnavailable:
                raise
            except Exception as exc:
                raise SensorUnavailable(f"Failed to open motion sensor: {exc}") from exc

            stop_event = threading.Event()
            self.delivered = 0
            self.dropped = 0
            thread = threading.Thread(
                target=self._run,
                args=(callback, stop_event),
                name=self._name,
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()
        logger.info("Sample stream started at %.1f Hz", self.rate_hz)

    def stop(self) -> None:
        """Stop future deliveries and wait (bounded) for the worker to exit."""
        with self._lock:
            thread, stop_event = self._thread, self._stop_event
            self._thread = None
            self._stop_event = None
        if stop_event is None:
            return
        stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(self.stop_timeout_s)
            if thread.is_alive():
                logger.warning(
                    "Sample stream worker still busy after %.2f s; a late reading may follow",
                    self.stop_timeout_s,
                )
        try:
            self.source.close()
        except Exception:
            logger.exception("Error closing motion sensor source")
        logger.info("Sample stream stopped (delivered=%d dropped=%d)", self.delivered, self.dropped)

    # ------------------------------------------------------------------ worker
    def _run(self, callback: ReadingCallback, stop_event: threading.Event) -> None:
        controller = monotonic_controller(self.rate_hz)
        last_ts: Optional[float] = None
        overruns = 0
        debug_on = debug_enabled()

        while not stop_event.is_set():
            target = next(controller)
            sleep_ns = target - time.monotonic_ns()
            if sleep_ns > 0:
                if stop_event.wait(sleep_ns / 1e9):
                    break
            else:
                overruns += 1
                if debug_on and overruns % 50 == 1:
                    logger.debug(
                        "Sample stream behind by %.3f ms (count=%d)", -sleep_ns / 1e6, overruns
                    )

            try:
                reading = self.source.read()
            except Exception:
                logger.exception("Error reading motion sensor")
                continue

            if reading is None:
                if self.source.exhausted:
                    logger.info("Motion source exhausted; sample stream idle")
                    break
                continue

            if not reading.is_valid():
                self.dropped += 1
                logger.warning("Dropping invalid motion reading at t=%r", reading.timestamp)
                continue
            if last_ts is not None and reading.timestamp < last_ts:
                self.dropped += 1
                logger.warning(
                    "Dropping out-of-order motion reading (%.6f < %.6f)", reading.timestamp, last_ts
                )
                continue
            last_ts = reading.timestamp

            # stop() may have been requested while reading the sensor.
            if stop_event.is_set():
                break
            try:
                callback(reading)
            except Exception:
                logger.exception("Error in sample stream callback")
            else:
                self.delivered += 1


__all__ = ["DEFAULT_RATE_HZ", "ReadingCallback", "SampleStream", "monotonic_controller"]
