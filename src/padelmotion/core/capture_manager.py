"""Session / movement lifecycle state machine for the capture unit."""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Protocol, Tuple

from ..sensors.motion import MotionReading
from .errors import CaptureError, NoActiveSession, PersistenceFailure, SensorUnavailable
from .models import Hand, Movement, MovementType, Sample, Session
from .owner import OwnerContext
from .sample_buffer import SampleAccumulator
from .sample_builder import MotionSampleBuilder
from .sample_stream import SampleStream

logger = logging.getLogger(__name__)


class CaptureState(str, Enum):
    IDLE = "idle"
    SESSION_ACTIVE = "sessionActive"
    MOVEMENT_ACTIVE = "movementActive"


class Feedback(str, Enum):
    """Physical (haptic) cue played when a movement starts or stops."""

    START = "start"
    STOP = "stop"


class SessionStore(Protocol):
    """Persistence collaborator used once per session, at its end."""

    def insert(self, session: Session) -> None:  # pragma: no cover - protocol
        ...

    def save(self) -> None:  # pragma: no cover - protocol
        ...


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a transition request; errors are values, not exceptions."""

    state: CaptureState
    changed: bool
    error: Optional[CaptureError] = None
    session: Optional[Session] = None
    movement: Optional[Movement] = None

    @property
    def ok(self) -> bool:
        return self.error is None


StateListener = Callable[[CaptureState, CaptureState], None]
FeedbackFn = Callable[[Feedback], None]


def _log_feedback(kind: Feedback) -> None:
    logger.debug("Feedback: %s", kind.value)


class CaptureSessionManager:
    """
    Owns the current session, the movement being recorded and its sample buffer.

    All public transitions must be called on the owner thread of ``owner``.
    Readings from the sample stream arrive on the stream's worker thread; they
    are queued in an inbox and folded into samples on the owner thread by
    :meth:`process_readings` (scheduled automatically through the owner).

    Readings are tagged with the stream generation that produced them. A
    movement accepts every reading its own stream delivered before ``stop()``
    returned (they were captured before the stop instant) and discards
    anything from an older generation.
    """

    def __init__(
        self,
        stream: SampleStream,
        store: SessionStore,
        *,
        owner: OwnerContext | None = None,
        builder: MotionSampleBuilder | None = None,
        feedback: FeedbackFn | None = None,
    ) -> None:
        self.stream = stream
        self.store = store
        self.owner = owner or OwnerContext()
        self.builder = builder or MotionSampleBuilder()
        self._feedback = feedback or _log_feedback

        self._state = CaptureState.IDLE
        self._session: Optional[Session] = None
        self._movement: Optional[Movement] = None
        self._buffer: SampleAccumulator[Sample] = SampleAccumulator()
        self._inbox: "queue.SimpleQueue[Tuple[int, MotionReading]]" = queue.SimpleQueue()
        self._generation = 0
        self._listeners: List[StateListener] = []
        self.discarded_readings = 0

    # ------------------------------------------------------------------ views
    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def current_session(self) -> Optional[Session]:
        return self._session

    @property
    def current_movement(self) -> Optional[Movement]:
        return self._movement

    @property
    def buffered_samples(self) -> int:
        return len(self._buffer)

    def add_state_listener(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener(old, new)``; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # ------------------------------------------------------------------ transitions
    def start_session(self) -> TransitionResult:
        self.owner.require_owner("start_session")
        if self._session is not None:
            logger.info("start_session ignored: session %s already active", self._session.id)
            return self._unchanged()

        self._session = Session()
        self._movement = None
        self._buffer.clear()
        logger.info("Session %s started", self._session.id)
        self._set_state(CaptureState.SESSION_ACTIVE)
        return TransitionResult(self._state, True, session=self._session)

    def start_movement(
        self,
        movement_type: MovementType = MovementType.UNKNOWN,
        hand: Hand = Hand.RIGHT,
    ) -> TransitionResult:
        self.owner.require_owner("start_movement")
        if self._state is CaptureState.MOVEMENT_ACTIVE:
            logger.info("start_movement ignored: movement %s still recording", self._movement and self._movement.id)
            return self._unchanged()
        if self._session is None:
            error = NoActiveSession("Cannot start a movement without an active session")
            logger.warning("%s", error)
            return TransitionResult(self._state, False, error=error)

        movement = Movement(session_id=self._session.id, movement_type=movement_type, hand=hand)
        self.builder.reset()
        self._buffer.clear()
        self._generation += 1
        generation = self._generation
        try:
            self.stream.start(lambda reading: self._on_stream_reading(generation, reading))
        except SensorUnavailable as exc:
            logger.error("Movement not started: %s", exc)
            return TransitionResult(self._state, False, error=exc, session=self._session)

        self._movement = movement
        logger.info("Movement %s (%s, %s) started", movement.id, movement_type.value, hand.value)
        self._play(Feedback.START)
        self._set_state(CaptureState.MOVEMENT_ACTIVE)
        return TransitionResult(self._state, True, session=self._session, movement=movement)

    def stop_movement(self) -> TransitionResult:
        self.owner.require_owner("stop_movement")
        session, movement = self._session, self._movement
        if self._state is not CaptureState.MOVEMENT_ACTIVE or session is None or movement is None:
            logger.info("stop_movement ignored: no movement recording")
            return self._unchanged()

        self.stream.stop()
        self.process_readings()
        # Anything the old stream still manages to deliver is now stale.
        self._generation += 1

        movement.finalize(self._buffer.take())
        session.add_movement(movement)
        self._movement = None
        logger.info("Movement %s stopped with %d samples", movement.id, len(movement.samples))
        self._play(Feedback.STOP)
        self._set_state(CaptureState.SESSION_ACTIVE)
        return TransitionResult(self._state, True, session=session, movement=movement)

    def end_session(self) -> TransitionResult:
        self.owner.require_owner("end_session")
        session = self._session
        if session is None:
            logger.info("end_session ignored: no active session")
            return self._unchanged()

        if self._state is CaptureState.MOVEMENT_ACTIVE:
            logger.info("Finalizing in-flight movement before ending session %s", session.id)
            self.stop_movement()

        session.end()
        error: Optional[PersistenceFailure] = None
        try:
            self.store.insert(session)
            self.store.save()
        except Exception as exc:
            error = PersistenceFailure(f"Failed to save session {session.id}: {exc}")
            error.__cause__ = exc
            logger.error("%s", error)
        else:
            logger.info("Session %s saved with %d movements", session.id, len(session.movements))

        self._session = None
        self._movement = None
        self._buffer.clear()
        self._set_state(CaptureState.IDLE)
        return TransitionResult(self._state, True, error=error, session=session)

    def shutdown(self) -> Optional[TransitionResult]:
        """Application teardown: end (and save) whatever is still open."""
        self.owner.require_owner("shutdown")
        if self._session is None:
            self.stream.stop()
            return None
        return self.end_session()

    # ------------------------------------------------------------------ readings
    def process_readings(self) -> int:
        """Fold queued stream readings into the active movement's buffer."""
        self.owner.require_owner("process_readings")
        accepted = 0
        while True:
            try:
                generation, reading = self._inbox.get_nowait()
            except queue.Empty:
                break
            movement = self._movement
            if movement is None or generation != self._generation:
                self.discarded_readings += 1
                logger.debug("Discarding reading from stale stream generation %d", generation)
                continue
            self._buffer.append(self.builder.ingest(reading, movement.id))
            accepted += 1
        return accepted

    def _on_stream_reading(self, generation: int, reading: MotionReading) -> None:
        # Runs on the stream worker: no state is touched here.
        self._inbox.put((generation, reading))
        self.owner.submit(self.process_readings)

    # ------------------------------------------------------------------ helpers
    def _unchanged(self) -> TransitionResult:
        return TransitionResult(self._state, False, session=self._session, movement=self._movement)

    def _play(self, kind: Feedback) -> None:
        try:
            self._feedback(kind)
        except Exception:
            logger.exception("Feedback callback failed for %s", kind.value)

    def _set_state(self, new_state: CaptureState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        logger.info("Capture state %s -> %s", old_state.value, new_state.value)
        for listener in list(self._listeners):
            try:
                listener(old_state, new_state)
            except Exception:
                logger.exception("State listener %r failed", listener)


__all__ = [
    "CaptureState",
    "Feedback",
    "SessionStore",
    "TransitionResult",
    "StateListener",
    "CaptureSessionManager",
]
