"""Core capture pipeline: models, sample stream and the session state machine.

Readings flow from a :class:`SampleStream` worker into the
:class:`CaptureSessionManager`, which folds them into samples on its owner
thread and hands finished sessions to a persistence store.
"""

from .capture_manager import (
    CaptureSessionManager,
    CaptureState,
    Feedback,
    SessionStore,
    TransitionResult,
)
from .errors import (
    CaptureError,
    ChannelUnreachable,
    MalformedCommand,
    NoActiveSession,
    PersistenceFailure,
    SensorUnavailable,
)
from .models import Hand, Movement, MovementType, Sample, Session
from .owner import OwnerContext
from .sample_buffer import SampleAccumulator
from .sample_builder import MotionSampleBuilder
from .sample_stream import SampleStream

__all__ = [
    "CaptureSessionManager",
    "CaptureState",
    "Feedback",
    "SessionStore",
    "TransitionResult",
    "CaptureError",
    "ChannelUnreachable",
    "MalformedCommand",
    "NoActiveSession",
    "PersistenceFailure",
    "SensorUnavailable",
    "Hand",
    "Movement",
    "MovementType",
    "Sample",
    "Session",
    "OwnerContext",
    "SampleAccumulator",
    "MotionSampleBuilder",
    "SampleStream",
]
