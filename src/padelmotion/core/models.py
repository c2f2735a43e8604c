"""Session / Movement / Sample records shared by capture, storage and analysis."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

Vector3 = Tuple[float, float, float]
Quaternion = Tuple[float, float, float, float]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class MovementType(str, Enum):
    """Stroke tag attached to every recorded movement."""

    FOREHAND = "forehand"
    BACKHAND = "backhand"
    VOLLEY = "volley"
    SERVE = "serve"
    SMASH = "smash"
    LOB = "lob"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        if self is MovementType.UNKNOWN:
            return ""
        return self.value.capitalize()

    @classmethod
    def from_tag(cls, value: Any) -> "MovementType":
        """Parse a wire tag (case-insensitive); raises ``ValueError`` if unknown."""
        text = str(value or "").strip().lower()
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown movement type {value!r}") from None


class Hand(str, Enum):
    """Hand holding the racket (and wearing the capture unit)."""

    LEFT = "left_hand"
    RIGHT = "right_hand"

    @property
    def label(self) -> str:
        return "Left hand" if self is Hand.LEFT else "Right hand"

    @classmethod
    def from_tag(cls, value: Any) -> "Hand":
        """Parse ``left_hand``/``right_hand`` plus the short ``left``/``right`` aliases."""
        text = str(value or "").strip().lower().replace("-", "_")
        if text in {"left", "l"}:
            text = cls.LEFT.value
        elif text in {"right", "r"}:
            text = cls.RIGHT.value
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown hand {value!r}") from None


@dataclass(frozen=True, slots=True)
class Sample:
    """One timestamped multi-axis reading that belongs to a movement."""

    movement_id: str
    timestamp: datetime
    sensor_timestamp: float
    relative_timestamp: float
    index: int
    user_acceleration_x: float = 0.0
    user_acceleration_y: float = 0.0
    user_acceleration_z: float = 0.0
    rotation_rate_x: float = 0.0
    rotation_rate_y: float = 0.0
    rotation_rate_z: float = 0.0
    attitude_pitch: float = 0.0
    attitude_roll: float = 0.0
    attitude_yaw: float = 0.0
    quaternion_x: float = 0.0
    quaternion_y: float = 0.0
    quaternion_z: float = 0.0
    quaternion_w: float = 1.0
    gravity_x: float = 0.0
    gravity_y: float = 0.0
    gravity_z: float = 0.0
    magnetic_field_x: float = 0.0
    magnetic_field_y: float = 0.0
    magnetic_field_z: float = 0.0

    @property
    def user_acceleration(self) -> Vector3:
        return (self.user_acceleration_x, self.user_acceleration_y, self.user_acceleration_z)

    @property
    def quaternion(self) -> Quaternion:
        return (self.quaternion_x, self.quaternion_y, self.quaternion_z, self.quaternion_w)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Sample":
        known = {f.name for f in fields(cls)}
        payload = {key: data[key] for key in data.keys() & known}
        payload["timestamp"] = datetime.fromisoformat(str(payload["timestamp"]))
        payload["index"] = int(payload["index"])
        return cls(**payload)


@dataclass(eq=False)
class Movement:
    """
    A single recorded stroke.

    The sample list is empty while the movement is recording and is set exactly
    once by :meth:`finalize`, which also checks the ordering invariant: indices
    strictly increasing, sensor timestamps non-decreasing.
    """

    session_id: str
    movement_type: MovementType = MovementType.UNKNOWN
    hand: Hand = Hand.RIGHT
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_utcnow)
    _samples: Tuple[Sample, ...] = field(default=(), repr=False)
    _finalized: bool = field(default=False, repr=False)

    @property
    def samples(self) -> Tuple[Sample, ...]:
        return self._samples

    @property
    def finalized(self) -> bool:
        return self._finalized

    def finalize(self, samples: Iterable[Sample]) -> None:
        if self._finalized:
            raise RuntimeError(f"Movement {self.id} is already finalized")
        ordered = tuple(samples)
        _check_sample_order(ordered)
        self._samples = ordered
        self._finalized = True

    def ordered_samples(self) -> List[Sample]:
        """Samples in index order (the stable view used by export)."""
        return sorted(self._samples, key=lambda s: s.index)

    @property
    def duration(self) -> float:
        if len(self._samples) < 2:
            return 0.0
        return self._samples[-1].sensor_timestamp - self._samples[0].sensor_timestamp

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "timestamp": self.timestamp.isoformat(),
            "movement_type": self.movement_type.value,
            "hand": self.hand.value,
            "samples": [s.to_dict() for s in self._samples],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Movement":
        movement = cls(
            session_id=str(data["session_id"]),
            movement_type=MovementType.from_tag(data.get("movement_type", "unknown")),
            hand=Hand.from_tag(data.get("hand", Hand.RIGHT.value)),
            id=str(data["id"]),
            timestamp=datetime.fromisoformat(str(data["timestamp"])),
        )
        movement.finalize(Sample.from_dict(item) for item in data.get("samples") or [])
        return movement


@dataclass(eq=False)
class Session:
    """Top-level recording: an ordered list of movements, frozen once ended."""

    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_utcnow)
    _movements: List[Movement] = field(default_factory=list, repr=False)
    _ended: bool = field(default=False, repr=False)

    @property
    def movements(self) -> Tuple[Movement, ...]:
        return tuple(self._movements)

    @property
    def ended(self) -> bool:
        return self._ended

    def add_movement(self, movement: Movement) -> None:
        if self._ended:
            raise RuntimeError(f"Session {self.id} has ended and can no longer change")
        if movement.session_id != self.id:
            raise ValueError(
                f"Movement {movement.id} belongs to session {movement.session_id}, not {self.id}"
            )
        self._movements.append(movement)

    def end(self) -> None:
        self._ended = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "movements": [m.to_dict() for m in self._movements],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Session":
        session = cls(
            id=str(data["id"]),
            timestamp=datetime.fromisoformat(str(data["timestamp"])),
        )
        for item in data.get("movements") or []:
            session.add_movement(Movement.from_dict(item))
        session.end()
        return session


def _check_sample_order(samples: Tuple[Sample, ...]) -> None:
    previous: Optional[Sample] = None
    for sample in samples:
        if previous is not None:
            if sample.index <= previous.index:
                raise ValueError(
                    f"Sample indices must strictly increase ({previous.index} -> {sample.index})"
                )
            if sample.sensor_timestamp < previous.sensor_timestamp:
                raise ValueError(
                    "Sample sensor timestamps must not decrease "
                    f"({previous.sensor_timestamp} -> {sample.sensor_timestamp})"
                )
        previous = sample


__all__ = [
    "Vector3",
    "Quaternion",
    "MovementType",
    "Hand",
    "Sample",
    "Movement",
    "Session",
]
