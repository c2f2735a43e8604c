"""
Device-motion readings as produced by the wrist-worn capture unit.

A reading carries (device units):

  - timestamp          : float  sensor clock, seconds, monotonic
  - user_acceleration  : m/s², gravity removed
  - rotation_rate      : rad/s
  - attitude_euler     : (pitch, roll, yaw) in radians
  - attitude_quaternion: (x, y, z, w), unit length
  - gravity            : gravity vector
  - magnetic_field     : µT

``parse_line()`` accepts JSON lines (nested vectors or the flat export column
names) and comma-separated rows, either the 23-column movement export layout
or the compact 20-column ``sensorTimestamp,userAccX,...,magFieldZ`` layout.
Rows that are incomplete or contain non-finite values are rejected: a reading
is either whole or not delivered at all.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

Vector3 = Tuple[float, float, float]
Quaternion = Tuple[float, float, float, float]

IDENTITY_QUATERNION: Quaternion = (0.0, 0.0, 0.0, 1.0)
ZERO3: Vector3 = (0.0, 0.0, 0.0)

# Column names shared with the movement CSV export.
EXPORT_COLUMNS: Tuple[str, ...] = (
    "index",
    "timestamp",
    "sensorTimestamp",
    "relativeTimestamp",
    "userAccX",
    "userAccY",
    "userAccZ",
    "rotRateX",
    "rotRateY",
    "rotRateZ",
    "attitudePitch",
    "attitudeRoll",
    "attitudeYaw",
    "quatX",
    "quatY",
    "quatZ",
    "quatW",
    "gravityX",
    "gravityY",
    "gravityZ",
    "magFieldX",
    "magFieldY",
    "magFieldZ",
)
_VALUE_COLUMNS = EXPORT_COLUMNS[4:]


@dataclass(frozen=True, slots=True)
class MotionReading:
    timestamp: float
    user_acceleration: Vector3 = ZERO3
    rotation_rate: Vector3 = ZERO3
    attitude_euler: Vector3 = ZERO3
    attitude_quaternion: Quaternion = IDENTITY_QUATERNION
    gravity: Vector3 = ZERO3
    magnetic_field: Vector3 = ZERO3

    def is_valid(self) -> bool:
        """True when every component is finite and the quaternion is non-zero."""
        values = (
            self.timestamp,
            *self.user_acceleration,
            *self.rotation_rate,
            *self.attitude_euler,
            *self.attitude_quaternion,
            *self.gravity,
            *self.magnetic_field,
        )
        if not all(math.isfinite(v) for v in values):
            return False
        return any(q != 0.0 for q in self.attitude_quaternion)


def reading_from_values(timestamp: float, values: Sequence[float]) -> MotionReading:
    """Build a reading from the 19 value columns in export order."""
    if len(values) != len(_VALUE_COLUMNS):
        raise ValueError(f"Expected {len(_VALUE_COLUMNS)} values, got {len(values)}")
    v = [float(x) for x in values]
    return MotionReading(
        timestamp=float(timestamp),
        user_acceleration=(v[0], v[1], v[2]),
        rotation_rate=(v[3], v[4], v[5]),
        attitude_euler=(v[6], v[7], v[8]),
        attitude_quaternion=(v[9], v[10], v[11], v[12]),
        gravity=(v[13], v[14], v[15]),
        magnetic_field=(v[16], v[17], v[18]),
    )


def _vector(obj: Mapping[str, Any], key: str, size: int, default: Sequence[float]) -> Tuple[float, ...]:
    raw = obj.get(key)
    if raw is None:
        return tuple(float(x) for x in default)
    if isinstance(raw, Mapping):
        names = ("x", "y", "z", "w")[:size]
        if key == "attitude":
            names = ("pitch", "roll", "yaw")
        return tuple(float(raw.get(name, d)) for name, d in zip(names, default))
    items = list(raw)
    if len(items) != size:
        raise ValueError(f"{key} must have {size} components, got {len(items)}")
    return tuple(float(x) for x in items)


def _parse_json_line(text: str) -> MotionReading | None:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Bad JSON from motion stream: %r (%s)", text, exc)
        return None
    if not isinstance(obj, Mapping):
        logger.warning("Motion line is not a JSON object: %r", text)
        return None

    ts_raw = obj.get("timestamp", obj.get("sensorTimestamp"))
    if ts_raw is None:
        logger.warning("Missing field %s in motion line: %r", "timestamp", obj)
        return None

    try:
        if "userAccX" in obj:
            values = [float(obj.get(name, d)) for name, d in zip(_VALUE_COLUMNS, _flat_defaults())]
            return reading_from_values(float(ts_raw), values)
        return MotionReading(
            timestamp=float(ts_raw),
            user_acceleration=_vector(obj, "user_acceleration", 3, ZERO3),  # type: ignore[arg-type]
            rotation_rate=_vector(obj, "rotation_rate", 3, ZERO3),  # type: ignore[arg-type]
            attitude_euler=_vector(obj, "attitude", 3, ZERO3),  # type: ignore[arg-type]
            attitude_quaternion=_vector(obj, "quaternion", 4, IDENTITY_QUATERNION),  # type: ignore[arg-type]
            gravity=_vector(obj, "gravity", 3, ZERO3),  # type: ignore[arg-type]
            magnetic_field=_vector(obj, "magnetic_field", 3, ZERO3),  # type: ignore[arg-type]
        )
    except (TypeError, ValueError) as exc:
        logger.warning("Bad field value in motion line %r (%s)", obj, exc)
        return None


def _flat_defaults() -> Tuple[float, ...]:
    # quatW defaults to 1 so a flat record without attitude is the identity.
    return (0.0,) * 12 + (1.0,) + (0.0,) * 6


def _parse_csv_line(text: str) -> MotionReading | None:
    parts = [p.strip() for p in text.split(",")]
    if len(parts) == len(EXPORT_COLUMNS):
        ts_token, value_tokens = parts[2], parts[4:]
    elif len(parts) == len(_VALUE_COLUMNS) + 1:
        ts_token, value_tokens = parts[0], parts[1:]
    else:
        logger.warning(
            "Expected %d or %d comma-separated values for a motion row, got %d: %r",
            len(EXPORT_COLUMNS),
            len(_VALUE_COLUMNS) + 1,
            len(parts),
            text,
        )
        return None
    try:
        return reading_from_values(float(ts_token), [float(p) for p in value_tokens])
    except ValueError as exc:
        logger.warning("Bad CSV field in motion row %r (%s)", text, exc)
        return None


def parse_line(line: str) -> MotionReading | None:
    """
    Parse one text line into a :class:`MotionReading`.

    Header rows, blank lines and invalid lines return ``None`` so callers can
    skip them without raising.
    """
    text = line.strip()
    if not text:
        return None
    if text.startswith(EXPORT_COLUMNS[0] + ",") or text.startswith("sensorTimestamp,"):
        return None

    if text[0] == "{":
        reading = _parse_json_line(text)
    else:
        reading = _parse_csv_line(text)

    if reading is not None and not reading.is_valid():
        logger.warning("Dropping non-finite motion reading: %r", text)
        return None
    return reading


def reading_to_json(reading: MotionReading) -> str:
    """Serialize a reading as one compact JSON line (inverse of :func:`parse_line`)."""
    payload = {
        "timestamp": reading.timestamp,
        "user_acceleration": list(reading.user_acceleration),
        "rotation_rate": list(reading.rotation_rate),
        "attitude": list(reading.attitude_euler),
        "quaternion": list(reading.attitude_quaternion),
        "gravity": list(reading.gravity),
        "magnetic_field": list(reading.magnetic_field),
    }
    return json.dumps(payload, separators=(",", ":"))


__all__ = [
    "EXPORT_COLUMNS",
    "IDENTITY_QUATERNION",
    "MotionReading",
    "parse_line",
    "reading_from_values",
    "reading_to_json",
]
