"""Sensor-side data models and sources.

:mod:`motion` defines :class:`MotionReading` and the line parser for recorded
device-motion streams; :mod:`source` provides the driver interface polled by
the sample stream together with replay/file sources used on machines without
the wrist unit's hardware.
"""

from .motion import EXPORT_COLUMNS, IDENTITY_QUATERNION, MotionReading, parse_line
from .source import LineSource, ReplaySource, SensorSource, UnavailableSource

__all__ = [
    "EXPORT_COLUMNS",
    "IDENTITY_QUATERNION",
    "MotionReading",
    "parse_line",
    "SensorSource",
    "ReplaySource",
    "LineSource",
    "UnavailableSource",
]
