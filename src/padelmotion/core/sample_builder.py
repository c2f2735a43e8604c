"""Fold raw motion readings into indexed, movement-relative samples."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from ..sensors.motion import MotionReading
from .models import Sample

Clock = Callable[[], datetime]


def _wall_clock() -> datetime:
    return datetime.now(timezone.utc)


class MotionSampleBuilder:
    """
    Running state for one movement: first/last sensor timestamp and next index.

    ``ingest`` is order dependent. Readings must arrive in sensor-time order
    (the sample stream guarantees that); nothing is re-sorted here.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or _wall_clock
        self.start_timestamp: Optional[float] = None
        self.last_timestamp: Optional[float] = None
        self.next_index: int = 0

    def reset(self) -> None:
        """Forget all running state; call before the first reading of a movement."""
        self.start_timestamp = None
        self.last_timestamp = None
        self.next_index = 0

    def ingest(self, reading: MotionReading, movement_id: str) -> Sample:
        ts = float(reading.timestamp)
        if self.start_timestamp is None:
            self.start_timestamp = ts
        index = self.next_index
        self.next_index += 1
        self.last_timestamp = ts

        ax, ay, az = reading.user_acceleration
        rx, ry, rz = reading.rotation_rate
        pitch, roll, yaw = reading.attitude_euler
        qx, qy, qz, qw = reading.attitude_quaternion
        gx, gy, gz = reading.gravity
        mx, my, mz = reading.magnetic_field
        return Sample(
            movement_id=movement_id,
            timestamp=self._clock(),
            sensor_timestamp=ts,
            relative_timestamp=ts - self.start_timestamp,
            index=index,
            user_acceleration_x=ax,
            user_acceleration_y=ay,
            user_acceleration_z=az,
            rotation_rate_x=rx,
            rotation_rate_y=ry,
            rotation_rate_z=rz,
            attitude_pitch=pitch,
            attitude_roll=roll,
            attitude_yaw=yaw,
            quaternion_x=qx,
            quaternion_y=qy,
            quaternion_z=qz,
            quaternion_w=qw,
            gravity_x=gx,
            gravity_y=gy,
            gravity_z=gz,
            magnetic_field_x=mx,
            magnetic_field_y=my,
            magnetic_field_z=mz,
        )
