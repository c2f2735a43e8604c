"""Heuristic 3D trajectory reconstruction for a recorded movement.

The reconstruction double-integrates world-frame user acceleration with a
noise gate, a restoring spring toward the origin and velocity damping, so the
resulting path stays bounded and renderable. It is a visual aid only; the
positions are not physically accurate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from ..core.models import Sample

RGB = Tuple[float, float, float]

LOW_SPEED_COLOR: RGB = (0.0, 0.0, 1.0)
HIGH_SPEED_COLOR: RGB = (1.0, 0.0, 0.0)


@dataclass(frozen=True)
class TrajectoryParams:
    """Tuning constants for :func:`reconstruct`."""

    noise_floor: float = 0.02
    spring_constant: float = 2.0
    damping: float = 0.95
    scale: float = 10.0


@dataclass(frozen=True)
class Trajectory:
    """
    Result of :func:`reconstruct`.

    ``positions`` has one row per sample (scaled, first row is the origin),
    ``speeds`` one entry per consecutive pair, ``quaternions`` the per-sample
    orientation as ``(x, y, z, w)`` and ``key_times`` the normalized playback
    times in ``[0, 1]``.
    """

    positions: np.ndarray
    speeds: np.ndarray
    quaternions: np.ndarray
    key_times: np.ndarray
    duration: float

    def __len__(self) -> int:
        return int(self.positions.shape[0])

    def segment_colors(
        self,
        low: RGB = LOW_SPEED_COLOR,
        high: RGB = HIGH_SPEED_COLOR,
    ) -> np.ndarray:
        return speed_colors(self.speeds, low=low, high=high)


def _as_arrays(samples: Sequence[Sample]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    timestamps = np.array([s.sensor_timestamp for s in samples], dtype=float)
    accel = np.array([s.user_acceleration for s in samples], dtype=float).reshape(-1, 3)
    quats = np.array([s.quaternion for s in samples], dtype=float).reshape(-1, 4)
    return timestamps, accel, quats


def _world_acceleration(accel: np.ndarray, quats: np.ndarray) -> np.ndarray:
    """Rotate body-frame accelerations into the world frame (``q v q^-1``)."""
    if accel.shape[0] == 0:
        return accel.copy()
    safe = quats.copy()
    norms = np.linalg.norm(safe, axis=1)
    safe[norms == 0.0] = (0.0, 0.0, 0.0, 1.0)
    # scipy uses scalar-last (x, y, z, w), matching the sample layout.
    return Rotation.from_quat(safe).apply(accel)


def reconstruct(samples: Sequence[Sample], params: TrajectoryParams | None = None) -> Trajectory:
    """
    Build a bounded world-frame path from time-ordered samples.

    For each consecutive pair ``(i-1, i)`` with ``dt = t[i] - t[i-1]``:

    1. rotate sample ``i-1``'s user acceleration by its quaternion,
    2. zero it when its magnitude is below ``noise_floor``,
    3. subtract ``spring_constant * position``,
    4. ``v += a*dt``; ``v *= damping``; ``p += v*dt``,
    5. append ``p * scale``.

    A non-positive ``dt`` contributes nothing to velocity or position.
    """
    params = params or TrajectoryParams()
    timestamps, accel, quats = _as_arrays(samples)
    count = timestamps.shape[0]

    positions = np.zeros((count, 3), dtype=float)
    raw = np.zeros((count, 3), dtype=float)
    speeds = np.zeros(max(count - 1, 0), dtype=float)
    if count == 0:
        return Trajectory(positions, speeds, quats, np.zeros(0), 0.0)

    world = _world_acceleration(accel, quats)
    position = np.zeros(3)
    velocity = np.zeros(3)
    for i in range(1, count):
        dt = timestamps[i] - timestamps[i - 1]
        step = dt if dt > 0 else 0.0

        acc = world[i - 1].copy()
        if np.linalg.norm(acc) < params.noise_floor:
            acc[:] = 0.0
        acc -= params.spring_constant * position

        velocity = velocity + acc * step
        velocity = velocity * params.damping
        position = position + velocity * step

        raw[i] = position
        positions[i] = position * params.scale
        if dt > 0:
            speeds[i - 1] = float(np.linalg.norm(raw[i] - raw[i - 1]) / dt)

    duration = float(timestamps[-1] - timestamps[0])
    if duration > 0:
        key_times = (timestamps - timestamps[0]) / duration
    else:
        key_times = np.zeros(count)
    return Trajectory(positions, speeds, quats, key_times, duration)


def speed_colors(
    speeds: Sequence[float] | np.ndarray,
    *,
    low: RGB = LOW_SPEED_COLOR,
    high: RGB = HIGH_SPEED_COLOR,
) -> np.ndarray:
    """
    Map each speed to an RGB colour interpolated between ``low`` and ``high``.

    The range is the min..max of ``speeds``; when they are equal every segment
    gets ``low``.
    """
    values = np.asarray(speeds, dtype=float).reshape(-1)
    low_arr = np.asarray(low, dtype=float)
    high_arr = np.asarray(high, dtype=float)
    if values.size == 0:
        return np.zeros((0, 3))
    lo, hi = float(values.min()), float(values.max())
    if hi - lo > 0:
        t = (values - lo) / (hi - lo)
    else:
        t = np.zeros_like(values)
    return low_arr[None, :] + t[:, None] * (high_arr - low_arr)[None, :]


__all__ = [
    "LOW_SPEED_COLOR",
    "HIGH_SPEED_COLOR",
    "TrajectoryParams",
    "Trajectory",
    "reconstruct",
    "speed_colors",
]
