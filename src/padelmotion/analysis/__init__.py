"""Offline analysis of recorded movements.

Modules here operate on finished :class:`~padelmotion.core.models.Movement`
samples with NumPy/SciPy and stay free of I/O so they can be reused by the
plot tool, exports and tests alike.
"""

from .trajectory import Trajectory, TrajectoryParams, reconstruct, speed_colors

__all__ = ["Trajectory", "TrajectoryParams", "reconstruct", "speed_colors"]
