#!/usr/bin/env python3
"""
Matplotlib 3D viewer for a recorded movement.

The movement comes either from a stored session (``--session`` plus an
optional ``--movement`` id or index) or straight from a JSONL/CSV motion
recording (``--file``). The reconstructed path is drawn as line segments
coloured from blue (slow) to red (fast).
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

import matplotlib.pyplot as plt
from mpl_toolkits.mplot3d.art3d import Line3DCollection

from ..analysis.trajectory import Trajectory, reconstruct
from ..config.app_config import AppPaths
from ..config.runtime import load_config
from ..core.models import Movement, Sample
from ..core.sample_builder import MotionSampleBuilder
from ..dataio.session_store import DirectorySessionStore
from ..sensors.motion import parse_line
from .debug import time_block

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- # helpers
def format_elapsed(seconds: float) -> str:
    """Format a duration as ``HH:MM:SS.mmm`` (rounded to the millisecond)."""
    total_ms = int(round(seconds * 1000.0))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


def samples_from_recording(path: Path) -> List[Sample]:
    """Turn a raw motion recording into samples the way a capture would."""
    builder = MotionSampleBuilder()
    samples: List[Sample] = []
    with path.open("r", encoding="utf-8") as fh:
        for line in fh:
            reading = parse_line(line)
            if reading is not None:
                samples.append(builder.ingest(reading, movement_id=path.stem))
    return samples


def pick_movement(movements: Sequence[Movement], selector: Optional[str]) -> Movement:
    """Select by id, by integer index, or the last movement when ``selector`` is None."""
    if not movements:
        raise ValueError("Session has no movements")
    if selector is None:
        return movements[-1]
    for movement in movements:
        if movement.id == selector:
            return movement
    try:
        return movements[int(selector)]
    except (ValueError, IndexError):
        raise ValueError(f"No movement matching {selector!r}") from None


# --------------------------------------------------------------------------- # plotting
def build_trajectory_figure(trajectory: Trajectory, title: str = "Movement"):
    """Return ``(fig, ax)`` with the coloured path drawn on a 3D axis."""
    fig = plt.figure()
    ax = fig.add_subplot(projection="3d")

    positions = trajectory.positions
    if len(trajectory) >= 2:
        segments = [positions[i : i + 2] for i in range(len(trajectory) - 1)]
        lines = Line3DCollection(segments, colors=trajectory.segment_colors(), linewidths=2.0)
        ax.add_collection3d(lines)
    if len(trajectory) >= 1:
        ax.scatter(*positions[0], color="black", s=20, label="start")

        lo = positions.min(axis=0)
        hi = positions.max(axis=0)
        pad = max(float((hi - lo).max()) * 0.1, 1e-3)
        ax.set_xlim(lo[0] - pad, hi[0] + pad)
        ax.set_ylim(lo[1] - pad, hi[1] + pad)
        ax.set_zlim(lo[2] - pad, hi[2] + pad)

    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_zlabel("z")
    peak = float(trajectory.speeds.max()) if trajectory.speeds.size else 0.0
    ax.set_title(f"{title} - {format_elapsed(trajectory.duration)} (peak {peak:.2f} m/s)")
    return fig, ax


# --------------------------------------------------------------------------- # CLI
def main(argv: Sequence[str] | None = None) -> int:
    paths = AppPaths()
    parser = argparse.ArgumentParser(description="3D trajectory viewer for padelmotion movements.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("-f", "--file", type=Path, help="Raw JSONL/CSV motion recording")
    source.add_argument("-s", "--session", help="Stored session id")
    parser.add_argument("-m", "--movement", help="Movement id or index within the session (default: last)")
    parser.add_argument("--sessions-dir", type=Path, default=paths.sessions)
    parser.add_argument("--config", type=Path, default=paths.config_dir / "padelmotion.yaml")
    parser.add_argument("-o", "--output", type=Path, help="Save the figure instead of showing it")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    params = load_config(args.config).trajectory_params()

    if args.file is not None:
        if not args.file.exists():
            parser.error(f"Recording not found: {args.file}")
        samples = samples_from_recording(args.file)
        title = args.file.name
    else:
        session = DirectorySessionStore(args.sessions_dir).load(args.session)
        if session is None:
            parser.error(f"Session {args.session} not found in {args.sessions_dir}")
        try:
            movement = pick_movement(session.movements, args.movement)
        except ValueError as exc:
            parser.error(str(exc))
        samples = movement.ordered_samples()
        title = " ".join(part for part in (movement.hand.label, movement.movement_type.label) if part)

    with time_block(f"Trajectory reconstruction of {len(samples)} samples", log=logger):
        trajectory = reconstruct(samples, params)
    logger.info("Reconstructed %d positions over %s", len(trajectory), format_elapsed(trajectory.duration))
    fig, _ax = build_trajectory_figure(trajectory, title)

    if args.output is not None:
        fig.savefig(args.output)
        print(args.output)
        return 0
    try:
        plt.show()
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
