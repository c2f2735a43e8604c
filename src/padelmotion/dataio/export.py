"""CSV / ZIP export of recorded sessions.

Layout inside the archive::

    <hand>/<movement_type>/movement_<movement_id>.csv

Each CSV has one header row plus one row per sample in index order.
"""

from __future__ import annotations

import argparse
import logging
import tempfile
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Sequence

from ..config.app_config import AppPaths
from ..core.models import Movement, Sample, Session
from ..sensors.motion import EXPORT_COLUMNS
from .csv_writer import write_rows
from .file_paths import export_archive_name, movement_csv_path
from .session_store import DirectorySessionStore

logger = logging.getLogger(__name__)

SAMPLE_HEADER: Sequence[str] = EXPORT_COLUMNS


def sample_row(sample: Sample) -> List[Any]:
    return [
        sample.index,
        sample.timestamp.isoformat(),
        sample.sensor_timestamp,
        sample.relative_timestamp,
        sample.user_acceleration_x,
        sample.user_acceleration_y,
        sample.user_acceleration_z,
        sample.rotation_rate_x,
        sample.rotation_rate_y,
        sample.rotation_rate_z,
        sample.attitude_pitch,
        sample.attitude_roll,
        sample.attitude_yaw,
        sample.quaternion_x,
        sample.quaternion_y,
        sample.quaternion_z,
        sample.quaternion_w,
        sample.gravity_x,
        sample.gravity_y,
        sample.gravity_z,
        sample.magnetic_field_x,
        sample.magnetic_field_y,
        sample.magnetic_field_z,
    ]


def sample_rows(movement: Movement) -> Iterator[List[Any]]:
    """Rows for ``movement`` sorted by sample index."""
    for sample in movement.ordered_samples():
        yield sample_row(sample)


def write_movement_csv(movement: Movement, root: Path) -> Path:
    path = movement_csv_path(root, movement.hand.value, movement.movement_type.value, movement.id)
    count = write_rows(path, SAMPLE_HEADER, sample_rows(movement))
    logger.debug("Wrote %d samples to %s", count, path)
    return path


def export_sessions(
    sessions: Iterable[Session],
    dest_dir: Path | str,
    *,
    now: datetime | None = None,
) -> Path:
    """
    Write every movement of ``sessions`` to CSV and zip them into ``dest_dir``.

    Returns the path of the ``export_<YYYYmmdd_HHMMSS>.zip`` archive.
    """
    dest = Path(dest_dir)
    dest.mkdir(parents=True, exist_ok=True)
    archive = dest / export_archive_name(now)

    with tempfile.TemporaryDirectory(prefix="padelmotion-export-") as tmp:
        staging = Path(tmp)
        files: List[Path] = []
        for session in sessions:
            for movement in session.movements:
                files.append(write_movement_csv(movement, staging))

        with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path in sorted(files):
                zf.write(path, path.relative_to(staging).as_posix())

    logger.info("Exported %d movements to %s", len(files), archive)
    return archive


def main(argv: Sequence[str] | None = None) -> int:
    paths = AppPaths()
    parser = argparse.ArgumentParser(description="Export stored sessions to a ZIP of CSV files.")
    parser.add_argument("--sessions-dir", type=Path, default=paths.sessions, help="Directory of session_*.json files")
    parser.add_argument("--output", type=Path, default=paths.exports, help="Directory for the export archive")
    parser.add_argument("--session", action="append", default=[], help="Only export this session id (repeatable)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = DirectorySessionStore(args.sessions_dir)
    sessions = store.list_sessions()
    if args.session:
        wanted = set(args.session)
        sessions = [s for s in sessions if s.id in wanted]
    if not sessions:
        logger.error("No sessions to export in %s", args.sessions_dir)
        return 1

    archive = export_sessions(sessions, args.output)
    print(archive)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
