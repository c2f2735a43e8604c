"""Helpers for constructing export and session file names."""

import re
from datetime import datetime
from pathlib import Path

# Allow only alphanumerics, underscore, dot, and dash.
_NAME_RE = re.compile(r"[^A-Za-z0-9_.-]+")


def sanitize_name(name: str, fallback: str = "item") -> str:
    """
    Sanitize ``name`` for use as a single path component.

    - Replace disallowed characters with '_'.
    - Strip leading/trailing underscores and dots.
    - Fall back to ``fallback`` if nothing remains.
    """
    cleaned = _NAME_RE.sub("_", str(name)).strip("_.")
    return cleaned or fallback


def session_filename(session_id: str) -> str:
    return f"session_{sanitize_name(session_id, 'session')}.json"


def movement_csv_path(root: Path, hand: str, movement_type: str, movement_id: str) -> Path:
    """``<root>/<hand>/<movement_type>/movement_<id>.csv``"""
    return (
        root
        / sanitize_name(hand, "hand")
        / sanitize_name(movement_type, "unknown")
        / f"movement_{sanitize_name(movement_id, 'movement')}.csv"
    )


def export_archive_name(now: datetime | None = None) -> str:
    """
    Timestamped archive name for an export.

    Example: "export_20251204_153045.zip"
    """
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"export_{stamp}.zip"
