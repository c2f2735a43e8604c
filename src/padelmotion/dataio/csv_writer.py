"""CSV writing helpers for exported movements."""

import csv
import io
from pathlib import Path
from typing import Any, Iterable, Sequence


def write_rows(path: Path, headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> int:
    """
    Write a header row and all data rows to a CSV file.

    Directories are created as needed. Returns the number of data rows.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", newline="", encoding="utf-8") as csvfile:
        writer = csv.writer(csvfile, lineterminator="\n")
        writer.writerow(headers)
        for row in rows:
            writer.writerow(row)
            count += 1
    return count


def rows_to_text(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Same layout as :func:`write_rows`, returned as a string."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buf.getvalue()
