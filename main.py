from __future__ import annotations

import sys
from collections.abc import Sequence
from pathlib import Path

# Make sure the 'src' directory is on sys.path so 'padelmotion' can be imported
REPO_ROOT = Path(__file__).resolve().parent
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from padelmotion.tools.controller_cli import main as run_controller_main


def main(argv: Sequence[str] | None = None) -> int:
    """
    Entry point for the padelmotion controller.

    Parameters
    ----------
    argv:
        Command-line arguments without the program name. If None, uses sys.argv[1:].
    """
    if argv is None:
        argv = sys.argv[1:]
    return run_controller_main(list(argv))


if __name__ == "__main__":
    raise SystemExit(main())
