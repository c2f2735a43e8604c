"""Session persistence: an in-memory store and a JSON-per-session directory store.

Both stores follow the two-step contract used by the capture manager:
``insert(session)`` stages a finished session and ``save()`` commits every
staged session. Deleting a session removes its movements and samples with it.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from ..core.models import Session
from .file_paths import session_filename

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    """Keeps committed sessions in a dict keyed by session id."""

    def __init__(self) -> None:
        self._pending: List[Session] = []
        self._sessions: Dict[str, Session] = {}
        self.fail_next_save = False

    def insert(self, session: Session) -> None:
        self._pending.append(session)

    def save(self) -> None:
        if self.fail_next_save:
            self.fail_next_save = False
            self._pending.clear()
            raise OSError("simulated save failure")
        for session in self._pending:
            self._sessions[session.id] = session
        self._pending.clear()

    def load(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def list_sessions(self) -> List[Session]:
        return sorted(self._sessions.values(), key=lambda s: s.timestamp)

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None


class DirectorySessionStore:
    """
    One ``session_<id>.json`` document per session under ``root``.

    Files are written to a temporary name and renamed so a crash never leaves
    a half-written session behind.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self._pending: List[Session] = []

    def _path(self, session_id: str) -> Path:
        return self.root / session_filename(session_id)

    def insert(self, session: Session) -> None:
        self._pending.append(session)

    def save(self) -> None:
        pending, self._pending = self._pending, []
        if not pending:
            return
        self.root.mkdir(parents=True, exist_ok=True)
        for session in pending:
            path = self._path(session.id)
            tmp = path.with_suffix(".json.tmp")
            with tmp.open("w", encoding="utf-8") as fh:
                json.dump(session.to_dict(), fh)
            os.replace(tmp, path)
            logger.info("Saved session %s to %s", session.id, path)

    def load(self, session_id: str) -> Optional[Session]:
        path = self._path(session_id)
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as fh:
            return Session.from_dict(json.load(fh))

    def list_sessions(self) -> List[Session]:
        if not self.root.exists():
            return []
        sessions: List[Session] = []
        for path in sorted(self.root.glob("session_*.json")):
            try:
                with path.open("r", encoding="utf-8") as fh:
                    sessions.append(Session.from_dict(json.load(fh)))
            except (OSError, ValueError, KeyError) as exc:
                logger.warning("Skipping unreadable session file %s: %s", path, exc)
        sessions.sort(key=lambda s: s.timestamp)
        return sessions

    def delete(self, session_id: str) -> bool:
        """Remove the session document (and with it every movement and sample)."""
        path = self._path(session_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Deleted session %s", session_id)
        return True


__all__ = ["InMemorySessionStore", "DirectorySessionStore"]
