"""
Session hosting.

``SessionRegistry`` hands out independent reasoning sessions by id. Each
session carries its own graph and lock, so sessions never share state.
``FileSnapshotStore`` persists session graphs as JSON snapshot files, one file
per session id, and resumes them later.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from asrgot.core.errors import ValidationError
from asrgot.core.logging_config import get_logger
from asrgot.engine import ReasoningSession

logger = get_logger("sessions")


class SessionRegistry:
    """Thread-safe in-memory registry of live sessions."""

    def __init__(self) -> None:
        self._sessions: dict[str, ReasoningSession] = {}
        self._lock = threading.RLock()

    def create(self, session_id: str | None = None, **kwargs: Any) -> ReasoningSession:
        """
        Open a new session.

        Args:
            session_id: Explicit id; a UUID4 string when omitted
            **kwargs: Passed through to ``ReasoningSession``

        Raises:
            ValidationError: If the id is already in use
        """
        session = ReasoningSession(session_id=session_id, **kwargs)
        return self.add(session)

    def add(self, session: ReasoningSession) -> ReasoningSession:
        with self._lock:
            if session.session_id in self._sessions:
                raise ValidationError(
                    f"Session already exists: {session.session_id}", field="session_id"
                )
            self._sessions[session.session_id] = session
        logger.info("Session %s opened", session.session_id)
        return session

    def get(self, session_id: str) -> ReasoningSession:
        """
        Raises:
            ValidationError: If no session has this id
        """
        with self._lock:
            try:
                return self._sessions[session_id]
            except KeyError:
                raise ValidationError(
                    f"Unknown session: {session_id}", field="session_id"
                ) from None

    def remove(self, session_id: str) -> ReasoningSession:
        with self._lock:
            session = self.get(session_id)
            del self._sessions[session_id]
        logger.info("Session %s closed", session_id)
        return session

    def list_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._sessions)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class FileSnapshotStore:
    """
    Thread-safe JSON snapshot files in a directory, named ``<session_id>.json``.
    """

    def __init__(self, storage_dir: Path) -> None:
        self._storage_dir = storage_dir
        self._lock = threading.RLock()
        self._storage_dir.mkdir(parents=True, exist_ok=True)

    def save(self, session: ReasoningSession) -> Path:
        """Write the session's current snapshot and return the file path."""
        with self._lock:
            file_path = self._get_file_path(session.session_id)
            file_path.write_text(session.export_snapshot("json"), encoding="utf-8")
        logger.debug("Session %s saved to %s", session.session_id, file_path)
        return file_path

    def load(self, session_id: str, **kwargs: Any) -> ReasoningSession:
        """
        Resume a saved session.

        Raises:
            ValidationError: If nothing is saved under this id or the file is
                not a valid snapshot
        """
        with self._lock:
            file_path = self._get_file_path(session_id)
            if not file_path.exists():
                raise ValidationError(f"No snapshot saved for session {session_id}", field="session_id")
            text = file_path.read_text(encoding="utf-8")
        return ReasoningSession.from_snapshot(text, "json", session_id=session_id, **kwargs)

    def list_ids(self) -> list[str]:
        with self._lock:
            return sorted(path.stem for path in self._storage_dir.glob("*.json"))

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._get_file_path(session_id).unlink(missing_ok=True)

    def _get_file_path(self, session_id: str) -> Path:
        if not session_id or any(sep in session_id for sep in ("/", "\\")) or session_id.startswith("."):
            raise ValidationError(f"Invalid session id: {session_id!r}", field="session_id")
        return self._storage_dir / f"{session_id}.json"
