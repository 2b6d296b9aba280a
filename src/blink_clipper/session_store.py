"""Persistent storage for the signed-in session.

The store is the only source of truth for "is the user logged in": a session
file that exists and holds every field means yes, anything else means no.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from blink_clipper.config import get_config_dir, write_json_atomic
from blink_clipper.models import Session

logger = logging.getLogger(__name__)

SESSION_FILENAME = "session.json"


def get_session_path() -> Path:
    """Get the path of the persisted session record."""
    return get_config_dir() / SESSION_FILENAME


class SessionStore:
    """Load, save and clear the persisted :class:`Session`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or get_session_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Session | None:
        """Return the stored session, or None when absent or unusable."""
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except ValueError:  # invalid JSON or invalid UTF-8
            logger.warning("Session file is not valid UTF-8 JSON, treating as signed out")
            return None
        except OSError as e:
            logger.warning("Could not read session file, treating as signed out: %s", e)
            return None
        if not isinstance(data, dict):
            logger.warning("Session file root is not an object, treating as signed out")
            return None

        fields = [data.get(key) for key in ("token", "user_id", "email")]
        if not all(isinstance(value, str) for value in fields):
            logger.warning("Session file is incomplete, treating as signed out")
            return None
        session = Session(*fields)
        if not session.is_complete():
            logger.warning("Session file is incomplete, treating as signed out")
            return None
        return session

    def save(self, session: Session) -> None:
        """Persist *session*, replacing any previous one.

        Raises ValueError for a partial session and OSError when the file
        cannot be written.
        """
        if not session.is_complete():
            raise ValueError("Refusing to persist a partial session")
        write_json_atomic(
            self._path,
            {"token": session.token, "user_id": session.user_id, "email": session.email},
        )
        logger.debug("Session saved for user %s", session.user_id)

    def clear(self) -> None:
        """Remove the stored session. Clearing an empty store is a no-op."""
        try:
            self._path.unlink()
        except FileNotFoundError:
            return
        logger.debug("Session cleared")


__all__ = [
    "SESSION_FILENAME",
    "SessionStore",
    "get_session_path",
]
