"""Detect rejected tokens on remote-store responses and tear the session down."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from blink_clipper.errors import AuthExpired
from blink_clipper.firestore import UNAUTHENTICATED_STATUS, error_status
from blink_clipper.session_store import SessionStore

logger = logging.getLogger(__name__)


def is_unauthenticated(response: httpx.Response, payload: Any) -> bool:
    """Return True when the response says the bearer token is no longer valid."""
    if response.status_code == httpx.codes.UNAUTHORIZED:
        return True
    return error_status(payload) == UNAUTHENTICATED_STATUS


class SessionGuard:
    """Checks every vault response; clears the store when the token is rejected."""

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    def check(self, response: httpx.Response, payload: Any, *, label: str) -> None:
        """Raise AuthExpired (after clearing the store) for an unauthenticated response."""
        if not is_unauthenticated(response, payload):
            return
        logger.warning("%s rejected the session token (HTTP %d)", label, response.status_code)
        try:
            self._store.clear()
        except OSError:
            logger.error("Failed to clear expired session", exc_info=True)
        raise AuthExpired()


__all__ = [
    "SessionGuard",
    "is_unauthenticated",
]
