"""Error taxonomy shared by the services and the popup controller.

Services translate transport and payload failures into one of these at their
boundary, so nothing from httpx ever reaches the UI layer.
"""

from __future__ import annotations


class ClipperError(Exception):
    """Base class for every failure the popup knows how to present."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(ClipperError):
    """Local input problem detected before any network request."""


class AuthError(ClipperError):
    """Sign-in was rejected or the identity endpoint could not be reached."""

    def __init__(self, message: str, *, network: bool = False) -> None:
        self.network = network
        super().__init__(message)


class AuthExpired(ClipperError):
    """A previously valid token was rejected by the remote store."""

    def __init__(self, message: str = "Session expired. Please sign in again.") -> None:
        super().__init__(message)


class QueryError(ClipperError):
    """Listing the user's vaults failed."""


class AppendError(ClipperError):
    """Appending a link to a vault failed."""


class AppendConflict(AppendError):
    """The vault changed between the read and the write of an append."""

    def __init__(self, vault_id: str) -> None:
        self.vault_id = vault_id
        super().__init__(f"Vault {vault_id} was modified by another writer")


__all__ = [
    "AppendConflict",
    "AppendError",
    "AuthError",
    "AuthExpired",
    "ClipperError",
    "QueryError",
    "ValidationError",
]
