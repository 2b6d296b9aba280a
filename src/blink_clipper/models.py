"""Data models and constants for the Blink clipper."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from blink_clipper.firestore import encode_value

# Application identity: single source of truth for platformdirs config paths
CONFIG_APP_NAME = "blink-clipper"

# Remote store defaults
DEFAULT_PROJECT_ID = "blink-linknet"
DEFAULT_DATABASE = "(default)"
DEFAULT_COLLECTION_ID = "vaults"
IDENTITY_BASE_URL = "https://identitytoolkit.googleapis.com/v1"
FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"

# Request timeouts (seconds)
DEFAULT_REQUEST_TIMEOUT = 15
MAX_REQUEST_TIMEOUT = 120

# Status banner timing (seconds)
DEFAULT_STATUS_DISMISS_SECONDS = 2.0
DEFAULT_CLOSE_DELAY_SECONDS = 1.5

LINK_ID_PREFIX = "link_"


@dataclass(slots=True, frozen=True)
class Session:
    """Authenticated identity bound to an ID token."""

    token: str
    user_id: str
    email: str

    def is_complete(self) -> bool:
        """Return True when every field is set (partial sessions are invalid)."""
        return bool(self.token and self.user_id and self.email)


@dataclass(slots=True, frozen=True)
class VaultSummary:
    """A vault the signed-in user owns, as offered for selection."""

    id: str
    name: str


@dataclass(slots=True, frozen=True)
class ActivePage:
    """The page handed in by the host when the popup opens."""

    title: str
    url: str

    def __post_init__(self) -> None:
        if not self.title:
            object.__setattr__(self, "title", self.url)


@dataclass(slots=True, frozen=True)
class Link:
    """One captured page reference, embedded in a vault's ``links`` array."""

    id: str
    title: str
    url: str
    description: str
    created_at: datetime
    updated_at: datetime
    created_by: str

    def to_value(self) -> dict[str, Any]:
        """Encode as a Firestore ``mapValue``."""
        return encode_value(
            {
                "id": self.id,
                "title": self.title,
                "url": self.url,
                "description": self.description,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
                "createdBy": self.created_by,
            }
        )


@dataclass(slots=True)
class ClipperConfig:
    """User configuration persisted between popup runs."""

    api_key: str = ""
    project_id: str = DEFAULT_PROJECT_ID
    database: str = DEFAULT_DATABASE
    collection_id: str = DEFAULT_COLLECTION_ID
    identity_base_url: str = IDENTITY_BASE_URL
    firestore_base_url: str = FIRESTORE_BASE_URL
    request_timeout_seconds: int = DEFAULT_REQUEST_TIMEOUT
    status_dismiss_seconds: float = DEFAULT_STATUS_DISMISS_SECONDS
    close_after_save: bool = True
    close_delay_seconds: float = DEFAULT_CLOSE_DELAY_SECONDS
    guard_concurrent_writes: bool = True
    version: int = 1


__all__ = [
    "CONFIG_APP_NAME",
    "DEFAULT_CLOSE_DELAY_SECONDS",
    "DEFAULT_COLLECTION_ID",
    "DEFAULT_DATABASE",
    "DEFAULT_PROJECT_ID",
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_STATUS_DISMISS_SECONDS",
    "FIRESTORE_BASE_URL",
    "IDENTITY_BASE_URL",
    "LINK_ID_PREFIX",
    "MAX_REQUEST_TIMEOUT",
    "ActivePage",
    "ClipperConfig",
    "Link",
    "Session",
    "VaultSummary",
]
