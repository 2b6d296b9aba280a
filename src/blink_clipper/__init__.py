"""Blink clipper - save the page you are reading into a Blink container."""

from blink_clipper.controller import PopupController
from blink_clipper.errors import (
    AppendConflict,
    AppendError,
    AuthError,
    AuthExpired,
    ClipperError,
    QueryError,
    ValidationError,
)
from blink_clipper.models import ActivePage, ClipperConfig, Link, Session, VaultSummary
from blink_clipper.session_store import SessionStore

__version__ = "0.1.0"

__all__ = [
    "ActivePage",
    "AppendConflict",
    "AppendError",
    "AuthError",
    "AuthExpired",
    "ClipperConfig",
    "ClipperError",
    "Link",
    "PopupController",
    "QueryError",
    "Session",
    "SessionStore",
    "ValidationError",
    "VaultSummary",
    "__version__",
]
