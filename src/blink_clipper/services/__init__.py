"""Internal service layer: sign-in, vault listing, link append, session guard."""

from blink_clipper.services.auth_service import format_auth_error, sign_in, validate_credentials
from blink_clipper.services.link_service import append_link, build_link, make_link_id
from blink_clipper.services.session_guard import SessionGuard, is_unauthenticated
from blink_clipper.services.vault_service import list_vaults, parse_run_query_response

__all__ = [
    "SessionGuard",
    "append_link",
    "build_link",
    "format_auth_error",
    "is_unauthenticated",
    "list_vaults",
    "make_link_id",
    "parse_run_query_response",
    "sign_in",
    "validate_credentials",
]
