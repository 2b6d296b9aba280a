"""Internal sign-in service: exchange email + password for a Session."""

from __future__ import annotations

import logging

import httpx

from blink_clipper.errors import AuthError, ValidationError
from blink_clipper.firestore import FirestoreEndpoints, error_message
from blink_clipper.models import Session

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
EMPTY_FIELDS_MESSAGE = "Please fill in all fields"
UNREACHABLE_MESSAGE = "Could not reach the sign-in service. Check your connection."

# Identity error codes that all mean "wrong email/password"
_CREDENTIAL_ERROR_CODES = ("INVALID_PASSWORD", "EMAIL_NOT_FOUND")


def format_auth_error(message: str) -> str:
    """Normalize credential rejections; pass any other message through."""
    if any(code in message for code in _CREDENTIAL_ERROR_CODES):
        return INVALID_CREDENTIALS_MESSAGE
    return message


def validate_credentials(email: str, password: str) -> tuple[str, str]:
    """Strip both fields; raise ValidationError when either is blank."""
    email = email.strip()
    password = password.strip()
    if not email or not password:
        raise ValidationError(EMPTY_FIELDS_MESSAGE)
    return email, password


async def sign_in(
    *,
    client: httpx.AsyncClient,
    endpoints: FirestoreEndpoints,
    email: str,
    password: str,
    timeout_seconds: int,
) -> Session:
    """Sign in with email + password. The session is returned, not persisted."""
    email, password = validate_credentials(email, password)

    try:
        response = await client.post(
            endpoints.sign_in_url,
            params=endpoints.key_params(),
            json={"email": email, "password": password, "returnSecureToken": True},
            timeout=timeout_seconds,
        )
    except httpx.HTTPError:
        logger.warning("Sign-in request failed", exc_info=True)
        raise AuthError(UNREACHABLE_MESSAGE, network=True) from None

    try:
        data = response.json()
    except ValueError:
        logger.warning("Sign-in returned invalid JSON (HTTP %d)", response.status_code)
        raise AuthError(f"Sign-in failed (HTTP {response.status_code})") from None

    message = error_message(data)
    if message is not None:
        logger.info("Sign-in rejected: %s", message)
        raise AuthError(format_auth_error(message))
    if not isinstance(data, dict) or response.is_error:
        raise AuthError(f"Sign-in failed (HTTP {response.status_code})")

    session = Session(
        token=str(data.get("idToken") or ""),
        user_id=str(data.get("localId") or ""),
        email=str(data.get("email") or ""),
    )
    if not session.is_complete():
        logger.warning("Sign-in response missing token, user id or email")
        raise AuthError("Sign-in response was incomplete")
    logger.debug("Signed in as user %s", session.user_id)
    return session


__all__ = [
    "EMPTY_FIELDS_MESSAGE",
    "INVALID_CREDENTIALS_MESSAGE",
    "UNREACHABLE_MESSAGE",
    "format_auth_error",
    "sign_in",
    "validate_credentials",
]
