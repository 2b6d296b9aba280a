"""Internal link append service: read a vault, add one link, write it back.

The append is a read-modify-write of the whole ``links`` array, not an atomic
array union. With ``guard_concurrent_writes`` the write is conditioned on the
document's ``updateTime`` from the read, so a concurrent writer produces an
AppendConflict instead of a silently lost link.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx

from blink_clipper.errors import AppendConflict, AppendError, ValidationError
from blink_clipper.firestore import (
    FAILED_PRECONDITION_STATUS,
    FirestoreEndpoints,
    array_values,
    bearer_headers,
    error_status,
)
from blink_clipper.models import LINK_ID_PREFIX, ActivePage, Link, Session
from blink_clipper.services.session_guard import SessionGuard

logger = logging.getLogger(__name__)

LINKS_FIELD = "links"
NO_VAULT_MESSAGE = "Please choose a vault"


def utc_now() -> datetime:
    return datetime.now(UTC)


def make_link_id(now: datetime) -> str:
    """Time-based link id: ``link_`` followed by epoch milliseconds."""
    return f"{LINK_ID_PREFIX}{int(now.timestamp() * 1000)}"


def build_link(page: ActivePage, session: Session, now: datetime) -> Link:
    """Create the Link captured from *page* at *now*."""
    return Link(
        id=make_link_id(now),
        title=page.title,
        url=page.url,
        description="",
        created_at=now,
        updated_at=now,
        created_by=session.user_id,
    )


def build_links_patch(values: list[dict[str, Any]]) -> dict[str, Any]:
    """PATCH body replacing the ``links`` field with *values*."""
    return {"fields": {LINKS_FIELD: {"arrayValue": {"values": values}}}}


def _is_precondition_failure(response: httpx.Response, payload: Any) -> bool:
    if response.status_code in (httpx.codes.CONFLICT, httpx.codes.PRECONDITION_FAILED):
        return True
    return error_status(payload) == FAILED_PRECONDITION_STATUS


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


async def append_link(
    *,
    client: httpx.AsyncClient,
    endpoints: FirestoreEndpoints,
    session: Session,
    guard: SessionGuard,
    vault_id: str,
    page: ActivePage,
    timeout_seconds: int,
    guard_concurrent_writes: bool = True,
    now: Callable[[], datetime] = utc_now,
) -> Link:
    """Append *page* as a new link at the end of the vault's ``links`` array.

    Two round trips: GET the vault, then PATCH only the ``links`` field.
    Returns the link that was added.
    """
    if not vault_id:
        raise ValidationError(NO_VAULT_MESSAGE)

    url = endpoints.document_url(vault_id)
    headers = bearer_headers(session.token)

    try:
        get_response = await client.get(
            url,
            params=endpoints.key_params(),
            headers=headers,
            timeout=timeout_seconds,
        )
    except httpx.HTTPError:
        logger.warning("Reading vault %s failed", vault_id, exc_info=True)
        raise AppendError("Could not reach the vault store") from None

    document = _json_or_none(get_response)
    guard.check(get_response, document, label=f"Vault {vault_id} read")
    if get_response.is_error or not isinstance(document, dict):
        logger.warning("Reading vault %s returned %d", vault_id, get_response.status_code)
        raise AppendError(f"Could not read vault (HTTP {get_response.status_code})")

    existing = array_values(document.get("fields"), LINKS_FIELD)
    link = build_link(page, session, now())
    values = [*existing, link.to_value()]

    params: dict[str, str] = {**endpoints.key_params(), "updateMask.fieldPaths": LINKS_FIELD}
    update_time = document.get("updateTime")
    if guard_concurrent_writes and isinstance(update_time, str) and update_time:
        params["currentDocument.updateTime"] = update_time

    try:
        patch_response = await client.patch(
            url,
            params=params,
            headers=headers,
            json=build_links_patch(values),
            timeout=timeout_seconds,
        )
    except httpx.HTTPError:
        logger.warning("Writing vault %s failed", vault_id, exc_info=True)
        raise AppendError("Could not reach the vault store") from None

    patch_payload = _json_or_none(patch_response)
    guard.check(patch_response, patch_payload, label=f"Vault {vault_id} write")
    if patch_response.is_error:
        if "currentDocument.updateTime" in params and _is_precondition_failure(
            patch_response, patch_payload
        ):
            logger.info("Vault %s changed since it was read; append rejected", vault_id)
            raise AppendConflict(vault_id)
        logger.warning("Writing vault %s returned %d", vault_id, patch_response.status_code)
        raise AppendError(f"Failed to update vault (HTTP {patch_response.status_code})")

    logger.debug("Appended %s to vault %s (%d links)", link.id, vault_id, len(values))
    return link


__all__ = [
    "LINKS_FIELD",
    "NO_VAULT_MESSAGE",
    "append_link",
    "build_link",
    "build_links_patch",
    "make_link_id",
    "utc_now",
]
