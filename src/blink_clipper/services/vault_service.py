"""Internal vault listing service: which vaults does the session's user own?"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from blink_clipper.errors import QueryError
from blink_clipper.firestore import (
    FirestoreEndpoints,
    bearer_headers,
    build_field_equals_query,
    decode_fields,
    document_id,
)
from blink_clipper.models import Session, VaultSummary
from blink_clipper.services.session_guard import SessionGuard

logger = logging.getLogger(__name__)

OWNER_FIELD = "ownerId"


def parse_vault_document(document: dict[str, Any]) -> VaultSummary | None:
    """Build a VaultSummary from a document; None when it has no resource name."""
    name = document.get("name")
    if not isinstance(name, str) or not name:
        return None
    vault_id = document_id(name)
    try:
        title = decode_fields(document.get("fields")).get("name")
    except (TypeError, ValueError):
        logger.warning("Vault %s has malformed fields", vault_id, exc_info=True)
        title = None
    if not isinstance(title, str) or not title:
        title = vault_id
    return VaultSummary(id=vault_id, name=title)


def parse_run_query_response(payload: list[Any]) -> list[VaultSummary]:
    """Keep envelopes that wrap a document, in backend order."""
    vaults: list[VaultSummary] = []
    for envelope in payload:
        if not isinstance(envelope, dict):
            continue
        document = envelope.get("document")
        if not isinstance(document, dict):
            continue
        vault = parse_vault_document(document)
        if vault is not None:
            vaults.append(vault)
    return vaults


async def list_vaults(
    *,
    client: httpx.AsyncClient,
    endpoints: FirestoreEndpoints,
    session: Session,
    guard: SessionGuard,
    timeout_seconds: int,
) -> list[VaultSummary]:
    """Return the vaults whose ``ownerId`` is the session's user.

    An empty list means "no vaults", not an error.
    """
    body = build_field_equals_query(endpoints.collection_id, OWNER_FIELD, session.user_id)
    try:
        response = await client.post(
            endpoints.run_query_url,
            params=endpoints.key_params(),
            headers=bearer_headers(session.token),
            json=body,
            timeout=timeout_seconds,
        )
    except httpx.HTTPError:
        logger.warning("Vault query request failed", exc_info=True)
        raise QueryError("Could not reach the vault store") from None

    try:
        payload: Any = response.json()
    except ValueError:
        payload = None

    guard.check(response, payload, label="Vault query")

    if response.is_error:
        logger.warning("Vault query returned %d", response.status_code)
        raise QueryError(f"Vault query failed (HTTP {response.status_code})")
    if not isinstance(payload, list):
        logger.warning("Vault query returned a non-list payload")
        raise QueryError("Vault query returned an unexpected response")

    vaults = parse_run_query_response(payload)
    logger.debug("Vault query matched %d vault(s)", len(vaults))
    return vaults


__all__ = [
    "OWNER_FIELD",
    "list_vaults",
    "parse_run_query_response",
    "parse_vault_document",
]
