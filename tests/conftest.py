"""Shared test fixtures for Blink clipper tests."""

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from blink_clipper.firestore import FirestoreEndpoints
from blink_clipper.models import ActivePage, ClipperConfig, Link, Session, VaultSummary
from blink_clipper.services.interfaces import AppServices
from blink_clipper.session_store import SessionStore

# ── Factories ────────────────────────────────────────────────────────────────


@pytest.fixture
def make_session():
    """Factory fixture for Session instances with sensible defaults."""

    def _make(token: str = "t", user_id: str = "u1", email: str = "ada@example.com") -> Session:
        return Session(token=token, user_id=user_id, email=email)

    return _make


@pytest.fixture
def make_vault_doc():
    """Factory fixture for Firestore vault documents as returned by GET."""

    def _make(
        vault_id: str = "v1",
        name: str | None = "Reading",
        owner_id: str = "u1",
        links: list[dict[str, Any]] | None = None,
        update_time: str | None = "2026-01-02T03:04:05.123456Z",
        project: str = "proj",
    ) -> dict[str, Any]:
        fields: dict[str, Any] = {"ownerId": {"stringValue": owner_id}}
        if name is not None:
            fields["name"] = {"stringValue": name}
        if links is not None:
            fields["links"] = {"arrayValue": {"values": links} if links else {}}
        document: dict[str, Any] = {
            "name": f"projects/{project}/databases/(default)/documents/vaults/{vault_id}",
            "fields": fields,
        }
        if update_time is not None:
            document["updateTime"] = update_time
        return document

    return _make


@pytest.fixture
def make_link_value():
    """Factory fixture for an existing link as a Firestore mapValue."""

    def _make(link_id: str = "link_1", url: str = "https://old.example") -> dict[str, Any]:
        return {
            "mapValue": {
                "fields": {
                    "id": {"stringValue": link_id},
                    "title": {"stringValue": "Old"},
                    "url": {"stringValue": url},
                    "clicks": {"integerValue": "3"},
                }
            }
        }

    return _make


@pytest.fixture
def json_response():
    """Build a real httpx.Response carrying a JSON body."""

    def _make(status_code: int = 200, payload: Any = None) -> httpx.Response:
        return httpx.Response(status_code=status_code, json=payload)

    return _make


# ── Shared objects ───────────────────────────────────────────────────────────


@pytest.fixture
def endpoints() -> FirestoreEndpoints:
    return FirestoreEndpoints(api_key="test-key", project_id="proj")


@pytest.fixture
def config() -> ClipperConfig:
    return ClipperConfig(api_key="test-key", project_id="proj")


@pytest.fixture
def session_store(tmp_path) -> SessionStore:
    return SessionStore(tmp_path / "session.json")


@pytest.fixture
def page() -> ActivePage:
    return ActivePage(title="Example", url="https://example.com")


@pytest.fixture
def http_client() -> AsyncMock:
    return AsyncMock(spec=httpx.AsyncClient)


@pytest.fixture
def fake_services(make_session) -> AppServices:
    """AppServices whose operations are AsyncMocks with happy-path defaults."""
    now = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
    link = Link(
        id="link_1767323045000",
        title="Example",
        url="https://example.com",
        description="",
        created_at=now,
        updated_at=now,
        created_by="u1",
    )
    return AppServices(
        auth=SimpleNamespace(sign_in=AsyncMock(return_value=make_session())),
        vaults=SimpleNamespace(
            list_vaults=AsyncMock(
                return_value=[VaultSummary("v1", "Reading"), VaultSummary("v2", "Work")]
            )
        ),
        links=SimpleNamespace(append_link=AsyncMock(return_value=link)),
    )
