"""Service interfaces + default adapters for controller-level dependency injection."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

import httpx

from blink_clipper.firestore import FirestoreEndpoints
from blink_clipper.models import ActivePage, Link, Session, VaultSummary
from blink_clipper.services import auth_service as _auth
from blink_clipper.services import link_service as _link
from blink_clipper.services import vault_service as _vault
from blink_clipper.services.session_guard import SessionGuard


@runtime_checkable
class AuthService(Protocol):
    """Interface for exchanging credentials for a session."""

    async def sign_in(
        self,
        *,
        client: httpx.AsyncClient,
        endpoints: FirestoreEndpoints,
        email: str,
        password: str,
        timeout_seconds: int,
    ) -> Session:
        """Sign in and return the new (unsaved) session."""
        ...


@runtime_checkable
class VaultService(Protocol):
    """Interface for listing the session user's vaults."""

    async def list_vaults(
        self,
        *,
        client: httpx.AsyncClient,
        endpoints: FirestoreEndpoints,
        session: Session,
        guard: SessionGuard,
        timeout_seconds: int,
    ) -> list[VaultSummary]:
        """Return owned vaults in backend order."""
        ...


@runtime_checkable
class LinkService(Protocol):
    """Interface for appending a captured page to a vault."""

    async def append_link(
        self,
        *,
        client: httpx.AsyncClient,
        endpoints: FirestoreEndpoints,
        session: Session,
        guard: SessionGuard,
        vault_id: str,
        page: ActivePage,
        timeout_seconds: int,
        guard_concurrent_writes: bool,
    ) -> Link:
        """Append the page and return the link that was added."""
        ...


class DefaultAuthService:
    """Default adapter that delegates to the function-based sign-in service."""

    async def sign_in(
        self,
        *,
        client: httpx.AsyncClient,
        endpoints: FirestoreEndpoints,
        email: str,
        password: str,
        timeout_seconds: int,
    ) -> Session:
        return await _auth.sign_in(
            client=client,
            endpoints=endpoints,
            email=email,
            password=password,
            timeout_seconds=timeout_seconds,
        )


class DefaultVaultService:
    """Default adapter that delegates to the function-based vault listing."""

    async def list_vaults(
        self,
        *,
        client: httpx.AsyncClient,
        endpoints: FirestoreEndpoints,
        session: Session,
        guard: SessionGuard,
        timeout_seconds: int,
    ) -> list[VaultSummary]:
        return await _vault.list_vaults(
            client=client,
            endpoints=endpoints,
            session=session,
            guard=guard,
            timeout_seconds=timeout_seconds,
        )


class DefaultLinkService:
    """Default adapter that delegates to the function-based link append."""

    def __init__(self, now: Callable[[], datetime] = _link.utc_now) -> None:
        self._now = now

    async def append_link(
        self,
        *,
        client: httpx.AsyncClient,
        endpoints: FirestoreEndpoints,
        session: Session,
        guard: SessionGuard,
        vault_id: str,
        page: ActivePage,
        timeout_seconds: int,
        guard_concurrent_writes: bool,
    ) -> Link:
        return await _link.append_link(
            client=client,
            endpoints=endpoints,
            session=session,
            guard=guard,
            vault_id=vault_id,
            page=page,
            timeout_seconds=timeout_seconds,
            guard_concurrent_writes=guard_concurrent_writes,
            now=self._now,
        )


@dataclass(slots=True)
class AppServices:
    """Aggregated service interfaces consumed by the popup controller."""

    auth: AuthService
    vaults: VaultService
    links: LinkService


def build_default_app_services() -> AppServices:
    """Build default app services backed by the function-based modules."""
    return AppServices(
        auth=DefaultAuthService(),
        vaults=DefaultVaultService(),
        links=DefaultLinkService(),
    )


__all__ = [
    "AppServices",
    "AuthService",
    "LinkService",
    "VaultService",
    "build_default_app_services",
]
