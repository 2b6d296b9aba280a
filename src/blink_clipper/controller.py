"""Popup orchestration: wires the services to user gestures and view state.

The controller owns the current ``PopupState`` (and through it the Session)
for the lifetime of one popup. Views call its coroutines in response to
gestures and re-render from the state handed to their listener.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx

from blink_clipper import state as st
from blink_clipper.action_messages import SAVE_CONFLICT_MESSAGE, SAVE_FAILED_MESSAGE
from blink_clipper.errors import (
    AppendConflict,
    AppendError,
    AuthError,
    AuthExpired,
    QueryError,
    ValidationError,
)
from blink_clipper.firestore import FirestoreEndpoints
from blink_clipper.models import ActivePage, ClipperConfig, Link
from blink_clipper.services.auth_service import validate_credentials
from blink_clipper.services.interfaces import AppServices, build_default_app_services
from blink_clipper.services.link_service import NO_VAULT_MESSAGE
from blink_clipper.services.session_guard import SessionGuard
from blink_clipper.session_store import SessionStore

logger = logging.getLogger(__name__)

StateListener = Callable[[st.PopupState], None]


class PopupController:
    """Drives session, vault listing and link capture for one popup instance."""

    def __init__(
        self,
        *,
        page: ActivePage,
        config: ClipperConfig,
        store: SessionStore,
        client: httpx.AsyncClient,
        services: AppServices | None = None,
    ) -> None:
        self._page = page
        self._config = config
        self._store = store
        self._client = client
        self._services = services or build_default_app_services()
        self._endpoints = FirestoreEndpoints.from_config(config)
        self._guard = SessionGuard(store)
        self._state = st.PopupState(st.LoggedOut())
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> st.PopupState:
        return self._state

    @property
    def page(self) -> ActivePage:
        return self._page

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _set(self, new_state: st.PopupState) -> None:
        if new_state is self._state:
            return
        self._state = new_state
        for listener in self._listeners:
            listener(new_state)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Derive the initial view from the store; load vaults when signed in."""
        self._set(st.initial_state(self._store.load()))
        if self._state.session is not None:
            await self.load_vaults()

    async def sign_in(self, email: str, password: str) -> None:
        view = self._state.view
        if not isinstance(view, st.LoggedOut) or view.signing_in:
            return
        try:
            email, password = validate_credentials(email, password)
        except ValidationError as e:
            self._set(st.validation_failed(self._state, e.message))
            return

        self._set(st.sign_in_started(self._state))
        try:
            session = await self._services.auth.sign_in(
                client=self._client,
                endpoints=self._endpoints,
                email=email,
                password=password,
                timeout_seconds=self._config.request_timeout_seconds,
            )
        except AuthError as e:
            self._set(st.sign_in_failed(self._state, e.message))
            return

        try:
            self._store.save(session)
        except OSError:
            logger.error("Failed to persist session", exc_info=True)
            self._set(st.sign_in_failed(self._state, "Could not store the session"))
            return

        self._set(st.signed_in(self._state, session))
        await self.load_vaults()

    def logout(self) -> None:
        """Forget the session. Safe to call when already signed out."""
        try:
            self._store.clear()
        except OSError:
            logger.error("Failed to clear session", exc_info=True)
        self._set(st.logged_out(self._state))

    def _expire(self) -> None:
        # SessionGuard has already cleared the store
        self._set(st.session_expired(self._state))

    # ------------------------------------------------------------------
    # Vaults
    # ------------------------------------------------------------------

    async def load_vaults(self) -> None:
        session = self._state.session
        if session is None or not isinstance(self._state.view, st.LoggedIn):
            return
        self._set(st.vaults_loading(self._state))
        try:
            vaults = await self._services.vaults.list_vaults(
                client=self._client,
                endpoints=self._endpoints,
                session=session,
                guard=self._guard,
                timeout_seconds=self._config.request_timeout_seconds,
            )
        except AuthExpired:
            self._expire()
            return
        except QueryError as e:
            logger.warning("Loading vaults failed: %s", e.message)
            if self._state.session is session:
                self._set(st.vaults_failed(self._state))
            return

        if self._state.session is not session:
            logger.debug("Discarding vault list for a session that is gone")
            return
        self._set(st.vaults_loaded(self._state, vaults))

    def select(self, vault_id: str | None) -> None:
        self._set(st.vault_selected(self._state, vault_id))

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    async def save(self) -> Link | None:
        """Append the active page to the selected vault; None when nothing was saved."""
        view = self._state.view
        if not isinstance(view, st.LoggedIn):
            return None
        if view.selected is None:
            self._set(st.validation_failed(self._state, NO_VAULT_MESSAGE))
            return None
        if not view.can_save:
            return None

        self._set(st.save_started(self._state))
        saving = self._state.view
        if not isinstance(saving, st.Saving):
            return None
        try:
            link = await self._services.links.append_link(
                client=self._client,
                endpoints=self._endpoints,
                session=saving.session,
                guard=self._guard,
                vault_id=saving.selected,
                page=self._page,
                timeout_seconds=self._config.request_timeout_seconds,
                guard_concurrent_writes=self._config.guard_concurrent_writes,
            )
        except AuthExpired:
            self._expire()
            return None
        except AppendConflict:
            self._set(st.save_failed(self._state, SAVE_CONFLICT_MESSAGE))
            return None
        except AppendError as e:
            logger.warning("Saving link failed: %s", e.message)
            self._set(st.save_failed(self._state, SAVE_FAILED_MESSAGE))
            return None
        except ValidationError as e:
            self._set(st.save_failed(self._state, e.message))
            return None

        self._set(st.saved(self._state, close=self._config.close_after_save))
        return link

    # ------------------------------------------------------------------
    # Banner
    # ------------------------------------------------------------------

    def dismiss_status(self, status: st.StatusMessage) -> None:
        self._set(st.status_dismissed(self._state, status))


__all__ = [
    "PopupController",
    "StateListener",
]
