"""Popup state machine: immutable states and pure transition functions.

The controller owns one ``PopupState`` at a time and replaces it through the
functions below; the Textual layer only projects the current state. Every
transition returns a new state and never touches the network or the disk.

    LoggedOut ──signed_in──▶ LoggedIn ──save_started──▶ Saving
        ▲                      │  ▲                        │
        │                      │  └──saved / save_failed───┘
        └──logged_out / session_expired (from any view)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

from blink_clipper.action_messages import (
    LOAD_VAULTS_FAILED_MESSAGE,
    LOGGED_OUT_MESSAGE,
    SAVED_MESSAGE,
    SIGNED_IN_MESSAGE,
)
from blink_clipper.errors import AuthExpired
from blink_clipper.models import Session, VaultSummary

StatusKind = Literal["success", "error"]


@dataclass(slots=True, frozen=True)
class StatusMessage:
    """Banner text; success banners dismiss themselves, errors persist."""

    text: str
    kind: StatusKind

    @property
    def auto_dismiss(self) -> bool:
        return self.kind == "success"


@dataclass(slots=True, frozen=True)
class LoggedOut:
    signing_in: bool = False


@dataclass(slots=True, frozen=True)
class LoggedIn:
    session: Session
    vaults: tuple[VaultSummary, ...] = ()
    selected: str | None = None
    loading: bool = True
    load_failed: bool = False

    @property
    def can_save(self) -> bool:
        if self.loading or self.selected is None:
            return False
        return any(vault.id == self.selected for vault in self.vaults)


@dataclass(slots=True, frozen=True)
class Saving:
    session: Session
    vaults: tuple[VaultSummary, ...]
    selected: str


ViewState = LoggedOut | LoggedIn | Saving


@dataclass(slots=True, frozen=True)
class PopupState:
    view: ViewState
    status: StatusMessage | None = None
    close_requested: bool = False

    @property
    def session(self) -> Session | None:
        if isinstance(self.view, LoggedOut):
            return None
        return self.view.session


def _success(text: str) -> StatusMessage:
    return StatusMessage(text, "success")


def _error(text: str) -> StatusMessage:
    return StatusMessage(text, "error")


# ============================================================================
# Session lifecycle
# ============================================================================


def initial_state(session: Session | None) -> PopupState:
    """State on popup open, derived from whatever the store held."""
    if session is None:
        return PopupState(LoggedOut())
    return PopupState(LoggedIn(session))


def sign_in_started(state: PopupState) -> PopupState:
    if not isinstance(state.view, LoggedOut) or state.view.signing_in:
        return state
    return PopupState(LoggedOut(signing_in=True))


def sign_in_failed(state: PopupState, message: str) -> PopupState:
    return PopupState(LoggedOut(), _error(message))


def signed_in(state: PopupState, session: Session) -> PopupState:
    return PopupState(LoggedIn(session), _success(SIGNED_IN_MESSAGE))


def logged_out(state: PopupState) -> PopupState:
    return PopupState(LoggedOut(), _success(LOGGED_OUT_MESSAGE))


def session_expired(state: PopupState) -> PopupState:
    return PopupState(LoggedOut(), _error(AuthExpired().message))


# ============================================================================
# Vault list
# ============================================================================


def vaults_loading(state: PopupState) -> PopupState:
    if not isinstance(state.view, LoggedIn):
        return state
    return replace(state, view=replace(state.view, loading=True, load_failed=False))


def vaults_loaded(state: PopupState, vaults: list[VaultSummary]) -> PopupState:
    """Show the vaults; the first one is preselected like a native picker."""
    if not isinstance(state.view, LoggedIn):
        return state
    items = tuple(vaults)
    view = replace(
        state.view,
        vaults=items,
        selected=items[0].id if items else None,
        loading=False,
        load_failed=False,
    )
    return replace(state, view=view)


def vaults_failed(state: PopupState) -> PopupState:
    if not isinstance(state.view, LoggedIn):
        return state
    view = replace(state.view, vaults=(), selected=None, loading=False, load_failed=True)
    return PopupState(view, _error(LOAD_VAULTS_FAILED_MESSAGE))


def vault_selected(state: PopupState, vault_id: str | None) -> PopupState:
    if not isinstance(state.view, LoggedIn):
        return state
    if vault_id is not None and all(vault.id != vault_id for vault in state.view.vaults):
        return state
    if state.view.selected == vault_id:
        return state
    return replace(state, view=replace(state.view, selected=vault_id))


# ============================================================================
# Save
# ============================================================================


def save_started(state: PopupState) -> PopupState:
    view = state.view
    if not isinstance(view, LoggedIn) or not view.can_save or view.selected is None:
        return state
    return PopupState(Saving(view.session, view.vaults, view.selected))


def saved(state: PopupState, *, close: bool) -> PopupState:
    if not isinstance(state.view, Saving):
        return state
    view = LoggedIn(
        state.view.session, state.view.vaults, state.view.selected, loading=False
    )
    return PopupState(view, _success(SAVED_MESSAGE), close_requested=close)


def save_failed(state: PopupState, message: str) -> PopupState:
    if not isinstance(state.view, Saving):
        return state
    view = LoggedIn(
        state.view.session, state.view.vaults, state.view.selected, loading=False
    )
    return PopupState(view, _error(message))


# ============================================================================
# Banner
# ============================================================================


def validation_failed(state: PopupState, message: str) -> PopupState:
    """Show a local validation error without changing the view."""
    view = state.view
    if isinstance(view, LoggedOut) and view.signing_in:
        view = LoggedOut()
    return replace(state, view=view, status=_error(message))


def status_dismissed(state: PopupState, status: StatusMessage) -> PopupState:
    """Clear *status* if it is still the one shown (a newer banner stays)."""
    if state.status is not status:
        return state
    return replace(state, status=None)


__all__ = [
    "LoggedIn",
    "LoggedOut",
    "PopupState",
    "Saving",
    "StatusMessage",
    "ViewState",
    "initial_state",
    "logged_out",
    "save_failed",
    "save_started",
    "saved",
    "session_expired",
    "sign_in_failed",
    "sign_in_started",
    "signed_in",
    "status_dismissed",
    "validation_failed",
    "vault_selected",
    "vaults_failed",
    "vaults_loaded",
    "vaults_loading",
]
