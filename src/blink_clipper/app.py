"""Textual popup: projects ``PopupState`` onto widgets and forwards gestures."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Input, Label, Select, Static

from blink_clipper.action_messages import (
    LOAD_VAULTS_FAILED_MESSAGE,
    NO_VAULTS_MESSAGE,
    build_signed_in_as,
    build_vault_count_label,
)
from blink_clipper.controller import PopupController
from blink_clipper.models import ActivePage, ClipperConfig, VaultSummary
from blink_clipper.services.interfaces import AppServices
from blink_clipper.session_store import SessionStore
from blink_clipper.state import LoggedIn, LoggedOut, PopupState, Saving, StatusMessage

logger = logging.getLogger(__name__)


class ClipperApp(App):
    """Capture the active page into one of the user's vaults."""

    TITLE = "Blink"

    BINDINGS = [
        Binding("ctrl+s", "save", "Save"),
        Binding("escape", "close", "Close"),
    ]

    CSS = """
    Screen {
        align: center top;
    }

    #popup {
        width: 64;
        height: auto;
        border: tall $accent;
        padding: 0 2;
    }

    #popup-title {
        text-style: bold;
        color: $accent;
        margin-bottom: 1;
    }

    #page-title {
        text-style: bold;
    }

    #page-url {
        color: $text-muted;
        margin-bottom: 1;
    }

    #login-view Input {
        margin-bottom: 1;
    }

    #main-view Select {
        margin-bottom: 1;
    }

    #account, #vault-label {
        color: $text-muted;
    }

    .popup-buttons {
        height: auto;
        align: right middle;
    }

    .popup-buttons Button {
        margin-left: 1;
    }

    #status {
        margin-top: 1;
        padding: 0 1;
    }

    #status.status-success {
        background: $success 30%;
    }

    #status.status-error {
        background: $error 30%;
    }
    """

    def __init__(
        self,
        page: ActivePage,
        *,
        config: ClipperConfig | None = None,
        store: SessionStore | None = None,
        services: AppServices | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__()
        self._page = page
        self._config = config or ClipperConfig()
        self._store = store or SessionStore()
        self._services = services
        self._http_client = client
        self._owns_client = client is None
        self._controller: PopupController | None = None
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._rendered_vaults: tuple[VaultSummary, ...] | None = None
        self._scheduled_status: StatusMessage | None = None
        self._close_scheduled = False

    @property
    def controller(self) -> PopupController | None:
        return self._controller

    def compose(self) -> ComposeResult:
        with Vertical(id="popup"):
            yield Label("Save to Blink", id="popup-title")
            yield Static(self._page.title, id="page-title", markup=False)
            yield Static(self._page.url, id="page-url", markup=False)
            with Vertical(id="login-view"):
                yield Input(placeholder="Email", id="email")
                yield Input(placeholder="Password", password=True, id="password")
                with Horizontal(classes="popup-buttons"):
                    yield Button("Sign in", variant="primary", id="login-btn")
            with Vertical(id="main-view"):
                yield Label("", id="account")
                yield Label("", id="vault-label")
                yield Select([], prompt="Loading containers...", id="vault-select")
                with Horizontal(classes="popup-buttons"):
                    yield Button("Disconnect", variant="default", id="disconnect-btn")
                    yield Button("Save to Blink", variant="primary", id="save-btn")
            yield Static("", id="status", markup=False)

    def on_mount(self) -> None:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient()
        self._controller = PopupController(
            page=self._page,
            config=self._config,
            store=self._store,
            client=self._http_client,
            services=self._services,
        )
        self._controller.subscribe(self._render_state)
        self._render_state(self._controller.state)
        self._track_task(self._controller.start())

    async def on_unmount(self) -> None:
        # In-flight requests are not awaited; closing the client ends them
        for task in list(self._background_tasks):
            task.cancel()
        client = self._http_client
        self._http_client = None
        if client is not None and self._owns_client:
            try:
                await client.aclose()
            except Exception as e:
                logger.debug("Failed to close HTTP client during shutdown: %s", e, exc_info=True)

    def _track_task(self, coro: Any) -> asyncio.Task[Any]:
        """Create an asyncio task and track it to prevent garbage collection."""
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        task.add_done_callback(self._on_task_done)
        return task

    @staticmethod
    def _on_task_done(task: asyncio.Task[Any]) -> None:
        """Log unhandled exceptions from background tasks."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Unhandled exception in background task: %s", exc, exc_info=exc)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render_state(self, state: PopupState) -> None:
        view = state.view
        logged_out = isinstance(view, LoggedOut)
        self.query_one("#login-view").display = logged_out
        self.query_one("#main-view").display = not logged_out

        login_btn = self.query_one("#login-btn", Button)
        signing_in = isinstance(view, LoggedOut) and view.signing_in
        login_btn.disabled = signing_in
        login_btn.label = "Signing in..." if signing_in else "Sign in"

        if isinstance(view, (LoggedIn, Saving)):
            self._render_main_view(view)
        else:
            self._rendered_vaults = None

        self._render_status(state.status)

        if state.close_requested and not self._close_scheduled:
            self._close_scheduled = True
            self.set_timer(self._config.close_delay_seconds, self.exit)

    def _render_main_view(self, view: LoggedIn | Saving) -> None:
        self.query_one("#account", Label).update(build_signed_in_as(view.session.email))
        select = self.query_one("#vault-select", Select)

        if view.vaults != self._rendered_vaults:
            self._rendered_vaults = view.vaults
            select.set_options([(vault.name, vault.id) for vault in view.vaults])

        loading = isinstance(view, LoggedIn) and view.loading
        failed = isinstance(view, LoggedIn) and view.load_failed
        if loading:
            select.prompt = "Loading containers..."
            self.query_one("#vault-label", Label).update("")
        elif failed:
            select.prompt = LOAD_VAULTS_FAILED_MESSAGE
            self.query_one("#vault-label", Label).update("")
        else:
            select.prompt = NO_VAULTS_MESSAGE if not view.vaults else "Choose a container"
            self.query_one("#vault-label", Label).update(build_vault_count_label(len(view.vaults)))

        if view.selected is not None and select.value != view.selected:
            select.value = view.selected
        select.disabled = isinstance(view, Saving) or not view.vaults

        save_btn = self.query_one("#save-btn", Button)
        saving = isinstance(view, Saving)
        save_btn.label = "Saving..." if saving else "Save to Blink"
        save_btn.disabled = saving or not (isinstance(view, LoggedIn) and view.can_save)
        # No disconnect while a vault query for this session is in flight
        self.query_one("#disconnect-btn", Button).disabled = saving or loading

    def _render_status(self, status: StatusMessage | None) -> None:
        banner = self.query_one("#status", Static)
        banner.remove_class("status-success", "status-error")
        if status is None:
            banner.update("")
            banner.display = False
            return
        banner.update(status.text)
        banner.add_class(f"status-{status.kind}")
        banner.display = True
        if status.auto_dismiss and status is not self._scheduled_status:
            self._scheduled_status = status
            self.set_timer(
                self._config.status_dismiss_seconds,
                lambda: self._dismiss_status(status),
            )

    def _dismiss_status(self, status: StatusMessage) -> None:
        if self._controller is not None:
            self._controller.dismiss_status(status)

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    def _submit_login(self) -> None:
        if self._controller is None:
            return
        email = self.query_one("#email", Input).value
        password = self.query_one("#password", Input).value
        self._track_task(self._controller.sign_in(email, password))

    @on(Button.Pressed, "#login-btn")
    def on_login_pressed(self) -> None:
        self._submit_login()

    @on(Input.Submitted, "#password")
    def on_password_submitted(self) -> None:
        self._submit_login()

    @on(Button.Pressed, "#disconnect-btn")
    def on_disconnect_pressed(self) -> None:
        if self._controller is None:
            return
        self.query_one("#password", Input).value = ""
        self._controller.logout()

    @on(Button.Pressed, "#save-btn")
    def on_save_pressed(self) -> None:
        self.action_save()

    @on(Select.Changed, "#vault-select")
    def on_vault_changed(self, event: Select.Changed) -> None:
        # Blank values come from option resets, not from the user
        if self._controller is not None and isinstance(event.value, str):
            self._controller.select(event.value)

    def action_save(self) -> None:
        if self._controller is None:
            return
        view = self._controller.state.view
        if isinstance(view, LoggedIn) and not view.loading:
            self._track_task(self._controller.save())

    def action_close(self) -> None:
        self.exit()


__all__ = [
    "ClipperApp",
]
