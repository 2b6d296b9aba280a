"""Tests for PopupController orchestration over injected services."""

from __future__ import annotations

from dataclasses import replace

import pytest
import pytest_asyncio

from blink_clipper import state as st
from blink_clipper.action_messages import (
    LOAD_VAULTS_FAILED_MESSAGE,
    SAVE_CONFLICT_MESSAGE,
    SAVE_FAILED_MESSAGE,
    SAVED_MESSAGE,
    SIGNED_IN_MESSAGE,
)
from blink_clipper.controller import PopupController
from blink_clipper.errors import (
    AppendConflict,
    AppendError,
    AuthError,
    AuthExpired,
    QueryError,
)
from blink_clipper.services.auth_service import EMPTY_FIELDS_MESSAGE


@pytest.fixture
def make_controller(page, config, session_store, http_client, fake_services):
    def _make(**overrides) -> PopupController:
        return PopupController(
            page=page,
            config=replace(config, **overrides),
            store=session_store,
            client=http_client,
            services=fake_services,
        )

    return _make


@pytest_asyncio.fixture
async def signed_in_controller(make_controller, session_store, make_session):
    session_store.save(make_session())
    controller = make_controller()
    await controller.start()
    return controller


class TestStart:
    @pytest.mark.asyncio
    async def test_start_without_session_shows_login(self, make_controller, fake_services):
        controller = make_controller()
        await controller.start()

        assert controller.state.view == st.LoggedOut()
        fake_services.vaults.list_vaults.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_with_undecodable_session_file(
        self, make_controller, session_store, fake_services
    ):
        session_store.path.write_bytes(b'{"token": "\xff\xfe"}')
        controller = make_controller()

        await controller.start()

        assert controller.state.view == st.LoggedOut()
        fake_services.vaults.list_vaults.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_with_session_loads_vaults(self, signed_in_controller, fake_services):
        view = signed_in_controller.state.view
        assert isinstance(view, st.LoggedIn)
        assert [v.id for v in view.vaults] == ["v1", "v2"]
        assert view.selected == "v1"
        kwargs = fake_services.vaults.list_vaults.await_args.kwargs
        assert kwargs["session"].user_id == "u1"
        assert kwargs["timeout_seconds"] == 15

    @pytest.mark.asyncio
    async def test_listener_sees_each_state(self, make_controller, session_store, make_session):
        session_store.save(make_session())
        controller = make_controller()
        seen: list[st.PopupState] = []
        controller.subscribe(seen.append)

        await controller.start()

        assert seen[0].view.loading is True
        assert seen[-1].view.loading is False


class TestSignIn:
    @pytest.mark.asyncio
    async def test_success_persists_and_loads(
        self, make_controller, session_store, fake_services, make_session
    ):
        controller = make_controller()
        await controller.start()

        await controller.sign_in(" ada@example.com ", "secret")

        assert session_store.load() == make_session()
        kwargs = fake_services.auth.sign_in.await_args.kwargs
        assert kwargs["email"] == "ada@example.com"
        assert isinstance(controller.state.view, st.LoggedIn)
        assert controller.state.status.text == SIGNED_IN_MESSAGE
        fake_services.vaults.list_vaults.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_blank_fields_make_no_request(self, make_controller, fake_services):
        controller = make_controller()
        await controller.start()

        await controller.sign_in("", "secret")

        assert controller.state.status.text == EMPTY_FIELDS_MESSAGE
        fake_services.auth.sign_in.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejection_shows_error(self, make_controller, session_store, fake_services):
        fake_services.auth.sign_in.side_effect = AuthError("Invalid email or password")
        controller = make_controller()
        await controller.start()

        await controller.sign_in("ada@example.com", "wrong")

        assert controller.state.view == st.LoggedOut()
        assert controller.state.status == st.StatusMessage("Invalid email or password", "error")
        assert session_store.load() is None

    @pytest.mark.asyncio
    async def test_ignored_when_signed_in(self, signed_in_controller, fake_services):
        await signed_in_controller.sign_in("ada@example.com", "secret")
        fake_services.auth.sign_in.assert_not_awaited()


class TestVaults:
    @pytest.mark.asyncio
    async def test_query_failure(self, make_controller, session_store, make_session, fake_services):
        fake_services.vaults.list_vaults.side_effect = QueryError("boom")
        session_store.save(make_session())
        controller = make_controller()

        await controller.start()

        assert controller.state.view.load_failed is True
        assert controller.state.status.text == LOAD_VAULTS_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_expired_token_signs_out(
        self, make_controller, session_store, make_session, fake_services
    ):
        fake_services.vaults.list_vaults.side_effect = AuthExpired()
        session_store.save(make_session())
        controller = make_controller()

        await controller.start()

        assert controller.state.view == st.LoggedOut()
        assert controller.state.status.kind == "error"

    @pytest.mark.asyncio
    async def test_result_for_old_session_discarded(
        self, make_controller, session_store, make_session, fake_services
    ):
        session_store.save(make_session())
        controller = make_controller()

        async def _list_then_logout(**_kwargs):
            controller.logout()
            return []

        fake_services.vaults.list_vaults.side_effect = _list_then_logout
        await controller.start()

        assert controller.state.view == st.LoggedOut()

    @pytest.mark.asyncio
    async def test_select(self, signed_in_controller):
        signed_in_controller.select("v2")
        assert signed_in_controller.state.view.selected == "v2"


class TestSave:
    @pytest.mark.asyncio
    async def test_save_appends_to_selected_vault(self, signed_in_controller, fake_services, page):
        signed_in_controller.select("v2")

        link = await signed_in_controller.save()

        assert link is not None
        kwargs = fake_services.links.append_link.await_args.kwargs
        assert kwargs["vault_id"] == "v2"
        assert kwargs["page"] == page
        assert kwargs["guard_concurrent_writes"] is True
        state = signed_in_controller.state
        assert state.status.text == SAVED_MESSAGE
        assert state.close_requested is True

    @pytest.mark.asyncio
    async def test_save_without_close(self, make_controller, session_store, make_session):
        session_store.save(make_session())
        controller = make_controller(close_after_save=False)
        await controller.start()

        await controller.save()

        assert controller.state.close_requested is False

    @pytest.mark.asyncio
    async def test_save_without_vault(
        self, make_controller, session_store, make_session, fake_services
    ):
        fake_services.vaults.list_vaults.return_value = []
        session_store.save(make_session())
        controller = make_controller()
        await controller.start()

        assert await controller.save() is None
        assert controller.state.status.text == "Please choose a vault"
        fake_services.links.append_link.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "message"),
        [
            (AppendConflict("v1"), SAVE_CONFLICT_MESSAGE),
            (AppendError("Failed to update vault (HTTP 500)"), SAVE_FAILED_MESSAGE),
        ],
    )
    async def test_save_failure_keeps_popup_open(
        self, signed_in_controller, fake_services, error, message
    ):
        fake_services.links.append_link.side_effect = error

        assert await signed_in_controller.save() is None

        state = signed_in_controller.state
        assert state.status == st.StatusMessage(message, "error")
        assert state.close_requested is False
        assert state.view.can_save is True

    @pytest.mark.asyncio
    async def test_save_with_expired_token(self, signed_in_controller, fake_services):
        fake_services.links.append_link.side_effect = AuthExpired()

        await signed_in_controller.save()

        assert signed_in_controller.state.view == st.LoggedOut()


class TestLogoutAndBanner:
    @pytest.mark.asyncio
    async def test_logout_twice(self, signed_in_controller, session_store):
        signed_in_controller.logout()
        signed_in_controller.logout()

        assert session_store.load() is None
        assert signed_in_controller.state.view == st.LoggedOut()

    @pytest.mark.asyncio
    async def test_dismiss_status(self, signed_in_controller):
        await signed_in_controller.save()
        status = signed_in_controller.state.status

        signed_in_controller.dismiss_status(status)

        assert signed_in_controller.state.status is None
