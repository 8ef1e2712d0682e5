import asyncio

import pytest

from bistro.constants import SAMPLE_MENU
from bistro.core.errors import AuthFailed
from bistro.services.backend import AuthEvent, AuthUser, MockBackend
from bistro.session import SessionManager, display_name_for
from tests.conftest import CHEF_EMAIL, CHEF_NAME, CHEF_PASSWORD


class TestDisplayName:
    def test_full_name_metadata_wins(self):
        user = AuthUser(id="u", email="dhruv@example.com", user_metadata={"full_name": "Dhruv S"})
        assert display_name_for(user) == "Dhruv S"

    def test_falls_back_to_email_local_part(self):
        assert display_name_for(AuthUser(id="u", email="dhruv@example.com")) == "dhruv"

    def test_falls_back_to_user(self):
        assert display_name_for(AuthUser(id="u")) == "User"

    def test_avatar_url_uses_encoded_name(self, backend):
        session = SessionManager(backend).resolve(
            AuthUser(id="u", user_metadata={"full_name": "Dhruv Sharma"})
        )
        assert session.avatar_url.endswith("?name=Dhruv%20Sharma&background=random")


class TestSessionLifecycle:
    def test_guest_start(self, storefront, backend):
        state = storefront.state

        assert state.session is None
        assert state.is_guest
        assert state.menu_items == list(SAMPLE_MENU)
        assert state.is_loading is False
        assert backend.calls == []

    def test_listeners_fire_only_on_identity_change(self):
        async def scenario():
            backend = MockBackend()
            manager = SessionManager(backend)
            seen = []

            async def listener(session):
                seen.append(session.user_id if session else None)

            manager.on_change(listener)
            await manager.start()
            user = AuthUser(id="u1", email="a@example.com")
            await backend._emit(AuthEvent.SIGNED_IN, user)
            await backend._emit(AuthEvent.SIGNED_IN, user)
            await backend._emit(AuthEvent.SIGNED_OUT, None)
            await backend._emit(AuthEvent.SIGNED_OUT, None)
            return seen

        assert asyncio.run(scenario()) == [None, "u1", None]

    def test_close_unsubscribes(self):
        async def scenario():
            backend = MockBackend()
            manager = SessionManager(backend)
            await manager.start()
            assert manager.is_running

            manager.close()
            await backend.sign_up(CHEF_EMAIL, CHEF_PASSWORD, CHEF_NAME)
            return backend, manager

        backend, manager = asyncio.run(scenario())
        assert backend._listeners == []
        assert not manager.is_running
        assert manager.current is None

    def test_prior_session_is_restored(self):
        async def scenario():
            backend = MockBackend()
            await backend.sign_up(CHEF_EMAIL, CHEF_PASSWORD, CHEF_NAME)
            manager = SessionManager(backend)
            return await manager.start()

        session = asyncio.run(scenario())
        assert session is not None
        assert session.name == CHEF_NAME


class TestSignIn:
    def test_sign_up_loads_the_new_identity(self, storefront, backend):
        session = asyncio.run(storefront.sign_up(CHEF_EMAIL, CHEF_PASSWORD, CHEF_NAME))

        assert storefront.state.session == session
        assert session.name == CHEF_NAME
        assert len(storefront.state.menu_items) == 6
        assert storefront.state.notifications.last.message == f"Welcome, {CHEF_NAME}! 👋"

    def test_wrong_password(self, signed_in):
        asyncio.run(signed_in.sign_out())

        with pytest.raises(AuthFailed, match="Invalid login credentials"):
            asyncio.run(signed_in.sign_in(CHEF_EMAIL, "wrong-password"))
        assert signed_in.state.session is None

    def test_sign_in_again_restores_catalog(self, signed_in, backend):
        stored_ids = {row["id"] for row in backend.rows("menu_items")}
        asyncio.run(signed_in.sign_out())

        asyncio.run(signed_in.sign_in(CHEF_EMAIL, CHEF_PASSWORD))

        assert {str(item.id) for item in signed_in.state.menu_items} == stored_ids
        assert len(backend.rows("menu_items")) == 6

    def test_sign_out_returns_to_guest(self, signed_in):
        asyncio.run(signed_in.sign_out())

        state = signed_in.state
        assert state.session is None
        assert state.menu_items == list(SAMPLE_MENU)
        assert state.history == []
        assert state.notifications.last.message == "Logged Out 👋"

    def test_sign_up_awaiting_confirmation(self, enhancer, exporter):
        from bistro.storefront import Storefront

        backend = MockBackend(require_email_confirmation=True)
        storefront = Storefront(backend=backend, enhancer=enhancer, exporter=exporter)

        async def scenario():
            await storefront.start()
            return await storefront.sign_up(CHEF_EMAIL, CHEF_PASSWORD, CHEF_NAME)

        assert asyncio.run(scenario()) is None
        assert storefront.state.session is None
        assert storefront.state.notifications.last.message == "Check your email for confirmation link!"

        with pytest.raises(AuthFailed, match="Email not confirmed"):
            asyncio.run(storefront.sign_in(CHEF_EMAIL, CHEF_PASSWORD))

        backend.confirm_email(CHEF_EMAIL)
        session = asyncio.run(storefront.sign_in(CHEF_EMAIL, CHEF_PASSWORD))
        assert storefront.state.session == session
