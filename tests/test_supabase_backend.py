import asyncio
from types import SimpleNamespace

import httpx
import pytest
from supabase import AuthError, PostgrestAPIError

from bistro.services.backend import AuthEvent, SupabaseBackend
from bistro.session import SessionManager

USER = SimpleNamespace(id="user-1", email="chef@example.com", user_metadata={"full_name": "Dhruv"})


class RejectedCredentials(AuthError):
    def __init__(self, message):
        Exception.__init__(self, message)
        self.message = message


class FakeQuery:
    """Chainable stand-in for a PostgREST request builder; records every call."""

    def __init__(self, client, table):
        self.client = client
        self.calls = [("table", table)]

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return record

    async def execute(self):
        self.client.queries.append(self.calls)
        reply = self.client.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(data=reply)


class FakeAuth:
    def __init__(self):
        self.callbacks = []
        self.session = None
        self.sign_in_error = None
        self.sign_up_needs_confirmation = False

    def on_auth_state_change(self, callback):
        self.callbacks.append(callback)

    def fire(self, event, session):
        for callback in self.callbacks:
            callback(event, session)

    def _new_session(self, user):
        return SimpleNamespace(user=user, access_token="jwt-1", refresh_token="refresh-1")

    async def sign_in_with_password(self, credentials):
        if self.sign_in_error:
            raise self.sign_in_error
        self.session = self._new_session(USER)
        self.fire("SIGNED_IN", self.session)
        return SimpleNamespace(user=USER, session=self.session)

    async def sign_up(self, credentials):
        self.last_sign_up = credentials
        if self.sign_up_needs_confirmation:
            return SimpleNamespace(user=USER, session=None)
        self.session = self._new_session(USER)
        self.fire("SIGNED_IN", self.session)
        return SimpleNamespace(user=USER, session=self.session)

    async def sign_out(self):
        self.session = None
        self.fire("SIGNED_OUT", None)

    async def get_session(self):
        return self.session


class FakeClient:
    def __init__(self, replies=()):
        self.auth = FakeAuth()
        self.replies = list(replies)
        self.queries = []

    def table(self, name):
        return FakeQuery(self, name)


def run(scenario, client=None):
    client = client or FakeClient()

    async def main():
        backend = SupabaseBackend(client=client)
        return await scenario(backend)

    return asyncio.run(main()), client


class TestTables:
    def test_select_filters_and_order(self):
        client = FakeClient([[{"id": "INV-1"}]])
        result, _ = run(
            lambda b: b.select("orders", {"user_id": "user-1"}, order_by="timestamp", descending=True),
            client,
        )

        assert result.success
        assert result.rows == [{"id": "INV-1"}]
        assert client.queries[0] == [
            ("table", "orders"),
            ("select", ("*",), {}),
            ("eq", ("user_id", "user-1"), {}),
            ("order", ("timestamp",), {"desc": True}),
        ]

    @pytest.mark.parametrize("rows,expected", [
        ([{"id": "user-1", "name": "Bistro"}], {"id": "user-1", "name": "Bistro"}),
        ([], None),
    ])
    def test_single_select(self, rows, expected):
        client = FakeClient([rows])
        result, _ = run(lambda b: b.select("profiles", {"id": "user-1"}, single=True), client)

        assert result.success
        assert result.data == expected
        assert ("limit", (1,), {}) in client.queries[0]

    def test_upsert_returns_stored_row(self):
        client = FakeClient([[{"id": "abc123", "name": "Soup"}]])
        result, _ = run(lambda b: b.upsert("menu_items", {"name": "Soup"}), client)

        assert result.data == {"id": "abc123", "name": "Soup"}
        assert client.queries[0][1] == ("upsert", ({"name": "Soup"},), {})

    def test_delete_by_filter(self):
        client = FakeClient([[]])
        result, _ = run(lambda b: b.delete("menu_items", {"id": "abc123", "user_id": "user-1"}), client)

        assert result.success
        assert client.queries[0][1:] == [
            ("delete", (), {}),
            ("eq", ("id", "abc123"), {}),
            ("eq", ("user_id", "user-1"), {}),
        ]

    def test_api_error_is_reported(self):
        error = PostgrestAPIError({"message": "duplicate key", "code": "23505"})
        result, _ = run(lambda b: b.insert("orders", [{"id": "INV-1"}]), FakeClient([error]))

        assert not result.success
        assert result.error_message == "duplicate key"
        assert result.error_code == "23505"

    def test_transport_error(self):
        result, _ = run(lambda b: b.select("orders"), FakeClient([httpx.ConnectError("offline")]))

        assert not result.success
        assert result.error_code == "transport_error"


class TestAuth:
    def test_sign_in_emits_once(self):
        events = []

        async def scenario(backend):
            async def listener(event, user):
                events.append((event, user.id if user else None))

            backend.on_auth_state_change(listener)
            return await backend.sign_in("chef@example.com", "secret")

        result, _ = run(scenario)

        assert result.success
        assert result.user.user_metadata["full_name"] == "Dhruv"
        assert result.access_token == "jwt-1"
        assert events == [(AuthEvent.SIGNED_IN, "user-1")]

    def test_rejected_credentials(self):
        client = FakeClient()
        client.auth.sign_in_error = RejectedCredentials("Invalid login credentials")

        result, _ = run(lambda b: b.sign_in("chef@example.com", "bad"), client)

        assert not result.success
        assert result.error_message == "Invalid login credentials"

    def test_sign_up_awaiting_confirmation(self):
        client = FakeClient()
        client.auth.sign_up_needs_confirmation = True

        result, _ = run(lambda b: b.sign_up("chef@example.com", "secret1", "Dhruv"), client)

        assert result.success
        assert result.user is None
        assert client.auth.last_sign_up["options"]["data"] == {"full_name": "Dhruv"}

    def test_get_session_without_session(self):
        result, _ = run(lambda b: b.get_session())

        assert result.success
        assert result.user is None

    def test_sign_out_emits_once(self):
        events = []

        async def scenario(backend):
            await backend.sign_in("chef@example.com", "secret")

            async def listener(event, user):
                events.append(event)

            backend.on_auth_state_change(listener)
            await backend.sign_out()
            await asyncio.sleep(0)
            return await backend.get_session()

        result, _ = run(scenario)

        assert result.user is None
        assert events == [AuthEvent.SIGNED_OUT]


class TestSessionExpiry:
    def test_rejected_refresh_signs_out(self):
        async def scenario(backend):
            manager = SessionManager(backend)
            seen = []

            async def listener(session):
                seen.append(session.user_id if session else None)

            manager.on_change(listener)
            await manager.start()
            await manager.sign_in("chef@example.com", "secret")

            # The SDK gave up refreshing the token and dropped the session.
            backend._client.auth.session = None
            backend._client.auth.fire("SIGNED_OUT", None)
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            return manager.current, seen

        (current, seen), _ = run(scenario)

        assert current is None
        assert seen == [None, "user-1", None]

    def test_token_refresh_keeps_identity(self):
        async def scenario(backend):
            events = []

            async def listener(event, user):
                events.append(event)

            await backend.sign_in("chef@example.com", "secret")
            backend.on_auth_state_change(listener)
            backend._client.auth.fire("TOKEN_REFRESHED", backend._client.auth.session)
            await asyncio.sleep(0)
            return events, await backend.get_session()

        (events, session), _ = run(scenario)

        assert events == []
        assert session.user.id == "user-1"

    def test_expired_session_found_on_resolve(self):
        async def scenario(backend):
            events = []

            async def listener(event, user):
                events.append(event)

            await backend.sign_in("chef@example.com", "secret")
            backend.on_auth_state_change(listener)
            backend._client.auth.session = None
            return events, await backend.get_session()

        (events, result), _ = run(scenario)

        assert result.user is None
        assert events == [AuthEvent.SIGNED_OUT]
