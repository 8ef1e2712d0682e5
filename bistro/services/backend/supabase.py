"""
Supabase Backend Implementation

Production implementation using the official `supabase` Python SDK:
    - client.table(...) (PostgREST) for row CRUD
    - client.auth (GoTrue) for password auth

Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - SUPABASE_URL and SUPABASE_ANON_KEY must be set in environment
    - Row-level security policies keyed on auth.uid() for the three tables

The SDK keeps the session (access + refresh token), refreshes it before it
expires and forwards the current access token on every table call. When a
refresh is rejected the SDK drops the session and reports SIGNED_OUT; that
event is passed on to subscribers so the storefront falls back to guest.

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Coroutine, Optional

import httpx
from supabase import AsyncClient, AuthError, PostgrestAPIError, acreate_client

from bistro.constants import PROFILES_TABLE
from bistro.core.config import get_settings
from bistro.services.backend.base import (
    AuthEvent,
    AuthResult,
    AuthUser,
    BaseBackend,
    StoreResult,
)

logger = logging.getLogger(__name__)


class SupabaseBackend(BaseBackend):
    """
    Production Supabase backend.

    Example:
        >>> backend = SupabaseBackend()
        >>> await backend.sign_in("chef@example.com", "secret")
        >>> result = await backend.select("menu_items", {"user_id": uid})
    """

    def __init__(
        self,
        url: Optional[str] = None,
        anon_key: Optional[str] = None,
        client: Optional[AsyncClient] = None,
    ):
        """
        Prepare the SDK client. It is created on first use, inside the
        running event loop.

        Raises:
            ValueError: If the project URL or anon key is not configured
        """
        super().__init__()
        settings = get_settings()

        self._url = url or settings.supabase_url
        self._anon_key = anon_key or settings.supabase_anon_key
        if client is None and (not self._url or not self._anon_key):
            raise ValueError(
                "SUPABASE_URL and SUPABASE_ANON_KEY are required for production mode. "
                "Set them in your .env file or environment variables."
            )

        self._client: Optional[AsyncClient] = None
        self._user: Optional[AuthUser] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        # Set while one of our own auth calls runs; those emit explicitly.
        self._auth_call_active = False
        if client is not None:
            self._attach(client)

        logger.info("SupabaseBackend initialized")

    @property
    def provider_name(self) -> str:
        return "supabase"

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _attach(self, client: AsyncClient) -> None:
        self._client = client
        client.auth.on_auth_state_change(self._on_sdk_auth_event)

    async def _get_client(self) -> AsyncClient:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        if self._client is None:
            self._attach(await acreate_client(self._url, self._anon_key))
        return self._client

    def _on_sdk_auth_event(self, event: str, session: Any) -> None:
        """
        SDK callback (synchronous). Only sessions the SDK ends on its own,
        such as a rejected token refresh, are forwarded from here.
        """
        logger.debug(f"Supabase SDK auth event: {event}")
        if event != "SIGNED_OUT" or self._auth_call_active or self._user is None:
            return

        logger.warning("Supabase session ended (refresh rejected or revoked)")
        self._user = None
        self._schedule(self._emit(AuthEvent.SIGNED_OUT, None))

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            # Called from the SDK's refresh timer thread.
            if self._loop is None:
                coro.close()
                return
            asyncio.run_coroutine_threadsafe(coro, self._loop)

    async def _execute(
        self,
        description: str,
        build: Callable[[AsyncClient], Any],
    ) -> StoreResult:
        start_time = datetime.now()

        try:
            client = await self._get_client()
            response = await build(client).execute()
        except PostgrestAPIError as e:
            logger.warning(f"Supabase {description} failed ({e.code}): {e.message}")
            return StoreResult(
                success=False,
                error_message=e.message or str(e),
                error_code=str(e.code) if e.code else None,
                response_time_ms=(datetime.now() - start_time).total_seconds() * 1000,
            )
        except httpx.HTTPError as e:
            logger.error(f"Supabase transport error on {description}: {e}")
            return StoreResult(
                success=False,
                error_message=str(e) or e.__class__.__name__,
                error_code="transport_error",
            )

        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
        return StoreResult(success=True, data=response.data, response_time_ms=elapsed_ms)

    @staticmethod
    def _apply_filters(query: Any, filters: Optional[dict[str, Any]]) -> Any:
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        return query

    @staticmethod
    def _parse_user(user: Any) -> Optional[AuthUser]:
        if user is None or not getattr(user, "id", None):
            return None
        return AuthUser(
            id=str(user.id),
            email=getattr(user, "email", None) or "",
            user_metadata=dict(getattr(user, "user_metadata", None) or {}),
        )

    @staticmethod
    def _auth_error_text(e: AuthError) -> str:
        return getattr(e, "message", None) or str(e) or "Authentication failed"

    # =========================================================================
    # TABLES
    # =========================================================================

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        single: bool = False,
    ) -> StoreResult:
        def build(client: AsyncClient) -> Any:
            query = self._apply_filters(client.table(table).select("*"), filters)
            if order_by:
                query = query.order(order_by, desc=descending)
            if single:
                query = query.limit(1)
            return query

        result = await self._execute(f"select {table}", build)
        if result.success and single:
            rows = result.rows
            result.data = rows[0] if rows else None
        return result

    async def insert(
        self,
        table: str,
        rows: list[dict[str, Any]],
    ) -> StoreResult:
        return await self._execute(
            f"insert {table}",
            lambda client: client.table(table).insert(rows),
        )

    async def update(
        self,
        table: str,
        values: dict[str, Any],
        filters: dict[str, Any],
    ) -> StoreResult:
        return await self._execute(
            f"update {table}",
            lambda client: self._apply_filters(client.table(table).update(values), filters),
        )

    async def upsert(
        self,
        table: str,
        row: dict[str, Any],
    ) -> StoreResult:
        result = await self._execute(
            f"upsert {table}",
            lambda client: client.table(table).upsert(row),
        )
        if result.success:
            rows = result.rows
            result.data = rows[0] if rows else None
        return result

    async def delete(
        self,
        table: str,
        filters: dict[str, Any],
    ) -> StoreResult:
        return await self._execute(
            f"delete {table}",
            lambda client: self._apply_filters(client.table(table).delete(), filters),
        )

    # =========================================================================
    # AUTH
    # =========================================================================

    async def get_session(self) -> AuthResult:
        try:
            client = await self._get_client()
            # Refreshes an expired access token; a rejected refresh yields None.
            session = await client.auth.get_session()
        except (AuthError, httpx.HTTPError) as e:
            logger.info(f"Stored session rejected: {e}")
            session = None

        user = self._parse_user(session.user) if session is not None else None
        if user is None and self._user is not None:
            self._user = None
            await self._emit(AuthEvent.SIGNED_OUT, None)
        self._user = user

        return AuthResult(
            success=True,
            user=user,
            access_token=session.access_token if session is not None else None,
        )

    async def sign_in(self, email: str, password: str) -> AuthResult:
        client = await self._get_client()
        self._auth_call_active = True
        try:
            response = await client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except (AuthError, httpx.HTTPError) as e:
            logger.warning(f"Supabase: sign-in rejected for {email}: {e}")
            return AuthResult(success=False, error_message=self._auth_error_text(e))
        finally:
            self._auth_call_active = False

        user = self._parse_user(response.user)
        self._user = user
        logger.info(f"Supabase: signed in {email}")
        await self._emit(AuthEvent.SIGNED_IN, user)

        return AuthResult(
            success=True,
            user=user,
            access_token=response.session.access_token if response.session else None,
        )

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: str = "",
    ) -> AuthResult:
        client = await self._get_client()
        self._auth_call_active = True
        try:
            response = await client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"full_name": full_name} if full_name else {}},
            })
        except (AuthError, httpx.HTTPError) as e:
            logger.warning(f"Supabase: sign-up rejected for {email}: {e}")
            return AuthResult(success=False, error_message=self._auth_error_text(e))
        finally:
            self._auth_call_active = False

        if response.session is None:
            # Confirmation e-mail sent; no session yet.
            logger.info(f"Supabase: sign-up for {email} awaiting confirmation")
            return AuthResult(success=True, user=None)

        user = self._parse_user(response.user)
        self._user = user
        await self._emit(AuthEvent.SIGNED_IN, user)

        return AuthResult(success=True, user=user, access_token=response.session.access_token)

    async def sign_out(self) -> AuthResult:
        client = await self._get_client()
        error_message = None
        self._auth_call_active = True
        try:
            await client.auth.sign_out()
        except (AuthError, httpx.HTTPError) as e:
            logger.warning(f"Supabase: sign-out reported an error: {e}")
            error_message = str(e)
        finally:
            self._auth_call_active = False

        self._user = None
        await self._emit(AuthEvent.SIGNED_OUT, None)

        return AuthResult(success=error_message is None, error_message=error_message)

    async def health_check(self) -> bool:
        result = await self._execute(
            "health check",
            lambda client: client.table(PROFILES_TABLE).select("id").limit(1),
        )
        return result.success

    async def close(self) -> None:
        if self._client is None:
            return
        postgrest = getattr(self._client, "postgrest", None)
        if postgrest is not None:
            await postgrest.aclose()
