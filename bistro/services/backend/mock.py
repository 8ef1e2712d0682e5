"""
Mock Backend Implementation

In-memory stand-in for the managed backend. Used in development mode
(ENV_MODE=development) to:
    - Run the storefront without a Supabase project
    - Exercise seeding, optimistic writes and failure notices in tests
    - Create portfolio demonstrations

Behavior:
    - Simulates configurable response times
    - Randomly fails a share of requests (failure_rate)
    - Supports forced failures per operation/table for deterministic tests
    - Generates uuid row ids like Postgres would

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import copy
import random
import uuid
import logging
from collections import defaultdict
from typing import Any, Optional

from bistro.services.backend.base import (
    AuthEvent,
    AuthResult,
    AuthUser,
    BaseBackend,
    StoreResult,
)

logger = logging.getLogger(__name__)


class MockBackend(BaseBackend):
    """
    Mock implementation of the backend.

    Attributes:
        failure_rate: Probability of simulated failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
        require_email_confirmation: Sign-up withholds the session
        tables: table name -> row id -> row
        calls: (operation, table) log of every table call

    Example:
        >>> backend = MockBackend()
        >>> backend.force_failure("upsert", "menu_items")
        >>> result = await backend.upsert("menu_items", {"name": "Soup"})
        >>> print(result.success)
        False
    """

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        require_email_confirmation: bool = False,
    ):
        super().__init__()
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.require_email_confirmation = require_email_confirmation

        self.tables: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.calls: list[tuple[str, str]] = []
        self._forced_failures: set[tuple[str, Optional[str]]] = set()
        self._accounts: dict[str, dict[str, Any]] = {}
        self._current_user: Optional[AuthUser] = None

        logger.info(
            f"MockBackend initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    # =========================================================================
    # TEST HOOKS
    # =========================================================================

    def force_failure(self, operation: str, table: Optional[str] = None) -> None:
        """Make every `operation` (optionally only on `table`) fail until cleared."""
        self._forced_failures.add((operation, table))

    def clear_failures(self) -> None:
        self._forced_failures.clear()

    def rows(self, table: str) -> list[dict[str, Any]]:
        """Copy of every stored row in `table`."""
        return [copy.deepcopy(row) for row in self.tables[table].values()]

    def confirm_email(self, email: str) -> None:
        account = self._accounts.get(email.lower())
        if account:
            account["confirmed"] = True

    # =========================================================================
    # INTERNALS
    # =========================================================================

    async def _simulate_latency(self) -> float:
        """
        Simulate network latency.

        Returns:
            float: Actual latency in milliseconds
        """
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self, operation: str, table: Optional[str]) -> bool:
        if (operation, table) in self._forced_failures:
            return True
        if (operation, None) in self._forced_failures:
            return True
        return random.random() < self.failure_rate

    @staticmethod
    def _matches(row: dict[str, Any], filters: Optional[dict[str, Any]]) -> bool:
        if not filters:
            return True
        return all(str(row.get(key)) == str(value) for key, value in filters.items())

    async def _begin(self, operation: str, table: str) -> Optional[StoreResult]:
        """Record the call, wait, and return a failure result if one is due."""
        self.calls.append((operation, table))
        latency_ms = await self._simulate_latency()

        if self._should_fail(operation, table):
            logger.warning(f"Mock: {operation} on {table} failed (simulated)")
            return StoreResult(
                success=False,
                error_message=f"Simulated {operation} failure",
                error_code="network_error",
                response_time_ms=latency_ms,
            )
        return None

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
        failure = await self._begin("select", table)
        if failure:
            return failure

        rows = [
            copy.deepcopy(row)
            for row in self.tables[table].values()
            if self._matches(row, filters)
        ]
        if order_by:
            rows.sort(key=lambda r: str(r.get(order_by) or ""), reverse=descending)

        if single:
            return StoreResult(success=True, data=rows[0] if rows else None)
        return StoreResult(success=True, data=rows)

    async def insert(
        self,
        table: str,
        rows: list[dict[str, Any]],
    ) -> StoreResult:
        failure = await self._begin("insert", table)
        if failure:
            return failure

        stored = self.tables[table]
        prepared = []
        for row in rows:
            new_row = copy.deepcopy(row)
            row_id = str(new_row.get("id") or uuid.uuid4())
            if row_id in stored:
                return StoreResult(
                    success=False,
                    error_message=f"duplicate key value violates unique constraint on {table}.id",
                    error_code="23505",
                )
            new_row["id"] = row_id
            prepared.append(new_row)

        for new_row in prepared:
            stored[new_row["id"]] = new_row

        logger.debug(f"Mock: inserted {len(prepared)} row(s) into {table}")
        return StoreResult(success=True, data=copy.deepcopy(prepared))

    async def update(
        self,
        table: str,
        values: dict[str, Any],
        filters: dict[str, Any],
    ) -> StoreResult:
        failure = await self._begin("update", table)
        if failure:
            return failure

        updated = []
        for row in self.tables[table].values():
            if self._matches(row, filters):
                row.update(copy.deepcopy(values))
                updated.append(copy.deepcopy(row))

        return StoreResult(success=True, data=updated)

    async def upsert(
        self,
        table: str,
        row: dict[str, Any],
    ) -> StoreResult:
        failure = await self._begin("upsert", table)
        if failure:
            return failure

        stored = self.tables[table]
        row_id = row.get("id")
        if row_id and str(row_id) in stored:
            stored[str(row_id)].update(copy.deepcopy(row))
            result_row = stored[str(row_id)]
        else:
            result_row = copy.deepcopy(row)
            result_row["id"] = str(row_id or uuid.uuid4())
            stored[result_row["id"]] = result_row

        return StoreResult(success=True, data=copy.deepcopy(result_row))

    async def delete(
        self,
        table: str,
        filters: dict[str, Any],
    ) -> StoreResult:
        failure = await self._begin("delete", table)
        if failure:
            return failure

        stored = self.tables[table]
        removed = [row for row in stored.values() if self._matches(row, filters)]
        for row in removed:
            del stored[row["id"]]

        return StoreResult(success=True, data=removed)

    # =========================================================================
    # AUTH
    # =========================================================================

    async def get_session(self) -> AuthResult:
        await self._simulate_latency()
        return AuthResult(success=True, user=self._current_user)

    async def sign_in(self, email: str, password: str) -> AuthResult:
        await self._simulate_latency()

        account = self._accounts.get(email.lower())
        if not account or account["password"] != password:
            return AuthResult(success=False, error_message="Invalid login credentials")
        if not account["confirmed"]:
            return AuthResult(success=False, error_message="Email not confirmed")

        self._current_user = account["user"]
        logger.info(f"Mock: signed in {email}")
        await self._emit(AuthEvent.SIGNED_IN, self._current_user)

        return AuthResult(
            success=True,
            user=self._current_user,
            access_token=f"mock_token_{uuid.uuid4().hex[:16]}",
        )

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: str = "",
    ) -> AuthResult:
        await self._simulate_latency()

        key = email.lower()
        if key in self._accounts:
            return AuthResult(success=False, error_message="User already registered")
        if len(password) < 6:
            return AuthResult(
                success=False,
                error_message="Password should be at least 6 characters",
            )

        metadata = {"full_name": full_name} if full_name else {}
        user = AuthUser(id=str(uuid.uuid4()), email=email, user_metadata=metadata)
        self._accounts[key] = {
            "password": password,
            "user": user,
            "confirmed": not self.require_email_confirmation,
        }

        if self.require_email_confirmation:
            logger.info(f"Mock: sign-up for {email} awaiting confirmation")
            return AuthResult(success=True, user=None)

        self._current_user = user
        logger.info(f"Mock: signed up {email}")
        await self._emit(AuthEvent.SIGNED_IN, user)

        return AuthResult(
            success=True,
            user=user,
            access_token=f"mock_token_{uuid.uuid4().hex[:16]}",
        )

    async def sign_out(self) -> AuthResult:
        await self._simulate_latency()
        self._current_user = None
        await self._emit(AuthEvent.SIGNED_OUT, None)
        return AuthResult(success=True)

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
