"""
Backend Service Abstract Base Class

Defines the interface contract for the managed backend the storefront talks
to: row CRUD over the profiles / menu_items / orders tables plus session
based authentication with auth-state change notification.

Both MockBackend and SupabaseBackend implement these methods, so the
catalog, session and order code behave identically regardless of which
backend is active.

Design Pattern: Strategy Pattern
    - Allows runtime switching between the in-memory mock and Supabase
    - Facilitates testing with forced failures on the mock

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class StoreResult:
    """
    Standardized result from a table operation.

    Attributes:
        success: Whether the store accepted the operation
        data: Returned rows (list of dicts), a single row, or None
        error_message: Error description if the operation failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the round trip
    """
    success: bool
    data: Optional[Any] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0

    @property
    def rows(self) -> list[dict[str, Any]]:
        """Returned data normalized to a list of rows."""
        if self.data is None:
            return []
        if isinstance(self.data, list):
            return self.data
        return [self.data]


@dataclass
class AuthUser:
    """Identity as reported by the auth provider."""
    id: str
    email: str = ""
    user_metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class AuthResult:
    """
    Standardized result from an auth operation.

    A successful result with `user=None` means there is no active session
    (guest, or sign-up awaiting e-mail confirmation).
    """
    success: bool
    user: Optional[AuthUser] = None
    access_token: Optional[str] = None
    error_message: Optional[str] = None


class AuthEvent(str, Enum):
    """Auth-state transitions pushed to subscribers."""
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


AuthListener = Callable[[AuthEvent, Optional[AuthUser]], Awaitable[None]]


class AuthSubscription:
    """Handle returned by `on_auth_state_change`; call `unsubscribe()` to stop."""

    def __init__(self, backend: "BaseBackend", listener: AuthListener):
        self._backend = backend
        self._listener = listener

    @property
    def active(self) -> bool:
        return self._listener in self._backend._listeners

    def unsubscribe(self) -> None:
        if self.active:
            self._backend._listeners.remove(self._listener)


class BaseBackend(ABC):
    """
    Abstract base class for backends.

    Filters are equality filters: {"user_id": "abc"} selects rows whose
    user_id column equals "abc".

    Example:
        >>> backend = get_backend()  # Returns Mock or Supabase
        >>> result = await backend.select("menu_items", {"user_id": user.id})
        >>> if result.success:
        ...     print(len(result.rows))
    """

    def __init__(self):
        self._listeners: list[AuthListener] = []

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the backend name (e.g., "mock", "supabase")."""
        pass

    # =========================================================================
    # TABLES
    # =========================================================================

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        single: bool = False,
    ) -> StoreResult:
        """
        Fetch rows matching `filters`.

        With `single=True`, `data` is the first matching row or None.
        """
        pass

    @abstractmethod
    async def insert(
        self,
        table: str,
        rows: list[dict[str, Any]],
    ) -> StoreResult:
        """Insert rows and return them as stored (with generated ids)."""
        pass

    @abstractmethod
    async def update(
        self,
        table: str,
        values: dict[str, Any],
        filters: dict[str, Any],
    ) -> StoreResult:
        """Update matching rows and return them."""
        pass

    @abstractmethod
    async def upsert(
        self,
        table: str,
        row: dict[str, Any],
    ) -> StoreResult:
        """Insert or merge a single row by id; `data` is the stored row."""
        pass

    @abstractmethod
    async def delete(
        self,
        table: str,
        filters: dict[str, Any],
    ) -> StoreResult:
        """Delete matching rows."""
        pass

    # =========================================================================
    # AUTH
    # =========================================================================

    @abstractmethod
    async def get_session(self) -> AuthResult:
        """Resolve the current session, if any."""
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthResult:
        """Password sign-in. Emits SIGNED_IN on success."""
        pass

    @abstractmethod
    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: str = "",
    ) -> AuthResult:
        """Create an account. Emits SIGNED_IN when a session is issued."""
        pass

    @abstractmethod
    async def sign_out(self) -> AuthResult:
        """End the session. Emits SIGNED_OUT."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the backend.

        Returns:
            bool: True if the backend is reachable and operational
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None

    def on_auth_state_change(self, listener: AuthListener) -> AuthSubscription:
        """Subscribe to auth-state transitions."""
        self._listeners.append(listener)
        return AuthSubscription(self, listener)

    async def _emit(self, event: AuthEvent, user: Optional[AuthUser]) -> None:
        logger.debug(f"Auth event {event.value} (user={user.id if user else None})")
        for listener in list(self._listeners):
            try:
                await listener(event, user)
            except Exception:
                logger.exception(f"Auth listener failed on {event.value}")
