"""
Session Manager

Tracks the signed-in identity. Owns the backend auth subscription for its
lifetime (start() .. close()) and turns raw auth events into a resolved
Optional[Session]; listeners only ever see that resolved value, and only
when the identity actually changes.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from typing import Awaitable, Callable, Optional
from urllib.parse import quote

from bistro.core.config import Settings, get_settings
from bistro.core.errors import AuthFailed
from bistro.schemas import Session
from bistro.services.backend import AuthEvent, AuthSubscription, AuthUser, BaseBackend

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional[Session]], Awaitable[None]]


def display_name_for(user: AuthUser) -> str:
    """full_name metadata, else the e-mail local part, else 'User'."""
    full_name = (user.user_metadata or {}).get("full_name")
    if full_name:
        return full_name
    if user.email:
        return user.email.split("@")[0]
    return "User"


class SessionManager:
    def __init__(self, backend: BaseBackend, settings: Optional[Settings] = None):
        self._backend = backend
        self._settings = settings or get_settings()
        self._subscription: Optional[AuthSubscription] = None
        self._listeners: list[SessionListener] = []
        self._current: Optional[Session] = None
        self._resolved = False

    @property
    def current(self) -> Optional[Session]:
        return self._current

    @property
    def is_running(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def resolve(self, user: Optional[AuthUser]) -> Optional[Session]:
        if user is None:
            return None
        name = display_name_for(user)
        return Session(
            user_id=user.id,
            name=name,
            email=user.email or "",
            avatar_url=f"{self._settings.avatar_base_url}?name={quote(name)}&background=random",
        )

    def on_change(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    async def start(self) -> Optional[Session]:
        """Resolve any prior session, then follow auth events until close()."""
        if self._subscription is None:
            self._subscription = self._backend.on_auth_state_change(self._handle_event)

        result = await self._backend.get_session()
        if not result.success:
            logger.warning(f"Could not resolve prior session: {result.error_message}")
        await self._apply(self.resolve(result.user if result.success else None))
        return self._current

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._listeners.clear()
        logger.debug("Session subscription closed")

    async def _handle_event(self, event: AuthEvent, user: Optional[AuthUser]) -> None:
        logger.info(f"Auth state changed: {event.value}")
        await self._apply(self.resolve(user))

    async def _apply(self, session: Optional[Session]) -> None:
        previous = self._current
        self._current = session

        unchanged = self._resolved and (
            (previous is None and session is None)
            or (previous is not None and session is not None
                and previous.user_id == session.user_id)
        )
        self._resolved = True
        if unchanged:
            return

        for listener in list(self._listeners):
            await listener(session)

    async def sign_in(self, email: str, password: str) -> Session:
        """
        Raises:
            AuthFailed: credentials rejected or backend unreachable
        """
        result = await self._backend.sign_in(email.strip(), password)
        if not result.success or result.user is None:
            raise AuthFailed(result.error_message or "Authentication failed")

        session = self.resolve(result.user)
        if not self.is_running:
            await self._apply(session)
        return session

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: str = "",
    ) -> Optional[Session]:
        """
        Returns None when the account awaits e-mail confirmation.

        Raises:
            AuthFailed: the backend rejected the sign-up
        """
        result = await self._backend.sign_up(email.strip(), password, full_name.strip())
        if not result.success:
            raise AuthFailed(result.error_message or "Authentication failed")
        if result.user is None:
            return None

        session = self.resolve(result.user)
        if not self.is_running:
            await self._apply(session)
        return session

    async def sign_out(self) -> None:
        result = await self._backend.sign_out()
        if not result.success:
            logger.warning(f"Sign-out reported an error: {result.error_message}")
        if not self.is_running:
            await self._apply(None)
