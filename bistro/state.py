"""
Application State

Single state object owned by the Storefront controller. Components receive
it explicitly; there are no module-level singletons holding UI state.

Notifications are transient, dismissible notices (the "toasts" of the
front end). Raising one also logs it.
"""

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from bistro.constants import DEFAULT_PROFILE
from bistro.core.errors import ErrorKind
from bistro.schemas import MenuItem, OrderRecord, RestaurantProfile, Session

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class Notification:
    id: int
    message: str
    level: str = "info"
    kind: Optional[ErrorKind] = None
    created_at: datetime = field(default_factory=datetime.now)


class NotificationCenter:
    """Keeps the most recent notices until they are dismissed."""

    def __init__(self, max_pending: int = 20):
        self.max_pending = max_pending
        self._pending: list[Notification] = []
        self._ids = itertools.count(1)

    def notify(
        self,
        message: str,
        level: str = "info",
        kind: Optional[ErrorKind] = None,
    ) -> Notification:
        notification = Notification(
            id=next(self._ids),
            message=message,
            level=level,
            kind=kind,
        )
        logger.log(
            _LOG_LEVELS.get(level, logging.INFO),
            f"Notice [{kind.value if kind else level}]: {message}",
        )
        self._pending.append(notification)
        del self._pending[:-self.max_pending]
        return notification

    @property
    def pending(self) -> list[Notification]:
        return list(self._pending)

    @property
    def last(self) -> Optional[Notification]:
        return self._pending[-1] if self._pending else None

    def of_kind(self, kind: ErrorKind) -> list[Notification]:
        return [n for n in self._pending if n.kind == kind]

    def dismiss(self, notification_id: int) -> bool:
        for index, notification in enumerate(self._pending):
            if notification.id == notification_id:
                del self._pending[index]
                return True
        return False

    def clear(self) -> None:
        self._pending.clear()


@dataclass
class AppState:
    """
    Locally cached copy of everything the storefront shows.

    `menu_items`, `profile` and `history` mirror the remote store for the
    signed-in identity and may briefly (or, after a failed write,
    permanently) differ from it. `detached` is set when the owner shuts
    down; late async results must not be applied after that.
    """
    session: Optional[Session] = None
    menu_items: list[MenuItem] = field(default_factory=list)
    profile: RestaurantProfile = DEFAULT_PROFILE
    history: list[OrderRecord] = field(default_factory=list)
    is_loading: bool = True
    is_enhancing: bool = False
    detached: bool = False
    notifications: NotificationCenter = field(default_factory=NotificationCenter)

    @property
    def is_guest(self) -> bool:
        return self.session is None

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id if self.session else None

    def notify(
        self,
        message: str,
        level: str = "info",
        kind: Optional[ErrorKind] = None,
    ) -> Notification:
        return self.notifications.notify(message, level=level, kind=kind)
