"""
Storefront Controller

Owns the application state and wires the collaborators together:

    SessionManager ──(resolved session)──▶ CatalogSynchronizer.load / reset_to_guest
    Cart ──(snapshot)──▶ OrderRecorder ──▶ receipt text + share links

Everything the HTTP layer (or a script) does goes through one Storefront.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from bistro.cart import Cart, ItemKey
from bistro.catalog import CatalogSynchronizer
from bistro.core.config import Settings, get_settings
from bistro.core.errors import ValidationFailed
from bistro.orders import OrderRecorder
from bistro.receipt import render_receipt
from bistro.schemas import (
    Category,
    MenuItem,
    OrderRecord,
    PaymentMethod,
    PlateSize,
    RestaurantProfile,
    Session,
)
from bistro.services.backend import BaseBackend, get_backend
from bistro.services.enhancer import BaseMenuEnhancer, get_enhancer
from bistro.services.history_export import HistoryExporter
from bistro.services.share import sms_link, whatsapp_link
from bistro.session import SessionManager
from bistro.state import AppState

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"


@dataclass
class Invoice:
    """A finalized order together with everything needed to hand it off."""
    order: OrderRecord
    receipt: str
    whatsapp_url: str
    sms_url: str


@dataclass
class DashboardStats:
    total_revenue: float
    order_count: int
    category_count: int
    items: list[MenuItem]
    history: list[OrderRecord]


def _matches(query: str, *fields: str) -> bool:
    query = query.strip().lower()
    if not query:
        return True
    return any(query in (value or "").lower() for value in fields)


class Storefront:
    """
    Example:
        >>> storefront = Storefront()
        >>> await storefront.start()
        >>> storefront.add_to_cart(storefront.state.menu_items[0].id)
        >>> invoice = await storefront.checkout("Asha", "+91 98765 43210")
        >>> print(invoice.receipt)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        backend: Optional[BaseBackend] = None,
        enhancer: Optional[BaseMenuEnhancer] = None,
        exporter: Optional[HistoryExporter] = None,
    ):
        self.settings = settings or get_settings()
        self.backend = backend or get_backend()
        self.enhancer = enhancer or get_enhancer()
        self.exporter = exporter or HistoryExporter(
            data_dir=self.settings.data_directory,
            filename=self.settings.history_filename,
            lock_timeout=self.settings.export_lock_timeout,
        )

        self.state = AppState()
        self.sessions = SessionManager(self.backend, self.settings)
        self.catalog = CatalogSynchronizer(self.state, self.backend, self.enhancer)
        self.cart = Cart(self.catalog.lookup)
        self.orders = OrderRecorder(self.state, self.backend)

        self.sessions.on_change(self._on_session_change)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> Optional[Session]:
        self.state.detached = False
        logger.info(
            f"Storefront starting (backend={self.backend.provider_name}, "
            f"enhancer={self.enhancer.provider_name})"
        )
        return await self.sessions.start()

    async def close(self) -> None:
        """Detach state first so that late results are dropped, then release clients."""
        self.state.detached = True
        self.sessions.close()
        await self.backend.close()
        await self.enhancer.close()
        logger.info("Storefront closed")

    async def _on_session_change(self, session: Optional[Session]) -> None:
        self.state.session = session
        if session is None:
            self.catalog.reset_to_guest()
        else:
            await self.catalog.load(session)

    # =========================================================================
    # AUTH
    # =========================================================================

    async def sign_in(self, email: str, password: str) -> Session:
        """
        Raises:
            AuthFailed: shown on the login form, not as a notice
        """
        session = await self.sessions.sign_in(email, password)
        self.state.notify(f"Welcome, {session.name}! 👋", level="success")
        return session

    async def sign_up(self, email: str, password: str, full_name: str = "") -> Optional[Session]:
        session = await self.sessions.sign_up(email, password, full_name)
        if session is None:
            self.state.notify("Check your email for confirmation link!", level="info")
        else:
            self.state.notify(f"Welcome, {session.name}! 👋", level="success")
        return session

    async def sign_out(self) -> None:
        await self.sessions.sign_out()
        self.state.notify("Logged Out 👋", level="info")

    # =========================================================================
    # BROWSING & CART
    # =========================================================================

    def browse(
        self,
        category: Union[Category, str, None] = None,
        query: str = "",
    ) -> list[MenuItem]:
        """Menu filtered by category ("All" or None for every category) and a name/description search."""
        if category in (None, "", ALL_CATEGORIES):
            wanted = None
        else:
            try:
                wanted = Category(category)
            except ValueError:
                raise ValidationFailed(f"Unknown category: {category}")

        return [
            item for item in self.state.menu_items
            if (wanted is None or item.category == wanted)
            and _matches(query, item.name, item.description)
        ]

    def add_to_cart(
        self,
        item_id: ItemKey,
        size: PlateSize = PlateSize.FULL,
        delta: int = 1,
    ) -> int:
        """
        Returns:
            The new quantity of the (item, size) line

        Raises:
            ValidationFailed: Half requested for a dish without a half plate
        """
        item = self.catalog.lookup(item_id)
        if delta > 0 and item is not None and size == PlateSize.HALF and item.half_price is None:
            raise ValidationFailed(f"{item.name} has no half plate")

        before = self.cart.get_quantity(item_id, size)
        quantity = self.cart.increment(item_id, size, delta)
        if quantity > before and item is not None:
            self.state.notify(f"Added {item.name} ({size.value}) to order! 😋", level="success")
        return quantity

    def get_quantity(self, item_id: ItemKey, size: PlateSize = PlateSize.FULL) -> int:
        return self.cart.get_quantity(item_id, size)

    # =========================================================================
    # CATALOG
    # =========================================================================

    async def save_item(self, item: MenuItem) -> Optional[MenuItem]:
        saved = await self.catalog.save_item(item)
        if saved is not None and saved.id != item.id:
            self.cart.rekey(item.id, saved.id)
        return saved

    async def delete_item(self, item_id: ItemKey, confirm: Callable[[str], bool]) -> bool:
        return await self.catalog.delete_item(item_id, confirm)

    async def update_profile(self, profile: RestaurantProfile) -> RestaurantProfile:
        await self.catalog.update_profile(profile)
        return self.state.profile

    async def enhance_menu(self) -> bool:
        return await self.catalog.enhance()

    # =========================================================================
    # ORDERS
    # =========================================================================

    def _invoice_for(self, order: OrderRecord) -> Invoice:
        receipt = render_receipt(order, self.state.profile)
        return Invoice(
            order=order,
            receipt=receipt,
            whatsapp_url=whatsapp_link(order.customer_contact, receipt),
            sms_url=sms_link(order.customer_contact, receipt),
        )

    async def checkout(
        self,
        customer_name: str,
        customer_contact: str,
        payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH,
    ) -> Invoice:
        """
        Record the current cart as an order and clear the cart.

        Raises:
            ValidationFailed: nothing is recorded and the cart is kept
        """
        order = await self.orders.finalize(
            self.cart.snapshot(),
            customer_name,
            customer_contact,
            payment_method,
        )
        self.cart.clear()
        return self._invoice_for(order)

    def find_order(self, order_id: str) -> Optional[OrderRecord]:
        for order in self.state.history:
            if order.id == order_id:
                return order
        return None

    def receipt_for(self, order_id: str) -> Optional[str]:
        """Rebuild the receipt of a past order from its stored snapshot."""
        order = self.find_order(order_id)
        if order is None:
            return None
        return render_receipt(order, self.state.profile)

    def dashboard(self, query: str = "") -> DashboardStats:
        history = list(self.state.history)
        menu = self.state.menu_items
        return DashboardStats(
            total_revenue=sum(order.total for order in history),
            order_count=len(history),
            category_count=len({item.category for item in menu}),
            items=[
                item for item in menu
                if _matches(query, item.name, item.category.value)
            ],
            history=history,
        )

    def export_history(self) -> dict[str, Any]:
        """Write the current history to the back-office workbook."""
        return self.exporter.export_history(self.state.history)
