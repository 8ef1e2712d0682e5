"""
Order Recorder

Turns a cart snapshot into an immutable OrderRecord, adds it to the local
history (newest first) and, for signed-in users, writes it to the orders
table together with the full cart snapshot so the receipt can be rebuilt
later exactly as it was printed.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
import uuid
from datetime import datetime
from typing import Iterable, Union

from bistro.constants import ORDERS_TABLE
from bistro.core.config import get_settings
from bistro.core.errors import ErrorKind, ValidationFailed
from bistro.schemas import CartLine, OrderRecord, PaymentMethod
from bistro.services.backend import BaseBackend
from bistro.state import AppState

logger = logging.getLogger(__name__)


def mint_invoice_id() -> str:
    return f"INV-{uuid.uuid4().hex[:7].upper()}"


def summarize_lines(lines: Iterable[CartLine]) -> str:
    return ", ".join(
        f"{line.item.name} ({line.size.value} x{line.quantity})" for line in lines
    )


def order_total(lines: Iterable[CartLine]) -> float:
    return sum(line.unit_price * line.quantity for line in lines)


class OrderRecorder:
    def __init__(self, state: AppState, backend: BaseBackend):
        self._state = state
        self._backend = backend

    def build_record(
        self,
        lines: Iterable[CartLine],
        customer_name: str,
        customer_contact: str,
        payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH,
    ) -> OrderRecord:
        """
        Validate checkout input and produce the record.

        The invoice id and timestamp are minted here, once; callers keep the
        returned record instead of rebuilding it.

        Raises:
            ValidationFailed: blank customer name/contact, empty cart, or an
                unknown payment method
        """
        lines = tuple(lines)
        customer_name = (customer_name or "").strip()
        customer_contact = (customer_contact or "").strip()

        if not customer_name or not customer_contact:
            raise ValidationFailed("Customer name and contact are required")
        if not lines:
            raise ValidationFailed("Cart is empty")
        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            raise ValidationFailed(f"Unknown payment method: {payment_method}")

        return OrderRecord(
            id=mint_invoice_id(),
            customer_name=customer_name,
            customer_contact=customer_contact,
            total=order_total(lines),
            timestamp=datetime.now(get_settings().restaurant_zone),
            items_summary=summarize_lines(lines),
            payment_method=method.value,
            cart_lines=lines,
        )

    async def finalize(
        self,
        lines: Iterable[CartLine],
        customer_name: str,
        customer_contact: str,
        payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH,
    ) -> OrderRecord:
        """
        Record an order: optimistic history insert, then persist.

        A failed write leaves the record in local history and raises a
        notice; the record is never retried or altered.
        """
        record = self.build_record(lines, customer_name, customer_contact, payment_method)
        self._state.history.insert(0, record)
        logger.info(f"Order {record.id} recorded: {record.total:.2f} ({record.payment_method})")

        session = self._state.session
        if session is None:
            return record

        result = await self._backend.insert(ORDERS_TABLE, [record.to_row(session.user_id)])
        if not result.success:
            logger.error(f"Error saving order {record.id}: {result.error_message}")
            if not self._state.detached:
                self._state.notify(
                    "Failed to save order to cloud ☁️",
                    level="warning",
                    kind=ErrorKind.WRITE_FAILED,
                )
        return record
