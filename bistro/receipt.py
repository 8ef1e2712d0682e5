"""
Receipt text.

`render_receipt` is a pure function of the order record and the profile:
the same two inputs always produce the same text, whether the record was
just created at checkout or loaded from history months later. Dates are
printed in the configured restaurant zone, so a row the store hands back
normalized to UTC renders the same as the live record.

Layout (sections 1 and 2 are not separated):

    1. greeting
    2. receipt header, or the restaurant name
    3. invoice id, date, payment mode
    4. line items, blank line, total
    5. receipt footer, or the default thank-you line
"""

from typing import Optional
from zoneinfo import ZoneInfo

from bistro.constants import CURRENCY_SYMBOL, DEFAULT_RECEIPT_FOOTER
from bistro.core.config import get_settings
from bistro.schemas import DATE_FORMAT, OrderRecord, RestaurantProfile

SEPARATOR = "--------"


def format_amount(amount: float) -> str:
    return f"{CURRENCY_SYMBOL}{amount:.2f}"


def format_date(order: OrderRecord, zone: Optional[ZoneInfo] = None) -> str:
    """Invoice date in the restaurant zone, whatever offset the stored value carries."""
    zone = zone or get_settings().restaurant_zone
    return order.timestamp.astimezone(zone).strftime(DATE_FORMAT)


def render_receipt(
    order: OrderRecord,
    profile: RestaurantProfile,
    zone: Optional[ZoneInfo] = None,
) -> str:
    lines = [
        f"Hlo 👋 {order.customer_name}",
        "",
        profile.receipt_header or profile.name,
        SEPARATOR,
        f"Invoice No: {order.id}",
        f"Date: {format_date(order, zone)}",
        f"Payment Mode: {order.payment_method}",
        SEPARATOR,
        "Ordered Items:",
    ]

    if order.cart_lines is not None:
        for line in order.cart_lines:
            lines.append(
                f"{line.item.name} ({line.size.value}) x{line.quantity} - "
                f"{format_amount(line.subtotal)}"
            )
    else:
        # Records saved without a cart snapshot only have the summary.
        lines.append(order.items_summary)

    lines.extend([
        "",
        f"Total Amount: {format_amount(order.total)}",
        SEPARATOR,
        profile.receipt_footer or DEFAULT_RECEIPT_FOOTER,
    ])
    return "\n".join(lines) + "\n"
