from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from bistro.constants import DEFAULT_PROFILE, DEFAULT_RECEIPT_FOOTER
from bistro.core.config import get_settings
from bistro.orders import OrderRecorder
from bistro.receipt import SEPARATOR, render_receipt
from bistro.schemas import CartLine, OrderRecord, PlateSize
from bistro.state import AppState


@pytest.fixture
def order(item_a, item_b):
    lines = [
        CartLine(item=item_a, quantity=2, size=PlateSize.FULL),
        CartLine(item=item_b, quantity=1, size=PlateSize.HALF),
    ]
    return OrderRecorder(AppState(), backend=None).build_record(
        lines, "Asha", "+91 98765 43210", "UPI"
    )


@pytest.fixture
def profile():
    return DEFAULT_PROFILE.model_copy(update={
        "receipt_header": "Welcome to Dhruv Restaurants",
        "receipt_footer": "See you soon",
    })


class TestReceiptLayout:
    def test_total_line(self, order):
        assert order.total == 240.0
        assert "Total Amount: ₹240.00" in render_receipt(order, DEFAULT_PROFILE)

    def test_sections_in_order(self, order, profile):
        lines = render_receipt(order, profile).splitlines()

        assert lines[0] == "Hlo 👋 Asha"
        assert lines[1] == ""
        assert lines[2] == "Welcome to Dhruv Restaurants"
        assert lines[3] == SEPARATOR
        assert lines[4] == f"Invoice No: {order.id}"
        assert lines[5].startswith("Date: ")
        assert lines[6] == "Payment Mode: UPI"
        assert lines[7] == SEPARATOR
        assert lines[8] == "Ordered Items:"
        assert lines[9] == "Item A (Full) x2 - ₹200.00"
        assert lines[10] == "Item B (Half) x1 - ₹40.00"
        assert lines[11] == ""
        assert lines[13] == SEPARATOR
        assert lines[14] == "See you soon"
        assert len(lines) == 15
        assert lines.count(SEPARATOR) == 3

    def test_header_and_footer_fallbacks(self, order):
        profile = DEFAULT_PROFILE.model_copy(
            update={"receipt_header": "", "receipt_footer": None}
        )
        lines = render_receipt(order, profile).splitlines()

        assert lines[2] == profile.name
        assert lines[-1] == DEFAULT_RECEIPT_FOOTER


class TestReceiptReconstruction:
    def test_identical_after_store_round_trip(self, order):
        stored = OrderRecord.from_row(order.to_row("user-1"))

        assert render_receipt(stored, DEFAULT_PROFILE) == render_receipt(order, DEFAULT_PROFILE)

    def test_record_without_snapshot_uses_summary(self, order):
        bare = order.model_copy(update={"cart_lines": None})
        text = render_receipt(bare, DEFAULT_PROFILE)

        assert order.items_summary in text
        assert "Total Amount: ₹240.00" in text

    def test_camel_case_snapshot_rows(self, order):
        row = order.to_row("user-1")
        for line in row["cart_items_json"]:
            line["halfPrice"] = line.pop("half_price")
            line["selectedSize"] = line.pop("selected_size")
            line.pop("id_kind")

        stored = OrderRecord.from_row(row)

        assert render_receipt(stored, DEFAULT_PROFILE) == render_receipt(order, DEFAULT_PROFILE)

    def test_identical_after_utc_normalized_row(self, order):
        row = order.to_row("user-1")
        row["timestamp"] = order.timestamp.astimezone(timezone.utc).isoformat()

        stored = OrderRecord.from_row(row)

        assert stored.timestamp.utcoffset().total_seconds() == 0
        assert render_receipt(stored, DEFAULT_PROFILE) == render_receipt(order, DEFAULT_PROFILE)

    def test_text_timestamp_row(self, order):
        row = order.to_row("user-1")
        row["timestamp"] = "19 Oct 2026, 01:15 pm"

        stored = OrderRecord.from_row(row)

        assert stored.timestamp.tzinfo is not None
        assert "Date: 19 Oct 2026, 01:15 PM" in render_receipt(stored, DEFAULT_PROFILE)


class TestReceiptDates:
    def test_printed_in_restaurant_zone(self, order):
        utc_order = order.model_copy(update={
            "timestamp": datetime(2026, 10, 19, 7, 45, tzinfo=timezone.utc),
        })

        assert "Date: 19 Oct 2026, 01:15 PM" in render_receipt(utc_order, DEFAULT_PROFILE)
        assert "Date: 19 Oct 2026, 03:45 AM" in render_receipt(
            utc_order, DEFAULT_PROFILE, zone=ZoneInfo("America/New_York")
        )

    def test_configured_zone(self, order, monkeypatch):
        monkeypatch.setenv("RESTAURANT_TIMEZONE", "Europe/London")
        get_settings.cache_clear()
        utc_order = order.model_copy(update={
            "timestamp": datetime(2026, 1, 5, 18, 0, tzinfo=timezone.utc),
        })

        assert "Date: 05 Jan 2026, 06:00 PM" in render_receipt(utc_order, DEFAULT_PROFILE)
