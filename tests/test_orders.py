import asyncio
import re

import pytest

from bistro.constants import ORDERS_TABLE
from bistro.core.errors import ErrorKind, ValidationFailed
from bistro.orders import OrderRecorder, mint_invoice_id
from bistro.schemas import CartLine, PlateSize
from bistro.state import AppState


@pytest.fixture
def lines(item_a, item_b):
    return [
        CartLine(item=item_a, quantity=2, size=PlateSize.FULL),
        CartLine(item=item_b, quantity=1, size=PlateSize.HALF),
    ]


class TestBuildRecord:
    def test_total_and_summary(self, lines):
        record = OrderRecorder(AppState(), backend=None).build_record(lines, "Asha", "98765")

        assert record.total == 240.0
        assert record.items_summary == "Item A (Full x2), Item B (Half x1)"
        assert record.payment_method == "Cash"
        assert len(record.cart_lines) == 2

    def test_invoice_id_format(self):
        assert re.match(r"^INV-[0-9A-F]{7}$", mint_invoice_id())

    @pytest.mark.parametrize("name,contact", [
        ("", "98765"),
        ("Asha", ""),
        ("   ", "98765"),
        ("Asha", "  "),
    ])
    def test_name_and_contact_required(self, lines, name, contact):
        with pytest.raises(ValidationFailed):
            OrderRecorder(AppState(), backend=None).build_record(lines, name, contact)

    def test_empty_cart_rejected(self):
        with pytest.raises(ValidationFailed):
            OrderRecorder(AppState(), backend=None).build_record([], "Asha", "98765")

    def test_unknown_payment_method_rejected(self, lines):
        with pytest.raises(ValidationFailed):
            OrderRecorder(AppState(), backend=None).build_record(lines, "Asha", "98765", "Cheque")


class TestFinalize:
    def test_guest_order_stays_local(self, backend, lines):
        state = AppState()
        record = asyncio.run(OrderRecorder(state, backend).finalize(lines, "Asha", "98765"))

        assert state.history == [record]
        assert backend.calls == []

    def test_newest_first(self, backend, lines):
        state = AppState()
        recorder = OrderRecorder(state, backend)

        first = asyncio.run(recorder.finalize(lines, "Asha", "98765"))
        second = asyncio.run(recorder.finalize(lines, "Rohan", "12345"))

        assert state.history == [second, first]

    def test_signed_in_order_persisted_with_snapshot(self, backend, signed_in_state, lines):
        record = asyncio.run(
            OrderRecorder(signed_in_state, backend).finalize(lines, "Asha", "98765", "Card")
        )

        rows = backend.rows(ORDERS_TABLE)
        assert len(rows) == 1
        assert rows[0]["id"] == record.id
        assert rows[0]["user_id"] == "user-1"
        assert rows[0]["payment_method"] == "Card"
        assert len(rows[0]["cart_items_json"]) == 2
        assert rows[0]["cart_items_json"][1]["selected_size"] == "Half"

    def test_write_failure_keeps_record_and_notifies_once(self, backend, signed_in_state, lines):
        backend.force_failure("insert", ORDERS_TABLE)

        record = asyncio.run(
            OrderRecorder(signed_in_state, backend).finalize(lines, "Asha", "98765")
        )

        assert signed_in_state.history == [record]
        assert backend.calls.count(("insert", ORDERS_TABLE)) == 1
        notices = signed_in_state.notifications.of_kind(ErrorKind.WRITE_FAILED)
        assert len(notices) == 1
        assert notices[0].level == "warning"

    def test_validation_failure_records_nothing(self, backend, signed_in_state):
        with pytest.raises(ValidationFailed):
            asyncio.run(OrderRecorder(signed_in_state, backend).finalize([], "Asha", "98765"))

        assert signed_in_state.history == []
        assert backend.calls == []
