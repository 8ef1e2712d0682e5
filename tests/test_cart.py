import pytest

from bistro.cart import Cart
from bistro.schemas import PersistedId, PlateSize


@pytest.fixture
def menu(item_a, item_b):
    return {item_a.id: item_a, item_b.id: item_b}


@pytest.fixture
def cart(menu):
    return Cart(menu.get)


class TestCartIncrement:
    """Quantity ledger keyed by (item, size)"""

    def test_new_line_starts_at_delta(self, cart, item_a):
        assert cart.increment(item_a.id, PlateSize.FULL, 3) == 3
        assert cart.get_quantity(item_a.id, PlateSize.FULL) == 3
        assert len(cart.lines) == 1

    def test_default_delta_is_one(self, cart, item_a):
        cart.increment(item_a.id, PlateSize.FULL)
        cart.increment(item_a.id, PlateSize.FULL)
        assert cart.get_quantity(item_a.id, PlateSize.FULL) == 2

    def test_sizes_are_independent_lines(self, cart, item_b):
        cart.increment(item_b.id, PlateSize.FULL, 2)
        cart.increment(item_b.id, PlateSize.HALF, 1)

        assert cart.get_quantity(item_b.id, PlateSize.FULL) == 2
        assert cart.get_quantity(item_b.id, PlateSize.HALF) == 1
        assert len(cart.lines) == 2

    def test_reaching_zero_removes_line(self, cart, item_a):
        cart.increment(item_a.id, PlateSize.FULL, 2)
        assert cart.increment(item_a.id, PlateSize.FULL, -2) == 0
        assert cart.is_empty
        assert cart.get_quantity(item_a.id, PlateSize.FULL) == 0

    def test_quantity_floors_at_zero(self, cart, item_a):
        cart.increment(item_a.id, PlateSize.FULL, 1)
        assert cart.increment(item_a.id, PlateSize.FULL, -5) == 0
        # Removed, so the next increment starts a fresh line.
        assert cart.increment(item_a.id, PlateSize.FULL, 2) == 2

    def test_negative_delta_on_missing_line_is_noop(self, cart, item_a):
        assert cart.increment(item_a.id, PlateSize.FULL, -1) == 0
        assert cart.is_empty

    def test_unknown_item_is_ignored(self, cart, new_dish):
        assert cart.increment(new_dish.id, PlateSize.FULL) == 0
        assert cart.is_empty

    @pytest.mark.parametrize("deltas", [
        [1, 1, 1],
        [2, -1, 3],
        [1, -3, 2],
        [-2, 4, -4],
        [5, -1, -1, -1, -1, -1, 1],
    ])
    def test_quantity_matches_clamped_running_sum(self, cart, item_a, deltas):
        expected = 0
        for delta in deltas:
            expected = max(0, expected + delta)
            assert cart.increment(item_a.id, PlateSize.FULL, delta) == expected
            assert cart.get_quantity(item_a.id, PlateSize.FULL) == expected
            present = any(line.key == (item_a.id, PlateSize.FULL) for line in cart.lines)
            assert present == (expected > 0)


class TestCartTotals:
    def test_half_plate_uses_half_price(self, cart, item_b):
        cart.increment(item_b.id, PlateSize.HALF, 2)
        assert cart.subtotal == 80.0

    def test_item_count_and_subtotal(self, cart, item_a, item_b):
        cart.increment(item_a.id, PlateSize.FULL, 2)
        cart.increment(item_b.id, PlateSize.HALF, 1)

        assert cart.item_count == 3
        assert cart.subtotal == 240.0

    def test_price_is_snapshotted_at_add_time(self, cart, menu, item_a):
        cart.increment(item_a.id, PlateSize.FULL, 1)
        menu[item_a.id] = item_a.model_copy(update={"price": 500.0})

        cart.increment(item_a.id, PlateSize.FULL, 1)

        assert cart.subtotal == 200.0

    def test_clear_and_snapshot(self, cart, item_a):
        cart.increment(item_a.id, PlateSize.FULL, 1)
        snapshot = cart.snapshot()

        cart.clear()

        assert cart.is_empty
        assert len(snapshot) == 1
        assert snapshot[0].quantity == 1


class TestCartRekey:
    def test_lines_move_to_new_id(self, cart, item_a, item_b):
        cart.increment(item_a.id, PlateSize.FULL, 2)
        cart.increment(item_b.id, PlateSize.HALF, 1)
        new_id = PersistedId(store_id="a-stored")

        cart.rekey(item_a.id, new_id)

        assert cart.get_quantity(item_a.id, PlateSize.FULL) == 0
        assert cart.get_quantity(new_id, PlateSize.FULL) == 2
        assert [line.item.id for line in cart.lines] == [new_id, item_b.id]
        assert cart.subtotal == 240.0

    def test_lines_merge_with_existing_new_id(self, cart, item_a, item_b):
        cart.increment(item_a.id, PlateSize.FULL, 2)
        cart.increment(item_b.id, PlateSize.FULL, 1)

        cart.rekey(item_a.id, item_b.id)

        assert cart.get_quantity(item_b.id, PlateSize.FULL) == 3
        assert len(cart.lines) == 1
