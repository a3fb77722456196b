"""
Cart aggregation tests.

Verifies:
- One line per product, repeated adds bump the quantity
- set_quantity(p, 0) behaves like remove(p)
- Subtotal / tax / total arithmetic in cents
- Out-of-stock products cannot be added
"""

from decimal import Decimal

import pytest

from posadmin.services.cart import Cart, CartError, CartProduct, compute_tax_cents


LAPTOP = CartProduct(id=1, name="Laptop", sku="LAP-001", price_cents=100000, stock=20)
MOUSE = CartProduct(id=2, name="Mouse", sku="MOU-001", price_cents=2499, stock=40)
CABLE = CartProduct(id=3, name="Cable", sku="CAB-001", price_cents=999, stock=0)


class TestCartLines:
    def test_adding_same_product_twice_yields_one_line(self):
        cart = Cart()
        cart.add(LAPTOP)
        cart.add(LAPTOP)

        assert len(cart) == 1
        assert cart.lines[0].quantity == 2

    def test_lines_keep_insertion_order(self):
        cart = Cart()
        cart.add(MOUSE)
        cart.add(LAPTOP)
        cart.add(MOUSE)

        assert [line.product.id for line in cart] == [MOUSE.id, LAPTOP.id]

    def test_set_quantity_zero_equals_remove(self):
        removed = Cart()
        removed.add(LAPTOP)
        removed.add(MOUSE)
        removed.remove(LAPTOP.id)

        zeroed = Cart()
        zeroed.add(LAPTOP)
        zeroed.add(MOUSE)
        zeroed.set_quantity(LAPTOP.id, 0)

        assert [l.to_dict() for l in zeroed] == [l.to_dict() for l in removed]

    def test_set_quantity_negative_removes(self):
        cart = Cart()
        cart.add(MOUSE)
        cart.set_quantity(MOUSE.id, -3)
        assert len(cart) == 0
        assert not cart

    def test_set_quantity_overwrites(self):
        cart = Cart()
        cart.add(MOUSE)
        cart.set_quantity(MOUSE.id, 7)
        assert cart.quantity_of(MOUSE.id) == 7

    def test_set_quantity_for_product_not_in_cart(self):
        cart = Cart()
        cart.add(MOUSE)
        with pytest.raises(CartError):
            cart.set_quantity(LAPTOP.id, 2)
        assert cart.quantity_of(LAPTOP.id) == 0

    def test_remove_missing_product_is_noop(self):
        cart = Cart()
        cart.add(MOUSE)
        cart.remove(999)
        assert len(cart) == 1

    def test_clear(self):
        cart = Cart()
        cart.add(MOUSE)
        cart.add(LAPTOP)
        cart.clear()
        assert len(cart) == 0
        assert cart.subtotal() == 0

    def test_out_of_stock_product_refused(self):
        cart = Cart()
        with pytest.raises(CartError):
            cart.add(CABLE)
        assert len(cart) == 0

    def test_quantity_may_exceed_snapshot_stock(self):
        cart = Cart()
        cart.add(MOUSE)
        cart.set_quantity(MOUSE.id, MOUSE.stock + 10)
        assert cart.quantity_of(MOUSE.id) == 50


class TestCartTotals:
    def test_subtotal_sums_price_times_quantity(self):
        cart = Cart()
        cart.add(LAPTOP)
        cart.add(MOUSE)
        cart.set_quantity(MOUSE.id, 3)

        assert cart.subtotal() == 100000 + 3 * 2499

    def test_tax_is_eight_percent_by_default(self):
        cart = Cart()
        cart.add(LAPTOP)
        assert cart.tax() == 8000
        assert cart.total() == 108000

    def test_tax_rounds_half_up_to_the_cent(self):
        # 2499 * 0.08 = 199.92 -> 200
        assert compute_tax_cents(2499, Decimal("0.08")) == 200
        # 1250 * 0.08 = 100.00
        assert compute_tax_cents(1250, "0.08") == 100
        # 1006.24 -> 1006, 1006.56 -> 1007
        assert compute_tax_cents(12578, Decimal("0.08")) == 1006
        assert compute_tax_cents(12582, Decimal("0.08")) == 1007
        # exact half goes up
        assert compute_tax_cents(13, Decimal("0.5")) == 7

    def test_explicit_rate_overrides_cart_rate(self):
        cart = Cart(tax_rate="0.10")
        cart.add(MOUSE)
        assert cart.tax() == 250
        assert cart.tax(Decimal("0")) == 0
        assert cart.total(Decimal("0")) == 2499

    def test_total_is_subtotal_plus_tax(self):
        cart = Cart()
        cart.add(MOUSE)
        cart.set_quantity(MOUSE.id, 5)
        assert cart.total() == cart.subtotal() + cart.tax()

    def test_empty_cart_totals(self):
        cart = Cart()
        assert cart.subtotal() == 0
        assert cart.tax() == 0
        assert cart.total() == 0
