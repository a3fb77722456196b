"""
Checkout settlement tests.

Verifies:
- Largest-stock-first deduction (Scenario A)
- Sum of deductions == min(quantity, total stock), no record below zero
- Transaction arithmetic: items sum to subtotal, total = subtotal + tax
- Prices are fixed at sale time
- Silent oversell by default, refusal when allow_oversell is off
- A failure part-way rolls the whole checkout back
"""

from decimal import Decimal, ROUND_HALF_UP

import pytest

from conftest import stock_at
from posadmin.models import InventoryRecord, Product, Transaction, TransactionItem, Warehouse
from posadmin.services import settings_service, settlement_service
from posadmin.services.cart import Cart, CartProduct
from posadmin.services.settlement_service import SettlementError, checkout, deduct_inventory


def _cart(*lines):
    cart = Cart()
    for product, quantity in lines:
        snapshot = CartProduct(
            id=product.id,
            name=product.name,
            sku=product.sku,
            price_cents=product.price_cents,
            stock=1,
        )
        cart.add(snapshot)
        cart.set_quantity(product.id, quantity)
    return cart


class TestScenarioA:
    def test_sell_twelve_takes_from_largest_only(self, db_session, laptop, warehouse_a, warehouse_b, cashier_user):
        receipt = checkout(_cart((laptop, 12)), cashier_user)

        assert stock_at(db_session, laptop.id, warehouse_a.id) == 3
        assert stock_at(db_session, laptop.id, warehouse_b.id) == 5

        deductions = receipt.deductions[laptop.id]
        assert [(d.warehouse_id, d.before, d.deducted, d.after) for d in deductions] == [
            (warehouse_a.id, 15, 12, 3),
        ]

    def test_sell_eighteen_spills_into_second_warehouse(self, db_session, laptop, warehouse_a, warehouse_b, cashier_user):
        receipt = checkout(_cart((laptop, 18)), cashier_user)

        assert stock_at(db_session, laptop.id, warehouse_a.id) == 0
        assert stock_at(db_session, laptop.id, warehouse_b.id) == 2
        assert [d.deducted for d in receipt.deductions[laptop.id]] == [15, 3]
        assert receipt.oversold == {}


class TestDeductInventory:
    @pytest.mark.parametrize(
        "levels,quantity",
        [
            ([15, 5], 12),
            ([15, 5], 20),
            ([15, 5], 21),
            ([5, 15], 16),
            ([0, 0, 7], 3),
            ([4, 4, 4], 10),
            ([], 5),
            ([9], 0),
        ],
    )
    def test_total_deducted_is_min_of_request_and_stock(self, db_session, levels, quantity):
        product = Product(sku="P-1", name="Widget", price_cents=100)
        db_session.add(product)
        db_session.flush()
        for i, level in enumerate(levels):
            warehouse = Warehouse(name=f"W{i}", location=f"Loc {i}")
            db_session.add(warehouse)
            db_session.flush()
            db_session.add(InventoryRecord(product_id=product.id, warehouse_id=warehouse.id, stock_level=level))
        db_session.flush()

        deductions = deduct_inventory(product.id, quantity)
        db_session.commit()

        assert sum(d.deducted for d in deductions) == min(quantity, sum(levels))
        for d in deductions:
            assert 0 < d.deducted <= d.before
            assert d.after == d.before - d.deducted
        befores = [d.before for d in deductions]
        assert befores == sorted(befores, reverse=True)

        remaining = [r.stock_level for r in db_session.query(InventoryRecord).filter_by(product_id=product.id)]
        assert all(level >= 0 for level in remaining)
        assert sum(remaining) == sum(levels) - min(quantity, sum(levels))

    def test_ties_broken_by_record_order(self, db_session, warehouse_a, warehouse_b):
        product = Product(sku="TIE-1", name="Tie", price_cents=100)
        db_session.add(product)
        db_session.flush()
        first = InventoryRecord(product_id=product.id, warehouse_id=warehouse_a.id, stock_level=5)
        second = InventoryRecord(product_id=product.id, warehouse_id=warehouse_b.id, stock_level=5)
        db_session.add_all([first, second])
        db_session.commit()

        deductions = deduct_inventory(product.id, 3)
        assert [d.inventory_id for d in deductions] == [first.id]


class TestTransactionRecord:
    def test_amounts_are_consistent(self, db_session, laptop, mouse, cashier_user):
        receipt = checkout(_cart((laptop, 1), (mouse, 3)), cashier_user, payment_method="cash")

        tx = db_session.get(Transaction, receipt.transaction_id)
        items = db_session.query(TransactionItem).filter_by(transaction_id=tx.id).all()

        assert sum(i.total_price_cents for i in items) == tx.subtotal_cents
        assert tx.total_amount_cents == tx.subtotal_cents + tx.tax_amount_cents
        expected_tax = int((Decimal(tx.subtotal_cents) * Decimal("0.08")).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        assert tx.tax_amount_cents == expected_tax
        assert tx.subtotal_cents == 100000 + 3 * 2499
        assert tx.status == "completed"
        assert tx.payment_method == "cash"
        assert tx.user_id == cashier_user.id

    def test_receipt_matches_cart(self, db_session, laptop, cashier_user):
        cart = _cart((laptop, 2))
        receipt = checkout(cart, cashier_user)

        assert receipt.subtotal_cents == cart.subtotal()
        assert receipt.tax_cents == cart.tax()
        assert receipt.total_cents == cart.total()
        assert receipt.lines == [line.to_dict() for line in cart]
        assert receipt.cashier_name == cashier_user.name

    def test_default_customer_name(self, db_session, laptop, cashier_user):
        receipt = checkout(_cart((laptop, 1)), cashier_user, customer_name="  ")
        assert receipt.customer_name == "Walk-in Customer"

        named = checkout(_cart((laptop, 1)), cashier_user, customer_name="Grace")
        assert named.customer_name == "Grace"

    def test_transaction_numbers_are_sequential(self, db_session, laptop, cashier_user):
        first = checkout(_cart((laptop, 1)), cashier_user)
        second = checkout(_cart((laptop, 1)), cashier_user)
        assert first.transaction_number == "TX-000001"
        assert second.transaction_number == "TX-000002"

    def test_price_fixed_at_sale_time(self, db_session, laptop, cashier_user):
        receipt = checkout(_cart((laptop, 1)), cashier_user)

        laptop.price_cents = 1
        db_session.commit()

        item = db_session.query(TransactionItem).filter_by(transaction_id=receipt.transaction_id).one()
        assert item.unit_price_cents == 100000
        assert item.total_price_cents == 100000


class TestOversell:
    def test_oversell_completes_and_empties_records(self, db_session, laptop, warehouse_a, warehouse_b, cashier_user):
        receipt = checkout(_cart((laptop, 25)), cashier_user)

        assert stock_at(db_session, laptop.id, warehouse_a.id) == 0
        assert stock_at(db_session, laptop.id, warehouse_b.id) == 0
        assert receipt.oversold == {laptop.id: 5}

        item = db_session.query(TransactionItem).filter_by(transaction_id=receipt.transaction_id).one()
        assert item.quantity == 25

    def test_disabled_oversell_refuses_before_writing(self, db_session, laptop, warehouse_a, cashier_user, admin_user):
        settings_service.update_settings({"allow_oversell": False}, user_id=admin_user.id)

        with pytest.raises(SettlementError) as exc:
            checkout(_cart((laptop, 25)), cashier_user)

        assert exc.value.details["items"][0]["on_hand"] == 20
        assert db_session.query(Transaction).count() == 0
        assert stock_at(db_session, laptop.id, warehouse_a.id) == 15

    def test_disabled_oversell_allows_covered_sale(self, db_session, laptop, cashier_user, admin_user):
        settings_service.update_settings({"allow_oversell": "false"}, user_id=admin_user.id)
        receipt = checkout(_cart((laptop, 20)), cashier_user)
        assert receipt.oversold == {}


class TestCheckoutRefusals:
    def test_anonymous_caller(self, db_session, laptop):
        with pytest.raises(SettlementError):
            checkout(_cart((laptop, 1)), None)

    def test_empty_cart(self, db_session, cashier_user):
        with pytest.raises(SettlementError):
            checkout(Cart(), cashier_user)

    def test_unknown_payment_method(self, db_session, laptop, cashier_user):
        with pytest.raises(SettlementError):
            checkout(_cart((laptop, 1)), cashier_user, payment_method="cheque")
        assert db_session.query(Transaction).count() == 0

    def test_inactive_product(self, db_session, laptop, cashier_user):
        cart = _cart((laptop, 1))
        laptop.is_active = False
        db_session.commit()
        with pytest.raises(SettlementError):
            checkout(cart, cashier_user)


class TestAtomicity:
    def test_failure_during_deduction_rolls_back_everything(
        self, db_session, monkeypatch, laptop, mouse, warehouse_a, cashier_user
    ):
        calls = []
        real = settlement_service.deduct_inventory

        def flaky(product_id, quantity):
            calls.append(product_id)
            if len(calls) == 2:
                raise RuntimeError("store went away")
            return real(product_id, quantity)

        monkeypatch.setattr(settlement_service, "deduct_inventory", flaky)

        with pytest.raises(RuntimeError):
            checkout(_cart((laptop, 2), (mouse, 1)), cashier_user)

        assert db_session.query(Transaction).count() == 0
        assert db_session.query(TransactionItem).count() == 0
        assert stock_at(db_session, laptop.id, warehouse_a.id) == 15
        assert stock_at(db_session, mouse.id, warehouse_a.id) == 40


class TestCheckoutRoutes:
    def test_cashier_checkout(self, client, db_session, cashier_headers, laptop, mouse, warehouse_a):
        resp = client.post("/api/sales/checkout", json={
            "items": [
                {"product_id": laptop.id, "quantity": 12},
                {"product_id": mouse.id, "quantity": 2},
            ],
            "payment_method": "card",
        }, headers=cashier_headers)

        assert resp.status_code == 201
        receipt = resp.get_json()["receipt"]
        assert receipt["transaction_number"] == "TX-000001"
        assert receipt["customer_name"] == "Walk-in Customer"
        assert receipt["subtotal_cents"] == 12 * 100000 + 2 * 2499
        assert receipt["total_cents"] == receipt["subtotal_cents"] + receipt["tax_cents"]
        assert stock_at(db_session, laptop.id, warehouse_a.id) == 3

    def test_repeated_lines_are_merged(self, client, cashier_headers, mouse):
        resp = client.post("/api/sales/checkout", json={
            "items": [
                {"product_id": mouse.id, "quantity": 1},
                {"product_id": mouse.id, "quantity": 2},
            ],
        }, headers=cashier_headers)
        assert resp.status_code == 201
        lines = resp.get_json()["receipt"]["lines"]
        assert len(lines) == 1
        assert lines[0]["quantity"] == 3

    def test_unknown_product(self, client, cashier_headers, db_session):
        resp = client.post("/api/sales/checkout", json={
            "items": [{"product_id": 9999, "quantity": 1}],
        }, headers=cashier_headers)
        assert resp.status_code == 400
        assert resp.get_json()["details"] == {"product_id": 9999}

    def test_out_of_stock_product_cannot_be_sold(self, client, db_session, cashier_headers, warehouse_a):
        product = Product(sku="OUT-1", name="Gone", price_cents=500)
        db_session.add(product)
        db_session.flush()
        db_session.add(InventoryRecord(product_id=product.id, warehouse_id=warehouse_a.id, stock_level=0))
        db_session.commit()

        resp = client.post("/api/sales/checkout", json={
            "items": [{"product_id": product.id, "quantity": 1}],
        }, headers=cashier_headers)
        assert resp.status_code == 400
        assert db_session.query(Transaction).count() == 0

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True])
    def test_bad_quantity(self, client, cashier_headers, laptop, quantity):
        resp = client.post("/api/sales/checkout", json={
            "items": [{"product_id": laptop.id, "quantity": quantity}],
        }, headers=cashier_headers)
        assert resp.status_code == 400

    def test_empty_items(self, client, cashier_headers):
        resp = client.post("/api/sales/checkout", json={"items": []}, headers=cashier_headers)
        assert resp.status_code == 400

    def test_cart_preview_writes_nothing(self, client, db_session, cashier_headers, mouse):
        resp = client.post("/api/sales/cart", json={
            "items": [{"product_id": mouse.id, "quantity": 4}],
        }, headers=cashier_headers)
        assert resp.status_code == 200
        cart = resp.get_json()["cart"]
        assert cart["subtotal_cents"] == 4 * 2499
        assert cart["tax_cents"] == 800
        assert db_session.query(Transaction).count() == 0

    def test_transaction_history(self, client, cashier_headers, laptop):
        for _ in range(2):
            client.post("/api/sales/checkout", json={
                "items": [{"product_id": laptop.id, "quantity": 1}],
                "customer_name": "Grace",
            }, headers=cashier_headers)

        listing = client.get("/api/sales/transactions", headers=cashier_headers).get_json()
        assert listing["count"] == 2
        assert listing["items"][0]["transaction_number"] == "TX-000002"

        tx_id = listing["items"][0]["id"]
        detail = client.get(f"/api/sales/transactions/{tx_id}", headers=cashier_headers).get_json()
        assert detail["transaction"]["customer_name"] == "Grace"
        assert detail["transaction"]["items"][0]["product_name"] == "Laptop"

    def test_missing_transaction(self, client, cashier_headers):
        resp = client.get("/api/sales/transactions/12345", headers=cashier_headers)
        assert resp.status_code == 404

    @pytest.mark.parametrize("body", [[{"product_id": 1, "quantity": 1}], "items", 7])
    def test_body_must_be_an_object(self, client, db_session, cashier_headers, body):
        for path in ("/api/sales/checkout", "/api/sales/cart"):
            resp = client.post(path, json=body, headers=cashier_headers)
            assert resp.status_code == 400
        assert db_session.query(Transaction).count() == 0

    @pytest.mark.parametrize("customer_name", [5, ["Grace"], {"name": "Grace"}])
    def test_non_string_customer_name(self, client, db_session, cashier_headers, laptop, warehouse_a, customer_name):
        resp = client.post("/api/sales/checkout", json={
            "items": [{"product_id": laptop.id, "quantity": 1}],
            "customer_name": customer_name,
        }, headers=cashier_headers)

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "customer_name must be a string"
        assert db_session.query(Transaction).count() == 0
        assert stock_at(db_session, laptop.id, warehouse_a.id) == 15
