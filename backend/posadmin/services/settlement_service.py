"""
Checkout Settlement

WHY: Turns a finalized cart into a completed transaction and takes the sold
units out of stock.

Sequence (one database transaction, single commit):
1. subtotal / tax / total from the cart
2. next TX-###### number
3. Transaction header (status completed)
4. one TransactionItem per cart line, prices fixed at sale time
5. per line, deduct from the product's inventory records, largest stock
   first, never taking a record below zero

Any failure rolls the whole checkout back, so a transaction never exists
without its items and deductions.

Short stock oversells by default: deduction stops when the records are
empty and the sale still completes. With the allow_oversell setting turned
off the checkout is refused before anything is written.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import InventoryRecord, PAYMENT_METHODS, Product, Transaction, TransactionItem, User
from ..time_utils import to_utc_z, utcnow
from . import catalog_service, inventory_service, settings_service
from .cart import Cart, CartError, CartProduct
from .concurrency import lock_for_update
from .document_service import TRANSACTION_DOCUMENT, next_document_number

WALK_IN_CUSTOMER = "Walk-in Customer"


class SettlementError(Exception):
    """Raised for checkout errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class Deduction:
    inventory_id: int
    warehouse_id: int
    before: int
    deducted: int
    after: int

    def to_dict(self) -> dict:
        return {
            "inventory_id": self.inventory_id,
            "warehouse_id": self.warehouse_id,
            "before": self.before,
            "deducted": self.deducted,
            "after": self.after,
        }


@dataclass
class Receipt:
    transaction_id: int
    transaction_number: str
    created_at: datetime
    cashier_name: str
    customer_name: str
    payment_method: str
    lines: list[dict]
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    deductions: dict[int, list[Deduction]] = field(default_factory=dict)

    @property
    def oversold(self) -> dict[int, int]:
        """product_id -> units sold beyond recorded stock."""
        short = {}
        for line in self.lines:
            deducted = sum(d.deducted for d in self.deductions.get(line["product_id"], []))
            if deducted < line["quantity"]:
                short[line["product_id"]] = line["quantity"] - deducted
        return short

    def to_dict(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "transaction_number": self.transaction_number,
            "created_at": to_utc_z(self.created_at),
            "cashier_name": self.cashier_name,
            "customer_name": self.customer_name,
            "payment_method": self.payment_method,
            "lines": self.lines,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "deductions": {
                str(product_id): [d.to_dict() for d in ds]
                for product_id, ds in self.deductions.items()
            },
            "oversold": {str(k): v for k, v in self.oversold.items()},
        }


def deduct_inventory(product_id: int, quantity: int) -> list[Deduction]:
    """
    Take quantity units of product out of its inventory records.

    Records are walked by stock_level descending (id breaks ties); each gives
    min(stock_level, remaining). Stops once remaining hits zero. When total
    stock is short the walk simply runs out: the sum of deductions is
    min(quantity, total stock). Runs in the caller's transaction.
    """
    records = (
        lock_for_update(
            db.session.query(InventoryRecord).filter(InventoryRecord.product_id == product_id)
        )
        .order_by(InventoryRecord.stock_level.desc(), InventoryRecord.id.asc())
        .all()
    )

    remaining = quantity
    deductions: list[Deduction] = []
    for record in records:
        if remaining <= 0:
            break
        before = record.stock_level or 0
        take = min(before, remaining)
        if take <= 0:
            continue
        record.stock_level = before - take
        remaining -= take
        deductions.append(Deduction(
            inventory_id=record.id,
            warehouse_id=record.warehouse_id,
            before=before,
            deducted=take,
            after=record.stock_level,
        ))

    db.session.flush()
    return deductions


def _current_tax_rate():
    return current_app.config["TAX_RATE"]


def build_cart(items, tax_rate=None) -> Cart:
    """
    Rebuild a cart from [{"product_id", "quantity"}] using current catalog rows.

    Prices and stock are snapshotted now; repeated product ids are merged.
    """
    if not isinstance(items, list) or not items:
        raise SettlementError("Cart is empty")

    quantities: dict[int, int] = {}
    for raw in items:
        if not isinstance(raw, dict):
            raise SettlementError("Invalid cart line")
        product_id = raw.get("product_id")
        quantity = raw.get("quantity", 1)
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise SettlementError("product_id must be an integer", details={"line": raw})
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise SettlementError("quantity must be a positive integer", details={"product_id": product_id})
        quantities[product_id] = quantities.get(product_id, 0) + quantity

    cart = Cart(tax_rate=_current_tax_rate() if tax_rate is None else tax_rate)
    for product_id, quantity in quantities.items():
        entry = catalog_service.get_entry(product_id)
        if entry is None:
            raise SettlementError("Product not found", details={"product_id": product_id})
        try:
            cart.add(CartProduct.from_entry(entry))
        except CartError as e:
            raise SettlementError(str(e), details={"product_id": product_id}) from e
        cart.set_quantity(product_id, quantity)
    return cart


def _check_stock(cart: Cart) -> None:
    insufficient = []
    for line in cart:
        on_hand = inventory_service.total_stock(line.product.id)
        if on_hand < line.quantity:
            insufficient.append({
                "product_id": line.product.id,
                "requested_quantity": line.quantity,
                "on_hand": on_hand,
            })
    if insufficient:
        raise SettlementError("Insufficient stock to complete sale", details={"items": insufficient})


def checkout(
    cart: Cart,
    user: User | None,
    payment_method: str = "card",
    customer_name: str | None = None,
) -> Receipt:
    """
    Settle cart as a completed transaction for user.

    Raises SettlementError for an anonymous caller, an empty cart, an unknown
    payment method or product, and for short stock when overselling is
    disabled. Nothing is written in any of those cases.
    """
    if user is None:
        raise SettlementError("Authentication required")
    if not cart:
        raise SettlementError("Cart is empty")
    if payment_method not in PAYMENT_METHODS:
        raise SettlementError(
            f"Invalid payment_method: {payment_method}",
            details={"allowed": list(PAYMENT_METHODS)},
        )
    if customer_name is not None and not isinstance(customer_name, str):
        raise SettlementError("customer_name must be a string")

    for line in cart:
        product = db.session.get(Product, line.product.id)
        if product is None or not product.is_active:
            raise SettlementError("Product not found", details={"product_id": line.product.id})

    if not settings_service.get_setting("allow_oversell"):
        _check_stock(cart)

    customer = (customer_name or "").strip() or WALK_IN_CUSTOMER
    subtotal = cart.subtotal()
    tax = cart.tax()
    total = subtotal + tax

    try:
        tx = Transaction(
            transaction_number=next_document_number(TRANSACTION_DOCUMENT),
            user_id=user.id,
            payment_method=payment_method,
            status="completed",
            subtotal_cents=subtotal,
            tax_amount_cents=tax,
            total_amount_cents=total,
            customer_name=customer,
            created_at=utcnow(),
        )
        db.session.add(tx)
        db.session.flush()

        for line in cart:
            db.session.add(TransactionItem(
                transaction_id=tx.id,
                product_id=line.product.id,
                quantity=line.quantity,
                unit_price_cents=line.product.price_cents,
                total_price_cents=line.line_total_cents,
            ))
        db.session.flush()

        deductions = {line.product.id: deduct_inventory(line.product.id, line.quantity) for line in cart}

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return Receipt(
        transaction_id=tx.id,
        transaction_number=tx.transaction_number,
        created_at=tx.created_at,
        cashier_name=user.name,
        customer_name=customer,
        payment_method=payment_method,
        lines=[line.to_dict() for line in cart],
        subtotal_cents=subtotal,
        tax_cents=tax,
        total_cents=total,
        deductions=deductions,
    )


def list_transactions(limit: int = 50, status: str | None = None) -> list[Transaction]:
    q = db.session.query(Transaction)
    if status:
        q = q.filter(Transaction.status == status)
    return q.order_by(Transaction.created_at.desc(), Transaction.id.desc()).limit(limit).all()


def get_transaction(transaction_id: int) -> Transaction | None:
    return db.session.get(Transaction, transaction_id)
