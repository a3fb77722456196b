from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

TRANSACTION_STATUSES = ("completed", "pending", "failed")
PAYMENT_METHODS = ("cash", "card", "mobile")


class Transaction(db.Model):
    """
    Completed checkout header.

    Written exactly once per checkout and never updated afterwards. All
    amounts are cents: total_amount_cents == subtotal_cents + tax_amount_cents.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "TX-000123")
    transaction_number = db.Column(db.String(64), nullable=False, unique=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    payment_method = db.Column(db.String(16), nullable=False, default="card")
    status = db.Column(db.String(16), nullable=False, default="completed", index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_amount_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    customer_name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    user = db.relationship("User")

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "transaction_number": self.transaction_number,
            "user_id": self.user_id,
            "payment_method": self.payment_method,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_amount_cents": self.tax_amount_cents,
            "total_amount_cents": self.total_amount_cents,
            "customer_name": self.customer_name,
            "item_count": sum(item.quantity for item in self.items),
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class TransactionItem(db.Model):
    """Line of a completed checkout; prices are fixed at sale time."""
    __tablename__ = "transaction_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    transaction = db.relationship(
        "Transaction",
        backref=db.backref("items", lazy=True, order_by="TransactionItem.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
        }
