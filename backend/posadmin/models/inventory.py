from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

DEFAULT_REORDER_POINT = 10


class Warehouse(db.Model):
    """Physical stock location."""
    __tablename__ = "warehouses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    location = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    contact_email = db.Column(db.String(255), nullable=True)
    contact_phone = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Warehouse id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "description": self.description,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "created_at": to_utc_z(self.created_at),
        }


class InventoryRecord(db.Model):
    """
    Stock of one product at one warehouse.

    At most one record per (product, warehouse). A product's total stock is
    the sum of stock_level over its records. stock_level never goes below zero:
    sales deduct at most what a record holds.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse_id", name="uq_inventory_product_warehouse"),
        db.CheckConstraint("stock_level >= 0", name="ck_inventory_stock_nonnegative"),
        db.CheckConstraint("reorder_point >= 0", name="ck_inventory_reorder_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    stock_level = db.Column(db.Integer, nullable=False, default=0)
    reorder_point = db.Column(db.Integer, nullable=False, default=DEFAULT_REORDER_POINT)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship(
        "Product",
        backref=db.backref("inventory", lazy=True, order_by="InventoryRecord.id"),
    )
    warehouse = db.relationship("Warehouse", backref=db.backref("inventory", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "warehouse_name": self.warehouse.name if self.warehouse else None,
            "stock_level": self.stock_level,
            "reorder_point": self.reorder_point,
            "updated_at": to_utc_z(self.updated_at),
        }


class StockTransfer(db.Model):
    """
    Movement of stock between two warehouses.

    LIFECYCLE:
    1. pending: created with items, no stock moved
    2. completed: source records decremented, destination records incremented
    3. cancelled: closed without moving stock
    """
    __tablename__ = "stock_transfers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transfer_number = db.Column(db.String(64), nullable=False, unique=True)

    from_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    to_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    from_warehouse = db.relationship("Warehouse", foreign_keys=[from_warehouse_id])
    to_warehouse = db.relationship("Warehouse", foreign_keys=[to_warehouse_id])
    user = db.relationship("User")

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "transfer_number": self.transfer_number,
            "from_warehouse_id": self.from_warehouse_id,
            "from_warehouse_name": self.from_warehouse.name if self.from_warehouse else None,
            "to_warehouse_id": self.to_warehouse_id,
            "to_warehouse_name": self.to_warehouse.name if self.to_warehouse else None,
            "user_id": self.user_id,
            "status": self.status,
            "notes": self.notes,
            "item_count": len(self.items),
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class StockTransferItem(db.Model):
    __tablename__ = "stock_transfer_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_transfer_item_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transfer_id = db.Column(db.Integer, db.ForeignKey("stock_transfers.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    transfer = db.relationship(
        "StockTransfer",
        backref=db.backref("items", lazy=True, order_by="StockTransferItem.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transfer_id": self.transfer_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
        }
