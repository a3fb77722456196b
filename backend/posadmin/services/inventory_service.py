# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

"""
Inventory invariants

- Stock lives in InventoryRecord rows, one per (product, warehouse).
- A product's total stock is SUM(stock_level) over its records.
- stock_level and reorder_point are never negative.
- Records are read in id order wherever "the first record" matters
  (primary location, reorder point used for the stock status).
"""

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import InventoryRecord, Product, Warehouse
from ..validation import NotFoundError, ValidationError, enforce_rules_inventory_level
from .concurrency import lock_for_update


def records_for_product(product_id: int, *, lock: bool = False) -> list[InventoryRecord]:
    q = db.session.query(InventoryRecord).filter(InventoryRecord.product_id == product_id)
    if lock:
        q = lock_for_update(q)
    return q.order_by(InventoryRecord.id.asc()).all()


def total_stock(product_id: int) -> int:
    total = db.session.query(
        func.coalesce(func.sum(InventoryRecord.stock_level), 0)
    ).filter(InventoryRecord.product_id == product_id).scalar()
    return int(total or 0)


def get_record(product_id: int, warehouse_id: int, *, lock: bool = False) -> InventoryRecord | None:
    q = db.session.query(InventoryRecord).filter_by(product_id=product_id, warehouse_id=warehouse_id)
    if lock:
        q = lock_for_update(q)
    return q.first()


def _parse_level(raw: dict) -> tuple[int, int, int | None]:
    if not isinstance(raw, dict):
        raise ValidationError("Each inventory entry must be an object")

    values = {}
    for field in ("warehouse_id", "stock_level", "reorder_point"):
        value = raw.get(field)
        if value is None:
            values[field] = None
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{field} must be an integer")
        values[field] = value

    if values["warehouse_id"] is None:
        raise ValidationError("warehouse_id is required")
    if values["stock_level"] is None:
        raise ValidationError("stock_level is required")

    enforce_rules_inventory_level(values)
    return values["warehouse_id"], values["stock_level"], values["reorder_point"]


def set_inventory_levels(product_id: int, levels: list[dict]) -> list[InventoryRecord]:
    """
    Directly set per-warehouse stock for a product (the product form's
    inventory section).

    Each entry is {"warehouse_id", "stock_level", "reorder_point"?}. Missing
    records are created; existing ones are overwritten. Warehouses not
    mentioned are left alone. Everything is validated before any write.
    """
    product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        raise NotFoundError("Product not found")

    if not isinstance(levels, list):
        raise ValidationError("inventory must be a list")

    parsed = [_parse_level(raw) for raw in levels]

    seen: set[int] = set()
    for warehouse_id, _, _ in parsed:
        if warehouse_id in seen:
            raise ValidationError(f"Duplicate warehouse_id {warehouse_id}")
        seen.add(warehouse_id)
        if db.session.get(Warehouse, warehouse_id) is None:
            raise ValidationError(f"Warehouse {warehouse_id} not found")

    for warehouse_id, stock_level, reorder_point in parsed:
        record = get_record(product_id, warehouse_id, lock=True)
        if record is None:
            record = InventoryRecord(product_id=product_id, warehouse_id=warehouse_id)
            db.session.add(record)
        record.stock_level = stock_level
        if reorder_point is not None:
            record.reorder_point = reorder_point

    db.session.commit()
    return records_for_product(product_id)


def adjust_stock(product_id: int, warehouse_id: int, delta: int) -> InventoryRecord:
    """
    Add delta to a record inside the caller's transaction, creating the
    record for positive deltas. Refuses to take a record below zero.
    """
    record = get_record(product_id, warehouse_id, lock=True)
    if record is None:
        if delta < 0:
            raise ValidationError("No stock at warehouse")
        record = InventoryRecord(product_id=product_id, warehouse_id=warehouse_id, stock_level=0)
        db.session.add(record)

    new_level = (record.stock_level or 0) + delta
    if new_level < 0:
        raise ValidationError("Insufficient stock at warehouse")
    record.stock_level = new_level
    db.session.flush()
    return record
