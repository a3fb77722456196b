# Overview: Service-layer operations for warehouses.

from __future__ import annotations

from ..extensions import db
from ..models import InventoryRecord, StockTransfer, Warehouse
from ..validation import NotFoundError, ReferentialIntegrityError

WAREHOUSE_MUTABLE_FIELDS = {"name", "location", "description", "contact_email", "contact_phone"}

INVENTORY_IN_USE_MESSAGE = (
    "Cannot delete warehouse with existing inventory. "
    "Please transfer or remove all inventory first."
)
TRANSFERS_IN_USE_MESSAGE = "Cannot delete warehouse with existing stock transfer records."


def list_warehouses() -> list[Warehouse]:
    return db.session.query(Warehouse).order_by(Warehouse.name.asc(), Warehouse.id.asc()).all()


def get_warehouse(warehouse_id: int) -> Warehouse:
    warehouse = db.session.get(Warehouse, warehouse_id)
    if not warehouse:
        raise NotFoundError("Warehouse not found")
    return warehouse


def create_warehouse(*, patch: dict) -> Warehouse:
    warehouse = Warehouse()
    for k, v in patch.items():
        if k in WAREHOUSE_MUTABLE_FIELDS:
            setattr(warehouse, k, v)
    db.session.add(warehouse)
    db.session.commit()
    return warehouse


def update_warehouse(*, warehouse_id: int, patch: dict) -> Warehouse:
    warehouse = get_warehouse(warehouse_id)
    for k, v in patch.items():
        if k in WAREHOUSE_MUTABLE_FIELDS:
            setattr(warehouse, k, v)
    db.session.commit()
    return warehouse


def delete_warehouse(*, warehouse_id: int) -> None:
    """
    Delete a warehouse that nothing references.

    Any inventory record, or any transfer naming it as source or
    destination, blocks the delete and nothing is removed.
    """
    warehouse = get_warehouse(warehouse_id)

    has_inventory = db.session.query(InventoryRecord.id).filter(
        InventoryRecord.warehouse_id == warehouse.id
    ).first()
    if has_inventory:
        raise ReferentialIntegrityError(INVENTORY_IN_USE_MESSAGE)

    has_transfers = db.session.query(StockTransfer.id).filter(
        db.or_(
            StockTransfer.from_warehouse_id == warehouse.id,
            StockTransfer.to_warehouse_id == warehouse.id,
        )
    ).first()
    if has_transfers:
        raise ReferentialIntegrityError(TRANSFERS_IN_USE_MESSAGE)

    db.session.delete(warehouse)
    db.session.commit()
