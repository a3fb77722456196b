# backend/posadmin/services/transfer_service.py
"""
Warehouse-to-warehouse stock transfers.

WHY: Move stock between warehouses with a record of who moved what.

LIFECYCLE:
1. PENDING: transfer created with its items, nothing moved yet
2. COMPLETED: source records decremented, destination records incremented
3. CANCELLED: closed before completion, nothing moved

Completion is all-or-nothing: if any item is short at the source the whole
transfer is refused and no record changes.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, StockTransfer, StockTransferItem, Warehouse
from ..time_utils import utcnow
from . import inventory_service
from .concurrency import lock_for_update
from .document_service import TRANSFER_DOCUMENT, next_document_number


TRANSFER_STATUS_PENDING = "pending"
TRANSFER_STATUS_COMPLETED = "completed"
TRANSFER_STATUS_CANCELLED = "cancelled"


class TransferError(Exception):
    """Raised when transfer operations fail."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _parse_items(items) -> dict[int, int]:
    if not isinstance(items, list) or not items:
        raise TransferError("At least one item is required")

    quantities: dict[int, int] = {}
    for raw in items:
        if not isinstance(raw, dict):
            raise TransferError("Invalid transfer item")
        product_id = raw.get("product_id")
        quantity = raw.get("quantity")
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise TransferError("product_id must be an integer")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise TransferError("quantity must be a positive integer", details={"product_id": product_id})
        product = db.session.get(Product, product_id)
        if product is None or not product.is_active:
            raise TransferError(f"Product {product_id} not found")
        quantities[product_id] = quantities.get(product_id, 0) + quantity
    return quantities


def create_transfer(
    from_warehouse_id: int,
    to_warehouse_id: int,
    items,
    user_id: int | None = None,
    notes: str | None = None,
) -> StockTransfer:
    """
    Create a pending transfer with its items.

    Raises:
        TransferError: same source and destination, unknown warehouse or
            product, or a non-positive quantity
    """
    if notes is not None and not isinstance(notes, str):
        raise TransferError("notes must be a string")
    if from_warehouse_id == to_warehouse_id:
        raise TransferError("Cannot transfer to the same warehouse")
    for warehouse_id in (from_warehouse_id, to_warehouse_id):
        if db.session.get(Warehouse, warehouse_id) is None:
            raise TransferError(f"Warehouse {warehouse_id} not found")

    quantities = _parse_items(items)

    try:
        transfer = StockTransfer(
            transfer_number=next_document_number(TRANSFER_DOCUMENT),
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            user_id=user_id,
            status=TRANSFER_STATUS_PENDING,
            notes=(notes or "").strip() or None,
            created_at=utcnow(),
        )
        db.session.add(transfer)
        db.session.flush()

        for product_id, quantity in quantities.items():
            db.session.add(StockTransferItem(
                transfer_id=transfer.id,
                product_id=product_id,
                quantity=quantity,
            ))

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return transfer


def _locked_transfer(transfer_id: int) -> StockTransfer:
    transfer = lock_for_update(db.session.query(StockTransfer).filter_by(id=transfer_id)).first()
    if not transfer:
        raise TransferError(f"Transfer {transfer_id} not found")
    return transfer


def complete_transfer(transfer_id: int) -> StockTransfer:
    """Move every item from the source warehouse to the destination."""
    transfer = _locked_transfer(transfer_id)
    if transfer.status != TRANSFER_STATUS_PENDING:
        raise TransferError(f"Cannot complete transfer in {transfer.status} status")

    short = []
    for item in transfer.items:
        record = inventory_service.get_record(item.product_id, transfer.from_warehouse_id, lock=True)
        available = record.stock_level if record else 0
        if available < item.quantity:
            short.append({
                "product_id": item.product_id,
                "requested_quantity": item.quantity,
                "available": available,
            })
    if short:
        raise TransferError("Insufficient stock at source warehouse", details={"items": short})

    try:
        for item in transfer.items:
            inventory_service.adjust_stock(item.product_id, transfer.from_warehouse_id, -item.quantity)
            inventory_service.adjust_stock(item.product_id, transfer.to_warehouse_id, item.quantity)

        transfer.status = TRANSFER_STATUS_COMPLETED
        transfer.completed_at = utcnow()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return transfer


def cancel_transfer(transfer_id: int) -> StockTransfer:
    transfer = _locked_transfer(transfer_id)
    if transfer.status != TRANSFER_STATUS_PENDING:
        raise TransferError(
            f"Cannot cancel transfer in {transfer.status} status. "
            f"Only pending transfers can be cancelled."
        )
    transfer.status = TRANSFER_STATUS_CANCELLED
    db.session.commit()
    return transfer


def get_transfer(transfer_id: int) -> StockTransfer | None:
    return db.session.get(StockTransfer, transfer_id)


def list_transfers(status: str | None = None, limit: int = 50) -> list[StockTransfer]:
    q = db.session.query(StockTransfer)
    if status:
        q = q.filter(StockTransfer.status == status)
    return q.order_by(StockTransfer.created_at.desc(), StockTransfer.id.desc()).limit(limit).all()
