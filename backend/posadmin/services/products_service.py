# backend/posadmin/services/products_service.py
"""
Products Service

Product master data maintained from the Inventory screen. Deleting a product
removes its inventory records and soft-deletes the product row so that
transaction_items keep pointing at a real product. The deleted row gives up
its SKU so a new product can take it.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Category, InventoryRecord, Product, StockTransfer, StockTransferItem
from ..validation import ConflictError, NotFoundError, ValidationError
from .transfer_service import TRANSFER_STATUS_CANCELLED, TRANSFER_STATUS_PENDING

SKU_MAX_LENGTH = Product.__table__.c.sku.type.length

PRODUCT_MUTABLE_FIELDS = {
    "sku",
    "name",
    "description",
    "barcode",
    "image_url",
    "price_cents",
    "category_id",
    "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _check_category(category_id: int | None) -> None:
    if category_id is None:
        return
    if db.session.get(Category, category_id) is None:
        raise ValidationError(f"Category {category_id} not found")


def _check_sku_free(sku: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Product).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first():
        raise ConflictError("SKU already exists.")


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if not p or not p.is_active:
        raise NotFoundError("Product not found")
    return p


def list_products(include_inactive: bool = False) -> list[Product]:
    q = db.session.query(Product)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def create_product(*, patch: dict) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        ValidationError: unknown category
        ConflictError: SKU already exists
    """
    sku = patch.get("sku")
    if not sku:
        raise ValidationError("sku is required")

    _check_sku_free(sku)
    _check_category(patch.get("category_id"))

    p = Product()
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.commit()
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    p = get_product(product_id)

    if "sku" in patch and patch["sku"] != p.sku:
        _check_sku_free(patch["sku"], exclude_id=p.id)
    if "category_id" in patch:
        _check_category(patch["category_id"])

    apply_product_patch(p, patch)
    db.session.commit()
    return p


def delete_product(*, product_id: int) -> bool:
    """
    Remove a product from the catalog.

    Inventory records go first, then pending transfers naming the product
    are cancelled and the product is soft-deleted (is_active=false). The SKU
    is rewritten so it can be used again. Returns False if not found.
    """
    p = db.session.get(Product, product_id)
    if not p or not p.is_active:
        return False

    db.session.query(InventoryRecord).filter(
        InventoryRecord.product_id == p.id
    ).delete(synchronize_session="fetch")

    pending = (
        db.session.query(StockTransfer)
        .join(StockTransferItem, StockTransferItem.transfer_id == StockTransfer.id)
        .filter(
            StockTransferItem.product_id == p.id,
            StockTransfer.status == TRANSFER_STATUS_PENDING,
        )
        .all()
    )
    for transfer in pending:
        transfer.status = TRANSFER_STATUS_CANCELLED

    suffix = f"#deleted-{p.id}"
    p.sku = p.sku[:SKU_MAX_LENGTH - len(suffix)] + suffix
    p.is_active = False
    db.session.commit()
    return True
