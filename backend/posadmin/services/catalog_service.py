# Overview: Read-only catalog views for the sales terminal and inventory screens.

"""
Catalog Reader

Joins active products with their category, summed stock and primary
location, and derives a stock status:

- out_of_stock: total stock is 0
- low_stock:    total stock <= reorder point of the product's FIRST inventory
                record (id order), or 10 when the product has no record
- in_stock:     otherwise

Only the first record's reorder point is consulted even when the product is
stocked at several warehouses.

Nothing here writes. Store errors propagate to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import func

from ..extensions import db
from ..models import (
    Category,
    DEFAULT_REORDER_POINT,
    InventoryRecord,
    Product,
    StockTransfer,
    Warehouse,
)

IN_STOCK = "in_stock"
LOW_STOCK = "low_stock"
OUT_OF_STOCK = "out_of_stock"
STOCK_STATUSES = (IN_STOCK, LOW_STOCK, OUT_OF_STOCK)

UNCATEGORIZED = "Uncategorized"
NO_WAREHOUSE = "No Warehouse"

RECENT_TRANSFER_LIMIT = 10


@dataclass
class CatalogEntry:
    product: Product
    category_name: str
    total_stock: int
    location: str
    status: str
    records: list[InventoryRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = self.product.to_dict()
        data.update({
            "category": self.category_name,
            "total_stock": self.total_stock,
            "location": self.location,
            "status": self.status,
            "inventory": [r.to_dict() for r in self.records],
        })
        return data


def derive_stock_status(total_stock: int, records) -> str:
    """Stock status from the summed stock and the product's records in id order."""
    if total_stock == 0:
        return OUT_OF_STOCK

    reorder_point = records[0].reorder_point if records else DEFAULT_REORDER_POINT
    if total_stock <= reorder_point:
        return LOW_STOCK
    return IN_STOCK


def build_entry(product: Product) -> CatalogEntry:
    records = sorted(product.inventory, key=lambda r: r.id)
    total = sum(r.stock_level or 0 for r in records)
    location = records[0].warehouse.name if records and records[0].warehouse else NO_WAREHOUSE
    return CatalogEntry(
        product=product,
        category_name=product.category.name if product.category else UNCATEGORIZED,
        total_stock=total,
        location=location,
        status=derive_stock_status(total, records),
        records=records,
    )


def _matches_search(product: Product, needle: str) -> bool:
    needle = needle.lower()
    return (
        needle in (product.name or "").lower()
        or needle in (product.sku or "").lower()
        or needle in (product.barcode or "").lower()
    )


def list_catalog(
    search: str | None = None,
    category: str | None = None,
    status: str | None = None,
) -> list[CatalogEntry]:
    """
    Every active product with its stock summary, ordered by name.

    search matches name, SKU or barcode (case-insensitive substring).
    category matches the category name ("Uncategorized" selects products
    without one). status is one of STOCK_STATUSES.
    """
    if status is not None and status not in STOCK_STATUSES:
        raise ValueError(f"Unknown status: {status}")

    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )

    entries = []
    for product in products:
        if search and not _matches_search(product, search.strip()):
            continue
        entry = build_entry(product)
        if category and entry.category_name.lower() != category.strip().lower():
            continue
        if status and entry.status != status:
            continue
        entries.append(entry)
    return entries


def get_entry(product_id: int) -> CatalogEntry | None:
    product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        return None
    return build_entry(product)


def stock_alerts() -> list[CatalogEntry]:
    """Active products that are low or out of stock."""
    return [e for e in list_catalog() if e.status != IN_STOCK]


def warehouses_with_counts() -> list[dict]:
    """Warehouses with the number of inventory records each one holds."""
    counts = dict(
        db.session.query(InventoryRecord.warehouse_id, func.count(InventoryRecord.id))
        .group_by(InventoryRecord.warehouse_id)
        .all()
    )
    rows = []
    for w in db.session.query(Warehouse).order_by(Warehouse.name.asc(), Warehouse.id.asc()).all():
        data = w.to_dict()
        data["product_count"] = int(counts.get(w.id, 0))
        rows.append(data)
    return rows


def categories_with_counts() -> list[dict]:
    """Categories with the number of active products in each."""
    counts = dict(
        db.session.query(Product.category_id, func.count(Product.id))
        .filter(Product.is_active.is_(True), Product.category_id.isnot(None))
        .group_by(Product.category_id)
        .all()
    )
    rows = []
    for c in db.session.query(Category).order_by(Category.name.asc()).all():
        data = c.to_dict()
        data["product_count"] = int(counts.get(c.id, 0))
        rows.append(data)
    return rows


def recent_transfers(limit: int = RECENT_TRANSFER_LIMIT) -> list[StockTransfer]:
    return (
        db.session.query(StockTransfer)
        .order_by(StockTransfer.created_at.desc(), StockTransfer.id.desc())
        .limit(limit)
        .all()
    )
