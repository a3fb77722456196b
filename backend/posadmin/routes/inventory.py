# backend/posadmin/routes/inventory.py
"""
Inventory overview (admin, inventory).

Read-only: product stock summary with filters, plus the counts shown on the
Warehouses, Categories and Transfers tabs.
"""
from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_screen
from ..services import catalog_service
from ..services.catalog_service import STOCK_STATUSES

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
@require_screen("inventory")
def inventory_overview():
    """
    Query params:
    - search: name / SKU / barcode substring
    - category: category name ("Uncategorized" for none)
    - status: in_stock | low_stock | out_of_stock
    """
    status = request.args.get("status") or None
    if status and status not in STOCK_STATUSES:
        return {"error": f"status must be one of: {', '.join(STOCK_STATUSES)}"}, 400

    try:
        entries = catalog_service.list_catalog(
            search=request.args.get("search") or None,
            category=request.args.get("category") or None,
            status=status,
        )
    except Exception:
        current_app.logger.exception("Failed to load inventory")
        return {"error": "Internal server error"}, 500

    return {
        "items": [e.to_dict() for e in entries],
        "count": len(entries),
        "summary": {s: sum(1 for e in entries if e.status == s) for s in STOCK_STATUSES},
    }, 200


@inventory_bp.get("/warehouses")
@require_auth
@require_screen("inventory")
def inventory_warehouses():
    rows = catalog_service.warehouses_with_counts()
    return {"items": rows, "count": len(rows)}, 200


@inventory_bp.get("/categories")
@require_auth
@require_screen("inventory")
def inventory_categories():
    rows = catalog_service.categories_with_counts()
    return {"items": rows, "count": len(rows)}, 200


@inventory_bp.get("/transfers")
@require_auth
@require_screen("inventory")
def inventory_recent_transfers():
    transfers = catalog_service.recent_transfers()
    return {"items": [t.to_dict(include_items=True) for t in transfers], "count": len(transfers)}, 200
