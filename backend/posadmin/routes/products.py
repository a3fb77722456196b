# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/posadmin/routes/products.py
"""
Product management routes (Inventory screen: admin, inventory).

Deleting a product removes its inventory records and deactivates it.
"""
from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_screen
from ..models import Product
from ..services import inventory_service, products_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
    NotFoundError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "name", "description", "barcode", "image_url", "price_cents", "category_id"},
    required_on_create={"sku", "name", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_screen("inventory")
def list_products():
    products = products_service.list_products()
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/<int:product_id>")
@require_auth
@require_screen("inventory")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    data = product.to_dict()
    data["inventory"] = [r.to_dict() for r in inventory_service.records_for_product(product_id)]
    return data, 200


@products_bp.post("")
@require_auth
@require_screen("inventory")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(patch=patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_screen("inventory")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400

    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_screen("inventory")
def delete_product_route(product_id: int):
    if not products_service.delete_product(product_id=product_id):
        return {"error": "Product not found"}, 404
    return {"ok": True}, 200


@products_bp.put("/<int:product_id>/inventory")
@require_auth
@require_screen("inventory")
def set_inventory_route(product_id: int):
    """
    Set per-warehouse stock.

    Body: {"inventory": [{"warehouse_id", "stock_level", "reorder_point"?}]}
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400

    try:
        records = inventory_service.set_inventory_levels(product_id, payload.get("inventory"))
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to set inventory levels")
        return {"error": "Internal server error"}, 500

    return {"inventory": [r.to_dict() for r in records]}, 200
