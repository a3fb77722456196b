# backend/posadmin/routes/warehouses.py
"""Warehouse screen routes (admin, inventory)."""
from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_screen
from ..models import Warehouse
from ..services import warehouse_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_warehouse,
    ValidationError,
    NotFoundError,
    ReferentialIntegrityError,
)

WAREHOUSE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "location", "description", "contact_email", "contact_phone"},
    required_on_create={"name", "location"},
)

warehouses_bp = Blueprint("warehouses", __name__, url_prefix="/api/warehouses")


@warehouses_bp.get("")
@require_auth
@require_screen("warehouse")
def list_warehouses_route():
    warehouses = warehouse_service.list_warehouses()
    return {"items": [w.to_dict() for w in warehouses], "count": len(warehouses)}


@warehouses_bp.get("/<int:warehouse_id>")
@require_auth
@require_screen("warehouse")
def get_warehouse_route(warehouse_id: int):
    try:
        warehouse = warehouse_service.get_warehouse(warehouse_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    data = warehouse.to_dict()
    data["inventory"] = [r.to_dict() for r in warehouse.inventory]
    return data, 200


@warehouses_bp.post("")
@require_auth
@require_screen("warehouse")
def create_warehouse_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=False)
        enforce_rules_warehouse(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    warehouse = warehouse_service.create_warehouse(patch=patch)
    return warehouse.to_dict(), 201


@warehouses_bp.put("/<int:warehouse_id>")
@require_auth
@require_screen("warehouse")
def update_warehouse_route(warehouse_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=True)
        enforce_rules_warehouse(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        warehouse = warehouse_service.update_warehouse(warehouse_id=warehouse_id, patch=patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return warehouse.to_dict(), 200


@warehouses_bp.delete("/<int:warehouse_id>")
@require_auth
@require_screen("warehouse")
def delete_warehouse_route(warehouse_id: int):
    """Refused with 409 while inventory or transfers reference the warehouse."""
    try:
        warehouse_service.delete_warehouse(warehouse_id=warehouse_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ReferentialIntegrityError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to delete warehouse")
        return {"error": "Internal server error"}, 500
    return {"ok": True}, 200
