# backend/posadmin/routes/categories.py
from flask import Blueprint, request

from ..decorators import require_auth, require_screen
from ..models import Category
from ..services import category_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
@require_screen("inventory")
def list_categories_route():
    categories = category_service.list_categories()
    return {"items": [c.to_dict() for c in categories], "count": len(categories)}


@categories_bp.post("")
@require_auth
@require_screen("inventory")
def create_category_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        category = category_service.create_category(patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    return category.to_dict(), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_screen("inventory")
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
        category = category_service.update_category(category_id=category_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return category.to_dict(), 200


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_screen("inventory")
def delete_category_route(category_id: int):
    try:
        category_service.delete_category(category_id=category_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"ok": True}, 200
