# Overview: Flask API routes for user administration (admin only).

# backend/posadmin/routes/users.py
from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_screen
from ..services import auth_service
from ..validation import ConflictError, NotFoundError, ValidationError


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_screen("users")
def list_users_route():
    users = auth_service.list_users()
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200


@users_bp.post("")
@require_auth
@require_screen("users")
def create_user_route():
    """Body: {"name", "email", "password", "role"}"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict()}), 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_screen("users")
def update_user_route(user_id: int):
    """Body: any of {"name", "role", "is_active", "password"}"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        user = auth_service.update_user(user_id, data)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"user": user.to_dict()}), 200
