# backend/posadmin/routes/settings.py
from flask import Blueprint, request, g

from ..decorators import require_auth, require_screen
from ..services import settings_service
from ..services.settings_service import SettingsError

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
@require_screen("settings")
def list_settings_route():
    return {"items": settings_service.list_settings()}, 200


@settings_bp.put("")
@require_auth
@require_screen("settings")
def update_settings_route():
    """Body: {"<key>": value, ...}"""
    payload = request.get_json(silent=True) or {}
    try:
        items = settings_service.update_settings(payload, user_id=g.current_user.id)
    except SettingsError as e:
        return {"error": str(e)}, 400
    return {"items": items}, 200
