# backend/posadmin/routes/dashboard.py
from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_screen
from ..services import reporting_service
from ..services.reporting_service import ReportError

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@require_auth
@require_screen("dashboard")
def dashboard_route():
    """Home screen figures. Optional ?start=&end= ISO-8601 bounds."""
    try:
        return reporting_service.dashboard_summary(
            start=request.args.get("start"),
            end=request.args.get("end"),
        ), 200
    except ReportError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to build dashboard")
        return {"error": "Internal server error"}, 500
