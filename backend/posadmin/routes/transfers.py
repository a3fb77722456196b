# Overview: Flask API routes for stock transfers; parses input and returns JSON responses.

# backend/posadmin/routes/transfers.py
from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_screen
from ..services import transfer_service
from ..services.transfer_service import TransferError


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")

TRANSFER_STATUSES = (
    transfer_service.TRANSFER_STATUS_PENDING,
    transfer_service.TRANSFER_STATUS_COMPLETED,
    transfer_service.TRANSFER_STATUS_CANCELLED,
)


@transfers_bp.get("")
@require_auth
@require_screen("inventory")
def list_transfers_route():
    status = request.args.get("status")
    if status and status not in TRANSFER_STATUSES:
        return jsonify({"error": f"Invalid status: {status}"}), 400
    limit = max(1, min(request.args.get("limit", default=50, type=int), 200))

    transfers = transfer_service.list_transfers(status=status, limit=limit)
    return jsonify({"items": [t.to_dict() for t in transfers], "count": len(transfers)}), 200


@transfers_bp.post("")
@require_auth
@require_screen("inventory")
def create_transfer_route():
    """
    Body: {"from_warehouse_id", "to_warehouse_id", "items": [{"product_id", "quantity"}], "notes"?}
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    from_warehouse_id = data.get("from_warehouse_id")
    to_warehouse_id = data.get("to_warehouse_id")

    if any(isinstance(v, bool) or not isinstance(v, int) for v in (from_warehouse_id, to_warehouse_id)):
        return jsonify({"error": "from_warehouse_id and to_warehouse_id required"}), 400

    try:
        transfer = transfer_service.create_transfer(
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            items=data.get("items"),
            user_id=g.current_user.id,
            notes=data.get("notes"),
        )
    except TransferError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to create transfer")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"transfer": transfer.to_dict(include_items=True)}), 201


@transfers_bp.get("/<int:transfer_id>")
@require_auth
@require_screen("inventory")
def get_transfer_route(transfer_id: int):
    transfer = transfer_service.get_transfer(transfer_id)
    if not transfer:
        return jsonify({"error": "Transfer not found"}), 404
    return jsonify({"transfer": transfer.to_dict(include_items=True)}), 200


@transfers_bp.post("/<int:transfer_id>/complete")
@require_auth
@require_screen("inventory")
def complete_transfer_route(transfer_id: int):
    try:
        transfer = transfer_service.complete_transfer(transfer_id)
    except TransferError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to complete transfer")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"transfer": transfer.to_dict(include_items=True)}), 200


@transfers_bp.post("/<int:transfer_id>/cancel")
@require_auth
@require_screen("inventory")
def cancel_transfer_route(transfer_id: int):
    try:
        transfer = transfer_service.cancel_transfer(transfer_id)
    except TransferError as e:
        return jsonify({"error": str(e), "details": e.details}), 400

    return jsonify({"transfer": transfer.to_dict()}), 200
