# Overview: Flask API routes for the sales terminal; parses input and returns JSON responses.

# backend/posadmin/routes/sales.py
"""Sales terminal routes (admin, cashier)."""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_screen
from ..models import TRANSACTION_STATUSES
from ..services import catalog_service, settlement_service
from ..services.settlement_service import SettlementError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

MAX_TRANSACTION_PAGE = 200


@sales_bp.get("/catalog")
@require_auth
@require_screen("sales")
def catalog_route():
    """Products the terminal can sell, with stock. ?search= matches name, SKU, barcode."""
    try:
        entries = catalog_service.list_catalog(search=request.args.get("search"))
    except Exception:
        current_app.logger.exception("Failed to load sales catalog")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "items": [e.to_dict() for e in entries],
        "count": len(entries),
    }), 200


@sales_bp.post("/cart")
@require_auth
@require_screen("sales")
def cart_preview_route():
    """Price a cart without settling it."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        cart = settlement_service.build_cart(data.get("items"))
    except SettlementError as e:
        return jsonify({"error": str(e), "details": e.details}), 400

    return jsonify({"cart": cart.to_dict()}), 200


@sales_bp.post("/checkout")
@require_auth
@require_screen("sales")
def checkout_route():
    """
    Settle a cart.

    Body: {"items": [{"product_id", "quantity"}], "payment_method", "customer_name"}
    Prices come from the current product rows, not from the client.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        cart = settlement_service.build_cart(data.get("items"))
        receipt = settlement_service.checkout(
            cart,
            g.current_user,
            payment_method=data.get("payment_method", "card"),
            customer_name=data.get("customer_name"),
        )
    except SettlementError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to complete checkout")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"receipt": receipt.to_dict()}), 201


@sales_bp.get("/transactions")
@require_auth
@require_screen("sales")
def list_transactions_route():
    """Recent transactions, newest first. ?limit= (max 200), ?status="""
    limit = request.args.get("limit", default=50, type=int)
    limit = max(1, min(limit, MAX_TRANSACTION_PAGE))
    status = request.args.get("status")
    if status and status not in TRANSACTION_STATUSES:
        return jsonify({"error": f"Invalid status: {status}"}), 400

    transactions = settlement_service.list_transactions(limit=limit, status=status)
    return jsonify({
        "items": [t.to_dict() for t in transactions],
        "count": len(transactions),
    }), 200


@sales_bp.get("/transactions/<int:transaction_id>")
@require_auth
@require_screen("sales")
def get_transaction_route(transaction_id: int):
    tx = settlement_service.get_transaction(transaction_id)
    if not tx:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify({"transaction": tx.to_dict(include_items=True)}), 200
