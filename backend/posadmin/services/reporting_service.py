# Overview: Dashboard figures built from completed transactions and stock levels.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Product, Transaction, User, Warehouse
from ..time_utils import parse_iso_datetime
from . import catalog_service

RECENT_TRANSACTION_LIMIT = 5


class ReportError(Exception):
    """Raised when report generation fails."""


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ReportError("start and end must be ISO-8601 datetimes")
    if start_dt and end_dt and start_dt > end_dt:
        raise ReportError("start must be before end")
    return start_dt, end_dt


def dashboard_summary(start: str | None = None, end: str | None = None) -> dict:
    """
    Headline numbers for the home screen.

    Revenue and counts cover completed transactions in [start, end]
    (both optional, inclusive).
    """
    start_dt, end_dt = _parse_range(start, end)

    query = db.session.query(
        func.count(Transaction.id),
        func.coalesce(func.sum(Transaction.total_amount_cents), 0),
        func.coalesce(func.sum(Transaction.tax_amount_cents), 0),
    ).filter(Transaction.status == "completed")
    if start_dt:
        query = query.filter(Transaction.created_at >= start_dt)
    if end_dt:
        query = query.filter(Transaction.created_at <= end_dt)
    tx_count, revenue, tax = query.one()

    recent = (
        db.session.query(Transaction)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(RECENT_TRANSACTION_LIMIT)
        .all()
    )

    alerts = catalog_service.stock_alerts()

    return {
        "transaction_count": int(tx_count or 0),
        "revenue_cents": int(revenue or 0),
        "tax_collected_cents": int(tax or 0),
        "product_count": db.session.query(Product).filter(Product.is_active.is_(True)).count(),
        "warehouse_count": db.session.query(Warehouse).count(),
        "user_count": db.session.query(User).filter(User.is_active.is_(True)).count(),
        "recent_transactions": [t.to_dict() for t in recent],
        "stock_alerts": [
            {
                "product_id": e.product.id,
                "name": e.product.name,
                "sku": e.product.sku,
                "total_stock": e.total_stock,
                "status": e.status,
                "location": e.location,
            }
            for e in alerts
        ],
    }
