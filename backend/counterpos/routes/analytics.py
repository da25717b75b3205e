# Overview: Flask API routes for dashboard and analytics figures; parses input and returns JSON responses.

# backend/counterpos/routes/analytics.py
"""
Admin dashboard and analytics.

Both views fold the full catalog and the full order history in memory;
nothing here writes.
"""
from flask import Blueprint, current_app

from ..errors import PosError
from ..services import analytics_service
from ..services.catalog_service import get_catalog
from ..services.order_service import get_ledger
from ..decorators import require_auth, require_role
from . import error_response

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api")


def _threshold() -> int:
    return current_app.config.get("LOW_STOCK_THRESHOLD", analytics_service.LOW_STOCK_THRESHOLD)


@analytics_bp.get("/dashboard")
@require_auth
@require_role("admin")
def dashboard():
    try:
        items = get_catalog().list()
        orders = get_ledger().list()
    except PosError as e:
        return error_response(e)
    return analytics_service.dashboard_summary(items, orders, _threshold())


@analytics_bp.get("/analytics")
@require_auth
@require_role("admin")
def analytics():
    try:
        items = get_catalog().list()
        orders = get_ledger().list()
    except PosError as e:
        return error_response(e)
    return analytics_service.analytics_summary(items, orders, _threshold())
