# Overview: Flask API routes for order history; parses input and returns JSON responses.

# backend/counterpos/routes/orders.py
"""
Order history routes.

Orders are read-only here. Cashiers see only the orders they rang up;
admins see everything and may filter by cashier.
"""
from flask import Blueprint, request, g

from ..errors import NotFound, PosError
from ..models import ROLE_ADMIN
from ..services.order_service import get_ledger
from ..decorators import require_auth
from . import error_response

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders():
    """
    Orders newest first.

    Query params:
    - cashier_id: int (optional, admin only) - one cashier's orders
    """
    if g.session.role == ROLE_ADMIN:
        cashier_id = request.args.get("cashier_id", type=int)
    else:
        cashier_id = g.current_account.id

    try:
        orders = get_ledger().list(cashier_id=cashier_id)
    except PosError as e:
        return error_response(e)

    return {"orders": [o.to_dict() for o in orders]}


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order(order_id: int):
    try:
        order = get_ledger().get(order_id)
        if g.session.role != ROLE_ADMIN and order.cashier_id != g.current_account.id:
            # Someone else's order looks the same as a missing one
            raise NotFound("Order not found", details={"order_id": order_id})
    except PosError as e:
        return error_response(e)

    return {"order": order.to_dict()}
