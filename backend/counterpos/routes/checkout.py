# Overview: Flask API routes for cart and checkout operations; parses input and returns JSON responses.

# backend/counterpos/routes/checkout.py
"""
Cart & checkout routes.

Each cashier session owns one CheckoutEngine in the process-local cart
registry. Every response carries the cart snapshot (state, lines, total)
so the client never has to guess what the engine did.
"""
from flask import Blueprint, request, g, current_app

from ..checkout import Cashier, CheckoutEngine
from ..errors import PosError
from ..extensions import carts
from ..services.catalog_service import get_catalog
from ..services.order_service import get_ledger
from ..validation import ValidationError
from ..decorators import require_auth, require_role
from . import error_response

checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")


def _engine() -> CheckoutEngine:
    context = g.session
    return carts.get_or_create(
        context.session.id,
        lambda: CheckoutEngine(
            cashier=Cashier(id=context.account_id, name=context.display_name),
            recorder=get_ledger(),
        ),
    )


def _cart(engine: CheckoutEngine, status: int = 200):
    return {"cart": engine.snapshot()}, status


def _bad_request(e: ValueError):
    return error_response(ValidationError(str(e)))


@checkout_bp.get("/cart")
@require_auth
@require_role("cashier")
def get_cart():
    return _cart(_engine())


@checkout_bp.post("/cart/items")
@require_auth
@require_role("cashier")
def add_to_cart():
    """Add one unit of an item. Body: {item_id}."""
    data = request.get_json(silent=True) or {}
    item_id = data.get("item_id")
    if isinstance(item_id, bool) or not isinstance(item_id, int):
        return error_response(ValidationError("item_id must be an integer"))

    engine = _engine()
    try:
        engine.add_item(get_catalog().get(item_id))
    except PosError as e:
        return error_response(e)
    return _cart(engine)


@checkout_bp.patch("/cart/items/<int:item_id>")
@require_auth
@require_role("cashier")
def change_quantity(item_id: int):
    """Nudge a line's quantity. Body: {delta}, 1 or -1."""
    data = request.get_json(silent=True) or {}
    engine = _engine()
    try:
        engine.set_quantity(item_id, data.get("delta"))
    except PosError as e:
        return error_response(e)
    except ValueError as e:
        return _bad_request(e)
    return _cart(engine)


@checkout_bp.delete("/cart/items/<int:item_id>")
@require_auth
@require_role("cashier")
def remove_from_cart(item_id: int):
    engine = _engine()
    try:
        engine.remove_item(item_id)
    except PosError as e:
        return error_response(e)
    return _cart(engine)


@checkout_bp.delete("/cart")
@require_auth
@require_role("cashier")
def clear_cart():
    engine = _engine()
    try:
        engine.clear()
    except PosError as e:
        return error_response(e)
    return _cart(engine)


@checkout_bp.post("/begin")
@require_auth
@require_role("cashier")
def begin_checkout():
    """Open the payment step; the cart is frozen until commit or cancel."""
    engine = _engine()
    try:
        engine.begin_checkout()
    except PosError as e:
        return error_response(e)
    return _cart(engine)


@checkout_bp.post("/cancel")
@require_auth
@require_role("cashier")
def cancel_checkout():
    engine = _engine()
    try:
        engine.cancel_checkout()
    except PosError as e:
        return error_response(e)
    return _cart(engine)


@checkout_bp.post("/quote")
@require_auth
@require_role("cashier")
def quote():
    """Change preview for an amount. Body: {amount_tendered}. Changes nothing."""
    data = request.get_json(silent=True) or {}
    try:
        result = _engine().quote(data.get("amount_tendered"))
    except ValueError as e:
        return _bad_request(e)
    return {"quote": result}


@checkout_bp.post("/commit")
@require_auth
@require_role("cashier")
def commit():
    """
    Record the sale. Body: {payment_method: "CASH"|"GCASH", amount_tendered}.

    On success the order is returned and the cart is empty. On failure the
    cart is kept (state FAILED) so the cashier can retry or edit.
    """
    data = request.get_json(silent=True) or {}
    engine = _engine()
    try:
        order = engine.commit(data.get("payment_method"), data.get("amount_tendered"))
    except PosError as e:
        return error_response(e)
    except ValueError as e:
        return _bad_request(e)
    except Exception:
        current_app.logger.exception("Failed to commit checkout")
        return {"error": "Internal server error", "cart": engine.snapshot()}, 500

    return {"order": order.to_dict(), "cart": engine.snapshot()}, 201
