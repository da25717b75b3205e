# Overview: Flask API routes for catalog item operations; parses input and returns JSON responses.

# backend/counterpos/routes/items.py
"""
Catalog item routes.

SECURITY: All routes require authentication.
- Reads are open to both roles (cashiers browse the catalog to build carts)
- Writes require the admin role
"""
from flask import Blueprint, request, current_app

from ..errors import PosError
from ..models import Item
from ..services.catalog_service import get_catalog
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_item,
    ValidationError,
)
from ..decorators import require_auth, require_role
from . import error_response

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "price", "stock"},
    required_on_create={"name", "price", "stock"},
    money_fields={"price": "price_cents"},
)

items_bp = Blueprint("items", __name__, url_prefix="/api/items")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes"}


@items_bp.get("")
@require_auth
def list_items():
    """
    List catalog items ordered by name.

    Query params:
    - q: str (optional) - case-insensitive match on name or category
    - category: str (optional) - one category, or "all"
    - in_stock: bool (optional) - only items a cashier can sell (stock > 0, name match)
    """
    query = request.args.get("q")
    category = request.args.get("category")

    try:
        catalog = get_catalog()
        if _truthy(request.args.get("in_stock")):
            records = catalog.offerable(query, category)
        else:
            records = catalog.search(query, category)
    except PosError as e:
        return error_response(e)

    return {"items": [r.to_dict() for r in records]}


@items_bp.get("/categories")
@require_auth
def list_categories():
    try:
        return {"categories": get_catalog().categories()}
    except PosError as e:
        return error_response(e)


@items_bp.post("")
@require_auth
@require_role("admin")
def create_item():
    """Create an item. Body: {name, category?, price, stock}."""
    try:
        patch = validate_payload(
            model=Item,
            payload=request.get_json(silent=True),
            policy=ITEM_POLICY,
            partial=False,
        )
        enforce_rules_item(patch)
        record = get_catalog().create(patch)
    except (ValidationError, PosError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create item")
        return {"error": "Internal server error"}, 500

    return {"item": record.to_dict()}, 201


@items_bp.put("/<int:item_id>")
@require_auth
@require_role("admin")
def update_item(item_id: int):
    """Partial update; only the fields present in the body change."""
    try:
        patch = validate_payload(
            model=Item,
            payload=request.get_json(silent=True),
            policy=ITEM_POLICY,
            partial=True,
        )
        enforce_rules_item(patch)
        record = get_catalog().update(item_id, patch)
    except (ValidationError, PosError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update item %s", item_id)
        return {"error": "Internal server error"}, 500

    return {"item": record.to_dict()}


@items_bp.delete("/<int:item_id>")
@require_auth
@require_role("admin")
def delete_item(item_id: int):
    """Delete an item. Past orders keep their own copy of name and price."""
    try:
        get_catalog().delete(item_id)
    except PosError as e:
        return error_response(e)

    return {"deleted": item_id}
