# Overview: Flask API routes for cashier account management; parses input and returns JSON responses.

# backend/counterpos/routes/cashiers.py
"""
Cashier account routes (admin only).

Provisioning creates an account with the cashier role. Revocation deletes
the account and its sessions; any cart its sessions held is dropped.
"""
from flask import Blueprint, request, g, current_app

from ..errors import PosError
from ..extensions import carts
from ..models import ROLE_CASHIER
from ..services import auth_service
from ..validation import ValidationError
from ..decorators import require_auth, require_role
from . import error_response

cashiers_bp = Blueprint("cashiers", __name__, url_prefix="/api/cashiers")


@cashiers_bp.get("")
@require_auth
@require_role("admin")
def list_cashiers():
    try:
        accounts = auth_service.list_accounts(role=ROLE_CASHIER)
    except PosError as e:
        return error_response(e)
    return {"cashiers": [a.to_dict() for a in accounts]}


@cashiers_bp.post("")
@require_auth
@require_role("admin")
def provision_cashier():
    """Create a cashier. Body: {email, password, username}."""
    data = request.get_json(silent=True) or {}
    try:
        account = auth_service.provision_account(
            email=data.get("email"),
            password=data.get("password"),
            username=data.get("username"),
            role=ROLE_CASHIER,
        )
    except (ValidationError, PosError) as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to provision cashier")
        return {"error": "Internal server error"}, 500

    return {"cashier": account.to_dict()}, 201


@cashiers_bp.delete("/<int:account_id>")
@require_auth
@require_role("admin")
def revoke_cashier(account_id: int):
    try:
        session_ids = auth_service.revoke_account(g.current_account, account_id)
    except PosError as e:
        return error_response(e)

    for session_id in session_ids:
        carts.discard(session_id)
    return {"deleted": account_id, "sessions_revoked": len(session_ids)}
