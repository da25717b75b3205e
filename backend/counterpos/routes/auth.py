# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/counterpos/routes/auth.py
"""
Authentication API routes

Sign-in hands back a bearer token; every other route expects it in the
Authorization header. Accounts are provisioned by an admin
(POST /api/cashiers) or from the CLI; there is no self-registration.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import PosError
from ..extensions import carts
from ..guard import authorize, home_for
from ..services import auth_service
from ..services import session_service
from ..decorators import bearer_token, require_auth
from . import error_response


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with email or username and create a session token.

    Returns the account, its role, the role's home view and the token.
    The token must be sent as `Authorization: Bearer <token>` afterwards.
    """
    data = request.get_json(silent=True) or {}
    identifier = data.get("identifier") or data.get("email") or data.get("username")
    password = data.get("password")

    if not all([identifier, password]):
        return jsonify({"error": "email/username and password required", "code": "VALIDATION_ERROR"}), 400

    try:
        account = auth_service.authenticate(identifier, password)
        session, token = session_service.create_session(
            account_id=account.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except PosError as e:
        if e.status == 401:
            current_app.logger.info("Failed sign-in for %r", identifier)
        return error_response(e)

    current_app.logger.info("Account %s signed in", account.id)
    return jsonify({
        "account": account.to_dict(),
        "role": account.role,
        "home": home_for(account.role),
        "token": token,
        "session": session.to_dict(),
        "message": "Login successful",
    }), 200


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke the current session and drop its cart.

    Idempotent: a missing, unknown or already-revoked token still answers
    200, so a client can always sign out.
    """
    token = bearer_token()
    if not token:
        return jsonify({"message": "Logged out"}), 200

    try:
        session = session_service.revoke_session(token, reason="User logout")
    except PosError as e:
        return error_response(e)

    if session is not None:
        carts.discard(session.id)
        current_app.logger.info("Account %s signed out", session.account_id)
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/session")
@require_auth
def session_route():
    """Current identity and role (the client's role lookup)."""
    context = g.session
    return jsonify({
        "account": context.account.to_dict(),
        "role": context.role,
        "home": home_for(context.role),
        "session": context.session.to_dict(),
    }), 200


@auth_bp.get("/authorize")
def authorize_route():
    """
    Route-guard decision for whoever holds the token, if anyone.

    Query params:
    - role: str (optional) - role the guarded view requires
    """
    token = bearer_token()
    context = session_service.validate_session(token) if token else None
    required_role = request.args.get("role") or None
    result = authorize(context, required_role)
    return jsonify(result.to_dict()), 200
