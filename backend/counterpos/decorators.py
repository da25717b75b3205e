# Overview: Request and role decorators for API routes.

from __future__ import annotations

from functools import wraps
from flask import request, jsonify, g

from .errors import InvalidCredentials, NotPermitted
from .guard import Decision, LOGIN_PATH, authorize
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_account') and hasattr(g, 'session')


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def _unauthenticated(message: str):
    body = InvalidCredentials(message).to_dict()
    body["redirect"] = LOGIN_PATH
    return jsonify(body), 401


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_account: the signed-in Account
    - g.session: the SessionContext (account, session row, role)

    Returns 401 with a redirect to the login view if the header is missing,
    or the token is unknown, expired, idle too long or revoked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return _unauthenticated("Authentication required")

        context = session_service.validate_session(token)

        if not context:
            return _unauthenticated("Invalid or expired token")

        g.current_account = context.account
        g.session = context
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """
    Require the signed-in account to hold `role`.

    A mismatch answers 403 and names the caller's own home view as the
    redirect target, the same decision the client-side RouteGuard makes.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return _unauthenticated("Authentication required")

            result = authorize(g.session, role)
            if result.decision == Decision.REDIRECT_TO_LOGIN:
                return _unauthenticated("Authentication required")
            if not result.allowed:
                body = NotPermitted("Permission denied").to_dict()
                body["required_role"] = role
                body["redirect"] = result.target
                return jsonify(body), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
