# Overview: Role-based route guarding shared by the HTTP decorators and the client-side RouteGuard.

"""
authorize() is a pure decision over (session, required role):

    no session                      -> REDIRECT_TO_LOGIN
    session, role still loading     -> PENDING
    role differs from required role -> REDIRECT_TO_ROLE_HOME
    otherwise                       -> ALLOW

RouteGuard re-runs authorize() whenever its SessionProvider publishes a
change and navigates once per distinct mismatch.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"

ROLE_HOMES = {
    "admin": "/admin",
    "cashier": "/cashier",
}

# View path -> role required to see it
PROTECTED_ROUTES = {
    "/admin": "admin",
    "/admin/inventory": "admin",
    "/admin/analytics": "admin",
    "/admin/cashiers": "admin",
    "/cashier": "cashier",
    "/cashier/orders": "cashier",
}


class Decision(str, enum.Enum):
    ALLOW = "ALLOW"
    REDIRECT_TO_LOGIN = "REDIRECT_TO_LOGIN"
    REDIRECT_TO_ROLE_HOME = "REDIRECT_TO_ROLE_HOME"
    PENDING = "PENDING"


@dataclass(frozen=True)
class Authorization:
    decision: Decision
    target: str | None = None

    @property
    def allowed(self) -> bool:
        return self.decision == Decision.ALLOW

    @property
    def is_redirect(self) -> bool:
        return self.decision in (Decision.REDIRECT_TO_LOGIN, Decision.REDIRECT_TO_ROLE_HOME)

    def to_dict(self) -> dict:
        return {"decision": self.decision.value, "target": self.target}


def home_for(role: str | None) -> str | None:
    return ROLE_HOMES.get(role)


def required_role_for(path: str) -> str | None:
    return PROTECTED_ROUTES.get(path.rstrip("/") or "/")


def authorize(session, required_role: str | None = None) -> Authorization:
    """
    Decide what to do with a request for a guarded view.

    `session` is None or anything with a `role` attribute; a role of None
    means the lookup has not finished.
    """
    if session is None:
        return Authorization(Decision.REDIRECT_TO_LOGIN, LOGIN_PATH)

    role = getattr(session, "role", None)
    if role is None:
        return Authorization(Decision.PENDING)

    home = home_for(role)
    if home is None:
        # Outside the closed role set: treat as not signed in
        return Authorization(Decision.REDIRECT_TO_LOGIN, LOGIN_PATH)

    if required_role is not None and role != required_role:
        return Authorization(Decision.REDIRECT_TO_ROLE_HOME, home)

    return Authorization(Decision.ALLOW)


class RouteGuard:
    """
    Guards one view for the lifetime of a SessionProvider subscription.

    `navigate(path)` is called when a redirect is due; the same redirect is
    not repeated until the guard has seen a non-redirect state in between.
    """

    def __init__(self, provider, navigate: Callable[[str], None], required_role: str | None = None):
        self.required_role = required_role
        self._navigate = navigate
        self._last_redirect: Authorization | None = None
        self.current = self.evaluate(provider.session)
        self._unsubscribe = provider.subscribe(self.evaluate)

    def evaluate(self, session) -> Authorization:
        result = authorize(session, self.required_role)
        self.current = result

        if not result.is_redirect:
            self._last_redirect = None
        elif result != self._last_redirect:
            self._last_redirect = result
            logger.debug("Route guard redirecting to %s (%s)", result.target, result.decision.value)
            self._navigate(result.target)

        return result

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
