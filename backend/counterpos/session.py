# Overview: Client-side holder of the signed-in identity and role, with change notification.

"""
SessionProvider is constructed once by whatever owns the process (a
terminal front end, a test) and handed to every component that needs the
current identity. It is not a global.

Lifecycle: sign_in() publishes the new session with its role still loading
(role=None), then publishes again once the role lookup returns.
sign_out() publishes None. Subscribers receive the new value after each
change, in subscription order.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable

from .errors import PosError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    account_id: int
    email: str
    username: str
    token: str
    role: str | None = None

    @property
    def role_loading(self) -> bool:
        return self.role is None


Listener = Callable[["Session | None"], None]


class SessionProvider:
    def __init__(self, auth):
        """
        `auth` provides sign_in(identifier, password) -> dict with "token"
        and "account", current_session() -> dict with "role", and sign_out().
        PosClient fits.
        """
        self._auth = auth
        self._session: Session | None = None
        self._listeners: list[Listener] = []
        self._version = 0
        self._lock = threading.RLock()

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def version(self) -> int:
        return self._version

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, session: Session | None) -> None:
        with self._lock:
            if session == self._session:
                return
            self._session = session
            self._version += 1
            listeners = list(self._listeners)
        for listener in listeners:
            listener(session)

    def sign_in(self, identifier: str, password: str) -> Session:
        """
        Authenticate and load the role.

        InvalidCredentials (or any other collaborator error) leaves the
        previous state in place when sign-in itself fails; a failed role
        lookup signs the half-open session back out and re-raises.
        """
        result = self._auth.sign_in(identifier, password)
        account = result["account"]
        session = Session(
            account_id=account["id"],
            email=account["email"],
            username=account["username"],
            token=result["token"],
        )
        self._publish(session)

        try:
            role = self._auth.current_session()["role"]
        except PosError:
            logger.warning("Role lookup failed for account %s; signing out", session.account_id)
            self._publish(None)
            raise

        self._publish(replace(session, role=role))
        return self._session

    def refresh_role(self) -> Session | None:
        """Re-run the role lookup for the current session."""
        session = self._session
        if session is None:
            return None
        role = self._auth.current_session()["role"]
        self._publish(replace(session, role=role))
        return self._session

    def sign_out(self) -> None:
        """Idempotent: signing out twice is the same as once."""
        if self._session is None:
            return
        try:
            self._auth.sign_out()
        finally:
            self._publish(None)
