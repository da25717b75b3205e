# Overview: Process-local registry of checkout engines, one per signed-in cashier session.

from __future__ import annotations

import threading
from typing import Callable

from ..checkout import CheckoutEngine


class CartRegistry:
    """
    Holds the in-progress cart of every cashier session.

    Carts are never persisted: they live as long as the session (or the
    process) and are dropped on sign-out, revocation and expiry.
    """

    def __init__(self):
        self._engines: dict[int, CheckoutEngine] = {}
        self._lock = threading.Lock()

    def init_app(self, app) -> None:
        app.extensions["counterpos.carts"] = self

    def get_or_create(self, session_id: int, factory: Callable[[], CheckoutEngine]) -> CheckoutEngine:
        with self._lock:
            engine = self._engines.get(session_id)
            if engine is None:
                engine = factory()
                self._engines[session_id] = engine
            return engine

    def get(self, session_id: int) -> CheckoutEngine | None:
        with self._lock:
            return self._engines.get(session_id)

    def discard(self, session_id: int) -> None:
        with self._lock:
            self._engines.pop(session_id, None)

    def retain(self, session_ids) -> int:
        """Drop every cart whose session is not in `session_ids`; returns how many went."""
        live = set(session_ids)
        with self._lock:
            stale = [sid for sid in self._engines if sid not in live]
            for sid in stale:
                del self._engines[sid]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._engines.clear()

    def __len__(self) -> int:
        return len(self._engines)
