# Overview: Retry and error translation around database round trips.

from __future__ import annotations

import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ..errors import CollaboratorUnavailable
from ..extensions import db


def _db_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


@contextmanager
def database_errors(action: str):
    """
    Roll back and re-raise any SQLAlchemy failure as CollaboratorUnavailable.

    The database's own message is kept verbatim so callers can show it.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        db.session.rollback()
        message = _db_message(exc)
        current_app.logger.warning("Database error during %s: %s", action, message)
        raise CollaboratorUnavailable(message, details={"action": action}) from exc


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Execute a DB operation, retrying when the database reports a lock or
    deadlock (OperationalError). The last failure surfaces as CollaboratorUnavailable.
    """
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise CollaboratorUnavailable(_db_message(exc)) from exc
            time.sleep(backoff_base * (2 ** attempt))
