# Overview: Service-layer operations for bearer-token sessions.

"""
Session Token Management Service

Tokens are 32 random bytes sent to the client once; only their SHA-256 is
stored. Sessions expire after an absolute lifetime, after a period of
inactivity, or on explicit revocation (sign-out, account revocation).
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db, carts
from ..models import Account, SessionToken
from .concurrency import database_errors
from counterpos.time_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """Signed-in identity for one request: account, session row and role."""
    account: Account
    session: SessionToken
    role: str

    @property
    def account_id(self) -> int:
        return self.account.id

    @property
    def display_name(self) -> str:
        return self.account.display_name


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 12))


def _idle_timeout() -> timedelta:
    return timedelta(minutes=current_app.config.get("SESSION_IDLE_TIMEOUT_MINUTES", 120))


def generate_token() -> str:
    return secrets.token_hex(32)  # 32 bytes = 64 hex characters


def hash_token(token: str) -> str:
    """SHA-256 is enough here: tokens are high-entropy, unlike passwords."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(
    account_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create a session for an account.

    Returns (session_record, plaintext_token).
    """
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        account_id=account_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False,
    )

    with database_errors("create session"):
        db.session.add(session)
        db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token into a SessionContext.

    Returns None if the token is unknown, expired, idle too long, revoked,
    or its account has been deleted. Touches last_used_at on success.
    """
    if not token:
        return None

    now = utcnow()
    with database_errors("validate session"):
        session = db.session.query(SessionToken).filter_by(
            token_hash=hash_token(token),
            is_revoked=False,
        ).first()

        if not session:
            return None

        if session.expires_at < now:
            carts.discard(session.id)
            return None

        if now - session.last_used_at > _idle_timeout():
            _revoke(session, "Idle timeout")
            db.session.commit()
            carts.discard(session.id)
            return None

        account = session.account
        if account is None:
            carts.discard(session.id)
            return None

        session.last_used_at = now
        db.session.commit()

    return SessionContext(account=account, session=session, role=account.role)


def revoke_session(token: str, reason: str = "User logout") -> SessionToken | None:
    """
    Revoke a session token.

    Returns the revoked session, or None when there was nothing to revoke.
    """
    with database_errors("revoke session"):
        session = db.session.query(SessionToken).filter_by(
            token_hash=hash_token(token),
            is_revoked=False,
        ).first()

        if not session:
            return None

        _revoke(session, reason)
        db.session.commit()
    return session


def revoke_all_account_sessions(account_id: int, reason: str = "Revoke all sessions") -> list[int]:
    """Revoke every live session of an account; returns the revoked session ids."""
    with database_errors("revoke account sessions"):
        sessions = db.session.query(SessionToken).filter_by(
            account_id=account_id,
            is_revoked=False,
        ).all()
        for session in sessions:
            _revoke(session, reason)
        db.session.commit()
    return [s.id for s in sessions]


def live_session_ids() -> list[int]:
    """Ids of sessions a request could still use right now."""
    now = utcnow()
    with database_errors("list live sessions"):
        rows = db.session.query(SessionToken.id).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= now,
            SessionToken.last_used_at >= now - _idle_timeout(),
        ).all()
    return [row.id for row in rows]


def sweep_carts() -> int:
    """Drop in-memory carts whose session is no longer live; returns how many."""
    dropped = carts.retain(live_session_ids())
    if dropped:
        logger.info("Dropped %s cart(s) of ended sessions", dropped)
    return dropped


def cleanup_expired_sessions() -> int:
    """
    Delete expired or revoked sessions older than 30 days.

    Also drops the carts of every session that is no longer live, including
    ones too recent to delete.
    """
    cutoff = utcnow() - timedelta(days=30)
    with database_errors("cleanup sessions"):
        deleted = db.session.query(SessionToken).filter(
            db.or_(
                SessionToken.expires_at < utcnow(),
                SessionToken.is_revoked.is_(True),
            ),
            SessionToken.created_at < cutoff,
        ).delete(synchronize_session=False)
        db.session.commit()
    sweep_carts()
    return deleted
