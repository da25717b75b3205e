# Overview: Service-layer operations for accounts; credential checks, provisioning and revocation.

"""
Account Service

Every sale is attributed to the account that rang it up, so accounts are
personal: admins are provisioned out of band (CLI) and cashiers are issued
by an admin through the API.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, 12 by default)
- Minimum 6 characters
- Failed sign-ins never reveal whether the identifier exists
"""

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import DuplicateAccount, InvalidCredentials, NotFound, NotPermitted
from ..extensions import db
from ..models import Account, SessionToken, ROLE_ADMIN, ROLE_CASHIER, VALID_ROLES
from ..validation import ValidationError, validate_email
from .concurrency import database_errors
from counterpos.time_utils import utcnow


MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """Validate and bcrypt-hash a password."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Malformed hashes count as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def authenticate(identifier: str, password: str) -> Account:
    """
    Sign in with email or username.

    Raises InvalidCredentials for unknown identifiers and wrong passwords alike.
    Updates last_login_at on success.
    """
    identifier = (identifier or "").strip()
    if not identifier or not password:
        raise InvalidCredentials("Invalid login credentials")

    with database_errors("authenticate"):
        account = db.session.query(Account).filter(
            db.or_(Account.email == identifier.lower(), Account.username == identifier)
        ).first()

        if account is None or not verify_password(password, account.password_hash):
            raise InvalidCredentials("Invalid login credentials")

        account.last_login_at = utcnow()
        db.session.commit()
    return account


def provision_account(email: str, password: str, username: str, role: str) -> Account:
    """
    Create an account with exactly one role.

    Raises:
        ValidationError: malformed email, blank username, weak password, unknown role
        DuplicateAccount: email or username already registered
    """
    email = validate_email(email)
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required")
    if len(username) > 64:
        raise ValidationError("username exceeds max length 64")
    if role not in VALID_ROLES:
        raise ValidationError(f"role must be one of {', '.join(VALID_ROLES)}")

    password_hash = hash_password(password)

    with database_errors("provision account"):
        existing = db.session.query(Account).filter(
            db.or_(Account.email == email, Account.username == username)
        ).first()
        if existing:
            raise DuplicateAccount("User already registered")

        account = Account(email=email, username=username, password_hash=password_hash, role=role)
        db.session.add(account)
        try:
            db.session.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration of the same identity
            db.session.rollback()
            raise DuplicateAccount("User already registered") from exc

    current_app.logger.info("Provisioned %s account %s (%s)", role, account.id, account.username)
    return account


def revoke_account(actor: Account, account_id: int) -> list[int]:
    """
    Delete a cashier account and its sessions in one transaction.

    Only admins may revoke, only cashier accounts can be revoked, and nobody
    can revoke themself. Orders keep the cashier's id and name.
    Returns the ids of the sessions that were removed.
    """
    if actor is None or actor.role != ROLE_ADMIN:
        raise NotPermitted("You do not have permission to delete users")
    if actor.id == account_id:
        raise NotPermitted("You cannot delete your own account")

    with database_errors("revoke account"):
        account = db.session.get(Account, account_id)
        if account is None:
            raise NotFound("User not found")
        if account.role != ROLE_CASHIER:
            raise NotPermitted("Only cashier accounts can be deleted")

        session_ids = [
            row.id for row in db.session.query(SessionToken.id).filter_by(account_id=account.id)
        ]
        db.session.query(SessionToken).filter_by(account_id=account.id).delete()
        db.session.delete(account)
        db.session.commit()

    current_app.logger.info("Revoked cashier account %s by admin %s", account_id, actor.id)
    return session_ids


def list_accounts(role: str | None = None) -> list[Account]:
    with database_errors("list accounts"):
        query = db.session.query(Account)
        if role is not None:
            query = query.filter(Account.role == role)
        return query.order_by(Account.username.asc()).all()


def get_role(account_id: int) -> str | None:
    """Role lookup for a signed-in account; None if the account no longer exists."""
    with database_errors("role lookup"):
        account = db.session.get(Account, account_id)
    return account.role if account else None
