# Overview: Error kinds shared by the checkout engine, services, routes and API client.

"""
Every failure the system reports belongs to one of these kinds.

Validation kinds (InsufficientStock, InsufficientPayment, EmptyCart) are
raised locally before any database work and leave state untouched.
Collaborator kinds (CollaboratorUnavailable, NotPermitted,
InvalidCredentials, DuplicateAccount) carry the underlying message verbatim.
"""


class PosError(Exception):
    """Base class; `code` and `status` drive the JSON error response."""
    code = "POS_ERROR"
    status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class InsufficientStock(PosError):
    code = "INSUFFICIENT_STOCK"
    status = 400


class InsufficientPayment(PosError):
    code = "INSUFFICIENT_PAYMENT"
    status = 400


class EmptyCart(PosError):
    code = "EMPTY_CART"
    status = 400


class CollaboratorUnavailable(PosError):
    code = "COLLABORATOR_UNAVAILABLE"
    status = 503


class NotPermitted(PosError):
    code = "NOT_PERMITTED"
    status = 403


class InvalidCredentials(PosError):
    code = "INVALID_CREDENTIALS"
    status = 401


class DuplicateAccount(PosError):
    code = "DUPLICATE_ACCOUNT"
    status = 409


class CheckoutStateError(PosError):
    """Operation not allowed in the checkout episode's current state."""
    code = "CHECKOUT_STATE"
    status = 409


class NotFound(PosError):
    code = "NOT_FOUND"
    status = 404


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        InsufficientStock,
        InsufficientPayment,
        EmptyCart,
        CollaboratorUnavailable,
        NotPermitted,
        InvalidCredentials,
        DuplicateAccount,
        CheckoutStateError,
        NotFound,
    )
}
