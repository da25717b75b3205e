"""
Fixed-point money helpers.

Amounts are Decimal quantized to centavos in the domain and in JSON
(serialized as strings, e.g. "25.50"), and integer cents in the database.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Maximum price: 9,999,999.99
MAX_AMOUNT = Decimal("9999999.99")


def parse_amount(value, field: str = "amount") -> Decimal:
    """
    Parse user input into a 2-place Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not the binary
    expansion. Booleans, blanks and more than two fraction digits are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{field} must be a number")
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError(f"{field} must be a number")
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValueError(f"{field} must be a number")
    if abs(amount) > MAX_AMOUNT:
        raise ValueError(f"{field} cannot exceed {MAX_AMOUNT:,}")
    if amount != amount.quantize(CENT):
        raise ValueError(f"{field} cannot have more than 2 decimal places")
    return amount.quantize(CENT)


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(amount: Decimal) -> int:
    return int(quantize(amount) * 100)


def from_cents(cents: int | None) -> Decimal:
    if cents is None:
        return ZERO
    return (Decimal(cents) / 100).quantize(CENT)


def format_amount(amount: Decimal) -> str:
    return str(quantize(amount))
