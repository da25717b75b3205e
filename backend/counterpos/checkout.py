# Overview: In-memory cart and checkout state machine for one cashier.

"""
Cart & Checkout Engine

One engine owns one cashier's checkout episodes:

    EMPTY -> BUILDING -> READY_FOR_PAYMENT -> COMMITTING -> COMMITTED | FAILED

Validation (stock ceilings, empty cart, short payment) happens locally and
rejects the call with the cart untouched. Persistence is delegated to a
recorder object exposing ``record_sale(draft) -> order``, which must write the
order and the stock decrements in a single transaction (see
``services.order_service.OrderLedger.record_sale``).

Stock figures held here are advisory snapshots of what the catalog said when
the item was added; the recorder performs the authoritative check.
"""
from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable

from .errors import CheckoutStateError, EmptyCart, InsufficientPayment, InsufficientStock, NotFound
from .money import ZERO, format_amount, parse_amount, quantize
from .time_utils import utcnow

logger = logging.getLogger(__name__)

PAYMENT_CASH = "CASH"
PAYMENT_GCASH = "GCASH"
VALID_PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_GCASH)


class CheckoutState(str, enum.Enum):
    EMPTY = "EMPTY"
    BUILDING = "BUILDING"
    READY_FOR_PAYMENT = "READY_FOR_PAYMENT"
    COMMITTING = "COMMITTING"
    COMMITTED = "COMMITTED"
    FAILED = "FAILED"


# States in which the cart may be edited
_EDITABLE = {
    CheckoutState.EMPTY,
    CheckoutState.BUILDING,
    CheckoutState.COMMITTED,
    CheckoutState.FAILED,
}


@dataclass(frozen=True)
class Cashier:
    id: int | None
    name: str


@dataclass
class CartLine:
    item_id: int
    name: str
    unit_price: Decimal
    stock: int
    quantity: int = 1

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "name": self.name,
            "price": format_amount(self.unit_price),
            "stock": self.stock,
            "quantity": self.quantity,
            "line_total": format_amount(self.line_total),
        }


@dataclass(frozen=True)
class OrderLineDraft:
    item_id: int
    name: str
    unit_price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class OrderDraft:
    """Immutable snapshot handed to the recorder at commit."""
    lines: tuple[OrderLineDraft, ...]
    total: Decimal
    payment_method: str
    amount_tendered: Decimal
    change: Decimal
    cashier: Cashier
    created_at: datetime = field(default_factory=utcnow)


def _item_price(item) -> Decimal:
    price = item.price
    if not isinstance(price, Decimal):
        price = parse_amount(price, "price")
    return quantize(price)


class CheckoutEngine:
    def __init__(self, cashier: Cashier, recorder, clock: Callable[[], datetime] = utcnow):
        self.cashier = cashier
        self._recorder = recorder
        self._clock = clock
        self._lines: dict[int, CartLine] = {}
        self._state = CheckoutState.EMPTY
        self._lock = threading.RLock()
        self.last_error: str | None = None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def lines(self) -> list[CartLine]:
        with self._lock:
            return [CartLine(**vars(line)) for line in self._lines.values()]

    def quantity_of(self, item_id: int) -> int:
        line = self._lines.get(item_id)
        return line.quantity if line else 0

    def compute_total(self) -> Decimal:
        with self._lock:
            total = sum((line.line_total for line in self._lines.values()), ZERO)
        return quantize(total)

    def quote(self, amount_tendered) -> dict:
        tendered = parse_amount(amount_tendered, "amount_tendered")
        total = self.compute_total()
        change = tendered - total
        return {
            "total": format_amount(total),
            "amount_tendered": format_amount(tendered),
            "change": format_amount(change),
            "sufficient": change >= ZERO,
        }

    def snapshot(self) -> dict:
        with self._lock:
            lines = [line.to_dict() for line in self._lines.values()]
            return {
                "state": self._state.value,
                "items": lines,
                "item_count": sum(line["quantity"] for line in lines),
                "total": format_amount(self.compute_total()),
                "last_error": self.last_error,
            }

    # ------------------------------------------------------------------
    # Cart mutations
    # ------------------------------------------------------------------

    def _require_editable(self) -> None:
        if self._state not in _EDITABLE:
            raise CheckoutStateError(
                f"Cart cannot be changed while checkout is {self._state.value}",
                details={"state": self._state.value},
            )

    def _settle(self) -> None:
        self._state = CheckoutState.BUILDING if self._lines else CheckoutState.EMPTY
        if self._state == CheckoutState.EMPTY:
            self.last_error = None

    def add_item(self, item) -> CartLine:
        """
        Add one unit of ``item`` (anything with id, name, price, stock).

        Raises InsufficientStock if the cart already holds every known unit.
        """
        with self._lock:
            self._require_editable()
            stock = int(item.stock)
            existing = self._lines.get(item.id)

            if existing is None:
                if stock <= 0:
                    raise InsufficientStock(
                        f"{item.name} is out of stock",
                        details={"item_id": item.id, "stock": stock, "requested_quantity": 1},
                    )
                line = CartLine(
                    item_id=item.id,
                    name=item.name,
                    unit_price=_item_price(item),
                    stock=stock,
                )
                self._lines[item.id] = line
            else:
                if existing.quantity + 1 > stock:
                    raise InsufficientStock(
                        "Not enough stock",
                        details={
                            "item_id": item.id,
                            "stock": stock,
                            "requested_quantity": existing.quantity + 1,
                        },
                    )
                unit_price = _item_price(item)
                existing.quantity += 1
                existing.stock = stock
                existing.name = item.name
                existing.unit_price = unit_price
                line = existing

            self._settle()
            return CartLine(**vars(line))

    def set_quantity(self, item_id: int, delta: int) -> CartLine:
        """
        Nudge a line's quantity up or down by one (``delta`` is +1 or -1).

        A result of zero or less is ignored; removal is explicit.
        """
        if isinstance(delta, bool) or not isinstance(delta, int) or delta not in (1, -1):
            raise ValueError("delta must be 1 or -1")

        with self._lock:
            self._require_editable()
            line = self._lines.get(item_id)
            if line is None:
                raise NotFound("Item is not in the cart", details={"item_id": item_id})

            new_quantity = line.quantity + delta
            if new_quantity > line.stock:
                raise InsufficientStock(
                    "Not enough stock",
                    details={"item_id": item_id, "stock": line.stock, "requested_quantity": new_quantity},
                )
            if new_quantity > 0:
                line.quantity = new_quantity

            self._settle()
            return CartLine(**vars(line))

    def remove_item(self, item_id: int) -> None:
        with self._lock:
            self._require_editable()
            self._lines.pop(item_id, None)
            self._settle()

    def clear(self) -> None:
        """Discard the cart (explicit cancellation)."""
        with self._lock:
            if self._state == CheckoutState.COMMITTING:
                raise CheckoutStateError("Cannot clear the cart while a commit is in flight")
            self._lines.clear()
            self._state = CheckoutState.EMPTY
            self.last_error = None

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def begin_checkout(self) -> Decimal:
        with self._lock:
            if not self._lines:
                raise EmptyCart("Cart is empty")
            if self._state not in (CheckoutState.BUILDING, CheckoutState.READY_FOR_PAYMENT, CheckoutState.FAILED):
                raise CheckoutStateError(
                    f"Cannot begin checkout while {self._state.value}",
                    details={"state": self._state.value},
                )
            self._state = CheckoutState.READY_FOR_PAYMENT
            return self.compute_total()

    def cancel_checkout(self) -> None:
        """Close the payment step and go back to editing; the cart is kept."""
        with self._lock:
            if self._state not in (CheckoutState.READY_FOR_PAYMENT, CheckoutState.FAILED):
                raise CheckoutStateError(
                    f"No checkout to cancel while {self._state.value}",
                    details={"state": self._state.value},
                )
            self._settle()

    def commit(self, payment_method: str, amount_tendered):
        """
        Persist the cart as an order and decrement stock.

        Success -> COMMITTED with an emptied cart; recorder failure -> FAILED
        with the cart kept for a retry. The recorder's exception propagates.
        """
        with self._lock:
            if self._state not in (CheckoutState.READY_FOR_PAYMENT, CheckoutState.FAILED):
                raise CheckoutStateError(
                    f"Cannot commit while {self._state.value}",
                    details={"state": self._state.value},
                )
            if not self._lines:
                raise EmptyCart("Cart is empty")

            method = (payment_method or "").strip().upper()
            if method not in VALID_PAYMENT_METHODS:
                raise ValueError(f"payment_method must be one of {', '.join(VALID_PAYMENT_METHODS)}")

            tendered = parse_amount(amount_tendered, "amount_tendered")
            total = self.compute_total()
            if tendered < total:
                raise InsufficientPayment(
                    "Insufficient payment",
                    details={"total": format_amount(total), "amount_tendered": format_amount(tendered)},
                )

            draft = OrderDraft(
                lines=tuple(
                    OrderLineDraft(
                        item_id=line.item_id,
                        name=line.name,
                        unit_price=line.unit_price,
                        quantity=line.quantity,
                    )
                    for line in self._lines.values()
                ),
                total=total,
                payment_method=method,
                amount_tendered=tendered,
                change=tendered - total,
                cashier=self.cashier,
                created_at=self._clock(),
            )
            self._state = CheckoutState.COMMITTING

        # The lock is released while the recorder runs so that a second
        # commit sees COMMITTING and is rejected instead of queued.
        try:
            order = self._recorder.record_sale(draft)
        except Exception as exc:
            with self._lock:
                self._state = CheckoutState.FAILED
                self.last_error = str(exc)
            logger.warning("Checkout failed for cashier %s: %s", self.cashier.id, exc)
            raise

        with self._lock:
            self._lines.clear()
            self._state = CheckoutState.COMMITTED
            self.last_error = None
        logger.info(
            "Checkout committed for cashier %s: total=%s method=%s",
            self.cashier.id, format_amount(draft.total), draft.payment_method,
        )
        return order
