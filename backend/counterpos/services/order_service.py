# Overview: Service-layer operations for orders; append-only ledger and the checkout transaction.

"""
Order Ledger

Orders are append-only: this module creates and lists them and exposes
nothing that updates or deletes one.

record_sale() is the one place checkout touches the database. Writing the
order and decrementing stock happen in a single transaction, and every
decrement is conditional (stock >= quantity). If any line cannot be covered
(another cashier sold the last unit, or the item was deleted) the whole
sale is rolled back and InsufficientStock is raised: no order without its
stock movement, no stock movement without its order.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..errors import InsufficientStock, NotFound
from ..extensions import db
from ..models import Item, Order, OrderLine
from ..money import format_amount, to_cents
from .catalog_service import CatalogStore, get_catalog
from ..time_utils import utcnow
from .concurrency import database_errors, run_with_retry


def _build_order(draft) -> Order:
    order = Order(
        total_cents=to_cents(draft.total),
        amount_tendered_cents=to_cents(draft.amount_tendered),
        change_cents=to_cents(draft.change),
        payment_method=draft.payment_method,
        cashier_id=draft.cashier.id,
        cashier_name=draft.cashier.name,
        created_at=draft.created_at or utcnow(),
    )
    order.lines = [
        OrderLine(
            position=position,
            item_id=line.item_id,
            name=line.name,
            unit_price_cents=to_cents(line.unit_price),
            quantity=line.quantity,
            line_total_cents=to_cents(line.line_total),
        )
        for position, line in enumerate(draft.lines)
    ]
    return order


class OrderLedger:
    def __init__(self, catalog: CatalogStore | None = None):
        self._catalog = catalog

    @property
    def catalog(self) -> CatalogStore:
        return self._catalog or get_catalog()

    def create(self, draft) -> Order:
        """Append an order as-is, without touching stock."""
        with database_errors("create order"):
            order = _build_order(draft)
            db.session.add(order)
            db.session.commit()
        return order

    def record_sale(self, draft) -> Order:
        """Append the order and decrement stock for every line, atomically."""
        def _op():
            order = _build_order(draft)
            db.session.add(order)

            now = utcnow()
            for line in draft.lines:
                result = db.session.execute(
                    update(Item)
                    .where(Item.id == line.item_id, Item.stock >= line.quantity)
                    .values(stock=Item.stock - line.quantity, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    db.session.rollback()
                    raise InsufficientStock(
                        f"Not enough stock for {line.name}",
                        details={"item_id": line.item_id, "requested_quantity": line.quantity},
                    )

            db.session.commit()
            return order

        try:
            with database_errors("record sale"):
                order = run_with_retry(_op)
        finally:
            # Stock figures moved (or were found stale); either way re-fetch.
            self.catalog.invalidate()

        current_app.logger.info(
            "Recorded order %s: %s line(s), total %s, %s by cashier %s",
            order.id, len(order.lines), format_amount(order.total),
            order.payment_method, order.cashier_id,
        )
        return order

    def list(self, cashier_id: int | None = None) -> list[Order]:
        """Orders newest first, optionally only one cashier's."""
        with database_errors("list orders"):
            query = db.session.query(Order)
            if cashier_id is not None:
                query = query.filter(Order.cashier_id == cashier_id)
            return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    def get(self, order_id: int) -> Order:
        with database_errors("get order"):
            order = db.session.get(Order, order_id)
        if order is None:
            raise NotFound("Order not found", details={"order_id": order_id})
        return order


def get_ledger() -> OrderLedger:
    return current_app.extensions["counterpos.ledger"]
