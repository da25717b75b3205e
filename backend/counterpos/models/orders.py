from __future__ import annotations

from ..extensions import db
from counterpos.money import from_cents, format_amount
from counterpos.time_utils import to_utc_z


class Order(db.Model):
    """
    Completed sale. Append-only: nothing in the code base updates or deletes one.

    Cashier identity is denormalized (id + display name) so history survives
    account revocation.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint("payment_method IN ('CASH', 'GCASH')", name="ck_orders_payment_method"),
        db.CheckConstraint("amount_tendered_cents >= total_cents", name="ck_orders_tendered_covers_total"),
        db.CheckConstraint("change_cents = amount_tendered_cents - total_cents", name="ck_orders_change"),
        db.Index("ix_orders_created_at", "created_at"),
        db.Index("ix_orders_cashier_created", "cashier_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # All amounts in cents
    total_cents = db.Column(db.Integer, nullable=False)
    amount_tendered_cents = db.Column(db.Integer, nullable=False)
    change_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)

    cashier_id = db.Column(db.Integer, nullable=True)
    cashier_name = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    lines = db.relationship(
        "OrderLine",
        backref="order",
        lazy="selectin",
        order_by="OrderLine.position",
        cascade="all, delete-orphan",
    )

    @property
    def total(self):
        return from_cents(self.total_cents)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "items": [line.to_dict() for line in self.lines],
            "total": format_amount(from_cents(self.total_cents)),
            "payment_method": self.payment_method,
            "amount_tendered": format_amount(from_cents(self.amount_tendered_cents)),
            "change": format_amount(from_cents(self.change_cents)),
            "cashier_id": self.cashier_id,
            "cashier_name": self.cashier_name,
            "created_at": to_utc_z(self.created_at),
        }


class OrderLine(db.Model):
    """Snapshot of one purchased item; no FK to items so edits never rewrite history."""
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    item_id = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.item_id,
            "name": self.name,
            "price": format_amount(from_cents(self.unit_price_cents)),
            "quantity": self.quantity,
            "line_total": format_amount(from_cents(self.line_total_cents)),
        }
