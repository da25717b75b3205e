from __future__ import annotations

from ..extensions import db
from counterpos.money import from_cents, format_amount
from counterpos.time_utils import to_utc_z


class Item(db.Model):
    """
    Sellable catalog item.

    Stock is decremented by checkout commits; the CHECK constraint is the
    authoritative non-negative guard when two cashiers race on the last unit.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_items_stock_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_items_price_non_negative"),
        db.Index("ix_items_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    category = db.Column(db.String(64), nullable=False, default="")

    # All money stored as integer cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def price(self):
        return from_cents(self.price_cents)

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": format_amount(self.price),
            "stock": self.stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
        }
