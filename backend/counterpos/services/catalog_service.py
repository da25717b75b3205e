# backend/counterpos/services/catalog_service.py
"""
Catalog Store

Read/write access to the item catalog. Reads are served from a snapshot of
the whole catalog (ordered by name) that is dropped whenever anything
changes: item create/update/delete here, and stock decrements at checkout
(OrderLedger.record_sale calls invalidate()). The snapshot is never patched
in place; the next list() re-fetches.

Failures roll back, leave the snapshot as it was, and surface the database
message through CollaboratorUnavailable.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..errors import NotFound
from ..extensions import db
from ..models import Item
from ..money import format_amount, from_cents
from .concurrency import database_errors
from counterpos.time_utils import to_utc_z, utcnow

ITEM_MUTABLE_FIELDS = {"name", "category", "price_cents", "stock"}

ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class ItemRecord:
    """Detached, immutable copy of an Item row."""
    id: int
    name: str
    category: str
    price: Decimal
    stock: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, item: Item) -> "ItemRecord":
        return cls(
            id=item.id,
            name=item.name,
            category=item.category or "",
            price=from_cents(item.price_cents),
            stock=item.stock,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )

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


def apply_item_patch(item: Item, patch: dict) -> None:
    for k, v in patch.items():
        if k not in ITEM_MUTABLE_FIELDS:
            continue
        setattr(item, k, v)


class CatalogStore:
    def __init__(self):
        self._snapshot: tuple[ItemRecord, ...] | None = None
        self._version = 0
        self._lock = threading.Lock()

    def init_app(self, app) -> None:
        app.extensions["counterpos.catalog"] = self

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    @property
    def version(self) -> int:
        """Bumped on every invalidation."""
        return self._version

    @property
    def is_cached(self) -> bool:
        return self._snapshot is not None

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = None
            self._version += 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self) -> list[ItemRecord]:
        with self._lock:
            snapshot = self._snapshot
            version = self._version
        if snapshot is not None:
            return list(snapshot)

        with database_errors("list items"):
            rows = db.session.query(Item).order_by(Item.name.asc(), Item.id.asc()).all()
        snapshot = tuple(ItemRecord.from_model(row) for row in rows)

        with self._lock:
            # An invalidation that raced this fetch wins; keep serving fresh reads.
            if self._version == version:
                self._snapshot = snapshot
        return list(snapshot)

    def get(self, item_id: int) -> ItemRecord:
        for record in self.list():
            if record.id == item_id:
                return record
        raise NotFound("Item not found", details={"item_id": item_id})

    def categories(self) -> list[str]:
        seen: dict[str, None] = {}
        for record in self.list():
            seen.setdefault(record.category, None)
        return list(seen)

    def search(self, query: str | None = None, category: str | None = None) -> list[ItemRecord]:
        """Case-insensitive match on name or category, optionally within one category."""
        needle = (query or "").strip().lower()
        results = []
        for record in self.list():
            if category and category != ALL_CATEGORIES and record.category != category:
                continue
            if needle and needle not in record.name.lower() and needle not in record.category.lower():
                continue
            results.append(record)
        return results

    def offerable(self, query: str | None = None, category: str | None = None) -> list[ItemRecord]:
        """Items a cashier may put in a cart: in stock, name matches the query."""
        needle = (query or "").strip().lower()
        return [
            record for record in self.search(category=category)
            if record.stock > 0 and needle in record.name.lower()
        ]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, patch: dict) -> ItemRecord:
        """Create an item from a validated patch dict."""
        item = Item(category="", price_cents=0, stock=0)
        apply_item_patch(item, patch)

        with database_errors("create item"):
            db.session.add(item)
            db.session.commit()
            record = ItemRecord.from_model(item)

        self.invalidate()
        current_app.logger.info("Created item %s (%s)", record.id, record.name)
        return record

    def update(self, item_id: int, patch: dict) -> ItemRecord:
        with database_errors("update item"):
            item = db.session.get(Item, item_id)
            if item is None:
                raise NotFound("Item not found", details={"item_id": item_id})
            apply_item_patch(item, patch)
            item.updated_at = utcnow()
            db.session.commit()
            record = ItemRecord.from_model(item)

        self.invalidate()
        current_app.logger.info("Updated item %s", item_id)
        return record

    def delete(self, item_id: int) -> None:
        with database_errors("delete item"):
            item = db.session.get(Item, item_id)
            if item is None:
                raise NotFound("Item not found", details={"item_id": item_id})
            db.session.delete(item)
            db.session.commit()

        self.invalidate()
        current_app.logger.info("Deleted item %s", item_id)


def get_catalog() -> CatalogStore:
    return current_app.extensions["counterpos.catalog"]
