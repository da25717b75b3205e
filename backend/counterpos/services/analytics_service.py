# Overview: Dashboard and analytics figures folded from already-fetched items and orders.

"""
Pure functions: they take whatever collections the caller already fetched
(ItemRecord / Order rows, or anything with the same attributes) and never
touch the database.

Orders need `total` and `lines` (each with `name` and `quantity`).
Items need `id`, `name` and `stock`.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from ..money import ZERO, format_amount, quantize

LOW_STOCK_THRESHOLD = 10
TOP_ITEMS_LIMIT = 5


def total_sales(orders: Iterable) -> Decimal:
    return quantize(sum((Decimal(order.total) for order in orders), ZERO))


def average_order_value(orders: Sequence) -> Decimal:
    if not orders:
        return ZERO
    return quantize(total_sales(orders) / len(orders))


def top_selling_items(orders: Iterable, limit: int = TOP_ITEMS_LIMIT) -> list[tuple[str, int]]:
    """
    Quantities summed by item name, highest first.

    Ties keep the order in which names were first seen (sorted() is stable).
    """
    counts: dict[str, int] = {}
    for order in orders:
        for line in order.lines:
            counts[line.name] = counts.get(line.name, 0) + line.quantity
    ranked = sorted(counts.items(), key=lambda pair: pair[1], reverse=True)
    return ranked[:limit]


def low_stock_items(items: Iterable, threshold: int = LOW_STOCK_THRESHOLD) -> list:
    """Items with stock strictly below threshold, lowest stock first."""
    low = [item for item in items if item.stock < threshold]
    return sorted(low, key=lambda item: (item.stock, item.name))


def low_stock_count(items: Iterable, threshold: int = LOW_STOCK_THRESHOLD) -> int:
    return len(low_stock_items(items, threshold))


def dashboard_summary(items: Sequence, orders: Sequence, threshold: int = LOW_STOCK_THRESHOLD) -> dict:
    return {
        "total_items": len(items),
        "total_orders": len(orders),
        "total_revenue": format_amount(total_sales(orders)),
        "low_stock_items": low_stock_count(items, threshold),
        "low_stock_threshold": threshold,
    }


def analytics_summary(items: Sequence, orders: Sequence, threshold: int = LOW_STOCK_THRESHOLD) -> dict:
    return {
        "total_sales": format_amount(total_sales(orders)),
        "total_orders": len(orders),
        "average_order_value": format_amount(average_order_value(orders)),
        "top_items": [
            {"name": name, "quantity": quantity}
            for name, quantity in top_selling_items(orders)
        ],
        "low_stock_items": [
            {"id": item.id, "name": item.name, "stock": item.stock}
            for item in low_stock_items(items, threshold)
        ],
        "low_stock_threshold": threshold,
    }
