# Overview: Sales aggregation for the dashboard; totals, profit and hourly buckets.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from flask import current_app

from ..models.orders import ORDER_STATUS_COMPLETED
from ..time_utils import local_day_bounds, to_local
from ..validation import round2
from .reconciliation import latest_inventory_by_product
from .notes_service import get_note
from .record_store import get_record_store


ZERO = Decimal("0.00")
HOURS_PER_DAY = 24


@dataclass(frozen=True)
class SalesSummary:
    total_sales: Decimal
    total_orders: int
    average_order_value: Decimal
    total_profit: Decimal

    def to_dict(self) -> dict:
        return {
            "total_sales": float(self.total_sales),
            "total_orders": self.total_orders,
            "average_order_value": float(self.average_order_value),
            "total_profit": float(self.total_profit),
        }


def is_completed(order) -> bool:
    return (order.status or "").strip().lower() == ORDER_STATUS_COMPLETED


def completed_orders(orders: Iterable, day: date | None = None, tz: str = "UTC") -> list:
    """Completed orders, optionally restricted to one local calendar day."""
    selected = [o for o in orders if is_completed(o)]
    if day is None:
        return selected
    start, end = local_day_bounds(day, tz)
    return [o for o in selected if start <= o.order_date < end]


def summarize_sales(
    orders: Iterable,
    order_items: Iterable,
    inventory_rows: Iterable,
    day: date | None = None,
    tz: str = "UTC",
) -> SalesSummary:
    """
    Totals over completed orders (one local day, or all time when day is None).

    Profit uses the latest inventory purchase_price per product, not the cost
    at the time of sale. A product with no cost basis counts as zero cost.
    """
    selected = completed_orders(orders, day, tz)
    order_ids = {o.id for o in selected}

    total_sales = round2(sum((Decimal(str(o.total_amount or 0)) for o in selected), ZERO))
    total_orders = len(selected)
    average = round2(total_sales / total_orders) if total_orders else ZERO

    latest = latest_inventory_by_product(inventory_rows)
    profit = ZERO
    for item in order_items:
        if item.order_id not in order_ids:
            continue
        inv = latest.get(item.product_id)
        cost = Decimal(str(inv.purchase_price)) if inv is not None and inv.purchase_price is not None else ZERO
        profit += round2((Decimal(str(item.unit_price)) - cost) * int(item.quantity))

    return SalesSummary(
        total_sales=total_sales,
        total_orders=total_orders,
        average_order_value=average,
        total_profit=round2(profit),
    )


def hourly_sales(orders: Iterable, day: date, tz: str = "UTC") -> list[dict]:
    """
    Dense 24-bucket series for one local day: hours with no sales are 0.

    On DST transition days a local hour can repeat or vanish; sales are
    bucketed by the wall-clock hour they happened in.
    """
    buckets = [ZERO] * HOURS_PER_DAY
    for order in completed_orders(orders, day, tz):
        hour = to_local(order.order_date, tz).hour
        buckets[hour] += Decimal(str(order.total_amount or 0))

    return [
        {"hour": hour, "label": f"{hour:02d}:00", "total_sales": float(round2(amount))}
        for hour, amount in enumerate(buckets)
    ]


def get_dashboard(day: date | None = None) -> dict:
    """Summary, hourly series and the day's note, read through the record store."""
    store = get_record_store()
    tz = current_app.config.get("STORE_TIMEZONE", "UTC")

    orders = store.list("Order")
    items = store.list("OrderItem")
    inventory = store.list("Inventory")

    summary = summarize_sales(orders, items, inventory, day=day, tz=tz)
    result = {
        "date": day.isoformat() if day else None,
        "timezone": tz,
        "summary": summary.to_dict(),
    }
    if day is not None:
        note = get_note(day.isoformat())
        result["hourly"] = hourly_sales(orders, day, tz)
        result["note"] = note.to_dict() if note else None
    return result
