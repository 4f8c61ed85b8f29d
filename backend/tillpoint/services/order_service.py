"""
Order Service - order entry and order history

WHY: Turns a validated order plan into records. The store has no
multi-record transaction, so submission is a sequential chain:

1. Order header (total already computed by the plan)
2. For each line: OrderItem, then the stock write for that product

A failure on one line is logged and recorded in the result; later lines
still run and nothing already written is undone. Callers inspect
OrderSubmission.failed_lines to see whether the order landed whole.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Order, OrderItem
from ..models.orders import ORDER_STATUS_COMPLETED
from ..time_utils import utcnow, coerce_timestamp
from ..validation import ValidationError
from .reconciliation import OrderPlan, build_order_plan
from .record_store import RecordStoreError, RecordNotFoundError, get_record_store


class OrderError(Exception):
    """Raised for order operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class OrderSubmission:
    order: Order
    items: list = field(default_factory=list)
    failed_lines: list = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_lines

    def to_dict(self) -> dict:
        return {
            "order": self.order.to_dict(),
            "items": [item.to_dict() for item in self.items],
            "failed_lines": self.failed_lines,
            "complete": self.complete,
        }


# =============================================================================
# SUBMISSION
# =============================================================================

def prepare_order(lines: list) -> OrderPlan:
    """Validate lines against fresh product and inventory snapshots. No writes."""
    store = get_record_store()
    return build_order_plan(lines, store.list("Product"), store.list("Inventory"))


def order_number_for(order_id: int) -> str:
    """Generated label for orders submitted without one; ids never repeat."""
    return f"O-{order_id:06d}"


def commit_order_plan(
    plan: OrderPlan,
    *,
    order_number: str | None = None,
    status: str = ORDER_STATUS_COMPLETED,
    order_date=None,
) -> OrderSubmission:
    """
    Persist a validated plan. Per-line write failures do not stop the chain.

    Stock writes are conditional on the inventory version captured in the plan
    when STOCK_CONDITIONAL_WRITES is on, so a sale that raced another terminal
    shows up as a failed line instead of overwriting the other sale's stock.
    """
    store = get_record_store()
    conditional = current_app.config.get("STOCK_CONDITIONAL_WRITES", True)

    try:
        when = coerce_timestamp(order_date) or utcnow()
    except ValueError:
        raise OrderError("order_date must be epoch milliseconds or ISO-8601")

    try:
        order = store.create("Order", {
            "order_number": order_number,
            "order_date": when,
            "total_amount": plan.total_amount,
            "status": status,
        })
    except RecordStoreError as exc:
        current_app.logger.warning("Order header write failed: %s", exc)
        raise OrderError("Failed to create order") from exc

    if not order_number:
        try:
            order = store.update("Order", order.id, {"order_number": order_number_for(order.id)})
        except RecordStoreError as exc:
            # The order stays reachable by id
            current_app.logger.warning("Order %s: numbering failed: %s", order.id, exc)

    submission = OrderSubmission(order=order)

    for line in plan.lines:
        try:
            item = store.create("OrderItem", {
                "order_id": order.id,
                "product_id": line.product_id,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
                "subtotal": line.subtotal,
            })
        except RecordStoreError as exc:
            current_app.logger.warning(
                "Order %s: item write for %s failed: %s", order.id, line.product_id, exc
            )
            submission.failed_lines.append({
                "product_id": line.product_id,
                "step": "order_item",
                "error": str(exc),
            })
            continue
        submission.items.append(item)

        if line.inventory_id is None:
            continue

        try:
            store.update(
                "Inventory",
                line.inventory_id,
                {"stock_level": line.new_stock, "last_updated": utcnow()},
                expected_version=line.inventory_version if conditional else None,
            )
        except (RecordStoreError, RecordNotFoundError) as exc:
            current_app.logger.warning(
                "Order %s: stock write for %s failed: %s", order.id, line.product_id, exc
            )
            submission.failed_lines.append({
                "product_id": line.product_id,
                "step": "inventory",
                "error": str(exc),
            })

    current_app.logger.info(
        "Order %s submitted: %d lines, total %s, %d failed",
        order.order_number, len(submission.items), plan.total_amount, len(submission.failed_lines),
    )
    return submission


def submit_order(
    lines: list,
    *,
    order_number: str | None = None,
    status: str = ORDER_STATUS_COMPLETED,
    order_date=None,
) -> OrderSubmission:
    plan = prepare_order(lines)
    return commit_order_plan(plan, order_number=order_number, status=status, order_date=order_date)


# =============================================================================
# HISTORY
# =============================================================================

def get_order(order_id: int) -> Order:
    order = get_record_store().get("Order", order_id)
    if order is None:
        raise RecordNotFoundError("Order not found")
    return order


def get_order_detail(order_id: int) -> dict:
    store = get_record_store()
    order = get_order(order_id)
    items = store.list("OrderItem", {"order_id": order.id})
    returns = store.list("Return", {"order_id": order.id})
    return {
        "order": order.to_dict(),
        "items": [item.to_dict() for item in items],
        "returns": [r.to_dict() for r in returns],
    }


def list_orders(
    *,
    status: str | None = None,
    start=None,
    end=None,
    limit: int | None = None,
) -> list[Order]:
    """Newest first. start/end are inclusive and accept epoch ms or ISO-8601."""
    try:
        start_dt = coerce_timestamp(start)
        end_dt = coerce_timestamp(end)
    except ValueError:
        raise ValidationError("start/end must be epoch milliseconds or ISO-8601")

    query = db.session.query(Order)
    if status:
        query = query.filter(db.func.lower(Order.status) == status.strip().lower())
    if start_dt:
        query = query.filter(Order.order_date >= start_dt)
    if end_dt:
        query = query.filter(Order.order_date <= end_dt)
    query = query.order_by(Order.order_date.desc(), Order.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def wildcard_to_like(pattern: str) -> str:
    """
    Translate an order-number search into a LIKE pattern (escape char '\\').

    '*' matches any run of characters and '?' exactly one. Without either
    wildcard the pattern matches anywhere in the order number.
    """
    escaped = re.sub(r"([\\%_])", r"\\\1", pattern)
    if "*" not in pattern and "?" not in pattern:
        return f"%{escaped}%"
    return escaped.replace("*", "%").replace("?", "_")


def search_orders(pattern: str, limit: int | None = 100) -> list[Order]:
    pattern = (pattern or "").strip()
    if not pattern:
        raise ValidationError("Search pattern is required")

    like = wildcard_to_like(pattern)
    conditions = [Order.order_number.ilike(like, escape="\\")]
    # Bare numbers also match the order id
    if pattern.isdigit():
        conditions.append(Order.id == int(pattern))

    query = db.session.query(Order).filter(or_(*conditions)).order_by(
        Order.order_date.desc(), Order.id.desc()
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def update_order_status(order_id: int, status: str) -> Order:
    status = status.strip().lower() if isinstance(status, str) else ""
    if not status:
        raise ValidationError("status is required")
    if len(status) > Order.__table__.c.status.type.length:
        raise ValidationError("status is too long")
    get_order(order_id)
    return get_record_store().update("Order", order_id, {"status": status})
