# Overview: Inventory reconciliation rules; pure functions over record snapshots.

"""
Inventory Reconciliation

Nothing in this module reads or writes the database. Callers hand in
snapshots (ORM rows or live-query snapshots, anything with the right
attributes) and get plans back; persisting a plan is the caller's job.

RULES:
- Effective stock of a product is the stock_level of its most recent
  Inventory row (last_updated, then id). Duplicate rows are expected.
- An order line needs a known, sellable product that appears once in the
  order, a positive whole quantity, and no more than the effective stock.
- Stock after a sale is max(0, current - quantity).
- Returnable quantity of an order line is its quantity minus everything
  already returned against it; fully returned lines are dropped.
- Money is rounded to two places (half-up) at every step: line subtotal,
  order total, line refund, refund total.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from ..models.returns import ITEM_CONDITIONS
from ..validation import ValidationError, round2, to_positive_int


ZERO = Decimal("0.00")


class OrderValidationError(ValidationError):
    """Order rejected before any write."""
    pass


class ReturnValidationError(ValidationError):
    """Return rejected before any write."""
    pass


# =============================================================================
# INVENTORY
# =============================================================================

def _recency(row) -> tuple:
    return (row.last_updated or datetime.min, row.id or 0)


def latest_inventory_by_product(rows: Iterable) -> dict:
    """Collapse inventory rows to the most recent one per product."""
    latest: dict = {}
    for row in rows:
        current = latest.get(row.product_id)
        if current is None or _recency(row) > _recency(current):
            latest[row.product_id] = row
    return latest


def effective_stock(latest: dict, product_id: str) -> int:
    row = latest.get(product_id)
    return int(row.stock_level) if row is not None else 0


def stock_after_sale(current: int, quantity: int) -> int:
    return max(0, current - quantity)


# =============================================================================
# ORDER PLANNING
# =============================================================================

@dataclass(frozen=True)
class PlannedOrderLine:
    product_id: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    inventory_id: int | None
    inventory_version: int | None
    current_stock: int
    new_stock: int


@dataclass(frozen=True)
class OrderPlan:
    lines: tuple[PlannedOrderLine, ...]
    total_amount: Decimal


def build_order_plan(lines: list, products: Iterable, inventory_rows: Iterable) -> OrderPlan:
    """
    Validate requested order lines against catalog and stock snapshots.

    lines: [{"product_id": str, "quantity": int}, ...]

    Every problem is collected into details["lines"] so the order form can
    flag all of them at once.
    """
    if not lines:
        raise OrderValidationError("Order has no lines")

    products_by_id = {p.product_id: p for p in products}
    latest = latest_inventory_by_product(inventory_rows)

    errors = []
    seen: set[str] = set()
    planned = []

    for index, raw in enumerate(lines):
        raw = raw if isinstance(raw, dict) else {}
        product_id = str(raw.get("product_id") or "").strip()

        def reject(message: str) -> None:
            errors.append({"line": index, "product_id": product_id or None, "error": message})

        if not product_id:
            reject("product_id is required")
            continue
        if product_id in seen:
            reject(f"Product {product_id} appears on more than one line")
            continue
        seen.add(product_id)

        product = products_by_id.get(product_id)
        if product is None:
            reject(f"Product {product_id} not found")
            continue
        if not product.is_sellable:
            reject(f"Product {product_id} is not sellable")
            continue

        quantity = to_positive_int(raw.get("quantity"))
        if quantity is None:
            reject("quantity must be a positive integer")
            continue

        stock = effective_stock(latest, product_id)
        if quantity > stock:
            reject(f"Only {stock} of {product_id} in stock")
            continue

        unit_price = Decimal(str(product.list_price))
        inv = latest.get(product_id)
        planned.append(
            PlannedOrderLine(
                product_id=product_id,
                quantity=quantity,
                unit_price=unit_price,
                subtotal=round2(unit_price * quantity),
                inventory_id=inv.id if inv is not None else None,
                inventory_version=getattr(inv, "version_id", None) if inv is not None else None,
                current_stock=stock,
                new_stock=stock_after_sale(stock, quantity),
            )
        )

    if errors:
        raise OrderValidationError("Order has invalid lines", details={"lines": errors})

    total = round2(sum((line.subtotal for line in planned), ZERO))
    if total <= 0:
        raise OrderValidationError("Order total must be greater than zero")

    return OrderPlan(lines=tuple(planned), total_amount=total)


# =============================================================================
# RETURNABLE QUANTITIES
# =============================================================================

@dataclass(frozen=True)
class ReturnableLine:
    order_item_id: int
    product_id: str
    quantity: int
    unit_price: Decimal
    returned: int
    max_returnable: int

    def to_dict(self) -> dict:
        return {
            "order_item_id": self.order_item_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": float(self.unit_price),
            "returned": self.returned,
            "max_returnable": self.max_returnable,
        }


def returned_by_order_item(return_items: Iterable) -> dict[int, int]:
    totals: dict[int, int] = {}
    for item in return_items:
        totals[item.order_item_id] = totals.get(item.order_item_id, 0) + int(item.quantity_returned)
    return totals


def build_returnable_lines(order_items: Iterable, return_items: Iterable) -> list[ReturnableLine]:
    """Order lines that still have units left to return, in order-item order."""
    returned = returned_by_order_item(return_items)
    lines = []
    for item in order_items:
        already = returned.get(item.id, 0)
        remaining = int(item.quantity) - already
        if remaining <= 0:
            continue
        lines.append(
            ReturnableLine(
                order_item_id=item.id,
                product_id=item.product_id,
                quantity=int(item.quantity),
                unit_price=Decimal(str(item.unit_price)),
                returned=already,
                max_returnable=remaining,
            )
        )
    return lines


# =============================================================================
# RETURN PLANNING
# =============================================================================

@dataclass(frozen=True)
class PlannedReturnLine:
    order_item_id: int
    product_id: str
    quantity_returned: int
    refund_amount: Decimal
    condition: str


@dataclass(frozen=True)
class ReturnPlan:
    lines: tuple[PlannedReturnLine, ...]
    total_refund: Decimal


def _requested_quantity(value):
    """0 / blank means the line is not part of the return."""
    if value is None or value == 0 or (isinstance(value, str) and value.strip() in ("", "0")):
        return 0
    return to_positive_int(value)


def build_return_plan(returnable_lines: Iterable[ReturnableLine], requests: list) -> ReturnPlan:
    """
    Validate a return form against the current returnable lines.

    requests: [{"order_item_id": int, "quantity_to_return": int, "condition": str}, ...]
    """
    by_item = {line.order_item_id: line for line in returnable_lines}

    errors = []
    seen: set = set()
    planned = []

    for index, raw in enumerate(requests or []):
        raw = raw if isinstance(raw, dict) else {}
        order_item_id = raw.get("order_item_id")

        def reject(message: str) -> None:
            errors.append({"line": index, "order_item_id": order_item_id, "error": message})

        quantity = _requested_quantity(raw.get("quantity_to_return"))
        if quantity == 0:
            continue
        if quantity is None:
            reject("quantity_to_return must be a positive integer")
            continue

        if order_item_id in seen:
            reject(f"Order item {order_item_id} appears more than once")
            continue
        seen.add(order_item_id)

        line = by_item.get(order_item_id)
        if line is None:
            reject(f"Order item {order_item_id} has nothing left to return")
            continue
        if quantity > line.max_returnable:
            reject(f"Cannot return {quantity}; at most {line.max_returnable} can be returned")
            continue

        condition = str(raw.get("condition") or "").strip().lower()
        if condition not in ITEM_CONDITIONS:
            reject(f"condition must be one of: {', '.join(ITEM_CONDITIONS)}")
            continue

        planned.append(
            PlannedReturnLine(
                order_item_id=line.order_item_id,
                product_id=line.product_id,
                quantity_returned=quantity,
                refund_amount=round2(line.unit_price * quantity),
                condition=condition,
            )
        )

    if errors:
        raise ReturnValidationError("Return has invalid lines", details={"lines": errors})

    if not planned:
        raise ReturnValidationError("Select at least one item to return")

    total = round2(sum((line.refund_amount for line in planned), ZERO))
    if total <= 0:
        raise ReturnValidationError("Total refund must be greater than zero")

    return ReturnPlan(lines=tuple(planned), total_refund=total)
