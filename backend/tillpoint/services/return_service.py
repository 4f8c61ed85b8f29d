"""
Return Processing Service

WHY: A return form shows each order line with how many units can still
come back. That number is derived, never stored: line quantity minus
everything already returned against the line.

DESIGN PRINCIPLES:
- Returnable quantities are rebuilt from fresh reads before every
  submission, so a stale form cannot over-return
- A request is validated in full before the first write
- One Return header (pending), then one ReturnItem per included line
- Inventory is NOT restored by returns or by any return status change

LIFECYCLE:
1. pending - created from the return form
2. approved / rejected - manager decision
3. refunded - refund issued (approved returns only)
"""

from __future__ import annotations

from flask import current_app

from ..models.returns import (
    RETURN_STATUS_PENDING,
    RETURN_STATUS_APPROVED,
    RETURN_STATUS_REFUNDED,
    RETURN_STATUS_REJECTED,
)
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError
from .reconciliation import ReturnableLine, build_returnable_lines, build_return_plan
from .record_store import RecordStoreError, RecordNotFoundError, get_record_store


class ReturnError(Exception):
    """Raised when a return write fails part-way."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


# Allowed status transitions
RETURN_TRANSITIONS = {
    RETURN_STATUS_PENDING: {RETURN_STATUS_APPROVED, RETURN_STATUS_REJECTED},
    RETURN_STATUS_APPROVED: {RETURN_STATUS_REFUNDED},
    RETURN_STATUS_REFUNDED: set(),
    RETURN_STATUS_REJECTED: set(),
}


# =============================================================================
# RETURNABLE QUANTITIES
# =============================================================================

def get_returnable_lines(order_id: int) -> list[ReturnableLine]:
    """
    Fetch the order, its items, its returns and each return's items
    (one query per return), then derive what is still returnable.
    """
    store = get_record_store()
    order = store.get("Order", order_id)
    if order is None:
        raise RecordNotFoundError("Order not found")

    order_items = store.list("OrderItem", {"order_id": order.id})
    returns = store.list("Return", {"order_id": order.id})

    return_items = []
    for return_doc in returns:
        return_items.extend(store.list("ReturnItem", {"return_id": return_doc.id}))

    return build_returnable_lines(order_items, return_items)


def get_return_form(order_id: int) -> dict:
    order = get_record_store().get("Order", order_id)
    if order is None:
        raise RecordNotFoundError("Order not found")
    lines = get_returnable_lines(order_id)
    return {
        "order": order.to_dict(),
        "lines": [line.to_dict() for line in lines],
    }


# =============================================================================
# SUBMISSION
# =============================================================================

def submit_return(order_id: int, requests: list, reason: str | None = None) -> dict:
    """
    Validate and write a return.

    Raises:
        RecordNotFoundError: order does not exist
        ReturnValidationError: nothing written
        ReturnError: header or an item write failed (earlier writes stay)
    """
    store = get_record_store()

    returnable = get_returnable_lines(order_id)
    plan = build_return_plan(returnable, requests)

    try:
        return_doc = store.create("Return", {
            "order_id": order_id,
            "return_date": utcnow(),
            "total_refund_amount": plan.total_refund,
            "status": RETURN_STATUS_PENDING,
            "reason": (reason or "").strip() or None,
        })
    except RecordStoreError as exc:
        current_app.logger.warning("Return header write for order %s failed: %s", order_id, exc)
        raise ReturnError("Failed to create return") from exc

    items = []
    for line in plan.lines:
        try:
            items.append(store.create("ReturnItem", {
                "return_id": return_doc.id,
                "order_item_id": line.order_item_id,
                "product_id": line.product_id,
                "quantity_returned": line.quantity_returned,
                "refund_amount": line.refund_amount,
                "condition": line.condition,
            }))
        except RecordStoreError as exc:
            current_app.logger.warning(
                "Return %s: item write for order item %s failed: %s",
                return_doc.id, line.order_item_id, exc,
            )
            raise ReturnError(
                "Failed to create return item",
                details={"return_id": return_doc.id, "order_item_id": line.order_item_id},
            ) from exc

    current_app.logger.info(
        "Return %s for order %s: %d lines, refund %s",
        return_doc.id, order_id, len(items), plan.total_refund,
    )

    return {
        "return": return_doc.to_dict(),
        "items": [item.to_dict() for item in items],
        "returnable": [line.to_dict() for line in get_returnable_lines(order_id)],
    }


# =============================================================================
# STATUS
# =============================================================================

def set_return_status(return_id: int, status: str):
    """Move a return through its lifecycle. Never touches inventory."""
    store = get_record_store()
    return_doc = store.get("Return", return_id)
    if return_doc is None:
        raise RecordNotFoundError("Return not found")

    status = status.strip().lower() if isinstance(status, str) else ""
    if status not in RETURN_TRANSITIONS:
        raise ValidationError(f"Unknown return status: {status}")

    allowed = RETURN_TRANSITIONS.get(return_doc.status, set())
    if status not in allowed:
        raise ConflictError(f"Cannot move return {return_id} from {return_doc.status} to {status}")

    return store.update("Return", return_id, {"status": status})


# =============================================================================
# QUERIES
# =============================================================================

def list_returns(order_id: int | None = None, status: str | None = None) -> list:
    filters = {}
    if order_id is not None:
        filters["order_id"] = order_id
    if status:
        filters["status"] = status.strip().lower()
    return get_record_store().list("Return", filters)


def get_return_detail(return_id: int) -> dict:
    store = get_record_store()
    return_doc = store.get("Return", return_id)
    if return_doc is None:
        raise RecordNotFoundError("Return not found")
    return {
        "return": return_doc.to_dict(),
        "items": [item.to_dict() for item in store.list("ReturnItem", {"return_id": return_id})],
    }
