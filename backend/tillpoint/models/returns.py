from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_epoch_ms
from .catalog import _money


RETURN_STATUS_PENDING = "pending"
RETURN_STATUS_APPROVED = "approved"
RETURN_STATUS_REFUNDED = "refunded"
RETURN_STATUS_REJECTED = "rejected"

ITEM_CONDITIONS = ("new", "used", "damaged")


class Return(db.Model):
    """
    Product return document.

    LIFECYCLE:
    1. pending: created from the return form
    2. approved / rejected: manager decision
    3. refunded: money handed back (approved returns only)

    No status change restores inventory. Returned units leave stock tracking.
    """
    __tablename__ = "returns"
    __table_args__ = (
        db.Index("ix_returns_order_status", "order_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    return_date = db.Column(db.DateTime(timezone=True), nullable=False)
    total_refund_amount = db.Column(db.Numeric(12, 2), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=RETURN_STATUS_PENDING, index=True)
    reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    order = db.relationship("Order", backref=db.backref("returns", lazy=True))
    items = db.relationship("ReturnItem", back_populates="return_doc", lazy=True, order_by="ReturnItem.id")

    def __repr__(self) -> str:
        return f"<Return id={self.id} order_id={self.order_id} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "return_date": to_utc_z(self.return_date),
            "return_date_ms": to_epoch_ms(self.return_date),
            "total_refund_amount": _money(self.total_refund_amount),
            "status": self.status,
            "reason": self.reason,
        }


class ReturnItem(db.Model):
    """
    One returned order line.

    Sum of quantity_returned across all ReturnItems of an OrderItem never
    exceeds OrderItem.quantity; the return service checks this before writing.
    """
    __tablename__ = "return_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.Integer, db.ForeignKey("returns.id"), nullable=False, index=True)
    order_item_id = db.Column(db.Integer, db.ForeignKey("order_items.id"), nullable=False, index=True)

    # Denormalized for easier queries
    product_id = db.Column(db.String(64), db.ForeignKey("products.product_id"), nullable=False)

    quantity_returned = db.Column(db.Integer, nullable=False)
    refund_amount = db.Column(db.Numeric(12, 2), nullable=False)
    condition = db.Column(db.String(16), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    return_doc = db.relationship("Return", back_populates="items")
    order_item = db.relationship("OrderItem")

    def __repr__(self) -> str:
        return f"<ReturnItem id={self.id} order_item_id={self.order_item_id} qty={self.quantity_returned}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "order_item_id": self.order_item_id,
            "product_id": self.product_id,
            "quantity_returned": self.quantity_returned,
            "refund_amount": _money(self.refund_amount),
            "condition": self.condition,
        }
