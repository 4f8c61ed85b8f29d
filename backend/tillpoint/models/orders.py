from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_epoch_ms
from .catalog import _money


ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_COMPLETED = "completed"
ORDER_STATUS_CANCELLED = "cancelled"


class Order(db.Model):
    """
    Order header.

    total_amount is the sum of the order's line subtotals, each rounded to two
    places independently. status is free text; only "completed" (any case)
    counts towards sales figures.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_date", "status", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), nullable=True, index=True)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    total_amount = db.Column(db.Numeric(12, 2), nullable=True)
    status = db.Column(db.String(32), nullable=True, default=ORDER_STATUS_COMPLETED)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship("OrderItem", back_populates="order", lazy=True, order_by="OrderItem.id")

    def __repr__(self) -> str:
        return f"<Order id={self.id} order_number={self.order_number!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "order_date": to_utc_z(self.order_date),
            "order_date_ms": to_epoch_ms(self.order_date),
            "total_amount": _money(self.total_amount),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class OrderItem(db.Model):
    """Order line. Immutable once written."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.String(64), db.ForeignKey("products.product_id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 4), nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<OrderItem id={self.id} order_id={self.order_id} product_id={self.product_id!r} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": _money(self.unit_price),
            "subtotal": _money(self.subtotal),
        }
