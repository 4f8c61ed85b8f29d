from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_epoch_ms


def _money(value):
    return float(value) if value is not None else None


class Product(db.Model):
    """
    Product master data.

    product_id is caller-supplied (SKU-like) and is the primary key. It is
    immutable once created; edits go through update_product, which never
    touches the key.

    barcode is optional and validated (EAN-8 / UPC-A / EAN-13 check digits)
    before it is written.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_barcode", "barcode"),
        db.Index("ix_products_name", "product_name"),
    )

    product_id = db.Column(db.String(64), primary_key=True)
    product_name = db.Column(db.String(255), nullable=False)

    # Unit prices keep four places so per-line rounding happens at order time
    list_price = db.Column(db.Numeric(12, 4), nullable=False)

    barcode = db.Column(db.String(32), nullable=True)
    is_sellable = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    inventory_rows = db.relationship("Inventory", back_populates="product", lazy=True)

    def __repr__(self) -> str:
        return f"<Product product_id={self.product_id!r} name={self.product_name!r}>"

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "list_price": _money(self.list_price),
            "barcode": self.barcode,
            "is_sellable": self.is_sellable,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Inventory(db.Model):
    """
    Stock level snapshot for a product.

    Storage does not enforce one row per product. Readers collapse rows to the
    most recent one by last_updated (ties: highest id); that row's stock_level
    is the product's effective stock and its purchase_price is the cost basis.

    version_id increments on every write so stock decrements can be made
    conditional on the row being unchanged since it was read.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.Index("ix_inventory_product_updated", "product_id", "last_updated"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.String(64), db.ForeignKey("products.product_id"), nullable=False, index=True)

    stock_level = db.Column(db.Integer, nullable=False, default=0)
    purchase_price = db.Column(db.Numeric(12, 4), nullable=True)

    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", back_populates="inventory_rows")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Inventory id={self.id} product_id={self.product_id!r} stock_level={self.stock_level}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "stock_level": self.stock_level,
            "purchase_price": _money(self.purchase_price),
            "last_updated": to_utc_z(self.last_updated),
            "last_updated_ms": to_epoch_ms(self.last_updated),
            "version_id": self.version_id,
        }
