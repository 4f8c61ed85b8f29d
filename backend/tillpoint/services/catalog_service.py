# Overview: Service-layer operations for catalog and stock; encapsulates business logic and database work.

from __future__ import annotations

from ..models import Product, Inventory
from ..time_utils import utcnow
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    ConflictError,
    validate_payload,
    enforce_rules_product,
    enforce_rules_stock,
)
from .barcode_service import validate_barcode
from .live_query import LiveQuery
from .reconciliation import latest_inventory_by_product, effective_stock
from .record_store import DuplicateRecordError, RecordNotFoundError, get_record_store


PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "product_name", "list_price", "barcode", "is_sellable"},
    required_on_create={"product_id", "product_name", "list_price"},
)

# product_id is the key and never changes after creation
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"product_name", "list_price", "barcode", "is_sellable"},
)

STOCK_POLICY = ModelValidationPolicy(
    writable_fields={"stock_level", "purchase_price"},
    required_on_create={"stock_level"},
)


def _check_barcode(patch: dict) -> None:
    if "barcode" not in patch:
        return
    result = validate_barcode(patch["barcode"])
    if not result.valid:
        raise ValidationError(result.error, details={"field": "barcode"})
    # Blank barcodes are stored as NULL
    patch["barcode"] = patch["barcode"] or None


# =============================================================================
# PRODUCTS
# =============================================================================

def create_product(payload: dict) -> Product:
    if isinstance(payload, dict) and "product_id" in payload and isinstance(payload["product_id"], str):
        payload = {**payload, "product_id": payload["product_id"].strip()}
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
    enforce_rules_product(patch)
    _check_barcode(patch)
    patch.setdefault("is_sellable", False)

    store = get_record_store()
    if store.get("Product", patch["product_id"]) is not None:
        raise ConflictError(f"Product {patch['product_id']} already exists")
    try:
        return store.create("Product", patch)
    except DuplicateRecordError:
        raise ConflictError(f"Product {patch['product_id']} already exists")


def update_product(product_id: str, payload: dict) -> Product:
    if isinstance(payload, dict) and "product_id" in payload:
        raise ValidationError("product_id cannot be changed")
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)
    _check_barcode(patch)

    store = get_record_store()
    get_product(product_id)
    if not patch:
        return store.get("Product", product_id)
    return store.update("Product", product_id, patch)


def get_product(product_id: str) -> Product:
    product = get_record_store().get("Product", product_id)
    if product is None:
        raise RecordNotFoundError("Product not found")
    return product


def list_products(*, sellable_only: bool = False) -> list[Product]:
    filters = {"is_sellable": True} if sellable_only else None
    return get_record_store().list("Product", filters, order_by=Product.product_name.asc())


def find_product_by_barcode(code: str) -> Product:
    """Scanner lookup. The code is validated first so misreads fail loudly."""
    code = (code or "").strip()
    if not code:
        raise ValidationError("Barcode is required")
    result = validate_barcode(code)
    if not result.valid:
        raise ValidationError(result.error, details={"field": "barcode"})
    matches = get_record_store().list("Product", {"barcode": code}, limit=1)
    if not matches:
        raise RecordNotFoundError("Product not found")
    return matches[0]


# =============================================================================
# STOCK
# =============================================================================

def set_stock(product_id: str, payload: dict) -> Inventory:
    """
    Record a new stock level for a product.

    Appends an Inventory row instead of editing the previous one; the newest
    row becomes the effective stock and cost basis.
    """
    patch = validate_payload(model=Inventory, payload=payload, policy=STOCK_POLICY, partial=False)
    enforce_rules_stock(patch)
    get_product(product_id)

    return get_record_store().create("Inventory", {
        "product_id": product_id,
        "stock_level": patch["stock_level"],
        "purchase_price": patch.get("purchase_price"),
        "last_updated": utcnow(),
    })


def stock_rows(inventory_rows, products) -> list[dict]:
    latest = latest_inventory_by_product(inventory_rows)
    rows = []
    for product in products:
        inv = latest.get(product.product_id)
        rows.append({
            "product_id": product.product_id,
            "product_name": product.product_name,
            "is_sellable": product.is_sellable,
            "stock_level": effective_stock(latest, product.product_id),
            "purchase_price": float(inv.purchase_price) if inv is not None and inv.purchase_price is not None else None,
            "inventory_id": inv.id if inv is not None else None,
        })
    return rows


def list_stock() -> list[dict]:
    """Effective stock per product after collapsing duplicate inventory rows."""
    store = get_record_store()
    return stock_rows(store.list("Inventory"), list_products())


class StockWatcher:
    """
    Effective stock kept current from an Inventory live query.

    Each snapshot is the full inventory collection, so refresh() simply
    recomputes from the newest one.
    """

    def __init__(self, query: LiveQuery):
        self.query = query
        self.stock: dict[str, int] = {}
        self.refresh()

    @classmethod
    def start(cls) -> "StockWatcher":
        return cls(get_record_store().subscribe("Inventory"))

    def refresh(self) -> bool:
        snapshot = self.query.latest()
        if snapshot is None:
            return False
        latest = latest_inventory_by_product(snapshot)
        self.stock = {pid: effective_stock(latest, pid) for pid in latest}
        return True

    def stock_for(self, product_id: str) -> int:
        return self.stock.get(product_id, 0)

    def close(self) -> None:
        self.query.close()
