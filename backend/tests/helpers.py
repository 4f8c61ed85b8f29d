"""Small assertion helpers shared by the backend tests."""

from decimal import Decimal

from tillpoint.services import catalog_service


def current_stock(product_id: str) -> int:
    """Effective stock as the order form would show it."""
    for row in catalog_service.list_stock():
        if row["product_id"] == product_id:
            return row["stock_level"]
    raise AssertionError(f"{product_id} not in stock list")


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))
