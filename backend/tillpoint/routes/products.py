# Overview: Flask API routes for products, stock and barcodes; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import catalog_service
from ..services.barcode_service import validate_barcode, symbology_for
from ..services.record_store import RecordNotFoundError
from ..validation import ValidationError, ConflictError


products_bp = Blueprint("products", __name__, url_prefix="/api/products")
inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")
barcodes_bp = Blueprint("barcodes", __name__, url_prefix="/api/barcodes")


# =============================================================================
# PRODUCTS
# =============================================================================

@products_bp.get("")
def list_products_route():
    """
    List products by name.

    Query params:
    - sellable: "true" to list only sellable products
    """
    sellable_only = request.args.get("sellable", "false").lower() == "true"
    products = catalog_service.list_products(sellable_only=sellable_only)
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@products_bp.post("")
def create_product_route():
    """
    Create a product.

    Request body:
    {
        "product_id": "SKU-001",
        "product_name": "Coffee beans 1kg",
        "list_price": 18.5,
        "barcode": "4006381333931",  (optional)
        "is_sellable": true  (optional, default: false)
    }
    """
    try:
        product = catalog_service.create_product(request.get_json(silent=True))
        return jsonify({"product": product.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<product_id>")
def get_product_route(product_id: str):
    try:
        return jsonify({"product": catalog_service.get_product(product_id).to_dict()}), 200
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404


@products_bp.patch("/<product_id>")
def update_product_route(product_id: str):
    try:
        product = catalog_service.update_product(product_id, request.get_json(silent=True))
        return jsonify({"product": product.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/by-barcode/<code>")
def product_by_barcode_route(code: str):
    try:
        product = catalog_service.find_product_by_barcode(code)
        return jsonify({"product": product.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404


# =============================================================================
# STOCK
# =============================================================================

@inventory_bp.get("")
def list_stock_route():
    """Effective stock per product (latest inventory row wins)."""
    rows = catalog_service.list_stock()
    return jsonify({"items": rows, "count": len(rows)}), 200


@inventory_bp.post("/<product_id>")
def set_stock_route(product_id: str):
    """
    Record a new stock level.

    Request body:
    {
        "stock_level": 25,
        "purchase_price": 9.75  (optional)
    }
    """
    try:
        row = catalog_service.set_stock(product_id, request.get_json(silent=True))
        return jsonify({"inventory": row.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to set stock")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# BARCODES
# =============================================================================

@barcodes_bp.post("/validate")
def validate_barcode_route():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    code = data.get("barcode")
    if code is not None and not isinstance(code, str):
        return jsonify({"error": "barcode must be a string"}), 400

    result = validate_barcode(code)
    body = result.to_dict()
    body["format"] = symbology_for(code.strip()) if code and result.valid else None
    return jsonify(body), 200
