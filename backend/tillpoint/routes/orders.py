# Overview: Flask API routes for order entry and history; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import order_service
from ..services.order_service import OrderError
from ..services.record_store import RecordNotFoundError, RecordStoreError
from ..validation import ValidationError


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
def submit_order_route():
    """
    Submit an order: header, lines, then stock decrements.

    Request body:
    {
        "lines": [{"product_id": "SKU-001", "quantity": 2}, ...],
        "order_number": "A-100",  (optional)
        "status": "completed",  (optional)
        "order_date": 1718000000000  (optional, epoch ms or ISO-8601)
    }

    Returns:
        201: every line written
        207: order written but some line writes failed (see failed_lines)
        400: validation failed, nothing written
    """
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400
        lines = data.get("lines")
        if not isinstance(lines, list):
            return jsonify({"error": "lines must be a list"}), 400
        for field in ("order_number", "status"):
            if data.get(field) is not None and not isinstance(data[field], str):
                return jsonify({"error": f"{field} must be a string"}), 400

        submission = order_service.submit_order(
            lines,
            order_number=(data.get("order_number") or "").strip() or None,
            status=(data.get("status") or "completed").strip(),
            order_date=data.get("order_date"),
        )
        return jsonify(submission.to_dict()), 201 if submission.complete else 207

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to submit order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
def list_orders_route():
    """
    Order history, newest first.

    Query params:
    - status: exact status (case-insensitive)
    - start, end: inclusive bounds, epoch ms or ISO-8601
    - limit: max rows
    """
    try:
        orders = order_service.list_orders(
            status=request.args.get("status"),
            start=request.args.get("start"),
            end=request.args.get("end"),
            limit=request.args.get("limit", type=int),
        )
        return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@orders_bp.get("/search")
def search_orders_route():
    """Order number search; '*' and '?' wildcards, otherwise substring."""
    try:
        orders = order_service.search_orders(request.args.get("q", ""))
        return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    try:
        return jsonify(order_service.get_order_detail(order_id)), 200
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404


@orders_bp.patch("/<int:order_id>/status")
def update_order_status_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400
        if not isinstance(data.get("status"), str):
            return jsonify({"error": "status must be a string"}), 400
        order = order_service.update_order_status(order_id, data.get("status"))
        return jsonify({"order": order.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except RecordStoreError:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Failed to update order"}), 500
