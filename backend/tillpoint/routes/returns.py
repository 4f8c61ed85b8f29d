# Overview: Flask API routes for returns operations; parses input and returns JSON responses.

"""
Return Processing API Routes

- Look up an order and what can still be returned from it
- Submit a return (validated in full before anything is written)
- Move returns through pending -> approved/rejected -> refunded

Returns never restore inventory.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import return_service
from ..services.return_service import ReturnError
from ..services.record_store import RecordNotFoundError, RecordStoreError
from ..validation import ValidationError, ConflictError


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.get("/orders/<int:order_id>/returnable")
def returnable_lines_route(order_id: int):
    """Order lines with units left to return (fully returned lines omitted)."""
    try:
        return jsonify(return_service.get_return_form(order_id)), 200
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404


@returns_bp.post("")
def submit_return_route():
    """
    Submit a return.

    Request body:
    {
        "order_id": 12,
        "reason": "Wrong size",  (optional)
        "lines": [
            {"order_item_id": 31, "quantity_to_return": 1, "condition": "new"},
            ...
        ]
    }

    Returns:
        201: return created (status: pending) with refreshed returnable lines
        400: invalid request, nothing written
        404: order not found
    """
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400
        order_id = data.get("order_id")
        if not isinstance(order_id, int) or isinstance(order_id, bool):
            return jsonify({"error": "order_id required"}), 400
        lines = data.get("lines")
        if not isinstance(lines, list):
            return jsonify({"error": "lines must be a list"}), 400
        if data.get("reason") is not None and not isinstance(data["reason"], str):
            return jsonify({"error": "reason must be a string"}), 400

        result = return_service.submit_return(order_id, lines, reason=data.get("reason"))
        return jsonify(result), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ReturnError as e:
        return jsonify({"error": str(e), "details": e.details}), 500
    except Exception:
        current_app.logger.exception("Failed to submit return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.get("")
def list_returns_route():
    returns = return_service.list_returns(
        order_id=request.args.get("order_id", type=int),
        status=request.args.get("status"),
    )
    return jsonify({"items": [r.to_dict() for r in returns], "count": len(returns)}), 200


@returns_bp.get("/<int:return_id>")
def get_return_route(return_id: int):
    try:
        return jsonify(return_service.get_return_detail(return_id)), 200
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404


@returns_bp.post("/<int:return_id>/status")
def set_return_status_route(return_id: int):
    """
    Request body:
    {
        "status": "approved"  (approved | rejected | refunded)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400
        if not isinstance(data.get("status"), str):
            return jsonify({"error": "status must be a string"}), 400
        return_doc = return_service.set_return_status(return_id, data.get("status"))
        return jsonify({"return": return_doc.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except RecordStoreError:
        current_app.logger.exception("Failed to update return status")
        return jsonify({"error": "Failed to update return"}), 500
