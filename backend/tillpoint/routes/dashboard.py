from flask import Blueprint, jsonify, request, current_app

from ..services import sales_service, notes_service
from ..time_utils import parse_day
from ..validation import ValidationError


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api")


@dashboard_bp.get("/dashboard")
def dashboard():
    """
    Sales dashboard.

    Query params:
    - date: YYYY-MM-DD local day; omitted means all-time totals without hourly series
    """
    try:
        day = parse_day(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400
    return jsonify(sales_service.get_dashboard(day)), 200


@dashboard_bp.get("/notes/<date>")
def get_note_route(date: str):
    try:
        note = notes_service.get_note(date)
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    if note is None:
        return jsonify({"error": "Note not found"}), 404
    return jsonify({"note": note.to_dict()}), 200


@dashboard_bp.put("/notes/<date>")
def save_note_route(date: str):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        note = notes_service.save_note(date, data.get("note_text"))
        return jsonify({"note": note.to_dict()}), 200
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to save note")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.delete("/notes/<date>")
def delete_note_route(date: str):
    try:
        deleted = notes_service.delete_note(date)
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    if not deleted:
        return jsonify({"error": "Note not found"}), 404
    return jsonify({"deleted": True}), 200
