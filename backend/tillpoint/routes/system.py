# backend/tillpoint/routes/system.py
"""
System health endpoint.

Reports database connectivity plus row counts for the core tables.
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import Product, Order, Return
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        details = {
            "products": db.session.query(Product).count(),
            "orders": db.session.query(Order).count(),
            "returns": db.session.query(Return).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return jsonify({
        "status": database["status"],
        "time": to_utc_z(utcnow()),
        "database": database,
    }), status_code
