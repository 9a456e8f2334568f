"""
Health check blueprint.

Endpoints:
    GET /api/v1/health       : simple 200 for load balancers
    GET /api/v1/health/live  : database round-trip
"""

import logging
import time

from flask import Blueprint, jsonify

from aiproval.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def ready():
    """Readiness probe, always 200 if the app is running."""
    return jsonify({"status": "ok", "app": "Aiproval"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Liveness check including the database."""
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        database = {"status": "ok", "latency_ms": round(db_ms, 1)}
        healthy = True
    except Exception as exc:
        db.session.rollback()
        database = {"status": "error", "detail": str(exc)}
        healthy = False
        logger.error("Health check: database failed: %s", exc)

    return jsonify({
        "status": "healthy" if healthy else "degraded",
        "checks": {"database": database},
    }), 200 if healthy else 503
