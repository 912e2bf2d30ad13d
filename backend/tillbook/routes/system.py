# backend/tillbook/routes/system.py
"""
System health endpoint.

Liveness plus a database round trip, for the desktop shell and deployment
debugging.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Shift
from tillbook.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        open_shifts = db.session.query(Shift).filter_by(status="open").count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "open_shifts": open_shifts,
            }
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy
    - 503: database unreachable
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "database": database_health,
        }
    }
    return response, 200 if healthy else 503
