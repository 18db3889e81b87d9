# backend/cashbook/routes/system.py
"""
System health endpoint.

Reports database connectivity and the drawer's open/closed state so a
front end can tell "server down" apart from "drawer closed".
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import CashMovement
from ..services.drawer_service import current_session
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        movement_count = db.session.query(CashMovement).count()
        drawer_open = current_session().is_open

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "cash_movements": movement_count,
                "drawer_open": drawer_open,
            }
        }
    except Exception:
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
    - 200: Database reachable
    - 503: Database unreachable
    """
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503

    response = {
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": database_health,
        }
    }

    return response, http_status
