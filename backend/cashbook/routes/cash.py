# Overview: Flask API routes for the cash drawer; parses input and returns JSON responses.

# backend/cashbook/routes/cash.py
"""
Cash Drawer API Routes

WHY: The register screen needs the live drawer state, a way to record
money moving in and out, and the end-of-shift Z-cut.

DESIGN:
- Drawer state is derived from the movement ledger on every request
- Amounts are accepted as decimals ("150.00") and returned as *_cents
- Z-cut commits first; printing happens in the background
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services import drawer_service, ledger_service, reconciliation_service
from ..services.ledger_service import InvalidStateError
from ..services.printing_service import get_dispatcher
from ..time_utils import current_zone, utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    clean_text,
    parse_amount_cents,
)


cash_bp = Blueprint("cash", __name__, url_prefix="/api/cash")


def _error(exc: Exception, status: int):
    db.session.rollback()
    return jsonify({"error": str(exc)}), status


@cash_bp.get("/state")
def drawer_state_route():
    """
    Current drawer session.

    Response:
    {
        "is_open": true,
        "balance_cents": 13000,
        "opening": {...} | null,
        "movements": [...],            (current session, newest first)
        "today": {"income_cents": ..., "outflow_cents": ...}
    }
    """
    try:
        state = drawer_service.drawer_state(now=utcnow(), zone=current_zone())
        return jsonify(state), 200
    except Exception:
        current_app.logger.exception("Failed to load drawer state")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/movements")
def list_movements_route():
    try:
        limit = request.args.get("limit", type=int)
        movements = ledger_service.list_movements(newest_first=True, limit=limit)
        return jsonify({"movements": [m.to_dict() for m in movements]}), 200
    except Exception:
        current_app.logger.exception("Failed to list cash movements")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("/open")
def open_drawer_route():
    """
    Open the drawer with a starting fund.

    Request body:
    {
        "amount": "100.00",
        "description": "Morning shift"  (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        movement = ledger_service.open_shift(
            amount_cents=parse_amount_cents(data.get("amount")),
            now=utcnow(),
            description=clean_text(data.get("description"), "description", 255),
        )
        return jsonify({"movement": movement.to_dict()}), 201
    except InvalidStateError as e:
        return _error(e, 409)
    except ValidationError as e:
        return _error(e, 400)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to open cash drawer")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("/movements")
def record_movement_route():
    """
    Record a deposit, expense or withdrawal.

    Refused with 409 while the drawer is closed. The old register screen
    accepted these at any time; here they always belong to an open session.

    Request body:
    {
        "type": "EXPENSE",
        "amount": "20.00",
        "category": "OPERATIONAL",      (optional, defaults by type)
        "sub_category": "Cleaning",     (optional)
        "description": "Mop and bucket" (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        movement_type = data.get("type")
        if isinstance(movement_type, str):
            movement_type = movement_type.strip().upper()
        category = data.get("category")
        movement = ledger_service.record_movement(
            movement_type=movement_type,
            amount_cents=parse_amount_cents(data.get("amount")),
            now=utcnow(),
            category=category.strip().upper() if isinstance(category, str) and category.strip() else None,
            sub_category=clean_text(data.get("sub_category"), "sub_category", 128),
            description=clean_text(data.get("description"), "description", 255),
        )
        return jsonify({"movement": movement.to_dict()}), 201
    except InvalidStateError as e:
        return _error(e, 409)
    except ValidationError as e:
        return _error(e, 400)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record cash movement")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.delete("/movements/<int:movement_id>")
def delete_movement_route(movement_id: int):
    """Delete an erroneous manual entry. Z-cut records are refused (409)."""
    try:
        movement = ledger_service.delete_movement(movement_id)
        return jsonify({"deleted": movement.id}), 200
    except NotFoundError as e:
        return _error(e, 404)
    except ConflictError as e:
        return _error(e, 409)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete cash movement")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("/z-cut")
def z_cut_route():
    """
    Reconcile and close the current session.

    Request body:
    {
        "declared_cash": "125.00"
    }

    Returns 201 with the CLOSE movement and its frozen report.
    """
    data = request.get_json(silent=True) or {}
    try:
        movement = reconciliation_service.perform_z_cut(
            declared_cash_cents=parse_amount_cents(data.get("declared_cash"), "declared_cash"),
            now=utcnow(),
            zone=current_zone(),
            dispatcher=get_dispatcher(),
        )
        return jsonify({"movement": movement.to_dict(), "z_report": movement.z_report}), 201
    except InvalidStateError as e:
        return _error(e, 409)
    except ValidationError as e:
        return _error(e, 400)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to perform Z-cut")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("/z-cut/<int:movement_id>/reprint")
def reprint_z_cut_route(movement_id: int):
    try:
        reconciliation_service.reprint_z_report(movement_id, get_dispatcher())
        return jsonify({"queued": True}), 202
    except NotFoundError as e:
        return _error(e, 404)
    except ValidationError as e:
        return _error(e, 400)
    except Exception:
        current_app.logger.exception("Failed to queue Z-report reprint")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/z-cuts")
def list_z_cuts_route():
    try:
        limit = request.args.get("limit", default=50, type=int)
        z_cuts = ledger_service.list_z_cuts(limit=limit)
        return jsonify({"z_cuts": [m.to_dict() for m in z_cuts]}), 200
    except Exception:
        current_app.logger.exception("Failed to list Z-cuts")
        return jsonify({"error": "Internal server error"}), 500
