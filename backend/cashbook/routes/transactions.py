# Overview: Flask API routes through which the POS front end deposits sales records.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services import transaction_service
from ..time_utils import current_zone, local_day_bounds, parse_iso_date, utcnow
from ..validation import ConflictError, NotFoundError, ValidationError


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
@transactions_bp.post("/")
def record_transaction_route():
    """
    Store a sale.

    Request body:
    {
        "id": "T-000123",
        "occurred_at": "2024-03-01T15:04:05Z",   (optional, defaults to now)
        "total": "50.00",
        "payment_method": "split",
        "amount_paid": "50.00",
        "split_details": {"cash": "30.00", "card": "20.00"},
        "items": [{"name": "Coffee", "price": "25.00", "quantity": 2, "category": "Drinks"}],
        "affects_cash": true
    }
    """
    data = request.get_json(silent=True)
    try:
        transaction = transaction_service.record_transaction(data, now=utcnow())
        return jsonify({"transaction": transaction.to_dict()}), 201
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("")
@transactions_bp.get("/")
def list_transactions_route():
    """
    Query params:
        start, end: local dates (YYYY-MM-DD), both optional
        include_cancelled: "false" to hide cancelled sales
    """
    try:
        zone = current_zone()
        start_day = parse_iso_date(request.args.get("start"))
        end_day = parse_iso_date(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be dates (YYYY-MM-DD)"}), 400

    try:
        include_cancelled = request.args.get("include_cancelled", "true").lower() != "false"
        transactions = transaction_service.list_transactions(
            start=local_day_bounds(start_day, zone)[0] if start_day else None,
            end=local_day_bounds(end_day, zone)[1] if end_day else None,
            include_cancelled=include_cancelled,
        )
        return jsonify({"transactions": [t.to_dict() for t in transactions]}), 200
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<string:external_id>/cancel")
def cancel_transaction_route(external_id: str):
    try:
        transaction = transaction_service.cancel_transaction(external_id)
        return jsonify({"transaction": transaction.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel transaction")
        return jsonify({"error": "Internal server error"}), 500
