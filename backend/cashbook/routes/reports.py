# Overview: Flask API routes for period reports, budget distribution and period closures.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services import aggregation_service
from ..services.aggregation_service import ReportError
from ..services.printing_service import get_dispatcher
from ..time_utils import current_zone, utcnow
from ..validation import ConflictError, clean_text, ValidationError


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _report_options() -> dict:
    return {
        "dense_days": current_app.config["CASHBOOK_DENSE_SERIES_DAYS"],
        "top_n": current_app.config["CASHBOOK_TOP_PRODUCTS"],
    }


def _build_period_report(params) -> dict:
    return aggregation_service.period_report(
        preset=params.get("range"),
        start=params.get("start"),
        end=params.get("end"),
        payment_method=params.get("payment_method"),
        now=utcnow(),
        zone=current_zone(),
        **_report_options(),
    )


@reports_bp.get("/period")
def period_report_route():
    """
    Financial summary for a date range.

    Query params:
        range: TODAY | WEEK | MONTH | YEAR | CUSTOM (default TODAY)
        start, end: YYYY-MM-DD, required for CUSTOM
        payment_method: cash | card | transfer | credit | split (optional)
    """
    try:
        return jsonify(_build_period_report(request.args)), 200
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build period report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.post("/period/print")
def print_period_report_route():
    """Same parameters as GET /period, in the JSON body; the ticket prints in the background."""
    data = request.get_json(silent=True) or {}
    try:
        report = _build_period_report(data)
        get_dispatcher().dispatch_period_report(report)
        return jsonify({"queued": True, "report": report}), 202
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to queue period report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/distribution")
def distribution_route():
    """Budget distribution (operating / profit / investment) for a date range."""
    try:
        distribution = aggregation_service.distribution_report(
            preset=request.args.get("range", "CUSTOM" if request.args.get("start") else "MONTH"),
            start=request.args.get("start"),
            end=request.args.get("end"),
            now=utcnow(),
            zone=current_zone(),
            budget=aggregation_service.budget_settings(current_app.config),
        )
        return jsonify(distribution), 200
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build budget distribution")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.post("/closures")
def close_period_route():
    """
    Freeze a period.

    Request body:
    {
        "range": "CUSTOM",
        "start": "2024-03-01",
        "end": "2024-03-31",
        "notes": "March close"  (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        closure = aggregation_service.close_period(
            preset=data.get("range", "CUSTOM"),
            start=data.get("start"),
            end=data.get("end"),
            notes=clean_text(data.get("notes"), "notes", 255),
            now=utcnow(),
            zone=current_zone(),
            budget=aggregation_service.budget_settings(current_app.config),
            **_report_options(),
        )
        return jsonify({"closure": closure.to_dict()}), 201
    except (ReportError, ValidationError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to close period")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/closures")
def list_closures_route():
    try:
        closures = aggregation_service.list_closures()
        return jsonify({"closures": [c.to_dict() for c in closures]}), 200
    except Exception:
        current_app.logger.exception("Failed to list period closures")
        return jsonify({"error": "Internal server error"}), 500
