# Overview: Flask API routes for dashboard reporting; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import dashboard_service
from ..validation import LedgerError
from ..decorators import require_auth, require_admin


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/metrics")
@require_auth
@require_admin
def metrics_route():
    """
    Query params:
    - timeRange: 7d | 30d | 90d | 12m | all (default all)
    """
    try:
        metrics = dashboard_service.get_metrics(request.args.get("timeRange"))
        return jsonify(metrics), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to compute dashboard metrics")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/monthly")
@require_auth
@require_admin
def monthly_route():
    """Monthly income vs expenses; timeRange defaults to 12m."""
    try:
        rows = dashboard_service.get_monthly_data(request.args.get("timeRange"))
        return jsonify({"months": rows}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to compute monthly data")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/staff-distribution")
@require_auth
@require_admin
def staff_distribution_route():
    try:
        rows = dashboard_service.get_staff_payment_distribution(request.args.get("timeRange"))
        return jsonify({"staff": rows}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to compute staff payment distribution")
        return jsonify({"error": "Internal server error"}), 500
