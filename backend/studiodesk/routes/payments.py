# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

"""
Staff Payment API Routes

DESIGN:
- Staff see their own payments and summary, and request payouts for themselves
- Admin processes (pays out) or rejects payout requests
- PATCH /status is a raw admin correction with no side effects

SECURITY:
- Admin-only for anything that moves money out
- Staff routes are scoped to the caller's own staff_id
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import payment_service
from ..validation import LedgerError
from ..decorators import require_auth, require_admin, require_self_or_admin


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


# =============================================================================
# PAYMENT QUERIES
# =============================================================================

@payments_bp.get("/")
@require_auth
@require_admin
def list_payments_route():
    try:
        return jsonify({"payments": payment_service.list_payments()}), 200
    except Exception:
        current_app.logger.exception("Failed to list payments")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/pending")
@require_auth
@require_admin
def pending_payments_route():
    """Payments awaiting action: pending and payout_requested."""
    try:
        return jsonify({"payments": payment_service.get_pending_payments()}), 200
    except Exception:
        current_app.logger.exception("Failed to list pending payments")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/<int:payment_id>")
@require_auth
@require_admin
def get_payment_route(payment_id: int):
    try:
        payment = payment_service.get_payment(payment_id)
        return jsonify({"payment": payment.to_dict()}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/staff/<int:staff_id>")
@require_auth
@require_self_or_admin("staff_id")
def staff_payments_route(staff_id: int):
    try:
        payments = payment_service.get_staff_payments(staff_id)
        return jsonify({"payments": [p.to_dict() for p in payments]}), 200
    except Exception:
        current_app.logger.exception("Failed to list staff payments")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/staff/<int:staff_id>/summary")
@require_auth
@require_self_or_admin("staff_id")
def staff_summary_route(staff_id: int):
    """
    Returns:
    {
        "total_earned": sum of all assignment salaries,
        "total_paid": completed payments,
        "pending_payment": pending payments,
        "requested_payment": payout_requested payments
    }
    """
    try:
        return jsonify(payment_service.get_staff_summary(staff_id)), 200
    except Exception:
        current_app.logger.exception("Failed to build staff summary")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYOUT LIFECYCLE
# =============================================================================

@payments_bp.post("/staff/<int:staff_id>/payout-request")
@require_auth
@require_self_or_admin("staff_id")
def request_payout_route(staff_id: int):
    """
    Consolidate every pending payment of the staff member into one request.

    Returns:
        201: payout_requested payment
        400: nothing pending, or below the minimum payout amount
    """
    try:
        payout = payment_service.request_payout(staff_id)
        return jsonify({"payment": payout.to_dict()}), 201
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to request payout")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/process")
@require_auth
@require_admin
def process_payment_route(payment_id: int):
    """
    Mark a payment as paid.

    Request body (optional):
    {
        "payment_proof": "<storage id>",
        "notes": "Paid via bank"
    }

    Side effects: every pending/partial assignment of the staff member is
    marked paid and a staff_salary expense is recorded.
    """
    try:
        data = request.get_json(silent=True) or {}
        payment = payment_service.process_payment(
            payment_id,
            payment_proof=data.get("payment_proof"),
            notes=data.get("notes"),
        )
        return jsonify({"payment": payment.to_dict()}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to process payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/reject")
@require_auth
@require_admin
def reject_payment_route(payment_id: int):
    try:
        data = request.get_json(silent=True) or {}
        payment = payment_service.reject_payment(payment_id, notes=data.get("notes"))
        return jsonify({"payment": payment.to_dict()}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reject payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.patch("/<int:payment_id>/status")
@require_auth
@require_admin
def patch_status_route(payment_id: int):
    """Overwrite status directly. No assignment or expense side effects."""
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not status:
            return jsonify({"error": "status required"}), 400

        payment = payment_service.patch_status(payment_id, status)
        return jsonify({"payment": payment.to_dict()}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to patch payment status")
        return jsonify({"error": "Internal server error"}), 500
