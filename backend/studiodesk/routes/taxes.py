# Overview: Flask API routes for taxes operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import tax_service
from ..validation import LedgerError
from ..decorators import require_auth, require_admin


taxes_bp = Blueprint("taxes", __name__, url_prefix="/api/taxes")


@taxes_bp.get("/")
@require_auth
@require_admin
def list_taxes_route():
    """All taxes with the task's project and client name; ?status=pending for open ones."""
    try:
        if request.args.get("status") == "pending":
            taxes = tax_service.get_pending_taxes()
        else:
            taxes = tax_service.list_taxes()
        return jsonify({"taxes": taxes}), 200
    except Exception:
        current_app.logger.exception("Failed to list taxes")
        return jsonify({"error": "Internal server error"}), 500


@taxes_bp.get("/summary")
@require_auth
@require_admin
def tax_summary_route():
    try:
        return jsonify(tax_service.get_tax_summary()), 200
    except Exception:
        current_app.logger.exception("Failed to build tax summary")
        return jsonify({"error": "Internal server error"}), 500


@taxes_bp.get("/task/<int:task_id>")
@require_auth
@require_admin
def taxes_for_task_route(task_id: int):
    try:
        taxes = tax_service.get_by_task_id(task_id)
        return jsonify({"taxes": [t.to_dict() for t in taxes]}), 200
    except Exception:
        current_app.logger.exception("Failed to list taxes for task")
        return jsonify({"error": "Internal server error"}), 500


@taxes_bp.post("/")
@require_auth
@require_admin
def create_tax_route():
    """
    Request body:
    {
        "task_id": 3,
        "project_name": "Brand film",
        "tax_type": "vat" | "service_tax" | "withholding_tax" | "other",
        "tax_amount": 130,
        "assigned_to": [7, 9],  (optional)
        "description": "...",  (optional)
        "due_date": "2026-11-30T00:00:00Z"  (optional, default now + 30 days)
    }
    """
    try:
        tax = tax_service.create_tax(request.get_json(silent=True))
        return jsonify({"tax": tax.to_dict()}), 201
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create tax")
        return jsonify({"error": "Internal server error"}), 500


@taxes_bp.patch("/<int:tax_id>")
@require_auth
@require_admin
def update_tax_route(tax_id: int):
    """Allowed keys: assigned_to, tax_status, paid_at, proof, notes."""
    try:
        tax = tax_service.update_tax(tax_id, request.get_json(silent=True))
        return jsonify({"tax": tax.to_dict()}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update tax")
        return jsonify({"error": "Internal server error"}), 500


@taxes_bp.delete("/<int:tax_id>")
@require_auth
@require_admin
def delete_tax_route(tax_id: int):
    try:
        tax_service.remove_tax(tax_id)
        return jsonify({"success": True}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete tax")
        return jsonify({"error": "Internal server error"}), 500
