# Overview: Flask API routes for expenses operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import expense_service
from ..validation import LedgerError
from ..decorators import require_auth, require_admin


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("/")
@require_auth
@require_admin
def list_expenses_route():
    """All expenses, or only one type with ?type=advertising."""
    try:
        expense_type = request.args.get("type")
        if expense_type:
            expenses = expense_service.get_by_type(expense_type)
        else:
            expenses = expense_service.list_expenses()
        return jsonify({"expenses": [e.to_dict() for e in expenses]}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list expenses")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.get("/summary")
@require_auth
@require_admin
def expense_summary_route():
    try:
        return jsonify(expense_service.get_summary()), 200
    except Exception:
        current_app.logger.exception("Failed to build expense summary")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.get("/<int:expense_id>")
@require_auth
@require_admin
def get_expense_route(expense_id: int):
    try:
        expense = expense_service.get_expense(expense_id)
        return jsonify({"expense": expense.to_dict()}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.post("/")
@require_auth
@require_admin
def create_expense_route():
    """
    Request body:
    {
        "type": "advertising",
        "amount": 250,
        "description": "Social ads",
        "date": "2026-10-01T00:00:00Z",
        "proof": "<storage id>"  (optional)
    }
    """
    try:
        expense = expense_service.create_expense(request.get_json(silent=True))
        return jsonify({"expense": expense.to_dict()}), 201
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.patch("/<int:expense_id>")
@require_auth
@require_admin
def update_expense_route(expense_id: int):
    try:
        expense = expense_service.update_expense(expense_id, request.get_json(silent=True))
        return jsonify({"expense": expense.to_dict()}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_admin
def delete_expense_route(expense_id: int):
    try:
        expense_service.remove_expense(expense_id)
        return jsonify({"success": True}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete expense")
        return jsonify({"error": "Internal server error"}), 500
