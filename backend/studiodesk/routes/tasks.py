# Overview: Flask API routes for tasks operations; parses input and returns JSON responses.

"""
Task Ledger API Routes

DESIGN:
- Admin creates, patches and deletes tasks and assigns staff with a salary
- Completing a task queues one pending salary Payment per unpaid assignment
- Staff can only read the tasks they are assigned to
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import task_service
from ..validation import LedgerError
from ..decorators import require_auth, require_admin, require_self_or_admin


tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


# =============================================================================
# TASKS
# =============================================================================

@tasks_bp.get("/")
@require_auth
@require_admin
def list_tasks_route():
    try:
        tasks = task_service.list_tasks()
        return jsonify({"tasks": [t.to_dict() for t in tasks]}), 200
    except Exception:
        current_app.logger.exception("Failed to list tasks")
        return jsonify({"error": "Internal server error"}), 500


@tasks_bp.post("/")
@require_auth
@require_admin
def create_task_route():
    """
    Create a task. status always starts as "pending".

    Request body:
    {
        "project_name": "Brand film",
        "client_name": "Acme",
        "task_type": "video",
        "deadline": "2026-11-01T00:00:00Z",
        "received_date": "2026-10-01T00:00:00Z",
        "total_budget": 1000,
        "payment_status": "pending",  (optional)
        "payment_received_amount": 0,  (optional)
        "remaining_amount": 1000,  (optional, defaults to budget - received)
        "income_status": "pending",  (optional)
        "reference_files": ["<storage id>"]  (optional)
    }
    """
    try:
        task = task_service.create_task(request.get_json(silent=True))
        return jsonify({"task": task.to_dict()}), 201
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create task")
        return jsonify({"error": "Internal server error"}), 500


@tasks_bp.get("/<int:task_id>")
@require_auth
@require_admin
def get_task_route(task_id: int):
    try:
        detail = task_service.get_task_detail(task_id)
        if detail is None:
            return jsonify({"error": "Task not found"}), 404
        return jsonify({"task": detail}), 200
    except Exception:
        current_app.logger.exception("Failed to get task")
        return jsonify({"error": "Internal server error"}), 500


@tasks_bp.patch("/<int:task_id>")
@require_auth
@require_admin
def update_task_route(task_id: int):
    """Merge only the provided fields into the task."""
    try:
        task = task_service.update_task(task_id, request.get_json(silent=True))
        return jsonify({"task": task.to_dict()}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update task")
        return jsonify({"error": "Internal server error"}), 500


@tasks_bp.delete("/<int:task_id>")
@require_auth
@require_admin
def delete_task_route(task_id: int):
    try:
        task_service.remove_task(task_id)
        return jsonify({"success": True}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete task")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# STATUS / COMPLETION
# =============================================================================

@tasks_bp.post("/<int:task_id>/complete")
@require_auth
@require_admin
def complete_task_route(task_id: int):
    try:
        payments = task_service.mark_completed(task_id)
        return jsonify({
            "success": True,
            "payments": [p.to_dict() for p in payments],
        }), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to complete task")
        return jsonify({"error": "Internal server error"}), 500


@tasks_bp.patch("/<int:task_id>/status")
@require_auth
@require_admin
def update_status_route(task_id: int):
    """
    Request body: {"status": "pending" | "in_progress" | "completed"}

    "completed" behaves exactly like POST /complete.
    """
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not status:
            return jsonify({"error": "status required"}), 400

        payments = task_service.update_status(task_id, status)
        return jsonify({
            "success": True,
            "payments": [p.to_dict() for p in payments],
        }), 200

    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update task status")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ASSIGNMENTS
# =============================================================================

@tasks_bp.post("/<int:task_id>/assignments")
@require_auth
@require_admin
def assign_staff_route(task_id: int):
    """
    Request body:
    {
        "staff_id": 7,
        "assigned_role": "Editor",
        "assigned_salary": 400
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        staff_id = data.get("staff_id")
        assigned_role = data.get("assigned_role")
        assigned_salary = data.get("assigned_salary")

        if staff_id is None or not assigned_role or assigned_salary is None:
            return jsonify({"error": "staff_id, assigned_role and assigned_salary required"}), 400

        assignment = task_service.assign_staff(
            task_id=task_id,
            staff_id=staff_id,
            assigned_role=assigned_role,
            assigned_salary=assigned_salary,
        )
        return jsonify({"assignment": assignment.to_dict()}), 201

    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to assign staff")
        return jsonify({"error": "Internal server error"}), 500


@tasks_bp.delete("/assignments/<int:assignment_id>")
@require_auth
@require_admin
def remove_assignment_route(assignment_id: int):
    try:
        task_service.remove_assignment(assignment_id)
        return jsonify({"success": True}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to remove assignment")
        return jsonify({"error": "Internal server error"}), 500


@tasks_bp.get("/staff/<int:staff_id>")
@require_auth
@require_self_or_admin("staff_id")
def staff_tasks_route(staff_id: int):
    """Tasks assigned to one staff member, with that staff member's salary details."""
    try:
        return jsonify({"tasks": task_service.get_staff_tasks(staff_id)}), 200
    except Exception:
        current_app.logger.exception("Failed to list staff tasks")
        return jsonify({"error": "Internal server error"}), 500
