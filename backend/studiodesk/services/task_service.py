# Overview: Service-layer operations for tasks and staff assignments.

"""
Task Ledger

Owns project/task records, their staff assignments, and the one money-moving
transition on this side of the ledger: completing a task turns every unpaid
assignment into a pending Payment for that staff member.

DESIGN PRINCIPLES:
- Task status moves pending -> in_progress on first assignment, and to
  completed only through mark_completed / update_status("completed")
- Completing a task never flips an assignment to paid; only payout
  processing does that (see payment_service.process_payment)
- Partial updates touch only the fields supplied
- Deleting a task removes its assignments; payments and expenses it produced
  stay as history
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Payment, Task, TaskAssignment, User
from ..models.tasks import (
    ASSIGNMENT_PAYMENT_PENDING,
    TASK_STATUS_COMPLETED,
    TASK_STATUS_IN_PROGRESS,
    TASK_STATUS_PENDING,
    VALID_INCOME_STATUSES,
    VALID_TASK_PAYMENT_STATUSES,
    VALID_TASK_STATUSES,
)
from ..models.payments import PAYMENT_STATUS_PENDING
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_amount,
    enforce_choices,
    validate_payload,
)
from studiodesk.time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction


TASK_POLICY = ModelValidationPolicy(
    writable_fields={
        "project_name",
        "client_name",
        "task_type",
        "deadline",
        "received_date",
        "total_budget",
        "payment_status",
        "payment_received_amount",
        "remaining_amount",
        "income_status",
        "status",
        "reference_files",
    },
    required_on_create={
        "project_name",
        "client_name",
        "task_type",
        "deadline",
        "received_date",
        "total_budget",
    },
    choices={
        "payment_status": VALID_TASK_PAYMENT_STATUSES,
        "income_status": VALID_INCOME_STATUSES,
        "status": VALID_TASK_STATUSES,
    },
)

MONEY_FIELDS = ("total_budget", "payment_received_amount", "remaining_amount")


def _enforce_money(patch: dict) -> None:
    for field in MONEY_FIELDS:
        if field in patch:
            enforce_amount(field, patch[field])


# =============================================================================
# QUERIES
# =============================================================================

def list_tasks() -> list[Task]:
    """All tasks, newest first."""
    return db.session.query(Task).order_by(Task.created_at.desc(), Task.id.desc()).all()


def get_assignments(task_id: int) -> list[TaskAssignment]:
    return db.session.query(TaskAssignment).filter_by(task_id=task_id).order_by(TaskAssignment.id.asc()).all()


def get_task_detail(task_id: int) -> dict | None:
    """Task plus its assignments, each enriched with the staff member's name."""
    task = db.session.get(Task, task_id)
    if not task:
        return None

    assignments = []
    for assignment in get_assignments(task.id):
        row = assignment.to_dict()
        staff = assignment.staff
        row["staff_name"] = staff.full_name if staff else None
        row["staff_username"] = staff.username if staff else None
        assignments.append(row)

    detail = task.to_dict()
    detail["assignments"] = assignments
    return detail


def get_staff_tasks(staff_id: int) -> list[dict]:
    """
    Tasks a staff member is assigned to.

    Each row is the task merged with that assignment's id, role, salary and
    salary payment_status (which shadows the task's client payment_status).
    """
    assignments = db.session.query(TaskAssignment).filter_by(
        staff_id=staff_id
    ).order_by(TaskAssignment.assigned_at.desc(), TaskAssignment.id.desc()).all()

    rows = []
    for assignment in assignments:
        task = assignment.task
        if task is None:
            continue
        row = task.to_dict()
        row.update({
            "assignment_id": assignment.id,
            "assigned_role": assignment.assigned_role,
            "assigned_salary": assignment.assigned_salary,
            "payment_status": assignment.payment_status,
        })
        rows.append(row)
    return rows


# =============================================================================
# MUTATIONS
# =============================================================================

def create_task(fields: dict) -> Task:
    """
    Create a task. status is always "pending" whatever the caller sent.

    remaining_amount defaults to total_budget - payment_received_amount when
    omitted.
    """
    patch = validate_payload(model=Task, payload=fields, policy=TASK_POLICY, partial=False)
    patch.setdefault("payment_status", "pending")
    patch.setdefault("income_status", "pending")
    patch.setdefault("payment_received_amount", 0)
    patch.setdefault("remaining_amount", patch["total_budget"] - patch["payment_received_amount"])
    _enforce_money(patch)
    patch["status"] = TASK_STATUS_PENDING

    def _op():
        task = Task(**patch, created_at=utcnow())
        db.session.add(task)
        db.session.flush()
        return task

    return run_in_transaction(_op)


def update_task(task_id: int, fields: dict) -> Task:
    """
    Merge only the provided fields into the task.

    No cross-field consistency check: callers keep total_budget,
    payment_received_amount and remaining_amount in step. Setting status here
    is a plain patch; it does not generate payments.
    """
    patch = validate_payload(model=Task, payload=fields, policy=TASK_POLICY, partial=True)
    _enforce_money(patch)

    def _op():
        task = db.session.get(Task, task_id)
        if not task:
            raise NotFoundError("Task not found")
        for key, value in patch.items():
            setattr(task, key, value)
        return task

    return run_in_transaction(_op)


def assign_staff(task_id: int, staff_id: int, assigned_role: str, assigned_salary: int) -> TaskAssignment:
    """
    Assign a staff member to a task with a salary.

    Side effect: a "pending" task moves to "in_progress". The same staff
    member may be assigned to the same task more than once.
    """
    if not assigned_role:
        raise ValidationError("assigned_role is required")
    enforce_amount("assigned_salary", assigned_salary)

    def _op():
        task = lock_for_update(db.session.query(Task).filter_by(id=task_id)).first()
        if not task:
            raise NotFoundError("Task not found")
        if not db.session.get(User, staff_id):
            raise NotFoundError("Staff member not found")

        assignment = TaskAssignment(
            task_id=task_id,
            staff_id=staff_id,
            assigned_role=assigned_role,
            assigned_salary=assigned_salary,
            payment_status=ASSIGNMENT_PAYMENT_PENDING,
            assigned_at=utcnow(),
        )
        db.session.add(assignment)

        if task.status == TASK_STATUS_PENDING:
            task.status = TASK_STATUS_IN_PROGRESS

        db.session.flush()
        return assignment

    return run_in_transaction(_op)


def remove_assignment(assignment_id: int) -> None:
    """Hard-delete an assignment. The task's status is left as it is."""
    def _op():
        assignment = db.session.get(TaskAssignment, assignment_id)
        if not assignment:
            raise NotFoundError("Assignment not found")
        db.session.delete(assignment)

    run_in_transaction(_op)


def _complete_locked(task: Task) -> list[Payment]:
    task.status = TASK_STATUS_COMPLETED
    now = utcnow()

    created = []
    for assignment in get_assignments(task.id):
        # Paid or already-queued assignments are skipped so repeated
        # completion cannot pay twice
        if assignment.payment_status != ASSIGNMENT_PAYMENT_PENDING:
            continue
        if assignment.payment_queued_at is not None:
            continue
        payment = Payment(
            staff_id=assignment.staff_id,
            amount=assignment.assigned_salary,
            status=PAYMENT_STATUS_PENDING,
            created_at=now,
        )
        db.session.add(payment)
        assignment.payment_queued_at = now
        created.append(payment)

    db.session.flush()
    return created


def mark_completed(task_id: int) -> list[Payment]:
    """
    Complete a task and queue its salaries.

    One pending Payment is created per assignment whose payment_status is
    still "pending" and whose salary has not been queued by an earlier
    completion. Returns the payments created.
    """
    def _op():
        task = lock_for_update(db.session.query(Task).filter_by(id=task_id)).first()
        if not task:
            raise NotFoundError("Task not found")
        return _complete_locked(task)

    payments = run_in_transaction(_op)
    current_app.logger.info(
        "Task %s completed; %d pending payment(s) totalling %d created",
        task_id, len(payments), sum(p.amount for p in payments),
    )
    return payments


def update_status(task_id: int, status: str) -> list[Payment]:
    """
    Set a task's status.

    "completed" goes through mark_completed; any other value is a plain patch.
    Returns the payments created (always empty for non-completed statuses).
    """
    enforce_choices({"status": status}, {"status": VALID_TASK_STATUSES})
    if status == TASK_STATUS_COMPLETED:
        return mark_completed(task_id)

    def _op():
        task = db.session.get(Task, task_id)
        if not task:
            raise NotFoundError("Task not found")
        task.status = status
        return []

    return run_in_transaction(_op)


def remove_task(task_id: int) -> None:
    """Delete a task and its assignments. Payments, expenses and taxes are kept."""
    def _op():
        task = db.session.get(Task, task_id)
        if not task:
            raise NotFoundError("Task not found")

        # Assignments go with the task via the relationship cascade
        db.session.delete(task)

    run_in_transaction(_op)
