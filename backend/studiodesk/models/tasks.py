from __future__ import annotations

from ..extensions import db
from studiodesk.time_utils import to_utc_z, utcnow


TASK_STATUS_PENDING = "pending"
TASK_STATUS_IN_PROGRESS = "in_progress"
TASK_STATUS_COMPLETED = "completed"
VALID_TASK_STATUSES = (TASK_STATUS_PENDING, TASK_STATUS_IN_PROGRESS, TASK_STATUS_COMPLETED)

# Client-side payment state of the task budget
TASK_PAYMENT_PENDING = "pending"
TASK_PAYMENT_PARTIAL = "partial"
TASK_PAYMENT_PAID = "paid"
VALID_TASK_PAYMENT_STATUSES = (TASK_PAYMENT_PENDING, TASK_PAYMENT_PARTIAL, TASK_PAYMENT_PAID)

INCOME_PENDING = "pending"
INCOME_PARTIAL = "partial"
INCOME_RECEIVED = "received"
VALID_INCOME_STATUSES = (INCOME_PENDING, INCOME_PARTIAL, INCOME_RECEIVED)

# Staff-side salary state of one assignment. "partial" is never written by
# this codebase but is honoured when present.
ASSIGNMENT_PAYMENT_PENDING = "pending"
ASSIGNMENT_PAYMENT_PARTIAL = "partial"
ASSIGNMENT_PAYMENT_PAID = "paid"
VALID_ASSIGNMENT_PAYMENT_STATUSES = (
    ASSIGNMENT_PAYMENT_PENDING,
    ASSIGNMENT_PAYMENT_PARTIAL,
    ASSIGNMENT_PAYMENT_PAID,
)


class Task(db.Model):
    """
    Client project/task with its budget and client-payment state.

    remaining_amount = total_budget - payment_received_amount is supplied by
    the caller; storage does not enforce it.
    """
    __tablename__ = "tasks"
    __table_args__ = (
        db.Index("ix_tasks_status", "status"),
        db.Index("ix_tasks_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    project_name = db.Column(db.String(255), nullable=False)
    client_name = db.Column(db.String(255), nullable=False)
    task_type = db.Column(db.String(128), nullable=False)
    deadline = db.Column(db.DateTime(timezone=True), nullable=False)
    received_date = db.Column(db.DateTime(timezone=True), nullable=False)

    total_budget = db.Column(db.Integer, nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default=TASK_PAYMENT_PENDING)
    payment_received_amount = db.Column(db.Integer, nullable=False, default=0)
    remaining_amount = db.Column(db.Integer, nullable=False, default=0)
    income_status = db.Column(db.String(16), nullable=False, default=INCOME_PENDING)

    status = db.Column(db.String(16), nullable=False, default=TASK_STATUS_PENDING)

    # List of storage ids
    reference_files = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    assignments = db.relationship(
        "TaskAssignment",
        back_populates="task",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Task id={self.id} project={self.project_name!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_name": self.project_name,
            "client_name": self.client_name,
            "task_type": self.task_type,
            "deadline": to_utc_z(self.deadline),
            "received_date": to_utc_z(self.received_date),
            "total_budget": self.total_budget,
            "payment_status": self.payment_status,
            "payment_received_amount": self.payment_received_amount,
            "remaining_amount": self.remaining_amount,
            "income_status": self.income_status,
            "status": self.status,
            "reference_files": list(self.reference_files or []),
            "created_at": to_utc_z(self.created_at),
        }


class TaskAssignment(db.Model):
    """
    Links a staff member to a task with an agreed salary.

    payment_status flips to "paid" only when a payout for the staff member is
    processed. Unassigning deletes the row outright.
    """
    __tablename__ = "task_assignments"
    __table_args__ = (
        db.Index("ix_task_assignments_task_id", "task_id"),
        db.Index("ix_task_assignments_staff_id", "staff_id"),
        db.Index("ix_task_assignments_payment_status", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, db.ForeignKey("tasks.id"), nullable=False)
    staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    assigned_role = db.Column(db.String(128), nullable=False)
    assigned_salary = db.Column(db.Integer, nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default=ASSIGNMENT_PAYMENT_PENDING)

    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    # Set when completion queued this assignment's salary as a Payment
    payment_queued_at = db.Column(db.DateTime(timezone=True), nullable=True)

    task = db.relationship("Task", back_populates="assignments")
    staff = db.relationship("User", backref=db.backref("task_assignments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "staff_id": self.staff_id,
            "assigned_role": self.assigned_role,
            "assigned_salary": self.assigned_salary,
            "payment_status": self.payment_status,
            "assigned_at": to_utc_z(self.assigned_at),
            "payment_queued_at": to_utc_z(self.payment_queued_at),
        }
