from __future__ import annotations

from ..extensions import db
from studiodesk.time_utils import to_utc_z, utcnow


EXPENSE_STAFF_SALARY = "staff_salary"
EXPENSE_ADVERTISING = "advertising"
EXPENSE_TOOLS_AND_SOFTWARE = "tools_and_software"
EXPENSE_MISCELLANEOUS = "miscellaneous"
EXPENSE_TAX = "tax"
VALID_EXPENSE_TYPES = (
    EXPENSE_STAFF_SALARY,
    EXPENSE_ADVERTISING,
    EXPENSE_TOOLS_AND_SOFTWARE,
    EXPENSE_MISCELLANEOUS,
    EXPENSE_TAX,
)

TAX_TYPES = ("vat", "service_tax", "withholding_tax", "other")

TAX_STATUS_PENDING = "pending"
TAX_STATUS_PAID = "paid"
VALID_TAX_STATUSES = (TAX_STATUS_PENDING, TAX_STATUS_PAID)


class Expense(db.Model):
    """Categorized business spending. Completed staff payouts land here as staff_salary."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_type", "type"),
        db.Index("ix_expenses_date", "date"),
        db.Index("ix_expenses_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(32), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    description = db.Column(db.Text, nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    proof = db.Column(db.String(64), nullable=True)  # storage id
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "amount": self.amount,
            "description": self.description,
            "date": to_utc_z(self.date),
            "proof": self.proof,
            "created_at": to_utc_z(self.created_at),
        }


class Tax(db.Model):
    """
    Tax obligation attached to a task.

    assigned_to holds the ids of staff responsible for filing it.
    tax_status, due_date and paid_at are tracked independently.
    """
    __tablename__ = "taxes"
    __table_args__ = (
        db.Index("ix_taxes_status", "tax_status"),
        db.Index("ix_taxes_task_id", "task_id"),
        db.Index("ix_taxes_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # No FK: taxes outlive a deleted task as history
    task_id = db.Column(db.Integer, nullable=False)
    project_name = db.Column(db.String(255), nullable=False)
    tax_type = db.Column(db.String(32), nullable=False)
    tax_amount = db.Column(db.Integer, nullable=False)
    tax_status = db.Column(db.String(16), nullable=False, default=TAX_STATUS_PENDING)
    assigned_to = db.Column(db.JSON, nullable=False, default=list)
    description = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    due_date = db.Column(db.DateTime(timezone=True), nullable=False)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    proof = db.Column(db.String(64), nullable=True)  # storage id
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    task = db.relationship("Task", primaryjoin="foreign(Tax.task_id) == Task.id", viewonly=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "project_name": self.project_name,
            "tax_type": self.tax_type,
            "tax_amount": self.tax_amount,
            "tax_status": self.tax_status,
            "assigned_to": list(self.assigned_to or []),
            "description": self.description,
            "notes": self.notes,
            "due_date": to_utc_z(self.due_date),
            "paid_at": to_utc_z(self.paid_at),
            "proof": self.proof,
            "created_at": to_utc_z(self.created_at),
        }
