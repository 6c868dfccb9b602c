# Overview: Service-layer operations for expense; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Expense
from ..models.ledgers import VALID_EXPENSE_TYPES
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    enforce_amount,
    enforce_choices,
    validate_payload,
)
from studiodesk.time_utils import utcnow
from .concurrency import run_in_transaction


EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"type", "amount", "description", "date", "proof"},
    required_on_create={"type", "amount", "description", "date"},
    choices={"type": VALID_EXPENSE_TYPES},
)


def list_expenses() -> list[Expense]:
    return db.session.query(Expense).order_by(Expense.date.desc(), Expense.id.desc()).all()


def get_expense(expense_id: int) -> Expense:
    expense = db.session.get(Expense, expense_id)
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def get_by_type(expense_type: str) -> list[Expense]:
    enforce_choices({"type": expense_type}, {"type": VALID_EXPENSE_TYPES})
    return db.session.query(Expense).filter_by(
        type=expense_type
    ).order_by(Expense.date.desc(), Expense.id.desc()).all()


def create_expense(fields: dict) -> Expense:
    patch = validate_payload(model=Expense, payload=fields, policy=EXPENSE_POLICY, partial=False)
    enforce_amount("amount", patch["amount"])

    def _op():
        expense = Expense(**patch, created_at=utcnow())
        db.session.add(expense)
        db.session.flush()
        return expense

    return run_in_transaction(_op)


def update_expense(expense_id: int, fields: dict) -> Expense:
    patch = validate_payload(model=Expense, payload=fields, policy=EXPENSE_POLICY, partial=True)
    if "amount" in patch:
        enforce_amount("amount", patch["amount"])

    def _op():
        expense = db.session.get(Expense, expense_id)
        if not expense:
            raise NotFoundError("Expense not found")
        for key, value in patch.items():
            setattr(expense, key, value)
        return expense

    return run_in_transaction(_op)


def remove_expense(expense_id: int) -> None:
    def _op():
        expense = db.session.get(Expense, expense_id)
        if not expense:
            raise NotFoundError("Expense not found")
        db.session.delete(expense)

    run_in_transaction(_op)


def get_summary() -> dict:
    """Grand total plus a per-type breakdown that lists every type, even empty ones."""
    expenses = db.session.query(Expense).all()

    by_type = {expense_type: 0 for expense_type in VALID_EXPENSE_TYPES}
    for expense in expenses:
        if expense.type in by_type:
            by_type[expense.type] += expense.amount

    return {
        "total": sum(e.amount for e in expenses),
        "by_type": by_type,
    }
