# Overview: Service-layer operations for tax; encapsulates business logic and database work.

"""
Tax Ledger

Per-task tax obligations. A tax keeps its own status, due date and paid date;
none of them feed back into the task or payment ledgers.
"""

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import Tax, Task, User
from ..models.ledgers import TAX_STATUS_PAID, TAX_STATUS_PENDING, TAX_TYPES, VALID_TAX_STATUSES
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_amount,
    validate_payload,
)
from studiodesk.time_utils import utcnow
from .concurrency import run_in_transaction


DEFAULT_DUE_DAYS = 30

TAX_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "task_id",
        "project_name",
        "tax_type",
        "tax_amount",
        "assigned_to",
        "description",
        "due_date",
    },
    required_on_create={"task_id", "project_name", "tax_type", "tax_amount"},
    choices={"tax_type": TAX_TYPES},
)

# Once created, only filing details change
TAX_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"assigned_to", "tax_status", "paid_at", "proof", "notes"},
    choices={"tax_status": VALID_TAX_STATUSES},
)


def _with_task(tax: Tax) -> dict:
    row = tax.to_dict()
    task = tax.task
    row["project_name"] = task.project_name if task else None
    row["client_name"] = task.client_name if task else None
    return row


def _check_assignees(staff_ids: list[str]) -> list[int]:
    ids = []
    for raw in staff_ids:
        try:
            ids.append(int(raw))
        except ValueError:
            raise ValidationError("assigned_to must be a list of user ids")
    known = {u.id for u in db.session.query(User).filter(User.id.in_(ids)).all()} if ids else set()
    missing = [i for i in ids if i not in known]
    if missing:
        raise NotFoundError(f"User not found: {missing[0]}")
    return ids


def list_taxes() -> list[dict]:
    taxes = db.session.query(Tax).order_by(Tax.created_at.desc(), Tax.id.desc()).all()
    return [_with_task(t) for t in taxes]


def get_tax(tax_id: int) -> Tax:
    tax = db.session.get(Tax, tax_id)
    if not tax:
        raise NotFoundError("Tax not found")
    return tax


def get_by_task_id(task_id: int) -> list[Tax]:
    return db.session.query(Tax).filter_by(task_id=task_id).order_by(Tax.id.asc()).all()


def get_pending_taxes() -> list[dict]:
    taxes = db.session.query(Tax).filter_by(
        tax_status=TAX_STATUS_PENDING
    ).order_by(Tax.due_date.asc(), Tax.id.asc()).all()
    return [_with_task(t) for t in taxes]


def create_tax(fields: dict) -> Tax:
    """
    Record a tax against an existing task.

    Always starts pending; due_date defaults to 30 days from now and
    description to an empty string.
    """
    patch = validate_payload(model=Tax, payload=fields, policy=TAX_CREATE_POLICY, partial=False)
    enforce_amount("tax_amount", patch["tax_amount"])

    def _op():
        if not db.session.get(Task, patch["task_id"]):
            raise NotFoundError("Task not found")

        now = utcnow()
        tax = Tax(
            task_id=patch["task_id"],
            project_name=patch["project_name"],
            tax_type=patch["tax_type"],
            tax_amount=patch["tax_amount"],
            tax_status=TAX_STATUS_PENDING,
            assigned_to=_check_assignees(patch.get("assigned_to") or []),
            description=patch.get("description") or "",
            due_date=patch.get("due_date") or now + timedelta(days=DEFAULT_DUE_DAYS),
            created_at=now,
        )
        db.session.add(tax)
        db.session.flush()
        return tax

    return run_in_transaction(_op)


def update_tax(tax_id: int, fields: dict) -> Tax:
    """Patch filing details. Empty values are ignored rather than clearing the field."""
    patch = validate_payload(model=Tax, payload=fields, policy=TAX_UPDATE_POLICY, partial=True)
    patch = {k: v for k, v in patch.items() if v}

    def _op():
        tax = db.session.get(Tax, tax_id)
        if not tax:
            raise NotFoundError("Tax not found")
        if "assigned_to" in patch:
            patch["assigned_to"] = _check_assignees(patch["assigned_to"])
        for key, value in patch.items():
            setattr(tax, key, value)
        return tax

    return run_in_transaction(_op)


def remove_tax(tax_id: int) -> None:
    def _op():
        tax = db.session.get(Tax, tax_id)
        if not tax:
            raise NotFoundError("Tax not found")
        db.session.delete(tax)

    run_in_transaction(_op)


def get_tax_summary() -> dict:
    taxes = db.session.query(Tax).all()
    pending = [t for t in taxes if t.tax_status == TAX_STATUS_PENDING]
    paid = [t for t in taxes if t.tax_status == TAX_STATUS_PAID]

    return {
        "total_pending": sum(t.tax_amount for t in pending),
        "total_paid": sum(t.tax_amount for t in paid),
        "pending_count": len(pending),
        "paid_count": len(paid),
        "total_taxes": len(taxes),
    }
