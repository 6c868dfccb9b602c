# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Staff Payment Ledger

Salary flows through four states:

    pending ──requestPayout──> payout_requested ──processPayment──> completed
                                         └──────rejectPayment─────> rejected

DESIGN PRINCIPLES:
- One pending Payment per completed task assignment (see task_service)
- A payout request consolidates *all* of a staff member's pending Payments
  into a single payout_requested Payment and deletes the originals
- Processing a payment mirrors it into the expense ledger as one
  staff_salary Expense, so reported profit counts salary exactly once
- Processing marks every pending/partial assignment of the staff member as
  paid, not only the ones behind this payout
- Rejection is terminal; consolidated amounts are not restored
- Every mutation is a single transaction (all-or-nothing)
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Expense, Payment, StaffProfile, TaskAssignment, User
from ..models.ledgers import EXPENSE_STAFF_SALARY
from ..models.payments import (
    PAYMENT_STATUS_COMPLETED,
    PAYMENT_STATUS_PAYOUT_REQUESTED,
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_REJECTED,
    VALID_PAYMENT_STATUSES,
)
from ..models.tasks import (
    ASSIGNMENT_PAYMENT_PAID,
    ASSIGNMENT_PAYMENT_PARTIAL,
    ASSIGNMENT_PAYMENT_PENDING,
)
from ..validation import NotFoundError, ValidationError, enforce_choices
from studiodesk.time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction


# Smallest consolidated amount a staff member may request
MINIMUM_PAYOUT_AMOUNT = 100

PAYOUT_REQUEST_NOTE = "Payout Request"


# =============================================================================
# QUERIES
# =============================================================================

def _enrich(payment: Payment) -> dict:
    """Payment plus the staff member's identity and a merged payout profile."""
    staff = payment.staff
    profile = db.session.query(StaffProfile).filter_by(user_id=payment.staff_id).first()

    merged = profile.to_dict() if profile else {}
    merged.update({
        "full_name": staff.full_name if staff else None,
        "username": staff.username if staff else None,
        "profile_picture": staff.profile_picture if staff else None,
        "payment_method": profile.payment_method if profile else "bank_transfer",
        "role_name": profile.role_name if profile else "Staff",
    })

    row = payment.to_dict()
    row["staff_name"] = (staff.full_name if staff else None) or "Unknown Identity"
    row["staff_username"] = staff.username if staff else None
    row["staff_profile"] = merged
    return row


def get_payment(payment_id: int) -> Payment:
    payment = db.session.get(Payment, payment_id)
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


def list_payments() -> list[dict]:
    payments = db.session.query(Payment).order_by(Payment.created_at.desc(), Payment.id.desc()).all()
    return [_enrich(p) for p in payments]


def get_pending_payments() -> list[dict]:
    """Payments still awaiting the admin: pending and payout_requested."""
    payments = db.session.query(Payment).filter(
        Payment.status.in_([PAYMENT_STATUS_PENDING, PAYMENT_STATUS_PAYOUT_REQUESTED])
    ).order_by(Payment.created_at.asc(), Payment.id.asc()).all()
    return [_enrich(p) for p in payments]


def get_staff_payments(staff_id: int) -> list[Payment]:
    """A staff member's payments, newest first."""
    return db.session.query(Payment).filter_by(
        staff_id=staff_id
    ).order_by(Payment.created_at.desc(), Payment.id.desc()).all()


def get_staff_summary(staff_id: int) -> dict:
    """
    Earnings overview for one staff member.

    total_earned sums every assignment salary regardless of payment state;
    the other totals sum Payments by status.
    """
    payments = db.session.query(Payment).filter_by(staff_id=staff_id).all()

    def _total(status: str) -> int:
        return sum(p.amount for p in payments if p.status == status)

    assignments = db.session.query(TaskAssignment).filter_by(staff_id=staff_id).all()

    return {
        "total_earned": sum(a.assigned_salary for a in assignments),
        "total_paid": _total(PAYMENT_STATUS_COMPLETED),
        "pending_payment": _total(PAYMENT_STATUS_PENDING),
        "requested_payment": _total(PAYMENT_STATUS_PAYOUT_REQUESTED),
    }


# =============================================================================
# PAYOUT LIFECYCLE
# =============================================================================

def request_payout(staff_id: int) -> Payment:
    """
    Consolidate a staff member's pending Payments into one payout request.

    Raises ValidationError (and changes nothing) when there are no pending
    Payments or their sum is below MINIMUM_PAYOUT_AMOUNT. On success the
    pending rows are deleted and a single payout_requested Payment carrying
    their sum is returned.
    """
    def _op():
        pending = lock_for_update(
            db.session.query(Payment).filter_by(staff_id=staff_id, status=PAYMENT_STATUS_PENDING)
        ).all()

        if not pending:
            raise ValidationError("No pending payments available")

        total = sum(p.amount for p in pending)
        if total < MINIMUM_PAYOUT_AMOUNT:
            raise ValidationError(f"Minimum payout amount is {MINIMUM_PAYOUT_AMOUNT}")

        for p in pending:
            db.session.delete(p)

        payout = Payment(
            staff_id=staff_id,
            amount=total,
            status=PAYMENT_STATUS_PAYOUT_REQUESTED,
            notes=PAYOUT_REQUEST_NOTE,
            created_at=utcnow(),
        )
        db.session.add(payout)
        db.session.flush()
        return payout, len(pending)

    payout, consolidated = run_in_transaction(_op)
    current_app.logger.info(
        "Payout %s requested for staff %s: %d payment(s) consolidated into %d",
        payout.id, staff_id, consolidated, payout.amount,
    )
    return payout


def process_payment(payment_id: int, payment_proof: str | None = None, notes: str | None = None) -> Payment:
    """
    Mark a payment as paid out.

    In one transaction:
    - the Payment becomes completed with paid_at, proof and notes
    - every assignment of the staff member still pending/partial becomes paid
    - one staff_salary Expense for the payment amount is recorded

    A payment that is already completed is rejected so the salary expense is
    never recorded twice.
    """
    def _op():
        payment = lock_for_update(db.session.query(Payment).filter_by(id=payment_id)).first()
        if not payment:
            raise NotFoundError("Payment not found")
        if payment.status == PAYMENT_STATUS_COMPLETED:
            raise ValidationError("Payment already completed")

        now = utcnow()
        payment.status = PAYMENT_STATUS_COMPLETED
        payment.paid_at = now
        if payment_proof is not None:
            payment.payment_proof = payment_proof
        if notes:
            payment.notes = notes

        # Not scoped to the tasks behind this payout: everything outstanding
        # for the staff member is considered settled.
        assignments = db.session.query(TaskAssignment).filter(
            TaskAssignment.staff_id == payment.staff_id,
            TaskAssignment.payment_status.in_([ASSIGNMENT_PAYMENT_PENDING, ASSIGNMENT_PAYMENT_PARTIAL]),
        ).all()
        for assignment in assignments:
            assignment.payment_status = ASSIGNMENT_PAYMENT_PAID

        staff = db.session.get(User, payment.staff_id)
        staff_label = (staff.full_name or staff.username) if staff else f"staff #{payment.staff_id}"
        db.session.add(Expense(
            type=EXPENSE_STAFF_SALARY,
            amount=payment.amount,
            description=f"Staff salary payment for {staff_label}",
            date=now,
            created_at=now,
        ))

        db.session.flush()
        return payment, len(assignments)

    payment, settled = run_in_transaction(_op)
    current_app.logger.info(
        "Payment %s completed for staff %s: amount %d, %d assignment(s) marked paid",
        payment.id, payment.staff_id, payment.amount, settled,
    )
    return payment


def reject_payment(payment_id: int, notes: str | None = None) -> Payment:
    """
    Reject a payment. Terminal: no assignment or pending amount is restored.
    """
    def _op():
        payment = db.session.get(Payment, payment_id)
        if not payment:
            raise NotFoundError("Payment not found")
        payment.status = PAYMENT_STATUS_REJECTED
        payment.notes = notes
        return payment

    payment = run_in_transaction(_op)
    current_app.logger.info("Payment %s rejected (amount %d)", payment.id, payment.amount)
    return payment


def patch_status(payment_id: int, status: str) -> Payment:
    """
    Overwrite a payment's status directly (admin correction).

    No transition check and none of the side effects of process/reject.
    """
    enforce_choices({"status": status}, {"status": VALID_PAYMENT_STATUSES})

    def _op():
        payment = db.session.get(Payment, payment_id)
        if not payment:
            raise NotFoundError("Payment not found")
        previous = payment.status
        payment.status = status
        return payment, previous

    payment, previous = run_in_transaction(_op)
    current_app.logger.info("Payment %s status patched %s -> %s", payment.id, previous, status)
    return payment
