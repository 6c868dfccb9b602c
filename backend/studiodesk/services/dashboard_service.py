# Overview: Service-layer operations for dashboard reporting; read-only folds over the ledgers.

"""
Dashboard Reporting

Every figure is recomputed per request by scanning the ledgers; nothing is
cached or persisted. Reads are not isolated from concurrent writes.

Income recognition (per task):
- payment_status "paid" or income_status "received"  -> total_budget
- payment_status or income_status "partial"           -> payment_received_amount
- otherwise                                           -> 0

net_profit = total_income - total_expenses. Completed payouts are already in
the expense ledger as staff_salary, so salaries are never subtracted twice.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import or_

from ..extensions import db
from ..models import Expense, Payment, Task, TaskAssignment, User
from ..models.payments import (
    PAYMENT_STATUS_COMPLETED,
    PAYMENT_STATUS_PAYOUT_REQUESTED,
    PAYMENT_STATUS_PENDING,
)
from ..models.tasks import (
    ASSIGNMENT_PAYMENT_PAID,
    ASSIGNMENT_PAYMENT_PENDING,
    INCOME_PARTIAL,
    INCOME_PENDING,
    INCOME_RECEIVED,
    TASK_PAYMENT_PAID,
    TASK_PAYMENT_PARTIAL,
    TASK_PAYMENT_PENDING,
    TASK_STATUS_COMPLETED,
    TASK_STATUS_IN_PROGRESS,
    TASK_STATUS_PENDING,
)
from ..validation import ValidationError
from studiodesk.time_utils import month_label, month_start, utcnow


RANGE_ALL = "all"

# Window length per range key; RANGE_ALL applies no filter
TIME_RANGES = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "12m": timedelta(days=365),
}

UNKNOWN_STAFF = "Unknown"


def window_start(time_range: str | None, default: str = RANGE_ALL) -> datetime | None:
    """Earliest timestamp included for a range key, or None for all time."""
    time_range = time_range or default
    if time_range == RANGE_ALL:
        return None
    if time_range not in TIME_RANGES:
        allowed = [*TIME_RANGES, RANGE_ALL]
        raise ValidationError(f"Invalid timeRange: {time_range}. Must be one of {allowed}")
    return utcnow() - TIME_RANGES[time_range]


def _since(query, column, min_time: datetime | None):
    if min_time is None:
        return query
    return query.filter(column >= min_time)


def recognized_income(task: Task) -> int:
    if task.payment_status == TASK_PAYMENT_PAID or task.income_status == INCOME_RECEIVED:
        return task.total_budget or 0
    if task.payment_status == TASK_PAYMENT_PARTIAL or task.income_status == INCOME_PARTIAL:
        return task.payment_received_amount or 0
    return 0


def outstanding_income(task: Task) -> int:
    # "pending" on either field wins over "partial"
    if task.payment_status == TASK_PAYMENT_PENDING or task.income_status == INCOME_PENDING:
        return task.total_budget or 0
    if task.payment_status == TASK_PAYMENT_PARTIAL or task.income_status == INCOME_PARTIAL:
        return task.remaining_amount or 0
    return 0


def get_metrics(time_range: str | None = None) -> dict:
    min_time = window_start(time_range)

    tasks = _since(db.session.query(Task), Task.created_at, min_time).all()
    assignments = _since(db.session.query(TaskAssignment), TaskAssignment.assigned_at, min_time).all()
    expenses = _since(db.session.query(Expense), Expense.date, min_time).all()
    payments = _since(db.session.query(Payment), Payment.created_at, min_time).all()

    total_income = sum(recognized_income(t) for t in tasks)
    total_expenses = sum(e.amount for e in expenses)

    def _salaries(status: str) -> int:
        return sum(a.assigned_salary or 0 for a in assignments if a.payment_status == status)

    def _payments(status: str) -> int:
        return sum(p.amount for p in payments if p.status == status)

    def _tasks(status: str) -> int:
        return sum(1 for t in tasks if t.status == status)

    return {
        "total_income": total_income,
        "pending_income": sum(outstanding_income(t) for t in tasks),
        "total_expenses": total_expenses,
        "net_profit": total_income - total_expenses,
        "task_payments_paid": _salaries(ASSIGNMENT_PAYMENT_PAID),
        "task_payments_pending": _salaries(ASSIGNMENT_PAYMENT_PENDING),
        "pending_staff_payments": _payments(PAYMENT_STATUS_PENDING),
        "requested_staff_payments": _payments(PAYMENT_STATUS_PAYOUT_REQUESTED),
        "completed_staff_payments": _payments(PAYMENT_STATUS_COMPLETED),
        "total_tasks": len(tasks),
        "completed_tasks": _tasks(TASK_STATUS_COMPLETED),
        "in_progress_tasks": _tasks(TASK_STATUS_IN_PROGRESS),
        "pending_tasks": _tasks(TASK_STATUS_PENDING),
    }


def get_monthly_data(time_range: str | None = None) -> list[dict]:
    """
    Income vs expenses per calendar month, oldest month first.

    Tasks are bucketed by received_date (created_at when missing) and
    expenses by date. Defaults to the last 12 months.
    """
    min_time = window_start(time_range, default="12m")

    task_query = db.session.query(Task)
    if min_time is not None:
        task_query = task_query.filter(or_(Task.received_date >= min_time, Task.created_at >= min_time))
    tasks = task_query.all()
    expenses = _since(db.session.query(Expense), Expense.date, min_time).all()

    buckets: dict[datetime, dict] = {}

    def _bucket(when: datetime) -> dict:
        start = month_start(when)
        if start not in buckets:
            buckets[start] = {"month": month_label(start), "income": 0, "expenses": 0}
        return buckets[start]

    for task in tasks:
        _bucket(task.received_date or task.created_at)["income"] += recognized_income(task)

    for expense in expenses:
        _bucket(expense.date)["expenses"] += expense.amount

    return [
        {**buckets[start], "timestamp": int(start.replace(tzinfo=timezone.utc).timestamp() * 1000)}
        for start in sorted(buckets)
    ]


def get_staff_payment_distribution(time_range: str | None = None) -> list[dict]:
    """Payment totals (all statuses) per staff full name, largest first."""
    min_time = window_start(time_range)
    payments = _since(db.session.query(Payment), Payment.created_at, min_time).all()

    names = {u.id: u.full_name for u in db.session.query(User).all()}

    totals: dict[str, int] = {}
    for payment in payments:
        name = names.get(payment.staff_id) or UNKNOWN_STAFF
        totals[name] = totals.get(name, 0) + payment.amount

    rows = [{"name": name, "amount": amount} for name, amount in totals.items()]
    rows.sort(key=lambda row: row["amount"], reverse=True)
    return rows
