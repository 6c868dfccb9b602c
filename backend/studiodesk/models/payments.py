from __future__ import annotations

from ..extensions import db
from studiodesk.time_utils import to_utc_z, utcnow


PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PAYOUT_REQUESTED = "payout_requested"
PAYMENT_STATUS_COMPLETED = "completed"
PAYMENT_STATUS_REJECTED = "rejected"
VALID_PAYMENT_STATUSES = (
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_PAYOUT_REQUESTED,
    PAYMENT_STATUS_COMPLETED,
    PAYMENT_STATUS_REJECTED,
)


class Payment(db.Model):
    """
    Salary owed or paid to one staff member.

    Lifecycle:
    - pending: one row per completed task assignment
    - payout_requested: the staff member's pending rows consolidated into one
    - completed: paid out; mirrored into the expense ledger
    - rejected: terminal, nothing is restored
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_staff_id", "staff_id"),
        db.Index("ix_payments_status", "status"),
        db.Index("ix_payments_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    amount = db.Column(db.Integer, nullable=False)
    payment_proof = db.Column(db.String(64), nullable=True)  # storage id
    status = db.Column(db.String(32), nullable=False, default=PAYMENT_STATUS_PENDING)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    staff = db.relationship("User", backref=db.backref("payments", lazy=True))

    def __repr__(self) -> str:
        return f"<Payment id={self.id} staff_id={self.staff_id} amount={self.amount} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "staff_id": self.staff_id,
            "amount": self.amount,
            "payment_proof": self.payment_proof,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "paid_at": to_utc_z(self.paid_at),
        }
