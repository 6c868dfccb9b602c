from __future__ import annotations

from ..extensions import db
from studiodesk.time_utils import to_utc_z, utcnow


ROLE_SUPER_ADMIN = "super_admin"
ROLE_STAFF = "staff"
VALID_ROLES = (ROLE_SUPER_ADMIN, ROLE_STAFF)

USER_STATUS_ACTIVE = "active"
USER_STATUS_DISABLED = "disabled"
VALID_USER_STATUSES = (USER_STATUS_ACTIVE, USER_STATUS_DISABLED)

PAYMENT_METHOD_BANK = "bank_transfer"
PAYMENT_METHOD_WALLET = "digital_wallet"
VALID_PAYMENT_METHODS = (PAYMENT_METHOD_BANK, PAYMENT_METHOD_WALLET)


class User(db.Model):
    """
    Studio accounts: one super_admin plus any number of staff.

    Users are never hard-deleted; an admin disables them instead.
    A super_admin can never be disabled.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=False, default=ROLE_STAFF)
    full_name = db.Column(db.String(255), nullable=True)
    profile_picture = db.Column(db.String(64), nullable=True)  # storage id
    status = db.Column(db.String(16), nullable=False, default=USER_STATUS_ACTIVE)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN

    @property
    def is_active(self) -> bool:
        return self.status == USER_STATUS_ACTIVE

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "full_name": self.full_name,
            "profile_picture": self.profile_picture,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at),
        }


class StaffProfile(db.Model):
    """
    Payout details for a staff user (1:1 with User).

    first_login_completed gates the forced profile-completion step after a
    staff member's first login.
    """
    __tablename__ = "staff_profiles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    role_name = db.Column(db.String(128), nullable=False)  # job title, free text
    payment_method = db.Column(db.String(32), nullable=False)

    # Bank details
    bank_name = db.Column(db.String(128), nullable=True)
    account_holder_name = db.Column(db.String(128), nullable=True)
    account_number = db.Column(db.String(64), nullable=True)
    bank_qr_code = db.Column(db.String(64), nullable=True)

    # Wallet details
    wallet_name = db.Column(db.String(64), nullable=True)
    wallet_number = db.Column(db.String(64), nullable=True)
    wallet_qr_code = db.Column(db.String(64), nullable=True)

    first_login_completed = db.Column(db.Boolean, nullable=False, default=False)

    user = db.relationship("User", backref=db.backref("staff_profile", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "role_name": self.role_name,
            "payment_method": self.payment_method,
            "bank_name": self.bank_name,
            "account_holder_name": self.account_holder_name,
            "account_number": self.account_number,
            "bank_qr_code": self.bank_qr_code,
            "wallet_name": self.wallet_name,
            "wallet_number": self.wallet_number,
            "wallet_qr_code": self.wallet_qr_code,
            "first_login_completed": self.first_login_completed,
        }


class SessionToken(db.Model):
    """
    Server-issued session token.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - Absolute and idle timeouts (see config)
    - Revocable on logout, user disable, or idle expiry
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
