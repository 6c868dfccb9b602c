# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Passwords are hashed with bcrypt (cost factor 12) and verified with the
timing-safe bcrypt.checkpw. Session tokens are issued separately
(see session_service.py).
"""

from __future__ import annotations

from dataclasses import dataclass

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, StaffProfile
from ..models.auth import ROLE_STAFF, ROLE_SUPER_ADMIN, USER_STATUS_ACTIVE, USER_STATUS_DISABLED
from ..validation import AuthError, ValidationError
from studiodesk.time_utils import utcnow
from .concurrency import run_in_transaction


INVALID_CREDENTIALS = "Invalid username or password"


@dataclass
class LoginResult:
    """What a successful login hands back to the caller."""
    user: User
    staff_profile: StaffProfile | None
    first_login_required: bool

    def to_dict(self) -> dict:
        return {
            "user": self.user.to_dict(),
            "staffProfile": self.staff_profile.to_dict() if self.staff_profile else None,
            "firstLoginRequired": self.first_login_required,
        }


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Cost factor comes from BCRYPT_ROUNDS (12 unless overridden; tests lower it).
    """
    if not password:
        raise ValidationError("Password is required")
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for anything that is not a valid bcrypt hash.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def get_staff_profile(user_id: int) -> StaffProfile | None:
    return db.session.query(StaffProfile).filter_by(user_id=user_id).first()


def is_first_login_required(user: User, staff_profile: StaffProfile | None) -> bool:
    """Staff must complete their payout profile before using the app."""
    return user.role == ROLE_STAFF and (
        staff_profile is None or not staff_profile.first_login_completed
    )


def build_login_result(user: User) -> LoginResult:
    staff_profile = get_staff_profile(user.id) if user.role == ROLE_STAFF else None
    return LoginResult(
        user=user,
        staff_profile=staff_profile,
        first_login_required=is_first_login_required(user, staff_profile),
    )


def login(username: str, password: str) -> LoginResult:
    """
    Check a username/password pair.

    Raises AuthError when the user does not exist, is disabled, or the
    password does not match. Updates last_login_at on success.
    """
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise AuthError(INVALID_CREDENTIALS)

    if user.status == USER_STATUS_DISABLED:
        raise AuthError("Account is disabled")

    if not verify_password(password, user.password_hash):
        raise AuthError(INVALID_CREDENTIALS)

    user.last_login_at = utcnow()
    db.session.commit()

    return build_login_result(user)


def create_default_admin() -> dict:
    """
    Bootstrap the root super_admin.

    Idempotent: if a user with the configured admin username exists this is
    a no-op.
    """
    username = current_app.config["DEFAULT_ADMIN_USERNAME"]
    password = current_app.config["DEFAULT_ADMIN_PASSWORD"]

    def _op():
        existing = db.session.query(User).filter_by(username=username).first()
        if existing:
            return {"success": False, "message": "Admin already exists"}

        admin = User(
            username=username,
            password_hash=hash_password(password),
            role=ROLE_SUPER_ADMIN,
            full_name="Super Admin",
            status=USER_STATUS_ACTIVE,
            created_at=utcnow(),
        )
        db.session.add(admin)
        db.session.flush()
        return {"success": True, "adminId": admin.id}

    result = run_in_transaction(_op)
    if result["success"]:
        current_app.logger.info("Created default admin %s", username)
    return result
