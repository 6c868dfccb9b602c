# Overview: Service-layer operations for users and staff profiles.

from __future__ import annotations

from ..extensions import db
from ..models import User, StaffProfile
from ..models.auth import (
    ROLE_STAFF,
    ROLE_SUPER_ADMIN,
    USER_STATUS_ACTIVE,
    USER_STATUS_DISABLED,
    VALID_PAYMENT_METHODS,
    VALID_ROLES,
    VALID_USER_STATUSES,
)
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_choices,
    validate_payload,
)
from studiodesk.time_utils import utcnow
from .auth_service import hash_password
from .concurrency import run_in_transaction
from .session_service import revoke_all_user_sessions


PROFILE_FIELDS = (
    "role_name",
    "payment_method",
    "bank_name",
    "account_holder_name",
    "account_number",
    "bank_qr_code",
    "wallet_name",
    "wallet_number",
    "wallet_qr_code",
)

# Password is handled separately: it is hashed, never stored as sent
USER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "full_name", "status", "role", "profile_picture"},
    choices={"role": VALID_ROLES, "status": VALID_USER_STATUSES},
)


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.asc(), User.id.asc()).all()


def _staff_row(user: User) -> dict:
    profile = user.staff_profile
    return {
        "id": user.id,
        "username": user.username,
        "full_name": user.full_name,
        "profile_picture": user.profile_picture,
        "role_name": profile.role_name if profile else "Not assigned",
        "payment_method": profile.payment_method if profile else "Not set",
        "status": user.status,
    }


def list_all_staff() -> list[dict]:
    """Every staff member, active and disabled."""
    users = db.session.query(User).filter_by(role=ROLE_STAFF).order_by(User.id.asc()).all()
    return [_staff_row(u) for u in users]


def list_active_staff() -> list[dict]:
    """Staff members that can be assigned to tasks."""
    users = db.session.query(User).filter_by(
        status=USER_STATUS_ACTIVE,
        role=ROLE_STAFF,
    ).order_by(User.id.asc()).all()
    return [_staff_row(u) for u in users]


def create_user(username: str, password: str, full_name: str, role: str = ROLE_STAFF) -> User:
    """
    Create a new active user.

    Raises ValidationError on a duplicate username or unknown role.
    """
    enforce_choices({"role": role}, {"role": VALID_ROLES})

    def _op():
        existing = db.session.query(User).filter_by(username=username).first()
        if existing:
            raise ValidationError("Username already exists")

        user = User(
            username=username,
            password_hash=hash_password(password),
            role=role,
            full_name=full_name,
            status=USER_STATUS_ACTIVE,
            created_at=utcnow(),
        )
        db.session.add(user)
        db.session.flush()
        return user

    return run_in_transaction(_op)


def update_user(user_id: int, fields: dict) -> User:
    """
    Patch a user with only the fields provided.

    A supplied password is re-hashed. Changing to a taken username is
    rejected, and a super_admin can be neither disabled nor demoted.
    """
    if not isinstance(fields, dict):
        raise ValidationError("Invalid JSON payload")
    fields = dict(fields)
    password = fields.pop("password", None)
    if password is not None and (not isinstance(password, str) or not password):
        raise ValidationError("password must be a non-empty string")
    patch = validate_payload(model=User, payload=fields, policy=USER_POLICY, partial=True)

    def _op():
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")

        new_username = patch.get("username")
        if new_username and new_username != user.username:
            taken = db.session.query(User).filter_by(username=new_username).first()
            if taken:
                raise ValidationError("Username already taken")

        # Judged on the stored role so one call cannot demote and disable
        if user.role == ROLE_SUPER_ADMIN:
            if patch.get("status", user.status) == USER_STATUS_DISABLED:
                raise ValidationError("Cannot disable super admin")
            if patch.get("role", user.role) != ROLE_SUPER_ADMIN:
                raise ValidationError("Cannot demote super admin")

        if password:
            user.password_hash = hash_password(password)
        for key, value in patch.items():
            setattr(user, key, value)

        if user.status == USER_STATUS_DISABLED:
            revoke_all_user_sessions(user.id, reason="User account disabled")

        return user

    return run_in_transaction(_op)


def disable_user(user_id: int) -> User:
    """Disable a user and revoke their sessions. Super admins cannot be disabled."""
    def _op():
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")

        if user.role == ROLE_SUPER_ADMIN:
            raise ValidationError("Cannot disable super admin")

        user.status = USER_STATUS_DISABLED
        revoke_all_user_sessions(user.id, reason="User account disabled")
        return user

    return run_in_transaction(_op)


def get_staff_profile(user_id: int) -> StaffProfile | None:
    return db.session.query(StaffProfile).filter_by(user_id=user_id).first()


def update_staff_profile(user_id: int, role_name: str, payment_method: str, **details) -> StaffProfile:
    """
    Create or replace the staff member's payout profile.

    Always marks first_login_completed, which lifts the forced
    profile-completion step. Optional details not supplied are cleared.
    """
    enforce_choices({"payment_method": payment_method}, {"payment_method": VALID_PAYMENT_METHODS})
    unknown = set(details) - set(PROFILE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    def _op():
        if not db.session.get(User, user_id):
            raise NotFoundError("User not found")

        profile = db.session.query(StaffProfile).filter_by(user_id=user_id).first()
        if profile is None:
            profile = StaffProfile(user_id=user_id)
            db.session.add(profile)

        profile.role_name = role_name
        profile.payment_method = payment_method
        for field in PROFILE_FIELDS[2:]:
            setattr(profile, field, details.get(field))
        profile.first_login_completed = True

        db.session.flush()
        return profile

    return run_in_transaction(_op)
