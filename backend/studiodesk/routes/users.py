# Overview: Flask API routes for users and staff profiles; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import user_service
from ..validation import LedgerError
from ..decorators import require_auth, require_admin, require_self_or_admin


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/")
@require_auth
@require_admin
def list_users_route():
    try:
        users = user_service.list_users()
        return jsonify({"users": [u.to_dict() for u in users]}), 200
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.post("/")
@require_auth
@require_admin
def create_user_route():
    """
    Create a user account.

    Request body:
    {
        "username": "jane@studio.com",
        "password": "...",
        "full_name": "Jane Doe",
        "role": "staff"  (optional, default staff)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")
        full_name = data.get("full_name")

        if not all([username, password, full_name]):
            return jsonify({"error": "username, password and full_name required"}), 400
        if not all(isinstance(v, str) for v in (username, password, full_name)):
            return jsonify({"error": "username, password and full_name must be strings"}), 400

        user = user_service.create_user(
            username=username,
            password=password,
            full_name=full_name,
            role=data.get("role") or "staff",
        )
        return jsonify({"user": user.to_dict()}), 201

    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.get("/staff")
@require_auth
@require_admin
def list_staff_route():
    """All staff; ?active=true limits to assignable (active) staff."""
    try:
        active_only = request.args.get("active", "false").lower() == "true"
        staff = user_service.list_active_staff() if active_only else user_service.list_all_staff()
        return jsonify({"staff": staff}), 200
    except Exception:
        current_app.logger.exception("Failed to list staff")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.get("/<int:user_id>")
@require_auth
@require_self_or_admin("user_id")
def get_user_route(user_id: int):
    try:
        user = user_service.get_user(user_id)
        return jsonify({"user": user.to_dict()}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.patch("/<int:user_id>")
@require_auth
@require_admin
def update_user_route(user_id: int):
    """
    Patch a user. Allowed keys: username, password, full_name, status, role,
    profile_picture.
    """
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400

        user = user_service.update_user(user_id, data)
        return jsonify({"user": user.to_dict()}), 200

    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.post("/<int:user_id>/disable")
@require_auth
@require_admin
def disable_user_route(user_id: int):
    try:
        user = user_service.disable_user(user_id)
        return jsonify({"user": user.to_dict()}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to disable user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.get("/<int:user_id>/staff-profile")
@require_auth
@require_self_or_admin("user_id")
def get_staff_profile_route(user_id: int):
    try:
        profile = user_service.get_staff_profile(user_id)
        return jsonify({"staff_profile": profile.to_dict() if profile else None}), 200
    except Exception:
        current_app.logger.exception("Failed to get staff profile")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/<int:user_id>/staff-profile")
@require_auth
@require_self_or_admin("user_id")
def update_staff_profile_route(user_id: int):
    """
    Create or replace a staff payout profile.

    Request body:
    {
        "role_name": "Video Editor",
        "payment_method": "bank_transfer" | "digital_wallet",
        "bank_name": ..., "account_holder_name": ..., "account_number": ...,
        "bank_qr_code": ..., "wallet_name": ..., "wallet_number": ...,
        "wallet_qr_code": ...
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400

        role_name = data.pop("role_name", None)
        payment_method = data.pop("payment_method", None)
        if not all([role_name, payment_method]):
            return jsonify({"error": "role_name and payment_method required"}), 400

        profile = user_service.update_staff_profile(
            user_id,
            role_name=role_name,
            payment_method=payment_method,
            **data,
        )
        return jsonify({"staff_profile": profile.to_dict()}), 200

    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update staff profile")
        return jsonify({"error": "Internal server error"}), 500
