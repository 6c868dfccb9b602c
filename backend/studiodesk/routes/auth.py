# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Username/password login returning an opaque session token
- Token revocation on logout
- Current-user lookup (user + staff profile + first-login flag)
- Idempotent bootstrap of the root admin
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..validation import AuthError, LedgerError
from ..decorators import require_auth, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Request body:
    {
        "username": "admin@icrisstudio.com",
        "password": "..."
    }

    Returns 200 with {user, staffProfile, firstLoginRequired, token, session}.
    The token must be sent as "Authorization: Bearer <token>".
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400
        if not isinstance(username, str) or not isinstance(password, str):
            return jsonify({"error": "username and password must be strings"}), 400

        try:
            result = auth_service.login(username, password)
        except AuthError as e:
            current_app.logger.warning(
                "Failed login for %r from %s: %s", username, request.remote_addr, e
            )
            raise

        session, token = session_service.create_session(
            user_id=result.user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        payload = result.to_dict()
        payload.update({
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful",
        })
        return jsonify(payload), 200

    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the presented session token."""
    try:
        session_service.revoke_session(bearer_token(), reason="User logout")
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    try:
        result = auth_service.build_login_result(g.current_user)
        return jsonify(result.to_dict()), 200
    except Exception:
        current_app.logger.exception("Failed to load current user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/setup-admin")
def setup_admin_route():
    """
    Create the default super_admin if it does not exist yet.

    Safe to call repeatedly; later calls report "Admin already exists".
    """
    try:
        result = auth_service.create_default_admin()
        return jsonify(result), 201 if result["success"] else 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create default admin")
        return jsonify({"error": "Internal server error"}), 500
