# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service
from .validation import AuthError, LedgerError, PermissionDeniedError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def _deny(error: LedgerError):
    return jsonify({"error": str(error)}), error.status_code


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def require_auth(f):
    """
    Require a valid session token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired, idle or revoked token
    - User account disabled
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return _deny(AuthError("Authentication required"))

        context = session_service.validate_session(token)

        if not context:
            return _deny(AuthError("Invalid or expired token"))

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require the authenticated user to be the super_admin."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return _deny(AuthError("Authentication required"))
        if not g.current_user.is_admin:
            current_app.logger.warning(
                "Admin route %s denied for user %s", request.path, g.current_user.id
            )
            return _deny(PermissionDeniedError("Admin access required"))
        return f(*args, **kwargs)
    return decorated_function


def require_self_or_admin(param: str = "staff_id"):
    """
    Allow the admin, or a staff member acting on their own records.

    `param` names the view argument holding the target user id.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return _deny(AuthError("Authentication required"))

            user = g.current_user
            if user.is_admin or kwargs.get(param) == user.id:
                return f(*args, **kwargs)

            return _deny(PermissionDeniedError("Permission denied"))

        return decorated_function
    return decorator
