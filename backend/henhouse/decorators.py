# Overview: Request decorators for API routes (authentication and role gates).

from functools import wraps
from flask import request, jsonify, g

from .navigation import FALLBACK_SCREEN
from .services import session_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    Returns 401 if the header is missing, or the token is unknown, revoked
    or belongs to a deleted user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.restore_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """
    Require the authenticated user to hold role.

    Must be stacked under @require_auth. Denials tell the client which
    screen to fall back to.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required"}), 401

            if user.role != role:
                return jsonify({
                    "error": "Permission denied",
                    "required_role": role,
                    "redirect": FALLBACK_SCREEN,
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator
