# Overview: Flask API routes for login, logout and session restore.

"""
Authentication Routes

The client stores the token from /login under its durable key
(henhouse_session_token) and calls /session on start-up to restore the
identity. /logout revokes the token; the client drops its key.

Login failures always answer the same message so usernames cannot be
probed.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, bearer_token
from ..navigation import menu_for, default_screen, resolve_screen
from ..services import auth_service, session_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

INVALID_CREDENTIALS = "Invalid credentials"


def _identity_payload(user) -> dict:
    return {
        "user": user.to_dict(),
        "menu": menu_for(user.role),
        "default_screen": default_screen(user.role),
    }


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and issue a session token.

    Expects JSON: {"username": "...", "password": "..."}
    """
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            data = {}
        username = data.get("username")
        password = data.get("password")
        if not isinstance(username, str) or not isinstance(password, str):
            username = password = ""
        username = username.strip()

        if not username or not password:
            return jsonify({"error": "username and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            current_app.logger.info("Failed login attempt")
            return jsonify({"error": INVALID_CREDENTIALS}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
        )

        payload = _identity_payload(user)
        payload.update({
            "token": token,
            "storage_key": session_service.CLIENT_STORAGE_KEY,
            "session": session.to_dict(),
            "message": "Login successful",
        })
        return jsonify(payload), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        if not session_service.end_session(token):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/session")
@require_auth
def session_route():
    """Restore the identity behind the stored token."""
    return jsonify(_identity_payload(g.current_user)), 200


@auth_bp.get("/screens/<screen>")
@require_auth
def resolve_screen_route(screen: str):
    """Screen to show for a navigation request (employees fall back to the register)."""
    resolved = resolve_screen(g.current_user.role, screen)
    return jsonify({"requested": screen, "screen": resolved, "redirected": resolved != screen}), 200
