# Overview: Flask API routes for staff administration; parses input and returns JSON responses.

"""
Staff management routes (admin only).

GET /api/staff returns each account with its total closed hours and
its open shift, the data behind the staff screen.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..models import User
from ..models.auth import ROLE_ADMIN, ROLE_EMPLOYEE
from ..services import auth_service, timekeeping_service
from ..services.auth_service import AuthError, PasswordValidationError
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, ConflictError


USER_POLICY = ModelValidationPolicy(
    writable_fields={"full_name", "role", "hourly_rate", "external_id"},
    required_on_create={"full_name"},
)

staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


@staff_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def staff_overview_route():
    staff = timekeeping_service.staff_overview()
    return jsonify({
        "items": staff,
        "count": len(staff),
        "on_duty": sum(1 for s in staff if s["is_on_duty"]),
    })


@staff_bp.get("/<int:user_id>/shifts")
@require_auth
@require_role(ROLE_ADMIN)
def staff_shifts_route(user_id: int):
    """Closed shifts of one staff member, newest first (?limit=10)."""
    if not auth_service.get_user(user_id):
        return jsonify({"error": "User not found"}), 404

    limit = request.args.get("limit", default=10, type=int)
    limit = max(1, min(limit, 100))
    shifts = timekeeping_service.recent_closed_shifts(user_id, limit=limit)
    return jsonify({"shifts": [s.to_dict() for s in shifts], "count": len(shifts)})


@staff_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_staff_route():
    """
    Create a staff account.

    Request body:
    - username: str (required)
    - password: str (required)
    - full_name: str (required)
    - role: "admin" | "employee" (optional, default employee)
    - hourly_rate: decimal (optional, default 0)
    - external_id: str (optional)
    """
    data = request.get_json(silent=True) or {}
    username = data.pop("username", None)
    password = data.pop("password", None)

    if not username or not password:
        return jsonify({"error": "username and password required"}), 400

    try:
        patch = validate_payload(model=User, payload=data, policy=USER_POLICY, partial=False)
        user = auth_service.create_user(
            username=username,
            password=password,
            full_name=patch["full_name"],
            role=patch.get("role") or ROLE_EMPLOYEE,
            hourly_rate=patch.get("hourly_rate") or 0,
            external_id=patch.get("external_id"),
        )
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict(), "message": "User created successfully"}), 201


@staff_bp.patch("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_staff_route(user_id: int):
    data = request.get_json(silent=True) or {}

    if user_id == g.current_user.id and data.get("role", ROLE_ADMIN) != ROLE_ADMIN:
        return jsonify({"error": "Cannot remove your own admin role"}), 400

    try:
        patch = validate_payload(model=User, payload=data, policy=USER_POLICY, partial=True)
        user = auth_service.update_user(user_id, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError:
        return jsonify({"error": "User not found"}), 404

    return jsonify({"user": user.to_dict(), "message": "User updated successfully"})


@staff_bp.post("/<int:user_id>/reset-password")
@require_auth
@require_role(ROLE_ADMIN)
def reset_password_route(user_id: int):
    """
    Set a new password. Every open session of that user is revoked.

    Request body:
    - new_password: str (required)
    """
    data = request.get_json(silent=True) or {}
    new_password = data.get("new_password")
    if not new_password:
        return jsonify({"error": "new_password required"}), 400

    try:
        auth_service.reset_password(user_id, new_password)
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError:
        return jsonify({"error": "User not found"}), 404

    return jsonify({"message": "Password reset successfully"})


@staff_bp.delete("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_staff_route(user_id: int):
    if user_id == g.current_user.id:
        return jsonify({"error": "Cannot delete your own account"}), 400

    try:
        auth_service.delete_user(user_id)
    except AuthError:
        return jsonify({"error": "User not found"}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({"ok": True})
