# Overview: Flask API routes for timekeeping operations; parses input and returns JSON responses.

"""
Timekeeping Routes

Every signed-in user clocks themselves in and out. The staff overview
lives under /api/staff (admin only).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import timekeeping_service
from ..services.timekeeping_service import TimekeepingError, ShiftIntegrityError

MAX_SHIFT_HISTORY = 100

timekeeping_bp = Blueprint("timekeeping", __name__, url_prefix="/api/timekeeping")


@timekeeping_bp.get("/status")
@require_auth
def get_status_route():
    try:
        return jsonify(timekeeping_service.get_current_status(g.current_user.id))
    except ShiftIntegrityError as e:
        return jsonify({"error": str(e)}), 409


@timekeeping_bp.post("/clock-in")
@require_auth
def clock_in_route():
    try:
        shift = timekeeping_service.clock_in(g.current_user.id)
        return jsonify({"shift": shift.to_dict(), "message": "Clock-in recorded"}), 201
    except ShiftIntegrityError as e:
        return jsonify({"error": str(e)}), 409
    except TimekeepingError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to clock in")
        return jsonify({"error": "Internal server error"}), 500


@timekeeping_bp.post("/clock-out")
@require_auth
def clock_out_route():
    """
    Close the caller's open shift.

    Optional JSON: {"shift_id": 12}; defaults to the current open shift.
    """
    data = request.get_json(silent=True) or {}
    shift_id = data.get("shift_id")
    if shift_id is not None:
        try:
            shift_id = int(shift_id)
        except (TypeError, ValueError):
            return jsonify({"error": "shift_id must be an integer"}), 400

    try:
        if shift_id is None:
            shift = timekeeping_service.current_open_shift(g.current_user.id)
            if not shift:
                return jsonify({"error": "User is not clocked in"}), 400
            shift_id = shift.id

        shift = timekeeping_service.clock_out(shift_id, user_id=g.current_user.id)
        return jsonify({
            "shift": shift.to_dict(),
            "message": f"Clock-out recorded: {shift.to_dict()['total_hours']}h worked",
        })
    except ShiftIntegrityError as e:
        return jsonify({"error": str(e)}), 409
    except TimekeepingError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to clock out")
        return jsonify({"error": "Internal server error"}), 500


@timekeeping_bp.get("/shifts")
@require_auth
def recent_shifts_route():
    """Caller's closed shifts, newest first (?limit=10)."""
    limit = request.args.get("limit", default=10, type=int)
    limit = max(1, min(limit, MAX_SHIFT_HISTORY))
    shifts = timekeeping_service.recent_closed_shifts(g.current_user.id, limit=limit)
    return jsonify({"shifts": [s.to_dict() for s in shifts], "count": len(shifts)})
