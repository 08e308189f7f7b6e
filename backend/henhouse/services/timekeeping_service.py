# Overview: Service-layer operations for timekeeping; encapsulates business logic.

"""
Timekeeping Service (Shift-Based)

WHY: Employees clock in/out to open/close a shift. A user has at most one
open shift (end_time NULL); this module is what enforces it. Closing a
shift stores its wall-clock duration in fractional hours and flips the
user's on-duty flag.
"""

from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Shift, User
from . import notification_service
from henhouse.time_utils import utcnow, hours_between, format_money


class TimekeepingError(ValueError):
    """Raised for invalid timekeeping operations."""
    pass


class ShiftIntegrityError(TimekeepingError):
    """Raised when a user has more than one open shift."""
    pass


def _open_shifts_query(user_id: int):
    return db.session.query(Shift).filter(Shift.user_id == user_id, Shift.end_time.is_(None))


def current_open_shift(user_id: int) -> Shift | None:
    """
    The user's open shift, or None.

    More than one open shift is a data-integrity failure and raises
    ShiftIntegrityError instead of picking one.
    """
    shifts = _open_shifts_query(user_id).order_by(Shift.start_time.asc()).limit(2).all()
    if len(shifts) > 1:
        current_app.logger.error("User %s has more than one open shift", user_id)
        raise ShiftIntegrityError("Multiple open shifts found for user")
    return shifts[0] if shifts else None


def clock_in(user_id: int) -> Shift:
    user = db.session.get(User, user_id)
    if not user:
        raise TimekeepingError("User not found")

    if current_open_shift(user_id):
        raise TimekeepingError("User is already clocked in")

    shift = Shift(user_id=user_id, start_time=utcnow(), end_time=None)
    db.session.add(shift)
    user.is_on_duty = True
    db.session.commit()

    current_app.logger.info("Clock in: user %s, shift %s", user.username, shift.id)
    notification_service.notify_clock_in(user.full_name)
    return shift


def clock_out(shift_id: int, user_id: int | None = None) -> Shift:
    """
    Close an open shift.

    When user_id is given the shift must belong to that user.
    """
    shift = db.session.get(Shift, shift_id)
    if not shift or (user_id is not None and shift.user_id != user_id):
        raise TimekeepingError("Shift not found")

    if shift.end_time is not None:
        raise TimekeepingError("Shift is already closed")

    end_time = utcnow()
    shift.end_time = end_time
    shift.total_hours = hours_between(shift.start_time, end_time)

    user = db.session.get(User, shift.user_id)
    user.is_on_duty = False
    db.session.commit()

    current_app.logger.info(
        "Clock out: user %s, shift %s, %s h", user.username, shift.id, format_money(shift.total_hours),
    )
    notification_service.notify_clock_out(user.full_name, shift.total_hours)
    return shift


def recent_closed_shifts(user_id: int, limit: int = 10) -> list[Shift]:
    """Closed shifts, most recent first."""
    return (
        db.session.query(Shift)
        .filter(Shift.user_id == user_id, Shift.end_time.isnot(None))
        .order_by(Shift.start_time.desc(), Shift.id.desc())
        .limit(limit)
        .all()
    )


def elapsed_hours(shift: Shift, now: datetime | None = None) -> Decimal:
    """Hours since start for an open shift, stored hours for a closed one."""
    if shift.end_time is not None and shift.total_hours is not None:
        return Decimal(shift.total_hours)
    return hours_between(shift.start_time, shift.end_time or now or utcnow())


def get_current_status(user_id: int) -> dict:
    shift = current_open_shift(user_id)
    if not shift:
        return {"status": "CLOCKED_OUT", "shift": None, "elapsed_hours": None}

    return {
        "status": "CLOCKED_IN",
        "shift": shift.to_dict(),
        "elapsed_hours": format_money(elapsed_hours(shift)),
    }


def total_closed_hours(user_id: int) -> Decimal:
    rows = (
        db.session.query(Shift.total_hours)
        .filter(Shift.user_id == user_id, Shift.end_time.isnot(None))
        .all()
    )
    return sum((Decimal(r.total_hours or 0) for r in rows), Decimal("0"))


def staff_overview(now: datetime | None = None) -> list[dict]:
    """
    One entry per user for the staff screen: account, total closed hours,
    and the open shift with its running duration.
    """
    now = now or utcnow()
    result = []
    users = db.session.query(User).order_by(User.full_name.asc(), User.id.asc()).all()
    for user in users:
        try:
            shift = current_open_shift(user.id)
        except ShiftIntegrityError:
            shift = None
            integrity_error = True
        else:
            integrity_error = False

        entry = user.to_dict()
        entry["total_hours"] = format_money(total_closed_hours(user.id))
        entry["current_shift"] = shift.to_dict() if shift else None
        entry["current_shift_hours"] = format_money(elapsed_hours(shift, now)) if shift else None
        if integrity_error:
            entry["shift_error"] = "Multiple open shifts"
        result.append(entry)
    return result
