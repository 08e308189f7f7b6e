# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and Staff Account Service

WHY: Every sale and shift must be attributable to a staff account. Uses
bcrypt for password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, with upper, lower, digit and special char
- Login failures are opaque: unknown user and wrong password look the same
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
import re
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import User, Sale
from ..models.auth import ROLES, ROLE_EMPLOYEE
from ..validation import ConflictError, ValidationError, enforce_rules_user
from henhouse.time_utils import utcnow


USER_MUTABLE_FIELDS = {"full_name", "role", "hourly_rate", "external_id"}


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthError(ValueError):
    """Raised for invalid account operations."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including a
    malformed hash). bcrypt.checkpw() is timing-safe.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns User if credentials valid, None otherwise. None covers unknown
    usernames, wrong passwords and lookup errors alike so callers cannot
    tell which usernames exist.

    Updates last_login_at timestamp on successful authentication.
    """
    if not username or not password:
        return None

    try:
        user = db.session.query(User).filter(User.username == username).first()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("User lookup failed during login")
        return None

    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()

    return user


def get_user(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.full_name.asc(), User.id.asc()).all()


def create_user(
    username: str,
    password: str,
    full_name: str,
    role: str = ROLE_EMPLOYEE,
    hourly_rate: Decimal | int | str = 0,
    external_id: str | None = None,
) -> User:
    """
    Create a staff account with a bcrypt password hash.

    Raises:
        ValidationError: bad role or negative rate
        ConflictError: username already taken
        PasswordValidationError: weak password
    """
    username = (username or "").strip()
    full_name = (full_name or "").strip()
    if not username:
        raise ValidationError("username is required")
    if not full_name:
        raise ValidationError("full_name is required")

    rate = Decimal(str(hourly_rate))
    enforce_rules_user({"role": role, "hourly_rate": rate}, ROLES)

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        full_name=full_name,
        role=role,
        hourly_rate=rate,
        external_id=external_id,
        is_on_duty=False,
    )

    db.session.add(user)
    db.session.commit()

    current_app.logger.info("Created %s account %s", role, username)
    return user


def update_user(user_id: int, patch: dict) -> User:
    """Apply a validated patch (full_name, role, hourly_rate, external_id)."""
    user = db.session.get(User, user_id)
    if not user:
        raise AuthError("User not found")

    enforce_rules_user(patch, ROLES)

    for key, value in patch.items():
        if key in USER_MUTABLE_FIELDS:
            setattr(user, key, value)

    db.session.commit()
    return user


def reset_password(user_id: int, new_password: str) -> User:
    """Set a new password and revoke the user's open sessions."""
    from . import session_service

    user = db.session.get(User, user_id)
    if not user:
        raise AuthError("User not found")

    user.password_hash = hash_password(new_password)
    db.session.commit()

    session_service.end_all_sessions(user_id)
    return user


def delete_user(user_id: int) -> None:
    """
    Delete a staff account and its shifts and sessions.

    Accounts that recorded sales are kept so every sale stays attributable.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise AuthError("User not found")

    has_sales = db.session.query(Sale.id).filter_by(user_id=user_id).first()
    if has_sales:
        raise ConflictError("User has recorded sales and cannot be deleted")

    db.session.delete(user)
    db.session.commit()
