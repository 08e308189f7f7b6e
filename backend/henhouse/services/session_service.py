# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

The signed-in identity is not kept in process-wide state. Login issues a
bearer token; the client stores it under a durable key and sends it with
every request. Each request restores an explicit SessionContext from it.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Revocable on logout and on password reset
- No expiry: a session is valid while it is unrevoked and its user exists
"""

import secrets
import hashlib
from dataclasses import dataclass

from ..extensions import db
from ..models import SessionToken, User
from henhouse.time_utils import utcnow


# Key under which clients persist the bearer token
CLIENT_STORAGE_KEY = "henhouse_session_token"


@dataclass
class SessionContext:
    """Identity restored from a bearer token for one request."""
    user: User
    session: SessionToken

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def is_admin(self) -> bool:
        return self.user.is_admin


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy (unlike passwords), so SHA-256 is enough.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(user_id: int, user_agent: str | None = None) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.

    Raises ValueError if the user does not exist.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        user_agent=user_agent,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def restore_session(token: str | None) -> SessionContext | None:
    """
    Restore the identity behind a stored token.

    Returns None if the token is unknown or revoked, or if the user row no
    longer exists. Updates last_used_at on success.
    """
    if not token:
        return None

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    user = db.session.get(User, session.user_id)
    if not user:
        return None

    session.last_used_at = utcnow()
    db.session.commit()

    return SessionContext(user=user, session=session)


def end_session(token: str | None) -> bool:
    """
    Revoke session token (logout).

    Returns True if a live session was revoked, False if not found.
    """
    if not token:
        return False

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()

    db.session.commit()
    return True


def end_all_sessions(user_id: int) -> int:
    """Revoke every live session of a user. Returns the number revoked."""
    now = utcnow()
    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False,
    ).all()

    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now

    db.session.commit()
    return len(sessions)
