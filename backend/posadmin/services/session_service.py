# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on sign-out or when the principal is deactivated

SESSION EVENTS:
Sign-in and sign-out are published on blinker signals. Callers subscribe
with subscribe(listener), which returns the unsubscribe callable.
SessionWatcher keeps an explicit "current session" object up to date from
those events instead of a module-level singleton.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable

from blinker import Namespace

from ..extensions import db
from ..models import SessionToken, User
from ..permissions import Role
from ..time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

_signals = Namespace()
signed_in = _signals.signal("signed-in")
signed_out = _signals.signal("signed-out")


@dataclass
class SessionContext:
    """Authenticated principal plus the session record backing it."""
    user: User
    session: SessionToken

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def role(self) -> Role | None:
        return self.user.role_enum


@dataclass(frozen=True)
class SessionEvent:
    kind: str
    user_id: int
    context: SessionContext | None


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

    Tokens are already high-entropy (unlike passwords), so a fast hash is
    sufficient here.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User account is disabled")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str | None) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if:
    - Token is missing, invalid, expired, or revoked
    - User account is deactivated (is_active=False)

    Updates last_used_at on successful validation (activity tracking).
    """
    if not token:
        return None

    now = utcnow()
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        db.session.commit()
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session)


# The identity provider's "current session" query.
get_current_session = validate_session


def revoke_session(token: str, reason: str = "User logout") -> SessionToken | None:
    """
    Revoke session token.

    Returns the revoked session, or None if no live session matched.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    _revoke(session, reason)
    db.session.commit()
    return session


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    """
    Revoke all active sessions for a user.

    Returns count of sessions revoked.
    """
    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False,
    ).all()

    for session in sessions:
        _revoke(session, reason)

    db.session.commit()
    return len(sessions)


def publish_signed_in(context: SessionContext) -> None:
    signed_in.send(SIGNED_IN, event=SessionEvent(SIGNED_IN, context.user.id, context))


def publish_signed_out(user_id: int) -> None:
    signed_out.send(SIGNED_OUT, event=SessionEvent(SIGNED_OUT, user_id, None))


def subscribe(listener: Callable[[SessionEvent], None]) -> Callable[[], None]:
    """
    Deliver every sign-in / sign-out as a SessionEvent to listener.

    Returns a callable that removes the subscription. Listeners are held
    strongly so lambdas and bound methods keep working until unsubscribed.
    """
    def _receiver(sender, event: SessionEvent, **extra):
        listener(event)

    signed_in.connect(_receiver, weak=False)
    signed_out.connect(_receiver, weak=False)

    def unsubscribe() -> None:
        signed_in.disconnect(_receiver)
        signed_out.disconnect(_receiver)

    return unsubscribe


class SessionWatcher:
    """
    Explicit holder of the current session for a long-lived client.

    Starts from an optional initial context and follows sign-in / sign-out
    events for any user (or only `user_id` when given) until close().
    """

    def __init__(self, initial: SessionContext | None = None, user_id: int | None = None):
        self.current: SessionContext | None = initial
        self._user_id = user_id
        self._unsubscribe: Callable[[], None] | None = subscribe(self._on_event)

    def _on_event(self, event: SessionEvent) -> None:
        if self._user_id is not None and event.user_id != self._user_id:
            return
        if event.kind == SIGNED_IN:
            self.current = event.context
        elif event.kind == SIGNED_OUT:
            if self.current is None or self.current.user.id == event.user_id:
                self.current = None

    @property
    def is_signed_in(self) -> bool:
        return self.current is not None

    @property
    def closed(self) -> bool:
        return self._unsubscribe is None

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self) -> "SessionWatcher":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
