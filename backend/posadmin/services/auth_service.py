# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every sale and stock movement must be attributable to a principal.
Uses bcrypt for password hashing.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 6 characters required
- Email is the login identifier and is unique (case-insensitive)
- Session tokens managed separately (see session_service.py)
"""

from __future__ import annotations

import bcrypt

from ..extensions import db
from ..models import User
from ..permissions import Role
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError, ValidationError, is_valid_email
from . import session_service
from .session_service import SessionContext


MIN_PASSWORD_LENGTH = 6
MIN_NAME_LENGTH = 2


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


class AuthenticationError(Exception):
    """Raised when credentials do not match an active principal."""


def validate_password_strength(password: str | None) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash is a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str | None) -> str:
    if email is not None and not isinstance(email, str):
        raise ValidationError("email must be a string")
    return (email or "").strip().lower()


def _validate_identity(name: str | None, email: str, role) -> tuple[str, Role]:
    name = name.strip() if isinstance(name, str) else ""
    if len(name) < MIN_NAME_LENGTH:
        raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters")
    if not is_valid_email(email):
        raise ValidationError("A valid email address is required")
    parsed = Role.parse(role)
    if parsed is None:
        raise ValidationError(
            f"Invalid role: {role}. Expected one of: {', '.join(r.value for r in Role)}"
        )
    return name, parsed


def create_user(name: str, email: str, password: str, role=Role.CASHIER) -> User:
    """
    Create a principal with a bcrypt password hash.

    Raises:
        ValidationError: bad name, email, role, or password
        ConflictError: email already registered
    """
    email = normalize_email(email)
    name, parsed_role = _validate_identity(name, email, role)
    password_hash = hash_password(password)

    if db.session.query(User).filter(User.email == email).first():
        raise ConflictError("Email already registered")

    user = User(
        name=name,
        email=email,
        password_hash=password_hash,
        role=parsed_role.value,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def sign_up(name: str, email: str, password: str, role=Role.CASHIER) -> User:
    """Self-service registration. The new principal picks their own role."""
    return create_user(name=name, email=email, password=password, role=role)


def authenticate(email: str, password: str) -> User | None:
    """
    Return the active User matching the credentials, None otherwise.

    Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        User.email == normalize_email(email),
        User.is_active.is_(True),
    ).first()

    if not user or not password:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def sign_in(
    email: str,
    password: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionContext, str]:
    """
    Authenticate and open a session.

    Returns (context, plaintext_token) and publishes a SIGNED_IN event.
    """
    user = authenticate(email, password)
    if not user:
        raise AuthenticationError("Invalid credentials")

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    context = SessionContext(user=user, session=session)
    session_service.publish_signed_in(context)
    return context, token


def sign_out(token: str) -> bool:
    """Revoke the session behind token and publish SIGNED_OUT."""
    session = session_service.revoke_session(token, reason="User logout")
    if session is None:
        return False
    session_service.publish_signed_out(session.user_id)
    return True


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.name.asc(), User.id.asc()).all()


def update_user(user_id: int, patch: dict) -> User:
    """
    Admin update of name, role, is_active and password.

    Deactivating a principal revokes all of their sessions.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    unknown = set(patch) - {"name", "role", "is_active", "password"}
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")

    if "name" in patch:
        name = patch["name"].strip() if isinstance(patch["name"], str) else ""
        if len(name) < MIN_NAME_LENGTH:
            raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters")
        user.name = name

    if "role" in patch:
        role = Role.parse(patch["role"])
        if role is None:
            raise ValidationError(f"Invalid role: {patch['role']}")
        user.role = role.value

    if "password" in patch:
        user.password_hash = hash_password(patch["password"])

    deactivated = False
    if "is_active" in patch:
        if not isinstance(patch["is_active"], bool):
            raise ValidationError("is_active must be a boolean")
        deactivated = user.is_active and not patch["is_active"]
        user.is_active = patch["is_active"]

    db.session.commit()

    if deactivated:
        session_service.revoke_all_user_sessions(user.id, reason="User account deactivated")

    return user
