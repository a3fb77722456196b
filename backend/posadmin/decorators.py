# Overview: Request and role-gate decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .permissions import allowed, screen_roles
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'session_context')


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a live session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object
    - g.token: The plaintext bearer token of this request

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def _denied(required: frozenset):
    return jsonify({
        "error": "Access denied",
        "role": g.current_user.role,
        "required_roles": sorted(r.value for r in required),
        "message": "You do not have permission to access this page.",
    }), 403


def require_screen(screen: str):
    """Require access to a named back-office screen (see permissions.SCREENS)."""
    required = screen_roles(screen)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not allowed(g.current_user.role, required):
                return _denied(required)

            return f(*args, **kwargs)

        return decorated_function
    return decorator
