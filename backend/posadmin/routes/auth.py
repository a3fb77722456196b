# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/posadmin/routes/auth.py
"""
Authentication API routes

- POST /api/auth/register  self-service sign-up (name, email, password, role)
- POST /api/auth/login     returns a bearer token
- POST /api/auth/logout    revokes the bearer token
- GET  /api/auth/session   current principal and the screens it may open
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import bearer_token, require_auth
from ..permissions import visible_screens
from ..services import auth_service
from ..services.auth_service import AuthenticationError
from ..validation import ConflictError, ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Create an account from the sign-up screen.

    Disabled (403) when POS_ALLOW_SELF_REGISTRATION is off; admins then
    create users from the Users screen.
    """
    if not current_app.config.get("ALLOW_SELF_REGISTRATION", False):
        return jsonify({
            "error": "Self-registration is disabled. Contact an administrator to create an account."
        }), 403

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        user = auth_service.sign_up(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role", "cashier"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict(), "message": "Registration successful"}), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    email = data.get("email")
    password = data.get("password")

    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        return jsonify({"error": "email and password required"}), 400

    try:
        context, token = auth_service.sign_in(
            email,
            password,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except AuthenticationError:
        return jsonify({"error": "Invalid credentials"}), 401
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "user": context.user.to_dict(),
        "token": token,
        "session": context.session.to_dict(),
        "screens": visible_screens(context.user.role),
        "message": "Login successful"
    }), 200


@auth_bp.post("/logout")
def logout_route():
    """Revoke session token (logout). Expects Authorization: Bearer <token>."""
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401

    try:
        revoked = auth_service.sign_out(token)
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500

    if not revoked:
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/session")
@require_auth
def session_route():
    """Current principal plus navigation entries for its role."""
    context = g.session_context
    return jsonify({
        "user": context.user.to_dict(),
        "session": context.session.to_dict(),
        "screens": visible_screens(context.user.role),
    }), 200
