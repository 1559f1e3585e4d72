# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Fixed accounts (office administrator, IT administrator) are checked
  before stored users
- Tokens are signed and expire after SESSION_MAX_AGE_SECONDS
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..extensions import services
from ..services import auth_service
from ..services.auth_service import AuthenticationError
from ..services.data_service import PersistenceError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and issue a bearer token.

    Token must be included in the Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""

    if not all([username, password]):
        return jsonify({"error": "username and password required"}), 400

    bundle = services()
    try:
        bundle.data.ensure_loaded()
        user = auth_service.authenticate(
            username,
            password,
            fixed_accounts=bundle.fixed_accounts,
            users=bundle.data.users,
        )
    except AuthenticationError:
        current_app.logger.info("Failed login for %s", username)
        return jsonify({"error": "Invalid credentials"}), 401
    except PersistenceError:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Internal server error"}), 500

    token = auth_service.issue_token(user, current_app.config["SECRET_KEY"])
    return jsonify({
        "token": token,
        "user": user,
        "expiresIn": current_app.config["SESSION_MAX_AGE_SECONDS"],
    })


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user})
