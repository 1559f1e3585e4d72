# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .extensions import services
from .services.auth_service import AuthenticationError, load_token, public_user
from .services.data_service import PersistenceError


def _resolve_user(claims: dict) -> dict | None:
    bundle = services()
    for account in bundle.fixed_accounts:
        if account.id == claims.get("id"):
            return account.to_public()
    bundle.data.ensure_loaded()
    for user in bundle.data.users:
        if user["id"] == claims.get("id"):
            return public_user(user)
    return None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user to the public user dict (id, username, name, role,
    isAdmin, fixed). Returns 401 when the header is missing, the token is
    invalid or expired, or the user no longer exists.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        try:
            claims = load_token(
                token,
                current_app.config["SECRET_KEY"],
                max_age=current_app.config["SESSION_MAX_AGE_SECONDS"],
            )
        except AuthenticationError:
            return jsonify({"error": "Invalid or expired token"}), 401

        try:
            user = _resolve_user(claims)
        except PersistenceError:
            current_app.logger.exception("Could not load users for authentication")
            return jsonify({"error": "Internal server error"}), 500
        if user is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """Require @require_auth first; 403 unless the user's role is one of `roles`."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                return jsonify({"error": "Authentication required"}), 401
            if g.current_user["role"] not in roles:
                return jsonify({"error": "Access denied"}), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator
