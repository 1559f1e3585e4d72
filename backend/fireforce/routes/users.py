# Overview: Flask API routes for user administration (office only).

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_role
from ..extensions import services
from ..services.data_service import without_credentials
from ..services.record_schemas import ROLE_OFFICE
from .errors import API_ERRORS, json_error


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role(ROLE_OFFICE)
def list_users_route():
    """Stored users plus the fixed accounts, which are flagged and read-only."""
    bundle = services()
    try:
        bundle.data.ensure_loaded()
        stored = [without_credentials(u) for u in bundle.data.users]
    except API_ERRORS as exc:
        return json_error(exc)
    fixed = [account.to_public() for account in bundle.fixed_accounts]
    return jsonify({"items": stored, "fixed": fixed, "count": len(stored)})


@users_bp.post("")
@require_auth
@require_role(ROLE_OFFICE)
def create_user_route():
    try:
        data = services().data
        data.ensure_loaded()
        user = data.add_user(request.get_json(silent=True))
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"user": without_credentials(user)}), 201


@users_bp.patch("/<user_id>")
@require_auth
@require_role(ROLE_OFFICE)
def update_user_route(user_id: str):
    try:
        data = services().data
        data.ensure_loaded()
        user = data.update_user(user_id, request.get_json(silent=True))
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"user": without_credentials(user)})


@users_bp.delete("/<user_id>")
@require_auth
@require_role(ROLE_OFFICE)
def delete_user_route(user_id: str):
    try:
        data = services().data
        data.ensure_loaded()
        data.delete_user(user_id)
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"deleted": True, "id": user_id})
