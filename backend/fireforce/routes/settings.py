from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..extensions import services
from ..services.record_schemas import ROLE_OFFICE
from .errors import API_ERRORS, json_error


settings_bp = Blueprint("settings", __name__, url_prefix="/api")


@settings_bp.get("/settings")
@require_auth
def get_settings_route():
    try:
        data = services().data
        data.ensure_loaded()
        settings = data.get_settings()
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"settings": settings})


@settings_bp.put("/settings")
@require_auth
@require_role(ROLE_OFFICE)
def update_settings_route():
    # New invoices pick up the rate; existing invoices keep theirs.
    try:
        data = services().data
        data.ensure_loaded()
        settings = data.update_settings(request.get_json(silent=True))
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"settings": settings})


@settings_bp.get("/office-info")
@require_auth
def get_office_info_route():
    return jsonify({"officeInfo": services().data.get_office_info()})
