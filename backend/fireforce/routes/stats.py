# Overview: Flask API routes for dashboard statistics.

from flask import Blueprint, jsonify, g, request

from ..decorators import require_auth, require_role
from ..extensions import services
from ..services import reporting_service
from ..services.record_schemas import ROLE_OFFICE, ROLE_SALESMAN
from .errors import API_ERRORS, json_error


stats_bp = Blueprint("stats", __name__, url_prefix="/api/stats")


@stats_bp.get("/office")
@require_auth
@require_role(ROLE_OFFICE)
def office_stats_route():
    try:
        data = services().data
        data.ensure_loaded()
        stats = reporting_service.office_stats(data.list_invoices(), data.search_customers())
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify(stats)


@stats_bp.get("/salesman")
@require_auth
def salesman_stats_route():
    """Salesmen get their own figures; office users may pass ?salesRep=."""
    sales_rep = g.current_user["name"]
    if g.current_user["role"] != ROLE_SALESMAN:
        sales_rep = request.args.get("salesRep") or sales_rep

    try:
        data = services().data
        data.ensure_loaded()
        stats = reporting_service.salesman_stats(data.list_invoices(), sales_rep)
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify(stats)
