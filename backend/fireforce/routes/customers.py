# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth
from ..extensions import services
from .errors import API_ERRORS, json_error


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers_route():
    try:
        data = services().data
        data.ensure_loaded()
        items = data.search_customers(request.args.get("q"))
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"items": items, "count": len(items)})


@customers_bp.post("")
@require_auth
def create_customer_route():
    try:
        data = services().data
        data.ensure_loaded()
        customer = data.add_customer(request.get_json(silent=True))
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"customer": customer}), 201


@customers_bp.get("/<customer_id>")
@require_auth
def get_customer_route(customer_id: str):
    try:
        data = services().data
        data.ensure_loaded()
        customer = data.get_customer(customer_id)
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"customer": customer})


@customers_bp.patch("/<customer_id>")
@require_auth
def update_customer_route(customer_id: str):
    try:
        data = services().data
        data.ensure_loaded()
        customer = data.update_customer(customer_id, request.get_json(silent=True))
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"customer": customer})


@customers_bp.delete("/<customer_id>")
@require_auth
def delete_customer_route(customer_id: str):
    """Invoices keep their own copy of the customer fields."""
    try:
        data = services().data
        data.ensure_loaded()
        data.delete_customer(customer_id)
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"deleted": True, "id": customer_id})
