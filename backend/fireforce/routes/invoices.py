# Overview: Flask API routes for invoices; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role
from ..extensions import services
from ..services.record_schemas import ROLE_OFFICE, ROLE_SALESMAN
from ..validation import ValidationError
from .errors import API_ERRORS, json_error


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")

ARCHIVE_FILTERS = ("active", "archived", "all")


def _is_salesman() -> bool:
    return g.current_user["role"] == ROLE_SALESMAN


def _check_access(invoice: dict, *, editing: bool = False):
    """
    Salesmen only reach their own invoices (salesRep == their name) and
    cannot edit archived ones. Returns an error response or None.
    """
    if not _is_salesman():
        return None
    if invoice.get("salesRep") != g.current_user["name"]:
        return jsonify({"error": "Invoice not found"}), 404
    if editing and invoice.get("archived"):
        return jsonify({"error": "Archived invoices cannot be edited"}), 403
    return None


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    archived = request.args.get("archived", "active")
    if archived not in ARCHIVE_FILTERS:
        return jsonify({"error": f"archived must be one of: {', '.join(ARCHIVE_FILTERS)}"}), 400
    sales_rep = request.args.get("salesRep") or None
    if _is_salesman():
        sales_rep = g.current_user["name"]

    try:
        data = services().data
        data.ensure_loaded()
        items = data.list_invoices(
            status=request.args.get("status") or None,
            archived=archived,
            sales_rep=sales_rep,
            q=request.args.get("q"),
        )
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"items": items, "count": len(items)})


@invoices_bp.post("")
@require_auth
def create_invoice_route():
    payload = request.get_json(silent=True)
    if payload is None:
        return jsonify({"error": "Invalid JSON payload"}), 400
    if isinstance(payload, dict) and (_is_salesman() or not payload.get("salesRep")):
        # Salesmen always write their own name
        payload = {**payload, "salesRep": g.current_user["name"]}

    try:
        data = services().data
        data.ensure_loaded()
        invoice = data.add_invoice(payload)
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"invoice": invoice}), 201


@invoices_bp.get("/<invoice_id>")
@require_auth
def get_invoice_route(invoice_id: str):
    try:
        data = services().data
        data.ensure_loaded()
        invoice = data.get_invoice(invoice_id)
    except API_ERRORS as exc:
        return json_error(exc)
    denied = _check_access(invoice)
    if denied:
        return denied
    return jsonify({"invoice": invoice})


@invoices_bp.patch("/<invoice_id>")
@require_auth
def update_invoice_route(invoice_id: str):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        data = services().data
        data.ensure_loaded()
        denied = _check_access(data.get_invoice(invoice_id), editing=True)
        if denied:
            return denied
        if _is_salesman():
            payload.pop("salesRep", None)
            payload.pop("archived", None)
        if not payload:
            raise ValidationError("No changes provided")
        invoice = data.update_invoice(invoice_id, payload)
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"invoice": invoice})


@invoices_bp.patch("/<invoice_id>/status")
@require_auth
def update_status_route(invoice_id: str):
    payload = request.get_json(silent=True) or {}
    if "status" not in payload:
        return jsonify({"error": "status is required"}), 400

    try:
        data = services().data
        data.ensure_loaded()
        denied = _check_access(data.get_invoice(invoice_id), editing=True)
        if denied:
            return denied
        invoice = data.set_invoice_status(invoice_id, payload["status"])
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"invoice": invoice})


@invoices_bp.post("/<invoice_id>/archive")
@require_auth
@require_role(ROLE_OFFICE)
def toggle_archive_route(invoice_id: str):
    try:
        data = services().data
        data.ensure_loaded()
        invoice = data.toggle_archive(invoice_id)
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"invoice": invoice})


@invoices_bp.delete("/<invoice_id>")
@require_auth
@require_role(ROLE_OFFICE)
def delete_invoice_route(invoice_id: str):
    try:
        data = services().data
        data.ensure_loaded()
        data.delete_invoice(invoice_id)
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify({"deleted": True, "id": invoice_id})
