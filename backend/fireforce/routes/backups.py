# Overview: Flask API routes for backup, validation, restore and single-collection exports.

"""
Backup API routes (office only)

Restore is destructive and replaces every customer, salesman and invoice.
The client must show the validation report and snapshot metadata first and
then call restore with ?confirm=true. Progress is streamed as NDJSON, one
state object per line, ending in "completed" or "failed".
"""

import json

from flask import Blueprint, Response, current_app, g, jsonify, request, stream_with_context

from ..decorators import require_auth, require_role
from ..extensions import services
from ..services.backup_export import export_collection
from ..services.backup_validator import generate_report, parse_snapshot, validate_snapshot
from ..services.record_schemas import ROLE_OFFICE
from ..validation import to_bool
from .errors import API_ERRORS, json_error


backups_bp = Blueprint("backups", __name__, url_prefix="/api")


def _download(filename: str, content: bytes) -> Response:
    return Response(
        content,
        mimetype="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@backups_bp.post("/backups")
@require_auth
@require_role(ROLE_OFFICE)
def create_backup_route():
    payload = request.get_json(silent=True) or {}
    bundle = services()
    try:
        include_passwords = to_bool(payload.get("includePasswords", False), "includePasswords")
        bundle.data.ensure_loaded()
        artifact = bundle.exporter.create_backup(
            bundle.data.collections(),
            include_passwords=include_passwords,
            created_by=g.current_user["name"],
        )
    except API_ERRORS as exc:
        return json_error(exc)
    return _download(artifact.filename, artifact.content)


@backups_bp.post("/backups/validate")
@require_auth
@require_role(ROLE_OFFICE)
def validate_backup_route():
    bundle = services()
    try:
        snapshot = parse_snapshot(request.get_data())
    except API_ERRORS as exc:
        return json_error(exc)
    result = validate_snapshot(
        snapshot,
        now=bundle.scheduler.clock(),
        system_name=current_app.config["SYSTEM_NAME"],
        office_info=bundle.data.get_office_info(),
    )
    return jsonify(generate_report(result))


@backups_bp.post("/backups/restore")
@require_auth
@require_role(ROLE_OFFICE)
def restore_backup_route():
    if request.args.get("confirm") != "true":
        return jsonify({
            "error": "Restore replaces all current data except office information; repeat with confirm=true",
        }), 400

    raw = request.get_data()
    bundle = services()
    try:
        bundle.data.ensure_loaded()
    except API_ERRORS as exc:
        return json_error(exc)

    current_app.logger.warning("Restore started by %s", g.current_user["username"])
    stream = bundle.restorer.restore_from_bytes(raw)

    def generate():
        for state in stream:
            yield json.dumps(state.to_dict()) + "\n"

    return Response(stream_with_context(generate()), mimetype="application/x-ndjson")


@backups_bp.get("/backups/history")
@require_auth
@require_role(ROLE_OFFICE)
def backup_history_route():
    history = services().scheduler.history()
    return jsonify({"items": history, "count": len(history)})


@backups_bp.get("/backups/stats")
@require_auth
@require_role(ROLE_OFFICE)
def backup_stats_route():
    bundle = services()
    try:
        bundle.data.ensure_loaded()
    except API_ERRORS as exc:
        return json_error(exc)
    return jsonify(bundle.scheduler.get_backup_stats(bundle.data.counts()))


@backups_bp.get("/backups/reminder")
@require_auth
@require_role(ROLE_OFFICE)
def backup_reminder_route():
    bundle = services()
    return jsonify({
        "due": bundle.scheduler.is_reminder_due(),
        "backupDue": bundle.scheduler.is_backup_due(),
        "lastReminder": bundle.last_reminder,
    })


@backups_bp.post("/backups/reminder/dismiss")
@require_auth
@require_role(ROLE_OFFICE)
def dismiss_reminder_route():
    bundle = services()
    bundle.scheduler.dismiss_reminder()
    bundle.last_reminder = None
    return jsonify({"dismissed": True, "due": bundle.scheduler.is_reminder_due()})


@backups_bp.put("/backups/auto")
@require_auth
@require_role(ROLE_OFFICE)
def set_auto_backup_route():
    payload = request.get_json(silent=True) or {}
    if "enabled" not in payload:
        return jsonify({"error": "enabled is required"}), 400
    try:
        enabled = to_bool(payload["enabled"], "enabled")
    except API_ERRORS as exc:
        return json_error(exc)
    services().scheduler.set_enabled(enabled)
    return jsonify({"autoBackupEnabled": enabled})


@backups_bp.get("/exports/<kind>")
@require_auth
@require_role(ROLE_OFFICE)
def export_collection_route(kind: str):
    data = services().data
    try:
        data.ensure_loaded()
        records = data.collections().get(kind, [])
        filename, content = export_collection(kind, records, clock=services().scheduler.clock)
    except API_ERRORS as exc:
        return json_error(exc)
    return _download(filename, content)
