# Overview: Shared exception-to-JSON mapping for the API blueprints.

from flask import jsonify, current_app

from ..validation import ValidationError, ConflictError
from ..services.auth_service import AuthenticationError
from ..services.backup_export import ExportError
from ..services.backup_validator import BackupParseError, BackupValidationError
from ..services.data_service import NotFoundError, PersistenceError, ProtectedRecordError


API_ERRORS = (
    ValidationError,
    ConflictError,
    AuthenticationError,
    BackupParseError,
    BackupValidationError,
    ExportError,
    NotFoundError,
    PersistenceError,
    ProtectedRecordError,
)


def json_error(exc: Exception):
    if isinstance(exc, (ValidationError, BackupParseError, BackupValidationError, ExportError)):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, AuthenticationError):
        return jsonify({"error": str(exc)}), 401
    if isinstance(exc, ProtectedRecordError):
        return jsonify({"error": str(exc)}), 403
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    if isinstance(exc, PersistenceError):
        current_app.logger.error("Persistence failure: %s", exc)
        return jsonify({"error": str(exc)}), 500
    return jsonify({"error": "Internal server error"}), 500
