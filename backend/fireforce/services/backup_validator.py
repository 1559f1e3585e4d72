# Overview: Structural and compatibility checks for backup snapshots before any restore.

"""
Backup Validator

Pure checks over a parsed snapshot document. Errors block a restore;
warnings are advisory and are shown to the operator before they confirm.

Nothing here touches a store.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Mapping

from ..validation import is_valid_email
from fireforce.time_utils import parse_iso_datetime, utcnow
from .record_schemas import USER_ROLES


SUPPORTED_VERSIONS = ("1.0", "1.1", "1.2")
REQUIRED_FIELDS = ("version", "timestamp", "system", "data")
MAX_AGE_DAYS = 30
DEFAULT_SYSTEM_NAME = "Fire Force Invoice System"


class BackupParseError(ValueError):
    """The backup file is not valid JSON or not a JSON object."""


class BackupValidationError(ValueError):
    """The snapshot has errors and must not be restored."""

    def __init__(self, result: "ValidationResult"):
        super().__init__("; ".join(result.errors) or "Backup validation failed")
        self.result = result


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metadata: dict | None = None


def parse_snapshot(raw: bytes | str) -> dict:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise BackupParseError("Backup file is not UTF-8 text")
    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise BackupParseError(f"Backup file is not valid JSON: {exc.msg}")
    if not isinstance(doc, dict):
        raise BackupParseError("Backup file must contain a JSON object")
    return doc


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _numeric(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _check_timestamp(raw: Any, now: datetime, errors: list[str], warnings: list[str]) -> None:
    try:
        ts = parse_iso_datetime(raw) if isinstance(raw, str) else None
    except ValueError:
        ts = None
    if ts is None:
        errors.append("Invalid timestamp format")
        return
    if now - ts > timedelta(days=MAX_AGE_DAYS):
        warnings.append(f"Backup is more than {MAX_AGE_DAYS} days old")


def _check_invoices(invoices: list, errors: list[str], warnings: list[str]) -> None:
    for n, invoice in enumerate(invoices, start=1):
        if not isinstance(invoice, dict):
            errors.append(f"Invoice {n}: Not an object")
            continue
        if not invoice.get("id"):
            errors.append(f"Invoice {n}: Missing ID")
        if not invoice.get("customerName"):
            warnings.append(f"Invoice {n}: Missing customer name")
        if not isinstance(invoice.get("items"), list):
            errors.append(f"Invoice {n}: Missing or invalid items")
        grand_total = invoice.get("grandTotal")
        if not _is_number(grand_total) or grand_total < 0:
            warnings.append(f"Invoice {n}: Invalid grand total")


def _check_customers(customers: list, errors: list[str], warnings: list[str]) -> None:
    for n, customer in enumerate(customers, start=1):
        if not isinstance(customer, dict):
            errors.append(f"Customer {n}: Not an object")
            continue
        if not customer.get("id"):
            errors.append(f"Customer {n}: Missing ID")
        if not customer.get("name"):
            errors.append(f"Customer {n}: Missing name")
        email = customer.get("email")
        if email and not (isinstance(email, str) and is_valid_email(email)):
            warnings.append(f"Customer {n}: Invalid email format")


def _check_users(users: list, errors: list[str]) -> None:
    for n, user in enumerate(users, start=1):
        if not isinstance(user, dict):
            errors.append(f"User {n}: Not an object")
            continue
        if not user.get("id"):
            errors.append(f"User {n}: Missing ID")
        if not user.get("username"):
            errors.append(f"User {n}: Missing username")
        if not user.get("name"):
            errors.append(f"User {n}: Missing name")
        if user.get("role") not in USER_ROLES:
            errors.append(f"User {n}: Invalid role")


def validate_snapshot(
    doc: Any,
    *,
    now: datetime | None = None,
    system_name: str = DEFAULT_SYSTEM_NAME,
    office_info: Mapping[str, Any] | None = None,
) -> ValidationResult:
    """
    Check a parsed snapshot.

    is_valid is True exactly when there are no errors; any number of
    warnings still allows a restore.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not isinstance(doc, dict):
        return ValidationResult(is_valid=False, errors=["Backup must be a JSON object"])

    for name in REQUIRED_FIELDS:
        if name not in doc or doc[name] is None:
            errors.append(f"Missing required field: {name}")

    version = doc.get("version")
    if version is not None and str(version) not in SUPPORTED_VERSIONS:
        warnings.append(f"Backup version {version} may not be compatible")

    system = doc.get("system")
    if system is not None and system != system_name:
        warnings.append("Backup appears to be from a different system")

    if "timestamp" in doc and doc["timestamp"] is not None:
        _check_timestamp(doc["timestamp"], now or utcnow(), errors, warnings)

    data = doc.get("data")
    if data is not None and not isinstance(data, dict):
        errors.append("Backup data must be an object")
    elif isinstance(data, dict):
        for kind, check in (("invoices", _check_invoices), ("customers", _check_customers)):
            if kind in data:
                if isinstance(data[kind], list):
                    check(data[kind], errors, warnings)
                else:
                    errors.append(f"Backup data.{kind} must be a list")
        if "users" in data:
            if isinstance(data["users"], list):
                _check_users(data["users"], errors)
            else:
                errors.append("Backup data.users must be a list")

        backup_office = data.get("officeInfo")
        if isinstance(backup_office, dict) and office_info:
            if any(backup_office.get(key) != value for key, value in office_info.items()):
                warnings.append("Office info in backup differs from system requirements")

        settings = data.get("settings")
        if isinstance(settings, dict) and "taxRate" in settings:
            rate = _numeric(settings["taxRate"])
            if rate is None or rate < 0 or rate > 100:
                warnings.append("Settings: Invalid tax rate")

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        metadata=extract_metadata(doc),
    )


def require_valid(result: ValidationResult) -> ValidationResult:
    if not result.is_valid:
        raise BackupValidationError(result)
    return result


def extract_metadata(doc: Any) -> dict | None:
    if not isinstance(doc, dict):
        return None
    data = doc.get("data") if isinstance(doc.get("data"), dict) else {}

    def count(kind: str) -> int:
        value = data.get(kind)
        return len(value) if isinstance(value, list) else 0

    return {
        "version": doc.get("version"),
        "timestamp": doc.get("timestamp"),
        "system": doc.get("system"),
        "type": doc.get("type"),
        "recordCounts": {
            "invoices": count("invoices"),
            "customers": count("customers"),
            "users": count("users"),
        },
        "originalMetadata": doc.get("metadata"),
    }


def generate_report(result: ValidationResult) -> dict:
    if not result.is_valid:
        summary = f"Backup has {len(result.errors)} error(s) and cannot be restored"
    elif result.warnings:
        summary = f"Backup is valid with {len(result.warnings)} warning(s)"
    else:
        summary = "Backup is valid and ready to restore"
    return {
        "summary": summary,
        "isValid": result.is_valid,
        "errorCount": len(result.errors),
        "warningCount": len(result.warnings),
        "details": {
            "errors": list(result.errors),
            "warnings": list(result.warnings),
        },
        "metadata": result.metadata,
    }
