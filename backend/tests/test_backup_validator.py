from datetime import datetime

import pytest

from fireforce.services.backup_validator import (
    BackupParseError,
    BackupValidationError,
    generate_report,
    parse_snapshot,
    require_valid,
    validate_snapshot,
)

from helpers import OFFICE_INFO


NOW = datetime(2026, 10, 19, 12, 0, 0)


def snapshot(**overrides):
    doc = {
        "version": "1.0",
        "timestamp": "2026-10-18T09:30:00Z",
        "system": "Fire Force Invoice System",
        "type": "Full Backup",
        "data": {
            "invoices": [{"id": "i1", "customerName": "Acme", "items": [], "grandTotal": 10.8}],
            "customers": [{"id": "c1", "name": "Acme", "email": "ap@acme.com"}],
            "users": [{"id": "u1", "username": "jsmith", "name": "John Smith", "role": "salesman"}],
            "officeInfo": dict(OFFICE_INFO, password="***ENCRYPTED***"),
            "settings": {"taxRate": 8.0},
        },
        "metadata": {"totalInvoices": 1},
    }
    doc.update(overrides)
    return doc


def test_clean_snapshot_is_valid():
    result = validate_snapshot(snapshot(), now=NOW, office_info=OFFICE_INFO)
    assert result.is_valid
    assert result.errors == []
    assert result.warnings == []
    assert result.metadata["recordCounts"] == {"invoices": 1, "customers": 1, "users": 1}
    assert result.metadata["originalMetadata"] == {"totalInvoices": 1}


def test_missing_data_is_an_error():
    doc = snapshot()
    del doc["data"]
    result = validate_snapshot(doc, now=NOW)
    assert not result.is_valid
    assert "Missing required field: data" in result.errors


def test_version_and_system_mismatch_are_warnings():
    result = validate_snapshot(snapshot(version="9.9", system="Other App"), now=NOW)
    assert result.is_valid
    assert "Backup version 9.9 may not be compatible" in result.warnings
    assert "Backup appears to be from a different system" in result.warnings


def test_timestamp_format_and_age():
    bad = validate_snapshot(snapshot(timestamp="yesterday"), now=NOW)
    assert "Invalid timestamp format" in bad.errors

    old = validate_snapshot(snapshot(timestamp="2026-08-01T00:00:00Z"), now=NOW)
    assert old.is_valid
    assert "Backup is more than 30 days old" in old.warnings


def test_entity_checks():
    doc = snapshot()
    doc["data"]["invoices"] = [{"customerName": "", "items": "none", "grandTotal": -1}]
    doc["data"]["customers"] = [{"id": "c1", "name": "", "email": "not-an-email"}]
    doc["data"]["users"] = [{"id": "u1", "username": "x", "name": "X", "role": "admin"}]
    result = validate_snapshot(doc, now=NOW)

    assert set(result.errors) == {
        "Invoice 1: Missing ID",
        "Invoice 1: Missing or invalid items",
        "Customer 1: Missing name",
        "User 1: Invalid role",
    }
    assert "Invoice 1: Missing customer name" in result.warnings
    assert "Invoice 1: Invalid grand total" in result.warnings
    assert "Customer 1: Invalid email format" in result.warnings


def test_office_info_difference_warns_only():
    doc = snapshot()
    doc["data"]["officeInfo"]["phone"] = "000-000-0000"
    result = validate_snapshot(doc, now=NOW, office_info=OFFICE_INFO)
    assert result.is_valid
    assert result.warnings == ["Office info in backup differs from system requirements"]


def test_invalid_tax_rate_warns():
    doc = snapshot()
    doc["data"]["settings"] = {"taxRate": 150}
    result = validate_snapshot(doc, now=NOW)
    assert result.is_valid
    assert "Settings: Invalid tax rate" in result.warnings


def test_parse_rejects_non_json_and_non_objects():
    with pytest.raises(BackupParseError):
        parse_snapshot(b"\xff\xfe")
    with pytest.raises(BackupParseError):
        parse_snapshot("{not json")
    with pytest.raises(BackupParseError):
        parse_snapshot("[1, 2, 3]")
    assert parse_snapshot('{"version": "1.0"}') == {"version": "1.0"}


def test_require_valid_and_report():
    doc = snapshot()
    del doc["version"]
    result = validate_snapshot(doc, now=NOW)
    with pytest.raises(BackupValidationError) as excinfo:
        require_valid(result)
    assert excinfo.value.result is result

    report = generate_report(result)
    assert report["isValid"] is False
    assert report["errorCount"] == 1
    assert report["summary"] == "Backup has 1 error(s) and cannot be restored"
    assert report["details"]["errors"] == ["Missing required field: version"]
