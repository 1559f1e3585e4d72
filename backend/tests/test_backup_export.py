import json

import pytest

from fireforce.services.backup_export import (
    AUTOMATIC_BACKUP,
    REDACTED,
    BackupExporter,
    ExportError,
    create_snapshot,
    export_collection,
    serialize_snapshot,
)
from fireforce.services.backup_scheduler import BackupScheduler
from fireforce.store import LocalRecordStore

from helpers import OFFICE_INFO, FakeClock


def collections():
    return {
        "invoices": [{"id": "i1", "customerName": "Acme", "grandTotal": 10.8, "items": []}],
        "customers": [{"id": "c1", "name": "Acme"}],
        "users": [{"id": "u1", "username": "jsmith", "name": "John", "role": "salesman", "passwordHash": "$2b$04$abc"}],
        "settings": {"taxRate": 8.0},
        "officeInfo": {"companyName": "Tampered Co"},
    }


class TestCreateSnapshot:
    def test_credentials_redacted_by_default(self):
        snap = create_snapshot(collections(), clock=FakeClock(), office_info=OFFICE_INFO)
        user = snap["data"]["users"][0]
        assert user["password"] == REDACTED
        assert "passwordHash" not in user
        assert snap["metadata"]["includesPasswords"] is False

    def test_include_passwords_exports_hash(self):
        snap = create_snapshot(collections(), include_passwords=True, clock=FakeClock(), office_info=OFFICE_INFO)
        assert snap["data"]["users"][0]["password"] == "$2b$04$abc"
        assert snap["metadata"]["includesPasswords"] is True

    def test_office_info_is_fixed_identity(self):
        snap = create_snapshot(collections(), clock=FakeClock(), office_info=OFFICE_INFO)
        assert snap["data"]["officeInfo"] == dict(OFFICE_INFO, password=REDACTED)

    def test_header_and_counts(self):
        snap = create_snapshot(collections(), clock=FakeClock(), office_info=OFFICE_INFO)
        assert snap["version"] == "1.0"
        assert snap["timestamp"] == "2026-10-19T12:00:00Z"
        assert snap["system"] == "Fire Force Invoice System"
        assert snap["metadata"]["totalInvoices"] == 1
        assert snap["metadata"]["totalCustomers"] == 1
        assert snap["metadata"]["totalUsers"] == 1

    def test_file_size_matches_serialized_length(self):
        snap = create_snapshot(collections(), clock=FakeClock(), office_info=OFFICE_INFO)
        assert snap["metadata"]["fileSize"] == len(serialize_snapshot(snap))

    def test_source_collections_untouched(self):
        source = collections()
        create_snapshot(source, clock=FakeClock(), office_info=OFFICE_INFO)
        assert source["users"][0]["passwordHash"] == "$2b$04$abc"


class TestBackupExporter:
    def make(self, clock):
        scheduler = BackupScheduler(LocalRecordStore(), clock=clock)
        return BackupExporter(scheduler, clock=clock, office_info=OFFICE_INFO), scheduler

    def test_create_backup_records_history(self):
        clock = FakeClock()
        exporter, scheduler = self.make(clock)
        artifact = exporter.create_backup(collections())

        assert artifact.filename.startswith("fireforce_backup_2026-10-19_")
        assert artifact.filename.endswith(".json")
        assert artifact.size == len(artifact.content)
        assert json.loads(artifact.content)["metadata"]["fileSize"] == artifact.size

        assert scheduler.last_backup() == clock.now
        history = scheduler.history()
        assert len(history) == 1
        assert history[0]["recordCount"] == 3
        assert history[0]["byteSize"] == artifact.size
        assert history[0]["type"] == "Full Backup"

    def test_write_backup(self, tmp_path):
        exporter, _ = self.make(FakeClock())
        artifact = exporter.create_backup(collections())
        path = exporter.write_backup(artifact, tmp_path / "out")
        assert path.read_bytes() == artifact.content

    def test_automatic_backups_keep_newest(self, tmp_path):
        clock = FakeClock()
        exporter, _ = self.make(clock)
        written = []
        for _ in range(7):
            written.append(exporter.write_automatic_backup(collections(), tmp_path, keep=5))
            clock.advance(hours=24)

        remaining = exporter.automatic_backups(tmp_path)
        assert remaining == list(reversed(written[2:]))
        snap = json.loads(remaining[0].read_bytes())
        assert snap["type"] == AUTOMATIC_BACKUP
        assert snap["metadata"]["createdBy"] == "Auto Backup System"


class TestExportCollection:
    def test_users_are_redacted(self):
        filename, content = export_collection("users", collections()["users"], clock=FakeClock())
        document = json.loads(content)
        assert filename == "fireforce_users_2026-10-19.json"
        assert document["dataType"] == "users"
        assert document["records"] == 1
        assert document["data"][0]["password"] == REDACTED

    def test_unknown_kind(self):
        with pytest.raises(ExportError):
            export_collection("settings", [], clock=FakeClock())
