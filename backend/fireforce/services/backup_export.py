# Overview: Snapshot creation, serialization and backup files for the whole data set.

from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Mapping

from fireforce.time_utils import epoch_millis, to_utc_z, utcnow


logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"
REDACTED = "***ENCRYPTED***"
FULL_BACKUP = "Full Backup"
AUTOMATIC_BACKUP = "Automatic Backup"
EXPORT_KINDS = ("invoices", "customers", "users")
DEFAULT_PREFIX = "fireforce_backup"
AUTO_SUFFIX = "_auto"


class ExportError(ValueError):
    """Unknown export kind or unwritable backup directory."""


@dataclass
class BackupArtifact:
    filename: str
    content: bytes
    snapshot: dict
    entry: dict

    @property
    def size(self) -> int:
        return len(self.content)


def _redact_user(user: Mapping[str, Any], include_passwords: bool) -> dict:
    record = dict(user)
    password_hash = record.pop("passwordHash", None)
    record["password"] = password_hash if include_passwords and password_hash else REDACTED
    return record


def serialize_snapshot(snapshot: Mapping[str, Any]) -> bytes:
    return json.dumps(snapshot, indent=2, ensure_ascii=False).encode("utf-8")


def create_snapshot(
    collections: Mapping[str, Any],
    *,
    include_passwords: bool = False,
    backup_type: str = FULL_BACKUP,
    clock: Callable[[], datetime] = utcnow,
    system_name: str = "Fire Force Invoice System",
    office_info: Mapping[str, Any] | None = None,
    created_by: str = "Office Administrator",
) -> dict:
    """
    Build a snapshot document from the current collections.

    User credentials are replaced by the redaction marker unless
    include_passwords is set, in which case the stored bcrypt hash is
    exported (never a plaintext password). officeInfo is always the fixed
    identity, whatever the collections hold.

    metadata.fileSize is the byte length of the serialized document itself.
    """
    invoices = copy.deepcopy(list(collections.get("invoices") or []))
    customers = copy.deepcopy(list(collections.get("customers") or []))
    users = [_redact_user(u, include_passwords) for u in collections.get("users") or []]
    settings = dict(collections.get("settings") or {})
    settings.setdefault("taxRate", 8.0)

    fixed_office = dict(office_info if office_info is not None else collections.get("officeInfo") or {})
    fixed_office["password"] = REDACTED

    for invoice in invoices:
        invoice.setdefault("items", [])

    snapshot = {
        "version": SNAPSHOT_VERSION,
        "timestamp": to_utc_z(clock()),
        "system": system_name,
        "type": backup_type,
        "data": {
            "invoices": invoices,
            "customers": customers,
            "users": users,
            "officeInfo": fixed_office,
            "settings": settings,
        },
        "metadata": {
            "totalInvoices": len(invoices),
            "totalCustomers": len(customers),
            "totalUsers": len(users),
            "createdBy": created_by,
            "backupType": backup_type,
            "includesPasswords": include_passwords,
            "fileSize": 0,
        },
    }

    # Writing the size can change the size; settle on a fixed point.
    for _ in range(3):
        size = len(serialize_snapshot(snapshot))
        if snapshot["metadata"]["fileSize"] == size:
            break
        snapshot["metadata"]["fileSize"] = size
    return snapshot


def backup_filename(prefix: str, now: datetime) -> str:
    return f"{prefix}_{now.date().isoformat()}_{epoch_millis(now)}.json"


def export_collection(kind: str, records: list[dict], *, clock: Callable[[], datetime] = utcnow) -> tuple[str, bytes]:
    """Single-collection export; user credentials are always redacted."""
    if kind not in EXPORT_KINDS:
        raise ExportError(f"Invalid data type: {kind}")
    now = clock()
    data = [_redact_user(r, False) for r in records] if kind == "users" else copy.deepcopy(records)
    document = {
        "version": SNAPSHOT_VERSION,
        "timestamp": to_utc_z(now),
        "dataType": kind,
        "records": len(data),
        "data": data,
    }
    filename = f"fireforce_{kind}_{now.date().isoformat()}.json"
    return filename, serialize_snapshot(document)


class BackupExporter:
    """
    Produces backup artifacts and records each one with the scheduler
    (history entry + last backup time).
    """

    def __init__(
        self,
        scheduler=None,
        *,
        clock: Callable[[], datetime] = utcnow,
        system_name: str = "Fire Force Invoice System",
        office_info: Mapping[str, Any] | None = None,
        file_prefix: str = DEFAULT_PREFIX,
    ):
        self.scheduler = scheduler
        self.clock = clock
        self.system_name = system_name
        self.office_info = dict(office_info or {})
        self.file_prefix = file_prefix

    def create_backup(
        self,
        collections: Mapping[str, Any],
        *,
        include_passwords: bool = False,
        backup_type: str = FULL_BACKUP,
        created_by: str = "Office Administrator",
        file_prefix: str | None = None,
    ) -> BackupArtifact:
        now = self.clock()
        snapshot = create_snapshot(
            collections,
            include_passwords=include_passwords,
            backup_type=backup_type,
            clock=lambda: now,
            system_name=self.system_name,
            office_info=self.office_info,
            created_by=created_by,
        )
        content = serialize_snapshot(snapshot)
        meta = snapshot["metadata"]
        entry = {
            "id": epoch_millis(now),
            "timestamp": snapshot["timestamp"],
            "type": backup_type,
            "recordCount": meta["totalInvoices"] + meta["totalCustomers"] + meta["totalUsers"],
            "byteSize": len(content),
            "includesPasswords": include_passwords,
        }
        if self.scheduler is not None:
            self.scheduler.record_backup(snapshot["timestamp"], entry)

        logger.info("%s created: %d records, %d bytes", backup_type, entry["recordCount"], entry["byteSize"])
        return BackupArtifact(
            filename=backup_filename(file_prefix or self.file_prefix, now),
            content=content,
            snapshot=snapshot,
            entry=entry,
        )

    def write_backup(self, artifact: BackupArtifact, directory: str | os.PathLike) -> Path:
        target = Path(directory)
        try:
            target.mkdir(parents=True, exist_ok=True)
            path = target / artifact.filename
            path.write_bytes(artifact.content)
        except OSError as exc:
            raise ExportError(f"Cannot write backup to {target}: {exc}")
        return path

    def automatic_backups(self, directory: str | os.PathLike) -> list[Path]:
        """Automatic backup files in `directory`, newest first."""
        target = Path(directory)
        if not target.is_dir():
            return []

        def stamp(path: Path) -> int:
            try:
                return int(path.stem.rsplit("_", 1)[1])
            except (IndexError, ValueError):
                return 0

        files = target.glob(f"{self.file_prefix}{AUTO_SUFFIX}_*.json")
        return sorted(files, key=stamp, reverse=True)

    def write_automatic_backup(
        self,
        collections: Mapping[str, Any],
        directory: str | os.PathLike,
        *,
        keep: int = 5,
    ) -> Path:
        """Write an Automatic Backup file and keep only the newest `keep` of them."""
        artifact = self.create_backup(
            collections,
            backup_type=AUTOMATIC_BACKUP,
            created_by="Auto Backup System",
            file_prefix=self.file_prefix + AUTO_SUFFIX,
        )
        path = self.write_backup(artifact, directory)

        stale = self.automatic_backups(directory)[keep:]
        for old in stale:
            try:
                old.unlink()
            except OSError as exc:
                logger.warning("Could not remove old automatic backup %s: %s", old, exc)
        if stale:
            logger.info("Cleaned up %d old automatic backups", len(stale))
        return path
