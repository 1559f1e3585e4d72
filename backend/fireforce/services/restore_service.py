# Overview: Destructive full restore from a snapshot, reported as a stream of progress states.

"""
Restore Orchestrator

Order is fixed: customers, users, invoices, settings. Each entity kind is
deleted and then re-inserted from the snapshot; nothing is merged.

- Office accounts and the fixed accounts are never deleted or overwritten.
- Restored salesmen all receive the configured default password; hashes in
  the snapshot are never reused.
- officeInfo is never written.
- There is no rollback. A failed step leaves earlier steps in place and the
  failed state keeps the percentage reached.

The caller gets consent before starting; nothing here prompts.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Iterator, Mapping

from ..store.base import CUSTOMERS, INVOICE_ITEMS, INVOICES, SETTINGS, USERS, StoreError, new_id
from fireforce.time_utils import utcnow
from .backup_validator import BackupParseError, generate_report, parse_snapshot, validate_snapshot
from .data_service import DataService, PersistenceError
from .record_schemas import ROLE_OFFICE, ROLE_SALESMAN


logger = logging.getLogger(__name__)

READING = "reading"
VALIDATING = "validating"
RESTORING = "restoring"
FINALIZING = "finalizing"
COMPLETED = "completed"
FAILED = "failed"

_INVOICE_TEXT_DEFAULTS = {
    "poNumber": "",
    "salesRep": "",
    "transactionType": "Sales Order",
    "customerName": "",
    "customerEmail": "",
    "customerPhone": "",
    "accountsPayableEmail": "",
    "billToAddress": "",
    "shipToAddress": "",
    "additionalInfo": "",
    "status": "pending",
}
_INVOICE_NUMBERS = ("shippingCost", "taxRate", "subtotal", "tax", "grandTotal")
_CUSTOMER_TEXT = ("email", "phone", "accountsPayableEmail", "billToAddress", "shipToAddress")


@dataclass
class RestoreProgress:
    status: str
    progress: int
    message: str
    step: str | None = None
    error: str | None = None
    report: dict | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RestoreResult:
    final: RestoreProgress
    states: list[RestoreProgress] = field(default_factory=list)
    report: dict | None = None

    @property
    def ok(self) -> bool:
        return self.final.status == COMPLETED


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _customer_row(customer: Mapping[str, Any]) -> dict:
    row = dict(customer)
    for name in _CUSTOMER_TEXT:
        if row.get(name) is None:
            row[name] = ""
    return row


def _invoice_rows(invoice: Mapping[str, Any]) -> tuple[dict, list[dict]]:
    header = {k: v for k, v in invoice.items() if k != "items"}
    for name, default in _INVOICE_TEXT_DEFAULTS.items():
        if header.get(name) is None:
            header[name] = default
    for name in _INVOICE_NUMBERS:
        # Unusable figures fall back to the column default
        header[name] = _number(header.get(name))
    header["archived"] = bool(header.get("archived", False))

    items = []
    for position, item in enumerate(invoice.get("items") or []):
        if not isinstance(item, dict):
            continue
        items.append({
            "id": new_id(),
            "invoiceId": header["id"],
            "position": position,
            "mfg": item.get("mfg") or "",
            "partNumber": item.get("partNumber") or "",
            "description": item.get("description") or "",
            "qty": int(_number(item.get("qty")) or 0),
            "unitPrice": _number(item.get("unitPrice")) or 0.0,
            "taxable": bool(item.get("taxable", True)),
        })
    return header, items


class RestoreOrchestrator:
    def __init__(
        self,
        data_service: DataService,
        *,
        hash_password: Callable[[str], str],
        default_password: str,
        clock: Callable = utcnow,
        validator_options: Mapping[str, Any] | None = None,
        on_complete: Callable[[], Any] | None = None,
    ):
        self.data_service = data_service
        self.hash_password = hash_password
        self.default_password = default_password
        self.clock = clock
        self.validator_options = dict(validator_options or {})
        self.on_complete = on_complete

    # ------------------------------------------------------------------
    # steps
    # ------------------------------------------------------------------

    def _restore_customers(self, store, data: Mapping[str, Any]) -> int:
        rows = [_customer_row(c) for c in data.get("customers") or []]
        store.delete_where(CUSTOMERS, {})
        if rows:
            store.insert_many(CUSTOMERS, rows)
        return len(rows)

    def _restore_users(self, store, data: Mapping[str, Any]) -> int:
        fixed_usernames = {account.username for account in self.data_service.fixed_accounts}
        users = [
            u for u in data.get("users") or []
            if u.get("role") != ROLE_OFFICE and u.get("username") not in fixed_usernames
        ]
        store.delete_where(USERS, {"role": ROLE_SALESMAN})

        # A salesman promoted to office after the backup keeps the same id
        surviving = {row.get("id") for row in store.load_all(USERS)}
        for user in [u for u in users if u.get("id") in surviving]:
            logger.warning(
                "Skipping backup user %s: id %s now belongs to an office account",
                user.get("username"), user.get("id"),
            )
        users = [u for u in users if u.get("id") not in surviving]
        if not users:
            return 0

        # One default credential per restore; administrators reset each user afterward
        password_hash = self.hash_password(self.default_password)
        rows = []
        for user in users:
            rows.append({
                "id": user["id"],
                "username": user["username"],
                "name": user["name"],
                "email": user.get("email") or "",
                "phone": user.get("phone") or "",
                "role": ROLE_SALESMAN,
                "passwordHash": password_hash,
                "createdAt": user.get("createdAt"),
                "updatedAt": user.get("updatedAt"),
            })
        store.insert_many(USERS, rows)
        return len(rows)

    def _restore_invoices(self, store, data: Mapping[str, Any]) -> int:
        headers, items = [], []
        for invoice in data.get("invoices") or []:
            header, rows = _invoice_rows(invoice)
            headers.append(header)
            items.extend(rows)
        store.delete_where(INVOICE_ITEMS, {})
        store.delete_where(INVOICES, {})
        if headers:
            store.insert_many(INVOICES, headers)
        if items:
            store.insert_many(INVOICE_ITEMS, items)
        return len(headers)

    def _restore_settings(self, store, data: Mapping[str, Any]) -> bool:
        settings = data.get("settings")
        if not isinstance(settings, dict) or "taxRate" not in settings:
            return False
        rate = _number(settings["taxRate"])
        if rate is None or not 0 <= rate <= 100:
            logger.warning("Skipping tax rate %r from backup", settings["taxRate"])
            return False
        store.upsert(SETTINGS, {"key": "taxRate", "value": str(rate)}, key="key")
        return True

    # ------------------------------------------------------------------
    # streams
    # ------------------------------------------------------------------

    def restore_from_bytes(self, raw: bytes | str) -> Iterator[RestoreProgress]:
        yield RestoreProgress(READING, 5, "Reading backup file...")
        try:
            snapshot = parse_snapshot(raw)
        except BackupParseError as exc:
            logger.error("Restore failed while reading: %s", exc)
            yield RestoreProgress(FAILED, 5, f"Restore failed: {exc}", error=str(exc))
            return
        yield from self._restore(snapshot)

    def restore(self, snapshot: Any) -> Iterator[RestoreProgress]:
        yield RestoreProgress(READING, 5, "Reading backup file...")
        yield from self._restore(snapshot)

    def _restore(self, snapshot: Any) -> Iterator[RestoreProgress]:
        result = validate_snapshot(snapshot, now=self.clock(), **self.validator_options)
        report = generate_report(result)
        if not result.is_valid:
            error = "; ".join(result.errors)
            logger.error("Restore rejected by validation: %s", error)
            yield RestoreProgress(FAILED, 10, "Backup validation failed", error=error, report=report)
            return
        yield RestoreProgress(VALIDATING, 10, report["summary"], report=report)

        data = snapshot["data"]
        steps = (
            ("customers", 20, self._restore_customers),
            ("users", 40, self._restore_users),
            ("invoices", 60, self._restore_invoices),
            ("settings", 80, self._restore_settings),
        )
        # Writers and the automatic backup wait until the reload is done
        with self.data_service.lock:
            store = self.data_service.store
            for step, percent, action in steps:
                yield RestoreProgress(RESTORING, percent, f"Restoring {step}...", step=step)
                try:
                    action(store, data)
                except StoreError as exc:
                    logger.error("Restore failed while restoring %s: %s", step, exc)
                    yield RestoreProgress(FAILED, percent, f"Restore failed: {exc}", step=step, error=str(exc))
                    return

            yield RestoreProgress(FINALIZING, 95, "Finalizing restore...")
            try:
                self.data_service.load_all_data()
            except PersistenceError as exc:
                logger.error("Restore failed while reloading data: %s", exc)
                yield RestoreProgress(FAILED, 95, f"Restore failed: {exc}", error=str(exc))
                return

        if self.on_complete is not None:
            self.on_complete()
        logger.info("Restore completed: %s", self.data_service.counts())
        yield RestoreProgress(COMPLETED, 100, "Restore completed successfully!")

    def run(self, snapshot: Any) -> RestoreResult:
        return self._drain(self.restore(snapshot))

    def run_from_bytes(self, raw: bytes | str) -> RestoreResult:
        return self._drain(self.restore_from_bytes(raw))

    @staticmethod
    def _drain(stream: Iterator[RestoreProgress]) -> RestoreResult:
        states = list(stream)
        report = next((s.report for s in states if s.report is not None), None)
        return RestoreResult(final=states[-1], states=states, report=report)
