# Overview: In-memory source of truth for invoices, customers, users and settings, kept in step with the active record store.

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable, Iterable, Mapping

from ..store.base import (
    CUSTOMERS,
    INVOICE_ITEMS,
    INVOICES,
    SETTINGS,
    USERS,
    RecordStore,
    StoreError,
    new_id,
)
from ..validation import ConflictError
from fireforce.time_utils import to_utc_z, utcnow
from .invoice_totals import calculate_totals
from .record_schemas import (
    CustomerDraft,
    CustomerPatch,
    InvoiceDraft,
    InvoicePatch,
    SettingsPatch,
    UserDraft,
    UserPatch,
)


logger = logging.getLogger(__name__)

DEFAULT_TAX_RATE = 8.0
ITEM_FIELDS = ("mfg", "partNumber", "description", "qty", "unitPrice", "taxable")


class PersistenceError(RuntimeError):
    """A store call failed; the underlying StoreError is kept on `store_error`."""

    def __init__(self, message: str, store_error: StoreError | None = None):
        if store_error is not None:
            message = f"{message}: {store_error}"
        super().__init__(message)
        self.store_error = store_error


class NotFoundError(LookupError):
    pass


class ProtectedRecordError(ValueError):
    """Fixed records (office identity, fixed accounts) cannot be changed here."""


def without_credentials(user: Mapping[str, Any]) -> dict:
    public = dict(user)
    public.pop("passwordHash", None)
    public.pop("password", None)
    return public


def _item_view(row: Mapping[str, Any]) -> dict:
    return {name: row.get(name) for name in ITEM_FIELDS}


class DataService:
    """
    Orchestrates load/create/update/delete for the four collections against
    whichever store is active.

    `primary_store` is the configured backend. When it is remote and a load
    fails, every collection is reloaded from `local_store` and the service
    stays on the local store (degraded) until the next successful load.
    """

    def __init__(
        self,
        primary_store: RecordStore,
        local_store: RecordStore | None = None,
        *,
        clock: Callable = utcnow,
        default_tax_rate: float = DEFAULT_TAX_RATE,
        office_info: Mapping[str, Any] | None = None,
        fixed_accounts: Iterable = (),
        password_hasher: Callable[[str], str] | None = None,
    ):
        self.primary_store = primary_store
        self.local_store = local_store
        self.store = primary_store
        self.clock = clock
        self.default_tax_rate = float(default_tax_rate)
        self.office_info = dict(office_info or {})
        self.fixed_accounts = list(fixed_accounts)
        self.password_hasher = password_hasher

        self.invoices: list[dict] = []
        self.customers: list[dict] = []
        self.users: list[dict] = []
        self.settings: dict[str, Any] = {"taxRate": self.default_tax_rate}
        self.loaded = False
        self.degraded = False
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # loading
    # ------------------------------------------------------------------

    def _load_from(self, store: RecordStore) -> dict:
        invoices = store.load_all(INVOICES)
        items = store.load_all(INVOICE_ITEMS)
        customers = store.load_all(CUSTOMERS)
        users = store.load_all(USERS)
        settings_rows = store.load_all(SETTINGS)

        by_invoice: dict[str, list[dict]] = {}
        for row in sorted(items, key=lambda r: (r.get("invoiceId") or "", r.get("position") or 0)):
            by_invoice.setdefault(row.get("invoiceId"), []).append(_item_view(row))
        for invoice in invoices:
            invoice["items"] = by_invoice.get(invoice["id"], [])

        settings: dict[str, Any] = {"taxRate": self.default_tax_rate}
        for row in settings_rows:
            settings[row["key"]] = row.get("value")
        try:
            settings["taxRate"] = float(settings["taxRate"])
        except (TypeError, ValueError):
            settings["taxRate"] = self.default_tax_rate

        return {"invoices": invoices, "customers": customers, "users": users, "settings": settings}

    def load_all_data(self) -> None:
        """
        Replace every in-memory collection from the store.

        Never mixes sources: a remote failure on any collection discards the
        whole remote result and reloads everything locally.
        """
        with self._lock:
            try:
                collections = self._load_from(self.primary_store)
                self.store = self.primary_store
                self.degraded = False
            except StoreError as exc:
                if self.local_store is None or self.local_store is self.primary_store:
                    raise PersistenceError("Failed to load data", exc)
                logger.warning(
                    "Loading from %s store failed (%s); falling back to local store",
                    self.primary_store.name,
                    exc,
                )
                try:
                    collections = self._load_from(self.local_store)
                except StoreError as local_exc:
                    raise PersistenceError("Failed to load data from local store", local_exc)
                self.store = self.local_store
                self.degraded = True

            self.invoices = collections["invoices"]
            self.customers = collections["customers"]
            self.users = collections["users"]
            self.settings = collections["settings"]
            self.loaded = True
            logger.info(
                "Loaded %d invoices, %d customers, %d users from %s store",
                len(self.invoices), len(self.customers), len(self.users), self.store.name,
            )

    @property
    def lock(self):
        """Held across several store calls that must not interleave with other writers."""
        return self._lock

    def ensure_loaded(self) -> None:
        if not self.loaded:
            self.load_all_data()

    def _now(self) -> str:
        return to_utc_z(self.clock())

    def _call(self, message: str, func: Callable, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except StoreError as exc:
            logger.error("%s: %s", message, exc)
            raise PersistenceError(message, exc)

    @staticmethod
    def _find(collection: list[dict], record_id: str, label: str) -> dict:
        for record in collection:
            if record.get("id") == record_id:
                return record
        raise NotFoundError(f"{label} not found")

    # ------------------------------------------------------------------
    # invoices
    # ------------------------------------------------------------------

    def get_invoice(self, invoice_id: str) -> dict:
        with self._lock:
            return copy.deepcopy(self._find(self.invoices, invoice_id, "Invoice"))

    def list_invoices(
        self,
        *,
        status: str | None = None,
        archived: str = "all",
        sales_rep: str | None = None,
        q: str | None = None,
    ) -> list[dict]:
        """
        archived: "active" (not archived), "archived", or "all".
        q matches customer name, PO number, sales rep or id (case-insensitive).
        """
        needle = (q or "").strip().lower()
        with self._lock:
            result = []
            for invoice in self.invoices:
                if status and status != "all" and invoice.get("status") != status:
                    continue
                if archived == "active" and invoice.get("archived"):
                    continue
                if archived == "archived" and not invoice.get("archived"):
                    continue
                if sales_rep and invoice.get("salesRep") != sales_rep:
                    continue
                if needle and not any(
                    needle in str(invoice.get(key) or "").lower()
                    for key in ("customerName", "poNumber", "salesRep", "id")
                ):
                    continue
                result.append(copy.deepcopy(invoice))
            result.sort(key=lambda inv: inv.get("createdAt") or "", reverse=True)
            return result

    def _item_rows(self, invoice_id: str, items: list[dict]) -> list[dict]:
        return [
            {**item, "id": new_id(), "invoiceId": invoice_id, "position": position}
            for position, item in enumerate(items)
        ]

    def add_invoice(self, data: InvoiceDraft | Mapping[str, Any]) -> dict:
        draft = data if isinstance(data, InvoiceDraft) else InvoiceDraft.from_payload(data)
        with self._lock:
            now = self._now()
            tax_rate = float(draft.tax_rate) if draft.tax_rate is not None else float(self.settings["taxRate"])
            items = draft.item_records() or []

            header = draft.header_fields()
            header["taxRate"] = tax_rate
            header.setdefault("date", self.clock().date().isoformat())
            if not header["date"]:
                header["date"] = self.clock().date().isoformat()
            header.update(calculate_totals(items, tax_rate, header["shippingCost"]).as_record())
            header.update({"id": new_id(), "createdAt": now, "updatedAt": now, "archived": False})

            self._call("Failed to save invoice", self.store.insert, INVOICES, header)
            if items:
                try:
                    self.store.insert_many(INVOICE_ITEMS, self._item_rows(header["id"], items))
                except StoreError as exc:
                    logger.error("Invoice %s saved without its line items: %s", header["id"], exc)
                    raise PersistenceError(f"Invoice {header['id']} was saved but its line items were not", exc)

            invoice = {**header, "items": items}
            self.invoices.append(invoice)
            return copy.deepcopy(invoice)

    def update_invoice(self, invoice_id: str, data: InvoicePatch | Mapping[str, Any]) -> dict:
        patch = data if isinstance(data, InvoicePatch) else InvoicePatch.from_payload(data)
        with self._lock:
            current = self._find(self.invoices, invoice_id, "Invoice")
            fields = patch.header_fields()
            items = patch.item_records()

            if items is not None or "taxRate" in fields or "shippingCost" in fields:
                totals = calculate_totals(
                    items if items is not None else current.get("items", []),
                    fields.get("taxRate", current.get("taxRate")),
                    fields.get("shippingCost", current.get("shippingCost")),
                )
                fields.update(totals.as_record())
            fields["updatedAt"] = self._now()

            self._call("Failed to update invoice", self.store.update, INVOICES, invoice_id, fields)
            if items is not None:
                self._call("Failed to replace invoice items", self.store.delete_where, INVOICE_ITEMS, {"invoiceId": invoice_id})
                if items:
                    self._call("Failed to replace invoice items", self.store.insert_many, INVOICE_ITEMS, self._item_rows(invoice_id, items))
                current["items"] = items

            current.update(fields)
            return copy.deepcopy(current)

    def set_invoice_status(self, invoice_id: str, status: str) -> dict:
        return self.update_invoice(invoice_id, {"status": status})

    def toggle_archive(self, invoice_id: str) -> dict:
        with self._lock:
            current = self._find(self.invoices, invoice_id, "Invoice")
            return self.update_invoice(invoice_id, {"archived": not current.get("archived", False)})

    def delete_invoice(self, invoice_id: str) -> None:
        with self._lock:
            self._find(self.invoices, invoice_id, "Invoice")
            # Items go first so the header is never left referenced
            self._call("Failed to delete invoice items", self.store.delete_where, INVOICE_ITEMS, {"invoiceId": invoice_id})
            self._call("Failed to delete invoice", self.store.delete_by_id, INVOICES, invoice_id)
            self.invoices = [inv for inv in self.invoices if inv["id"] != invoice_id]

    # ------------------------------------------------------------------
    # customers
    # ------------------------------------------------------------------

    def get_customer(self, customer_id: str) -> dict:
        with self._lock:
            return copy.deepcopy(self._find(self.customers, customer_id, "Customer"))

    def search_customers(self, q: str | None = None) -> list[dict]:
        needle = (q or "").strip().lower()
        with self._lock:
            matches = [
                copy.deepcopy(c) for c in self.customers
                if not needle or any(needle in str(c.get(key) or "").lower() for key in ("name", "email", "phone"))
            ]
        return sorted(matches, key=lambda c: (c.get("name") or "").lower())

    def add_customer(self, data: CustomerDraft | Mapping[str, Any]) -> dict:
        draft = data if isinstance(data, CustomerDraft) else CustomerDraft.from_payload(data)
        with self._lock:
            now = self._now()
            record = {**draft.to_fields(), "id": new_id(), "createdAt": now, "updatedAt": now}
            self._call("Failed to save customer", self.store.insert, CUSTOMERS, record)
            self.customers.append(record)
            return copy.deepcopy(record)

    def update_customer(self, customer_id: str, data: CustomerPatch | Mapping[str, Any]) -> dict:
        patch = data if isinstance(data, CustomerPatch) else CustomerPatch.from_payload(data)
        with self._lock:
            current = self._find(self.customers, customer_id, "Customer")
            fields = {**patch.to_fields(), "updatedAt": self._now()}
            self._call("Failed to update customer", self.store.update, CUSTOMERS, customer_id, fields)
            current.update(fields)
            return copy.deepcopy(current)

    def delete_customer(self, customer_id: str) -> None:
        with self._lock:
            self._find(self.customers, customer_id, "Customer")
            self._call("Failed to delete customer", self.store.delete_by_id, CUSTOMERS, customer_id)
            self.customers = [c for c in self.customers if c["id"] != customer_id]

    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------

    def _fixed_ids(self) -> set[str]:
        return {account.id for account in self.fixed_accounts}

    def _check_username(self, username: str, role: str, exclude_id: str | None = None) -> None:
        if any(account.username == username for account in self.fixed_accounts):
            raise ConflictError("Username already exists")
        for user in self.users:
            if user["id"] != exclude_id and user.get("username") == username and user.get("role") == role:
                raise ConflictError("Username already exists")

    def _hash(self, password: str) -> str:
        if self.password_hasher is None:
            raise PersistenceError("No password hasher configured")
        return self.password_hasher(password)

    def get_user(self, user_id: str) -> dict:
        with self._lock:
            return copy.deepcopy(self._find(self.users, user_id, "User"))

    def add_user(self, data: UserDraft | Mapping[str, Any]) -> dict:
        draft = data if isinstance(data, UserDraft) else UserDraft.from_payload(data)
        with self._lock:
            self._check_username(draft.username, draft.role)
            now = self._now()
            record = {
                **draft.to_fields(),
                "id": new_id(),
                "passwordHash": self._hash(draft.password),
                "createdAt": now,
                "updatedAt": now,
            }
            self._call("Failed to save user", self.store.insert, USERS, record)
            self.users.append(record)
            return copy.deepcopy(record)

    def update_user(self, user_id: str, data: UserPatch | Mapping[str, Any]) -> dict:
        if user_id in self._fixed_ids():
            raise ProtectedRecordError("Fixed accounts cannot be modified")
        patch = data if isinstance(data, UserPatch) else UserPatch.from_payload(data)
        with self._lock:
            current = self._find(self.users, user_id, "User")
            fields = patch.to_fields()
            if "username" in fields or "role" in fields:
                self._check_username(
                    fields.get("username", current.get("username")),
                    fields.get("role", current.get("role")),
                    exclude_id=user_id,
                )
            if patch.password:
                fields["passwordHash"] = self._hash(patch.password)
            fields["updatedAt"] = self._now()
            self._call("Failed to update user", self.store.update, USERS, user_id, fields)
            current.update(fields)
            return copy.deepcopy(current)

    def delete_user(self, user_id: str) -> None:
        if user_id in self._fixed_ids():
            raise ProtectedRecordError("Fixed accounts cannot be deleted")
        with self._lock:
            self._find(self.users, user_id, "User")
            self._call("Failed to delete user", self.store.delete_by_id, USERS, user_id)
            self.users = [u for u in self.users if u["id"] != user_id]

    # ------------------------------------------------------------------
    # settings / office info
    # ------------------------------------------------------------------

    def update_settings(self, data: SettingsPatch | Mapping[str, Any]) -> dict:
        patch = data if isinstance(data, SettingsPatch) else SettingsPatch.from_payload(data)
        with self._lock:
            for key, value in patch.to_fields().items():
                self._call(
                    "Failed to update settings",
                    self.store.upsert, SETTINGS, {"key": key, "value": str(value)}, key="key",
                )
                self.settings[key] = value
            logger.info("Settings updated: %s", patch.to_fields())
            return dict(self.settings)

    def get_settings(self) -> dict:
        with self._lock:
            return dict(self.settings)

    def get_office_info(self) -> dict:
        return dict(self.office_info)

    # ------------------------------------------------------------------
    # snapshots / status
    # ------------------------------------------------------------------

    def collections(self) -> dict:
        """Deep copy of everything a backup needs."""
        with self._lock:
            return {
                "invoices": copy.deepcopy(self.invoices),
                "customers": copy.deepcopy(self.customers),
                "users": copy.deepcopy(self.users),
                "settings": dict(self.settings),
                "officeInfo": dict(self.office_info),
            }

    def counts(self) -> dict:
        with self._lock:
            return {
                "invoices": len(self.invoices),
                "customers": len(self.customers),
                "users": len(self.users),
            }

    def status(self) -> dict:
        return {
            "backend": self.store.name,
            "configuredBackend": self.primary_store.name,
            "degraded": self.degraded,
            "loaded": self.loaded,
            "counts": self.counts(),
        }
