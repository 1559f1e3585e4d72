# Overview: Backend-agnostic record store contract shared by the local and relational stores.

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping


INVOICES = "invoices"
INVOICE_ITEMS = "invoice_items"
CUSTOMERS = "customers"
USERS = "users"
SETTINGS = "settings"

ENTITY_KINDS = (INVOICES, INVOICE_ITEMS, CUSTOMERS, USERS, SETTINGS)


class StoreError(RuntimeError):
    """A backend call failed. Carries the original exception as __cause__."""

    def __init__(self, message: str, *, kind: str | None = None, operation: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.operation = operation


class BatchWriteError(StoreError):
    """
    Raised by the per-row fallback of a batch write.

    Rows that succeeded stay written; `failures` lists (index, message) for
    the rest.
    """

    def __init__(self, message: str, *, kind: str, operation: str, written: list[dict], failures: list[tuple[int, str]]):
        super().__init__(message, kind=kind, operation=operation)
        self.written = written
        self.failures = failures


def new_id() -> str:
    return str(uuid.uuid4())


def check_kind(kind: str) -> None:
    if kind not in ENTITY_KINDS:
        raise StoreError(f"Unknown entity kind: {kind}", kind=kind)


def matches(record: Mapping[str, Any], predicate: Mapping[str, Any]) -> bool:
    """Field-equality predicate; an empty predicate matches every record."""
    return all(record.get(field) == value for field, value in predicate.items())


class RecordStore(ABC):
    """
    Uniform CRUD over one persistence backend.

    Records are plain dicts in the snapshot's camelCase shape. Every method
    raises StoreError on failure.
    """

    name = "abstract"
    remote = False
    supports_batch = False

    @abstractmethod
    def load_all(self, kind: str) -> list[dict]:
        raise NotImplementedError

    @abstractmethod
    def insert(self, kind: str, record: Mapping[str, Any]) -> dict:
        """Persist a record, generating an id when it has none."""
        raise NotImplementedError

    @abstractmethod
    def update(self, kind: str, record_id: str, fields: Mapping[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_by_id(self, kind: str, record_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_where(self, kind: str, predicate: Mapping[str, Any]) -> int:
        """Delete records whose fields equal the predicate; {} deletes all."""
        raise NotImplementedError

    @abstractmethod
    def upsert(self, kind: str, record: Mapping[str, Any], *, key: str = "id") -> None:
        raise NotImplementedError

    def insert_many(self, kind: str, records: Iterable[Mapping[str, Any]]) -> list[dict]:
        """
        Per-row fallback for stores without a bulk primitive.

        Keeps going after a failed row and raises BatchWriteError at the end
        listing every failure.
        """
        written: list[dict] = []
        failures: list[tuple[int, str]] = []
        for index, record in enumerate(records):
            try:
                written.append(self.insert(kind, record))
            except StoreError as exc:
                failures.append((index, str(exc)))
        if failures:
            raise BatchWriteError(
                f"{len(failures)} of {len(written) + len(failures)} {kind} rows failed to insert",
                kind=kind,
                operation="insert_many",
                written=written,
                failures=failures,
            )
        return written
