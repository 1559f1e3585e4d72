# Overview: Entity-to-row field mapping between camelCase records and relational columns.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from ..models import Customer, Invoice, InvoiceItem, Setting, User
from fireforce.time_utils import parse_iso_datetime, to_utc_z
from .base import CUSTOMERS, INVOICE_ITEMS, INVOICES, SETTINGS, USERS


TEXT = "text"
MONEY = "money"
INT = "int"
BOOL = "bool"
DATETIME = "datetime"


@dataclass(frozen=True)
class FieldMap:
    field: str
    column: str
    kind: str = TEXT


@dataclass(frozen=True)
class EntityMap:
    model: Any
    fields: tuple[FieldMap, ...]
    key_column: str = "id"

    def column_for(self, field: str) -> str | None:
        for fm in self.fields:
            if fm.field == field:
                return fm.column
        return None


# Setting keys are camelCase in records and snake_case in the table
SETTING_KEYS = {"taxRate": "tax_rate"}
SETTING_FIELDS = {v: k for k, v in SETTING_KEYS.items()}


ENTITY_MAPS: dict[str, EntityMap] = {
    INVOICES: EntityMap(
        model=Invoice,
        fields=(
            FieldMap("id", "id"),
            FieldMap("date", "date"),
            FieldMap("poNumber", "po_number"),
            FieldMap("salesRep", "sales_rep"),
            FieldMap("transactionType", "transaction_type"),
            FieldMap("customerName", "customer_name"),
            FieldMap("customerEmail", "customer_email"),
            FieldMap("customerPhone", "customer_phone"),
            FieldMap("accountsPayableEmail", "accounts_payable_email"),
            FieldMap("billToAddress", "bill_to_address"),
            FieldMap("shipToAddress", "ship_to_address"),
            FieldMap("shippingCost", "shipping_cost", MONEY),
            FieldMap("additionalInfo", "additional_info"),
            FieldMap("status", "status"),
            FieldMap("taxRate", "tax_rate", MONEY),
            FieldMap("subtotal", "subtotal", MONEY),
            FieldMap("tax", "tax", MONEY),
            FieldMap("grandTotal", "grand_total", MONEY),
            FieldMap("archived", "archived", BOOL),
            FieldMap("createdAt", "created_at", DATETIME),
            FieldMap("updatedAt", "updated_at", DATETIME),
        ),
    ),
    INVOICE_ITEMS: EntityMap(
        model=InvoiceItem,
        fields=(
            FieldMap("id", "id"),
            FieldMap("invoiceId", "invoice_id"),
            FieldMap("position", "position", INT),
            FieldMap("mfg", "mfg"),
            FieldMap("partNumber", "part_number"),
            FieldMap("description", "description"),
            FieldMap("qty", "qty", INT),
            FieldMap("unitPrice", "unit_price", MONEY),
            FieldMap("taxable", "taxable", BOOL),
        ),
    ),
    CUSTOMERS: EntityMap(
        model=Customer,
        fields=(
            FieldMap("id", "id"),
            FieldMap("name", "name"),
            FieldMap("email", "email"),
            FieldMap("phone", "phone"),
            FieldMap("accountsPayableEmail", "accounts_payable_email"),
            FieldMap("billToAddress", "bill_to_address"),
            FieldMap("shipToAddress", "ship_to_address"),
            FieldMap("createdAt", "created_at", DATETIME),
            FieldMap("updatedAt", "updated_at", DATETIME),
        ),
    ),
    USERS: EntityMap(
        model=User,
        fields=(
            FieldMap("id", "id"),
            FieldMap("username", "username"),
            FieldMap("name", "name"),
            FieldMap("email", "email"),
            FieldMap("phone", "phone"),
            FieldMap("role", "role"),
            FieldMap("passwordHash", "password_hash"),
            FieldMap("createdAt", "created_at", DATETIME),
            FieldMap("updatedAt", "updated_at", DATETIME),
        ),
    ),
    SETTINGS: EntityMap(
        model=Setting,
        fields=(
            FieldMap("key", "key"),
            FieldMap("value", "value"),
        ),
        key_column="key",
    ),
}


def _to_column_value(kind: str, value: Any) -> Any:
    if value is None:
        return None
    if kind == MONEY:
        return Decimal(str(value))
    if kind == INT:
        return int(value)
    if kind == BOOL:
        return bool(value)
    if kind == DATETIME:
        if isinstance(value, datetime):
            return value
        return parse_iso_datetime(str(value))
    return value


def _to_record_value(kind: str, value: Any) -> Any:
    if value is None:
        return None
    if kind == MONEY:
        return float(value)
    if kind == INT:
        return int(value)
    if kind == BOOL:
        return bool(value)
    if kind == DATETIME:
        return to_utc_z(value)
    return value


def record_to_columns(entity: str, record: dict) -> dict:
    """Translate known camelCase fields into column values; unknown fields are dropped."""
    mapping = ENTITY_MAPS[entity]
    columns = {}
    for fm in mapping.fields:
        if fm.field not in record:
            continue
        value = _to_column_value(fm.kind, record[fm.field])
        if entity == SETTINGS and fm.field == "key":
            value = SETTING_KEYS.get(value, value)
        elif entity == SETTINGS and fm.field == "value" and value is not None:
            value = str(value)
        columns[fm.column] = value
    return columns


def row_to_record(entity: str, row: Any) -> dict:
    mapping = ENTITY_MAPS[entity]
    record = {}
    for fm in mapping.fields:
        value = _to_record_value(fm.kind, getattr(row, fm.column))
        if entity == SETTINGS and fm.field == "key":
            value = SETTING_FIELDS.get(value, value)
        record[fm.field] = value
    if entity == SETTINGS:
        record["id"] = record["key"]
    return record


def predicate_to_columns(entity: str, predicate: dict) -> dict:
    """Equality predicate over record fields translated to column filters."""
    mapping = ENTITY_MAPS[entity]
    columns = {}
    for field, value in predicate.items():
        column = mapping.column_for(field)
        if column is None:
            raise KeyError(field)
        columns[column] = value
    return columns
