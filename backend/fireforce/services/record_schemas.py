# Overview: Typed create/patch inputs per entity, validated at the service boundary.

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from ..validation import (
    ValidationError,
    ensure_payload,
    to_amount,
    to_bool,
    to_choice,
    to_email,
    to_non_negative_int,
    to_percentage,
    to_required_text,
    to_text,
)


SALES_ORDER = "Sales Order"
SERVICE_ORDER = "Service Order"
QUOTE = "Quote"
TRANSACTION_TYPES = (SALES_ORDER, SERVICE_ORDER, QUOTE)

STATUS_PENDING = "pending"
STATUS_IN_PROCESS = "in-process"
STATUS_COMPLETED = "completed"
INVOICE_STATUSES = (STATUS_PENDING, STATUS_IN_PROCESS, STATUS_COMPLETED)

ROLE_SALESMAN = "salesman"
ROLE_OFFICE = "office"
USER_ROLES = (ROLE_SALESMAN, ROLE_OFFICE)

MIN_PASSWORD_LENGTH = 6


def _to_date(value: Any, name: str) -> str:
    text = to_text(value, name)
    if not text:
        return ""
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError:
        raise ValidationError(f"{name} must be a YYYY-MM-DD date")


def _provided(instance) -> dict:
    """camelCase mapping of every field that is not None."""
    out = {}
    for f in fields(instance):
        value = getattr(instance, f.name)
        if value is None or f.metadata.get("skip"):
            continue
        out[f.metadata.get("wire", f.name)] = value
    return out


# =============================================================================
# LINE ITEMS
# =============================================================================

@dataclass
class LineItemInput:
    mfg: str = ""
    part_number: str = ""
    description: str = ""
    qty: int = 0
    unit_price: Decimal = Decimal("0")
    taxable: bool = True

    @classmethod
    def from_payload(cls, raw: Any, index: int) -> "LineItemInput":
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        prefix = f"items[{index}]"
        return cls(
            mfg=to_text(raw.get("mfg"), f"{prefix}.mfg", max_length=128),
            part_number=to_text(raw.get("partNumber"), f"{prefix}.partNumber", max_length=128),
            description=to_text(raw.get("description"), f"{prefix}.description"),
            qty=to_non_negative_int(raw.get("qty", 0), f"{prefix}.qty"),
            unit_price=to_amount(raw.get("unitPrice", 0), f"{prefix}.unitPrice"),
            taxable=to_bool(raw.get("taxable", True), f"{prefix}.taxable"),
        )

    def to_record(self) -> dict:
        return {
            "mfg": self.mfg,
            "partNumber": self.part_number,
            "description": self.description,
            "qty": self.qty,
            "unitPrice": float(self.unit_price),
            "taxable": self.taxable,
        }


def _items_from_payload(raw: Any) -> list[LineItemInput]:
    if not isinstance(raw, list):
        raise ValidationError("items must be a list")
    return [LineItemInput.from_payload(item, i) for i, item in enumerate(raw)]


# =============================================================================
# INVOICES
# =============================================================================

_INVOICE_TEXT = {
    "poNumber": 64,
    "salesRep": 128,
    "customerName": 255,
    "customerPhone": 32,
    "billToAddress": None,
    "shipToAddress": None,
    "additionalInfo": None,
}
_INVOICE_EMAIL = ("customerEmail", "accountsPayableEmail")
_DRAFT_TEXT_DEFAULTS = (
    "po_number", "sales_rep", "customer_name", "customer_email", "customer_phone",
    "accounts_payable_email", "bill_to_address", "ship_to_address", "additional_info",
)


@dataclass
class InvoicePatch:
    """Partial invoice update; None means "leave unchanged"."""
    date: Optional[str] = None
    po_number: Optional[str] = field(default=None, metadata={"wire": "poNumber"})
    sales_rep: Optional[str] = field(default=None, metadata={"wire": "salesRep"})
    transaction_type: Optional[str] = field(default=None, metadata={"wire": "transactionType"})
    customer_name: Optional[str] = field(default=None, metadata={"wire": "customerName"})
    customer_email: Optional[str] = field(default=None, metadata={"wire": "customerEmail"})
    customer_phone: Optional[str] = field(default=None, metadata={"wire": "customerPhone"})
    accounts_payable_email: Optional[str] = field(default=None, metadata={"wire": "accountsPayableEmail"})
    bill_to_address: Optional[str] = field(default=None, metadata={"wire": "billToAddress"})
    ship_to_address: Optional[str] = field(default=None, metadata={"wire": "shipToAddress"})
    shipping_cost: Optional[Decimal] = field(default=None, metadata={"wire": "shippingCost"})
    additional_info: Optional[str] = field(default=None, metadata={"wire": "additionalInfo"})
    status: Optional[str] = None
    tax_rate: Optional[Decimal] = field(default=None, metadata={"wire": "taxRate"})
    archived: Optional[bool] = None
    items: Optional[list[LineItemInput]] = field(default=None, metadata={"skip": True})

    @classmethod
    def from_payload(cls, payload: Any) -> "InvoicePatch":
        payload = ensure_payload(payload)
        values: dict[str, Any] = {}
        for f in fields(cls):
            wire = f.metadata.get("wire", f.name)
            if wire not in payload:
                continue
            raw = payload[wire]
            if wire in _INVOICE_TEXT:
                values[f.name] = to_text(raw, wire, max_length=_INVOICE_TEXT[wire])
            elif wire in _INVOICE_EMAIL:
                values[f.name] = to_email(raw, wire)
            elif wire == "date":
                values[f.name] = _to_date(raw, wire)
            elif wire == "transactionType":
                values[f.name] = to_choice(raw, wire, TRANSACTION_TYPES)
            elif wire == "status":
                values[f.name] = to_choice(raw, wire, INVOICE_STATUSES)
            elif wire == "shippingCost":
                values[f.name] = to_amount(raw, wire)
            elif wire == "taxRate":
                values[f.name] = to_percentage(raw, wire)
            elif wire == "archived":
                values[f.name] = to_bool(raw, wire)
            elif wire == "items":
                values[f.name] = _items_from_payload(raw)
        return cls(**values)

    def header_fields(self) -> dict:
        out = _provided(self)
        for key in ("shippingCost", "taxRate"):
            if key in out:
                out[key] = float(out[key])
        return out

    def item_records(self) -> list[dict] | None:
        if self.items is None:
            return None
        return [item.to_record() for item in self.items]

    def is_empty(self) -> bool:
        return not self.header_fields() and self.items is None


@dataclass
class InvoiceDraft(InvoicePatch):
    """
    New invoice. Every field receives a default; taxRate stays None until the
    service applies the current settings default.
    """

    @classmethod
    def from_payload(cls, payload: Any) -> "InvoiceDraft":
        draft = super().from_payload(payload)
        if draft.items is None:
            draft.items = []
        if draft.transaction_type is None:
            draft.transaction_type = SALES_ORDER
        if draft.status is None:
            draft.status = STATUS_PENDING
        if draft.shipping_cost is None:
            draft.shipping_cost = Decimal("0")
        for name in _DRAFT_TEXT_DEFAULTS:
            if getattr(draft, name) is None:
                setattr(draft, name, "")
        draft.archived = False
        return draft


# =============================================================================
# CUSTOMERS
# =============================================================================

@dataclass
class CustomerPatch:
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    accounts_payable_email: Optional[str] = field(default=None, metadata={"wire": "accountsPayableEmail"})
    bill_to_address: Optional[str] = field(default=None, metadata={"wire": "billToAddress"})
    ship_to_address: Optional[str] = field(default=None, metadata={"wire": "shipToAddress"})

    @classmethod
    def from_payload(cls, payload: Any) -> "CustomerPatch":
        payload = ensure_payload(payload)
        values: dict[str, Any] = {}
        if "name" in payload:
            values["name"] = to_required_text(payload["name"], "name", max_length=255)
        if "email" in payload:
            values["email"] = to_email(payload["email"], "email")
        if "accountsPayableEmail" in payload:
            values["accounts_payable_email"] = to_email(payload["accountsPayableEmail"], "accountsPayableEmail")
        if "phone" in payload:
            values["phone"] = to_text(payload["phone"], "phone", max_length=32)
        if "billToAddress" in payload:
            values["bill_to_address"] = to_text(payload["billToAddress"], "billToAddress")
        if "shipToAddress" in payload:
            values["ship_to_address"] = to_text(payload["shipToAddress"], "shipToAddress")
        return cls(**values)

    def to_fields(self) -> dict:
        return _provided(self)


@dataclass
class CustomerDraft(CustomerPatch):
    @classmethod
    def from_payload(cls, payload: Any) -> "CustomerDraft":
        payload = ensure_payload(payload)
        if "name" not in payload:
            raise ValidationError("name is required")
        draft = super().from_payload(payload)
        for f in fields(cls):
            if getattr(draft, f.name) is None:
                setattr(draft, f.name, "")
        return draft


# =============================================================================
# USERS
# =============================================================================

def _password(value: Any) -> str:
    text = to_text(value, "password")
    if len(text) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters long")
    return text


@dataclass
class UserPatch:
    """
    Partial user update. An absent or empty password leaves the stored
    credential untouched.
    """
    username: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    password: Optional[str] = field(default=None, metadata={"skip": True})

    @classmethod
    def from_payload(cls, payload: Any) -> "UserPatch":
        payload = ensure_payload(payload)
        values: dict[str, Any] = {}
        if "username" in payload:
            values["username"] = to_required_text(payload["username"], "username", max_length=64)
        if "name" in payload:
            values["name"] = to_required_text(payload["name"], "name", max_length=128)
        if "email" in payload:
            values["email"] = to_email(payload["email"], "email")
        if "phone" in payload:
            values["phone"] = to_text(payload["phone"], "phone", max_length=32)
        if "role" in payload:
            values["role"] = to_choice(payload["role"], "role", USER_ROLES)
        if payload.get("password") not in (None, ""):
            values["password"] = _password(payload["password"])
        return cls(**values)

    def to_fields(self) -> dict:
        return _provided(self)


@dataclass
class UserDraft(UserPatch):
    @classmethod
    def from_payload(cls, payload: Any) -> "UserDraft":
        payload = ensure_payload(payload)
        for required in ("username", "name", "password"):
            if payload.get(required) in (None, ""):
                raise ValidationError(f"{required} is required")
        draft = super().from_payload(payload)
        if draft.role is None:
            draft.role = ROLE_SALESMAN
        if draft.email is None:
            draft.email = ""
        if draft.phone is None:
            draft.phone = ""
        return draft


# =============================================================================
# SETTINGS
# =============================================================================

@dataclass
class SettingsPatch:
    tax_rate: Optional[Decimal] = field(default=None, metadata={"wire": "taxRate"})

    @classmethod
    def from_payload(cls, payload: Any) -> "SettingsPatch":
        payload = ensure_payload(payload)
        values: dict[str, Any] = {}
        if "taxRate" in payload:
            values["tax_rate"] = to_percentage(payload["taxRate"], "taxRate")
        if not values:
            raise ValidationError("No settings provided")
        return cls(**values)

    def to_fields(self) -> dict:
        return {key: float(value) for key, value in _provided(self).items()}
