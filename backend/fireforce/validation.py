from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable


# Maximum money amount accepted on any invoice field: $9,999,999.99
MAX_AMOUNT = Decimal("9999999.99")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate username)."""


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value))


def ensure_payload(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def to_text(value: Any, field: str, *, max_length: int | None = None) -> str:
    """Strings are stripped; None becomes ""."""
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ValidationError(f"{field} must be a string")
    text = str(value).strip()
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def to_required_text(value: Any, field: str, *, max_length: int | None = None) -> str:
    text = to_text(value, field, max_length=max_length)
    if not text:
        raise ValidationError(f"{field} is required")
    return text


def to_int(value: Any, field: str) -> int:
    """
    Strict integer coercion: rejects floats with a fraction, scientific
    notation and booleans.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer, not a decimal")
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    raise ValidationError(f"{field} must be an integer")


def to_non_negative_int(value: Any, field: str) -> int:
    number = to_int(value, field)
    if number < 0:
        raise ValidationError(f"{field} must be >= 0")
    return number


def to_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace("$", "").replace(",", "")
        if not text:
            raise ValidationError(f"{field} must be a number")
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return number


def to_amount(value: Any, field: str) -> Decimal:
    """Non-negative money amount."""
    number = to_decimal(value, field)
    if number < 0:
        raise ValidationError(f"{field} must be >= 0")
    if number > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT:,}")
    return number


def to_percentage(value: Any, field: str) -> Decimal:
    number = to_decimal(value, field)
    if number < 0 or number > 100:
        raise ValidationError(f"{field} must be between 0 and 100")
    return number


def to_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false", "1", "0", "yes", "no"}:
        return value.strip().lower() in {"true", "1", "yes"}
    if isinstance(value, int):
        return bool(value)
    raise ValidationError(f"{field} must be a boolean")


def to_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    options = tuple(choices)
    text = to_text(value, field)
    if text not in options:
        raise ValidationError(f"{field} must be one of: {', '.join(options)}")
    return text


def to_email(value: Any, field: str) -> str:
    """Empty is allowed; a non-empty value must look like an address."""
    text = to_text(value, field, max_length=255)
    if text and not is_valid_email(text):
        raise ValidationError(f"{field} must be a valid email address")
    return text
