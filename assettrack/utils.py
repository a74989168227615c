"""
Small parsing and time helpers shared by models and services.

Every parser raises ``ValidationError`` with the field name attached so
callers can surface the exact input that failed.
"""

import math
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from dateutil import parser as date_parser

from assettrack.exceptions import ValidationError

_FALSE_STRINGS = frozenset({"", "false", "f", "0", "no", "n", "off"})

# Money columns are Numeric(12, 2).
_CENTS = Decimal("0.01")
_MONEY_LIMIT = Decimal("1e10")


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_blank(value: Any) -> bool:
    """True for None and for strings that are empty after stripping."""
    return value is None or (isinstance(value, str) and not value.strip())


def parse_date(value: Any, field: str) -> date:
    """
    Parse a calendar date.

    Accepts ``date`` and ``datetime`` objects and any string
    python-dateutil understands ("2026-01-15", "Jan 15 2026",
    "2026-01-15T09:30:00Z").  Time components are dropped.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(
            f"'{field}' must be a date string.", field=field, value=value
        )
    try:
        return date_parser.parse(value.strip()).date()
    except (ValueError, OverflowError) as exc:
        raise ValidationError(
            f"'{field}' is not a valid date: {value!r}.", field=field, value=value
        ) from exc


def parse_number(value: Any, field: str) -> float:
    """Parse a finite number; booleans are rejected."""
    if isinstance(value, bool):
        raise ValidationError(
            f"'{field}' must be a number.", field=field, value=value
        )
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"'{field}' must be a number, got {value!r}.", field=field, value=value
        ) from exc
    if not math.isfinite(number):
        raise ValidationError(
            f"'{field}' must be a finite number.", field=field, value=value
        )
    return number


def parse_decimal(value: Any, field: str) -> Decimal:
    """
    Parse a money amount into a two-place Decimal.

    Amounts must fit a ``Numeric(12, 2)`` column, i.e. stay below ten
    billion in absolute value.
    """
    if isinstance(value, bool):
        raise ValidationError(f"'{field}' must be a number.", field=field, value=value)
    try:
        amount = Decimal(str(value).strip())
        if amount.is_finite():
            amount = amount.quantize(_CENTS)
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(
            f"'{field}' must be a valid amount, got {value!r}.",
            field=field,
            value=value,
        ) from exc
    if not amount.is_finite():
        raise ValidationError(f"'{field}' must be a finite amount.", field=field, value=value)
    if abs(amount) >= _MONEY_LIMIT:
        raise ValidationError(
            f"'{field}' must be less than 10,000,000,000.", field=field, value=value
        )
    return amount


def parse_bool(value: Any) -> bool:
    """
    Truthy/falsy coercion that never fails.

    Strings are compared case-insensitively against the usual false
    spellings; everything else falls back to Python truthiness.
    """
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def parse_optional_id(value: Any, field: str) -> int | None:
    """Parse a nullable integer id (``None`` and blank mean unset)."""
    if is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"'{field}' must be an integer id.", field=field, value=value)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"'{field}' must be an integer id, got {value!r}.",
            field=field,
            value=value,
        ) from exc
