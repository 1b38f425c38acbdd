"""
Input coercion helpers shared by the write services.

Each helper appends ``{"field": ..., "message": ...}`` dicts to the
caller's error list instead of raising, so one ValidationError can report
every bad field at once.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar

E = TypeVar("E", bound=Enum)


def _error(errors: list[dict[str, str]], field: str, message: str) -> None:
    errors.append({"field": field, "message": message})


def decimal_field(
    errors: list[dict[str, str]],
    field: str,
    value: Any,
    *,
    required: bool = True,
    positive: bool = False,
) -> Decimal | None:
    """Coerce ``value`` to a finite Decimal.  Floats go through ``str``."""
    if value is None:
        if required:
            _error(errors, field, "is required")
        return None
    if isinstance(value, bool):
        _error(errors, field, "must be a number")
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        _error(errors, field, "must be a number")
        return None
    if not amount.is_finite():
        _error(errors, field, "must be a finite number")
        return None
    if positive and amount <= 0:
        _error(errors, field, "must be greater than zero")
        return None
    if not positive and amount < 0:
        _error(errors, field, "must not be negative")
        return None
    return amount


def enum_field(
    errors: list[dict[str, str]],
    field: str,
    enum_cls: type[E],
    value: Any,
    *,
    required: bool = True,
) -> E | None:
    if value is None:
        if required:
            _error(errors, field, "is required")
        return None
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        _error(errors, field, f"must be one of: {allowed}")
        return None


def text_field(
    errors: list[dict[str, str]],
    field: str,
    value: Any,
    *,
    required: bool = True,
) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            _error(errors, field, "is required")
        return None
    if not isinstance(value, str):
        _error(errors, field, "must be text")
        return None
    return value


def date_field(errors: list[dict[str, str]], field: str, value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    _error(errors, field, "must be a date")
    return None


def aware_datetime_field(
    errors: list[dict[str, str]],
    field: str,
    value: Any,
) -> datetime | None:
    """Optional timezone-aware datetime."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        _error(errors, field, "must be a datetime")
        return None
    if value.tzinfo is None:
        _error(errors, field, "must be timezone-aware")
        return None
    return value
