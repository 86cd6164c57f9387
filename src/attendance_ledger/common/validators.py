from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from ..core.exceptions import ConstraintViolation, InvalidArgument, InvalidEnum
from .datetime_utils import parse_iso_date

E = TypeVar("E", bound=Enum)


def require_enum(value: Any, enum_cls: Type[E], field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    if value is None or value == "":
        raise ConstraintViolation(field_name)
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise InvalidEnum(field_name, value, [m.value for m in enum_cls])


def require_id(value: Any, field_name: str) -> int:
    """Accept a positive integer reference (int or digit string)."""
    if value is None or value == "":
        raise ConstraintViolation(field_name)
    if isinstance(value, bool):
        raise ConstraintViolation(field_name, f"{field_name} must be a positive integer")
    try:
        ident = int(value)
    except (TypeError, ValueError):
        raise ConstraintViolation(field_name, f"{field_name} must be a positive integer")
    if ident <= 0 or (isinstance(value, float) and value != ident):
        raise ConstraintViolation(field_name, f"{field_name} must be a positive integer")
    return ident


def require_date(value: Any, field_name: str) -> date:
    if value is None or value == "":
        raise ConstraintViolation(field_name)
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value).strip())
    except ValueError:
        raise ConstraintViolation(field_name, f"{field_name} must be a YYYY-MM-DD date")


def optional_minutes(value: Any, field_name: str = "late_minutes") -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        minutes = int(value)
    except (TypeError, ValueError):
        raise ConstraintViolation(field_name, f"{field_name} must be a whole number of minutes")
    if isinstance(value, bool) or (isinstance(value, float) and value != minutes):
        raise ConstraintViolation(field_name, f"{field_name} must be a whole number of minutes")
    if minutes < 0:
        raise ConstraintViolation(field_name, f"{field_name} cannot be negative")
    return minutes


def optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def require_date_range(start: date, end: date) -> None:
    if start > end:
        raise InvalidArgument(f"start date {start.isoformat()} is after end date {end.isoformat()}")
