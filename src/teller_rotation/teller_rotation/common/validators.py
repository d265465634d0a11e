from __future__ import annotations

from typing import Any

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_int(value: Any, field_name: str) -> int:
    # bool is an int subclass; True is not a valid count or offset.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer")
    return value


def require_positive_int(value: Any, field_name: str) -> int:
    value = require_int(value, field_name)
    if value < 1:
        raise ValidationError(f"{field_name} must be at least 1")
    return value


def require_non_negative_int(value: Any, field_name: str) -> int:
    value = require_int(value, field_name)
    if value < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return value


def require_id(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} is invalid")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is invalid")
    if parsed <= 0:
        raise ValidationError(f"{field_name} is invalid")
    return parsed
