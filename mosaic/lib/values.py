"""Typed field values for schema-driven documents.

Raw input (JSON bodies, query strings) is checked against a field
definition and narrowed to the closed value set ``str | int | float |
bool | None``. Dates travel as ISO-8601 ``YYYY-MM-DD`` strings.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Union

from mosaic.db.models.content_type import NUMERIC_TYPES, TEXT_TYPES, ContentTypeField, FieldType
from mosaic.lib.exceptions import ValidationError

FieldValue = Union[str, int, float, bool, None]

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

_TRUE_STRINGS = frozenset({"true", "1", "yes"})
_FALSE_STRINGS = frozenset({"false", "0", "no"})


def _fail(field: ContentTypeField, message: str) -> ValidationError:
    return ValidationError(f'"{field.display_name}" {message}', field=field.name)


def _to_int(field: ContentTypeField, value: Any, lenient: bool) -> int:
    if isinstance(value, bool):
        raise _fail(field, "must be a whole number")
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)) and value == int(value):
        return int(value)
    if lenient and isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise _fail(field, "must be a whole number")


def _to_float(field: ContentTypeField, value: Any, lenient: bool) -> float:
    if isinstance(value, bool):
        raise _fail(field, "must be a number")
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if lenient and isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            pass
    raise _fail(field, "must be a number")


def _to_bool(field: ContentTypeField, value: Any, lenient: bool) -> bool:
    if isinstance(value, bool):
        return value
    if lenient and isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise _fail(field, "must be true or false")


def _to_date(field: ContentTypeField, value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10]).isoformat()
        except ValueError:
            pass
    raise _fail(field, "must be a date (YYYY-MM-DD)")


def _to_text(field: ContentTypeField, value: Any) -> str:
    if not isinstance(value, str):
        raise _fail(field, "must be text")
    if field.field_type is FieldType.EMAIL and value and not EMAIL_PATTERN.match(value):
        raise _fail(field, "must be a valid email address")
    if field.field_type is FieldType.SLUG and value and not SLUG_PATTERN.match(value):
        raise _fail(field, "must be a valid slug (lowercase, numbers, and hyphens only)")
    return value


def coerce(field: ContentTypeField, value: Any, *, lenient: bool = False) -> FieldValue:
    """Narrow ``value`` to the field's Python type without checking bounds.

    ``lenient`` accepts string spellings of numbers and booleans, for
    values that arrive through query strings.
    """
    if value is None:
        return None

    field_type = field.field_type
    if field_type is FieldType.NUMBER:
        return _to_int(field, value, lenient)
    if field_type is FieldType.DECIMAL:
        return _to_float(field, value, lenient)
    if field_type is FieldType.BOOLEAN:
        return _to_bool(field, value, lenient)
    if field_type is FieldType.DATE:
        return _to_date(field, value)
    return _to_text(field, value)


def check_bounds(field: ContentTypeField, value: FieldValue) -> None:
    """Enforce inclusive length/value bounds."""
    if value is None:
        return

    field_type = field.field_type
    if field_type in TEXT_TYPES:
        length = len(value)
        if field.min_length is not None and length < field.min_length:
            raise _fail(field, f"must be at least {field.min_length} characters")
        if field.max_length is not None and length > field.max_length:
            raise _fail(field, f"must be at most {field.max_length} characters")
    elif field_type in NUMERIC_TYPES:
        if field.min_value is not None and value < field.min_value:
            raise _fail(field, f"must be at least {_format_number(field.min_value)}")
        if field.max_value is not None and value > field.max_value:
            raise _fail(field, f"must be at most {_format_number(field.max_value)}")


def validate(field: ContentTypeField, value: Any) -> FieldValue:
    """Coerce then bound-check a value supplied for a write."""
    typed = coerce(field, value)
    check_bounds(field, typed)
    return typed


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
