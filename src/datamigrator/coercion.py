"""Value coercion into canonical field types."""

import base64
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from dateutil import parser as date_parser

from datamigrator.models.field_type import (
    BINARY_TYPES,
    INTEGER_RANGES,
    TEXT_TYPES,
    FieldType,
)

_TRUE_STRINGS = frozenset({"true", "t", "yes", "y", "1", "on"})
_FALSE_STRINGS = frozenset({"false", "f", "no", "n", "0", "off"})


def _to_int(value: Any, field_type: FieldType) -> int:
    if isinstance(value, bool):
        result = int(value)
    elif isinstance(value, int):
        result = value
    elif isinstance(value, (float, Decimal)):
        if value != int(value):
            raise ValueError(f"{value} has a fractional part")
        result = int(value)
    else:
        text = str(value).strip()
        try:
            result = int(text)
        except ValueError:
            try:
                number = Decimal(text)
            except InvalidOperation:
                raise ValueError(f"'{text}' is not an integer") from None
            if number != number.to_integral_value():
                raise ValueError(f"{text} has a fractional part") from None
            result = int(number)

    low, high = INTEGER_RANGES[field_type]
    if not low <= result <= high:
        raise ValueError(f"{result} is out of range for {field_type.value}")
    return result


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"{value} is not a boolean")
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"'{value}' is not a boolean")


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    return date_parser.parse(str(value))


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return base64.b64decode(value, validate=True)
    raise TypeError(f"{type(value).__name__} is not binary")


def coerce_value(value: Any, field_type: FieldType) -> Any:
    """Convert ``value`` to the Python representation of ``field_type``.

    ``None`` passes through, and so does an empty string for non-text types.

    Raises:
        ValueError: the value cannot represent ``field_type``.
        TypeError: the value's Python type cannot be converted.
    """
    if value is None:
        return None
    if field_type in TEXT_TYPES:
        return _to_text(value)
    if isinstance(value, str) and not value.strip():
        return None

    if field_type in INTEGER_RANGES:
        return _to_int(value, field_type)
    if field_type in (FieldType.SINGLE, FieldType.DOUBLE):
        return float(value)
    if field_type in (FieldType.DECIMAL, FieldType.CURRENCY):
        try:
            return value if isinstance(value, Decimal) else Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"'{value}' is not a decimal number") from None
    if field_type == FieldType.BOOLEAN:
        return _to_bool(value)
    if field_type == FieldType.DATE:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        return date_parser.parse(str(value)).date()
    if field_type in (FieldType.DATE_TIME, FieldType.TIMESTAMP):
        return _to_datetime(value)
    if field_type == FieldType.DATE_TIME_OFFSET:
        result = _to_datetime(value)
        return result if result.tzinfo else result.replace(tzinfo=timezone.utc)
    if field_type == FieldType.TIME:
        if isinstance(value, time):
            return value
        if isinstance(value, datetime):
            return value.time()
        return time.fromisoformat(str(value).strip())
    if field_type == FieldType.GUID:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value).strip())
    if field_type == FieldType.OBJECT:
        return value
    if field_type in BINARY_TYPES:
        return _to_bytes(value)
    return value


def infer_field_type(values: list[str]) -> FieldType:
    """Guess the narrowest canonical type that accepts every sample value.

    Blank samples are ignored; all-blank columns are strings.
    """
    samples = [v for v in values if v is not None and str(v).strip()]
    if not samples:
        return FieldType.STRING

    for candidate in (FieldType.INT64, FieldType.DOUBLE, FieldType.BOOLEAN, FieldType.DATE_TIME):
        try:
            for sample in samples:
                text = str(sample).strip()
                if candidate == FieldType.BOOLEAN and text.lower() not in ("true", "false", "yes", "no"):
                    raise ValueError(sample)
                # dateutil accepts bare month and weekday names.
                if candidate == FieldType.DATE_TIME and not any(c.isdigit() for c in text):
                    raise ValueError(sample)
                coerce_value(sample, candidate)
        except (ValueError, TypeError, OverflowError):
            continue
        return candidate
    return FieldType.STRING
