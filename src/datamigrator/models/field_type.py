"""Canonical field types shared by every provider."""

from enum import Enum


class FieldType(str, Enum):
    """Provider-neutral logical field types.

    Values equal the member names so persisted jobs store names, never ordinals.
    """

    AUTO_NUMBER = "AutoNumber"
    BINARY = "Binary"
    BOOLEAN = "Boolean"
    BYTE = "Byte"
    CALCULATED = "Calculated"
    CHAR = "Char"
    CHOICE = "Choice"
    CURRENCY = "Currency"
    DATE = "Date"
    DATE_TIME = "DateTime"
    DATE_TIME_OFFSET = "DateTimeOffset"
    DECIMAL = "Decimal"
    DOUBLE = "Double"
    GEOMETRY = "Geometry"
    GUID = "Guid"
    INT16 = "Int16"
    INT32 = "Int32"
    INT64 = "Int64"
    LOOKUP = "Lookup"
    MULTI_CHOICE = "MultiChoice"
    MULTI_LOOKUP = "MultiLookup"
    MULTI_USER = "MultiUser"
    OBJECT = "Object"
    RICH_TEXT = "RichText"
    SBYTE = "SByte"
    SINGLE = "Single"
    STRING = "String"
    TIME = "Time"
    TIMESTAMP = "Timestamp"
    UINT16 = "UInt16"
    UINT32 = "UInt32"
    UINT64 = "UInt64"
    URL = "Url"
    USER = "User"
    XML = "Xml"


class ConversionSafety(str, Enum):
    """Outcome of converting values between two canonical types."""

    SAFE = "safe"
    LOSSY = "lossy"
    UNSAFE = "unsafe"


# Integer ranks: a conversion is widening when the target range contains the source range.
INTEGER_RANGES: dict[FieldType, tuple[int, int]] = {
    FieldType.SBYTE: (-(2**7), 2**7 - 1),
    FieldType.BYTE: (0, 2**8 - 1),
    FieldType.INT16: (-(2**15), 2**15 - 1),
    FieldType.UINT16: (0, 2**16 - 1),
    FieldType.INT32: (-(2**31), 2**31 - 1),
    FieldType.UINT32: (0, 2**32 - 1),
    FieldType.INT64: (-(2**63), 2**63 - 1),
    FieldType.UINT64: (0, 2**64 - 1),
    FieldType.AUTO_NUMBER: (1, 2**31 - 1),
}

_APPROX_RANK = {FieldType.SINGLE: 1, FieldType.DOUBLE: 2}
_EXACT = frozenset({FieldType.DECIMAL, FieldType.CURRENCY})

_TEXT = frozenset({
    FieldType.STRING,
    FieldType.RICH_TEXT,
    FieldType.XML,
    FieldType.URL,
    FieldType.CHOICE,
    FieldType.MULTI_CHOICE,
    FieldType.LOOKUP,
    FieldType.MULTI_LOOKUP,
    FieldType.USER,
    FieldType.MULTI_USER,
    FieldType.CALCULATED,
})
# Text targets that hold any string without loss.
_UNBOUNDED_TEXT = frozenset({FieldType.STRING, FieldType.RICH_TEXT})

# Temporal rank: DateTimeOffset > DateTime/Timestamp > Date.
_TEMPORAL_RANK = {
    FieldType.DATE: 1,
    FieldType.DATE_TIME: 2,
    FieldType.TIMESTAMP: 2,
    FieldType.DATE_TIME_OFFSET: 3,
}

_BINARY = frozenset({FieldType.BINARY, FieldType.OBJECT, FieldType.GEOMETRY})

INTEGER_TYPES = frozenset(INTEGER_RANGES)
NUMERIC_TYPES = INTEGER_TYPES | frozenset(_APPROX_RANK) | _EXACT
TEXT_TYPES = _TEXT | {FieldType.CHAR}
TEMPORAL_TYPES = frozenset(_TEMPORAL_RANK) | {FieldType.TIME}
BINARY_TYPES = _BINARY


def _family(field_type: FieldType) -> str:
    if field_type in INTEGER_TYPES:
        return "int"
    if field_type in _APPROX_RANK:
        return "approx"
    if field_type in _EXACT:
        return "exact"
    if field_type in TEXT_TYPES:
        return "text"
    if field_type in _TEMPORAL_RANK:
        return "datetime"
    if field_type == FieldType.TIME:
        return "time"
    if field_type in _BINARY:
        return "binary"
    if field_type == FieldType.BOOLEAN:
        return "bool"
    if field_type == FieldType.GUID:
        return "guid"
    return "other"


def classify_conversion(source: FieldType, target: FieldType) -> ConversionSafety:
    """Classify converting values of ``source`` into ``target``.

    Examples::

        classify_conversion(FieldType.INT16, FieldType.INT64)   -> SAFE
        classify_conversion(FieldType.INT64, FieldType.INT32)   -> LOSSY
        classify_conversion(FieldType.BINARY, FieldType.INT32)  -> UNSAFE
    """
    if source == target:
        return ConversionSafety.SAFE

    src = _family(source)
    dst = _family(target)

    # Anything renders as text; binary payloads are re-encoded, hence lossy.
    if target in _UNBOUNDED_TEXT:
        return ConversionSafety.LOSSY if src == "binary" else ConversionSafety.SAFE
    if dst == "text":
        if src == "text" and target != FieldType.CHAR:
            return ConversionSafety.SAFE
        return ConversionSafety.LOSSY if src in ("text", "int", "approx", "exact", "guid") else ConversionSafety.UNSAFE

    if src == "int" and dst == "int":
        src_lo, src_hi = INTEGER_RANGES[source]
        dst_lo, dst_hi = INTEGER_RANGES[target]
        if dst_lo <= src_lo and src_hi <= dst_hi:
            return ConversionSafety.SAFE
        return ConversionSafety.LOSSY

    if src in ("int", "approx", "exact", "bool") and dst in ("int", "approx", "exact"):
        if dst == "exact":
            return ConversionSafety.LOSSY if src == "approx" else ConversionSafety.SAFE
        if dst == "approx":
            if src == "approx":
                return (
                    ConversionSafety.SAFE
                    if _APPROX_RANK[target] >= _APPROX_RANK[source]
                    else ConversionSafety.LOSSY
                )
            return ConversionSafety.LOSSY
        # Integer targets.
        return ConversionSafety.SAFE if src == "bool" else ConversionSafety.LOSSY

    if src == "int" and dst == "bool":
        return ConversionSafety.LOSSY

    if src == "datetime" and dst == "datetime":
        if _TEMPORAL_RANK[target] >= _TEMPORAL_RANK[source]:
            return ConversionSafety.SAFE
        return ConversionSafety.LOSSY
    if src == "datetime" and dst == "time":
        return ConversionSafety.LOSSY

    if src == "binary" and dst == "binary":
        # Object is the opaque container every binary payload fits in.
        return ConversionSafety.SAFE if target == FieldType.OBJECT else ConversionSafety.LOSSY

    # Text can be parsed into most scalar types, but values may be rejected.
    if src == "text" and dst in ("int", "approx", "exact", "bool", "datetime", "time", "guid"):
        return ConversionSafety.LOSSY

    return ConversionSafety.UNSAFE
