"""Provider contract and conversion tables."""

from datamigrator.providers.base import (
    CAPABILITIES,
    BaseProvider,
    RowReader,
    RowWriter,
    SchemaReader,
    SchemaWriter,
    WriteReport,
)
from datamigrator.providers.converter import FieldTypeConverter

__all__ = [
    "CAPABILITIES",
    "BaseProvider",
    "FieldTypeConverter",
    "RowReader",
    "RowWriter",
    "SchemaReader",
    "SchemaWriter",
    "WriteReport",
]
