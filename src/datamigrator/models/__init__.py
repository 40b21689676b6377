"""Data models for DataMigrator."""

from datamigrator.models.connection import ConnectionDetails, ConnectionTestResult
from datamigrator.models.field_type import ConversionSafety, FieldType, classify_conversion
from datamigrator.models.job import (
    Job,
    JobCollection,
    JobError,
    JobProgress,
    JobResult,
    JobStatus,
)
from datamigrator.models.mapping import FieldMapping, FieldMappingEntry, TransformType
from datamigrator.models.schema import Field, Row, Schema

__all__ = [
    "ConnectionDetails",
    "ConnectionTestResult",
    "ConversionSafety",
    "Field",
    "FieldMapping",
    "FieldMappingEntry",
    "FieldType",
    "Job",
    "JobCollection",
    "JobError",
    "JobProgress",
    "JobResult",
    "JobStatus",
    "Row",
    "Schema",
    "TransformType",
    "classify_conversion",
]
