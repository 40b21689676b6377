"""Field mapping models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field as PydanticField

from datamigrator.models.field_type import ConversionSafety
from datamigrator.models.schema import Field


class TransformType(str, Enum):
    """Value transforms applied while copying a field."""

    DIRECT = "direct"
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    TRIM = "trim"
    TRUNCATE = "truncate"
    DEFAULT = "default"
    TO_STRING = "to_string"


class FieldMappingEntry(BaseModel):
    """One source field copied into one target field."""

    source: Field
    target: Field
    transform: TransformType = TransformType.DIRECT
    transform_config: dict[str, Any] = PydanticField(default_factory=dict)
    allow_narrowing: bool = False
    safety: ConversionSafety | None = None

    @property
    def display(self) -> str:
        """Human readable pair."""
        return f"{self.source.name} ({self.source.type.value}) -> {self.target.name} ({self.target.type.value})"


class FieldMapping(BaseModel):
    """Ordered source-to-target field correspondence for one resource pair."""

    source_resource: str
    target_resource: str
    entries: list[FieldMappingEntry] = PydanticField(default_factory=list)

    @property
    def target_names(self) -> list[str]:
        """Target field names in mapping order."""
        return [e.target.name for e in self.entries]

    @property
    def is_validated(self) -> bool:
        """True once every entry has a safety verdict from the mapping builder."""
        return all(e.safety is not None for e in self.entries)
