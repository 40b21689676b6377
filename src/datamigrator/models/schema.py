"""Field and schema models."""

from typing import Any

from pydantic import BaseModel, Field as PydanticField, model_validator

from datamigrator.models.field_type import FieldType

Row = dict[str, Any]


class Field(BaseModel):
    """A column definition in canonical terms."""

    name: str = PydanticField(..., min_length=1)
    type: FieldType
    nullable: bool = True
    is_primary_key: bool = False
    attributes: dict[str, Any] = PydanticField(
        default_factory=dict,
        description="Provider-specific extras such as length, precision and scale",
    )

    @property
    def length(self) -> int | None:
        """Declared maximum length, if any."""
        value = self.attributes.get("length")
        return int(value) if value is not None else None


class Schema(BaseModel):
    """An ordered set of fields belonging to one table, sheet or file."""

    name: str = PydanticField(..., min_length=1)
    fields: list[Field] = PydanticField(default_factory=list)

    @model_validator(mode="after")
    def _check_unique_names(self) -> "Schema":
        seen: set[str] = set()
        for field in self.fields:
            if field.name in seen:
                raise ValueError(f"Duplicate field name '{field.name}' in schema '{self.name}'")
            seen.add(field.name)
        return self

    @property
    def field_names(self) -> list[str]:
        """Field names in schema order."""
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> Field | None:
        """Look up a field by exact name."""
        for field in self.fields:
            if field.name == name:
                return field
        return None

    def __contains__(self, name: object) -> bool:
        return any(f.name == name for f in self.fields)
