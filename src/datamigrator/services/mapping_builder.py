"""Validated field mapping construction and row transformation."""

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, Field as PydanticField

from datamigrator.coercion import coerce_value
from datamigrator.errors import MappingValidationError, RowConversionError, UnsupportedFieldType
from datamigrator.models.field_type import ConversionSafety, FieldType, TEXT_TYPES, classify_conversion
from datamigrator.models.mapping import FieldMapping, FieldMappingEntry, TransformType
from datamigrator.models.schema import Field, Row, Schema
from datamigrator.providers.converter import FieldTypeConverter

logger = logging.getLogger(__name__)

# Transforms whose output is always text.
_TEXT_TRANSFORMS = frozenset({
    TransformType.UPPERCASE,
    TransformType.LOWERCASE,
    TransformType.TRIM,
    TransformType.TRUNCATE,
    TransformType.TO_STRING,
})


class FieldPair(BaseModel):
    """A requested source-to-target field pairing, before validation."""

    source: str
    target: str
    transform: TransformType = TransformType.DIRECT
    transform_config: dict[str, Any] = PydanticField(default_factory=dict)
    allow_narrowing: bool = False

    @classmethod
    def from_entry(cls, entry: FieldMappingEntry) -> "FieldPair":
        """Pairing that reproduces an existing mapping entry."""
        return cls(
            source=entry.source.name,
            target=entry.target.name,
            transform=entry.transform,
            transform_config=entry.transform_config,
            allow_narrowing=entry.allow_narrowing,
        )


class MappingBuilder:
    """Builds field mappings and applies them to rows.

    Every problem found while building is collected and raised at once, so a
    mapping either validates completely or no job is created from it.
    """

    def build(
        self,
        source_schema: Schema,
        target_schema: Schema,
        pairs: Iterable[FieldPair | tuple[str, str]],
        source_converter: FieldTypeConverter[Any] | None = None,
        target_converter: FieldTypeConverter[Any] | None = None,
    ) -> FieldMapping:
        """Validate ``pairs`` against both schemas and return the mapping.

        Raises:
            MappingValidationError: listing every failing pair.
        """
        problems: list[str] = []
        entries: list[FieldMappingEntry] = []
        seen_targets: set[str] = set()

        for pair in pairs:
            if isinstance(pair, tuple):
                pair = FieldPair(source=pair[0], target=pair[1])

            source = source_schema.get_field(pair.source)
            target = target_schema.get_field(pair.target)
            if source is None:
                problems.append(f"Source field '{pair.source}' not found in {source_schema.name}")
            if target is None:
                problems.append(f"Target field '{pair.target}' not found in {target_schema.name}")
            if source is None or target is None:
                continue

            if target.name in seen_targets:
                problems.append(f"Target field '{target.name}' is mapped more than once")
                continue
            seen_targets.add(target.name)

            entry_problems = self._check_transform(pair)
            if source_converter is not None and not source_converter.supports(source.type):
                entry_problems.append(
                    f"{source.type.value} is not a type {source_converter.PROVIDER_NAME} can read"
                )
            if target_converter is not None:
                try:
                    target_converter.to_native(target.type)
                except UnsupportedFieldType as e:
                    entry_problems.append(str(e))

            safety = self.classify(source, target, pair)
            if safety == ConversionSafety.UNSAFE:
                entry_problems.append(
                    f"cannot convert {source.type.value} to {target.type.value}"
                )
            elif safety == ConversionSafety.LOSSY and not pair.allow_narrowing:
                entry_problems.append(
                    f"{source.type.value} to {target.type.value} may lose data; "
                    "set allow_narrowing to accept"
                )

            if entry_problems:
                problems.extend(f"{source.name} -> {target.name}: {p}" for p in entry_problems)
                continue

            entries.append(
                FieldMappingEntry(
                    source=source,
                    target=target,
                    transform=pair.transform,
                    transform_config=pair.transform_config,
                    allow_narrowing=pair.allow_narrowing,
                    safety=safety,
                )
            )

        for field in target_schema.fields:
            if not field.nullable and field.name not in seen_targets:
                problems.append(f"Target field '{field.name}' is required but not mapped")

        if not entries and not problems:
            problems.append("Mapping has no fields")
        if problems:
            raise MappingValidationError(problems)

        logger.debug(f"Mapped {source_schema.name} -> {target_schema.name}: {len(entries)} fields")
        return FieldMapping(
            source_resource=source_schema.name,
            target_resource=target_schema.name,
            entries=entries,
        )

    def revalidate(
        self,
        mapping: FieldMapping,
        source_schema: Schema,
        target_schema: Schema,
        source_converter: FieldTypeConverter[Any] | None = None,
        target_converter: FieldTypeConverter[Any] | None = None,
    ) -> FieldMapping:
        """Rebuild a stored mapping against the schemas as they are now."""
        return self.build(
            source_schema,
            target_schema,
            [FieldPair.from_entry(e) for e in mapping.entries],
            source_converter,
            target_converter,
        )

    def auto_map(
        self, source_schema: Schema, target_schema: Schema, allow_narrowing: bool = False
    ) -> list[FieldPair]:
        """Pair fields whose names match case-insensitively, in source order."""
        targets = {f.name.lower(): f for f in target_schema.fields}
        pairs = []
        for field in source_schema.fields:
            target = targets.get(field.name.lower())
            if target is not None:
                pairs.append(
                    FieldPair(source=field.name, target=target.name, allow_narrowing=allow_narrowing)
                )
        return pairs

    def derive_schema(
        self, source_schema: Schema, name: str, target_converter: FieldTypeConverter[Any]
    ) -> Schema:
        """Target schema a provider would create to hold ``source_schema``.

        Each field takes the type it round-trips to under the target
        converter, so the planned schema matches what reopening it reports.
        """
        problems = []
        fields = []
        for field in source_schema.fields:
            try:
                field_type = target_converter.round_trip(field.type)
            except UnsupportedFieldType as e:
                problems.append(f"{field.name}: {e}")
                continue
            attributes = {k: v for k, v in field.attributes.items() if k != "native_type"}
            fields.append(field.model_copy(update={"type": field_type, "attributes": attributes}))
        if problems:
            raise MappingValidationError(problems)
        return Schema(name=name, fields=fields)

    def classify(self, source: Field, target: Field, pair: FieldPair | None = None) -> ConversionSafety:
        """Conversion safety of one entry, including transforms and lengths."""
        transform = pair.transform if pair else TransformType.DIRECT
        config = pair.transform_config if pair else {}

        effective = source.type
        if transform in _TEXT_TRANSFORMS and source.type not in TEXT_TYPES:
            effective = FieldType.STRING
        safety = classify_conversion(effective, target.type)

        if safety == ConversionSafety.SAFE and target.length is not None and target.type in TEXT_TYPES:
            limit = config.get("length") if transform == TransformType.TRUNCATE else source.length
            if limit is None or int(limit) > target.length:
                safety = ConversionSafety.LOSSY

        if (
            safety == ConversionSafety.SAFE
            and source.nullable
            and not target.nullable
            and transform != TransformType.DEFAULT
        ):
            safety = ConversionSafety.LOSSY
        return safety

    def _check_transform(self, pair: FieldPair) -> list[str]:
        config = pair.transform_config
        if pair.transform == TransformType.TRUNCATE:
            length = config.get("length")
            if not isinstance(length, int) or isinstance(length, bool) or length < 1:
                return ["truncate needs a positive integer 'length'"]
        if pair.transform == TransformType.DEFAULT and "value" not in config:
            return ["default needs a 'value'"]
        return []

    def apply(self, mapping: FieldMapping, row: Row, row_index: int = 0) -> Row:
        """Transform and coerce one source row into a target row.

        Raises:
            RowConversionError: a value cannot be represented by its target field.
        """
        result: Row = {}
        for entry in mapping.entries:
            value = row.get(entry.source.name)
            try:
                value = coerce_value(transform_value(entry, value), entry.target.type)
            except (ValueError, TypeError, OverflowError, ArithmeticError) as e:
                raise RowConversionError(row_index, entry.target.name, str(e)) from e
            if value is None and not entry.target.nullable:
                raise RowConversionError(row_index, entry.target.name, "null value for a non-nullable field")
            result[entry.target.name] = value
        return result


def transform_value(entry: FieldMappingEntry, value: Any) -> Any:
    """Apply an entry's transform to a raw source value."""
    transform = entry.transform
    if transform == TransformType.DIRECT:
        return value
    if transform == TransformType.DEFAULT:
        if value is None or (isinstance(value, str) and not value.strip()):
            return entry.transform_config["value"]
        return value
    if value is None:
        return None

    text = coerce_value(value, FieldType.STRING)
    if transform == TransformType.UPPERCASE:
        return text.upper()
    if transform == TransformType.LOWERCASE:
        return text.lower()
    if transform == TransformType.TRIM:
        return text.strip()
    if transform == TransformType.TRUNCATE:
        return text[: entry.transform_config["length"]]
    return text
