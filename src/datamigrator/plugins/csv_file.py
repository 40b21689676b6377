"""CSV file provider."""

import csv
import logging
from collections.abc import Iterable, Iterator
from enum import Enum
from itertools import islice
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from datamigrator.coercion import coerce_value, infer_field_type
from datamigrator.errors import ConnectionError, ResourceAlreadyExists, ResourceNotFound
from datamigrator.models.connection import ConnectionDetails
from datamigrator.models.field_type import FieldType
from datamigrator.models.schema import Field as SchemaField, Row, Schema
from datamigrator.plugins.base import (
    ConnectionForm,
    ConnectionFormField,
    FormFieldKind,
    MigrationPlugin,
    MigrationTool,
    parse_options,
)
from datamigrator.providers.base import (
    BaseProvider,
    RowReader,
    RowWriter,
    SchemaReader,
    SchemaWriter,
    WriteReport,
)
from datamigrator.providers.converter import FieldTypeConverter

logger = logging.getLogger(__name__)

PROVIDER_NAME = "CSV"


class CsvType(str, Enum):
    """Column types a CSV file can carry."""

    TEXT = "text"
    INTEGER = "integer"
    REAL = "real"
    BOOLEAN = "boolean"
    DATETIME = "datetime"


class CsvTypeConverter(FieldTypeConverter[CsvType]):
    """CSV keeps five column types; everything else is written as text."""

    PROVIDER_NAME = PROVIDER_NAME
    TO_NATIVE = {
        FieldType.AUTO_NUMBER: CsvType.INTEGER,
        FieldType.BINARY: CsvType.TEXT,
        FieldType.BOOLEAN: CsvType.BOOLEAN,
        FieldType.BYTE: CsvType.INTEGER,
        FieldType.CALCULATED: CsvType.TEXT,
        FieldType.CHAR: CsvType.TEXT,
        FieldType.CHOICE: CsvType.TEXT,
        FieldType.CURRENCY: CsvType.TEXT,
        FieldType.DATE: CsvType.DATETIME,
        FieldType.DATE_TIME: CsvType.DATETIME,
        FieldType.DATE_TIME_OFFSET: CsvType.TEXT,
        FieldType.DECIMAL: CsvType.TEXT,
        FieldType.DOUBLE: CsvType.REAL,
        FieldType.GEOMETRY: CsvType.TEXT,
        FieldType.GUID: CsvType.TEXT,
        FieldType.INT16: CsvType.INTEGER,
        FieldType.INT32: CsvType.INTEGER,
        FieldType.INT64: CsvType.INTEGER,
        FieldType.LOOKUP: CsvType.TEXT,
        FieldType.MULTI_CHOICE: CsvType.TEXT,
        FieldType.MULTI_LOOKUP: CsvType.TEXT,
        FieldType.MULTI_USER: CsvType.TEXT,
        FieldType.OBJECT: CsvType.TEXT,
        FieldType.RICH_TEXT: CsvType.TEXT,
        FieldType.SBYTE: CsvType.INTEGER,
        FieldType.SINGLE: CsvType.REAL,
        FieldType.STRING: CsvType.TEXT,
        FieldType.TIME: CsvType.TEXT,
        FieldType.TIMESTAMP: CsvType.DATETIME,
        FieldType.UINT16: CsvType.INTEGER,
        FieldType.UINT32: CsvType.INTEGER,
        FieldType.UINT64: CsvType.INTEGER,
        FieldType.URL: CsvType.TEXT,
        FieldType.USER: CsvType.TEXT,
        FieldType.XML: CsvType.TEXT,
    }
    TO_CANONICAL = {
        CsvType.TEXT: FieldType.STRING,
        CsvType.INTEGER: FieldType.INT64,
        CsvType.REAL: FieldType.DOUBLE,
        CsvType.BOOLEAN: FieldType.BOOLEAN,
        CsvType.DATETIME: FieldType.DATE_TIME,
    }
    # Decimal, currency and offsets stay text to keep every digit and the offset.
    FOLDED = {
        **{
            f: FieldType.STRING
            for f, native in TO_NATIVE.items()
            if native == CsvType.TEXT and f != FieldType.STRING
        },
        **{
            f: FieldType.INT64
            for f, native in TO_NATIVE.items()
            if native == CsvType.INTEGER and f != FieldType.INT64
        },
        FieldType.SINGLE: FieldType.DOUBLE,
        FieldType.DATE: FieldType.DATE_TIME,
        FieldType.TIMESTAMP: FieldType.DATE_TIME,
    }


def column_names(header: list[str]) -> list[str]:
    """Field names for a header row.

    Blank cells take their positional name and repeated names get a numeric
    suffix, so every column maps to a distinct field.
    """
    names: list[str] = []
    seen: set[str] = set()
    for position, raw in enumerate(header, start=1):
        base = raw.strip() or f"Column{position}"
        name = base
        suffix = 2
        while name in seen:
            name = f"{base}_{suffix}"
            suffix += 1
        seen.add(name)
        names.append(name)
    return names


class CsvOptions(BaseModel):
    """Extended properties understood by the CSV provider."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    has_header_row: bool = Field(default=True, alias="HasHeaderRow")
    delimiter: str = Field(default=",", min_length=1, max_length=1, alias="Delimiter")
    encoding: str = Field(default="utf-8", alias="Encoding")
    infer_types: bool = Field(default=False, alias="InferTypes")
    sample_rows: int = Field(default=100, ge=1, alias="SampleRows")


class CsvProvider(BaseProvider, SchemaReader, SchemaWriter, RowReader, RowWriter):
    """One CSV file is one resource, named after the file stem.

    Writes are appended and flushed row at a time; the file is not
    transactional.
    """

    CONVERTER = CsvTypeConverter()

    def __init__(self, connection_details: ConnectionDetails) -> None:
        super().__init__(connection_details)
        self.options: CsvOptions = parse_options(CsvOptions, connection_details)
        path = connection_details.database or connection_details.connection_string
        if not path:
            raise ConnectionError("CSV connection requires a file path")
        self.path = Path(path)

    @property
    def resource_name(self) -> str:
        """Resource name exposed for the file."""
        return self.path.stem

    def validate_connection(self) -> bool:
        return self.path.is_file() or self.path.parent.is_dir()

    def default_resource(self) -> str:
        return self.resource_name

    def list_resources(self) -> list[str]:
        return [self.resource_name] if self.path.is_file() else []

    def _check_resource(self, resource_name: str) -> None:
        if resource_name != self.resource_name or not self.path.is_file():
            raise ResourceNotFound(resource_name)

    def _open_reader(self):
        try:
            handle = open(self.path, newline="", encoding=self.options.encoding)
        except OSError as e:
            raise ConnectionError(f"Cannot open {self.path}: {e}") from e
        return handle, csv.reader(handle, delimiter=self.options.delimiter)

    def open_schema(self, resource_name: str) -> Schema:
        self._check_resource(resource_name)
        handle, reader = self._open_reader()
        with handle:
            first = next(reader, None)
            if first is None:
                return Schema(name=resource_name, fields=[])
            if self.options.has_header_row:
                names = column_names(first)
                samples = list(islice(reader, self.options.sample_rows))
            else:
                names = [f"Column{i}" for i in range(1, len(first) + 1)]
                samples = [first, *islice(reader, self.options.sample_rows - 1)]

        fields = []
        for index, name in enumerate(names):
            field_type = FieldType.STRING
            if self.options.infer_types:
                column = [row[index] for row in samples if index < len(row)]
                field_type = self.converter.round_trip(infer_field_type(column))
            fields.append(SchemaField(name=name, type=field_type))
        return Schema(name=resource_name, fields=fields)

    def create_schema(self, schema: Schema) -> None:
        if self.path.exists() and self.path.stat().st_size > 0:
            raise ResourceAlreadyExists(schema.name)
        try:
            with open(self.path, "w", newline="", encoding=self.options.encoding) as handle:
                if self.options.has_header_row:
                    csv.writer(handle, delimiter=self.options.delimiter).writerow(schema.field_names)
        except OSError as e:
            raise ConnectionError(f"Cannot create {self.path}: {e}") from e
        logger.info(f"Created CSV file {self.path}")

    def read_rows(self, schema: Schema) -> Iterator[Row]:
        self._check_resource(schema.name)
        handle, reader = self._open_reader()
        with handle:
            if self.options.has_header_row:
                header = column_names(next(reader, []))
            else:
                header = []
            positions = {
                field.name: (header.index(field.name) if field.name in header else i)
                for i, field in enumerate(schema.fields)
            }
            for values in reader:
                if not values:
                    continue
                row: Row = {}
                for field in schema.fields:
                    position = positions[field.name]
                    raw = values[position] if position < len(values) else None
                    row[field.name] = coerce_value(raw, field.type) if raw != "" else None
                yield row

    def write_rows(self, schema: Schema, rows: Iterable[Row]) -> WriteReport:
        if not self.path.exists():
            raise ResourceNotFound(schema.name)
        names = schema.field_names
        with open(self.path, "a", newline="", encoding=self.options.encoding) as handle:
            writer = csv.writer(handle, delimiter=self.options.delimiter)

            def write_one(row: Row) -> None:
                writer.writerow(
                    ["" if row.get(n) is None else coerce_value(row.get(n), FieldType.STRING) for n in names]
                )
                handle.flush()

            return self.write_row_at_a_time(rows, write_one)


class PreviewHeaderTool(MigrationTool):
    """Shows the detected columns and the first few rows of a CSV file."""

    name = "Preview header"
    description = "Show detected columns and the first rows"

    def __init__(self, rows: int = 5) -> None:
        self.rows = rows

    def run(self, connection_details: ConnectionDetails) -> str:
        provider = CsvProvider(connection_details)
        with provider:
            schema = provider.open_schema(provider.resource_name)
            lines = [", ".join(f"{f.name}:{f.type.value}" for f in schema.fields)]
            for row in islice(provider.read_rows(schema), self.rows):
                lines.append(", ".join("" if v is None else str(v) for v in row.values()))
        return "\n".join(lines)


class CsvPlugin(MigrationPlugin):
    """Plugin for delimited text files."""

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    @property
    def converter(self) -> CsvTypeConverter:
        return CsvProvider.CONVERTER

    def get_data_provider(self, connection_details: ConnectionDetails) -> CsvProvider:
        return CsvProvider(connection_details)

    @property
    def connection_form(self) -> ConnectionForm:
        return ConnectionForm(
            title="CSV File",
            fields=[
                ConnectionFormField(
                    key="database", label="File", kind=FormFieldKind.PATH, required=True,
                    placeholder="/path/to/file.csv",
                ),
                ConnectionFormField(
                    key="HasHeaderRow", label="Has header row", kind=FormFieldKind.BOOLEAN, default=True
                ),
                ConnectionFormField(key="Delimiter", label="Delimiter", default=","),
            ],
        )

    @property
    def tools(self) -> list[MigrationTool]:
        return [PreviewHeaderTool()]
