"""In-process provider backed by named memory stores."""

import logging
import threading
import time
from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field

from datamigrator.errors import ResourceAlreadyExists, ResourceNotFound
from datamigrator.models.connection import ConnectionDetails
from datamigrator.models.field_type import FieldType
from datamigrator.models.schema import Row, Schema
from datamigrator.plugins.base import (
    ConnectionForm,
    ConnectionFormField,
    FormFieldKind,
    MigrationPlugin,
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

PROVIDER_NAME = "Memory"


class MemoryTypeConverter(FieldTypeConverter[FieldType]):
    """Identity tables: memory stores keep canonical types as-is."""

    PROVIDER_NAME = PROVIDER_NAME
    TO_NATIVE = {f: f for f in FieldType}
    TO_CANONICAL = {f: f for f in FieldType}


class MemoryTable:
    """Schema plus committed rows."""

    def __init__(self, schema: Schema) -> None:
        self.schema = schema
        self.rows: list[Row] = []


class MemoryStore:
    """A named set of tables shared by every provider opened on it."""

    _stores: dict[str, "MemoryStore"] = {}
    _stores_lock = threading.Lock()

    def __init__(self, name: str) -> None:
        self.name = name
        self.tables: dict[str, MemoryTable] = {}
        self.lock = threading.RLock()

    @classmethod
    def get(cls, name: str) -> "MemoryStore":
        """Get or create the store called ``name``."""
        with cls._stores_lock:
            store = cls._stores.get(name)
            if store is None:
                store = cls._stores[name] = MemoryStore(name)
            return store

    @classmethod
    def drop(cls, name: str) -> None:
        """Forget the store called ``name``."""
        with cls._stores_lock:
            cls._stores.pop(name, None)

    def add_table(self, schema: Schema, rows: Iterable[Row] = ()) -> MemoryTable:
        """Create a table directly, for seeding data."""
        with self.lock:
            if schema.name in self.tables:
                raise ResourceAlreadyExists(schema.name)
            table = MemoryTable(schema)
            table.rows.extend(dict(r) for r in rows)
            self.tables[schema.name] = table
            return table

    def get_table(self, name: str) -> MemoryTable:
        """Look up a table or raise ResourceNotFound."""
        with self.lock:
            table = self.tables.get(name)
        if table is None:
            raise ResourceNotFound(name)
        return table


class MemoryOptions(BaseModel):
    """Extended properties understood by the memory provider."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    batch_size: int = Field(default=100, ge=1, alias="BatchSize")
    row_delay_seconds: float = Field(default=0.0, ge=0, alias="RowDelaySeconds")
    fail_after_rows: int | None = Field(default=None, ge=0, alias="FailAfterRows")


class MemoryProvider(BaseProvider, SchemaReader, SchemaWriter, RowReader, RowWriter):
    """Reads and writes tables of a :class:`MemoryStore`.

    Writes are transactional per batch: a failing batch leaves no rows behind.
    """

    CONVERTER = MemoryTypeConverter()

    def __init__(self, connection_details: ConnectionDetails) -> None:
        super().__init__(connection_details)
        self.options: MemoryOptions = parse_options(MemoryOptions, connection_details)
        self.store = MemoryStore.get(connection_details.database or "default")
        self.rows_committed = 0

    def validate_connection(self) -> bool:
        return True

    def list_resources(self) -> list[str]:
        with self.store.lock:
            return list(self.store.tables)

    def open_schema(self, resource_name: str) -> Schema:
        return self.store.get_table(resource_name).schema.model_copy(deep=True)

    def create_schema(self, schema: Schema) -> None:
        self.store.add_table(schema)
        logger.info(f"Created memory table {self.store.name}.{schema.name}")

    def read_rows(self, schema: Schema) -> Iterator[Row]:
        table = self.store.get_table(schema.name)
        names = schema.field_names
        index = 0
        while True:
            with self.store.lock:
                if index >= len(table.rows):
                    return
                row = table.rows[index]
            if self.options.row_delay_seconds:
                time.sleep(self.options.row_delay_seconds)
            yield {name: row.get(name) for name in names}
            index += 1

    def write_rows(self, schema: Schema, rows: Iterable[Row]) -> WriteReport:
        table = self.store.get_table(schema.name)
        names = table.schema.field_names
        pending: list[Row] = []

        def write_batch(batch: list[Row]) -> None:
            limit = self.options.fail_after_rows
            if limit is not None and self.rows_committed + len(batch) > limit:
                raise OSError(f"Simulated write failure after {limit} rows")
            pending.extend({name: row.get(name) for name in names} for row in batch)

        def commit() -> None:
            with self.store.lock:
                table.rows.extend(pending)
            self.rows_committed += len(pending)
            pending.clear()

        return self.write_in_batches(
            rows, self.options.batch_size, write_batch, commit, pending.clear
        )


class MemoryPlugin(MigrationPlugin):
    """Plugin for in-process memory stores."""

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    @property
    def converter(self) -> MemoryTypeConverter:
        return MemoryProvider.CONVERTER

    def get_data_provider(self, connection_details: ConnectionDetails) -> MemoryProvider:
        return MemoryProvider(connection_details)

    @property
    def connection_form(self) -> ConnectionForm:
        return ConnectionForm(
            title="Memory Store",
            fields=[
                ConnectionFormField(key="database", label="Store name", required=True, default="default"),
                ConnectionFormField(
                    key="BatchSize", label="Batch size", kind=FormFieldKind.INTEGER, default=100
                ),
            ],
        )
