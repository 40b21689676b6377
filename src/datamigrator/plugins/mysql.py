"""MySQL provider using mysql-connector-python."""

import logging
from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from datamigrator.errors import (
    ConnectionError,
    ResourceAlreadyExists,
    ResourceNotFound,
    UnsupportedNativeType,
)
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

PROVIDER_NAME = "MySQL"


class MySqlType(str, Enum):
    """Native MySQL column types."""

    BINARY = "Binary"
    BIT = "Bit"
    BLOB = "Blob"
    BYTE = "Byte"
    DATE = "Date"
    DATE_TIME = "DateTime"
    DECIMAL = "Decimal"
    DOUBLE = "Double"
    ENUM = "Enum"
    FLOAT = "Float"
    GEOMETRY = "Geometry"
    GUID = "Guid"
    INT16 = "Int16"
    INT24 = "Int24"
    INT32 = "Int32"
    INT64 = "Int64"
    JSON = "JSON"
    LONG_BLOB = "LongBlob"
    LONG_TEXT = "LongText"
    MEDIUM_BLOB = "MediumBlob"
    MEDIUM_TEXT = "MediumText"
    NEW_DATE = "Newdate"
    NEW_DECIMAL = "NewDecimal"
    SET = "Set"
    STRING = "String"
    TEXT = "Text"
    TIME = "Time"
    TIMESTAMP = "Timestamp"
    TINY_BLOB = "TinyBlob"
    TINY_TEXT = "TinyText"
    UBYTE = "UByte"
    UINT16 = "UInt16"
    UINT24 = "UInt24"
    UINT32 = "UInt32"
    UINT64 = "UInt64"
    VAR_BINARY = "VarBinary"
    VAR_CHAR = "VarChar"
    VAR_STRING = "VarString"
    YEAR = "Year"


class MySqlTypeConverter(FieldTypeConverter[MySqlType]):
    """MySQL conversion tables.

    Structured-document types (choices, lookups, users) and XML are stored as
    TEXT and read back as String. AutoNumber has no standalone column type.
    """

    PROVIDER_NAME = PROVIDER_NAME
    TO_NATIVE = {
        FieldType.BINARY: MySqlType.BINARY,
        FieldType.BYTE: MySqlType.UBYTE,
        FieldType.BOOLEAN: MySqlType.BIT,
        FieldType.CHAR: MySqlType.TINY_TEXT,
        FieldType.CHOICE: MySqlType.TEXT,
        FieldType.CALCULATED: MySqlType.TEXT,
        FieldType.CURRENCY: MySqlType.DECIMAL,
        FieldType.DATE: MySqlType.DATE,
        FieldType.DATE_TIME: MySqlType.DATE_TIME,
        FieldType.DATE_TIME_OFFSET: MySqlType.TEXT,
        FieldType.DECIMAL: MySqlType.DECIMAL,
        FieldType.DOUBLE: MySqlType.DOUBLE,
        FieldType.GEOMETRY: MySqlType.GEOMETRY,
        FieldType.GUID: MySqlType.GUID,
        FieldType.INT16: MySqlType.INT16,
        FieldType.INT32: MySqlType.INT32,
        FieldType.INT64: MySqlType.INT64,
        FieldType.LOOKUP: MySqlType.TEXT,
        FieldType.MULTI_CHOICE: MySqlType.TEXT,
        FieldType.MULTI_LOOKUP: MySqlType.TEXT,
        FieldType.MULTI_USER: MySqlType.TEXT,
        FieldType.OBJECT: MySqlType.BLOB,
        FieldType.RICH_TEXT: MySqlType.LONG_TEXT,
        FieldType.SBYTE: MySqlType.BYTE,
        FieldType.SINGLE: MySqlType.FLOAT,
        FieldType.STRING: MySqlType.TEXT,
        FieldType.TIME: MySqlType.TIME,
        FieldType.TIMESTAMP: MySqlType.TIMESTAMP,
        FieldType.UINT16: MySqlType.UINT16,
        FieldType.UINT32: MySqlType.UINT32,
        FieldType.UINT64: MySqlType.UINT64,
        FieldType.URL: MySqlType.TEXT,
        FieldType.USER: MySqlType.TEXT,
        FieldType.XML: MySqlType.TEXT,
    }
    TO_CANONICAL = {
        MySqlType.BINARY: FieldType.BINARY,
        MySqlType.BIT: FieldType.BOOLEAN,
        MySqlType.BLOB: FieldType.OBJECT,
        MySqlType.BYTE: FieldType.SBYTE,
        MySqlType.DATE: FieldType.DATE,
        MySqlType.DATE_TIME: FieldType.DATE_TIME,
        MySqlType.DECIMAL: FieldType.DECIMAL,
        MySqlType.DOUBLE: FieldType.DOUBLE,
        MySqlType.ENUM: FieldType.STRING,
        MySqlType.FLOAT: FieldType.SINGLE,
        MySqlType.GEOMETRY: FieldType.GEOMETRY,
        MySqlType.GUID: FieldType.GUID,
        MySqlType.INT16: FieldType.INT16,
        MySqlType.INT24: FieldType.INT32,
        MySqlType.INT32: FieldType.INT32,
        MySqlType.INT64: FieldType.INT64,
        MySqlType.JSON: FieldType.STRING,
        MySqlType.LONG_BLOB: FieldType.OBJECT,
        MySqlType.LONG_TEXT: FieldType.STRING,
        MySqlType.MEDIUM_BLOB: FieldType.OBJECT,
        MySqlType.MEDIUM_TEXT: FieldType.STRING,
        MySqlType.NEW_DATE: FieldType.DATE_TIME,
        MySqlType.NEW_DECIMAL: FieldType.DECIMAL,
        MySqlType.SET: FieldType.STRING,
        MySqlType.STRING: FieldType.STRING,
        MySqlType.TEXT: FieldType.STRING,
        MySqlType.TIME: FieldType.TIME,
        MySqlType.TIMESTAMP: FieldType.TIMESTAMP,
        MySqlType.TINY_BLOB: FieldType.OBJECT,
        MySqlType.TINY_TEXT: FieldType.STRING,
        MySqlType.UBYTE: FieldType.BYTE,
        MySqlType.UINT16: FieldType.UINT16,
        MySqlType.UINT24: FieldType.UINT32,
        MySqlType.UINT32: FieldType.UINT32,
        MySqlType.UINT64: FieldType.UINT64,
        MySqlType.VAR_BINARY: FieldType.BINARY,
        MySqlType.VAR_CHAR: FieldType.STRING,
        MySqlType.VAR_STRING: FieldType.STRING,
        MySqlType.YEAR: FieldType.INT16,
    }
    FOLDED = {
        FieldType.CHAR: FieldType.STRING,
        FieldType.CHOICE: FieldType.STRING,
        FieldType.CALCULATED: FieldType.STRING,
        FieldType.CURRENCY: FieldType.DECIMAL,
        FieldType.DATE_TIME_OFFSET: FieldType.STRING,
        FieldType.LOOKUP: FieldType.STRING,
        FieldType.MULTI_CHOICE: FieldType.STRING,
        FieldType.MULTI_LOOKUP: FieldType.STRING,
        FieldType.MULTI_USER: FieldType.STRING,
        FieldType.RICH_TEXT: FieldType.STRING,
        FieldType.URL: FieldType.STRING,
        FieldType.USER: FieldType.STRING,
        FieldType.XML: FieldType.STRING,
    }
    UNSUPPORTED = frozenset({FieldType.AUTO_NUMBER})
    DDL_NAMES = {
        MySqlType.BINARY: "BINARY",
        MySqlType.BIT: "BIT",
        MySqlType.BLOB: "BLOB",
        MySqlType.BYTE: "TINYINT",
        MySqlType.DATE: "DATE",
        MySqlType.DATE_TIME: "DATETIME",
        MySqlType.DECIMAL: "DECIMAL",
        MySqlType.DOUBLE: "DOUBLE",
        MySqlType.ENUM: "ENUM",
        MySqlType.FLOAT: "FLOAT",
        MySqlType.GEOMETRY: "GEOMETRY",
        MySqlType.GUID: "CHAR(36)",
        MySqlType.INT16: "SMALLINT",
        MySqlType.INT24: "MEDIUMINT",
        MySqlType.INT32: "INT",
        MySqlType.INT64: "BIGINT",
        MySqlType.JSON: "JSON",
        MySqlType.LONG_BLOB: "LONGBLOB",
        MySqlType.LONG_TEXT: "LONGTEXT",
        MySqlType.MEDIUM_BLOB: "MEDIUMBLOB",
        MySqlType.MEDIUM_TEXT: "MEDIUMTEXT",
        MySqlType.NEW_DATE: "NEWDATE",
        MySqlType.NEW_DECIMAL: "DECIMAL",
        MySqlType.SET: "SET",
        MySqlType.STRING: "CHAR",
        MySqlType.TEXT: "TEXT",
        MySqlType.TIME: "TIME",
        MySqlType.TIMESTAMP: "TIMESTAMP",
        MySqlType.TINY_BLOB: "TINYBLOB",
        MySqlType.TINY_TEXT: "TINYTEXT",
        MySqlType.UBYTE: "TINYINT",
        MySqlType.UINT16: "SMALLINT",
        MySqlType.UINT24: "MEDIUMINT",
        MySqlType.UINT32: "INTEGER",
        MySqlType.UINT64: "BIGINT",
        MySqlType.VAR_BINARY: "VARBINARY",
        MySqlType.VAR_CHAR: "VARCHAR",
        MySqlType.VAR_STRING: "VARSTRING",
        MySqlType.YEAR: "YEAR",
    }
    DDL_ALIASES = {
        "INTEGER": MySqlType.INT32,
        "DEC": MySqlType.DECIMAL,
        "NUMERIC": MySqlType.DECIMAL,
        "FIXED": MySqlType.DECIMAL,
        "REAL": MySqlType.DOUBLE,
        "DOUBLE PRECISION": MySqlType.DOUBLE,
        "BOOL": MySqlType.BIT,
        "BOOLEAN": MySqlType.BIT,
        # information_schema reports spatial subtypes by name.
        "POINT": MySqlType.GEOMETRY,
        "LINESTRING": MySqlType.GEOMETRY,
        "POLYGON": MySqlType.GEOMETRY,
        "MULTIPOINT": MySqlType.GEOMETRY,
        "MULTILINESTRING": MySqlType.GEOMETRY,
        "MULTIPOLYGON": MySqlType.GEOMETRY,
        "GEOMETRYCOLLECTION": MySqlType.GEOMETRY,
        "GEOMCOLLECTION": MySqlType.GEOMETRY,
    }

    UNSIGNED = {
        MySqlType.BYTE: MySqlType.UBYTE,
        MySqlType.INT16: MySqlType.UINT16,
        MySqlType.INT24: MySqlType.UINT24,
        MySqlType.INT32: MySqlType.UINT32,
        MySqlType.INT64: MySqlType.UINT64,
    }
    LENGTH_TYPES = frozenset({
        MySqlType.BINARY, MySqlType.VAR_BINARY, MySqlType.STRING, MySqlType.VAR_CHAR,
    })
    TEXT_TYPES = frozenset({
        MySqlType.TINY_TEXT, MySqlType.TEXT, MySqlType.MEDIUM_TEXT, MySqlType.LONG_TEXT,
    })
    MAX_VARCHAR_LENGTH = 16383
    DEFAULT_DECIMAL = (38, 10)

    def native_from_column(self, data_type: str, column_type: str = "", length: int | None = None) -> MySqlType:
        """Native type for an ``information_schema.columns`` row."""
        if data_type.lower() == "char" and length == 36:
            return MySqlType.GUID
        native = self.from_ddl_string(data_type)
        if "unsigned" in column_type.lower():
            native = self.UNSIGNED.get(native, native)
        return native

    def column_type_sql(self, field: SchemaField) -> str:
        """Render the column type for ``field``, honoring length and precision."""
        native = self.to_native(field.type)
        keyword = self.to_ddl_string(native)
        length = field.length

        if native in self.LENGTH_TYPES and length:
            return f"{keyword}({length})"
        if native in self.TEXT_TYPES and length and length <= self.MAX_VARCHAR_LENGTH:
            # TEXT columns cannot be keys without a prefix length.
            if field.type == FieldType.CHAR and length <= 255:
                return f"CHAR({length})"
            return f"VARCHAR({length})"
        if native == MySqlType.BINARY:
            # BINARY without a length holds one byte.
            return "BLOB"
        if native in (MySqlType.DECIMAL, MySqlType.NEW_DECIMAL):
            precision = field.attributes.get("precision", self.DEFAULT_DECIMAL[0])
            scale = field.attributes.get("scale", self.DEFAULT_DECIMAL[1])
            return f"{keyword}({precision},{scale})"
        if native in self.UNSIGNED.values():
            return f"{keyword} UNSIGNED"
        return keyword


def _text(value: Any) -> str:
    """information_schema values arrive as bytes on some server versions."""
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8")
    return "" if value is None else str(value)


def quote_identifier(name: str) -> str:
    """Quote a MySQL identifier with backticks."""
    return "`" + name.replace("`", "``") + "`"


def render_create_table(schema: Schema, converter: MySqlTypeConverter | None = None) -> str:
    """Render a ``CREATE TABLE`` statement for ``schema``."""
    converter = converter or MySqlProvider.CONVERTER
    columns = []
    for field in schema.fields:
        column = f"{quote_identifier(field.name)} {converter.column_type_sql(field)}"
        if not field.nullable:
            column += " NOT NULL"
        columns.append(column)

    keys = [quote_identifier(f.name) for f in schema.fields if f.is_primary_key]
    if keys:
        columns.append(f"PRIMARY KEY ({', '.join(keys)})")

    body = ",\n  ".join(columns)
    return f"CREATE TABLE {quote_identifier(schema.name)} (\n  {body}\n)"


class MySqlOptions(BaseModel):
    """Extended properties understood by the MySQL provider."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    host: str = Field(default="localhost", alias="Host")
    port: int = Field(default=3306, ge=1, le=65535, alias="Port")
    user: str = Field(default="root", alias="User")
    password: SecretStr = Field(default=SecretStr(""), alias="Password")
    batch_size: int = Field(default=500, ge=1, alias="BatchSize")
    connect_timeout: int = Field(default=10, ge=1, alias="ConnectTimeout")


class MySqlProvider(BaseProvider, SchemaReader, SchemaWriter, RowReader, RowWriter):
    """Tables of one MySQL database.

    Writes are transactional per ``BatchSize`` rows.
    """

    CONVERTER = MySqlTypeConverter()

    def __init__(self, connection_details: ConnectionDetails) -> None:
        super().__init__(connection_details)
        self.options: MySqlOptions = parse_options(MySqlOptions, connection_details)
        if not connection_details.database:
            raise ConnectionError("MySQL connection requires a database name")
        self.database = connection_details.database
        self._connection: Any = None

    def _connect(self) -> Any:
        try:
            import mysql.connector
        except ImportError:
            raise ConnectionError(
                "mysql-connector-python not installed. Install with: pip install mysql-connector-python"
            ) from None

        try:
            return mysql.connector.connect(
                host=self.options.host,
                port=self.options.port,
                user=self.options.user,
                password=self.options.password.get_secret_value(),
                database=self.database,
                connection_timeout=self.options.connect_timeout,
                autocommit=False,
            )
        except mysql.connector.Error as e:
            raise ConnectionError(f"Cannot connect to MySQL {self.options.host}:{self.options.port}: {e}") from e

    def open(self) -> "MySqlProvider":
        if self._connection is None:
            self._connection = self._connect()
        return super().open()

    def close(self) -> None:
        if self._connection is not None:
            try:
                self._connection.close()
            finally:
                self._connection = None
        super().close()

    @property
    def connection(self) -> Any:
        """Open DB-API connection."""
        if self._connection is None:
            self.open()
        return self._connection

    def validate_connection(self) -> bool:
        try:
            connection = self._connect()
        except ConnectionError as e:
            logger.warning(f"MySQL connection check failed: {e}")
            return False
        try:
            return bool(connection.is_connected())
        finally:
            connection.close()

    def _query(self, sql: str, params: tuple = ()) -> list[tuple]:
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql, params)
            return cursor.fetchall()
        finally:
            cursor.close()

    def list_resources(self) -> list[str]:
        rows = self._query(
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = %s ORDER BY table_name",
            (self.database,),
        )
        return [_text(row[0]) for row in rows]

    def open_schema(self, resource_name: str) -> Schema:
        rows = self._query(
            """
            SELECT column_name, data_type, column_type, is_nullable, column_key,
                   character_maximum_length, numeric_precision, numeric_scale
            FROM information_schema.columns
            WHERE table_schema = %s AND table_name = %s
            ORDER BY ordinal_position
            """,
            (self.database, resource_name),
        )
        if not rows:
            raise ResourceNotFound(resource_name)

        fields = []
        for name, data_type, column_type, nullable, key, length, precision, scale in rows:
            native = self.converter.native_from_column(_text(data_type), _text(column_type), length)
            attributes: dict[str, Any] = {"native_type": native.value}
            if native in MySqlTypeConverter.LENGTH_TYPES and length:
                attributes["length"] = int(length)
            if native in (MySqlType.DECIMAL, MySqlType.NEW_DECIMAL):
                attributes["precision"] = int(precision)
                attributes["scale"] = int(scale or 0)
            fields.append(
                SchemaField(
                    name=_text(name),
                    type=self.converter.to_canonical(native),
                    nullable=_text(nullable) == "YES",
                    is_primary_key=_text(key) == "PRI",
                    attributes=attributes,
                )
            )
        return Schema(name=resource_name, fields=fields)

    def create_schema(self, schema: Schema) -> None:
        if self.resource_exists(schema.name):
            raise ResourceAlreadyExists(schema.name)
        statement = render_create_table(schema, self.converter)
        cursor = self.connection.cursor()
        try:
            cursor.execute(statement)
        finally:
            cursor.close()
        logger.info(f"Created MySQL table {self.database}.{schema.name}")

    def read_rows(self, schema: Schema) -> Iterator[Row]:
        names = schema.field_names
        columns = ", ".join(quote_identifier(n) for n in names)
        cursor = self.connection.cursor(buffered=False)
        try:
            cursor.execute(f"SELECT {columns} FROM {quote_identifier(schema.name)}")
            while True:
                batch = cursor.fetchmany(self.options.batch_size)
                if not batch:
                    break
                for values in batch:
                    yield dict(zip(names, values))
        finally:
            cursor.close()

    def write_rows(self, schema: Schema, rows: Iterable[Row]) -> WriteReport:
        names = schema.field_names
        columns = ", ".join(quote_identifier(n) for n in names)
        placeholders = ", ".join(["%s"] * len(names))
        statement = f"INSERT INTO {quote_identifier(schema.name)} ({columns}) VALUES ({placeholders})"
        connection = self.connection

        def write_batch(batch: list[Row]) -> None:
            cursor = connection.cursor()
            try:
                cursor.executemany(statement, [tuple(row.get(n) for n in names) for row in batch])
            finally:
                cursor.close()

        return self.write_in_batches(
            rows, self.options.batch_size, write_batch, connection.commit, connection.rollback
        )


class RenderDdlTool(MigrationTool):
    """Prints the CREATE TABLE statements this provider would issue."""

    name = "Render DDL"
    description = "Show CREATE TABLE statements for every table in the database"

    def run(self, connection_details: ConnectionDetails) -> str:
        provider = MySqlProvider(connection_details)
        with provider:
            statements = []
            for table in provider.list_resources():
                try:
                    statements.append(render_create_table(provider.open_schema(table)) + ";")
                except UnsupportedNativeType as e:
                    statements.append(f"-- {table}: {e}")
        return "\n\n".join(statements)


class MySqlPlugin(MigrationPlugin):
    """Plugin for MySQL databases."""

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    @property
    def converter(self) -> MySqlTypeConverter:
        return MySqlProvider.CONVERTER

    def get_data_provider(self, connection_details: ConnectionDetails) -> MySqlProvider:
        return MySqlProvider(connection_details)

    @property
    def connection_form(self) -> ConnectionForm:
        return ConnectionForm(
            title="MySQL Database",
            fields=[
                ConnectionFormField(key="Host", label="Host", default="localhost", required=True),
                ConnectionFormField(key="Port", label="Port", kind=FormFieldKind.INTEGER, default=3306),
                ConnectionFormField(key="database", label="Database", required=True),
                ConnectionFormField(key="User", label="Username", default="root", required=True),
                ConnectionFormField(key="Password", label="Password", kind=FormFieldKind.PASSWORD),
            ],
        )

    @property
    def settings_form(self) -> ConnectionForm:
        return ConnectionForm(
            title="MySQL Settings",
            fields=[
                ConnectionFormField(
                    key="BatchSize", label="Rows per transaction", kind=FormFieldKind.INTEGER, default=500
                ),
            ],
        )

    @property
    def tools(self) -> list[MigrationTool]:
        return [RenderDdlTool()]
