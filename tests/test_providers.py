"""Tests for the built-in providers."""

import pytest

from datamigrator.errors import (
    CapabilityNotSupported,
    ConnectionError,
    InvalidConnectionDetails,
    PartialWriteFailure,
    ResourceAlreadyExists,
    ResourceNotFound,
)
from datamigrator.models.connection import ConnectionDetails
from datamigrator.models.field_type import FieldType
from datamigrator.plugins.csv_file import CsvPlugin, CsvProvider, PreviewHeaderTool, column_names
from datamigrator.plugins.memory import MemoryProvider, MemoryStore, MemoryTypeConverter
from datamigrator.plugins.mysql import MySqlPlugin, MySqlProvider
from datamigrator.providers.base import (
    BaseProvider,
    RowReader,
    RowWriter,
    SchemaReader,
    SchemaWriter,
    WriteReport,
)


def memory_provider(store_name: str, **properties) -> MemoryProvider:
    return MemoryProvider(
        ConnectionDetails(provider_name="Memory", database=store_name, extended_properties=properties)
    )


def csv_provider(path, **properties) -> CsvProvider:
    return CsvProvider(
        ConnectionDetails(provider_name="CSV", database=str(path), extended_properties=properties)
    )


class TestWriteReport:
    """Tests for WriteReport."""

    def test_merge_offsets_index(self):
        """Test merged reports index rows across calls."""
        first = WriteReport(rows_attempted=2, rows_committed=2, last_committed_index=1)
        second = WriteReport(rows_attempted=2, rows_committed=1, last_committed_index=0)

        merged = first.merge(second)

        assert merged == WriteReport(rows_attempted=4, rows_committed=3, last_committed_index=2)

    def test_merge_without_commits_keeps_last(self):
        """Test a later call that committed nothing keeps the earlier index."""
        first = WriteReport(rows_attempted=2, rows_committed=2, last_committed_index=1)

        merged = first.merge(WriteReport(rows_attempted=1))

        assert merged.last_committed_index == 1


class TestMemoryProvider:
    """Tests for the memory provider."""

    def test_capabilities(self, store_name):
        """Test the memory provider implements every capability."""
        provider = memory_provider(store_name)

        assert provider.capabilities() == frozenset({SchemaReader, SchemaWriter, RowReader, RowWriter})

    def test_invalid_option_rejected(self, store_name):
        """Test unknown extended properties fail at construction."""
        with pytest.raises(InvalidConnectionDetails) as exc_info:
            memory_provider(store_name, Bogus=1)

        assert exc_info.value.provider_name == "Memory"

    def test_read_in_order(self, store_name, people_schema, people_rows):
        """Test rows come back in insertion order."""
        MemoryStore.get(store_name).add_table(people_schema, people_rows)

        with memory_provider(store_name) as provider:
            schema = provider.open_schema("people")
            rows = list(provider.read_rows(schema))

        assert rows == people_rows

    def test_missing_resource(self, store_name):
        """Test opening an unknown table raises."""
        with pytest.raises(ResourceNotFound):
            memory_provider(store_name).open_schema("nope")

    def test_create_schema_twice(self, store_name, people_schema):
        """Test creating an existing table raises."""
        provider = memory_provider(store_name)
        provider.create_schema(people_schema)

        with pytest.raises(ResourceAlreadyExists):
            provider.create_schema(people_schema)

        assert provider.list_resources() == ["people"]

    def test_write_rows(self, store_name, people_schema, people_rows):
        """Test writes commit every row and report it."""
        provider = memory_provider(store_name, BatchSize=2)
        provider.create_schema(people_schema)

        report = provider.write_rows(people_schema, people_rows)

        assert report == WriteReport(rows_attempted=3, rows_committed=3, last_committed_index=2)
        assert MemoryStore.get(store_name).get_table("people").rows == people_rows

    def test_partial_write_rolls_back_batch(self, store_name, people_schema):
        """Test a failing batch leaves only earlier batches committed."""
        provider = memory_provider(store_name, BatchSize=2, FailAfterRows=3)
        provider.create_schema(people_schema)
        rows = [{"id": i, "name": f"n{i}"} for i in range(5)]

        with pytest.raises(PartialWriteFailure) as exc_info:
            provider.write_rows(people_schema, rows)

        report = exc_info.value.report
        assert report.rows_committed == 2
        assert report.last_committed_index == 1
        assert isinstance(exc_info.value.cause, OSError)
        assert len(MemoryStore.get(store_name).get_table("people").rows) == 2

    def test_fail_after_rows_spans_calls(self, store_name, people_schema):
        """Test the failure limit counts rows committed by earlier calls."""
        provider = memory_provider(store_name, FailAfterRows=2)
        provider.create_schema(people_schema)
        provider.write_rows(people_schema, [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}])

        with pytest.raises(PartialWriteFailure):
            provider.write_rows(people_schema, [{"id": 3, "name": "c"}])


class TestCsvProvider:
    """Tests for the CSV provider."""

    def test_column_names(self):
        """Test header normalization keeps names distinct."""
        assert column_names([" a ", "", "a", "a_2", "a"]) == ["a", "Column2", "a_2", "a_2_2", "a_3"]

    def test_default_resource(self, tmp_path, store_name):
        """Test the file stem is the resource used when none is named."""
        assert csv_provider(tmp_path / "out.csv").default_resource() == "out"
        assert memory_provider(store_name).default_resource() is None

    def test_requires_path(self):
        """Test a connection without a file path is rejected."""
        with pytest.raises(ConnectionError):
            CsvProvider(ConnectionDetails(provider_name="CSV"))

    def test_bad_delimiter(self, tmp_path):
        """Test delimiters must be a single character."""
        with pytest.raises(InvalidConnectionDetails):
            csv_provider(tmp_path / "a.csv", Delimiter=";;")

    def test_schema_from_header(self, tmp_path):
        """Test header names become string fields."""
        path = tmp_path / "people.csv"
        path.write_text("id, name\n1,Ada\n")
        provider = csv_provider(path)

        schema = provider.open_schema("people")

        assert provider.list_resources() == ["people"]
        assert schema.field_names == ["id", "name"]
        assert all(f.type == FieldType.STRING for f in schema.fields)

    def test_schema_without_header(self, tmp_path):
        """Test headerless files get positional column names."""
        path = tmp_path / "data.csv"
        path.write_text("1,Ada,x\n2,Grace,y\n")
        provider = csv_provider(path, HasHeaderRow=False)

        schema = provider.open_schema("data")
        rows = list(provider.read_rows(schema))

        assert schema.field_names == ["Column1", "Column2", "Column3"]
        assert rows[0] == {"Column1": "1", "Column2": "Ada", "Column3": "x"}
        assert len(rows) == 2

    def test_blank_and_repeated_header_names(self, tmp_path):
        """Test blank header cells and repeated names become distinct fields."""
        path = tmp_path / "p.csv"
        path.write_text("id,,name,id\n1,x,Ada,9\n")
        provider = csv_provider(path)

        schema = provider.open_schema("p")
        rows = list(provider.read_rows(schema))

        assert schema.field_names == ["id", "Column2", "name", "id_2"]
        assert rows == [{"id": "1", "Column2": "x", "name": "Ada", "id_2": "9"}]

    def test_inferred_types(self, tmp_path):
        """Test type inference over the sample rows."""
        path = tmp_path / "t.csv"
        path.write_text("id,score,active,name\n1,1.5,true,Ada\n2,2,false,\n")
        provider = csv_provider(path, InferTypes=True)

        schema = provider.open_schema("t")
        rows = list(provider.read_rows(schema))

        assert [f.type for f in schema.fields] == [
            FieldType.INT64, FieldType.DOUBLE, FieldType.BOOLEAN, FieldType.STRING,
        ]
        assert rows[1] == {"id": 2, "score": 2.0, "active": False, "name": None}

    def test_unknown_resource(self, tmp_path):
        """Test resources other than the file stem are not found."""
        path = tmp_path / "people.csv"
        path.write_text("id\n1\n")

        with pytest.raises(ResourceNotFound):
            csv_provider(path).open_schema("other")

    def test_create_and_write(self, tmp_path, people_schema, people_rows):
        """Test creating a file and appending rows to it."""
        path = tmp_path / "people.csv"
        provider = csv_provider(path)

        provider.create_schema(people_schema)
        report = provider.write_rows(people_schema, people_rows)

        assert report.rows_committed == 3
        assert path.read_text().splitlines() == ["id,name", "1,Ada", "2,Grace", "3,Linus"]

    def test_create_over_existing_file(self, tmp_path, people_schema):
        """Test a non-empty file is never overwritten."""
        path = tmp_path / "people.csv"
        path.write_text("a\n1\n")

        with pytest.raises(ResourceAlreadyExists):
            csv_provider(path).create_schema(people_schema)

        assert path.read_text() == "a\n1\n"

    def test_write_without_file(self, tmp_path, people_schema):
        """Test writing to a missing file raises."""
        with pytest.raises(ResourceNotFound):
            csv_provider(tmp_path / "people.csv").write_rows(people_schema, [])

    def test_preview_tool(self, tmp_path):
        """Test the preview tool shows columns and rows."""
        path = tmp_path / "people.csv"
        path.write_text("id,name\n1,Ada\n2,Grace\n")
        details = ConnectionDetails(provider_name="CSV", database=str(path))

        output = PreviewHeaderTool(rows=1).run(details)

        assert output.splitlines() == ["id:String, name:String", "1, Ada"]

    def test_plugin_form_builds_details(self, tmp_path):
        """Test the connection form produces usable details."""
        form = CsvPlugin().connection_form

        details = form.build_details("CSV", {"database": str(tmp_path / "x.csv"), "Delimiter": ";"})

        assert details.database.endswith("x.csv")
        assert details.get_property("Delimiter") == ";"
        assert details.get_property("HasHeaderRow") is True

    def test_plugin_form_requires_file(self):
        """Test required fields are enforced."""
        with pytest.raises(InvalidConnectionDetails):
            CsvPlugin().connection_form.build_details("CSV", {})


class TestMySqlProvider:
    """Tests for MySQL provider construction."""

    def test_requires_database(self):
        """Test a database name is mandatory."""
        with pytest.raises(ConnectionError):
            MySqlProvider(ConnectionDetails(provider_name="MySQL"))

    def test_options(self):
        """Test extended properties are parsed with defaults."""
        provider = MySqlProvider(
            ConnectionDetails(
                provider_name="MySQL",
                database="shop",
                extended_properties={"Host": "db", "Password": "secret"},
            )
        )

        assert provider.options.host == "db"
        assert provider.options.port == 3306
        assert provider.options.password.get_secret_value() == "secret"
        assert "secret" not in repr(provider.options)

    def test_unknown_option(self):
        """Test unknown keys are rejected."""
        with pytest.raises(InvalidConnectionDetails):
            MySqlProvider(
                ConnectionDetails(provider_name="MySQL", database="shop", extended_properties={"Hots": "db"})
            )

    def test_settings_extend_connection_form(self):
        """Test plugin settings render after the connection fields and reach the provider."""
        plugin = MySqlPlugin()
        form = plugin.connection_form.extended_with(plugin.settings_form)

        details = form.build_details(
            "MySQL", {"Host": "db", "database": "shop", "User": "app", "BatchSize": "250"}
        )
        provider = MySqlProvider(details)

        assert [f.key for f in form.fields][-1] == "BatchSize"
        assert form.title == "MySQL Database"
        assert provider.options.batch_size == 250
        assert plugin.connection_form.extended_with(None) == plugin.connection_form


class TestCapabilities:
    """Tests for capability checks."""

    def test_read_only_provider(self):
        """Test a provider without writer mixins reports and enforces it."""

        class ReadOnlyProvider(BaseProvider, SchemaReader, RowReader):
            CONVERTER = MemoryTypeConverter()

            def validate_connection(self):
                return True

            def list_resources(self):
                return []

            def open_schema(self, resource_name):
                raise ResourceNotFound(resource_name)

            def read_rows(self, schema):
                return iter(())

        provider = ReadOnlyProvider(ConnectionDetails(provider_name="ReadOnly"))

        assert provider.capabilities() == frozenset({SchemaReader, RowReader})
        assert provider.require(RowReader) is provider
        assert not provider.supports(RowWriter)
        with pytest.raises(CapabilityNotSupported) as exc_info:
            provider.require(RowWriter)
        assert exc_info.value.capability == "RowWriter"
