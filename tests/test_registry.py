"""Tests for the plugin registry."""

import pytest

from datamigrator.errors import (
    ConverterSelfCheckError,
    DuplicateProviderName,
    RegistryFrozenError,
    UnknownProviderName,
)
from datamigrator.models.connection import ConnectionDetails
from datamigrator.models.field_type import FieldType
from datamigrator.plugins.base import MigrationPlugin
from datamigrator.plugins.csv_file import CsvPlugin
from datamigrator.plugins.memory import MemoryPlugin, MemoryProvider
from datamigrator.plugins.registry import PluginRegistry
from datamigrator.providers.converter import FieldTypeConverter


class BrokenConverter(FieldTypeConverter[str]):
    PROVIDER_NAME = "Broken"
    TO_NATIVE = {FieldType.STRING: "text"}
    TO_CANONICAL = {"text": FieldType.STRING}


class BrokenPlugin(MigrationPlugin):
    """Plugin whose tables leave most types undeclared."""

    @property
    def provider_name(self) -> str:
        return "Broken"

    @property
    def converter(self) -> BrokenConverter:
        return BrokenConverter()

    def get_data_provider(self, connection_details):
        raise NotImplementedError


class TestRegister:
    """Tests for registration."""

    def test_register_and_get(self):
        """Test a registered plugin is found by name."""
        registry = PluginRegistry()
        plugin = MemoryPlugin()

        registry.register(plugin)

        assert registry.get("Memory") is plugin
        assert "Memory" in registry
        assert len(registry) == 1

    def test_duplicate_name_rejected(self):
        """Test a second plugin with the same name is refused."""
        registry = PluginRegistry()
        registry.register(MemoryPlugin())

        with pytest.raises(DuplicateProviderName):
            registry.register(MemoryPlugin())

        assert len(registry) == 1

    def test_self_check_failure_rejected(self):
        """Test malformed tables keep a plugin out."""
        registry = PluginRegistry()

        with pytest.raises(ConverterSelfCheckError) as exc_info:
            registry.register(BrokenPlugin())

        assert exc_info.value.provider_name == "Broken"
        assert "Broken" not in registry

    def test_frozen_registry_rejects(self):
        """Test registration after freezing fails."""
        registry = PluginRegistry()
        registry.freeze()

        with pytest.raises(RegistryFrozenError):
            registry.register(MemoryPlugin())

        assert registry.frozen


class TestLoad:
    """Tests for bulk loading."""

    def test_failures_excluded_and_reported(self):
        """Test a failing plugin is excluded while the others load."""
        registry = PluginRegistry()

        failures = registry.load([MemoryPlugin(), BrokenPlugin(), CsvPlugin(), MemoryPlugin()])

        assert registry.provider_names == ["Memory", "CSV"]
        assert [f.name for f in failures] == ["Broken", "Memory"]
        assert isinstance(failures[0].error, ConverterSelfCheckError)
        assert isinstance(failures[1].error, DuplicateProviderName)
        assert failures[0].message.startswith("Broken: ")

    def test_discover_builtins(self, registry):
        """Test discovery registers every built-in plugin."""
        assert registry.provider_names == ["Memory", "CSV", "MySQL"]
        assert registry.frozen


class TestLookup:
    """Tests for lookups."""

    def test_unknown_name(self, registry):
        """Test an unregistered name raises."""
        with pytest.raises(UnknownProviderName):
            registry.get("Oracle")

    def test_names_are_case_sensitive(self, registry):
        """Test lookups match the exact name."""
        with pytest.raises(UnknownProviderName):
            registry.get("memory")

    def test_get_data_provider(self, registry):
        """Test building a provider from connection details."""
        provider = registry.get_data_provider(ConnectionDetails(provider_name="Memory", database="x"))

        assert isinstance(provider, MemoryProvider)
        assert provider.provider_name == "Memory"

    def test_list_plugins_in_order(self, registry):
        """Test plugins are listed in registration order."""
        assert [p.provider_name for p in registry.list_plugins()] == registry.provider_names
