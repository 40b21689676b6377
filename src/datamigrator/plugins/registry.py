"""Plugin registry keyed by provider name."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from importlib.metadata import entry_points

from datamigrator.errors import (
    ConverterSelfCheckError,
    DataMigratorError,
    DuplicateProviderName,
    RegistryFrozenError,
    UnknownProviderName,
)
from datamigrator.models.connection import ConnectionDetails
from datamigrator.plugins.base import MigrationPlugin
from datamigrator.providers.base import BaseProvider

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "datamigrator.plugins"


@dataclass
class PluginLoadFailure:
    """A plugin excluded from the registry at startup."""

    name: str
    error: DataMigratorError | Exception

    @property
    def message(self) -> str:
        """Error text for host notifications."""
        return f"{self.name}: {self.error}"


class PluginRegistry:
    """Maps provider names to plugins.

    Built once at startup, then frozen; lookups afterwards need no locking.
    """

    def __init__(self) -> None:
        self._plugins: dict[str, MigrationPlugin] = {}
        self._frozen = False

    def register(self, plugin: MigrationPlugin) -> None:
        """Register a plugin after checking its conversion tables."""
        if self._frozen:
            raise RegistryFrozenError("Plugin registry is frozen")

        name = plugin.provider_name
        if name in self._plugins:
            raise DuplicateProviderName(name)

        problems = plugin.converter.self_check()
        if problems:
            raise ConverterSelfCheckError(name, problems)

        self._plugins[name] = plugin
        logger.debug(f"Registered plugin {name}")

    def load(self, plugins: Iterable[MigrationPlugin]) -> list[PluginLoadFailure]:
        """Register many plugins, excluding and reporting the ones that fail."""
        failures: list[PluginLoadFailure] = []
        for plugin in plugins:
            try:
                self.register(plugin)
            except DataMigratorError as e:
                name = getattr(plugin, "provider_name", type(plugin).__name__)
                logger.error(f"Plugin {name} excluded: {e}")
                failures.append(PluginLoadFailure(name=name, error=e))
        return failures

    def discover(self, include_builtins: bool = True) -> list[PluginLoadFailure]:
        """Load built-in plugins and those advertised through entry points."""
        candidates: list[MigrationPlugin] = []
        failures: list[PluginLoadFailure] = []

        if include_builtins:
            from datamigrator.plugins.builtin import builtin_plugins

            candidates.extend(builtin_plugins())

        for entry_point in entry_points(group=ENTRY_POINT_GROUP):
            try:
                loaded = entry_point.load()
                candidates.append(loaded() if isinstance(loaded, type) else loaded)
            except Exception as e:
                logger.error(f"Failed to load plugin entry point {entry_point.name}: {e}")
                failures.append(PluginLoadFailure(name=entry_point.name, error=e))

        failures.extend(self.load(candidates))
        return failures

    def freeze(self) -> None:
        """Stop accepting registrations."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        """True once :meth:`freeze` was called."""
        return self._frozen

    def get(self, provider_name: str) -> MigrationPlugin:
        """Get the plugin registered under ``provider_name``."""
        plugin = self._plugins.get(provider_name)
        if plugin is None:
            raise UnknownProviderName(provider_name)
        return plugin

    def get_data_provider(self, connection_details: ConnectionDetails) -> BaseProvider:
        """Resolve the plugin for ``connection_details`` and build its provider."""
        return self.get(connection_details.provider_name).get_data_provider(connection_details)

    @property
    def provider_names(self) -> list[str]:
        """Registered names in registration order."""
        return list(self._plugins)

    def list_plugins(self) -> list[MigrationPlugin]:
        """Registered plugins in registration order."""
        return list(self._plugins.values())

    def __contains__(self, provider_name: object) -> bool:
        return provider_name in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)
