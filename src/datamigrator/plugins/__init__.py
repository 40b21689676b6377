"""Migration plugins and the registry that holds them."""

from datamigrator.plugins.base import (
    ConnectionForm,
    ConnectionFormField,
    FormFieldKind,
    MigrationPlugin,
    MigrationTool,
)
from datamigrator.plugins.registry import ENTRY_POINT_GROUP, PluginLoadFailure, PluginRegistry

__all__ = [
    "ENTRY_POINT_GROUP",
    "ConnectionForm",
    "ConnectionFormField",
    "FormFieldKind",
    "MigrationPlugin",
    "MigrationTool",
    "PluginLoadFailure",
    "PluginRegistry",
]
