"""Plugins shipped with datamigrator."""

from datamigrator.plugins.base import MigrationPlugin
from datamigrator.plugins.csv_file import CsvPlugin
from datamigrator.plugins.memory import MemoryPlugin
from datamigrator.plugins.mysql import MySqlPlugin


def builtin_plugins() -> list[MigrationPlugin]:
    """Fresh instances of every built-in plugin."""
    return [MemoryPlugin(), CsvPlugin(), MySqlPlugin()]
