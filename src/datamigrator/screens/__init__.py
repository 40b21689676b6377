"""Screen classes for DataMigrator TUI."""

from datamigrator.screens.connections import ConnectionsPane
from datamigrator.screens.dashboard import DashboardPane, StatsPanel

__all__ = [
    "ConnectionsPane",
    "DashboardPane",
    "StatsPanel",
]
