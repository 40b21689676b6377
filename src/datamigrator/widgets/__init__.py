"""Custom widgets for DataMigrator TUI."""

from datamigrator.widgets.job_row import JobRow
from datamigrator.widgets.plugin_form import PluginForm

__all__ = [
    "JobRow",
    "PluginForm",
]
