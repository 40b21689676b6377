"""DataMigrator - plugin-based data migration between heterogeneous sources."""

__version__ = "0.1.0"
