"""Business logic services for DataMigrator."""

from datamigrator.services.job_store import JobStore
from datamigrator.services.mapping_builder import FieldPair, MappingBuilder
from datamigrator.services.migration_engine import MigrationEngine

__all__ = [
    "FieldPair",
    "JobStore",
    "MappingBuilder",
    "MigrationEngine",
]
