"""Shared fixtures."""

import uuid

import pytest

from datamigrator.config import AppConfig, PerformanceConfig
from datamigrator.models.connection import ConnectionDetails
from datamigrator.models.field_type import FieldType
from datamigrator.models.job import Job
from datamigrator.models.mapping import FieldMapping, FieldMappingEntry
from datamigrator.models.schema import Field, Schema
from datamigrator.plugins.memory import MemoryStore
from datamigrator.plugins.registry import PluginRegistry


@pytest.fixture
def people_schema() -> Schema:
    """Two-field schema used across tests."""
    return Schema(
        name="people",
        fields=[
            Field(name="id", type=FieldType.INT32, nullable=False, is_primary_key=True),
            Field(name="name", type=FieldType.STRING),
        ],
    )


@pytest.fixture
def people_rows() -> list[dict]:
    return [
        {"id": 1, "name": "Ada"},
        {"id": 2, "name": "Grace"},
        {"id": 3, "name": "Linus"},
    ]


@pytest.fixture
def store_name():
    """A unique memory store name, dropped after the test."""
    name = f"test-{uuid.uuid4().hex[:8]}"
    yield name
    MemoryStore.drop(name)


@pytest.fixture
def registry() -> PluginRegistry:
    """Frozen registry holding the built-in plugins."""
    registry = PluginRegistry()
    failures = registry.discover()
    assert failures == []
    registry.freeze()
    return registry


@pytest.fixture
def app_config() -> AppConfig:
    """Config with small batches so tests see several of them."""
    return AppConfig(performance=PerformanceConfig(batch_size=2, max_concurrent_jobs=4))


def make_job(name: str = "copy-people", schema: Schema | None = None) -> Job:
    """Build a memory-to-memory job without touching any provider."""
    schema = schema or Schema(
        name="people",
        fields=[
            Field(name="id", type=FieldType.INT32),
            Field(name="name", type=FieldType.STRING),
        ],
    )
    return Job(
        name=name,
        source=ConnectionDetails(provider_name="Memory", database="src"),
        target=ConnectionDetails(provider_name="Memory", database="dst"),
        mapping=FieldMapping(
            source_resource=schema.name,
            target_resource=schema.name,
            entries=[FieldMappingEntry(source=f, target=f) for f in schema.fields],
        ),
    )


@pytest.fixture
def job_factory():
    """Factory for memory-to-memory jobs."""
    return make_job
