"""Exception hierarchy for DataMigrator."""

from typing import Any


class DataMigratorError(Exception):
    """Base class for all DataMigrator errors."""

    @property
    def kind(self) -> str:
        """Stable error kind reported to hosts."""
        return type(self).__name__


class ConnectionError(DataMigratorError):  # noqa: A001
    """The underlying resource is unreachable or invalid."""


class InvalidConnectionDetails(ConnectionError):
    """Extended properties failed the owning plugin's validation."""

    def __init__(self, provider_name: str, problems: list[str]) -> None:
        self.provider_name = provider_name
        self.problems = problems
        super().__init__(f"Invalid connection details for {provider_name}: {'; '.join(problems)}")


class ResourceNotFound(DataMigratorError):
    """A table, sheet or file does not exist."""

    def __init__(self, resource_name: str) -> None:
        self.resource_name = resource_name
        super().__init__(f"Resource not found: {resource_name}")


class ResourceAlreadyExists(DataMigratorError):
    """A schema was created over an existing resource."""

    def __init__(self, resource_name: str) -> None:
        self.resource_name = resource_name
        super().__init__(f"Resource already exists: {resource_name}")


class UnsupportedFieldType(DataMigratorError):
    """A canonical type has no native representation in a provider."""

    def __init__(self, field_type: Any, provider_name: str = "") -> None:
        self.field_type = field_type
        self.provider_name = provider_name
        where = f" by {provider_name}" if provider_name else ""
        super().__init__(f"Field type {field_type} is not supported{where}")


class UnsupportedNativeType(DataMigratorError):
    """A native type is outside a provider's declared domain."""

    def __init__(self, native_type: Any, provider_name: str = "") -> None:
        self.native_type = native_type
        self.provider_name = provider_name
        where = f" for {provider_name}" if provider_name else ""
        super().__init__(f"Unknown native type {native_type!r}{where}")


class CapabilityNotSupported(DataMigratorError):
    """A provider lacks a capability the caller requires."""

    def __init__(self, provider_name: str, capability: str) -> None:
        self.provider_name = provider_name
        self.capability = capability
        super().__init__(f"Provider {provider_name} does not support {capability}")


class MappingValidationError(DataMigratorError):
    """A field mapping could not be built.

    Carries one message per failing entry so hosts can point at the field.
    """

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__("Invalid field mapping:\n  " + "\n  ".join(problems))


class RowConversionError(DataMigratorError):
    """A row value could not be converted to its target field type."""

    def __init__(self, row_index: int, field_name: str, reason: str) -> None:
        self.row_index = row_index
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Row {row_index}, field '{field_name}': {reason}")


class PartialWriteFailure(DataMigratorError):
    """Writing rows failed after some rows were committed."""

    def __init__(self, report: Any, cause: BaseException | None = None) -> None:
        self.report = report
        self.cause = cause
        reason = f": {cause}" if cause else ""
        super().__init__(
            f"Write failed after {report.rows_committed} committed rows "
            f"(last committed index {report.last_committed_index}){reason}"
        )


class DuplicateJobName(DataMigratorError):
    """A job with the same name already exists in the collection."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"The job '{name}' already exists")


class JobNotFound(DataMigratorError):
    """No job with the given name exists."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Job not found: {name}")


class JobAlreadyRunning(DataMigratorError):
    """A second run of a job was requested while the first is in flight."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Job '{name}' is already running")


class JobCancelled(DataMigratorError):
    """A job run stopped because cancellation was requested."""

    def __init__(self, rows_committed: int) -> None:
        self.rows_committed = rows_committed
        super().__init__(f"Job cancelled after {rows_committed} committed rows")


class DuplicateProviderName(DataMigratorError):
    """Two plugins declared the same provider name."""

    def __init__(self, provider_name: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"A plugin named '{provider_name}' is already registered")


class UnknownProviderName(DataMigratorError):
    """No plugin is registered under the given provider name."""

    def __init__(self, provider_name: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"No plugin registered for provider '{provider_name}'")


class ConverterSelfCheckError(DataMigratorError):
    """A plugin's conversion tables are malformed."""

    def __init__(self, provider_name: str, problems: list[str]) -> None:
        self.provider_name = provider_name
        self.problems = problems
        super().__init__(
            f"Conversion tables for {provider_name} failed self-check: {'; '.join(problems)}"
        )


class RegistryFrozenError(DataMigratorError):
    """The plugin registry no longer accepts registrations."""


class EngineBusy(DataMigratorError):
    """The engine is already running its maximum number of jobs."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Maximum concurrent jobs ({limit}) reached")


class JobStoreError(DataMigratorError):
    """Persisted jobs could not be read or written."""
