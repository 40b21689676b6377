"""Provider contract: capability-scoped interfaces and a base implementation."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any, ClassVar

from datamigrator.errors import CapabilityNotSupported, PartialWriteFailure
from datamigrator.models.connection import ConnectionDetails
from datamigrator.models.schema import Row, Schema
from datamigrator.providers.converter import FieldTypeConverter

logger = logging.getLogger(__name__)


@dataclass
class WriteReport:
    """How far a ``write_rows`` call got."""

    rows_attempted: int = 0
    rows_committed: int = 0
    last_committed_index: int | None = None

    def merge(self, other: "WriteReport") -> "WriteReport":
        """Combine with the report of a later call on the same stream."""
        offset = self.rows_attempted
        last = self.last_committed_index
        if other.last_committed_index is not None:
            last = offset + other.last_committed_index
        return WriteReport(
            rows_attempted=self.rows_attempted + other.rows_attempted,
            rows_committed=self.rows_committed + other.rows_committed,
            last_committed_index=last,
        )


class SchemaReader(ABC):
    """Discovers resources and their schemas."""

    @abstractmethod
    def list_resources(self) -> list[str]:
        """Names of tables, sheets or files reachable through the connection."""

    @abstractmethod
    def open_schema(self, resource_name: str) -> Schema:
        """Read the schema of one resource.

        Raises:
            ResourceNotFound: the resource does not exist.
            ConnectionError: the underlying store is unreachable.
        """

    def resource_exists(self, resource_name: str) -> bool:
        """True when ``resource_name`` is one of :meth:`list_resources`."""
        return resource_name in self.list_resources()

    def default_resource(self) -> str | None:
        """Resource a job targets when none is named, for single-resource providers."""
        return None


class SchemaWriter(ABC):
    """Creates resources from a canonical schema."""

    @abstractmethod
    def create_schema(self, schema: Schema) -> None:
        """Create a resource shaped like ``schema``.

        Raises:
            ResourceAlreadyExists: the resource is already present.
        """


class RowReader(ABC):
    """Streams rows out of a resource."""

    @abstractmethod
    def read_rows(self, schema: Schema) -> Iterator[Row]:
        """Lazily yield rows in the provider's natural order.

        The iterator is single pass; call again to re-open where supported.
        """


class RowWriter(ABC):
    """Persists rows into a resource."""

    @abstractmethod
    def write_rows(self, schema: Schema, rows: Iterable[Row]) -> WriteReport:
        """Consume ``rows`` and persist them.

        Raises:
            PartialWriteFailure: carrying the report of what was committed.
        """

    @staticmethod
    def write_row_at_a_time(rows: Iterable[Row], write_one: Callable[[Row], None]) -> WriteReport:
        """Commit each row as it arrives, for non-transactional stores."""
        report = WriteReport()
        for index, row in enumerate(rows):
            report.rows_attempted += 1
            try:
                write_one(row)
            except Exception as e:
                raise PartialWriteFailure(report, e) from e
            report.rows_committed += 1
            report.last_committed_index = index
        return report

    @staticmethod
    def write_in_batches(
        rows: Iterable[Row],
        batch_size: int,
        write_batch: Callable[[list[Row]], None],
        commit: Callable[[], None],
        rollback: Callable[[], None],
    ) -> WriteReport:
        """Commit all-or-nothing batches, for transactional stores."""
        report = WriteReport()
        batch: list[Row] = []

        def flush() -> None:
            try:
                write_batch(batch)
                commit()
            except Exception as e:
                rollback()
                raise PartialWriteFailure(report, e) from e
            report.rows_committed += len(batch)
            report.last_committed_index = report.rows_attempted - 1
            batch.clear()

        for row in rows:
            batch.append(row)
            report.rows_attempted += 1
            if len(batch) >= batch_size:
                flush()
        if batch:
            flush()
        return report


CAPABILITIES: tuple[type, ...] = (SchemaReader, SchemaWriter, RowReader, RowWriter)


class BaseProvider(ABC):
    """Runtime object bound to one connection.

    Providers are transient: the engine opens one per job run and closes it on
    every exit path. Subclasses mix in the capability interfaces they implement.
    """

    CONVERTER: ClassVar[FieldTypeConverter[Any]]

    def __init__(self, connection_details: ConnectionDetails) -> None:
        self.connection_details = connection_details
        self._is_open = False

    @property
    def provider_name(self) -> str:
        """Provider name from the connection details."""
        return self.connection_details.provider_name

    @property
    def converter(self) -> FieldTypeConverter[Any]:
        """Conversion tables shared by every instance of this provider."""
        return self.CONVERTER

    @property
    def is_open(self) -> bool:
        """True between :meth:`open` and :meth:`close`."""
        return self._is_open

    def open(self) -> "BaseProvider":
        """Acquire the underlying connection."""
        self._is_open = True
        return self

    def close(self) -> None:
        """Release the underlying connection."""
        self._is_open = False

    def __enter__(self) -> "BaseProvider":
        return self.open()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @abstractmethod
    def validate_connection(self) -> bool:
        """Cheap reachability check that never mutates state."""

    def capabilities(self) -> frozenset[type]:
        """Capability interfaces this provider implements."""
        return frozenset(cap for cap in CAPABILITIES if isinstance(self, cap))

    def supports(self, capability: type) -> bool:
        """True when this provider implements ``capability``."""
        return isinstance(self, capability)

    def require(self, capability: type) -> Any:
        """Return ``self`` typed as ``capability`` or raise."""
        if not isinstance(self, capability):
            raise CapabilityNotSupported(self.provider_name, capability.__name__)
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.connection_details.display_name!r})"
