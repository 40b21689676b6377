"""Migration engine service - runs jobs between providers."""

import asyncio
import logging
import threading
import time
from collections.abc import AsyncIterator, Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from itertools import islice
from typing import Any

from datamigrator.config import AppConfig, get_config
from datamigrator.errors import (
    EngineBusy,
    JobAlreadyRunning,
    JobCancelled,
    JobStoreError,
    PartialWriteFailure,
    ResourceNotFound,
)
from datamigrator.models.connection import ConnectionDetails, ConnectionTestResult
from datamigrator.models.job import Job, JobCollection, JobError, JobProgress, JobResult, JobStatus
from datamigrator.models.schema import Schema
from datamigrator.plugins.registry import PluginRegistry
from datamigrator.providers.base import (
    BaseProvider,
    RowReader,
    RowWriter,
    SchemaReader,
    SchemaWriter,
    WriteReport,
)
from datamigrator.services.job_store import JobStore
from datamigrator.services.mapping_builder import FieldPair, MappingBuilder

logger = logging.getLogger(__name__)


@dataclass
class _RunState:
    """Counters shared between a job's worker thread and the event loop."""

    started: float = field(default_factory=time.monotonic)
    rows_read: int = 0
    batches: int = 0
    report: WriteReport = field(default_factory=WriteReport)

    def progress(self) -> JobProgress:
        elapsed = time.monotonic() - self.started
        return JobProgress(
            rows_read=self.rows_read,
            rows_attempted=self.report.rows_attempted,
            rows_committed=self.report.rows_committed,
            batches_committed=self.batches,
            rows_per_second=self.report.rows_committed / elapsed if elapsed > 0 else 0.0,
        )


class MigrationEngine:
    """Creates and runs migration jobs.

    Each run executes on a worker thread; the event loop only owns job state,
    so distinct jobs never share mutable state beyond the frozen registry.
    """

    def __init__(
        self,
        registry: PluginRegistry,
        collection: JobCollection,
        config: AppConfig | None = None,
        store: JobStore | None = None,
    ) -> None:
        self._registry = registry
        self._collection = collection
        self._config = config or get_config()
        self._store = store
        self._builder = MappingBuilder()
        self._executor = ThreadPoolExecutor(
            max_workers=self._config.performance.max_concurrent_jobs,
            thread_name_prefix="datamigrator-job",
        )
        self._tasks: dict[str, asyncio.Task] = {}
        self._cancel_events: dict[str, threading.Event] = {}
        self._progress_queues: dict[str, asyncio.Queue] = {}

    @property
    def collection(self) -> JobCollection:
        """Jobs managed by this engine."""
        return self._collection

    @property
    def registry(self) -> PluginRegistry:
        """Registry used to resolve providers."""
        return self._registry

    async def _in_thread(self, func: Callable[..., Any], *args: Any) -> Any:
        # Job runs own self._executor; short calls go to the loop default executor.
        return await asyncio.get_running_loop().run_in_executor(None, func, *args)

    async def test_connection(self, details: ConnectionDetails) -> ConnectionTestResult:
        """Check that a connection is reachable without changing anything."""
        timeout = self._config.performance.connection_test_timeout_seconds
        start_time = time.monotonic()

        def do_test() -> bool:
            return self._registry.get_data_provider(details).validate_connection()

        try:
            ok = await asyncio.wait_for(self._in_thread(do_test), timeout=timeout)
        except asyncio.TimeoutError:
            return ConnectionTestResult(
                success=False,
                message=f"Connection timed out after {timeout} seconds",
                latency_ms=timeout * 1000,
            )
        except Exception as e:
            return ConnectionTestResult(
                success=False,
                message=str(e),
                latency_ms=(time.monotonic() - start_time) * 1000,
            )

        return ConnectionTestResult(
            success=ok,
            message="Connection successful" if ok else "Connection check failed",
            latency_ms=(time.monotonic() - start_time) * 1000,
        )

    async def list_resources(self, details: ConnectionDetails) -> list[str]:
        """Names of the resources reachable through ``details``."""

        def do_list() -> list[str]:
            with self._registry.get_data_provider(details) as provider:
                return provider.require(SchemaReader).list_resources()

        return await self._in_thread(do_list)

    def prepare_job(
        self,
        name: str,
        source: ConnectionDetails,
        target: ConnectionDetails,
        source_resource: str,
        target_resource: str | None = None,
        pairs: Iterable[FieldPair | tuple[str, str]] | None = None,
        create_target: bool = False,
        description: str = "",
    ) -> Job:
        """Read both schemas and build a validated job, without adding it.

        When ``pairs`` is omitted fields are matched by name. A missing target
        is planned from the source schema if ``create_target`` is set. Without
        ``target_resource`` the target provider's default resource is used,
        falling back to the source resource name.

        Raises:
            MappingValidationError: the mapping is invalid; nothing was created.
        """
        with self._registry.get_data_provider(source) as source_provider, \
                self._registry.get_data_provider(target) as target_provider:
            if not target_resource and target_provider.supports(SchemaReader):
                target_resource = target_provider.default_resource()
            target_resource = target_resource or source_resource
            source_schema = source_provider.require(SchemaReader).open_schema(source_resource)
            target_schema = self._target_schema(
                target_provider, source_schema, target_resource, create_target
            )
            if pairs is None:
                pairs = self._builder.auto_map(source_schema, target_schema)
            mapping = self._builder.build(
                source_schema,
                target_schema,
                pairs,
                source_provider.converter,
                target_provider.converter,
            )

        return Job(
            name=name,
            description=description,
            source=source,
            target=target,
            mapping=mapping,
            create_target=create_target,
        )

    async def create_job(self, name: str, *args: Any, **kwargs: Any) -> Job:
        """Prepare a job off the event loop and add it to the collection."""
        job = await self._in_thread(lambda: self.prepare_job(name, *args, **kwargs))
        self._collection.add(job)
        self._save()
        return job

    def _target_schema(
        self,
        provider: BaseProvider,
        source_schema: Schema,
        resource_name: str,
        create_target: bool,
    ) -> Schema:
        if provider.supports(SchemaReader) and provider.resource_exists(resource_name):
            return provider.open_schema(resource_name)
        if not create_target:
            raise ResourceNotFound(resource_name)
        provider.require(SchemaWriter)
        return self._builder.derive_schema(source_schema, resource_name, provider.converter)

    async def start_job(self, name: str) -> asyncio.Task:
        """Start a run in the background and return its task.

        Raises:
            JobAlreadyRunning: the job already has a run in flight.
            EngineBusy: the concurrent job limit is reached.
        """
        job = self._collection[name]
        if job.is_running:
            raise JobAlreadyRunning(name)

        limit = self._config.performance.max_concurrent_jobs
        if len(self.list_active_jobs()) >= limit:
            raise EngineBusy(limit)

        job.begin_run()
        cancel = threading.Event()
        self._cancel_events[name] = cancel
        self._progress_queues[name] = asyncio.Queue()

        task = asyncio.create_task(self._run(job, cancel))
        self._tasks[name] = task
        return task

    async def run_job(self, name: str) -> JobResult:
        """Run a job to completion and return its result."""
        task = await self.start_job(name)
        return await task

    def cancel_job(self, name: str) -> bool:
        """Request cooperative cancellation; True when a run was in flight."""
        job = self._collection[name]
        cancel = self._cancel_events.get(name)
        if cancel is None or not job.is_running:
            return False
        logger.info(f"Cancellation requested for job {name}")
        cancel.set()
        return True

    def get_job(self, name: str) -> Job | None:
        """Get a job by name."""
        return self._collection.by_name(name)

    def list_jobs(self) -> list[Job]:
        """List all jobs."""
        return self._collection.list_jobs()

    def list_active_jobs(self) -> list[Job]:
        """List jobs with a run in flight."""
        return self._collection.list_running()

    def delete_job(self, name: str) -> Job:
        """Remove a job that is not running."""
        job = self._collection.remove(name)
        self._save()
        return job

    def rename_job(self, old_name: str, new_name: str) -> Job:
        """Rename a job that is not running."""
        if self._collection[old_name].is_running:
            raise JobAlreadyRunning(old_name)
        job = self._collection.rename(old_name, new_name)
        self._save()
        return job

    async def subscribe_progress(self, name: str) -> AsyncIterator[JobProgress]:
        """Subscribe to progress updates for a job."""
        queue = self._progress_queues.get(name)
        if queue is None:
            return

        timeout = self._config.performance.progress_poll_interval_ms / 1000
        while True:
            try:
                progress = await asyncio.wait_for(queue.get(), timeout=timeout)
                yield progress
            except asyncio.TimeoutError:
                job = self._collection.by_name(name)
                if job is None or not job.is_running:
                    break

    def _save(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save(self._collection)
        except JobStoreError as e:
            logger.error(f"Could not save jobs: {e}")

    def shutdown(self) -> None:
        """Cancel in-flight runs and stop the worker threads."""
        for event in self._cancel_events.values():
            event.set()
        self._executor.shutdown(wait=True)

    async def _run(self, job: Job, cancel: threading.Event) -> JobResult:
        """Drive one run and record its outcome on the job."""
        loop = asyncio.get_running_loop()
        queue = self._progress_queues[job.name]
        state = _RunState()

        def publish(progress: JobProgress) -> None:
            job.progress = progress
            queue.put_nowait(progress)

        def on_progress() -> None:
            loop.call_soon_threadsafe(publish, state.progress())

        logger.info(f"Job {job.name} started: {job.source_display} -> {job.target_display}")
        error: JobError | None = None
        try:
            await loop.run_in_executor(self._executor, self._execute, job, cancel, state, on_progress)
        except JobCancelled as e:
            logger.info(f"Job {job.name} cancelled after {e.rows_committed} rows")
            error = JobError.from_exception(e)
        except Exception as e:
            logger.error(f"Job {job.name} failed: {e}")
            error = JobError.from_exception(e)

        result = JobResult(
            job_name=job.name,
            status=JobStatus.SUCCEEDED if error is None else JobStatus.FAILED,
            rows_attempted=state.report.rows_attempted,
            rows_committed=state.report.rows_committed,
            error=error,
            started_at=job.started_at,
            completed_at=datetime.now(),
        )
        publish(state.progress())
        job.finish_run(result)
        self._tasks.pop(job.name, None)
        self._cancel_events.pop(job.name, None)
        self._progress_queues.pop(job.name, None)
        if error is None:
            logger.info(f"Job {job.name} succeeded: {result.rows_committed} rows")
        self._save()
        return result

    def _execute(
        self,
        job: Job,
        cancel: threading.Event,
        state: _RunState,
        on_progress: Callable[[], None],
    ) -> None:
        """Worker-thread body: validate, then stream batches source to target."""
        batch_size = self._config.performance.batch_size
        mapping = job.mapping

        with self._registry.get_data_provider(job.source) as source, \
                self._registry.get_data_provider(job.target) as target:
            reader = source.require(RowReader)
            writer = target.require(RowWriter)

            source_schema = source.require(SchemaReader).open_schema(mapping.source_resource)
            planned = Schema(name=mapping.target_resource, fields=[e.target for e in mapping.entries])
            if target.supports(SchemaReader) and target.resource_exists(mapping.target_resource):
                target_schema = target.open_schema(mapping.target_resource)
                create = False
            elif job.create_target:
                target.require(SchemaWriter)
                target_schema = planned
                create = True
            else:
                raise ResourceNotFound(mapping.target_resource)

            # Validation completes before the first row is read.
            mapping = self._builder.revalidate(
                mapping, source_schema, target_schema, source.converter, target.converter
            )
            if create:
                target.create_schema(target_schema)

            rows = iter(reader.read_rows(source_schema))
            try:
                while True:
                    if cancel.is_set():
                        raise JobCancelled(state.report.rows_committed)
                    batch = list(islice(rows, batch_size))
                    if not batch:
                        break
                    offset = state.rows_read
                    state.rows_read += len(batch)
                    converted = [
                        self._builder.apply(mapping, row, offset + i) for i, row in enumerate(batch)
                    ]
                    try:
                        report = writer.write_rows(target_schema, converted)
                    except PartialWriteFailure as e:
                        state.report = state.report.merge(e.report)
                        raise PartialWriteFailure(state.report, e.cause) from e
                    state.report = state.report.merge(report)
                    state.batches += 1
                    on_progress()
            finally:
                close = getattr(rows, "close", None)
                if close is not None:
                    close()
