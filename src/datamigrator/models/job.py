"""Migration job models."""

from collections.abc import Iterator
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from datamigrator.errors import DuplicateJobName, JobAlreadyRunning, JobNotFound
from datamigrator.models.connection import ConnectionDetails
from datamigrator.models.mapping import FieldMapping


class JobStatus(str, Enum):
    """Job execution state."""

    NOT_RUN = "not_run"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JobError(BaseModel):
    """First error encountered by a job run."""

    kind: str
    message: str
    row_index: int | None = None
    field_name: str | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "JobError":
        """Build from any exception, keeping location details when present."""
        kind = getattr(exc, "kind", type(exc).__name__)
        return cls(
            kind=kind,
            message=str(exc),
            row_index=getattr(exc, "row_index", None),
            field_name=getattr(exc, "field_name", None),
        )


def format_rows(count: int) -> str:
    """Format a row count for display."""
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K"
    return str(count)


class JobProgress(BaseModel):
    """Progress snapshot for a running job."""

    rows_read: int = 0
    rows_attempted: int = 0
    rows_committed: int = 0
    batches_committed: int = 0
    rows_per_second: float = 0.0

    @property
    def rows_display(self) -> str:
        """Format committed row count for display."""
        return format_rows(self.rows_committed)


class JobResult(BaseModel):
    """Structured outcome of one job run."""

    job_name: str
    status: JobStatus
    rows_attempted: int = 0
    rows_committed: int = 0
    error: JobError | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        """True when the run finished without error."""
        return self.status == JobStatus.SUCCEEDED

    @property
    def cancelled(self) -> bool:
        """True when the run was stopped by a cancellation request."""
        return self.error is not None and self.error.kind == "JobCancelled"

    @property
    def duration_seconds(self) -> float | None:
        """Elapsed run time."""
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()


class Job(BaseModel):
    """A named, repeatable migration from one connection to another."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    source: ConnectionDetails
    target: ConnectionDetails
    mapping: FieldMapping
    create_target: bool = Field(
        default=False, description="Create the target resource when it does not exist"
    )
    status: JobStatus = JobStatus.NOT_RUN
    progress: JobProgress = Field(default_factory=JobProgress)
    last_result: JobResult | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        """True while a run is in flight."""
        return self.status == JobStatus.RUNNING

    @property
    def error(self) -> JobError | None:
        """First error of the last failed run."""
        if self.status == JobStatus.FAILED and self.last_result is not None:
            return self.last_result.error
        return None

    @property
    def source_display(self) -> str:
        """Brief source description for display."""
        return f"{self.source.display_name}/{self.mapping.source_resource}"

    @property
    def target_display(self) -> str:
        """Brief target description for display."""
        return f"{self.target.display_name}/{self.mapping.target_resource}"

    @property
    def duration_display(self) -> str:
        """Format duration for display."""
        if self.started_at is None:
            return "--:--"
        end = self.completed_at or datetime.now()
        seconds = int((end - self.started_at).total_seconds())
        hours, remainder = divmod(seconds, 3600)
        minutes, secs = divmod(remainder, 60)
        if hours > 0:
            return f"{hours:02d}:{minutes:02d}:{secs:02d}"
        return f"{minutes:02d}:{secs:02d}"

    def begin_run(self) -> None:
        """Move to RUNNING, refusing a second concurrent run."""
        if self.status == JobStatus.RUNNING:
            raise JobAlreadyRunning(self.name)
        self.status = JobStatus.RUNNING
        self.progress = JobProgress()
        self.started_at = datetime.now()
        self.completed_at = None

    def finish_run(self, result: JobResult) -> None:
        """Record the terminal state of the current run."""
        self.status = result.status
        self.last_result = result
        self.completed_at = result.completed_at or datetime.now()


class JobCollection:
    """Jobs keyed by unique, case-sensitive name in insertion order."""

    def __init__(self, jobs: list[Job] | None = None) -> None:
        self._jobs: dict[str, Job] = {}
        for job in jobs or []:
            self.add(job)

    def add(self, job: Job) -> Job:
        """Add a job, rejecting duplicate names."""
        if job.name in self._jobs:
            raise DuplicateJobName(job.name)
        self._jobs[job.name] = job
        return job

    def by_name(self, name: str) -> Job | None:
        """Get a job by exact name."""
        return self._jobs.get(name)

    def __getitem__(self, name: str) -> Job:
        job = self._jobs.get(name)
        if job is None:
            raise JobNotFound(name)
        return job

    def remove(self, name: str) -> Job:
        """Delete a job from the collection."""
        job = self[name]
        if job.is_running:
            raise JobAlreadyRunning(name)
        del self._jobs[name]
        return job

    def rename(self, old_name: str, new_name: str) -> Job:
        """Rename a job, keeping its position in the collection."""
        job = self[old_name]
        if new_name == old_name:
            return job
        if new_name in self._jobs:
            raise DuplicateJobName(new_name)
        renamed = job.model_copy(update={"name": new_name})
        self._jobs = {
            (new_name if key == old_name else key): (renamed if key == old_name else value)
            for key, value in self._jobs.items()
        }
        return renamed

    def list_jobs(self) -> list[Job]:
        """All jobs in insertion order."""
        return list(self._jobs.values())

    def list_running(self) -> list[Job]:
        """Jobs with a run in flight."""
        return [j for j in self._jobs.values() if j.is_running]

    def __contains__(self, name: object) -> bool:
        return name in self._jobs

    def __iter__(self) -> Iterator[Job]:
        return iter(list(self._jobs.values()))

    def __len__(self) -> int:
        return len(self._jobs)
