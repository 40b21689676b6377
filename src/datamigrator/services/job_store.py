"""JSON persistence for job collections."""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from datamigrator.errors import JobStoreError
from datamigrator.models.job import Job, JobCollection, JobError, JobResult, JobStatus

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class JobStore:
    """Saves and loads jobs as ``{"version": 1, "jobs": [...]}``.

    Field types are stored by name. A job saved while running comes back
    failed, since its run cannot have survived the process.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def save(self, collection: JobCollection) -> None:
        """Write every job, replacing the file atomically."""
        payload = {
            "version": FORMAT_VERSION,
            "jobs": [job.model_dump(mode="json") for job in collection],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".jobs-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise JobStoreError(f"Cannot write {self.path}: {e}") from e
        logger.debug(f"Saved {len(collection)} jobs to {self.path}")

    def load(self) -> JobCollection:
        """Read jobs back; a missing file is an empty collection."""
        if not self.path.exists():
            return JobCollection()

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise JobStoreError(f"Cannot read {self.path}: {e}") from e

        if not isinstance(data, dict) or data.get("version") != FORMAT_VERSION:
            raise JobStoreError(f"Unsupported job file format in {self.path}")

        collection = JobCollection()
        for raw in data.get("jobs", []):
            try:
                job = Job.model_validate(raw)
            except ValidationError as e:
                raise JobStoreError(f"Invalid job in {self.path}: {e}") from e
            if job.status == JobStatus.RUNNING:
                self._mark_interrupted(job)
            collection.add(job)
        return collection

    def _mark_interrupted(self, job: Job) -> None:
        logger.warning(f"Job {job.name} was running when last saved; marking it failed")
        job.finish_run(
            JobResult(
                job_name=job.name,
                status=JobStatus.FAILED,
                rows_attempted=job.progress.rows_attempted,
                rows_committed=job.progress.rows_committed,
                error=JobError(kind="Interrupted", message="interrupted"),
                started_at=job.started_at,
                completed_at=datetime.now(),
            )
        )
