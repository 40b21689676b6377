"""Tests for job persistence."""

import json

import pytest

from datamigrator.errors import JobStoreError
from datamigrator.models.job import JobCollection, JobStatus
from datamigrator.services.job_store import FORMAT_VERSION, JobStore


class TestJobStore:
    """Tests for JobStore."""

    def test_missing_file_is_empty(self, tmp_path):
        """Test loading before anything was saved."""
        assert len(JobStore(tmp_path / "jobs.json").load()) == 0

    def test_round_trip(self, tmp_path, job_factory):
        """Test jobs come back equal and in order."""
        store = JobStore(tmp_path / "nested" / "jobs.json")
        jobs = [job_factory("b"), job_factory("a")]

        store.save(JobCollection(jobs))
        loaded = store.load()

        assert [j.name for j in loaded] == ["b", "a"]
        assert loaded["a"].model_dump() == jobs[1].model_dump()

    def test_field_types_stored_by_name(self, tmp_path, job_factory):
        """Test the file holds symbolic type names."""
        path = tmp_path / "jobs.json"
        JobStore(path).save(JobCollection([job_factory()]))

        data = json.loads(path.read_text())

        assert data["version"] == FORMAT_VERSION
        entry = data["jobs"][0]["mapping"]["entries"][0]
        assert entry["source"]["type"] == "Int32"

    def test_running_job_loads_failed(self, tmp_path, job_factory):
        """Test a job saved mid-run is marked interrupted."""
        store = JobStore(tmp_path / "jobs.json")
        job = job_factory()
        job.begin_run()
        store.save(JobCollection([job]))

        loaded = store.load()[job.name]

        assert loaded.status == JobStatus.FAILED
        assert loaded.error.kind == "Interrupted"
        assert loaded.error.message == "interrupted"

    def test_unsupported_version(self, tmp_path):
        """Test an unknown format version is rejected."""
        path = tmp_path / "jobs.json"
        path.write_text(json.dumps({"version": 99, "jobs": []}))

        with pytest.raises(JobStoreError):
            JobStore(path).load()

    def test_corrupt_file(self, tmp_path):
        """Test unreadable JSON is rejected."""
        path = tmp_path / "jobs.json"
        path.write_text("{not json")

        with pytest.raises(JobStoreError):
            JobStore(path).load()

    def test_invalid_job(self, tmp_path):
        """Test a job missing required fields is rejected."""
        path = tmp_path / "jobs.json"
        path.write_text(json.dumps({"version": FORMAT_VERSION, "jobs": [{"name": "x"}]}))

        with pytest.raises(JobStoreError):
            JobStore(path).load()

    def test_save_leaves_no_temp_files(self, tmp_path, job_factory):
        """Test the atomic write cleans up after itself."""
        store = JobStore(tmp_path / "jobs.json")

        store.save(JobCollection([job_factory()]))
        store.save(JobCollection([job_factory()]))

        assert [p.name for p in tmp_path.iterdir()] == ["jobs.json"]
