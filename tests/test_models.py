"""Tests for data models."""

import pytest
from pydantic import ValidationError

from datamigrator.errors import DuplicateJobName, JobAlreadyRunning, JobNotFound
from datamigrator.models.connection import ConnectionDetails
from datamigrator.models.field_type import ConversionSafety, FieldType, classify_conversion
from datamigrator.models.job import JobCollection, JobError, JobProgress, JobResult, JobStatus, format_rows
from datamigrator.models.schema import Field, Schema


class TestFieldType:
    """Tests for the canonical field type enum."""

    def test_values_are_names(self):
        """Test each member's value is its symbolic name."""
        assert FieldType.INT32.value == "Int32"
        assert FieldType.DATE_TIME_OFFSET.value == "DateTimeOffset"
        assert FieldType("MultiUser") is FieldType.MULTI_USER

    def test_member_count(self):
        """Test the full set of logical types is present."""
        assert len(FieldType) == 35


class TestClassifyConversion:
    """Tests for conversion safety classification."""

    @pytest.mark.parametrize(
        "source,target,expected",
        [
            (FieldType.INT32, FieldType.INT32, ConversionSafety.SAFE),
            (FieldType.INT16, FieldType.INT64, ConversionSafety.SAFE),
            (FieldType.BYTE, FieldType.UINT16, ConversionSafety.SAFE),
            (FieldType.INT64, FieldType.INT32, ConversionSafety.LOSSY),
            (FieldType.SBYTE, FieldType.BYTE, ConversionSafety.LOSSY),
            (FieldType.SINGLE, FieldType.DOUBLE, ConversionSafety.SAFE),
            (FieldType.DOUBLE, FieldType.SINGLE, ConversionSafety.LOSSY),
            (FieldType.INT32, FieldType.DECIMAL, ConversionSafety.SAFE),
            (FieldType.DECIMAL, FieldType.INT32, ConversionSafety.LOSSY),
            (FieldType.INT32, FieldType.STRING, ConversionSafety.SAFE),
            (FieldType.STRING, FieldType.CHAR, ConversionSafety.LOSSY),
            (FieldType.STRING, FieldType.INT32, ConversionSafety.LOSSY),
            (FieldType.DATE, FieldType.DATE_TIME, ConversionSafety.SAFE),
            (FieldType.DATE_TIME, FieldType.DATE, ConversionSafety.LOSSY),
            (FieldType.BINARY, FieldType.OBJECT, ConversionSafety.SAFE),
            (FieldType.BINARY, FieldType.INT32, ConversionSafety.UNSAFE),
            (FieldType.GEOMETRY, FieldType.DATE, ConversionSafety.UNSAFE),
            (FieldType.BOOLEAN, FieldType.INT32, ConversionSafety.SAFE),
        ],
    )
    def test_classification(self, source, target, expected):
        """Test widening is safe, narrowing lossy and cross-family unsafe."""
        assert classify_conversion(source, target) == expected


class TestSchema:
    """Tests for Field and Schema."""

    def test_duplicate_field_names_rejected(self):
        """Test a schema cannot hold two fields with one name."""
        with pytest.raises(ValidationError):
            Schema(
                name="t",
                fields=[Field(name="a", type=FieldType.INT32), Field(name="a", type=FieldType.STRING)],
            )

    def test_lookup(self, people_schema):
        """Test field lookup by exact name."""
        assert people_schema.field_names == ["id", "name"]
        assert people_schema.get_field("name").type == FieldType.STRING
        assert people_schema.get_field("Name") is None
        assert "id" in people_schema

    def test_length_attribute(self):
        """Test the length attribute is exposed as an int."""
        field = Field(name="code", type=FieldType.STRING, attributes={"length": "12"})

        assert field.length == 12
        assert Field(name="x", type=FieldType.STRING).length is None


class TestConnectionDetails:
    """Tests for ConnectionDetails."""

    def test_frozen(self):
        """Test details cannot be mutated after construction."""
        details = ConnectionDetails(provider_name="CSV", database="/tmp/a.csv")

        with pytest.raises(ValidationError):
            details.database = "/tmp/b.csv"

    def test_with_properties_returns_copy(self):
        """Test merging properties leaves the original untouched."""
        details = ConnectionDetails(provider_name="CSV", extended_properties={"HasHeaderRow": True})

        updated = details.with_properties(Delimiter=";")

        assert updated.get_property("Delimiter") == ";"
        assert updated.get_property("HasHeaderRow") is True
        assert details.get_property("Delimiter") is None

    def test_display_name(self):
        """Test display name includes the database when set."""
        assert ConnectionDetails(provider_name="Memory", database="x").display_name == "Memory:x"
        assert ConnectionDetails(provider_name="Memory").display_name == "Memory"


class TestJob:
    """Tests for the job state machine."""

    def test_defaults(self, job_factory):
        """Test a new job has not run."""
        job = job_factory()

        assert job.status == JobStatus.NOT_RUN
        assert job.error is None
        assert job.duration_display == "--:--"

    def test_begin_run(self, job_factory):
        """Test starting a run moves to RUNNING."""
        job = job_factory()

        job.begin_run()

        assert job.is_running
        assert job.started_at is not None

    def test_begin_run_twice_raises(self, job_factory):
        """Test a running job refuses a second run."""
        job = job_factory()
        job.begin_run()

        with pytest.raises(JobAlreadyRunning):
            job.begin_run()

    def test_finish_run_failed_keeps_error(self, job_factory):
        """Test a failed run exposes its first error."""
        job = job_factory()
        job.begin_run()

        job.finish_run(
            JobResult(
                job_name=job.name,
                status=JobStatus.FAILED,
                error=JobError(kind="ConnectionError", message="unreachable"),
            )
        )

        assert job.status == JobStatus.FAILED
        assert job.error.kind == "ConnectionError"

    def test_rerun_after_success(self, job_factory):
        """Test a finished job can run again."""
        job = job_factory()
        job.begin_run()
        job.finish_run(JobResult(job_name=job.name, status=JobStatus.SUCCEEDED))

        job.begin_run()

        assert job.is_running


class TestJobProgress:
    """Tests for JobProgress."""

    def test_rows_display(self):
        """Test committed rows use the shared compact format."""
        assert JobProgress(rows_committed=999).rows_display == "999"
        assert JobProgress(rows_committed=1_500).rows_display == "1.5K"
        assert JobProgress(rows_committed=2_000_000).rows_display == format_rows(2_000_000) == "2.0M"


class TestJobError:
    """Tests for JobError."""

    def test_from_exception_keeps_location(self):
        """Test row and field details are carried over."""
        from datamigrator.errors import RowConversionError

        error = JobError.from_exception(RowConversionError(4, "id", "not an integer"))

        assert error.kind == "RowConversionError"
        assert error.row_index == 4
        assert error.field_name == "id"

    def test_from_plain_exception(self):
        """Test non-library exceptions use their class name."""
        error = JobError.from_exception(OSError("disk full"))

        assert error.kind == "OSError"
        assert error.message == "disk full"


class TestJobCollection:
    """Tests for JobCollection."""

    def test_add_duplicate_keeps_one(self, job_factory):
        """Test adding a job name twice raises and leaves exactly one job."""
        collection = JobCollection()
        collection.add(job_factory("X"))

        with pytest.raises(DuplicateJobName):
            collection.add(job_factory("X"))

        assert len(collection) == 1

    def test_names_are_case_sensitive(self, job_factory):
        """Test names differing only by case are distinct."""
        collection = JobCollection([job_factory("job"), job_factory("Job")])

        assert len(collection) == 2

    def test_by_name(self, job_factory):
        """Test lookup by name returns the job or None."""
        collection = JobCollection([job_factory("a")])

        assert collection.by_name("a").name == "a"
        assert collection.by_name("b") is None
        with pytest.raises(JobNotFound):
            collection["b"]

    def test_rename_keeps_order(self, job_factory):
        """Test renaming keeps the job in place."""
        collection = JobCollection([job_factory("a"), job_factory("b"), job_factory("c")])

        collection.rename("b", "beta")

        assert [j.name for j in collection] == ["a", "beta", "c"]
        assert "b" not in collection

    def test_rename_to_existing_raises(self, job_factory):
        """Test renaming onto another job's name is rejected."""
        collection = JobCollection([job_factory("a"), job_factory("b")])

        with pytest.raises(DuplicateJobName):
            collection.rename("a", "b")

    def test_remove(self, job_factory):
        """Test removing a job."""
        collection = JobCollection([job_factory("a")])

        collection.remove("a")

        assert len(collection) == 0

    def test_remove_running_raises(self, job_factory):
        """Test a running job cannot be removed."""
        job = job_factory("a")
        collection = JobCollection([job])
        job.begin_run()

        with pytest.raises(JobAlreadyRunning):
            collection.remove("a")

        assert collection.list_running() == [job]
