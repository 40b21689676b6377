"""Job row widget for the dashboard."""

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.message import Message
from textual.widget import Widget
from textual.widgets import Button, Label

from datamigrator.models.job import Job, JobStatus


class JobRow(Widget):
    """Display row for a migration job."""

    class RunRequested(Message):
        """Request to run a job."""

        def __init__(self, job_name: str) -> None:
            super().__init__()
            self.job_name = job_name

    class CancelRequested(Message):
        """Request to cancel a running job."""

        def __init__(self, job_name: str) -> None:
            super().__init__()
            self.job_name = job_name

    class DeleteRequested(Message):
        """Request to delete a job."""

        def __init__(self, job_name: str) -> None:
            super().__init__()
            self.job_name = job_name

    DEFAULT_CSS = """
    JobRow {
        height: auto;
        padding: 1;
        margin-bottom: 1;
        border: solid $primary;
    }

    JobRow .job-header {
        height: auto;
        margin-bottom: 1;
    }

    JobRow .job-name {
        text-style: bold;
    }

    JobRow .job-route {
        color: $text-muted;
    }

    JobRow .job-status {
        dock: right;
        padding: 0 1;
    }

    JobRow .job-stats {
        color: $text-muted;
    }

    JobRow .job-controls {
        height: auto;
    }

    JobRow .job-controls Button {
        margin-right: 1;
    }

    JobRow.status-running {
        border: solid #2196f3;
    }

    JobRow.status-succeeded {
        border: solid $success;
    }

    JobRow.status-failed {
        border: solid $error;
    }
    """

    def __init__(self, job: Job) -> None:
        super().__init__()
        self.job = job
        self._rendered_status = job.status
        self._update_class()

    def _update_class(self) -> None:
        """Update CSS class based on status."""
        for status in JobStatus:
            self.remove_class(f"status-{status.value}")
        self.add_class(f"status-{self.job.status.value}")

    def compose(self) -> ComposeResult:
        """Create the row layout."""
        with Vertical():
            with Horizontal(classes="job-header"):
                yield Label(self.job.name, classes="job-name")
                yield Label(
                    f"  {self.job.source_display} -> {self.job.target_display}", classes="job-route"
                )
                yield Label(self._status_badge, classes="job-status", id="status")

            yield Label(self._progress_text, classes="job-stats", id="progress-text")

            if self.job.error is not None:
                yield Label(f"Error: {self.job.error.message}", classes="status-failed")

            with Horizontal(classes="job-controls"):
                if self.job.is_running:
                    yield Button("Cancel", variant="error", id="cancel")
                else:
                    yield Button("Run", variant="primary", id="run")
                    yield Button("Delete", variant="default", id="delete")

    @property
    def _status_badge(self) -> str:
        """Get status badge text."""
        badges = {
            JobStatus.NOT_RUN: "[NOT RUN]",
            JobStatus.RUNNING: "[RUNNING]",
            JobStatus.SUCCEEDED: "[DONE]",
            JobStatus.FAILED: "[FAILED]",
        }
        return badges.get(self.job.status, "[?]")

    @property
    def _progress_text(self) -> str:
        """Get progress text."""
        p = self.job.progress
        if self.job.status == JobStatus.NOT_RUN:
            return f"{len(self.job.mapping.entries)} fields mapped"
        rate = f"{p.rows_per_second:,.0f} rows/s" if p.rows_per_second else ""
        return f"{p.rows_display} rows committed | {self.job.duration_display} | {rate}"

    def update_job(self, job: Job) -> None:
        """Show the latest state of ``job``, recomposing when its status changed."""
        self.job = job
        self._update_class()
        if job.status != self._rendered_status:
            self._rendered_status = job.status
            self.refresh(recompose=True)
            return
        try:
            self.query_one("#progress-text", Label).update(self._progress_text)
        except NoMatches:
            pass

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        event.stop()
        if event.button.id == "run":
            self.post_message(self.RunRequested(self.job.name))
        elif event.button.id == "cancel":
            self.post_message(self.CancelRequested(self.job.name))
        elif event.button.id == "delete":
            self.post_message(self.DeleteRequested(self.job.name))
