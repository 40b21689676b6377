"""Jobs dashboard screen."""

from textual import work
from textual.app import ComposeResult
from textual.css.query import NoMatches
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Button, Label, Static

from datamigrator.models.job import JobStatus, format_rows
from datamigrator.services.migration_engine import MigrationEngine
from datamigrator.widgets.job_row import JobRow


class StatsPanel(Widget):
    """Dashboard statistics panel."""

    running_count: reactive[int] = reactive(0)
    succeeded_count: reactive[int] = reactive(0)
    failed_count: reactive[int] = reactive(0)
    total_rows: reactive[int] = reactive(0)

    DEFAULT_CSS = """
    StatsPanel {
        height: 5;
        background: $surface;
        padding: 1;
    }

    StatsPanel Horizontal {
        height: 100%;
    }

    StatsPanel .stat-box {
        width: 1fr;
        content-align: center middle;
    }

    StatsPanel .stat-value {
        text-style: bold;
        text-align: center;
        width: 100%;
    }

    StatsPanel .stat-label {
        color: $text-muted;
        text-align: center;
        width: 100%;
    }

    StatsPanel .stat-running .stat-value {
        color: #2196f3;
    }

    StatsPanel .stat-succeeded .stat-value {
        color: $success;
    }

    StatsPanel .stat-failed .stat-value {
        color: $error;
    }
    """

    def compose(self) -> ComposeResult:
        """Create the stats layout."""
        with Horizontal():
            with Vertical(classes="stat-box stat-running"):
                yield Label(str(self.running_count), classes="stat-value", id="running-value")
                yield Label("Running", classes="stat-label")

            with Vertical(classes="stat-box stat-succeeded"):
                yield Label(str(self.succeeded_count), classes="stat-value", id="succeeded-value")
                yield Label("Succeeded", classes="stat-label")

            with Vertical(classes="stat-box stat-failed"):
                yield Label(str(self.failed_count), classes="stat-value", id="failed-value")
                yield Label("Failed", classes="stat-label")

            with Vertical(classes="stat-box"):
                yield Label(format_rows(self.total_rows), classes="stat-value", id="rows-value")
                yield Label("Rows Committed", classes="stat-label")

    def _set(self, selector: str, text: str) -> None:
        try:
            self.query_one(selector, Label).update(text)
        except NoMatches:
            pass

    def watch_running_count(self, value: int) -> None:
        """Update running count display."""
        self._set("#running-value", str(value))

    def watch_succeeded_count(self, value: int) -> None:
        """Update succeeded count display."""
        self._set("#succeeded-value", str(value))

    def watch_failed_count(self, value: int) -> None:
        """Update failed count display."""
        self._set("#failed-value", str(value))

    def watch_total_rows(self, value: int) -> None:
        """Update total rows display."""
        self._set("#rows-value", format_rows(value))


class DashboardPane(Widget):
    """Jobs dashboard pane."""

    def __init__(self, engine: MigrationEngine, refresh_interval: float = 1.0) -> None:
        super().__init__()
        self.engine = engine
        self._refresh_interval = refresh_interval

    def compose(self) -> ComposeResult:
        """Create the dashboard layout."""
        with Container(classes="pane-container dashboard-container"):
            yield StatsPanel(id="stats-panel")

            with Horizontal(id="dashboard-header"):
                yield Label("Jobs", classes="section-header")
                yield Button("Refresh", variant="default", id="refresh")

            yield ScrollableContainer(id="job-list")

    def on_mount(self) -> None:
        """Start refresh loop on mount."""
        self._refresh_dashboard()
        self.set_interval(self._refresh_interval, self._refresh_dashboard)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        if event.button.id == "refresh":
            self._refresh_dashboard()

    def _refresh_dashboard(self) -> None:
        """Refresh the job list and stats."""
        jobs = self.engine.list_jobs()
        job_list = self.query_one("#job-list", ScrollableContainer)

        stats = self.query_one("#stats-panel", StatsPanel)
        stats.running_count = sum(1 for j in jobs if j.status == JobStatus.RUNNING)
        stats.succeeded_count = sum(1 for j in jobs if j.status == JobStatus.SUCCEEDED)
        stats.failed_count = sum(1 for j in jobs if j.status == JobStatus.FAILED)
        stats.total_rows = sum(j.progress.rows_committed for j in jobs)

        by_name = {j.name: j for j in jobs}
        existing = set()
        for row in list(job_list.query(JobRow)):
            job = by_name.get(row.job.name)
            if job is None:
                row.remove()
            else:
                existing.add(job.name)
                row.update_job(job)

        for job in jobs:
            if job.name not in existing:
                job_list.mount(JobRow(job))

        if not jobs:
            if not job_list.query(".empty-state"):
                job_list.mount(
                    Static("No jobs. Create one with the datamigrator CLI.", classes="empty-state")
                )
        else:
            for empty in job_list.query(".empty-state"):
                empty.remove()

    def on_job_row_run_requested(self, event: JobRow.RunRequested) -> None:
        """Handle run request."""
        self._run_job(event.job_name)

    def on_job_row_cancel_requested(self, event: JobRow.CancelRequested) -> None:
        """Handle cancel request."""
        if self.engine.cancel_job(event.job_name):
            self.notify(f"Cancelling {event.job_name}")

    def on_job_row_delete_requested(self, event: JobRow.DeleteRequested) -> None:
        """Handle delete request."""
        try:
            self.engine.delete_job(event.job_name)
        except Exception as e:
            self.notify(f"Failed to delete: {e}", severity="error")
            return
        self._refresh_dashboard()
        self.notify("Job deleted")

    @work
    async def _run_job(self, name: str) -> None:
        """Run a job on the app's event loop and report the outcome."""
        try:
            result = await self.engine.run_job(name)
        except Exception as e:
            self.notify(f"Failed to start {name}: {e}", severity="error")
            return
        if result.succeeded:
            self.notify(f"{name}: {result.rows_committed:,} rows migrated")
        else:
            message = result.error.message if result.error else "unknown error"
            self.notify(f"{name} failed: {message}", severity="error")
