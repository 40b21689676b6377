"""Main Textual application entry point."""

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, TabbedContent, TabPane

from datamigrator.screens.connections import ConnectionsPane
from datamigrator.screens.dashboard import DashboardPane
from datamigrator.services.migration_engine import MigrationEngine

THEMES = {"dark": "textual-dark", "light": "textual-light"}


def textual_theme(name: str) -> str:
    """Textual theme for a configured theme name; other names pass through."""
    return THEMES.get(name.lower(), name)


class DataMigratorApp(App):
    """DataMigrator TUI - run and monitor migration jobs."""

    TITLE = "DataMigrator"
    SUB_TITLE = "Plugin-based Data Migration"
    CSS_PATH = "styles.tcss"

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("d", "switch_tab('dashboard')", "Dashboard", show=True),
        Binding("c", "switch_tab('connections')", "Connections", show=True),
    ]

    def __init__(
        self, engine: MigrationEngine, refresh_interval: float = 1.0, theme: str = "dark"
    ) -> None:
        super().__init__()
        self.engine = engine
        self.refresh_interval = refresh_interval
        self.theme_name = textual_theme(theme)

    def on_mount(self) -> None:
        """Apply the configured theme."""
        self.theme = self.theme_name

    def compose(self) -> ComposeResult:
        """Create the application layout."""
        yield Header()
        with TabbedContent(initial="dashboard"):
            with TabPane("Dashboard", id="dashboard"):
                yield DashboardPane(self.engine, self.refresh_interval)
            with TabPane("Connections", id="connections"):
                yield ConnectionsPane(self.engine)
        yield Footer()

    def action_switch_tab(self, tab_id: str) -> None:
        """Switch to a specific tab."""
        tabbed_content = self.query_one(TabbedContent)
        tabbed_content.active = tab_id

    def on_unmount(self) -> None:
        """Stop running jobs when the app exits."""
        for job in self.engine.list_active_jobs():
            self.engine.cancel_job(job.name)
