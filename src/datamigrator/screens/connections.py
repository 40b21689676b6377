"""Connection screen driven by plugin form descriptors."""

from textual import work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.widget import Widget
from textual.widgets import Label, Select, Static

from datamigrator.models.connection import ConnectionDetails
from datamigrator.plugins.base import ConnectionForm, ConnectionFormField, MigrationTool
from datamigrator.services.migration_engine import MigrationEngine
from datamigrator.widgets.plugin_form import PluginForm


class ConnectionsPane(Widget):
    """Build, test and inspect connections for any registered plugin."""

    def __init__(self, engine: MigrationEngine) -> None:
        super().__init__()
        self.engine = engine
        self._tools: list[MigrationTool] = []

    def compose(self) -> ComposeResult:
        """Create the connections layout."""
        names = self.engine.registry.provider_names
        with Container(classes="pane-container"):
            with Horizontal(id="provider-picker"):
                yield Label("Provider:", classes="form-label")
                yield Select(
                    [(name, name) for name in names],
                    id="provider",
                    value=names[0] if names else Select.BLANK,
                    allow_blank=not names,
                )
            with Horizontal(id="connection-body"):
                yield Vertical(id="form-area")
                with Vertical(id="output-area"):
                    yield Label("Output", classes="section-header")
                    with ScrollableContainer():
                        yield Static("", id="output")

    def on_mount(self) -> None:
        """Show the form of the initially selected provider."""
        provider = self.query_one("#provider", Select).value
        if isinstance(provider, str):
            self._show_form(provider)

    def on_select_changed(self, event: Select.Changed) -> None:
        """Swap the form when another provider is selected."""
        if isinstance(event.value, str):
            self._show_form(event.value)

    def _show_form(self, provider_name: str) -> None:
        """Render the selected plugin's connection form followed by its settings."""
        plugin = self.engine.registry.get(provider_name)
        form = plugin.connection_form or ConnectionForm(
            title=f"{provider_name} Connection",
            fields=[ConnectionFormField(key="database", label="Database", required=True)],
        )
        form = form.extended_with(plugin.settings_form)
        self._tools = list(plugin.tools)
        actions = [("test", "Test"), ("resources", "Resources")]
        actions += [(f"tool-{i}", tool.name) for i, tool in enumerate(self._tools)]

        area = self.query_one("#form-area", Vertical)
        area.remove_children()
        area.mount(PluginForm(provider_name, form, actions=actions))

    def _show_output(self, text: str) -> None:
        self.query_one("#output", Static).update(text)

    def on_plugin_form_submitted(self, event: PluginForm.Submitted) -> None:
        """Dispatch a form action."""
        if event.action == "test":
            self._test_connection(event.details)
        elif event.action == "resources":
            self._list_resources(event.details)
        elif event.action.startswith("tool-"):
            self._run_tool(self._tools[int(event.action.removeprefix("tool-"))], event.details)

    @work(exclusive=True)
    async def _test_connection(self, details: ConnectionDetails) -> None:
        """Test a connection in the background."""
        result = await self.engine.test_connection(details)
        if result.success:
            self.notify(f"Connection successful ({result.latency_ms:.0f}ms)")
        else:
            self.notify(f"Connection failed: {result.message}", severity="error")

    @work(exclusive=True)
    async def _list_resources(self, details: ConnectionDetails) -> None:
        """List resources in the background."""
        try:
            resources = await self.engine.list_resources(details)
        except Exception as e:
            self.notify(f"Failed to list resources: {e}", severity="error")
            return
        self._show_output("\n".join(resources) or "No resources")

    @work(thread=True)
    def _run_tool(self, tool: MigrationTool, details: ConnectionDetails) -> None:
        """Run a plugin tool on a worker thread."""
        try:
            output = tool.run(details)
        except Exception as e:
            self.app.call_from_thread(self.notify, f"{tool.name} failed: {e}", severity="error")
            return
        self.app.call_from_thread(self._show_output, output)
