"""Connection form rendered from a plugin's form descriptor."""

from typing import Any

from textual.app import ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.message import Message
from textual.widget import Widget
from textual.widgets import Button, Checkbox, Input, Label

from datamigrator.errors import InvalidConnectionDetails
from datamigrator.models.connection import ConnectionDetails
from datamigrator.plugins.base import ConnectionForm, FormFieldKind


class PluginForm(Widget):
    """Inputs for one plugin's ConnectionForm."""

    class Submitted(Message):
        """Form values were turned into connection details."""

        def __init__(self, details: ConnectionDetails, action: str) -> None:
            super().__init__()
            self.details = details
            self.action = action

    def __init__(
        self,
        provider_name: str,
        form: ConnectionForm,
        details: ConnectionDetails | None = None,
        actions: list[tuple[str, str]] | None = None,
    ) -> None:
        super().__init__()
        self.provider_name = provider_name
        self.form = form
        self.actions = actions or [("test", "Test")]
        self._initial = form.values_from(details) if details else {}

    def compose(self) -> ComposeResult:
        """Create one input per descriptor field."""
        with Container(classes="form-container"):
            yield Label(self.form.title, classes="section-header")
            for index, form_field in enumerate(self.form.fields):
                value = self._initial.get(form_field.key, form_field.default)
                with Vertical(classes="form-row"):
                    if form_field.kind == FormFieldKind.BOOLEAN:
                        yield Checkbox(form_field.label, value=bool(value), id=f"field-{index}")
                        continue
                    suffix = " *" if form_field.required else ""
                    yield Label(f"{form_field.label}{suffix}:", classes="form-label")
                    yield Input(
                        value="" if value is None else str(value),
                        placeholder=form_field.placeholder,
                        password=form_field.kind == FormFieldKind.PASSWORD,
                        type="integer" if form_field.kind == FormFieldKind.INTEGER else "text",
                        id=f"field-{index}",
                    )

            with Horizontal(classes="modal-buttons"):
                for action_id, label in self.actions:
                    yield Button(label, variant="default", id=action_id)

    def values(self) -> dict[str, Any]:
        """Current form values keyed by descriptor key."""
        values: dict[str, Any] = {}
        for index, form_field in enumerate(self.form.fields):
            if form_field.kind == FormFieldKind.BOOLEAN:
                values[form_field.key] = self.query_one(f"#field-{index}", Checkbox).value
                continue
            text = self.query_one(f"#field-{index}", Input).value.strip()
            if not text:
                values[form_field.key] = None
            elif form_field.kind == FormFieldKind.INTEGER:
                values[form_field.key] = int(text)
            else:
                values[form_field.key] = text
        return values

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        event.stop()
        try:
            details = self.form.build_details(self.provider_name, self.values())
        except (InvalidConnectionDetails, ValueError) as e:
            self.notify(str(e), severity="error")
            return
        self.post_message(self.Submitted(details, event.button.id or ""))
