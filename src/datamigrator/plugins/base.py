"""Migration plugin contract."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from datamigrator.errors import InvalidConnectionDetails
from datamigrator.models.connection import ConnectionDetails
from datamigrator.providers.base import BaseProvider
from datamigrator.providers.converter import FieldTypeConverter


class FormFieldKind(str, Enum):
    """Input widget kinds a host renders for a form field."""

    TEXT = "text"
    PASSWORD = "password"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    PATH = "path"


class ConnectionFormField(BaseModel):
    """One input of a plugin's connection or settings form.

    ``key`` is either ``database``, ``connection_string`` or the name of an
    extended property.
    """

    key: str
    label: str
    kind: FormFieldKind = FormFieldKind.TEXT
    default: Any = None
    required: bool = False
    placeholder: str = ""


class ConnectionForm(BaseModel):
    """Declarative description of the inputs that build ConnectionDetails."""

    title: str
    fields: list[ConnectionFormField] = Field(default_factory=list)

    def build_details(self, provider_name: str, values: dict[str, Any]) -> ConnectionDetails:
        """Turn submitted form values into connection details."""
        missing = [
            f.label for f in self.fields
            if f.required and values.get(f.key) in (None, "")
        ]
        if missing:
            raise InvalidConnectionDetails(provider_name, [f"{label} is required" for label in missing])

        database = ""
        connection_string = ""
        extended: dict[str, Any] = {}
        for form_field in self.fields:
            value = values.get(form_field.key, form_field.default)
            if form_field.key == "database":
                database = "" if value is None else str(value)
            elif form_field.key == "connection_string":
                connection_string = "" if value is None else str(value)
            elif value is not None:
                extended[form_field.key] = value

        return ConnectionDetails(
            provider_name=provider_name,
            database=database,
            connection_string=connection_string or database,
            extended_properties=extended,
        )

    def extended_with(self, settings: "ConnectionForm | None") -> "ConnectionForm":
        """This form followed by the settings fields it does not already have."""
        if settings is None:
            return self
        keys = {f.key for f in self.fields}
        extra = [f for f in settings.fields if f.key not in keys]
        return self.model_copy(update={"fields": [*self.fields, *extra]})

    def values_from(self, details: ConnectionDetails) -> dict[str, Any]:
        """Pre-fill form values from existing connection details."""
        values: dict[str, Any] = {}
        for form_field in self.fields:
            if form_field.key == "database":
                values[form_field.key] = details.database
            elif form_field.key == "connection_string":
                values[form_field.key] = details.connection_string
            else:
                values[form_field.key] = details.get_property(form_field.key, form_field.default)
        return values


class MigrationTool(ABC):
    """Auxiliary, format-specific utility offered by a plugin."""

    name: str = ""
    description: str = ""

    @abstractmethod
    def run(self, connection_details: ConnectionDetails) -> str:
        """Run against a connection and return a printable report."""


class MigrationPlugin(ABC):
    """The unit of extensibility: one plugin per provider name."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique provider name used as the registry key."""

    @property
    @abstractmethod
    def converter(self) -> FieldTypeConverter[Any]:
        """Conversion tables for this provider."""

    @abstractmethod
    def get_data_provider(self, connection_details: ConnectionDetails) -> BaseProvider:
        """Build a provider bound to ``connection_details``."""

    @property
    def connection_form(self) -> ConnectionForm | None:
        """Inputs a host shows to build connection details interactively."""
        return None

    @property
    def settings_form(self) -> ConnectionForm | None:
        """Optional plugin-wide settings."""
        return None

    @property
    def tools(self) -> Sequence[MigrationTool]:
        """Optional auxiliary tools."""
        return ()


def parse_options(
    model: type[BaseModel], connection_details: ConnectionDetails
) -> Any:
    """Validate a plugin's extended properties against its options model.

    Plugins call this while constructing a provider so bad keys fail at once
    rather than at the first read.
    """
    try:
        return model.model_validate(connection_details.extended_properties)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise InvalidConnectionDetails(connection_details.provider_name, problems) from e
