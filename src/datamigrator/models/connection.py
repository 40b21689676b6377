"""Provider-agnostic connection descriptors."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ConnectionDetails(BaseModel):
    """Everything a plugin needs to build a provider.

    The core never interprets ``extended_properties``; only the plugin named by
    ``provider_name`` does. Instances are frozen, so changing a connection means
    building a new provider from a new instance.
    """

    model_config = ConfigDict(frozen=True)

    provider_name: str = Field(..., min_length=1)
    database: str = Field(default="", description="Primary resource identifier (file path, schema)")
    connection_string: str = ""
    extended_properties: dict[str, Any] = Field(default_factory=dict)

    def get_property(self, key: str, default: Any = None) -> Any:
        """Read an extended property."""
        return self.extended_properties.get(key, default)

    def with_properties(self, **properties: Any) -> "ConnectionDetails":
        """Return a copy with extra extended properties merged in."""
        merged = {**self.extended_properties, **properties}
        return self.model_copy(update={"extended_properties": merged})

    @property
    def display_name(self) -> str:
        """Short label for lists and logs."""
        return f"{self.provider_name}:{self.database}" if self.database else self.provider_name


class ConnectionTestResult(BaseModel):
    """Result of a connection test."""

    success: bool
    message: str
    latency_ms: float | None = None
    tested_at: datetime = Field(default_factory=datetime.now)
    details: dict[str, Any] = Field(default_factory=dict)
