"""Application configuration."""

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class PerformanceConfig(BaseModel):
    """Execution settings."""

    batch_size: int = Field(
        default_factory=lambda: int(os.environ.get("DATAMIGRATOR_BATCH_SIZE", "500")),
        ge=1,
    )
    max_concurrent_jobs: int = Field(
        default_factory=lambda: int(os.environ.get("DATAMIGRATOR_MAX_CONCURRENT", "4")),
        ge=1,
    )
    progress_poll_interval_ms: int = 1000
    connection_test_timeout_seconds: int = 10


class StorageConfig(BaseModel):
    """Where jobs are persisted."""

    jobs_path: Path = Field(
        default_factory=lambda: Path(
            os.environ.get("DATAMIGRATOR_JOBS_PATH", str(Path.home() / ".datamigrator" / "jobs.json"))
        )
    )


class UIConfig(BaseModel):
    """UI settings."""

    theme: str = "dark"
    refresh_interval_seconds: float = 1.0


class AppConfig(BaseModel):
    """Main application configuration."""

    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    ui: UIConfig = Field(default_factory=UIConfig)
    log_level: str = Field(
        default_factory=lambda: os.environ.get("DATAMIGRATOR_LOG_LEVEL", "INFO")
    )

    @classmethod
    def load(cls, config_path: Path | None = None) -> "AppConfig":
        """Load configuration from file or defaults."""
        if config_path is None:
            config_path = Path.home() / ".datamigrator" / "config.toml"

        if config_path.exists():
            import tomllib

            try:
                with open(config_path, "rb") as f:
                    data = tomllib.load(f)
                return cls.model_validate(data)
            except (tomllib.TOMLDecodeError, ValidationError) as e:
                logger.warning(f"Ignoring invalid config file {config_path}: {e}")

        return cls()


# Global config instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config
