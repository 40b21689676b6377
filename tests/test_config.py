"""Tests for configuration."""

from pathlib import Path

from datamigrator.config import (
    AppConfig,
    PerformanceConfig,
    StorageConfig,
    UIConfig,
    get_config,
)


class TestPerformanceConfig:
    """Tests for performance configuration."""

    def test_default_values(self, monkeypatch):
        """Test default performance config values."""
        monkeypatch.delenv("DATAMIGRATOR_BATCH_SIZE", raising=False)
        monkeypatch.delenv("DATAMIGRATOR_MAX_CONCURRENT", raising=False)

        config = PerformanceConfig()

        assert config.batch_size == 500
        assert config.max_concurrent_jobs == 4
        assert config.progress_poll_interval_ms == 1000
        assert config.connection_test_timeout_seconds == 10

    def test_env_override(self, monkeypatch):
        """Test environment variable override for batch size and concurrency."""
        monkeypatch.setenv("DATAMIGRATOR_BATCH_SIZE", "50")
        monkeypatch.setenv("DATAMIGRATOR_MAX_CONCURRENT", "2")

        config = PerformanceConfig()

        assert config.batch_size == 50
        assert config.max_concurrent_jobs == 2


class TestStorageConfig:
    """Tests for storage configuration."""

    def test_default_jobs_path(self, monkeypatch):
        """Test jobs are kept under the user's home directory by default."""
        monkeypatch.delenv("DATAMIGRATOR_JOBS_PATH", raising=False)

        config = StorageConfig()

        assert config.jobs_path == Path.home() / ".datamigrator" / "jobs.json"

    def test_env_override(self, monkeypatch, tmp_path):
        """Test environment variable override for the jobs file."""
        monkeypatch.setenv("DATAMIGRATOR_JOBS_PATH", str(tmp_path / "jobs.json"))

        config = StorageConfig()

        assert config.jobs_path == tmp_path / "jobs.json"


class TestUIConfig:
    """Tests for UI configuration."""

    def test_default_values(self):
        """Test default UI config values."""
        config = UIConfig()

        assert config.theme == "dark"
        assert config.refresh_interval_seconds == 1.0

    def test_theme_names(self):
        """Test configured theme names resolve to textual themes."""
        from datamigrator.app import textual_theme

        assert textual_theme("dark") == "textual-dark"
        assert textual_theme("Light") == "textual-light"
        assert textual_theme("nord") == "nord"


class TestAppConfig:
    """Tests for main application configuration."""

    def test_default_values(self, monkeypatch):
        """Test default app config values."""
        monkeypatch.delenv("DATAMIGRATOR_LOG_LEVEL", raising=False)

        config = AppConfig()

        assert config.log_level == "INFO"
        assert isinstance(config.performance, PerformanceConfig)
        assert isinstance(config.storage, StorageConfig)
        assert isinstance(config.ui, UIConfig)

    def test_env_log_level_override(self, monkeypatch):
        """Test environment variable override for log level."""
        monkeypatch.setenv("DATAMIGRATOR_LOG_LEVEL", "DEBUG")

        config = AppConfig()

        assert config.log_level == "DEBUG"

    def test_load_nonexistent_file(self, tmp_path, monkeypatch):
        """Test loading from non-existent file returns defaults."""
        monkeypatch.delenv("DATAMIGRATOR_LOG_LEVEL", raising=False)

        config = AppConfig.load(tmp_path / "nonexistent.toml")

        assert config.log_level == "INFO"

    def test_load_toml_file(self, tmp_path):
        """Test values from a TOML file override defaults."""
        path = tmp_path / "config.toml"
        path.write_text('log_level = "WARNING"\n\n[performance]\nbatch_size = 25\n')

        config = AppConfig.load(path)

        assert config.log_level == "WARNING"
        assert config.performance.batch_size == 25

    def test_load_invalid_file_falls_back(self, tmp_path):
        """Test an invalid file is ignored rather than fatal."""
        path = tmp_path / "config.toml"
        path.write_text("[performance]\nbatch_size = 0\n")

        config = AppConfig.load(path)

        assert config.performance.batch_size >= 1


class TestGetConfig:
    """Tests for get_config function."""

    def test_returns_config(self):
        """Test that get_config returns a config."""
        import datamigrator.config as config_module

        config_module._config = None

        config = get_config()

        assert isinstance(config, AppConfig)

    def test_singleton(self):
        """Test that get_config returns the same instance."""
        import datamigrator.config as config_module

        config_module._config = None

        config1 = get_config()
        config2 = get_config()

        assert config1 is config2
