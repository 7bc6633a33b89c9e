"""Tests for settings loading (ledger_kernel/config.py)."""

import logging

import pytest

from ledger_kernel.config import LedgerSettings, load_settings
from ledger_kernel.exceptions import ConfigurationError, ErrorKind


class TestDefaults:

    def test_no_file_no_environment(self):
        settings = load_settings(environ={})
        assert settings == LedgerSettings()
        assert settings.default_page_size == 20
        assert settings.max_page_size == 100

    def test_log_level_value(self):
        assert LedgerSettings(log_level="debug").log_level_value == logging.DEBUG


class TestYamlFile:

    def test_values_are_read(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text(
            "database_url: sqlite:///other.db\n"
            "echo: true\n"
            "pool_size: 5\n"
            "default_page_size: 10\n"
        )
        settings = load_settings(path, environ={})
        assert settings.database_url == "sqlite:///other.db"
        assert settings.echo is True
        assert settings.pool_size == 5
        assert settings.default_page_size == 10

    def test_path_from_environment(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("log_level: WARNING\n")
        settings = load_settings(environ={"LEDGER_CONFIG": str(path)})
        assert settings.log_level == "WARNING"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("")
        assert load_settings(path, environ={}) == LedgerSettings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="does not exist"):
            load_settings(tmp_path / "absent.yaml", environ={})

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("database_url: [unclosed\n")
        with pytest.raises(ConfigurationError, match="malformed YAML"):
            load_settings(path, environ={})

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_settings(path, environ={})

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("pool_sise: 3\n")
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(path, environ={})
        assert exc_info.value.kind is ErrorKind.INTERNAL

    def test_wrong_type(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("pool_size: lots\n")
        with pytest.raises(ConfigurationError, match="expected int"):
            load_settings(path, environ={})


class TestEnvironmentOverrides:

    def test_database_url(self):
        settings = load_settings(environ={"DATABASE_URL": "postgresql://x/y"})
        assert settings.database_url == "postgresql://x/y"

    def test_ledger_database_url_wins(self):
        settings = load_settings(
            environ={
                "DATABASE_URL": "postgresql://x/y",
                "LEDGER_DATABASE_URL": "sqlite:///z.db",
            }
        )
        assert settings.database_url == "sqlite:///z.db"

    def test_environment_beats_file(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("log_level: DEBUG\n")
        settings = load_settings(path, environ={"LEDGER_LOG_LEVEL": "ERROR"})
        assert settings.log_level == "ERROR"


class TestValidation:

    def test_page_size_bounds(self):
        with pytest.raises(ConfigurationError):
            LedgerSettings(default_page_size=500, max_page_size=100)
        with pytest.raises(ConfigurationError):
            LedgerSettings(default_page_size=0)

    def test_pool_size(self):
        with pytest.raises(ConfigurationError):
            LedgerSettings(pool_size=0)

    def test_unknown_log_level(self):
        with pytest.raises(ConfigurationError, match="unknown level"):
            LedgerSettings(log_level="CHATTY")

    def test_empty_database_url(self):
        with pytest.raises(ConfigurationError):
            LedgerSettings(database_url="")
