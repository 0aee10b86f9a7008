"""
Unit tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from src.config import MigrationSettings, load_settings
from src.core.schema import DEFAULT_IMPORT_ORDER


@pytest.mark.unit
class TestMigrationSettings:
    """Tests for settings defaults and validation"""

    def test_defaults(self, clean_env):
        settings = load_settings()

        assert settings.db_host == "localhost"
        assert settings.db_port == 5432
        assert settings.db_name == "hemera_db"
        assert settings.db_user == "hemera_user"
        assert settings.db_password is None
        assert settings.batch_size == 100
        assert settings.table_delay_seconds == 0.05
        assert settings.import_order == DEFAULT_IMPORT_ORDER
        assert settings.key_tables == ["profiles", "video_courses", "course_assignments"]
        assert settings.log_format == "text"

    def test_environment_overrides_defaults(self, clean_env, monkeypatch):
        monkeypatch.setenv("DB_HOST", "db.internal")
        monkeypatch.setenv("DB_PORT", "6543")
        monkeypatch.setenv("IMPORT_BATCH_SIZE", "500")
        monkeypatch.setenv("LOG_FORMAT", "JSON")

        settings = load_settings()

        assert settings.db_host == "db.internal"
        assert settings.db_port == 6543
        assert settings.batch_size == 500
        assert settings.log_format == "json"

    def test_env_file_does_not_override_environment(self, clean_env, monkeypatch, tmp_path):
        env_file = tmp_path / "test.env"
        env_file.write_text("DB_NAME=from_file\nDB_USER=file_user\n")
        monkeypatch.setenv("DB_NAME", "from_env")

        settings = load_settings(env_file=env_file)

        assert settings.db_name == "from_env"
        assert settings.db_user == "file_user"

    def test_yaml_overrides_environment(self, clean_env, monkeypatch, tmp_path):
        config = tmp_path / "migration.yaml"
        config.write_text(
            "db_name: yaml_db\n"
            "import_order: [departments, profiles]\n"
            "key_tables: [profiles]\n"
        )
        monkeypatch.setenv("DB_NAME", "env_db")

        settings = load_settings(config_path=config)

        assert settings.db_name == "yaml_db"
        assert settings.import_order == ["departments", "profiles"]
        assert settings.key_tables == ["profiles"]

    def test_overrides_win_and_none_is_ignored(self, clean_env, monkeypatch):
        monkeypatch.setenv("DB_HOST", "env-host")

        settings = load_settings(db_host="cli-host", db_name=None)

        assert settings.db_host == "cli-host"
        assert settings.db_name == "hemera_db"

    def test_missing_config_file(self, clean_env):
        with pytest.raises(FileNotFoundError):
            load_settings(config_path="does-not-exist.yaml")

    def test_non_mapping_yaml_is_rejected(self, clean_env, tmp_path):
        config = tmp_path / "list.yaml"
        config.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_settings(config_path=config)

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            MigrationSettings(log_format="xml")

    def test_invalid_batch_size(self):
        with pytest.raises(ValidationError):
            MigrationSettings(batch_size=0)

    def test_duplicate_import_order(self):
        with pytest.raises(ValidationError):
            MigrationSettings(import_order=["profiles", "profiles"])
