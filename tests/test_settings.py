"""Tests for engine settings."""

import pytest
from pydantic import ValidationError

from cellguard.config.settings import (
    EngineSettings,
    build_settings,
    get_settings,
    load_config_file,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ["STORAGE_PATH", "HISTORY_LIMIT", "LOG_LEVEL", "LOG_JSON", "CONFIG_FILE"]:
        monkeypatch.delenv(f"CELLGUARD_{name}", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestEngineSettings:
    def test_defaults(self):
        settings = EngineSettings()

        assert settings.STORAGE_PATH is None
        assert settings.HISTORY_LIMIT == 100
        assert settings.LOG_LEVEL == "INFO"
        assert settings.LOG_JSON is False

    def test_environment_variables(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CELLGUARD_HISTORY_LIMIT", "50")
        monkeypatch.setenv("CELLGUARD_STORAGE_PATH", str(tmp_path / "state.json"))
        monkeypatch.setenv("CELLGUARD_LOG_LEVEL", "debug")

        settings = EngineSettings()

        assert settings.HISTORY_LIMIT == 50
        assert settings.STORAGE_PATH == tmp_path / "state.json"
        assert settings.LOG_LEVEL == "DEBUG"

    @pytest.mark.parametrize("limit", [0, 1001])
    def test_history_limit_bounds(self, limit):
        with pytest.raises(ValidationError):
            EngineSettings(HISTORY_LIMIT=limit)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestConfigFile:
    """Test YAML overrides."""

    def test_yaml_overrides_defaults(self, tmp_path):
        config = tmp_path / "cellguard.yaml"
        config.write_text("history_limit: 20\nlog_level: warning\n")

        settings = build_settings(CONFIG_FILE=config)

        assert settings.HISTORY_LIMIT == 20
        assert settings.LOG_LEVEL == "WARNING"
        assert settings.CONFIG_FILE == config

    def test_explicit_overrides_win(self, tmp_path):
        config = tmp_path / "cellguard.yaml"
        config.write_text("history_limit: 20\n")

        assert build_settings(CONFIG_FILE=config, HISTORY_LIMIT=7).HISTORY_LIMIT == 7

    def test_config_file_from_environment(self, monkeypatch, tmp_path):
        config = tmp_path / "cellguard.yaml"
        config.write_text("log_json: true\n")
        monkeypatch.setenv("CELLGUARD_CONFIG_FILE", str(config))

        assert build_settings().LOG_JSON is True

    def test_missing_file(self, tmp_path):
        assert load_config_file(tmp_path / "missing.yaml") == {}

    def test_non_mapping_file(self, tmp_path):
        config = tmp_path / "list.yaml"
        config.write_text("- a\n- b\n")
        assert load_config_file(config) == {}

    def test_invalid_yaml(self, tmp_path):
        config = tmp_path / "bad.yaml"
        config.write_text("key: [unclosed\n")
        assert load_config_file(config) == {}
