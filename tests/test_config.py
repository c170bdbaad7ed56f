"""
Tests for Nudge configuration system.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from nudge.config import (
    NudgeConfig,
    deep_merge,
    expand_path,
    load_config,
    load_yaml_config,
)


class TestExpandPath:
    """Tests for path expansion."""

    def test_expand_home(self):
        result = expand_path("~/test")
        assert result is not None
        assert str(result).startswith(str(Path.home()))
        assert str(result).endswith("test")

    def test_expand_env_var(self, monkeypatch):
        monkeypatch.setenv("TEST_NUDGE_PATH", "/custom/path")
        result = expand_path("$TEST_NUDGE_PATH/subdir")
        assert str(result) == "/custom/path/subdir"

    def test_expand_none(self):
        assert expand_path(None) is None


class TestLoadYamlConfig:
    """Tests for YAML loading."""

    def test_load_valid_yaml(self, tmp_path: Path):
        config_file = tmp_path / "test.yaml"
        config_file.write_text(
            """
            log:
              level: DEBUG
            store:
              echo: true
            """
        )
        result = load_yaml_config(config_file)
        assert result["log"]["level"] == "DEBUG"
        assert result["store"]["echo"] is True

    def test_load_missing_file(self):
        assert load_yaml_config(Path("/nonexistent/config.yaml")) == {}

    def test_load_none(self):
        assert load_yaml_config(None) == {}

    def test_load_empty_file(self, tmp_path: Path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        assert load_yaml_config(config_file) == {}


class TestDeepMerge:
    """Tests for deep dictionary merging."""

    def test_simple_merge(self):
        result = deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self):
        base = {"outer": {"a": 1, "b": 2}}
        override = {"outer": {"b": 3, "c": 4}}
        assert deep_merge(base, override) == {"outer": {"a": 1, "b": 3, "c": 4}}

    def test_override_dict_with_value(self):
        assert deep_merge({"a": {"nested": True}}, {"a": "simple"}) == {"a": "simple"}

    def test_base_not_mutated(self):
        base = {"outer": {"a": 1}}
        deep_merge(base, {"outer": {"a": 2}})
        assert base == {"outer": {"a": 1}}


class TestNudgeConfig:
    """Tests for main configuration class."""

    def test_defaults(self):
        config = NudgeConfig()
        assert config.nudge.name == "Nudge"
        assert config.log.level == "INFO"
        assert config.store.key == "nudgeTasks"
        assert config.reminder.motivation_window == 60
        assert config.reminder.motivation_probability == 0.20
        assert config.speech.preferred_langs == ["ur-PK", "hi-IN"]
        assert config.speech.fallback_lang == "hi-IN"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("NUDGE_LOG__LEVEL", "DEBUG")
        assert NudgeConfig().log.level == "DEBUG"

    def test_env_beats_init_values(self, monkeypatch):
        monkeypatch.setenv("NUDGE_SPEECH__RATE", "1.2")
        config = NudgeConfig(speech={"rate": 0.7})
        assert config.speech.rate == 1.2

    def test_store_path_expanded(self):
        config = NudgeConfig(store={"path": "~/tasks.db"})
        assert config.store.path == Path.home() / "tasks.db"

    def test_probability_bounds(self):
        with pytest.raises(ValidationError):
            NudgeConfig(reminder={"motivation_probability": 1.5})

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            NudgeConfig(log={"level": "LOUD"})


class TestLoadConfig:
    """Tests for the full load sequence."""

    @pytest.fixture
    def config_file(self, tmp_path, monkeypatch):
        path = tmp_path / "nudge.yaml"
        path.write_text(
            """
            log:
              level: WARNING
            speech:
              enabled: true
              rate: 0.8
            """
        )
        monkeypatch.setattr("nudge.config.find_config_file", lambda: path)
        return path

    def test_yaml_values(self, config_file):
        config = load_config()
        assert config.log.level == "WARNING"
        assert config.speech.rate == 0.8

    def test_overrides_beat_yaml(self, config_file):
        config = load_config({"speech": {"enabled": False}})
        assert config.speech.enabled is False
        assert config.speech.rate == 0.8

    def test_env_beats_overrides(self, config_file, monkeypatch):
        monkeypatch.setenv("NUDGE_LOG__LEVEL", "ERROR")
        config = load_config({"log": {"level": "DEBUG"}})
        assert config.log.level == "ERROR"

    def test_no_config_file(self, monkeypatch):
        monkeypatch.setattr("nudge.config.find_config_file", lambda: None)
        assert load_config().log.level == "INFO"
