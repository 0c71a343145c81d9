"""Tests for runtime configuration loading.

Each test runs in a fresh temporary working directory with the ONLY_AGENT_*
environment cleared (see the clean_config fixture).
"""

from pathlib import Path

import pytest

from only_agent.config.runtime_config import (
    AgentSettings,
    get_settings,
    load_config,
    reset_config,
    settings_from_config,
)


def write_config(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    """Tests for behaviour without any config file."""

    def test_defaults(self):
        settings = get_settings()

        assert settings.workspace_root is None
        assert settings.max_listed_files == 100
        assert settings.replace_on_parse is False
        assert settings.bulk_excluded_kinds == ["SHELL"]
        assert settings.port == 8765
        assert "node_modules" in settings.exclude_patterns

    def test_dataclass_defaults_match(self):
        """AgentSettings() matches the resolved defaults."""
        assert AgentSettings() == get_settings()


class TestConfigFile:
    """Tests for YAML config files."""

    def test_local_config_file(self, tmp_path):
        write_config(
            tmp_path / ".only-agent.yaml",
            "workspace:\n  root: /srv/app\n  max_listed_files: 5\nqueue:\n  replace_on_parse: true\n",
        )

        settings = get_settings()

        assert settings.workspace_root == Path("/srv/app")
        assert settings.max_listed_files == 5
        assert settings.replace_on_parse is True
        # Unset keys keep their defaults
        assert "node_modules" in settings.exclude_patterns

    def test_env_config_path(self, tmp_path, monkeypatch):
        config = write_config(tmp_path / "custom.yaml", "server:\n  port: 9000\n")
        monkeypatch.setenv("ONLY_AGENT_CONFIG", str(config))

        assert get_settings().port == 9000

    def test_missing_env_config_path(self, tmp_path, monkeypatch, caplog):
        monkeypatch.setenv("ONLY_AGENT_CONFIG", str(tmp_path / "absent.yaml"))

        assert get_settings().port == 8765
        assert "missing file" in caplog.text

    def test_non_mapping_rejected(self, tmp_path):
        config = write_config(tmp_path / "bad.yaml", "- just\n- a list\n")

        with pytest.raises(ValueError, match="must contain a mapping"):
            load_config(config)

    def test_empty_file_is_defaults(self, tmp_path):
        config = write_config(tmp_path / "empty.yaml", "")

        assert load_config(config) == load_config(None)

    def test_bulk_exclusions_always_include_shell(self):
        settings = settings_from_config({"queue": {"bulk_excluded_kinds": ["fetch"]}})

        assert settings.bulk_excluded_kinds == ["FETCH", "SHELL"]

    def test_cache_and_reset(self, tmp_path):
        """Settings are cached until reset_config()."""
        first = get_settings()
        write_config(tmp_path / ".only-agent.yaml", "server:\n  host: 0.0.0.0\n")

        assert get_settings() is first

        reset_config()
        assert get_settings().host == "0.0.0.0"


class TestEnvironmentOverrides:
    """Tests for env var precedence."""

    def test_env_beats_file(self, tmp_path, monkeypatch):
        write_config(tmp_path / ".only-agent.yaml", "workspace:\n  max_listed_files: 5\n")
        monkeypatch.setenv("ONLY_AGENT_MAX_FILES", "7")
        monkeypatch.setenv("ONLY_AGENT_ROOT", str(tmp_path))
        monkeypatch.setenv("ONLY_AGENT_HOST", "0.0.0.0")

        settings = get_settings()

        assert settings.max_listed_files == 7
        assert settings.workspace_root == tmp_path
        assert settings.host == "0.0.0.0"

    @pytest.mark.parametrize("value", ["abc", "0", "-3"])
    def test_invalid_port_falls_back(self, monkeypatch, caplog, value):
        monkeypatch.setenv("ONLY_AGENT_PORT", value)

        assert get_settings().port == 8765
        assert "port" in caplog.text
