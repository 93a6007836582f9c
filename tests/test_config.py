"""Tests for config loading and saving."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from editor_sync.config import (
    Config,
    CustomEditorConfig,
    EditorOverride,
    default_config_path,
    load_config,
    save_config,
)
from editor_sync.exceptions import ConfigError


@pytest.fixture
def tmp_config(tmp_path):
    return tmp_path / "config.json"


@pytest.fixture
def sample_config():
    return Config(
        editors={"cursor": EditorOverride(extensions_dir="/opt/cursor/extensions")},
        custom_editors=[
            CustomEditorConfig(
                id="theia",
                name="Theia",
                extensions_dir="~/.theia/extensions",
                cli_command="theia",
            )
        ],
    )


class TestConfig:
    def test_load_missing_file(self, tmp_path):
        config = load_config(tmp_path / "nonexistent.json")
        assert config.version == 1
        assert config.editors == {}
        assert config.custom_editors == []

    def test_save_and_load_roundtrip(self, tmp_config, sample_config):
        save_config(sample_config, tmp_config)
        loaded = load_config(tmp_config)

        assert loaded.editors["cursor"].extensions_dir == "/opt/cursor/extensions"
        assert len(loaded.custom_editors) == 1
        custom = loaded.custom_editors[0]
        assert custom.id == "theia"
        assert custom.name == "Theia"
        assert custom.index_file == "extensions.json"
        assert custom.cli_command == "theia"

    def test_invalid_json_raises(self, tmp_config):
        tmp_config.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid config file"):
            load_config(tmp_config)

    def test_non_utf8_file_raises(self, tmp_config):
        tmp_config.write_bytes(b'{"version": "\xff\xfe"}')
        with pytest.raises(ConfigError, match="Invalid config file"):
            load_config(tmp_config)

    def test_unreadable_file_raises(self, tmp_config):
        tmp_config.write_text("{}")
        with patch.object(Path, "read_text", side_effect=PermissionError("denied")):
            with pytest.raises(ConfigError, match="Cannot read config file"):
                load_config(tmp_config)

    def test_missing_required_key_raises(self, tmp_config):
        tmp_config.write_text(json.dumps({"custom_editors": [{"id": "x"}]}))
        with pytest.raises(ConfigError):
            load_config(tmp_config)

    def test_get_override(self, sample_config):
        assert sample_config.get_override("cursor") is not None
        assert sample_config.get_override("vscode") is None

    def test_extensions_path_expands_user(self, sample_config):
        path = sample_config.custom_editors[0].extensions_path
        assert path.is_absolute()
        assert str(path).endswith(".theia/extensions")

    def test_save_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "deep" / "nested" / "config.json"
        save_config(Config(), path)
        assert path.exists()

    def test_defaults_not_saved(self, tmp_config):
        config = Config(
            custom_editors=[CustomEditorConfig(id="x", name="X", extensions_dir="/x")]
        )
        save_config(config, tmp_config)
        data = json.loads(tmp_config.read_text())
        assert "index_file" not in data["custom_editors"][0]
        assert "cli_command" not in data["custom_editors"][0]

    def test_env_var_overrides_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EDITOR_SYNC_CONFIG", str(tmp_path / "alt.json"))
        assert default_config_path() == tmp_path / "alt.json"
