"""Configuration management for editor-sync."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from editor_sync.exceptions import ConfigError

CONFIG_DIR = Path.home() / ".config" / "editor-sync"
CONFIG_FILE = CONFIG_DIR / "config.json"
CONFIG_ENV_VAR = "EDITOR_SYNC_CONFIG"
CONFIG_VERSION = 1


@dataclass
class EditorOverride:
    """Replacement extensions directory for a built-in editor."""

    extensions_dir: str

    @property
    def extensions_path(self) -> Path:
        return Path(self.extensions_dir).expanduser()


@dataclass
class CustomEditorConfig:
    """An editor not in the built-in table, declared by the user."""

    id: str
    name: str
    extensions_dir: str
    index_file: str = "extensions.json"
    cli_command: str = ""

    @property
    def extensions_path(self) -> Path:
        return Path(self.extensions_dir).expanduser()


@dataclass
class Config:
    """Root configuration object."""

    version: int = CONFIG_VERSION
    editors: dict[str, EditorOverride] = field(default_factory=dict)
    custom_editors: list[CustomEditorConfig] = field(default_factory=list)

    def get_override(self, editor_id: str) -> EditorOverride | None:
        return self.editors.get(editor_id)


def default_config_path() -> Path:
    """Config path, honouring EDITOR_SYNC_CONFIG when set."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return CONFIG_FILE


def _custom_editor_from_dict(d: dict) -> CustomEditorConfig:
    return CustomEditorConfig(
        id=d["id"],
        name=d.get("name", d["id"]),
        extensions_dir=d["extensions_dir"],
        index_file=d.get("index_file", "extensions.json"),
        cli_command=d.get("cli_command", ""),
    )


def load_config(path: Path | None = None) -> Config:
    """Load config from disk. Returns empty Config if file doesn't exist."""
    path = path or default_config_path()
    if not path.exists():
        return Config()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        editors = {}
        for editor_id, econf in data.get("editors", {}).items():
            editors[editor_id] = EditorOverride(extensions_dir=econf["extensions_dir"])

        custom_editors = []
        for c in data.get("custom_editors", []):
            custom_editors.append(_custom_editor_from_dict(c))
    except (KeyError, TypeError, AttributeError) as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e

    return Config(
        version=data.get("version", CONFIG_VERSION),
        editors=editors,
        custom_editors=custom_editors,
    )


def save_config(config: Config, path: Path | None = None) -> None:
    """Save config to disk."""
    path = path or default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {"version": config.version, "editors": {}, "custom_editors": []}

    for editor_id, override in config.editors.items():
        data["editors"][editor_id] = {"extensions_dir": override.extensions_dir}

    for c in config.custom_editors:
        cd: dict[str, Any] = {
            "id": c.id,
            "name": c.name,
            "extensions_dir": c.extensions_dir,
        }
        if c.index_file != "extensions.json":
            cd["index_file"] = c.index_file
        if c.cli_command:
            cd["cli_command"] = c.cli_command
        data["custom_editors"].append(cd)

    path.write_text(json.dumps(data, indent=2) + "\n")
