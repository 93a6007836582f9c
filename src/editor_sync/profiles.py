"""Built-in editor profiles and the registry built from them."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from editor_sync.config import Config
from editor_sync.exceptions import EditorNotFoundError

DEFAULT_INDEX_FILE = "extensions.json"

# id -> (display name, folder under $HOME, cli command, known family)
BUILTIN_EDITORS = {
    "vscode": ("VS Code", ".vscode", "code", True),
    "vscode-insiders": ("VS Code Insiders", ".vscode-insiders", "code-insiders", True),
    "vscodium": ("VSCodium", ".vscode-oss", "codium", True),
    "windsurf": ("Windsurf", ".windsurf", "", False),
    "cursor": ("Cursor", ".cursor", "", False),
    "kiro": ("Kiro", ".kiro", "", False),
}


@dataclass(frozen=True)
class EditorProfile:
    """One supported editor and where it keeps its extensions."""

    id: str
    display_name: str
    extensions_root: Path
    index_file_name: str = DEFAULT_INDEX_FILE
    cli_command: str = ""
    is_known_family: bool = False
    is_custom: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.display_name,
            "extensionsDir": str(self.extensions_root),
            "indexFile": self.index_file_name,
            "cliCommand": self.cli_command,
            "isVSCodeFamily": self.is_known_family,
            "isCustom": self.is_custom,
        }


def default_extensions_dir(home: Path, editor_folder: str) -> Path:
    return home / editor_folder / "extensions"


def default_profiles(home: Path | None = None) -> list[EditorProfile]:
    """Return the built-in profiles rooted at ``home`` (default: the user's home)."""
    home = home or Path.home()
    return [
        EditorProfile(
            id=editor_id,
            display_name=name,
            extensions_root=default_extensions_dir(home, folder),
            cli_command=cli,
            is_known_family=family,
        )
        for editor_id, (name, folder, cli, family) in BUILTIN_EDITORS.items()
    ]


class ProfileRegistry:
    """Immutable, ordered lookup of editor profiles.

    Build one per invocation and hand it to whatever needs profiles. It is
    never mutated after construction, so sharing it across threads is fine.
    """

    def __init__(self, profiles: list[EditorProfile]):
        by_id: dict[str, EditorProfile] = {}
        for p in profiles:
            if p.id in by_id:
                raise ValueError(f"Duplicate editor id: {p.id}")
            by_id[p.id] = p
        self._profiles = tuple(profiles)
        self._by_id = by_id

    def list_profiles(self) -> list[EditorProfile]:
        return list(self._profiles)

    def get_profile(self, editor_id: str) -> EditorProfile:
        try:
            return self._by_id[editor_id]
        except KeyError:
            raise EditorNotFoundError(editor_id) from None

    def __contains__(self, editor_id: object) -> bool:
        return editor_id in self._by_id

    def __iter__(self):
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)


def build_registry(config: Config | None = None, home: Path | None = None) -> ProfileRegistry:
    """Build the registry from the built-in table plus user config.

    Overrides replace the extensions root of a built-in editor; custom
    editors are appended after the built-ins in config order.
    """
    profiles = default_profiles(home)
    if config is None:
        return ProfileRegistry(profiles)

    for i, p in enumerate(profiles):
        override = config.get_override(p.id)
        if override is not None:
            profiles[i] = replace(p, extensions_root=override.extensions_path)
    for c in config.custom_editors:
        profiles.append(
            EditorProfile(
                id=c.id,
                display_name=c.name,
                extensions_root=c.extensions_path,
                index_file_name=c.index_file,
                cli_command=c.cli_command,
                is_custom=True,
            )
        )
    return ProfileRegistry(profiles)

