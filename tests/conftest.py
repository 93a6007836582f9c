"""Shared test fixtures."""

import json
from pathlib import Path

import pytest

from editor_sync.profiles import build_registry


@pytest.fixture
def home(tmp_path):
    """A fake home directory so no test touches the real editors."""
    h = tmp_path / "home"
    h.mkdir()
    return h


@pytest.fixture
def registry(home):
    return build_registry(home=home)


@pytest.fixture
def make_extension():
    """Return a factory that creates a payload dir and its index record.

    The payload gets a package.json plus a nested ``out/extension.js``.
    """

    def _make(root: Path, ext_id: str, version: str, body: str = "// code\n") -> dict:
        publisher, name = ext_id.split(".", 1)
        relative = f"{ext_id}-{version}"
        payload = root / relative
        (payload / "out").mkdir(parents=True, exist_ok=True)
        (payload / "package.json").write_text(
            json.dumps({"publisher": publisher, "name": name, "version": version})
        )
        (payload / "out" / "extension.js").write_text(body)
        return {
            "identifier": {"id": ext_id, "uuid": f"uuid-{ext_id}"},
            "version": version,
            "location": {"$mid": 1, "path": f"/{payload.as_posix().lstrip('/')}", "scheme": "file"},
            "relativeLocation": relative,
            "metadata": {"installedTimestamp": 1700000000000, "source": "gallery"},
        }

    return _make


@pytest.fixture
def write_index_file():
    """Write raw records as an index file under ``root``."""

    def _write(root: Path, records: list, name: str = "extensions.json") -> Path:
        root.mkdir(parents=True, exist_ok=True)
        path = root / name
        path.write_text(json.dumps(records))
        return path

    return _write


@pytest.fixture
def source_root(registry, make_extension, write_index_file):
    """A VS Code extensions root holding a.b@1.0 and c.d@2.0."""
    root = registry.get_profile("vscode").extensions_root
    root.mkdir(parents=True)
    records = [
        make_extension(root, "a.b", "1.0"),
        make_extension(root, "c.d", "2.0"),
    ]
    write_index_file(root, records)
    return root


@pytest.fixture
def target_root(registry):
    """Extensions root for the cursor editor (not created)."""
    return registry.get_profile("cursor").extensions_root
