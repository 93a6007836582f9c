"""Read-only inspection of an editor's extensions directory and CLI."""

from __future__ import annotations

import json
import logging
import os
import shutil
import stat
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from editor_sync.exceptions import ExtensionsRootNotFoundError
from editor_sync.index import find_index_file
from editor_sync.profiles import EditorProfile, ProfileRegistry

logger = logging.getLogger(__name__)

HIDDEN_PREFIX = "."


@dataclass
class EditorStatus:
    """Point-in-time view of one profile. Recomputed, never stored."""

    profile: EditorProfile
    directory_exists: bool = False
    index_file_exists: bool = False
    extension_count: int = 0
    cli_available: bool = False
    cli_path: str = ""
    unavailable_reason: str | None = None

    @property
    def available_overall(self) -> bool:
        return self.directory_exists

    def to_dict(self) -> dict:
        d = {
            "editor": self.profile.to_dict(),
            "dirExists": self.directory_exists,
            "indexFileExists": self.index_file_exists,
            "cliAvailable": self.cli_available,
            "extensionCount": self.extension_count,
            "isAvailable": self.available_overall,
        }
        if self.cli_path:
            d["cliPath"] = self.cli_path
        if self.unavailable_reason:
            d["disabledReason"] = self.unavailable_reason
        return d


@dataclass
class CLIStatus:
    """Which known-family CLIs are reachable, in registry order."""

    paths: dict[str, str]
    preferred: str | None = None

    @property
    def any_available(self) -> bool:
        return bool(self.paths)


@dataclass
class InstalledExtension:
    id: str
    path: Path
    publisher: str
    name: str
    version: str
    last_modified: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "path": str(self.path),
            "publisher": self.publisher,
            "name": self.name,
            "version": self.version,
            "lastModified": self.last_modified.isoformat() if self.last_modified else None,
        }


def find_cli(command: str) -> str | None:
    """Resolve ``command`` on PATH. On Windows the ``.cmd`` shim is tried first."""
    if sys.platform == "win32":
        path = shutil.which(command + ".cmd")
        if path:
            return path
    return shutil.which(command)


def count_extension_dirs(extensions_root: Path) -> int:
    """Count non-hidden subdirectories of ``extensions_root``.

    Best effort: an entry that cannot be stat'ed is left out of the count,
    and an unreadable root counts as zero. Nothing here raises.
    """
    try:
        entries = list(os.scandir(extensions_root))
    except OSError as e:
        logger.debug(f"Cannot list {extensions_root}: {e}")
        return 0

    count = 0
    for entry in entries:
        if entry.name.startswith(HIDDEN_PREFIX):
            continue
        try:
            if entry.is_dir(follow_symlinks=False):
                count += 1
        except OSError as e:
            logger.debug(f"Skipping {entry.path}: {e}")
    return count


def probe(profile: EditorProfile) -> EditorStatus:
    """Inspect ``profile`` on disk. Absence is reported, never raised."""
    status = EditorStatus(profile=profile)
    root = profile.extensions_root

    try:
        is_dir = stat.S_ISDIR(root.stat().st_mode)
    except OSError:
        is_dir = False
    if not is_dir:
        status.unavailable_reason = f"Extensions directory not found: {root}"
        logger.debug(f"{profile.id}: {status.unavailable_reason}")
        return status
    status.directory_exists = True

    status.index_file_exists = find_index_file(root, profile.index_file_name) is not None

    if profile.cli_command:
        cli_path = find_cli(profile.cli_command)
        if cli_path:
            status.cli_available = True
            status.cli_path = cli_path

    status.extension_count = count_extension_dirs(root)
    return status


def probe_all(registry: ProfileRegistry) -> list[EditorStatus]:
    return [probe(p) for p in registry.list_profiles()]


def cli_status(registry: ProfileRegistry) -> CLIStatus:
    """Report the reachable family CLIs; the first one found is preferred."""
    paths: dict[str, str] = {}
    preferred = None
    for profile in registry.list_profiles():
        if not (profile.is_known_family and profile.cli_command):
            continue
        path = find_cli(profile.cli_command)
        if path:
            paths[profile.cli_command] = path
            if preferred is None:
                preferred = profile.cli_command
    return CLIStatus(paths=paths, preferred=preferred)


def scan_installed(extensions_root: Path) -> list[InstalledExtension]:
    """List installed extensions from each payload's package.json.

    Hidden folders, folders without a package.json and manifests that fail
    to parse are skipped.
    """
    try:
        entries = sorted(os.scandir(extensions_root), key=lambda e: e.name)
    except OSError as e:
        raise ExtensionsRootNotFoundError(
            f"failed to read extensions directory {extensions_root}: {e}"
        ) from e

    extensions = []
    for entry in entries:
        if entry.name.startswith(HIDDEN_PREFIX):
            continue
        try:
            if not entry.is_dir():
                continue
            ext_path = Path(entry.path)
            pkg = json.loads((ext_path / "package.json").read_text(encoding="utf-8"))
            modified = datetime.fromtimestamp(entry.stat().st_mtime)
        except (OSError, ValueError) as e:
            logger.debug(f"Skipping {entry.path}: {e}")
            continue
        if not isinstance(pkg, dict):
            continue

        publisher = str(pkg.get("publisher", ""))
        name = str(pkg.get("name", ""))
        extensions.append(
            InstalledExtension(
                id=f"{publisher}.{name}",
                path=ext_path,
                publisher=publisher,
                name=name,
                version=str(pkg.get("version", "")),
                last_modified=modified,
            )
        )

    logger.debug(f"Scanned {len(extensions)} extension(s) in {extensions_root}")
    return extensions
