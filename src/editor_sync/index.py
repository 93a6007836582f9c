"""Reading, writing and merging an editor's extensions.json index.

The index is a single JSON array. Each record looks like::

    {
      "identifier": {"id": "publisher.name", "uuid": "..."},
      "version": "1.2.3",
      "location": {"$mid": 1, "path": "/abs/path/publisher.name-1.2.3", "scheme": "file"},
      "relativeLocation": "publisher.name-1.2.3",
      "metadata": {...}
    }

Record order is kept on read. Writes are compact, the same way the editors
themselves write the file. Keys this module does not know about are carried
through untouched.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path, PureWindowsPath
from typing import Any

from editor_sync.exceptions import (
    IndexCorruptError,
    IndexNotFoundError,
    IndexWriteError,
    InvalidRelativeLocationError,
)

logger = logging.getLogger(__name__)

INDEX_FILE_NAME = "extensions.json"
FALLBACK_INDEX_FILE_NAME = "extension.json"

_ENTRY_KEYS = ("identifier", "version", "location", "relativeLocation", "metadata")
_LOCATION_KEYS = ("$mid", "path", "scheme")


@dataclass
class ExtensionIdentifier:
    """``identifier`` block. Everything besides ``id`` is kept as read."""

    id: str
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def uuid(self) -> str | None:
        return self.extra.get("uuid")

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ExtensionIdentifier:
        return cls(id=d["id"], extra={k: v for k, v in d.items() if k != "id"})

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.extra}


@dataclass
class ExtensionLocation:
    """The absolute ``location`` block, kept for format compatibility."""

    path: str
    scheme: str = "file"
    mid: int | None = 1
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ExtensionLocation:
        return cls(
            path=d.get("path", ""),
            scheme=d.get("scheme", ""),
            mid=d.get("$mid"),
            extra={k: v for k, v in d.items() if k not in _LOCATION_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        if self.mid is not None:
            d["$mid"] = self.mid
        d.update(self.extra)
        d["path"] = self.path
        if self.scheme:
            d["scheme"] = self.scheme
        return d


@dataclass
class ExtensionIndexEntry:
    """One record of the index. Replaced whole, never patched."""

    identifier: ExtensionIdentifier
    version: str = ""
    relative_location: str = ""
    location: ExtensionLocation | None = None
    metadata: dict[str, Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.identifier.id

    @property
    def key(self) -> str:
        """Case-folded identifier used for all matching."""
        return self.identifier.id.lower()

    @classmethod
    def from_dict(cls, d: Any) -> ExtensionIndexEntry:
        if not isinstance(d, dict):
            raise IndexCorruptError(f"index record is not an object: {d!r}")
        ident = d.get("identifier")
        if not isinstance(ident, dict) or not isinstance(ident.get("id"), str):
            raise IndexCorruptError(f"index record has no identifier.id: {d!r}")

        location = d.get("location")
        metadata = d.get("metadata")
        extra = {k: v for k, v in d.items() if k not in _ENTRY_KEYS}
        # Present but not an object (null included): kept raw in extra.
        for key, value in (("location", location), ("metadata", metadata)):
            if key in d and not isinstance(value, dict):
                extra[key] = value
        return cls(
            identifier=ExtensionIdentifier.from_dict(ident),
            version=d.get("version", ""),
            relative_location=d.get("relativeLocation", ""),
            location=ExtensionLocation.from_dict(location) if isinstance(location, dict) else None,
            metadata=metadata if isinstance(metadata, dict) else None,
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "identifier": self.identifier.to_dict(),
            "version": self.version,
        }
        if self.location is not None:
            d["location"] = self.location.to_dict()
        d["relativeLocation"] = self.relative_location
        if self.metadata is not None:
            d["metadata"] = self.metadata
        for key, value in self.extra.items():
            d.setdefault(key, value)
        return d


def find_index_file(extensions_root: Path, index_file_name: str = INDEX_FILE_NAME) -> Path | None:
    """Return the index path in use, trying extension.json as a fallback."""
    for name in (index_file_name, FALLBACK_INDEX_FILE_NAME):
        candidate = extensions_root / name
        if candidate.is_file():
            return candidate
    return None


def read_index(
    extensions_root: Path,
    index_file_name: str = INDEX_FILE_NAME,
) -> list[ExtensionIndexEntry]:
    """Parse the index under ``extensions_root``, keeping record order."""
    index_path = find_index_file(extensions_root, index_file_name)
    if index_path is None:
        raise IndexNotFoundError(f"No extensions index file found in {extensions_root}")

    logger.debug(f"Reading extensions index {index_path}")
    try:
        data = json.loads(index_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise IndexCorruptError(f"Failed to parse extensions index {index_path}: {e}") from e
    except OSError as e:
        raise IndexCorruptError(f"Failed to read extensions index {index_path}: {e}") from e

    if not isinstance(data, list):
        raise IndexCorruptError(f"Extensions index {index_path} is not a JSON array")

    return [ExtensionIndexEntry.from_dict(d) for d in data]


def write_index(
    extensions_root: Path,
    entries: list[ExtensionIndexEntry],
    index_file_name: str = INDEX_FILE_NAME,
) -> Path:
    """Write ``entries`` as compact JSON to extensions.json.

    The write is not atomic: a crash part way leaves a truncated file.
    """
    index_path = extensions_root / index_file_name
    data = json.dumps([e.to_dict() for e in entries], separators=(",", ":"), ensure_ascii=False)
    try:
        index_path.write_text(data, encoding="utf-8")
    except OSError as e:
        raise IndexWriteError(f"Failed to write extensions index {index_path}: {e}") from e
    logger.debug(f"Wrote {len(entries)} entries to {index_path}")
    return index_path


def find_entry(entries: list[ExtensionIndexEntry], extension_id: str) -> ExtensionIndexEntry | None:
    """Case-insensitive lookup by identifier id."""
    key = extension_id.lower()
    for entry in entries:
        if entry.key == key:
            return entry
    return None


def merge_entries(
    existing: list[ExtensionIndexEntry],
    added: list[ExtensionIndexEntry],
) -> list[ExtensionIndexEntry]:
    """Return a new index: untouched existing entries, then ``added``.

    Existing entries sharing an identifier with anything in ``added`` are
    dropped. Neither input list is modified.
    """
    replaced = {e.key for e in added}
    return [e for e in existing if e.key not in replaced] + list(added)


def location_path(path: Path | str) -> str:
    """Render an absolute path the way ``location.path`` stores it.

    Always forward slashes with a single leading slash, so ``C:\\x`` becomes
    ``/C:/x``.
    """
    p = str(path).replace("\\", "/")
    if not p.startswith("/"):
        p = "/" + p
    return p


def validate_relative_location(value: str) -> str:
    """Reject relative locations that are empty or leave the extensions root."""
    if not value or not value.strip():
        raise InvalidRelativeLocationError("relativeLocation is empty")
    normalized = value.replace("\\", "/")
    if normalized.startswith("/") or PureWindowsPath(value).drive:
        raise InvalidRelativeLocationError(f"relativeLocation is absolute: {value}")
    parts = [p for p in normalized.split("/") if p not in ("", ".")]
    if ".." in parts:
        raise InvalidRelativeLocationError(f"relativeLocation escapes the extensions root: {value}")
    if not parts:
        raise InvalidRelativeLocationError(f"relativeLocation points at the extensions root: {value}")
    return value
