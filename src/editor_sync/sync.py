"""Core sync engine: copy extension payloads between editors and merge indexes.

One source index is read once and reused for every target. Targets are
processed one after another, in request order, and a failure in one target
never stops the next. Nothing is rolled back: if the index write fails after
payloads were copied, the copied directories stay and the error is reported.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from editor_sync.copier import copy_tree, remove_tree
from editor_sync.exceptions import (
    EditorNotFoundError,
    EditorSyncError,
    IndexCorruptError,
    IndexNotFoundError,
    SourceUnavailableError,
)
from editor_sync.index import (
    ExtensionIdentifier,
    ExtensionIndexEntry,
    ExtensionLocation,
    find_entry,
    location_path,
    merge_entries,
    read_index,
    validate_relative_location,
    write_index,
)
from editor_sync.profiles import EditorProfile, ProfileRegistry, build_registry
from editor_sync.status import EditorStatus, probe

logger = logging.getLogger(__name__)


@dataclass
class SyncRequest:
    source_editor: str
    target_editors: list[str]
    extension_ids: list[str]
    overwrite_conflicts: bool = False


@dataclass
class SyncResult:
    """Outcome for one target editor."""

    target_editor: str
    success: bool = False
    copied_count: int = 0
    skipped_count: int = 0
    overwritten_count: int = 0
    index_updated: bool = False
    conflicts: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "targetEditor": self.target_editor,
            "success": self.success,
            "copiedCount": self.copied_count,
            "skippedCount": self.skipped_count,
            "overwrittenCount": self.overwritten_count,
            "indexUpdated": self.index_updated,
            "conflicts": list(self.conflicts),
            "errors": list(self.errors),
        }


@dataclass
class SyncReport:
    source_editor: str
    results: list[SyncResult] = field(default_factory=list)
    overwrite_conflicts: bool = False

    @property
    def total_copied(self) -> int:
        return sum(r.copied_count for r in self.results)

    @property
    def total_skipped(self) -> int:
        return sum(r.skipped_count for r in self.results)

    @property
    def total_overwritten(self) -> int:
        return sum(r.overwritten_count for r in self.results)

    @property
    def total_errors(self) -> int:
        return sum(len(r.errors) for r in self.results)

    @property
    def total_conflicts(self) -> int:
        return sum(len(r.conflicts) for r in self.results)

    @property
    def has_unresolved_conflicts(self) -> bool:
        return not self.overwrite_conflicts and self.total_conflicts > 0

    @property
    def success(self) -> bool:
        return all(r.success for r in self.results)

    def to_dict(self) -> dict:
        return {
            "sourceEditor": self.source_editor,
            "results": [r.to_dict() for r in self.results],
            "totalCopied": self.total_copied,
            "totalSkipped": self.total_skipped,
            "totalOverwritten": self.total_overwritten,
            "totalErrors": self.total_errors,
        }


@dataclass
class SyncPreview:
    """What a sync would do to one target, without touching it."""

    target_editor: str
    new_count: int = 0
    conflicts: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def overwrite_count(self) -> int:
        return len(self.conflicts)

    def to_dict(self) -> dict:
        d = {
            "target": self.target_editor,
            "newCount": self.new_count,
            "conflicts": list(self.conflicts),
            "overwriteCount": self.overwrite_count,
        }
        if self.error:
            d["error"] = self.error
        return d


def _dedupe_ids(extension_ids: list[str]) -> list[str]:
    """Drop case-insensitive repeats, keeping the first spelling."""
    seen = set()
    out = []
    for ext_id in extension_ids:
        key = ext_id.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(ext_id)
    return out


class SyncEngine:
    """Copies extensions from one editor into others.

    The engine keeps no state between calls. Two concurrent syncs into the
    same target editor are not safe; callers must serialize them.
    """

    def __init__(
        self,
        registry: ProfileRegistry,
        prober: Callable[[EditorProfile], EditorStatus] = probe,
    ):
        self.registry = registry
        self.prober = prober

    def load_source_index(self, source_editor: str) -> tuple[EditorProfile, list[ExtensionIndexEntry]]:
        """Resolve and check the source editor, then read its index once."""
        profile = self.registry.get_profile(source_editor)
        status = self.prober(profile)
        if not status.available_overall:
            raise SourceUnavailableError(
                f"source editor not available: {status.unavailable_reason}"
            )
        return profile, read_index(profile.extensions_root, profile.index_file_name)

    def resolve_extension_ids(
        self,
        source_editor: str,
        extension_ids: list[str] | None = None,
        all_extensions: bool = False,
    ) -> list[str]:
        """Expand ``all_extensions`` to every id in the source index."""
        if not all_extensions:
            return list(extension_ids or [])
        profile = self.registry.get_profile(source_editor)
        return [e.id for e in read_index(profile.extensions_root, profile.index_file_name)]

    def sync(self, request: SyncRequest) -> SyncReport:
        source_profile, source_index = self.load_source_index(request.source_editor)
        logger.debug(
            f"Source {source_profile.id} has {len(source_index)} indexed extension(s)"
        )

        report = SyncReport(
            source_editor=request.source_editor,
            overwrite_conflicts=request.overwrite_conflicts,
        )
        for target_id in request.target_editors:
            result = self._sync_target(
                source_profile,
                source_index,
                target_id,
                request.extension_ids,
                request.overwrite_conflicts,
            )
            report.results.append(result)
        return report

    def _sync_target(
        self,
        source_profile: EditorProfile,
        source_index: list[ExtensionIndexEntry],
        target_id: str,
        extension_ids: list[str],
        overwrite: bool,
    ) -> SyncResult:
        result = SyncResult(target_editor=target_id)

        try:
            target_profile = self.registry.get_profile(target_id)
        except EditorNotFoundError as e:
            result.errors.append(f"Invalid target editor: {e}")
            return result

        target_root = target_profile.extensions_root
        if target_root.resolve() == source_profile.extensions_root.resolve():
            result.errors.append(f"Target {target_id} shares the source extensions directory")
            return result

        try:
            target_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            result.errors.append(f"Failed to create target directory: {e}")
            return result

        try:
            target_index = read_index(target_root, target_profile.index_file_name)
        except IndexNotFoundError:
            target_index = []
        except IndexCorruptError as e:
            result.errors.append(f"Cannot merge into target index: {e}")
            return result

        existing = {e.key: e for e in target_index}
        queued: list[ExtensionIndexEntry] = []

        for ext_id in _dedupe_ids(extension_ids):
            entry = self._sync_one(
                source_profile, source_index, target_profile, existing, ext_id, overwrite, result
            )
            if entry is not None:
                queued.append(entry)

        if queued:
            try:
                write_index(
                    target_root,
                    merge_entries(target_index, queued),
                    target_profile.index_file_name,
                )
            except EditorSyncError as e:
                logger.warning(f"{target_id}: {e}")
                result.errors.append(f"Failed to update index: {e}")
            else:
                result.index_updated = True

        result.success = not result.errors
        logger.info(
            f"Synced {source_profile.id} -> {target_id}: copied {result.copied_count}, "
            f"skipped {result.skipped_count}, overwritten {result.overwritten_count}, "
            f"errors {len(result.errors)}"
        )
        return result

    def _sync_one(
        self,
        source_profile: EditorProfile,
        source_index: list[ExtensionIndexEntry],
        target_profile: EditorProfile,
        existing: dict[str, ExtensionIndexEntry],
        ext_id: str,
        overwrite: bool,
        result: SyncResult,
    ) -> ExtensionIndexEntry | None:
        """Copy one extension. Returns the new index entry, or None on skip/failure."""
        source_entry = find_entry(source_index, ext_id)
        if source_entry is None:
            result.errors.append(f"Extension {ext_id} not found in source index")
            return None

        try:
            relative = validate_relative_location(source_entry.relative_location)
        except EditorSyncError as e:
            result.errors.append(f"Invalid location for extension {ext_id}: {e}")
            return None

        target_root = target_profile.extensions_root
        existing_entry = existing.get(ext_id.lower())
        is_overwrite = False
        if existing_entry is not None:
            result.conflicts.append(ext_id)
            if not overwrite:
                logger.debug(f"{target_profile.id}: skipping existing {ext_id}")
                result.skipped_count += 1
                return None
            try:
                # A dangling entry has no payload to remove.
                if existing_entry.relative_location:
                    old_relative = validate_relative_location(existing_entry.relative_location)
                    remove_tree(target_root / old_relative)
            except EditorSyncError as e:
                logger.warning(f"{target_profile.id}: {e}")
                result.errors.append(f"Failed to remove existing extension {ext_id}: {e}")
                return None
            is_overwrite = True

        source_dir = source_profile.extensions_root / relative
        target_dir = target_root / relative
        try:
            copy_tree(source_dir, target_dir)
        except EditorSyncError as e:
            logger.warning(f"{target_profile.id}: {e}")
            result.errors.append(f"Failed to copy extension {ext_id}: {e}")
            return None

        result.copied_count += 1
        if is_overwrite:
            result.overwritten_count += 1
        logger.debug(f"{target_profile.id}: copied {source_entry.id} to {target_dir}")

        return ExtensionIndexEntry(
            identifier=ExtensionIdentifier(
                id=source_entry.identifier.id,
                extra=copy.deepcopy(source_entry.identifier.extra),
            ),
            version=source_entry.version,
            relative_location=source_entry.relative_location,
            location=ExtensionLocation(path=location_path(target_dir.absolute())),
            metadata=copy.deepcopy(source_entry.metadata),
            extra=copy.deepcopy(source_entry.extra),
        )

    def detect_conflicts(
        self,
        source_editor: str,
        target_editor: str,
        extension_ids: list[str],
    ) -> list[str]:
        """Requested ids already present in the target index, in request order.

        A missing or unreadable target index means no conflicts. An unknown
        target editor raises EditorNotFoundError.
        """
        target_profile = self.registry.get_profile(target_editor)
        try:
            target_index = read_index(target_profile.extensions_root, target_profile.index_file_name)
        except (IndexNotFoundError, IndexCorruptError) as e:
            logger.debug(f"No conflicts for {target_editor}: {e}")
            return []

        keys = {e.key for e in target_index}
        return [ext_id for ext_id in extension_ids if ext_id.lower() in keys]

    def preview(self, request: SyncRequest) -> list[SyncPreview]:
        """Per-target counts of new and conflicting extensions."""
        previews = []
        requested = _dedupe_ids(request.extension_ids)
        for target_id in request.target_editors:
            try:
                conflicts = self.detect_conflicts(request.source_editor, target_id, requested)
            except EditorNotFoundError as e:
                previews.append(SyncPreview(target_editor=target_id, error=str(e)))
                continue
            previews.append(
                SyncPreview(
                    target_editor=target_id,
                    new_count=len(requested) - len(conflicts),
                    conflicts=conflicts,
                )
            )
        return previews


def sync_extensions(request: SyncRequest, registry: ProfileRegistry | None = None) -> SyncReport:
    """Run ``request`` against ``registry`` (default: built-in profiles)."""
    return SyncEngine(registry or build_registry()).sync(request)


def detect_conflicts(
    source_editor: str,
    target_editor: str,
    extension_ids: list[str],
    registry: ProfileRegistry | None = None,
) -> list[str]:
    return SyncEngine(registry or build_registry()).detect_conflicts(
        source_editor, target_editor, extension_ids
    )
