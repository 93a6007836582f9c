"""editor-sync exception hierarchy.

Everything raised on purpose by this package inherits from EditorSyncError,
so the CLI can report any expected failure without swallowing real bugs.
"""


class EditorSyncError(Exception):
    """Base exception for all editor-sync errors."""


class ConfigError(EditorSyncError):
    """Raised when the user config file exists but cannot be parsed."""


class EditorNotFoundError(EditorSyncError):
    """Raised when an editor id is not present in the profile registry."""

    def __init__(self, editor_id: str):
        super().__init__(f"unknown editor type: {editor_id}")
        self.editor_id = editor_id


class SourceUnavailableError(EditorSyncError):
    """Raised when the source editor's extensions root is missing."""


class ExtensionsRootNotFoundError(EditorSyncError):
    """Raised when an extensions root cannot be listed."""


class IndexFileError(EditorSyncError):
    """Base for problems with an extensions index file."""


class IndexNotFoundError(IndexFileError):
    """Raised when neither extensions.json nor extension.json exists."""


class IndexCorruptError(IndexFileError):
    """Raised when the index file exists but is not a valid index."""


class InvalidRelativeLocationError(EditorSyncError):
    """Raised for relativeLocation values that escape the extensions root.

    Empty values, absolute paths and paths with ``..`` segments are all
    rejected instead of being resolved against the target root.
    """


class SourceNotFoundError(EditorSyncError):
    """Raised when the payload directory to copy does not exist."""


class SyncIOError(EditorSyncError):
    """Raised when a filesystem operation fails during copy or index write."""


class CopyError(SyncIOError):
    """Raised when copying a payload directory stops part way."""


class UnsupportedEntryError(CopyError):
    """Raised for symlinks, devices and other non-regular payload entries."""


class RemoveError(SyncIOError):
    """Raised when an existing payload directory cannot be removed."""


class IndexWriteError(SyncIOError):
    """Raised when the index file cannot be written."""
