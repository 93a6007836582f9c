"""Recursive copy of extension payload directories."""

from __future__ import annotations

import logging
import shutil
import stat
from pathlib import Path

from editor_sync.exceptions import (
    CopyError,
    RemoveError,
    SourceNotFoundError,
    UnsupportedEntryError,
)

logger = logging.getLogger(__name__)


def copy_tree(source_dir: Path, dest_dir: Path) -> int:
    """Copy ``source_dir`` into ``dest_dir``, keeping permission bits.

    Only directories and regular files are copied. A symlink or special file
    anywhere in the tree raises UnsupportedEntryError. The copy stops at the
    first failure and whatever was already written stays in place.

    Returns the number of files copied.
    """
    try:
        st = source_dir.lstat()
    except FileNotFoundError:
        raise SourceNotFoundError(f"source directory not found: {source_dir}") from None
    except OSError as e:
        raise CopyError(f"cannot stat source directory {source_dir}: {e}") from e
    if not stat.S_ISDIR(st.st_mode):
        raise SourceNotFoundError(f"source is not a directory: {source_dir}")

    count = _copy_dir(source_dir, dest_dir, st.st_mode)
    logger.debug(f"Copied {count} file(s) from {source_dir} to {dest_dir}")
    return count


def _copy_dir(src: Path, dst: Path, mode: int) -> int:
    """Recursively copy a directory whose lstat mode is ``mode``."""
    try:
        dst.mkdir(parents=True, exist_ok=True)
        items = sorted(src.iterdir(), key=lambda p: p.name)
    except OSError as e:
        raise CopyError(f"failed to copy directory {src}: {e}") from e

    count = 0
    for item in items:
        item_dst = dst / item.name
        try:
            item_mode = item.lstat().st_mode
        except OSError as e:
            raise CopyError(f"cannot stat {item}: {e}") from e

        if stat.S_ISDIR(item_mode):
            count += _copy_dir(item, item_dst, item_mode)
        elif stat.S_ISREG(item_mode):
            _copy_file(item, item_dst)
            count += 1
        elif stat.S_ISLNK(item_mode):
            raise UnsupportedEntryError(f"symbolic links are not supported: {item}")
        else:
            raise UnsupportedEntryError(f"special files are not supported: {item}")

    # Mode goes on after the contents; the source may be read-only.
    try:
        dst.chmod(stat.S_IMODE(mode))
    except OSError as e:
        raise CopyError(f"failed to set permissions on {dst}: {e}") from e
    return count


def _copy_file(src: Path, dst: Path) -> None:
    try:
        shutil.copyfile(src, dst)
        shutil.copymode(src, dst)
    except OSError as e:
        raise CopyError(f"failed to copy file {src}: {e}") from e


def remove_tree(path: Path) -> bool:
    """Delete a payload directory before it is overwritten.

    A missing path is not an error. Returns True if something was removed.
    """
    try:
        if path.is_symlink() or path.is_file():
            path.unlink()
            return True
        if not path.exists():
            return False
        shutil.rmtree(path)
    except OSError as e:
        raise RemoveError(f"failed to remove {path}: {e}") from e
    return True
