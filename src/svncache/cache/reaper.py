"""Forced recursive deletion of cache directories."""

import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Union

from svncache.cache.errors import CacheDeleteError

logger = logging.getLogger(__name__)

_DIR_WRITABLE = stat.S_IRUSR | stat.S_IWUSR | stat.S_IXUSR


def _make_writable(path: str, extra_bits: int) -> None:
    mode = os.lstat(path).st_mode
    if mode & extra_bits != extra_bits:
        os.chmod(path, stat.S_IMODE(mode) | extra_bits)


def clear_read_only(path: Union[str, Path]) -> None:
    """Give the owner write access to every file and directory below path.

    Symlinks are left untouched so that nothing outside the tree is modified.
    """
    root = str(path)
    _make_writable(root, _DIR_WRITABLE)
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames:
            full = os.path.join(dirpath, name)
            if not os.path.islink(full):
                _make_writable(full, _DIR_WRITABLE)
        for name in filenames:
            full = os.path.join(dirpath, name)
            if not os.path.islink(full):
                _make_writable(full, stat.S_IWUSR)


def reap_directory(path: Union[str, Path]) -> bool:
    """Remove a directory and everything beneath it, read-only files included.

    Args:
        path: Directory to remove

    Returns:
        True if something was removed, False if the directory did not exist

    Raises:
        CacheDeleteError: If the directory could not be fully removed
    """
    path = Path(path)
    if not os.path.lexists(path):
        return False

    try:
        if path.is_symlink() or not path.is_dir():
            path.unlink()
        else:
            clear_read_only(path)
            shutil.rmtree(path)
    except OSError as e:
        raise CacheDeleteError(f"Cannot remove cache directory: {e}", path) from e

    logger.debug(f"Removed {path}")
    return True
