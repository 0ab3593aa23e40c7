"""
Filesystem helpers shared by the walker and the command line interface.

This module answers three questions about paths: is this a directory,
make sure this directory exists, and what kind of entry is this.
"""

import os
import stat
import logging
from enum import Enum
from typing import FrozenSet, Tuple

from .errors import PathInvalid


logger = logging.getLogger('pollbackup')

IGNORED_NAMES: FrozenSet[str] = frozenset({".", ".."})


class EntryKind(Enum):
    """Kinds of directory entries the walker distinguishes."""

    REGULAR_FILE = "regular file"
    DIRECTORY = "directory"
    UNSUPPORTED = "unsupported"


def is_valid_directory(path) -> bool:
    """
    Check whether a path exists and is a directory.

    Symbolic links are followed, so a link to a directory counts as a
    directory here. Never raises.

    Args:
        path: Path to check (str or os.PathLike)

    Returns:
        bool: True if the path exists and is a directory
    """
    if not path:
        return False
    try:
        return stat.S_ISDIR(os.stat(path).st_mode)
    except (OSError, ValueError):
        return False


def ensure_directory(path) -> bool:
    """
    Create a directory unless it already exists.

    Args:
        path: Directory to create. Its parent must already exist.

    Returns:
        bool: True if the directory was created, False if it already existed

    Raises:
        PathInvalid: If the path exists but is not a directory, or cannot be created
    """
    if is_valid_directory(path):
        return False
    try:
        os.mkdir(path)
    except FileExistsError:
        if is_valid_directory(path):
            return False
        raise PathInvalid(f"'{path}' exists but is not a directory")
    except OSError as e:
        raise PathInvalid(f"Failed to create directory '{path}': {str(e)}") from e
    logger.info(f"Created directory '{path}'")
    return True


def is_ignored_name(name: str) -> bool:
    return name in IGNORED_NAMES


def _kind_name_from_mode(mode: int) -> str:
    if stat.S_ISBLK(mode):
        return "block device"
    if stat.S_ISCHR(mode):
        return "character device"
    if stat.S_ISFIFO(mode):
        return "named pipe (FIFO)"
    if stat.S_ISLNK(mode):
        return "symbolic link"
    if stat.S_ISSOCK(mode):
        return "UNIX domain socket"
    return "unknown"


def classify_entry(entry: os.DirEntry) -> Tuple[EntryKind, str]:
    """
    Classify a directory entry without following symbolic links.

    Args:
        entry (os.DirEntry): Entry yielded by os.scandir

    Returns:
        Tuple[EntryKind, str]: The entry kind and a human readable kind name

    Raises:
        OSError: If the entry's metadata cannot be read
    """
    if entry.is_symlink():
        return EntryKind.UNSUPPORTED, "symbolic link"
    if entry.is_file(follow_symlinks=False):
        return EntryKind.REGULAR_FILE, EntryKind.REGULAR_FILE.value
    if entry.is_dir(follow_symlinks=False):
        return EntryKind.DIRECTORY, EntryKind.DIRECTORY.value
    mode = entry.stat(follow_symlinks=False).st_mode
    return EntryKind.UNSUPPORTED, _kind_name_from_mode(mode)
