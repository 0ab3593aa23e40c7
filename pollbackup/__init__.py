"""
Pollbackup - a continuously running incremental backup agent.

This package mirrors a source directory tree into a destination tree,
copying and compressing only the files that changed since their last
backup, and repeats on a fixed interval.
"""

__version__ = "0.1.0"

# Export public API
from .operations import BackupConfig, BackupOperations, poll_backup
from .walker import TreeWalker, WalkReport
from .materializer import FileMaterializer, MaterializeResult, MaterializeStatus
from .changes import needs_backup
from .fs import is_valid_directory

__all__ = [
    "BackupConfig",
    "BackupOperations",
    "poll_backup",
    "TreeWalker",
    "WalkReport",
    "FileMaterializer",
    "MaterializeResult",
    "MaterializeStatus",
    "needs_backup",
    "is_valid_directory",
]
