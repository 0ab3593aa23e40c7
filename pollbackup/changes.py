import os
import logging
from typing import Optional


logger = logging.getLogger('pollbackup')

# Modification time assigned to an artifact that does not exist
MISSING_ARTIFACT_MTIME = -1


def modification_time(path) -> int:
    """
    Return the modification time of a path in whole seconds.

    Raises:
        OSError: If the path cannot be stat'ed
    """
    return int(os.stat(path).st_mtime)


def artifact_modification_time(artifact_path) -> int:
    """Modification time of a backup artifact, or MISSING_ARTIFACT_MTIME if it is absent."""
    try:
        return modification_time(artifact_path)
    except FileNotFoundError:
        return MISSING_ARTIFACT_MTIME
    except OSError as e:
        logger.warning(f"Could not stat artifact '{artifact_path}', treating it as missing: {str(e)}")
        return MISSING_ARTIFACT_MTIME


def needs_backup(source_file, artifact_path, source_mtime: Optional[int] = None) -> bool:
    """
    Decide whether a source file is newer than its compressed backup artifact.

    Timestamps are compared in whole seconds and the comparison is strict:
    a source rewritten within the same second as its last backup is
    considered already backed up.

    Args:
        source_file: Path to the source file
        artifact_path: Path to the expected compressed artifact
        source_mtime (int, optional): Pre-computed source modification time

    Returns:
        bool: True if the artifact is missing or older than the source

    Raises:
        OSError: If the source file cannot be stat'ed
    """
    if source_mtime is None:
        source_mtime = modification_time(source_file)
    return artifact_modification_time(artifact_path) < source_mtime
