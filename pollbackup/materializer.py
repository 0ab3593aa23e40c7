import os
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from .changes import needs_backup
from .errors import ExternalProcessFailure
from .runner import ProcessRunner, SubprocessRunner


logger = logging.getLogger('pollbackup')

BACKUP_SUFFIX = ".bak"
COMPRESSED_SUFFIX = ".gz"

DEFAULT_COPY_COMMAND: Tuple[str, ...] = ("cp",)
DEFAULT_COMPRESS_COMMAND: Tuple[str, ...] = ("gzip", "-f")

COPY_STEP = "copy"
COMPRESS_STEP = "compress"


class MaterializeStatus(Enum):
    SKIPPED = "skipped"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class MaterializeResult:
    """Outcome of backing up a single file."""

    status: MaterializeStatus
    source_path: str
    artifact_path: str
    failed_step: Optional[str] = None
    exit_status: Optional[int] = None


def artifact_paths(source_dir: str, destination_dir: str, file_name: str) -> Tuple[str, str, str]:
    """
    Compute the paths involved in backing up one file.

    Returns:
        Tuple[str, str, str]: Source path, uncompressed intermediate path
            and compressed artifact path
    """
    source_path = os.path.join(source_dir, file_name)
    intermediate_path = os.path.join(destination_dir, file_name + BACKUP_SUFFIX)
    return source_path, intermediate_path, intermediate_path + COMPRESSED_SUFFIX


class FileMaterializer:
    """Copies a changed source file into the destination tree and compresses it in place."""

    def __init__(self,
                 runner: Optional[ProcessRunner] = None,
                 copy_command: Sequence[str] = DEFAULT_COPY_COMMAND,
                 compress_command: Sequence[str] = DEFAULT_COMPRESS_COMMAND):
        """
        Initialize the materializer.

        Args:
            runner (ProcessRunner, optional): Runs the external commands.
                Defaults to a SubprocessRunner.
            copy_command (Sequence[str]): Copy command; "--", the source path and
                the intermediate path are appended
            compress_command (Sequence[str]): In-place compression command; "--" and the
                intermediate path are appended. It must replace the intermediate
                with `<intermediate>.gz`.
        """
        self.runner = runner if runner is not None else SubprocessRunner()
        self.copy_command = tuple(copy_command)
        self.compress_command = tuple(compress_command)

    def materialize(self, source_dir: str, destination_dir: str, file_name: str) -> MaterializeResult:
        """
        Back up one regular file if it changed since its artifact was written.

        The copy runs to completion before compression starts. When either
        step fails the uncompressed intermediate is removed, so a failed
        file leaves at most its previous artifact behind and is retried on
        the next cycle.

        Args:
            source_dir (str): Directory containing the source file
            destination_dir (str): Mirrored destination directory
            file_name (str): Name of the file within source_dir

        Returns:
            MaterializeResult: SKIPPED, SUCCESS, or FAILED with the failing step

        Raises:
            OSError: If the source file cannot be stat'ed
        """
        source_path, intermediate_path, artifact_path = artifact_paths(
            source_dir, destination_dir, file_name)

        if not needs_backup(source_path, artifact_path):
            logger.debug(f"Up to date: '{source_path}'")
            return MaterializeResult(MaterializeStatus.SKIPPED, source_path, artifact_path)

        logger.info(f"FILE MODIFIED: {source_path}")

        status = self.runner.run(self.copy_command + ("--", source_path, intermediate_path))
        if status != 0:
            return self._fail(COPY_STEP, status, source_path, intermediate_path, artifact_path)

        status = self.runner.run(self.compress_command + ("--", intermediate_path))
        if status != 0:
            return self._fail(COMPRESS_STEP, status, source_path, intermediate_path, artifact_path)

        logger.info(f"Backed up '{source_path}' to '{artifact_path}'")
        return MaterializeResult(MaterializeStatus.SUCCESS, source_path, artifact_path)

    def _fail(self, step: str, exit_status: int, source_path: str,
              intermediate_path: str, artifact_path: str) -> MaterializeResult:
        logger.error(str(ExternalProcessFailure(step, exit_status, source_path)))
        self._remove_intermediate(intermediate_path)
        return MaterializeResult(MaterializeStatus.FAILED, source_path, artifact_path,
                                 failed_step=step, exit_status=exit_status)

    @staticmethod
    def _remove_intermediate(intermediate_path: str) -> None:
        try:
            os.unlink(intermediate_path)
            logger.info(f"Removed partial copy '{intermediate_path}'")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial copy '{intermediate_path}': {str(e)}")
