"""Exception types raised by the backup engine and the command line interface."""

from typing import Optional


class BackupError(Exception):
    """Base class for all pollbackup errors."""


class ConfigurationError(BackupError):
    """Bad or missing command line arguments."""


class PathInvalid(BackupError):
    """A supplied path does not exist or is not a directory."""


class OpenFailed(BackupError):
    """A source directory could not be opened for reading."""


class UnsupportedEntryKind(BackupError):
    """A directory entry is neither a regular file nor a directory."""

    def __init__(self, path: str, kind_name: str):
        super().__init__(f"unsupported file format: {kind_name} ({path})")
        self.path = path
        self.kind_name = kind_name


class DepthLimitExceeded(BackupError):
    """The walk descended deeper than the configured maximum depth."""

    def __init__(self, path: str, max_depth: int):
        super().__init__(f"maximum depth {max_depth} exceeded at '{path}'")
        self.path = path
        self.max_depth = max_depth


class ExternalProcessFailure(BackupError):
    """The copy or compress step exited with a non-zero status."""

    def __init__(self, step: str, exit_status: int, path: Optional[str] = None):
        super().__init__(f"{step} step failed with exit status {exit_status}"
                         + (f" for '{path}'" if path else ""))
        self.step = step
        self.exit_status = exit_status
        self.path = path
