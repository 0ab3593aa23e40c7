import os
import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Optional, Set

from .errors import DepthLimitExceeded, OpenFailed, PathInvalid, UnsupportedEntryKind
from .fs import EntryKind, classify_entry, ensure_directory, is_ignored_name
from .materializer import FileMaterializer, MaterializeStatus


logger = logging.getLogger('pollbackup')

DEFAULT_MAX_DEPTH = 128


@dataclass
class WalkReport:
    """Counters collected over one walk of a source tree."""

    directories: int = 0
    backed_up: int = 0
    skipped: int = 0
    failed: int = 0
    unsupported: int = 0
    open_failures: int = 0
    depth_limited: int = 0
    cancelled: bool = False

    @property
    def error_count(self) -> int:
        return self.failed + self.unsupported + self.open_failures + self.depth_limited

    @property
    def ok(self) -> bool:
        return self.error_count == 0

    def summary(self) -> str:
        return (f"{self.directories} directories, {self.backed_up} backed up, "
                f"{self.skipped} unchanged, {self.failed} failed, "
                f"{self.unsupported} unsupported, {self.open_failures} unreadable"
                + (f", {self.depth_limited} too deep" if self.depth_limited else "")
                + (", cancelled" if self.cancelled else ""))


class TreeWalker:
    """
    Mirrors a source directory tree into a destination tree.

    Regular files are handed to the FileMaterializer; directories are
    created on the destination side before anything below them is
    processed. Every other kind of entry, symbolic links included, is
    reported and skipped, so links are never followed.
    """

    def __init__(self,
                 materializer: FileMaterializer,
                 max_depth: int = DEFAULT_MAX_DEPTH,
                 stop_event: Optional[threading.Event] = None,
                 excluded_paths: Iterable[str] = ()):
        """
        Args:
            materializer (FileMaterializer): Backs up individual files
            max_depth (int): Deepest directory level below the root that is walked
            stop_event (threading.Event, optional): When set, the walk stops
                before the next entry
            excluded_paths (Iterable[str]): Source directories never descended
                into, typically the destination root when it lies inside the source
        """
        if max_depth < 0:
            raise ValueError(f"Invalid maximum depth: {max_depth}")
        self.materializer = materializer
        self.max_depth = max_depth
        self.stop_event = stop_event if stop_event is not None else threading.Event()
        self.excluded_paths: Set[str] = {os.path.realpath(p) for p in excluded_paths}

    def mirror(self, source_dir: str, destination_dir: str) -> WalkReport:
        """
        Walk source_dir recursively and back up every changed regular file.

        Failures are contained to the file or subtree they affect and are
        logged and counted in the returned report, never raised.

        Args:
            source_dir (str): Source directory to walk
            destination_dir (str): Matching destination directory

        Returns:
            WalkReport: Counters for the walk
        """
        report = WalkReport()
        self._mirror(str(source_dir), str(destination_dir), 0, report)
        return report

    def _mirror(self, source_dir: str, destination_dir: str, depth: int, report: WalkReport) -> None:
        if self.stop_event.is_set():
            report.cancelled = True
            return

        if depth > self.max_depth:
            logger.error(str(DepthLimitExceeded(source_dir, self.max_depth)))
            report.depth_limited += 1
            return

        try:
            entries = os.scandir(source_dir)
        except OSError as e:
            logger.error(str(OpenFailed(f"Failed to open '{source_dir}': {str(e)}")))
            report.open_failures += 1
            return

        # The scandir context closes the directory handle on every exit path
        with entries:
            try:
                ensure_directory(destination_dir)
            except PathInvalid as e:
                logger.error(f"Abandoning '{source_dir}': {str(e)}")
                report.open_failures += 1
                return

            report.directories += 1

            for entry in entries:
                if self.stop_event.is_set():
                    logger.info(f"Stop requested, leaving '{source_dir}'")
                    report.cancelled = True
                    return
                if is_ignored_name(entry.name):
                    continue
                self._visit(entry, source_dir, destination_dir, depth, report)

    def _visit(self, entry: os.DirEntry, source_dir: str, destination_dir: str,
               depth: int, report: WalkReport) -> None:
        try:
            kind, kind_name = classify_entry(entry)
        except OSError as e:
            logger.error(f"Could not read metadata of '{entry.path}': {str(e)}")
            report.failed += 1
            return

        if kind is EntryKind.REGULAR_FILE:
            self._backup_file(source_dir, destination_dir, entry.name, report)
        elif kind is EntryKind.DIRECTORY:
            child_source = os.path.join(source_dir, entry.name)
            if os.path.realpath(child_source) in self.excluded_paths:
                logger.debug(f"Not descending into excluded directory '{child_source}'")
                return
            child_destination = os.path.join(destination_dir, entry.name)
            self._mirror(child_source, child_destination, depth + 1, report)
        else:
            logger.error(str(UnsupportedEntryKind(entry.path, kind_name)))
            report.unsupported += 1

    def _backup_file(self, source_dir: str, destination_dir: str, file_name: str,
                     report: WalkReport) -> None:
        try:
            result = self.materializer.materialize(source_dir, destination_dir, file_name)
        except OSError as e:
            logger.error(f"Could not back up '{os.path.join(source_dir, file_name)}': {str(e)}")
            report.failed += 1
            return

        if result.status is MaterializeStatus.SUCCESS:
            report.backed_up += 1
        elif result.status is MaterializeStatus.SKIPPED:
            report.skipped += 1
        else:
            report.failed += 1
