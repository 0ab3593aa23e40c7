import os
import signal
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .materializer import DEFAULT_COMPRESS_COMMAND, DEFAULT_COPY_COMMAND, FileMaterializer
from .runner import ProcessRunner
from .walker import DEFAULT_MAX_DEPTH, TreeWalker, WalkReport


# Get logger instance (configuration is handled in cli.py)
logger = logging.getLogger('pollbackup')

DEFAULT_INTERVAL = 1.0

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@dataclass(frozen=True)
class BackupConfig:
    """Settings for one backup agent, fixed for its lifetime."""

    source_root: str
    destination_root: str
    interval: float = DEFAULT_INTERVAL
    max_depth: int = DEFAULT_MAX_DEPTH
    copy_command: Tuple[str, ...] = DEFAULT_COPY_COMMAND
    compress_command: Tuple[str, ...] = DEFAULT_COMPRESS_COMMAND


def is_inside(path: str, root: str) -> bool:
    """Return True if path is root itself or lies below it."""
    path = os.path.realpath(path)
    root = os.path.realpath(root)
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


class BackupOperations:
    """Runs backup cycles over a source tree, once or on a fixed interval."""

    def __init__(self, config: BackupConfig,
                 runner: Optional[ProcessRunner] = None,
                 stop_event: Optional[threading.Event] = None):
        """
        Initialize BackupOperations.

        Args:
            config (BackupConfig): Source and destination roots and loop settings
            runner (ProcessRunner, optional): Runs the copy and compress commands
            stop_event (threading.Event, optional): Setting it ends the loop after
                the file currently being backed up

        Raises:
            ValueError: If the interval or maximum depth is invalid
        """
        if config.interval < 0:
            raise ValueError(f"Invalid poll interval: {config.interval}")

        self.config = config
        self.stop_event = stop_event if stop_event is not None else threading.Event()
        self.cycles = 0
        self._previous_handlers: Dict[int, object] = {}

        excluded: List[str] = []
        if is_inside(config.destination_root, config.source_root):
            # Never back up the backups
            excluded.append(config.destination_root)

        materializer = FileMaterializer(runner,
                                        copy_command=config.copy_command,
                                        compress_command=config.compress_command)
        self.walker = TreeWalker(materializer,
                                 max_depth=config.max_depth,
                                 stop_event=self.stop_event,
                                 excluded_paths=excluded)
        logger.debug(f"Initialized BackupOperations for '{config.source_root}' -> '{config.destination_root}'")

    def backup_once(self) -> WalkReport:
        """
        Run one full backup cycle.

        Returns:
            WalkReport: Counters for the cycle
        """
        self.cycles += 1
        logger.debug(f"Starting backup cycle {self.cycles}")
        report = self.walker.mirror(self.config.source_root, self.config.destination_root)
        if report.backed_up or not report.ok:
            logger.info(f"Backup cycle {self.cycles}: {report.summary()}")
        else:
            logger.debug(f"Backup cycle {self.cycles}: {report.summary()}")
        return report

    def run(self, max_cycles: Optional[int] = None) -> int:
        """
        Run backup cycles on a fixed interval until stopped.

        A failed or partially failed cycle does not stop the loop; the next
        cycle retries whatever still needs backing up.

        Args:
            max_cycles (int, optional): Stop after this many cycles. Runs until
                stop() is called or a stop signal arrives when omitted.

        Returns:
            int: Number of cycles run
        """
        logger.info(f"Polling '{self.config.source_root}' every {self.config.interval}s, "
                    f"backing up to '{self.config.destination_root}'")
        cycles = 0
        while not self.stop_event.is_set():
            self.backup_once()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            self.stop_event.wait(self.config.interval)
        logger.info(f"Stopped after {cycles} cycles")
        return cycles

    def stop(self) -> None:
        """Request the loop to stop once the file in flight is done."""
        self.stop_event.set()

    def _handle_signal(self, signum, frame) -> None:
        logger.info(f"Received signal {signum}, stopping")
        self.stop()

    def install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to stop(). Only possible from the main thread."""
        for signum in STOP_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)

    def restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def __enter__(self) -> 'BackupOperations':
        """
        Support for context manager protocol. Installs the stop signal handlers
        when entered from the main thread.

        Returns:
            BackupOperations: Self reference for context manager usage
        """
        if threading.current_thread() is threading.main_thread():
            self.install_signal_handlers()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.restore_signal_handlers()


def poll_backup(destination_root: str, source_root: str,
                interval: float = DEFAULT_INTERVAL,
                runner: Optional[ProcessRunner] = None) -> int:
    """
    Back up source_root into destination_root every `interval` seconds until
    interrupted by SIGINT or SIGTERM.

    Returns:
        int: Number of cycles run
    """
    config = BackupConfig(source_root=source_root, destination_root=destination_root,
                          interval=interval)
    with BackupOperations(config, runner=runner) as ops:
        return ops.run()
