"""
External process invocation for the copy and compress steps.

The materializer only depends on the ProcessRunner protocol, so tests can
substitute a runner that simulates success or failure without spawning
anything.
"""

import subprocess
import logging
from typing import Protocol, Sequence


logger = logging.getLogger('pollbackup')

# Exit status reported when the executable cannot be started at all
EXIT_COMMAND_NOT_FOUND = 127
EXIT_COMMAND_NOT_EXECUTABLE = 126


class ProcessRunner(Protocol):
    def run(self, args: Sequence[str]) -> int:
        """Run a command to completion and return its exit status."""
        ...


class SubprocessRunner:
    """Runs commands as child processes and blocks until they exit."""

    def run(self, args: Sequence[str]) -> int:
        """
        Run a command and wait for it to terminate.

        Output streams are inherited, not inspected. The child runs in its
        own session so a Ctrl-C aimed at the agent's process group does not
        kill a copy or compression halfway through. A command that cannot
        be started is reported with the shell's conventional exit statuses
        instead of raising.

        Args:
            args (Sequence[str]): Command and its arguments

        Returns:
            int: The exit status of the command
        """
        logger.debug(f"Running {' '.join(args)}")
        try:
            completed = subprocess.run(list(args), stdin=subprocess.DEVNULL,
                                       start_new_session=True)
        except FileNotFoundError as e:
            logger.error(f"Command not found: {args[0]}: {str(e)}")
            return EXIT_COMMAND_NOT_FOUND
        except PermissionError as e:
            logger.error(f"Command not executable: {args[0]}: {str(e)}")
            return EXIT_COMMAND_NOT_EXECUTABLE
        return completed.returncode
