"""Run the backup agent with `python -m pollbackup`."""

import sys

from .cli import main


def run() -> int:
    try:
        return main()
    except KeyboardInterrupt:
        # Interrupted before the stop signal handlers were installed
        print("pollbackup: interrupted during startup", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(run())
