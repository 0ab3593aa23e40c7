import argparse
import sys
import os
import logging
from typing import List, NoReturn, Optional

from .errors import ConfigurationError, PathInvalid
from .fs import is_valid_directory
from .materializer import BACKUP_SUFFIX
from .operations import DEFAULT_INTERVAL, BackupConfig, BackupOperations
from .walker import DEFAULT_MAX_DEPTH

logger = logging.getLogger('pollbackup')

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class BackupArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that shows the help text and exits with status 1 on bad arguments."""

    def error(self, message: str) -> NoReturn:
        print(f"Error: {message}", file=sys.stderr)
        self.print_help()
        sys.exit(1)


def configure_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """
    Configure the package logger.

    Args:
        log_file (str, optional): Append the log to this file instead of stderr
        verbose (bool): Log debug messages too
    """
    level = logging.DEBUG if verbose else logging.INFO
    if log_file:
        logging.basicConfig(level=level, format=LOG_FORMAT, filename=log_file, filemode='a')
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logger.setLevel(level)


def print_error_and_exit(error_message: str, exit_code: int = 1) -> NoReturn:
    """
    Print an error message and exit the program with the specified exit code.

    Args:
        error_message (str): The error message to display
        exit_code (int, optional): The exit code to use. Defaults to 1.
    """
    logger.error(error_message)
    print(f"Error: {error_message}", file=sys.stderr)
    sys.exit(exit_code)


def positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: '{value}'")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than zero: '{value}'")
    return number


def non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: '{value}'")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: '{value}'")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = BackupArgumentParser(
        prog="pollbackup",
        description="Continuously back up a directory tree, copying and "
                    "compressing files that changed since their last backup",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Create the destination directory if it is missing; without "
             "--dst, back up to '<source>.bak'"
    )
    parser.add_argument(
        "-d", "--dst",
        metavar="DIRECTORY",
        help="Destination directory to store backups"
    )
    parser.add_argument(
        "-s", "--src",
        metavar="DIRECTORY",
        help="Source directory to back up (defaults to the current directory)"
    )
    parser.add_argument(
        "--interval",
        type=positive_float,
        default=DEFAULT_INTERVAL,
        help="Seconds to wait between backup cycles"
    )
    parser.add_argument(
        "--max-depth",
        type=non_negative_int,
        default=DEFAULT_MAX_DEPTH,
        help="Deepest directory level below the source that is backed up"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single backup cycle and exit"
    )
    parser.add_argument(
        "--log-file",
        help="Append log messages to this file instead of stderr"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log unchanged files and other debug details"
    )
    return parser


def create_destination(destination: str) -> None:
    """
    Create the destination directory and any missing parents.

    Raises:
        PathInvalid: If the directory cannot be created
    """
    try:
        os.makedirs(destination, exist_ok=True)
    except OSError as e:
        raise PathInvalid(f"Failed to create destination directory '{destination}': {str(e)}") from e


def derive_destination(source: str) -> str:
    """Destination used with --force and no --dst: the source path plus '.bak'."""
    return (source.rstrip(os.sep) or os.sep) + BACKUP_SUFFIX


def resolve_source(args: argparse.Namespace) -> str:
    if args.src is None:
        source = os.getcwd()
        logger.info(f"Source directory not specified, using current directory instead: {source}")
        return source
    if not is_valid_directory(args.src):
        raise PathInvalid(f"Invalid directory \"{args.src}\"")
    return args.src


def resolve_destination(args: argparse.Namespace, source: str) -> str:
    """
    Work out the destination directory, creating it when --force is given.

    Raises:
        ConfigurationError: If no destination is given and --force is not used
        PathInvalid: If the destination is not a directory and cannot be created
    """
    if args.dst is not None:
        if is_valid_directory(args.dst):
            return args.dst
        if not args.force:
            raise PathInvalid(f"Invalid directory \"{args.dst}\"")
        destination = args.dst
    elif args.force:
        destination = derive_destination(source)
    else:
        raise ConfigurationError("Destination directory not specified, "
                                 "create it manually or rerun with --force (see --help)")

    logger.info(f"Creating destination directory (--force used): {destination}")
    create_destination(destination)
    return destination


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the backup agent command line interface.
    Validates the source and destination directories and starts polling.

    Returns:
        int: Exit status. Only returned after a stop signal or with --once.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_file, args.verbose)

    try:
        source = resolve_source(args)
        destination = resolve_destination(args, source)
    except (ConfigurationError, PathInvalid) as e:
        print_error_and_exit(str(e))

    config = BackupConfig(
        source_root=source,
        destination_root=destination,
        interval=args.interval,
        max_depth=args.max_depth,
    )

    with BackupOperations(config) as ops:
        if args.once:
            report = ops.backup_once()
            print(f"Backup of '{source}' to '{destination}': {report.summary()}")
            return 0 if report.ok else 1
        ops.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
