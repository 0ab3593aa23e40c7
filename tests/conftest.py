import gzip
import os
import shutil
import tempfile
import threading
import time
from pathlib import Path

import pytest

from pollbackup.materializer import FileMaterializer
from pollbackup.operations import BackupConfig, BackupOperations


# ---- Test doubles ----

class FakeRunner:
    """
    ProcessRunner that performs the copy and compress steps in-process.

    Commands starting with "cp" copy their two path arguments, commands
    starting with "gzip" compress their last argument in place. Either step
    can be made to fail with a given exit status.
    """

    def __init__(self, fail_step=None, exit_status=1, on_run=None):
        self.fail_step = fail_step
        self.exit_status = exit_status
        self.on_run = on_run
        self.calls = []

    def run(self, args):
        args = tuple(args)
        self.calls.append(args)
        step = "copy" if args[0] == "cp" else "compress"
        if self.on_run is not None:
            self.on_run(step, args)

        if step == "copy":
            if self.fail_step == "copy":
                # A failing cp may leave a truncated file behind
                Path(args[-1]).write_bytes(b"")
                return self.exit_status
            shutil.copyfile(args[-2], args[-1])
            return 0

        if self.fail_step == "compress":
            return self.exit_status
        path = args[-1]
        with open(path, "rb") as f_in, gzip.open(path + ".gz", "wb") as f_out:
            f_out.write(f_in.read())
        os.unlink(path)
        return 0

    @property
    def copied_sources(self):
        return [call[-2] for call in self.calls if call[0] == "cp"]

    def steps(self):
        return ["copy" if call[0] == "cp" else "compress" for call in self.calls]


# ---- Helper functions ----

def set_mtime(path, seconds):
    """Set both access and modification time of a path."""
    os.utime(path, (seconds, seconds))


def read_artifact(path):
    with gzip.open(path, "rb") as f:
        return f.read()


def create_test_tree(directory, mtime=None):
    """
    Create `a.txt` and `sub/b.txt` below directory.

    Args:
        directory (Path): Root of the tree
        mtime (float, optional): Modification time for both files
    """
    (directory / "a.txt").write_text("hello")
    (directory / "sub").mkdir()
    (directory / "sub" / "b.txt").write_text("world")
    if mtime is not None:
        set_mtime(directory / "a.txt", mtime)
        set_mtime(directory / "sub" / "b.txt", mtime)


# ---- Fixtures ----

@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


# ---- Base test class for inheritance-based testing ----

class TestBase:
    """Base class for backup tests providing a source/destination pair and cleanup."""

    def setUp(self):
        """
        Set up the test environment.

        This method:
        1. Creates a temporary directory
        2. Creates a source tree with `a.txt` and `sub/b.txt`, both dated t0
        3. Creates an empty destination directory
        4. Creates an in-process runner for the copy and compress steps
        """
        self.temp_dir = tempfile.TemporaryDirectory()
        self.working_dir = Path(self.temp_dir.name)

        self.source_dir = self.working_dir / "source"
        self.destination_dir = self.working_dir / "destination"
        self.source_dir.mkdir()
        self.destination_dir.mkdir()

        self.t0 = int(time.time()) - 100
        create_test_tree(self.source_dir, mtime=self.t0)

        self.runner = FakeRunner()
        self.stop_event = threading.Event()

    def tearDown(self):
        try:
            self.temp_dir.cleanup()
        except (PermissionError, OSError) as e:
            print(f"Warning: Could not clean up temporary directory: {e}")

    @pytest.fixture(autouse=True)
    def _setup_teardown_fixture(self):
        """
        Pytest fixture to automatically call setUp and tearDown.

        This fixture is automatically used by all test methods in classes
        that inherit from TestBase.
        """
        self.setUp()
        yield
        self.tearDown()

    def make_materializer(self, runner=None):
        return FileMaterializer(runner if runner is not None else self.runner)

    def make_operations(self, runner=None, **config):
        """Create BackupOperations over the test source and destination directories."""
        settings = dict(source_root=str(self.source_dir),
                        destination_root=str(self.destination_dir),
                        interval=0.01)
        settings.update(config)
        return BackupOperations(BackupConfig(**settings),
                                runner=runner if runner is not None else self.runner,
                                stop_event=self.stop_event)

    def artifact(self, relative_path):
        return self.destination_dir / (relative_path + ".bak.gz")
