"""The benchmark harness: fixed input, reusable buffers and a reset-invoke-validate loop."""

import logging
import shutil
import time
from importlib import resources
from pathlib import Path
from typing import List, Optional

import imgbench.ops  # noqa: F401  registers the library operations
from imgbench.config import BenchSettings
from imgbench.errors import (
    DecodeCheckError,
    FixtureNotFoundError,
    HarnessNotReadyError,
    LibrarySetupError,
    UnknownOperationError,
)
from imgbench.io.buffers import NonClosableBuffer
from imgbench.registry import Operation, Registry, registry as default_registry
from imgbench.resources import FIXTURE_NAME

log = logging.getLogger(__name__)


def packaged_fixture() -> Path:
    """Returns the path of the JPEG shipped inside the package."""
    return Path(str(resources.files("imgbench.resources").joinpath(FIXTURE_NAME)))


class BenchmarkHarness:
    """Owns the source and destination buffers shared by every operation.

    The buffers are created once and only ever repositioned, so every
    invocation starts from byte-for-byte identical state and the harness adds
    no allocations of its own to the measurements.
    """

    def __init__(self, settings: Optional[BenchSettings] = None, registry: Optional[Registry] = None):
        self.settings = settings or BenchSettings()
        self.registry = registry or default_registry
        self.source = NonClosableBuffer()
        self.destination = NonClosableBuffer(capacity=self.settings.destination_capacity)
        self.fixture_path: Optional[Path] = None
        self.ready = False

    def setup(self):
        """Loads the fixture into the source buffer and runs library setup hooks.

        Raises SetupError subclasses, which must abort the run.
        """
        if self.ready:
            log.debug("Harness already set up; skipping.")
            return

        t_start = time.perf_counter()
        path = self.settings.fixture_path or packaged_fixture()
        if not path.is_file():
            raise FixtureNotFoundError(f"Resource not found: {path}")

        with path.open("rb") as f:
            shutil.copyfileobj(f, self.source)
        self.source.reset()
        self.fixture_path = path
        log.info("Loaded fixture %s (%d bytes)", path, self.source.getbuffer().nbytes)

        for library in self.settings.libraries:
            hook = self.registry.hook_for(library)
            if hook is None:
                continue
            try:
                hook(self.settings)
            except Exception as e:
                raise LibrarySetupError(f"Setting up {library} failed: {e}") from e
            log.info("Set up %s", library)

        self.ready = True
        log.info("Harness ready in %.3fs", time.perf_counter() - t_start)

    def reset(self):
        """Repositions both buffers to their start."""
        self.source.reset()
        self.destination.reset()

    def run(self, name: str):
        """Resets the buffers and invokes one registered operation."""
        op = self.registry.get(name)
        return self.invoke(op)

    def invoke(self, op: Operation):
        if not self.ready:
            raise HarnessNotReadyError("setup() must run before any operation")
        if op.library not in self.settings.libraries:
            # Its setup hook never ran
            raise UnknownOperationError(f"{op.name} belongs to disabled library {op.library!r}")
        self.reset()
        return op.func(self)

    def operations(self, task: Optional[str] = None, pattern: Optional[str] = None) -> List[Operation]:
        """Returns the registered operations of the enabled libraries."""
        return self.registry.operations(task=task, pattern=pattern, libraries=self.settings.libraries)

    def check_dimensions(self, library: str, width: int, height: int):
        """Raises DecodeCheckError unless the decoded size matches the fixture."""
        log.debug("%s decoded %dx%d", library, width, height)
        expected = (self.settings.fixture_width, self.settings.fixture_height)
        if (width, height) != expected:
            raise DecodeCheckError(
                f"Failed decoding: {library} reported {width}x{height}, "
                f"expected {expected[0]}x{expected[1]}"
            )

    def output(self) -> bytes:
        """Returns what the last operation wrote to the destination buffer."""
        return self.destination.written()

    def release(self):
        self.source.release()
        self.destination.release()
        self.ready = False
