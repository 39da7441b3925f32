"""Shared fixtures: an isolated app data dir and a set-up harness."""

import os
import tempfile

# Must happen before imgbench.config creates its INI file
os.environ.setdefault("IMGBENCH_HOME", tempfile.mkdtemp(prefix="imgbench-tests-"))

import pytest
from turbojpeg import TurboJPEG

from imgbench.config import ALL_LIBRARIES, BenchSettings
from imgbench.harness import BenchmarkHarness
from imgbench.registry import registry


def _available_libraries():
    """Drops turbojpeg when the libjpeg-turbo shared library is not installed."""
    libraries = list(ALL_LIBRARIES)
    try:
        TurboJPEG()
    except (RuntimeError, OSError):
        libraries.remove("turbojpeg")
    return tuple(libraries)


AVAILABLE_LIBRARIES = _available_libraries()


def pytest_generate_tests(metafunc):
    for task in ("info", "resize"):
        argname = f"{task}_op"
        if argname in metafunc.fixturenames:
            names = [op.name for op in registry.operations(task=task, libraries=AVAILABLE_LIBRARIES)]
            metafunc.parametrize(argname, names)


@pytest.fixture(scope="session")
def settings():
    return BenchSettings(libraries=AVAILABLE_LIBRARIES)


@pytest.fixture(scope="session")
def harness(settings):
    h = BenchmarkHarness(settings)
    h.setup()
    yield h
    h.release()
