"""Tests for tagged operation registration."""

import pytest

from imgbench.errors import DuplicateOperationError, UnknownOperationError
from imgbench.registry import Registry, registry

@pytest.fixture
def reg():
    r = Registry()

    @r.operation("alpha", "info", baseline=True)
    def alpha_info(harness):
        """Reads the header.

        More detail that is not part of the description.
        """
        return 1, 1

    @r.operation("alpha", "resize", baseline=True)
    def alpha_resize(harness):
        return 0

    @r.operation("beta", "info")
    def beta_info(harness):
        return 2, 2

    return r

def test_names_are_library_and_task(reg):
    assert [op.name for op in reg.operations()] == ["alpha_info", "alpha_resize", "beta_info"]
    op = reg.get("alpha_info")
    assert op.library == "alpha"
    assert op.task == "info"
    assert op.description == "Reads the header."

def test_duplicate_registration_fails(reg):
    with pytest.raises(DuplicateOperationError):
        @reg.operation("alpha", "info")
        def again(harness):
            pass

def test_unknown_task_is_rejected(reg):
    with pytest.raises(ValueError):
        reg.operation("alpha", "rotate")

def test_unknown_operation(reg):
    with pytest.raises(UnknownOperationError):
        reg.get("gamma_info")
    with pytest.raises(KeyError):
        reg.get("gamma_info")

def test_filters(reg):
    assert [op.name for op in reg.operations(task="info")] == ["alpha_info", "beta_info"]
    assert [op.name for op in reg.operations(pattern="beta_*")] == ["beta_info"]
    assert [op.name for op in reg.operations(libraries=("beta",))] == ["beta_info"]
    assert reg.libraries() == ["alpha", "beta"]

def test_baseline_lookup(reg):
    assert reg.baseline_for("info").name == "alpha_info"
    assert reg.baseline_for("info", "beta").name == "beta_info"
    assert reg.baseline_for("resize", "beta") is None

def test_setup_hooks(reg):
    calls = []

    @reg.setup_hook("alpha")
    def hook(settings):
        calls.append(settings)

    reg.hook_for("alpha")("s")
    assert calls == ["s"]
    assert reg.hook_for("beta") is None

def test_every_library_registers_both_tasks():
    assert len(registry) == 8
    for library in ("pillow", "turbojpeg", "opencv", "vips"):
        assert f"{library}_info" in registry
        assert f"{library}_resize" in registry
    assert registry.baseline_for("info").library == "pillow"
    assert registry.baseline_for("resize").library == "pillow"
