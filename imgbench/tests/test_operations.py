"""Runs every registered library operation against the packaged fixture."""

import dataclasses

import pytest

from imgbench.errors import DecodeCheckError
from imgbench.harness import BenchmarkHarness
from imgbench.verify import jpeg_dimensions


def test_info_reports_fixture_dimensions(harness, info_op):
    assert harness.run(info_op) == (1374, 1374)


def test_resize_writes_256_square_jpeg(harness, resize_op):
    written = harness.run(resize_op)
    output = harness.output()
    assert written == len(output)
    assert output.startswith(b"\xff\xd8")
    assert jpeg_dimensions(output) == (256, 256)


def test_info_is_repeatable(harness, info_op):
    assert harness.run(info_op) == harness.run(info_op)


def test_resize_is_repeatable(harness, resize_op):
    harness.run(resize_op)
    first = harness.output()
    harness.run(resize_op)
    assert harness.output() == first


def test_source_is_never_mutated(harness, info_op, resize_op):
    before = harness.source.getvalue()
    for _ in range(5):
        harness.run(info_op)
        harness.run(resize_op)
    assert harness.source.getvalue() == before
    assert harness.source.getbuffer().nbytes == len(before)


def test_destination_does_not_grow(harness, resize_op):
    capacity = harness.settings.destination_capacity
    for _ in range(3):
        harness.run(resize_op)
    assert harness.destination.getbuffer().nbytes == capacity


def test_dimension_mismatch_fails_every_library(settings, info_op):
    wrong = BenchmarkHarness(dataclasses.replace(settings, fixture_width=1000, fixture_height=1000))
    wrong.setup()
    try:
        with pytest.raises(DecodeCheckError):
            wrong.run(info_op)
    finally:
        wrong.release()


def test_resize_survives_repeated_invocation(harness, resize_op):
    for _ in range(50):
        harness.run(resize_op)
    assert jpeg_dimensions(harness.output()) == (256, 256)


def test_turbojpeg_setup_logs_library_load(monkeypatch, caplog, settings):
    if "turbojpeg" not in settings.libraries:
        pytest.skip("libjpeg-turbo is not installed")
    from imgbench.ops import turbo

    monkeypatch.setattr(turbo, "jpeg", None)
    with caplog.at_level("INFO", logger="imgbench.ops.turbo"):
        turbo.load_turbojpeg(settings)
    assert turbo.jpeg is not None
    assert "Loaded libjpeg-turbo through PyTurboJPEG" in caplog.text
