"""Tests for the measurement driver, its statistics and the results table."""

import json
import re
from pathlib import Path

import pytest

from imgbench.config import BenchSettings, DriverSettings
from imgbench.driver import Driver, format_duration, format_size, format_table, write_json
from imgbench.harness import BenchmarkHarness
from imgbench.registry import Registry


class FakeClock:
    """A clock that only moves when an operation says so."""
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_harness(clock):
    reg = Registry()

    @reg.operation("fast", "info")
    def fast_info(harness):
        clock.now += 0.001
        return harness.source.read(2)

    @reg.operation("slow", "info")
    def slow_info(harness):
        clock.now += 0.003
        return harness.source.read(2)

    @reg.operation("broken", "info")
    def broken_info(harness):
        raise ValueError("bad pixels")

    settings = BenchSettings(libraries=("fast", "slow", "broken"), baseline="fast")
    harness = BenchmarkHarness(settings, registry=reg)
    harness.setup()
    yield harness
    harness.release()


def _driver(harness, clock, **kwargs):
    settings = DriverSettings(warmup_count=1, iteration_count=3, invocations_per_iteration=4, **kwargs)
    return Driver(harness, settings, clock=clock)


def test_samples_and_ratios(fake_harness, clock):
    results = {r.name: r for r in _driver(fake_harness, clock).run()}

    fast, slow = results["fast_info"], results["slow_info"]
    assert len(fast.samples) == 3
    assert fast.mean == pytest.approx(0.001)
    assert slow.mean == pytest.approx(0.003)
    assert fast.baseline and not slow.baseline
    assert fast.ratio == 1.0
    assert slow.ratio == pytest.approx(3.0)
    assert slow.ratio_sd == pytest.approx(0.0, abs=1e-6)


def test_failure_is_recorded_and_run_continues(fake_harness, clock):
    results = _driver(fake_harness, clock).run()
    assert [r.name for r in results] == ["fast_info", "slow_info", "broken_info"]

    broken = results[-1]
    assert broken.failed
    assert broken.failure == "ValueError: bad pixels"
    assert broken.samples == []
    assert broken.ratio is None
    assert not results[0].failed


def test_memory_pass(fake_harness, clock):
    result = _driver(fake_harness, clock).measure(fake_harness.registry.get("fast_info"))
    assert result.allocated is not None and result.allocated >= 0
    assert isinstance(result.native, int)

    no_memory = _driver(fake_harness, clock, memory=False).measure(fake_harness.registry.get("fast_info"))
    assert no_memory.allocated is None
    assert no_memory.native is None


def test_error_column_is_a_confidence_interval(fake_harness, clock):
    result = _driver(fake_harness, clock).measure(fake_harness.registry.get("fast_info"))
    result.samples = [1.0, 2.0, 3.0]
    assert result.stddev == pytest.approx(1.0)
    # Student t for 2 degrees of freedom at 99.9% is about 31.6
    assert result.error == pytest.approx(31.6 / 3 ** 0.5, rel=0.01)


def test_format_table(fake_harness, clock):
    results = _driver(fake_harness, clock).run()
    table = format_table(results, hide_columns=("error", "stddev", "ratio_sd"))
    lines = table.splitlines()

    assert lines[0].startswith("| Method")
    assert "Allocated" in lines[0]
    assert "StdDev" not in lines[0]
    assert "fast_info (baseline)" in table
    assert "3.00" in table
    assert re.search(r"\|\s+NA\s+\|", table)
    assert lines[-1] == "broken_info failed: ValueError: bad pixels"

    full = format_table(results)
    assert "StdDev" in full and "RatioSD" in full


def test_write_json(fake_harness, clock, tmp_path: Path):
    results = _driver(fake_harness, clock).run()
    path = tmp_path / "out" / "results.json"
    write_json(results, path)

    payload = json.loads(path.read_text())
    assert set(payload["versions"]) == {"pillow", "turbojpeg", "opencv", "vips"}
    by_name = {r["name"]: r for r in payload["results"]}
    assert by_name["slow_info"]["ratio"] == pytest.approx(3.0)
    assert by_name["broken_info"]["mean"] is None
    assert by_name["broken_info"]["failure"] == "ValueError: bad pixels"


@pytest.mark.parametrize("seconds, expected", [
    (1.2, "1.200 s"),
    (0.0015, "1.500 ms"),
    (2.5e-6, "2.500 us"),
    (5e-10, "0.5 ns"),
    (float("nan"), "NA"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_format_size():
    assert format_size(None) == "-"
    assert format_size(512) == "512 B"
    assert format_size(2048) == "2.0 KB"
    assert format_size(3 * 1024 * 1024) == "3.0 MB"
