"""A small measurement driver: repeated invocation, timing, allocation and a results table.

Mirrors a short benchmark job: a few warmup invocations, a few measured
iterations of several invocations each, and a separate memory pass so that
tracing overhead never leaks into the timings.
"""

import dataclasses
import json
import logging
import math
import time
import tracemalloc
from importlib import metadata
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np
import psutil
from scipy import stats as scipy_stats

from imgbench.config import DriverSettings
from imgbench.registry import TASKS, Operation

log = logging.getLogger(__name__)

# Two-sided confidence level of the Error column
CONFIDENCE_LEVEL = 0.999

LIBRARY_DISTRIBUTIONS = {
    "pillow": "Pillow",
    "turbojpeg": "PyTurboJPEG",
    "opencv": "opencv-python-headless",
    "vips": "pyvips",
}


@dataclasses.dataclass
class OperationResult:
    """Measurements for one operation.

    Attributes:
        samples: Mean seconds per invocation, one value per measured iteration.
        allocated: Peak Python-heap bytes traced during one invocation.
        native: Process RSS growth in bytes across the memory pass.
        ratio: Mean relative to the baseline operation of the same task.
        failure: Error text if the operation raised.
    """
    name: str
    library: str
    task: str
    baseline: bool = False
    samples: List[float] = dataclasses.field(default_factory=list)
    allocated: Optional[int] = None
    native: Optional[int] = None
    ratio: Optional[float] = None
    ratio_sd: Optional[float] = None
    failure: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.failure is not None

    @property
    def mean(self) -> float:
        return float(np.mean(self.samples)) if self.samples else math.nan

    @property
    def stddev(self) -> float:
        if len(self.samples) < 2:
            return 0.0
        return float(np.std(self.samples, ddof=1))

    @property
    def cv(self) -> float:
        mean = self.mean
        return self.stddev / mean if mean else 0.0

    @property
    def error(self) -> float:
        """Half-width of the confidence interval of the mean."""
        n = len(self.samples)
        if n < 2:
            return 0.0
        t = scipy_stats.t.ppf(1 - (1 - CONFIDENCE_LEVEL) / 2, n - 1)
        return float(t * self.stddev / math.sqrt(n))

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "library": self.library,
            "task": self.task,
            "baseline": self.baseline,
            "samples": list(self.samples),
            "mean": None if self.failed else self.mean,
            "error": None if self.failed else self.error,
            "stddev": None if self.failed else self.stddev,
            "ratio": self.ratio,
            "ratio_sd": self.ratio_sd,
            "allocated": self.allocated,
            "native": self.native,
            "failure": self.failure,
        }


class Driver:
    """Runs operations one at a time, synchronously, through a set-up harness."""

    def __init__(
        self,
        harness,
        settings: Optional[DriverSettings] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.harness = harness
        self.settings = settings or DriverSettings()
        self.clock = clock

    def run(self, operations: Optional[Sequence[Operation]] = None) -> List[OperationResult]:
        if operations is None:
            operations = self.harness.operations()
        t_start = time.perf_counter()
        results = [self.measure(op) for op in operations]
        apply_ratios(results, self._baselines(operations))
        failed = sum(1 for r in results if r.failed)
        log.info(
            "Measured %d operations (%d failed) in %.1fs",
            len(results), failed, time.perf_counter() - t_start,
        )
        return results

    def _baselines(self, operations: Sequence[Operation]) -> Dict[str, str]:
        baselines = {}
        library = self.harness.settings.baseline or None
        for task in TASKS:
            op = self.harness.registry.baseline_for(task, library)
            if op is not None and op in operations:
                baselines[task] = op.name
        return baselines

    def measure(self, op: Operation) -> OperationResult:
        """Measures one operation; a raising operation is recorded, not retried."""
        result = OperationResult(name=op.name, library=op.library, task=op.task)
        settings = self.settings
        log.info("Measuring %s", op.name)
        try:
            for _ in range(settings.warmup_count):
                self.harness.invoke(op)

            for _ in range(settings.iteration_count):
                start = self.clock()
                for _ in range(settings.invocations_per_iteration):
                    self.harness.invoke(op)
                elapsed = self.clock() - start
                result.samples.append(elapsed / settings.invocations_per_iteration)

            if settings.memory:
                result.allocated, result.native = self._measure_memory(op)
        except Exception as e:
            log.exception("Operation %s failed", op.name)
            result.failure = f"{type(e).__name__}: {e}"
            result.samples.clear()
        return result

    def _measure_memory(self, op: Operation):
        process = psutil.Process()
        rss_before = process.memory_info().rss
        peaks = []
        tracemalloc.start()
        try:
            for _ in range(max(1, self.settings.invocations_per_iteration)):
                tracemalloc.reset_peak()
                current, _ = tracemalloc.get_traced_memory()
                self.harness.invoke(op)
                _, peak = tracemalloc.get_traced_memory()
                peaks.append(peak - current)
        finally:
            tracemalloc.stop()
        native = process.memory_info().rss - rss_before
        return int(np.median(peaks)), native


def apply_ratios(results: List[OperationResult], baselines: Dict[str, str]):
    """Fills in ratio and ratio_sd against the baseline of each task."""
    by_name = {r.name: r for r in results}
    for r in results:
        base_name = baselines.get(r.task)
        r.baseline = r.name == base_name
        base = by_name.get(base_name)
        if base is None or base.failed or r.failed or not base.mean:
            continue
        r.ratio = r.mean / base.mean
        r.ratio_sd = r.ratio * math.sqrt(r.cv ** 2 + base.cv ** 2)
        if r.baseline:
            r.ratio, r.ratio_sd = 1.0, 0.0


def format_duration(seconds: float) -> str:
    if math.isnan(seconds):
        return "NA"
    for unit, scale in (("s", 1.0), ("ms", 1e-3), ("us", 1e-6)):
        if abs(seconds) >= scale:
            return f"{seconds / scale:,.3f} {unit}"
    return f"{seconds / 1e-9:,.1f} ns"


def format_size(size_bytes: Optional[int]) -> str:
    """Format size in human-readable form."""
    if size_bytes is None:
        return "-"
    size = float(size_bytes)
    for unit in ["B", "KB", "MB"]:
        if abs(size) < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{size:.1f} GB"


COLUMNS = (
    ("method", "Method"),
    ("task", "Task"),
    ("mean", "Mean"),
    ("error", "Error"),
    ("stddev", "StdDev"),
    ("ratio", "Ratio"),
    ("ratio_sd", "RatioSD"),
    ("allocated", "Allocated"),
    ("native", "Native"),
)


def _cells(r: OperationResult) -> Dict[str, str]:
    if r.failed:
        cells = {key: "NA" for key, _ in COLUMNS}
    else:
        cells = {
            "mean": format_duration(r.mean),
            "error": format_duration(r.error),
            "stddev": format_duration(r.stddev),
            "ratio": "?" if r.ratio is None else f"{r.ratio:.2f}",
            "ratio_sd": "?" if r.ratio_sd is None else f"{r.ratio_sd:.2f}",
            "allocated": format_size(r.allocated),
            "native": format_size(r.native),
        }
    cells["method"] = r.name + (" (baseline)" if r.baseline else "")
    cells["task"] = r.task
    return cells


def format_table(results: Sequence[OperationResult], hide_columns: Sequence[str] = ()) -> str:
    """Renders results as a Markdown table, followed by any failures."""
    columns = [(key, title) for key, title in COLUMNS if key not in hide_columns]
    rows = [_cells(r) for r in results]
    widths = {
        key: max([len(title)] + [len(row[key]) for row in rows])
        for key, title in columns
    }

    def line(values):
        return "| " + " | ".join(values) + " |"

    out = [
        line(title.ljust(widths[key]) for key, title in columns),
        line("-" * widths[key] for key, _ in columns),
    ]
    for row in rows:
        out.append(line(
            row[key].ljust(widths[key]) if key in ("method", "task") else row[key].rjust(widths[key])
            for key, _ in columns
        ))

    failures = [r for r in results if r.failed]
    if failures:
        out.append("")
        for r in failures:
            out.append(f"{r.name} failed: {r.failure}")
    return "\n".join(out)


def library_versions() -> Dict[str, str]:
    versions = {}
    for library, dist in LIBRARY_DISTRIBUTIONS.items():
        try:
            versions[library] = metadata.version(dist)
        except metadata.PackageNotFoundError:
            versions[library] = "unknown"
    return versions


def write_json(results: Sequence[OperationResult], path: Path):
    """Writes the results and library versions as JSON."""
    payload = {
        "versions": library_versions(),
        "results": [r.to_dict() for r in results],
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as f:
        json.dump(payload, f, indent=2)
    log.info("Wrote results to %s", path)
