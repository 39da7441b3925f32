"""Micro-benchmarks comparing JPEG decode and resize across image libraries."""

__version__ = "0.1.0"
