"""Helpers shared by the per-library operations."""

from typing import Tuple


def fit_within(width: int, height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """Scales (width, height) to fit inside the box, preserving aspect ratio."""
    if width * max_height > height * max_width:
        # Wider than the box; width is the constraint
        return max_width, max(1, round(height * max_width / width))
    return max(1, round(width * max_height / height)), max_height
