"""Per-library benchmark operations.

Importing this package registers every operation with imgbench.registry.
"""

from imgbench.ops import pillow, turbo, opencv, vips  # noqa: F401
