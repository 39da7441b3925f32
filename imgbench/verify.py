"""Self-checks that re-decode what each operation produced."""

import dataclasses
import io
import logging
from typing import List, Tuple

from PIL import Image

from imgbench.errors import VerificationError
from imgbench.ops.common import fit_within

log = logging.getLogger(__name__)


@dataclasses.dataclass
class VerifyResult:
    name: str
    ok: bool
    detail: str


def jpeg_dimensions(data: bytes) -> Tuple[int, int]:
    """Fully decodes ``data`` with Pillow and returns its size.

    Raises VerificationError if the bytes are not a well-formed JPEG.
    """
    if not data:
        raise VerificationError("No bytes were written")
    try:
        with Image.open(io.BytesIO(data)) as img:
            if img.format != "JPEG":
                raise VerificationError(f"Expected JPEG output, got {img.format}")
            img.load()
            return img.size
    except OSError as e:
        raise VerificationError(f"Output is not a decodable JPEG: {e}") from e


def verify_all(harness) -> List[VerifyResult]:
    """Runs every enabled operation once and checks its result."""
    settings = harness.settings
    fixture_size = (settings.fixture_width, settings.fixture_height)
    expected_resized = fit_within(
        settings.fixture_width, settings.fixture_height,
        settings.target_width, settings.target_height,
    )

    results = []
    for op in harness.operations():
        try:
            value = harness.invoke(op)
            if op.task == "info":
                if tuple(value) != fixture_size:
                    raise VerificationError(f"Reported {value}, expected {fixture_size}")
                detail = "{}x{}".format(*value)
            else:
                size = jpeg_dimensions(harness.output())
                if size != expected_resized:
                    raise VerificationError(
                        "Output is {}x{}, expected {}x{}".format(*size, *expected_resized)
                    )
                detail = "{}x{} JPEG, {} bytes".format(*size, len(harness.output()))
        except Exception as e:
            log.exception("Verification of %s failed", op.name)
            results.append(VerifyResult(op.name, False, f"{type(e).__name__}: {e}"))
        else:
            results.append(VerifyResult(op.name, True, detail))
    return results
