"""OpenCV operations (cv2.imdecode / cv2.imencode)."""

import cv2
import numpy as np

from imgbench.errors import DecodeCheckError, EncodeError
from imgbench.ops.common import fit_within
from imgbench.registry import operation


def _decode(harness) -> np.ndarray:
    data = np.frombuffer(harness.source.read(), dtype=np.uint8)
    img = cv2.imdecode(data, cv2.IMREAD_COLOR)
    # imdecode signals failure by returning None instead of raising
    if img is None:
        raise DecodeCheckError("Failed decoding: cv2.imdecode returned no image")
    return img

@operation("opencv", "info")
def opencv_info(harness):
    """Fully decodes the JPEG; OpenCV has no header-only reader."""
    img = _decode(harness)
    height, width = img.shape[:2]
    harness.check_dimensions("opencv", width, height)
    return width, height

@operation("opencv", "resize")
def opencv_resize(harness):
    """Area-interpolated resize, re-encoded with cv2.imencode."""
    settings = harness.settings
    img = _decode(harness)
    height, width = img.shape[:2]
    size = fit_within(width, height, settings.target_width, settings.target_height)

    resized = cv2.resize(img, size, interpolation=cv2.INTER_AREA)
    ok, encoded = cv2.imencode(".jpg", resized, [cv2.IMWRITE_JPEG_QUALITY, settings.quality])
    if not ok:
        raise EncodeError("cv2.imencode failed to produce a JPEG")
    return harness.destination.write(encoded)
