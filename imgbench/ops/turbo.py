"""PyTurboJPEG operations backed by libjpeg-turbo."""

import logging
from typing import Tuple

import numpy as np
from PIL import Image
from turbojpeg import TurboJPEG, TJPF_RGB

from imgbench.ops.common import fit_within
from imgbench.registry import operation, setup_hook

log = logging.getLogger(__name__)

jpeg = None


@setup_hook("turbojpeg")
def load_turbojpeg(settings):
    """Loads the libjpeg-turbo shared library once per process."""
    global jpeg
    if jpeg is None:
        jpeg = TurboJPEG()
        log.info("Loaded libjpeg-turbo through PyTurboJPEG")


def _get_scaling_factor(width: int, height: int, target_width: int, target_height: int) -> Tuple[int, int]:
    """Finds the smallest libjpeg-turbo scaling factor that still covers the target."""
    # PyTurboJPEG provides a set of supported scaling factors
    supported_factors = sorted(jpeg.scaling_factors, key=lambda x: x[0] / x[1])

    for num, den in supported_factors:
        # libjpeg-turbo rounds scaled dimensions up
        if -(-width * num // den) >= target_width and -(-height * num // den) >= target_height:
            return (num, den)

    return (1, 1)


@operation("turbojpeg", "info")
def turbojpeg_info(harness):
    """Parses the JPEG header with libjpeg-turbo."""
    header = jpeg.decode_header(harness.source.read())
    width, height = header[0], header[1]
    harness.check_dimensions("turbojpeg", width, height)
    return width, height


@operation("turbojpeg", "resize")
def turbojpeg_resize(harness):
    """DCT-scaled decode, Lanczos finish to the exact size, libjpeg-turbo encode."""
    settings = harness.settings
    jpeg_bytes = harness.source.read()

    header = jpeg.decode_header(jpeg_bytes)
    width, height = header[0], header[1]
    target_width, target_height = fit_within(width, height, settings.target_width, settings.target_height)
    scaling_factor = _get_scaling_factor(width, height, target_width, target_height)

    decoded = jpeg.decode(
        jpeg_bytes,
        scaling_factor=scaling_factor,
        pixel_format=TJPF_RGB,
        flags=0,
    )

    if decoded.shape[1] != target_width or decoded.shape[0] != target_height:
        with Image.fromarray(decoded) as img, img.resize(
            (target_width, target_height), Image.Resampling.LANCZOS
        ) as resized:
            decoded = np.asarray(resized)

    # libjpeg-turbo writes no metadata beyond the JFIF header
    encoded = jpeg.encode(decoded, quality=settings.quality, pixel_format=TJPF_RGB)
    harness.destination.write(encoded)
    return len(encoded)
