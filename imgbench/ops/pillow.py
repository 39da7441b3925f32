"""Pillow operations. Pillow is the baseline every other library is compared to."""

from PIL import Image

from imgbench.registry import operation


@operation("pillow", "info", baseline=True)
def pillow_info(harness):
    """Opens the JPEG and reads its size from the header."""
    # Restricting formats skips probing every other plugin first
    with Image.open(harness.source, formats=["JPEG"]) as img:
        width, height = img.size
    harness.check_dimensions("pillow", width, height)
    return width, height

@operation("pillow", "resize", baseline=True)
def pillow_resize(harness):
    """Draft-mode thumbnail, re-encoded as JPEG without EXIF or ICC data."""
    settings = harness.settings
    with Image.open(harness.source, formats=["JPEG"]) as img:
        img.thumbnail((settings.target_width, settings.target_height))
        img.save(harness.destination, format="JPEG", quality=settings.quality)
    return harness.destination.tell()
