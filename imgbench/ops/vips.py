"""pyvips operations, streaming through custom libvips sources and targets."""

import logging

import pyvips

from imgbench.registry import operation, setup_hook

log = logging.getLogger(__name__)


@setup_hook("vips")
def configure_vips(settings):
    """Sizes the libvips operation cache; 0 measures uncached per-call cost."""
    pyvips.cache_set_max(settings.vips_cache_max)
    log.info("libvips %d.%d operation cache max set to %d",
             pyvips.version(0), pyvips.version(1), settings.vips_cache_max)


def _source(buffer) -> pyvips.SourceCustom:
    source = pyvips.SourceCustom()
    source.on_read(buffer.read)
    source.on_seek(buffer.seek)
    return source


def _target(buffer) -> pyvips.TargetCustom:
    target = pyvips.TargetCustom()
    target.on_write(buffer.write)
    return target


@operation("vips", "info")
def vips_info(harness):
    """Opens the JPEG for sequential access; only the header is read."""
    # libvips calls back into the source; it must outlive every use of the image
    source = _source(harness.source)
    image = pyvips.Image.new_from_source(source, "", access="sequential")
    harness.check_dimensions("vips", image.width, image.height)
    return image.width, image.height


@operation("vips", "resize")
def vips_resize(harness):
    """thumbnail_source with shrink-on-load, saved as stripped JPEG."""
    settings = harness.settings
    source = _source(harness.source)
    target = _target(harness.destination)
    # Pixels are only pulled from the source while writing to the target
    image = pyvips.Image.thumbnail_source(source, settings.target_width, height=settings.target_height)
    image.write_to_target(target, ".jpg", Q=settings.quality, strip=True)
    return harness.destination.tell()
