# src/assetflow/transforms/images.py

"""
Image collaborators.

- optimize_images: re-encode PNG/JPEG with Pillow, optimise SVG with scour.
  The smaller of original and re-encoded bytes wins, so running twice never
  grows a file.
- to_webp: raster -> WebP with Pillow.
"""

from __future__ import annotations

import io
import logging
from dataclasses import replace

from PIL import Image
from scour import scour

from ..core.files import SourceFile
from ..core.ports import Transform
from .base import each

logger = logging.getLogger(__name__)

_RASTER_FORMATS = {".png": "PNG", ".jpg": "JPEG", ".jpeg": "JPEG"}


def _scour_options():
    opts = scour.sanitizeOptions()
    opts.quiet = True
    opts.strip_comments = True
    opts.remove_metadata = True
    opts.indent_type = "none"
    opts.newlines = False
    return opts


def _optimize_raster(data: bytes, fmt: str, *, jpeg_quality: int) -> bytes:
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        buf = io.BytesIO()
        if fmt == "JPEG":
            if img.mode not in ("RGB", "L", "CMYK"):
                img = img.convert("RGB")
            img.save(buf, format="JPEG", quality=jpeg_quality, optimize=True, progressive=True)
        else:
            img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


def optimize_images(*, jpeg_quality: int = 85) -> Transform:
    def _optimize(f: SourceFile) -> SourceFile:
        suffix = f.relative.suffix.lower()
        if suffix == ".svg":
            optimized = scour.scourString(f.text(), _scour_options()).encode("utf-8")
        elif suffix in _RASTER_FORMATS:
            optimized = _optimize_raster(f.contents, _RASTER_FORMATS[suffix], jpeg_quality=jpeg_quality)
        else:
            return f

        if len(optimized) >= len(f.contents):
            logger.debug("%s: already optimal (%d bytes)", f.relative, len(f.contents))
            return f
        logger.debug("%s: %d -> %d bytes", f.relative, len(f.contents), len(optimized))
        return replace(f, contents=optimized)

    return each(_optimize, label="imagemin")


def to_webp(*, quality: int = 90) -> Transform:
    def _convert(f: SourceFile) -> SourceFile:
        with Image.open(io.BytesIO(f.contents)) as img:
            img.load()
            if img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGBA" if "A" in img.getbands() or "transparency" in img.info else "RGB")
            buf = io.BytesIO()
            img.save(buf, format="WEBP", quality=quality)
        return replace(f, relative=f.relative.with_suffix(".webp"), contents=buf.getvalue())

    return each(_convert, label="webp")
