# texcol/image_io.py
from __future__ import annotations

"""
Image I/O helpers: PNG (or anything Pillow reads) <-> PixelBuffer.

Buffers are float RGBA in 0..1 with rows counted from the bottom, so the first
image row Pillow returns (the top) becomes the last buffer row.
"""

import io
from pathlib import Path

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .core_types import PixelBuffer

try:
    from PIL import ImageCms  # ICC conversion if profile present
except ImportError:  # pragma: no cover
    ImageCms = None  # type: ignore[assignment]


def _convert_to_srgb_rgba(im: Image.Image) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    icc_bytes = im.info.get("icc_profile")

    if icc_bytes and ImageCms is not None:
        try:
            src_prof = ImageCms.ImageCmsProfile(io.BytesIO(icc_bytes))
            dst_prof = ImageCms.createProfile("sRGB")
            im2 = ImageCms.profileToProfile(
                im,
                src_prof,
                dst_prof,
                renderingIntent=ImageCms.Intent.PERCEPTUAL,
                outputMode="RGBA",
            )
            if im2 is None:
                return im.convert("RGBA")
            return im2
        except (ImageCms.PyCMSError, OSError, ValueError):
            return im.convert("RGBA")

    return im.convert("RGBA")


def rgba_u8_to_buffer(arr: np.ndarray) -> PixelBuffer:
    """(H, W, 4) uint8 image, top row first -> bottom-origin float PixelBuffer."""
    h, w = int(arr.shape[0]), int(arr.shape[1])
    flipped = np.flipud(arr).reshape(-1, 4)
    return PixelBuffer(flipped.astype(np.float32) / 255.0, w, h)


def buffer_to_rgba_u8(buffer: PixelBuffer) -> np.ndarray:
    """Bottom-origin float PixelBuffer -> (H, W, 4) uint8 image, top row first."""
    px = np.clip(buffer.pixels, 0.0, 1.0).reshape(buffer.height, buffer.width, 4)
    return np.flipud(np.rint(px * 255.0).astype(np.uint8))


def load_pixel_buffer(path: Path) -> PixelBuffer:
    """Read any Pillow-supported image as an sRGB RGBA PixelBuffer."""
    with Image.open(path) as im0:
        im = _convert_to_srgb_rgba(im0)
    return rgba_u8_to_buffer(np.array(im, dtype=np.uint8))


def save_pixel_buffer(path: Path, buffer: PixelBuffer) -> Path:
    """Write a PixelBuffer as RGBA PNG; a non-.png suffix is replaced."""
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    Image.fromarray(buffer_to_rgba_u8(buffer)).save(path)
    return path


def is_image_file(path: Path) -> bool:
    try:
        with Image.open(path) as im:
            im.seek(0)
            im.load()
        return True
    except (UnidentifiedImageError, OSError):
        return False


__all__ = [
    "rgba_u8_to_buffer",
    "buffer_to_rgba_u8",
    "load_pixel_buffer",
    "save_pixel_buffer",
    "is_image_file",
]
