from __future__ import annotations

import numpy as np
from PIL import Image

from texcol.core_types import PixelBuffer
from texcol.image_io import (
    buffer_to_rgba_u8,
    is_image_file,
    load_pixel_buffer,
    rgba_u8_to_buffer,
    save_pixel_buffer,
)


def _u8_exact_buffer(width=3, height=2) -> PixelBuffer:
    vals = (np.arange(width * height * 4, dtype=np.float32) * 9 % 256) / 255.0
    return PixelBuffer(vals.reshape(-1, 4), width, height)


def test_save_and_load_round_trip(tmp_path):
    buf = _u8_exact_buffer()
    path = save_pixel_buffer(tmp_path / "tex.png", buf)
    back = load_pixel_buffer(path)
    assert (back.width, back.height) == (3, 2)
    np.testing.assert_allclose(back.pixels, buf.pixels, atol=0.5 / 255.0)


def test_first_buffer_row_is_bottom_of_image(tmp_path):
    buf = _u8_exact_buffer()
    path = save_pixel_buffer(tmp_path / "tex.png", buf)
    with Image.open(path) as im:
        arr = np.array(im.convert("RGBA"))
    np.testing.assert_array_equal(arr[-1, 0], np.rint(buf.pixels[0] * 255.0).astype(np.uint8))


def test_non_png_suffix_is_replaced(tmp_path):
    path = save_pixel_buffer(tmp_path / "tex.jpg", _u8_exact_buffer())
    assert path.suffix == ".png" and path.exists()


def test_array_helpers_invert_each_other():
    arr = np.arange(2 * 5 * 4, dtype=np.uint8).reshape(2, 5, 4)
    np.testing.assert_array_equal(buffer_to_rgba_u8(rgba_u8_to_buffer(arr)), arr)


def test_is_image_file(tmp_path):
    png = save_pixel_buffer(tmp_path / "a.png", _u8_exact_buffer())
    text = tmp_path / "b.png"
    text.write_text("not an image")
    assert is_image_file(png)
    assert not is_image_file(text)
