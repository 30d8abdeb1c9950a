from __future__ import annotations

import dataclasses

import numpy as np
import pytest

from texcol.core_types import AdjustmentMode, ErrorKind, PixelBuffer
from texcol.high_precision import (
    HighPrecisionConfig,
    extract_target_colour,
    high_precision_preview,
    process_with_high_precision,
    validate_config,
)
from texcol.uv_mask import MeshUVData, analyze_mesh_usage

W = H = 8
RED = (1.0, 0.0, 0.0, 1.0)
BLUE = (0.0, 0.0, 1.0, 1.0)


def _columns() -> np.ndarray:
    return np.arange(W * H) % W


@pytest.fixture
def reference() -> PixelBuffer:
    """Left half red, right half blue."""
    px = np.tile(np.float32(BLUE), (W * H, 1))
    px[_columns() < W // 2] = RED
    return PixelBuffer(px, W, H)


@pytest.fixture
def mesh() -> MeshUVData:
    """Quad over the left half of UV space."""
    uvs = np.array([[0.0, 0.0], [0.5, 0.0], [0.5, 1.0], [0.0, 1.0]])
    return MeshUVData(uv_sets=[uvs], submeshes=[np.array([0, 1, 2, 0, 2, 3])], materials=["body"])


@pytest.fixture
def target(random_buffer) -> PixelBuffer:
    return random_buffer(W, H, 0.3, 0.7)


def _run(target, reference, mesh, config=None, intensity=1.0):
    return process_with_high_precision(
        target, reference, mesh, config or HighPrecisionConfig(), intensity, False, AdjustmentMode.COLOR_TRANSFER
    )


def test_unused_regions_keep_original_pixels(target, reference, mesh):
    result = _run(target, reference, mesh)
    assert result.ok
    assert result.mask.usage_percentage == pytest.approx(50.0)

    used = result.mask.used
    np.testing.assert_array_equal(used, _columns() < W // 2)
    np.testing.assert_array_equal(result.buffer.pixels[~used], target.pixels[~used])
    assert not np.allclose(result.buffer.pixels[used], target.pixels[used])


def test_reference_statistics_come_from_used_area(target, reference, mesh):
    # every synthetic texel is red, so colour transfer collapses onto red
    result = _run(target, reference, mesh)
    used = result.mask.used
    np.testing.assert_allclose(result.buffer.pixels[used], np.tile(RED, (int(used.sum()), 1)), atol=1e-6)


def test_without_composite_every_pixel_is_adjusted(target, reference, mesh):
    config = HighPrecisionConfig(composite_unused=False)
    result = _run(target, reference, mesh, config)
    np.testing.assert_allclose(result.buffer.pixels, np.tile(RED, (W * H, 1)), atol=1e-6)


def test_different_sized_target_is_not_composited(random_buffer, reference, mesh):
    small = random_buffer(4, 3, 0.3, 0.7)
    result = _run(small, reference, mesh)
    assert result.ok
    assert (result.buffer.width, result.buffer.height) == (4, 3)
    np.testing.assert_allclose(result.buffer.pixels, np.tile(RED, (12, 1)), atol=1e-6)


def test_mask_texture_matches_mesh_path(target, reference, mesh):
    mask_px = np.zeros((W * H, 4), np.float32)
    mask_px[:, 3] = 1.0
    mask_px[_columns() < W // 2, :3] = 1.0
    config = HighPrecisionConfig(mask_buffer=PixelBuffer(mask_px, W, H))

    via_mask = _run(target, reference, None, config)
    via_mesh = _run(target, reference, mesh)
    assert via_mask.ok
    np.testing.assert_array_equal(via_mask.mask.used, via_mesh.mask.used)
    np.testing.assert_allclose(via_mask.buffer.pixels, via_mesh.buffer.pixels, atol=1e-6)


def test_error_kinds(target, reference, mesh):
    assert _run(None, reference, mesh).error is ErrorKind.INVALID_INPUT
    assert _run(target, None, mesh).error is ErrorKind.INVALID_INPUT
    assert _run(target, reference, None).error is ErrorKind.INVALID_INPUT

    no_uvs = dataclasses.replace(mesh, uv_sets=[])
    assert _run(target, reference, no_uvs).error is ErrorKind.UNREADABLE_SOURCE

    zero = HighPrecisionConfig(dominant_colour_count=0)
    assert _run(target, reference, mesh, zero).error is ErrorKind.INVALID_INPUT

    wrong_size = HighPrecisionConfig(mask_buffer=PixelBuffer.filled((1, 1, 1, 1), 3, 3))
    assert _run(target, reference, None, wrong_size).error is ErrorKind.UNREADABLE_SOURCE

    broken = HighPrecisionConfig(mask_buffer=PixelBuffer(np.zeros((2, 4), np.float32), 3, 3))
    assert validate_config(broken, reference, None) is ErrorKind.UNREADABLE_SOURCE


def test_transparent_reference_has_no_usable_area(target, reference, mesh):
    clear = reference.pixels.copy()
    clear[:, 3] = 0.0
    result = _run(target, reference.with_pixels(clear), mesh)
    assert result.error is ErrorKind.NO_USABLE_REFERENCE_AREA
    assert result.mask is not None


def test_preview_dims_unused_texels(reference, mesh):
    result = high_precision_preview(reference, mesh, HighPrecisionConfig())
    assert result.ok
    used = result.mask.used
    np.testing.assert_array_equal(result.buffer.pixels[used], reference.pixels[used])
    assert not np.allclose(result.buffer.pixels[~used], reference.pixels[~used])


def test_preview_without_reference_is_invalid_input(mesh):
    assert high_precision_preview(None, mesh, HighPrecisionConfig()).error is ErrorKind.INVALID_INPUT


def test_extract_target_colour(reference, mesh):
    mask = analyze_mesh_usage(mesh, W, H)
    assert extract_target_colour(reference, mask, 0.1, 0.5) == pytest.approx(RED)
    # unused texel (blue) falls back to the dominant used colour
    assert extract_target_colour(reference, mask, 0.9, 0.5) == pytest.approx(RED)
    assert extract_target_colour(reference, None, 0.1, 0.5) == (1.0, 1.0, 1.0, 1.0)
