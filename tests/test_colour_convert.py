from __future__ import annotations

import math

import numpy as np
import pytest

from texcol.colour_convert import (
    apply_hsbg,
    blend_colours,
    delta_e76,
    hsv_to_rgb,
    lab_to_rgb,
    linear_to_rgb,
    luminance,
    preserve_luminance,
    rgb_distance,
    rgb_to_hsv,
    rgb_to_lab,
    rgb_to_linear,
)


def test_lab_round_trip(rng):
    rgb = rng.uniform(0.0, 1.0, size=(2000, 3))
    back = lab_to_rgb(rgb_to_lab(rgb))
    np.testing.assert_allclose(back, rgb, atol=1e-3)


def test_linear_round_trip_covers_both_segments():
    vals = np.linspace(0.0, 1.0, 101)
    np.testing.assert_allclose(linear_to_rgb(rgb_to_linear(vals)), vals, atol=1e-5)


def test_lab_reference_points():
    np.testing.assert_allclose(rgb_to_lab([1.0, 1.0, 1.0]), [100.0, 0.0, 0.0], atol=0.05)
    np.testing.assert_allclose(rgb_to_lab([0.0, 0.0, 0.0]), [0.0, 0.0, 0.0], atol=1e-4)
    red = rgb_to_lab([1.0, 0.0, 0.0])
    assert red[0] == pytest.approx(53.24, abs=0.1)
    assert red[1] > 70.0


def test_lab_ignores_alpha():
    rgba = np.array([[0.2, 0.4, 0.6, 0.1]])
    np.testing.assert_allclose(rgb_to_lab(rgba), rgb_to_lab(rgba[:, :3]))


def test_hsv_primaries():
    np.testing.assert_allclose(rgb_to_hsv([1.0, 0.0, 0.0]), [0.0, 1.0, 1.0], atol=1e-6)
    np.testing.assert_allclose(rgb_to_hsv([0.0, 0.0, 1.0]), [240.0, 1.0, 1.0], atol=1e-4)
    np.testing.assert_allclose(rgb_to_hsv([0.5, 0.5, 0.5]), [0.0, 0.0, 0.5], atol=1e-6)


def test_hsv_hue_wraps():
    np.testing.assert_allclose(hsv_to_rgb([480.0, 1.0, 1.0]), [0.0, 1.0, 0.0], atol=1e-6)
    np.testing.assert_allclose(hsv_to_rgb([-120.0, 1.0, 1.0]), [0.0, 0.0, 1.0], atol=1e-6)


def test_hsv_round_trip(rng):
    rgb = rng.uniform(0.0, 1.0, size=(500, 3))
    np.testing.assert_allclose(hsv_to_rgb(rgb_to_hsv(rgb)), rgb, atol=1e-5)


def test_distances():
    assert float(delta_e76([0.0, 0.0, 0.0], [3.0, 4.0, 0.0])) == pytest.approx(5.0)
    assert float(rgb_distance([0, 0, 0, 1], [1, 1, 1, 0])) == pytest.approx(math.sqrt(3.0), rel=1e-6)


def test_luminance_weights():
    assert float(luminance([1.0, 1.0, 1.0])) == pytest.approx(1.0)
    assert float(luminance([0.0, 1.0, 0.0])) == pytest.approx(0.587)


def test_preserve_luminance_keeps_lightness_and_alpha():
    original = np.array([[0.5, 0.5, 0.5, 0.25]])
    candidate = np.array([[0.6, 0.45, 0.45, 1.0]])
    out = preserve_luminance(original, candidate)
    assert out.shape == (1, 4)
    assert out[0, 3] == pytest.approx(0.25)
    assert rgb_to_lab(out)[0, 0] == pytest.approx(rgb_to_lab(original)[0, 0], abs=0.5)
    # chroma comes from the candidate
    assert out[0, 0] > out[0, 1]


def test_blend_clamps_t():
    a = np.array([0.0, 0.0, 0.0, 1.0])
    b = np.array([1.0, 0.5, 0.25, 0.0])
    np.testing.assert_allclose(blend_colours(a, b, 2.0), b)
    np.testing.assert_allclose(blend_colours(a, b, -1.0), a)
    np.testing.assert_allclose(blend_colours(a, b, 0.5), [0.5, 0.25, 0.125, 0.5])


def test_blend_per_row_weights():
    a = np.zeros((2, 4))
    b = np.ones((2, 4))
    out = blend_colours(a, b, np.array([0.0, 1.0]))
    np.testing.assert_allclose(out, [[0, 0, 0, 0], [1, 1, 1, 1]])


def test_hsbg_identity_and_hue():
    rgba = np.array([[1.0, 0.0, 0.0, 0.4], [0.3, 0.6, 0.9, 1.0]])
    np.testing.assert_allclose(apply_hsbg(rgba), rgba, atol=1e-6)
    shifted = apply_hsbg(rgba, hue_shift=120.0)
    np.testing.assert_allclose(shifted[0], [0.0, 1.0, 0.0, 0.4], atol=1e-6)


def test_hsbg_gamma_and_saturation():
    grey = apply_hsbg([0.5, 0.5, 0.5], gamma=2.0)
    np.testing.assert_allclose(grey, [0.25, 0.25, 0.25], atol=1e-6)
    desat = apply_hsbg([1.0, 0.0, 0.0], saturation=0.0)
    np.testing.assert_allclose(desat, [1.0, 1.0, 1.0], atol=1e-6)
