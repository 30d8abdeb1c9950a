# texcol/colour_convert.py
from __future__ import annotations

"""
Colour conversions and metrics (sRGB, D65).

Exports:
  rgb_to_linear(srgb) / linear_to_rgb(linear)
  rgb_to_xyz(rgb) / xyz_to_rgb(xyz)
  xyz_to_lab(xyz) / lab_to_xyz(lab)
  rgb_to_lab(rgb) / lab_to_rgb(lab)
  rgb_to_hsv(rgb) / hsv_to_rgb(hsv)
  delta_e76(lab1, lab2)
  rgb_distance(c1, c2)
  luminance(rgb)
  preserve_luminance(original, candidate)
  blend_colours(c1, c2, t) / blend_lab(l1, l2, t)
  apply_hsbg(rgba, hue_shift, saturation, brightness, gamma)

All functions are vectorised over a trailing channel axis. Single colours are
passed as 1-D arrays and come back 1-D.
"""

from typing import Sequence, Union

import numpy as np
from numpy.typing import NDArray

from .constants import (
    D65_WHITE,
    LAB_DELTA,
    LUMA_WEIGHTS,
    RGB_TO_XYZ,
    SRGB_GAMMA_THRESHOLD,
    SRGB_LINEAR_THRESHOLD,
    XYZ_TO_RGB,
)
from .core_types import Hsv, Lab, RGBArray

ArrayLike = Union[np.ndarray, Sequence[float]]

_RGB_TO_XYZ = np.asarray(RGB_TO_XYZ, dtype=np.float64)
_XYZ_TO_RGB = np.asarray(XYZ_TO_RGB, dtype=np.float64)
_WHITE = np.asarray(D65_WHITE, dtype=np.float64)
_LUMA = np.asarray(LUMA_WEIGHTS, dtype=np.float64)


def _as_float(values: ArrayLike) -> NDArray[np.float64]:
    return np.asarray(values, dtype=np.float64)


# sRGB <-> linear


def rgb_to_linear(srgb: ArrayLike) -> np.ndarray:
    """
    Convert sRGB (non-linear 0..1) to linear RGB (0..1). Vectorised.
    Args:
      srgb: array[...] in 0..1 (float)
    Returns:
      float32 array with the same shape
    """
    srgb_f = _as_float(srgb)
    with np.errstate(invalid="ignore"):
        linear = np.where(
            srgb_f <= SRGB_LINEAR_THRESHOLD,
            srgb_f / 12.92,
            ((np.maximum(srgb_f, 0.0) + 0.055) / 1.055) ** 2.4,
        )
    return linear.astype(np.float32, copy=False)


def linear_to_rgb(linear: ArrayLike) -> np.ndarray:
    """Inverse of rgb_to_linear. Negative inputs stay on the linear segment."""
    lin = _as_float(linear)
    with np.errstate(invalid="ignore"):
        srgb = np.where(
            lin <= SRGB_GAMMA_THRESHOLD,
            lin * 12.92,
            1.055 * np.power(np.maximum(lin, 0.0), 1.0 / 2.4) - 0.055,
        )
    return srgb.astype(np.float32, copy=False)


# RGB <-> XYZ


def rgb_to_xyz(rgb: ArrayLike) -> np.ndarray:
    """sRGB[...,3] -> XYZ[...,3] (D65)."""
    lin = rgb_to_linear(_as_float(rgb)[..., :3]).astype(np.float64)
    return (lin @ _RGB_TO_XYZ.T).astype(np.float32, copy=False)


def xyz_to_rgb(xyz: ArrayLike) -> RGBArray:
    """XYZ[...,3] -> sRGB[...,3], clamped to 0..1."""
    lin = _as_float(xyz) @ _XYZ_TO_RGB.T
    return np.clip(linear_to_rgb(lin), 0.0, 1.0).astype(np.float32, copy=False)


# XYZ <-> Lab


def xyz_to_lab(xyz: ArrayLike) -> Lab:
    """XYZ[...,3] -> CIE Lab[...,3] using the delta = 6/29 piecewise form."""
    xyz_f = _as_float(xyz) / _WHITE
    d = LAB_DELTA

    def f(t: np.ndarray) -> np.ndarray:
        with np.errstate(invalid="ignore"):
            return np.where(t > d**3, np.cbrt(t), t / (3.0 * d * d) + 4.0 / 29.0)

    fx, fy, fz = f(xyz_f[..., 0]), f(xyz_f[..., 1]), f(xyz_f[..., 2])
    out = np.empty(xyz_f.shape, dtype=np.float32)
    out[..., 0] = 116.0 * fy - 16.0
    out[..., 1] = 500.0 * (fx - fy)
    out[..., 2] = 200.0 * (fy - fz)
    return out


def lab_to_xyz(lab: ArrayLike) -> np.ndarray:
    """CIE Lab[...,3] -> XYZ[...,3], exact inverse of xyz_to_lab."""
    lab_f = _as_float(lab)
    d = LAB_DELTA
    fy = (lab_f[..., 0] + 16.0) / 116.0
    fx = fy + lab_f[..., 1] / 500.0
    fz = fy - lab_f[..., 2] / 200.0

    def f_inv(t: np.ndarray) -> np.ndarray:
        return np.where(t > d, t**3, 3.0 * d * d * (t - 4.0 / 29.0))

    out = np.empty(lab_f.shape, dtype=np.float64)
    out[..., 0] = f_inv(fx) * _WHITE[0]
    out[..., 1] = f_inv(fy) * _WHITE[1]
    out[..., 2] = f_inv(fz) * _WHITE[2]
    return out.astype(np.float32, copy=False)


# RGB <-> Lab


def rgb_to_lab(rgb: ArrayLike) -> Lab:
    """
    sRGB to CIE Lab (D65).
    Accepts float [0..1] with 3 or more channels; extra channels are ignored.
    Returns float32 (...,3).
    """
    return xyz_to_lab(rgb_to_xyz(rgb))


def lab_to_rgb(lab: ArrayLike) -> RGBArray:
    """CIE Lab (D65) back to sRGB, clamped to 0..1."""
    return xyz_to_rgb(lab_to_xyz(lab))


# RGB <-> HSV


def rgb_to_hsv(rgb: ArrayLike) -> Hsv:
    """
    sRGB[...,3] -> HSV[...,3] with hue in degrees [0,360), saturation and
    value in 0..1. Greys get hue 0.
    """
    c = _as_float(rgb)[..., :3]
    r, g, b = c[..., 0], c[..., 1], c[..., 2]
    cmax = np.max(c, axis=-1)
    cmin = np.min(c, axis=-1)
    delta = cmax - cmin
    safe = np.where(delta > 0.0, delta, 1.0)

    hue = np.zeros_like(cmax)
    hue = np.where(cmax == r, ((g - b) / safe) % 6.0, hue)
    hue = np.where(cmax == g, (b - r) / safe + 2.0, hue)
    hue = np.where(cmax == b, (r - g) / safe + 4.0, hue)
    hue = np.where(delta > 0.0, (hue * 60.0) % 360.0, 0.0)
    sat = np.where(cmax > 0.0, delta / np.where(cmax > 0.0, cmax, 1.0), 0.0)

    return np.stack([hue, sat, cmax], axis=-1).astype(np.float32, copy=False)


def hsv_to_rgb(hsv: ArrayLike) -> RGBArray:
    """HSV[...,3] (hue in degrees, wrapped) -> sRGB[...,3]."""
    hsv_f = _as_float(hsv)
    h = np.mod(hsv_f[..., 0], 360.0) / 60.0
    s = hsv_f[..., 1]
    v = hsv_f[..., 2]

    i = np.floor(h).astype(np.int64) % 6
    f = h - np.floor(h)
    p = v * (1.0 - s)
    q = v * (1.0 - s * f)
    t = v * (1.0 - s * (1.0 - f))

    r = np.choose(i, [v, q, p, p, t, v])
    g = np.choose(i, [t, v, v, q, p, p])
    b = np.choose(i, [p, p, t, v, v, q])
    return np.stack([r, g, b], axis=-1).astype(np.float32, copy=False)


# Metrics


def delta_e76(lab1: ArrayLike, lab2: ArrayLike) -> np.ndarray:
    """CIE76 Delta-E: Euclidean distance in Lab. Broadcasts."""
    diff = _as_float(lab1)[..., :3] - _as_float(lab2)[..., :3]
    return np.sqrt(np.sum(diff * diff, axis=-1)).astype(np.float32, copy=False)


def rgb_distance(c1: ArrayLike, c2: ArrayLike) -> np.ndarray:
    """Euclidean RGB distance, alpha ignored. Maximum is sqrt(3)."""
    diff = _as_float(c1)[..., :3] - _as_float(c2)[..., :3]
    return np.sqrt(np.sum(diff * diff, axis=-1)).astype(np.float32, copy=False)


def luminance(rgb: ArrayLike) -> np.ndarray:
    """Rec.601 luma of sRGB[...,3]."""
    return (_as_float(rgb)[..., :3] @ _LUMA).astype(np.float32, copy=False)


# Combinators


def preserve_luminance(original: ArrayLike, candidate: ArrayLike) -> np.ndarray:
    """
    Keep the candidate's chroma (Lab a/b) with the original's lightness (Lab L).
    When the inputs carry alpha the result takes the original's alpha.
    """
    orig = _as_float(original)
    cand = _as_float(candidate)
    lab = rgb_to_lab(cand).astype(np.float64)
    lab[..., 0] = rgb_to_lab(orig)[..., 0]
    rgb = lab_to_rgb(lab)
    if orig.shape[-1] == 4:
        return np.concatenate([rgb, orig[..., 3:4].astype(np.float32)], axis=-1)
    return rgb


def blend_colours(c1: ArrayLike, c2: ArrayLike, t: Union[float, np.ndarray]) -> np.ndarray:
    """Linear interpolation of every channel, t clamped to 0..1 (broadcasts)."""
    a = _as_float(c1)
    b = _as_float(c2)
    tt = np.clip(_as_float(t), 0.0, 1.0)
    if tt.ndim and tt.ndim < a.ndim:
        tt = tt[..., None]
    return (a + (b - a) * tt).astype(np.float32, copy=False)


def blend_lab(lab1: ArrayLike, lab2: ArrayLike, t: Union[float, np.ndarray]) -> Lab:
    """Lab lerp over the three channels, t clamped to 0..1."""
    return blend_colours(_as_float(lab1)[..., :3], _as_float(lab2)[..., :3], t)


def apply_hsbg(
    rgba: ArrayLike,
    hue_shift: float = 0.0,
    saturation: float = 1.0,
    brightness: float = 1.0,
    gamma: float = 1.0,
) -> np.ndarray:
    """
    Hue/saturation/brightness/gamma adjustment.

    Hue rotates by hue_shift degrees (wrapping), saturation and value are
    scaled and clamped to 0..1, then each channel is raised to `gamma`
    (gamma <= 0 counts as 1). Alpha, when present, is kept.
    """
    src = _as_float(rgba)
    hsv = rgb_to_hsv(src).astype(np.float64)
    hsv[..., 0] = np.mod(hsv[..., 0] + hue_shift, 360.0)
    hsv[..., 1] = np.clip(hsv[..., 1] * saturation, 0.0, 1.0)
    hsv[..., 2] = np.clip(hsv[..., 2] * brightness, 0.0, 1.0)
    rgb = hsv_to_rgb(hsv).astype(np.float64)

    g = gamma if gamma > 0.0 else 1.0
    if g != 1.0:
        rgb = np.power(rgb, g)
    rgb = np.clip(rgb, 0.0, 1.0).astype(np.float32)

    if src.shape[-1] == 4:
        return np.concatenate([rgb, src[..., 3:4].astype(np.float32)], axis=-1)
    return rgb


__all__ = [
    "rgb_to_linear",
    "linear_to_rgb",
    "rgb_to_xyz",
    "xyz_to_rgb",
    "xyz_to_lab",
    "lab_to_xyz",
    "rgb_to_lab",
    "lab_to_rgb",
    "rgb_to_hsv",
    "hsv_to_rgb",
    "delta_e76",
    "rgb_distance",
    "luminance",
    "preserve_luminance",
    "blend_colours",
    "blend_lab",
    "apply_hsbg",
]
