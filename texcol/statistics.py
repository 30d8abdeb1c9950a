# texcol/statistics.py
from __future__ import annotations

"""
Per-channel statistics over the opaque part of a pixel array.

Exports:
  opaque_mask(pixels)
  opaque_pixels(pixels)
  channel_statistics(colours)
  lab_statistics(pixels) / rgb_statistics(pixels)
  dominant_hue(pixels)
  match_channel(values, src_stats, ref_stats)
"""

import math

import numpy as np

from .colour_convert import rgb_to_hsv, rgb_to_lab
from .constants import ALPHA_THRESHOLD, HUE_SATURATION_MIN, OPAQUE_FALLBACK_RGBA
from .core_types import BoolMask, ChannelStatistics, RGBAArray


# Opaque filtering


def opaque_mask(pixels: RGBAArray) -> BoolMask:
    """alpha >= ALPHA_THRESHOLD per row."""
    return np.asarray(pixels)[:, 3] >= ALPHA_THRESHOLD


def opaque_pixels(pixels: RGBAArray) -> RGBAArray:
    """
    Opaque rows only. A fully transparent (or empty) input yields a single
    opaque white pixel so downstream statistics stay defined.
    """
    px = np.asarray(pixels, dtype=np.float32)
    if px.size == 0:
        return np.asarray([OPAQUE_FALLBACK_RGBA], dtype=np.float32)
    kept = px[opaque_mask(px)]
    if kept.shape[0] == 0:
        return np.asarray([OPAQUE_FALLBACK_RGBA], dtype=np.float32)
    return kept


# Mean / std


def channel_statistics(colours: np.ndarray) -> ChannelStatistics:
    """
    Mean and population standard deviation of the first three channels.
    Two passes (mean first, then squared deviations). Empty input -> zeros.
    """
    arr = np.asarray(colours, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[0] == 0:
        return ChannelStatistics.zeros()
    vals = arr[:, :3]
    mean = vals.mean(axis=0)
    dev = vals - mean
    std = np.sqrt((dev * dev).mean(axis=0))
    return ChannelStatistics(mean, std, int(vals.shape[0]))


def lab_statistics(pixels: RGBAArray) -> ChannelStatistics:
    return channel_statistics(rgb_to_lab(opaque_pixels(pixels)))


def rgb_statistics(pixels: RGBAArray) -> ChannelStatistics:
    return channel_statistics(opaque_pixels(pixels))


# Hue


def dominant_hue(pixels: RGBAArray) -> float:
    """
    Circular mean of HSV hue (degrees, [0,360)) over pixels with saturation
    above HUE_SATURATION_MIN. Returns 0.0 when nothing qualifies or the
    hue vectors cancel out.
    """
    px = np.asarray(pixels, dtype=np.float32)
    if px.size == 0:
        return 0.0
    hsv = rgb_to_hsv(px).astype(np.float64)
    sel = hsv[:, 1] > HUE_SATURATION_MIN
    if not np.any(sel):
        return 0.0
    rad = np.radians(hsv[sel, 0])
    sx = float(np.cos(rad).sum())
    sy = float(np.sin(rad).sum())
    if math.hypot(sx, sy) < 1e-9:
        return 0.0
    return float(math.degrees(math.atan2(sy, sx)) % 360.0)


# Statistic matching


def match_channel(
    values: np.ndarray, src_stats: ChannelStatistics, ref_stats: ChannelStatistics
) -> np.ndarray:
    """
    Reinhard-style per-channel mapping (v - m_s) / s_s * s_r + m_r.
    Channels whose source std is zero pass through unchanged.
    """
    vals = np.asarray(values, dtype=np.float64)[..., :3]
    s_std = np.asarray(src_stats.std, dtype=np.float64)
    nonzero = s_std > 0.0
    scale = np.where(nonzero, np.asarray(ref_stats.std) / np.where(nonzero, s_std, 1.0), 1.0)
    mapped = (vals - src_stats.mean) * scale + ref_stats.mean
    return np.where(nonzero, mapped, vals)


__all__ = [
    "opaque_mask",
    "opaque_pixels",
    "channel_statistics",
    "lab_statistics",
    "rgb_statistics",
    "dominant_hue",
    "match_channel",
]
