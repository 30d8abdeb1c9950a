# texcol/transfer.py
from __future__ import annotations

"""
Statistical recolouring of a target buffer toward a reference.

Exports:
  transform(target, reference, intensity, preserve_luminance, mode)
  transform_pixels(target_px, reference_px, intensity, preserve_luminance, mode)
  dual_colour_matching(target, target_colour, reference_colour, ...)
  transform_to_colour(target, colour, intensity, preserve_luminance, mode)
  ratio_preserving_replacement(target, target_colour, reference_colour, ...)
  transform_with_main_colour(target, reference, main_colour, ...)
  preserve_transparency(original, adjusted)
  post_adjust(buffer, hue_shift, saturation, brightness, gamma)

Transforms return a fresh PixelBuffer with the target's dimensions, or None
when the inputs are missing or malformed. Transparent target pixels
(alpha < ALPHA_THRESHOLD) are written through unchanged and opaque output
alpha always equals input alpha.
"""

from typing import Optional, Sequence, Union

import numpy as np

from .cluster import synthetic_reference_with_main_colour
from .colour_convert import (
    apply_hsbg,
    blend_colours,
    delta_e76,
    hsv_to_rgb,
    lab_to_rgb,
    preserve_luminance as keep_lightness,
    rgb_distance,
    rgb_to_hsv,
    rgb_to_lab,
)
from .constants import (
    ADAPTIVE_HISTOGRAM_SHARE,
    ADAPTIVE_MIX,
    ADAPTIVE_TRANSFER_SHARE,
    DUAL_DISTANT_STRENGTH,
    DUAL_LIGHTNESS_KEEP,
    DUAL_MIN_RANGE_INFLUENCE,
    DUAL_SELECTION_RANGE,
    LUMINANCE_DAMPING,
    MAX_LAB_DISTANCE,
    MAX_RGB_DISTANCE,
    RATIO_DIRECT_INTENSITY,
    RATIO_MAX,
    RATIO_MIN_CHANNEL,
    SINGLE_ADAPTIVE_MIX,
    SINGLE_TRANSFER_SHARE,
    SYNTHETIC_SEED,
)
from .core_types import AdjustmentMode, PixelBuffer, RGBAArray, as_rgba
from .statistics import (
    channel_statistics,
    dominant_hue,
    match_channel,
    opaque_mask,
    opaque_pixels,
)

ModeLike = Union[AdjustmentMode, str]
ColourLike = Union[Sequence[float], np.ndarray]


def _resolve_mode(mode: ModeLike) -> Optional[AdjustmentMode]:
    """Enum member for mode, or None for anything unrecognised."""
    if isinstance(mode, AdjustmentMode):
        return mode
    try:
        return AdjustmentMode(mode)
    except ValueError:
        return None


def _with_alpha(rgb: np.ndarray, alpha_from: np.ndarray) -> RGBAArray:
    out = np.empty((rgb.shape[0], 4), dtype=np.float32)
    out[:, :3] = rgb[:, :3]
    out[:, 3] = alpha_from[:, 3]
    return out


def preserve_transparency(original: RGBAArray, adjusted: RGBAArray) -> RGBAArray:
    """
    Copy transparent rows of `original` over `adjusted` and force every other
    row's alpha back to the original's. Returns a new array.
    """
    if original.shape != adjusted.shape:
        return adjusted
    out = np.array(adjusted, dtype=np.float32, copy=True)
    out[:, 3] = original[:, 3]
    clear = ~opaque_mask(original)
    out[clear] = original[clear]
    return out


# Whole-image statistical modes


def _histogram_matching(
    target: RGBAArray, reference: RGBAArray, intensity: float, keep_l: bool
) -> RGBAArray:
    lab = rgb_to_lab(target).astype(np.float64)
    src_stats = channel_statistics(rgb_to_lab(opaque_pixels(target)))
    ref_stats = channel_statistics(rgb_to_lab(opaque_pixels(reference)))
    matched = match_channel(lab, src_stats, ref_stats)

    t = float(np.clip(intensity, 0.0, 1.0))
    weights = np.array([t, t, t])
    if keep_l:
        weights[0] = float(np.clip(intensity * LUMINANCE_DAMPING, 0.0, 1.0))
    rgb = lab_to_rgb(lab + (matched - lab) * weights)

    if keep_l:
        fully = keep_lightness(target[:, :3], rgb)
        rgb = blend_colours(rgb, fully, 1.0 - intensity * LUMINANCE_DAMPING)
    return _with_alpha(rgb, target)


def _hue_shift(
    target: RGBAArray, reference: RGBAArray, intensity: float, keep_l: bool
) -> RGBAArray:
    shift = dominant_hue(opaque_pixels(reference)) - dominant_hue(opaque_pixels(target))
    hsv = rgb_to_hsv(target).astype(np.float64)
    hsv[:, 0] = np.mod(hsv[:, 0] + shift * intensity, 360.0)
    rgb = hsv_to_rgb(hsv)
    if keep_l:
        rgb = keep_lightness(target[:, :3], rgb)
    return _with_alpha(rgb, target)


def _colour_transfer(
    target: RGBAArray, reference: RGBAArray, intensity: float, keep_l: bool
) -> RGBAArray:
    src_stats = channel_statistics(opaque_pixels(target))
    ref_stats = channel_statistics(opaque_pixels(reference))
    moved = np.clip(match_channel(target, src_stats, ref_stats), 0.0, 1.0)
    rgb = blend_colours(target[:, :3], moved, intensity)
    if keep_l:
        rgb = keep_lightness(target[:, :3], rgb)
    return _with_alpha(rgb, target)


def _adaptive(
    target: RGBAArray, reference: RGBAArray, intensity: float, keep_l: bool
) -> RGBAArray:
    hist = _histogram_matching(target, reference, intensity * ADAPTIVE_HISTOGRAM_SHARE, keep_l)
    moved = _colour_transfer(target, reference, intensity * ADAPTIVE_TRANSFER_SHARE, keep_l)
    return blend_colours(hist, moved, ADAPTIVE_MIX)


_MODE_FUNCS = {
    AdjustmentMode.LAB_HISTOGRAM_MATCHING: _histogram_matching,
    AdjustmentMode.HUE_SHIFT: _hue_shift,
    AdjustmentMode.COLOR_TRANSFER: _colour_transfer,
    AdjustmentMode.ADAPTIVE: _adaptive,
}


def transform_pixels(
    target: RGBAArray,
    reference: RGBAArray,
    intensity: float,
    preserve_luminance: bool,
    mode: ModeLike,
) -> RGBAArray:
    """
    Array-level transform. `reference` is only a statistics sample so its
    length may differ from the target's. Unknown modes return a copy.
    """
    tgt = np.asarray(target, dtype=np.float32)
    func = _MODE_FUNCS.get(_resolve_mode(mode))  # type: ignore[arg-type]
    if func is None:
        return tgt.copy()
    adjusted = func(tgt, np.asarray(reference, dtype=np.float32), float(intensity), bool(preserve_luminance))
    return preserve_transparency(tgt, adjusted)


def transform(
    target: Optional[PixelBuffer],
    reference: Optional[PixelBuffer],
    intensity: float,
    preserve_luminance: bool,
    mode: ModeLike,
) -> Optional[PixelBuffer]:
    """
    Recolour `target` so its opaque palette follows `reference`.

    Args:
      target: buffer to recolour (never mutated)
      reference: statistics source; dimensions may differ from target
      intensity: 0 leaves the target unchanged, 1 applies the full match
      preserve_luminance: keep the target's Lab lightness
      mode: AdjustmentMode or its string value
    Returns:
      new PixelBuffer, or None for missing/malformed buffers
    """
    if target is None or reference is None or not (target.is_valid() and reference.is_valid()):
        return None
    out = transform_pixels(target.pixels, reference.pixels, intensity, preserve_luminance, mode)
    return target.with_pixels(out)


# Colour-anchored variants


def _dual_strength(distance: np.ndarray, selection_range: float, intensity: float) -> np.ndarray:
    """Strongest near the anchor colour, never zero unless the colour is maximally far."""
    base = 1.0 - np.clip(distance / MAX_LAB_DISTANCE, 0.0, 1.0)
    influence = DUAL_MIN_RANGE_INFLUENCE + (1.0 - DUAL_MIN_RANGE_INFLUENCE) * float(
        np.clip(selection_range, 0.0, 1.0)
    )
    near = base * influence
    far = base * DUAL_DISTANT_STRENGTH
    return (far + (near - far) * base) * intensity


def dual_colour_matching(
    target: Optional[PixelBuffer],
    target_colour: ColourLike,
    reference_colour: ColourLike,
    intensity: float,
    preserve_luminance: bool,
    selection_range: float = DUAL_SELECTION_RANGE,
) -> Optional[PixelBuffer]:
    """
    Move the picked `target_colour` onto `reference_colour` in Lab, carrying
    every pixel's offset from the picked colour along so shading survives.
    Pixels close to the picked colour (Delta-E) move most; `selection_range`
    widens how far the strong pull reaches.
    """
    if target is None or not target.is_valid():
        return None
    px = target.pixels
    anchor = rgb_to_lab(as_rgba(target_colour)).astype(np.float64)
    goal = rgb_to_lab(as_rgba(reference_colour)).astype(np.float64)

    lab = rgb_to_lab(px).astype(np.float64)
    strength = _dual_strength(delta_e76(lab, anchor).astype(np.float64), selection_range, intensity)
    s = np.clip(strength, 0.0, 1.0)[:, None]

    shifted = lab + (goal - anchor)
    adjusted = lab + (shifted - lab) * s
    if preserve_luminance:
        adjusted[:, 0] += (lab[:, 0] - adjusted[:, 0]) * DUAL_LIGHTNESS_KEEP

    rgb = blend_colours(px[:, :3], lab_to_rgb(adjusted), strength)
    return target.with_pixels(preserve_transparency(px, _with_alpha(rgb, px)))


def _lab_toward(px: RGBAArray, colour_lab: np.ndarray, t: float, keep_l: bool) -> np.ndarray:
    lab = rgb_to_lab(px).astype(np.float64)
    tt = float(np.clip(t, 0.0, 1.0))
    lab[:, 1:] += (colour_lab[1:] - lab[:, 1:]) * tt
    rgb = lab_to_rgb(lab)
    return keep_lightness(px[:, :3], rgb) if keep_l else rgb


def _hue_toward(px: RGBAArray, colour_hue: float, t: float, keep_l: bool) -> np.ndarray:
    hsv = rgb_to_hsv(px).astype(np.float64)
    diff = colour_hue - hsv[:, 0]
    diff = np.where(diff > 180.0, diff - 360.0, diff)
    diff = np.where(diff < -180.0, diff + 360.0, diff)
    hsv[:, 0] = np.mod(hsv[:, 0] + diff * t, 360.0)
    rgb = hsv_to_rgb(hsv)
    return keep_lightness(px[:, :3], rgb) if keep_l else rgb


def transform_to_colour(
    target: Optional[PixelBuffer],
    colour: ColourLike,
    intensity: float,
    preserve_luminance: bool,
    mode: ModeLike,
) -> Optional[PixelBuffer]:
    """Pull the whole target toward one colour instead of a reference image."""
    if target is None or not target.is_valid():
        return None
    px = target.pixels
    rgba = as_rgba(colour)
    kind = _resolve_mode(mode)

    if kind is AdjustmentMode.LAB_HISTOGRAM_MATCHING:
        rgb = _lab_toward(px, rgb_to_lab(rgba).astype(np.float64), intensity, preserve_luminance)
    elif kind is AdjustmentMode.HUE_SHIFT:
        rgb = _hue_toward(px, float(rgb_to_hsv(rgba)[0]), intensity, preserve_luminance)
    elif kind is AdjustmentMode.COLOR_TRANSFER:
        rgb = blend_colours(px[:, :3], rgba[:3], intensity * SINGLE_TRANSFER_SHARE)
        if preserve_luminance:
            rgb = keep_lightness(px[:, :3], rgb)
    elif kind is AdjustmentMode.ADAPTIVE:
        lab_rgb = _lab_toward(
            px, rgb_to_lab(rgba).astype(np.float64), intensity * ADAPTIVE_HISTOGRAM_SHARE, preserve_luminance
        )
        hue_rgb = _hue_toward(
            px, float(rgb_to_hsv(rgba)[0]), intensity * ADAPTIVE_TRANSFER_SHARE, preserve_luminance
        )
        rgb = blend_colours(lab_rgb, hue_rgb, SINGLE_ADAPTIVE_MIX)
    else:
        return target.copy()

    return target.with_pixels(preserve_transparency(px, _with_alpha(rgb, px)))


def _colour_ratio(px: np.ndarray, target_colour: np.ndarray) -> np.ndarray:
    """Per-channel px / target_colour with guarded division, clamped to [0, RATIO_MAX]."""
    tc = target_colour[None, :3].astype(np.float64)
    vals = px[:, :3].astype(np.float64)
    safe_tc = np.where(tc > RATIO_MIN_CHANNEL, tc, 1.0)
    ratio = np.where(
        tc > RATIO_MIN_CHANNEL,
        vals / safe_tc,
        np.where(vals > RATIO_MIN_CHANNEL, vals / RATIO_MIN_CHANNEL, 1.0),
    )
    return np.clip(ratio, 0.0, RATIO_MAX)


def ratio_preserving_replacement(
    target: Optional[PixelBuffer],
    target_colour: ColourLike,
    reference_colour: ColourLike,
    intensity: float,
    selection_range: float = DUAL_SELECTION_RANGE,
) -> Optional[PixelBuffer]:
    """
    Replace `target_colour` with `reference_colour` while keeping each pixel's
    per-channel ratio to the picked colour, so highlights and shadows carry
    over. Strong, similar pixels are replaced outright; weaker matches are
    blended in.
    """
    if target is None or not target.is_valid():
        return None
    px = target.pixels
    tc = as_rgba(target_colour)
    rc = as_rgba(reference_colour)

    similarity = np.maximum(0.0, 1.0 - rgb_distance(px, tc).astype(np.float64) / MAX_RGB_DISTANCE) ** 2
    replaced = np.clip(rc[None, :3] * _colour_ratio(px, tc), 0.0, 1.0)

    close = similarity > (1.0 - selection_range)
    t = np.where(close, similarity * intensity, intensity * 0.5 * similarity * similarity)
    if intensity >= RATIO_DIRECT_INTENSITY:
        t = np.where(close, 1.0, t)

    rgb = blend_colours(px[:, :3], replaced, t)
    return target.with_pixels(preserve_transparency(px, _with_alpha(rgb, px)))


def transform_with_main_colour(
    target: Optional[PixelBuffer],
    reference: Optional[PixelBuffer],
    main_colour: ColourLike,
    intensity: float,
    preserve_luminance: bool,
    mode: ModeLike,
    seed: Optional[int] = SYNTHETIC_SEED,
) -> Optional[PixelBuffer]:
    """Run `transform` against a synthetic reference dominated by `main_colour`."""
    if target is None or reference is None or not (target.is_valid() and reference.is_valid()):
        return None
    synthetic = synthetic_reference_with_main_colour(reference.pixels, main_colour, seed=seed)
    out = transform_pixels(target.pixels, synthetic, intensity, preserve_luminance, mode)
    return target.with_pixels(out)


def post_adjust(
    buffer: Optional[PixelBuffer],
    hue_shift: float = 0.0,
    saturation: float = 1.0,
    brightness: float = 1.0,
    gamma: float = 1.0,
) -> Optional[PixelBuffer]:
    """Hue/saturation/brightness/gamma pass over a finished result; transparent pixels kept."""
    if buffer is None or not buffer.is_valid():
        return None
    if hue_shift == 0.0 and saturation == 1.0 and brightness == 1.0 and gamma == 1.0:
        return buffer.copy()
    px = buffer.pixels
    adjusted = apply_hsbg(px, hue_shift, saturation, brightness, gamma)
    return buffer.with_pixels(preserve_transparency(px, adjusted))


__all__ = [
    "transform",
    "transform_pixels",
    "post_adjust",
    "dual_colour_matching",
    "transform_to_colour",
    "ratio_preserving_replacement",
    "transform_with_main_colour",
    "preserve_transparency",
]
