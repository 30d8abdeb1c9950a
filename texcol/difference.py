# texcol/difference.py
from __future__ import annotations

"""
From-colour -> to-colour balance transform.

Exports:
  apply_difference(target, from_colour, to_colour, config, selection_mask=None)
  shift_pixels(pixels, from_colour, to_colour, config)
  finish_pixels(original, shifted, weights, config, selection_mask=None)
  apply_adjustments(pixels, config)
  flood_fill_selection(buffer, start_x, start_y, tolerance, max_iterations)
  preview_with_outline(buffer, mask, outline_colour, outline_width)

The transform runs in two stages. shift_pixels() adds the similarity-weighted
delta and returns the per-pixel blend weight; finish_pixels() applies the
brightness/contrast/gamma/transparency knobs and blends with the original.
The preview cache keeps the first stage and re-runs only the second.
"""

from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .colour_convert import blend_colours, rgb_distance
from .constants import (
    ADVANCED_SCALE_MAX,
    ADVANCED_SCALE_MIN,
    ADVANCED_SECONDARY_MIX,
    ADVANCED_SIMILARITY_POWER,
    FLOOD_FILL_MAX_ITERATIONS,
    FLOOD_FILL_TOLERANCE,
    MAX_RGB_DISTANCE,
    OUTLINE_MIX,
)
from .core_types import (
    BalanceMode,
    BoolMask,
    PixelBuffer,
    RGBAArray,
    TransformConfig,
    as_rgba,
    mask_matches,
)

ColourLike = Union[Sequence[float], np.ndarray]


def _radius(config: TransformConfig) -> float:
    return config.selection_radius if config.selection_radius > 0.0 else 1.0


# Post-process knobs


def apply_adjustments(pixels: RGBAArray, config: TransformConfig) -> RGBAArray:
    """
    Brightness/contrast ((c-0.5)*contrast+0.5)*brightness, gamma c**(1/gamma)
    and transparency a*(1-transparency). Each is skipped at its identity value.
    """
    out = np.array(pixels, dtype=np.float32, copy=True)
    if config.brightness != 1.0 or config.contrast != 1.0:
        rgb = ((out[:, :3] - 0.5) * config.contrast + 0.5) * config.brightness
        out[:, :3] = np.clip(rgb, 0.0, 1.0)
    if config.gamma != 1.0:
        g = config.gamma if config.gamma > 0.0 else 1.0
        out[:, :3] = np.power(np.clip(out[:, :3], 0.0, 1.0), 1.0 / g)
    if config.transparency > 0.0:
        out[:, 3] = out[:, 3] * (1.0 - config.transparency)
    return out


# Stage 1: similarity-weighted shift


def shift_pixels(
    pixels: RGBAArray,
    from_colour: ColourLike,
    to_colour: ColourLike,
    config: TransformConfig,
) -> Optional[Tuple[RGBAArray, np.ndarray]]:
    """
    Apply the from->to delta with the balance mode's per-pixel strength.

    Returns:
      (shifted pixels with original alpha, blend weight per pixel in 0..1),
      or None for an unrecognised balance mode
    """
    px = np.asarray(pixels, dtype=np.float32)
    src = as_rgba(from_colour)
    delta = (as_rgba(to_colour)[:3] - src[:3]).astype(np.float64)
    n = px.shape[0]
    rgb = px[:, :3].astype(np.float64)
    mode = config.balance_mode

    if mode is BalanceMode.SIMPLE:
        moved = rgb + delta * config.intensity
        weights = np.ones(n, dtype=np.float64)
    elif mode is BalanceMode.WEIGHTED:
        sim = np.maximum(0.0, 1.0 - rgb_distance(px, src).astype(np.float64) / MAX_RGB_DISTANCE)
        influence = np.power(sim, 1.0 / _radius(config))
        strength = np.maximum(config.min_similarity, influence) * config.intensity
        moved = rgb + delta[None, :] * strength[:, None]
        weights = strength
    elif mode is BalanceMode.ADVANCED:
        dist = rgb_distance(px, src).astype(np.float64) / MAX_RGB_DISTANCE
        sim = np.power(np.maximum(0.0, 1.0 - dist), ADVANCED_SIMILARITY_POWER)
        base = sim * config.intensity
        strength = np.maximum(config.min_similarity, np.power(base, 1.0 / _radius(config)))
        scale = ADVANCED_SCALE_MIN + (ADVANCED_SCALE_MAX - ADVANCED_SCALE_MIN) * sim
        moved = rgb + delta[None, :] * (scale * strength)[:, None]
        secondary = np.power(sim, _radius(config))
        weights = strength + (secondary - strength) * ADVANCED_SECONDARY_MIX
    else:
        return None

    shifted = np.empty_like(px)
    shifted[:, :3] = np.clip(moved, 0.0, 1.0)
    shifted[:, 3] = px[:, 3]
    return shifted, np.clip(weights, 0.0, 1.0)


# Stage 2: adjustments + blend


def finish_pixels(
    original: RGBAArray,
    shifted: RGBAArray,
    weights: np.ndarray,
    config: TransformConfig,
    selection_mask: Optional[BoolMask] = None,
) -> RGBAArray:
    """Post-process the shifted pixels, blend by weight, restore unselected pixels."""
    adjusted = apply_adjustments(shifted, config)
    out = blend_colours(original, adjusted, weights)
    if selection_mask is not None:
        keep = ~np.asarray(selection_mask, dtype=bool).reshape(-1)
        out[keep] = original[keep]
    return out


def apply_difference(
    target: Optional[PixelBuffer],
    from_colour: ColourLike,
    to_colour: ColourLike,
    config: TransformConfig,
    selection_mask: Optional[BoolMask] = None,
) -> Optional[PixelBuffer]:
    """
    Move colours near `from_colour` toward `to_colour`.

    SIMPLE applies the delta uniformly at `intensity`. WEIGHTED scales it by
    similarity to `from_colour` (shaped by selection_radius, floored at
    min_similarity) and blends by the same strength again. ADVANCED uses a
    squared similarity curve, rescales the delta 0.5x-1.5x by similarity and
    blends with a mix of strength and similarity**selection_radius.

    Pixels outside `selection_mask` are copied unchanged. Returns None for a
    missing/malformed buffer or a mask of the wrong length; an unrecognised
    balance mode returns a copy of the target.
    """
    if target is None or not target.is_valid() or not mask_matches(target, selection_mask):
        return None
    stage = shift_pixels(target.pixels, from_colour, to_colour, config)
    if stage is None:
        return target.copy()
    shifted, weights = stage
    return target.with_pixels(finish_pixels(target.pixels, shifted, weights, config, selection_mask))


# Selection helpers


def flood_fill_selection(
    buffer: Optional[PixelBuffer],
    start_x: int,
    start_y: int,
    tolerance: float = FLOOD_FILL_TOLERANCE,
    max_iterations: int = FLOOD_FILL_MAX_ITERATIONS,
) -> Optional[BoolMask]:
    """
    4-connected region around (start_x, start_y) whose RGB distance to the
    start pixel is within `tolerance`. At most `max_iterations` pixels are
    accepted. Start positions outside the buffer give an empty selection.
    """
    if buffer is None or not buffer.is_valid():
        return None
    width, height = buffer.width, buffer.height
    selection = np.zeros(buffer.size, dtype=bool)
    if not (0 <= start_x < width and 0 <= start_y < height):
        return selection

    px = buffer.pixels
    within = rgb_distance(px, px[start_y * width + start_x]) <= tolerance

    stack = [(start_x, start_y)]
    accepted = 0
    while stack and accepted < max_iterations:
        x, y = stack.pop()
        if x < 0 or x >= width or y < 0 or y >= height:
            continue
        index = y * width + x
        if selection[index] or not within[index]:
            continue
        selection[index] = True
        accepted += 1
        stack.extend(((x + 1, y), (x - 1, y), (x, y + 1), (x, y - 1)))
    return selection


def _selection_border(sel2d: np.ndarray, radius: int) -> np.ndarray:
    """Selected cells with an unselected cell (or the image edge) within `radius`."""
    h, w = sel2d.shape
    padded = np.zeros((h + 2 * radius, w + 2 * radius), dtype=bool)
    padded[radius : radius + h, radius : radius + w] = sel2d
    interior = np.ones_like(sel2d)
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            interior &= padded[radius + dy : radius + dy + h, radius + dx : radius + dx + w]
    return sel2d & ~interior


def preview_with_outline(
    buffer: Optional[PixelBuffer],
    mask: Optional[BoolMask],
    outline_colour: ColourLike,
    outline_width: int = 1,
) -> Optional[PixelBuffer]:
    """Tint the border of a selection toward `outline_colour` (OUTLINE_MIX)."""
    if buffer is None or mask is None or not buffer.is_valid() or not mask_matches(buffer, mask):
        return None
    sel2d = np.asarray(mask, dtype=bool).reshape(buffer.height, buffer.width)
    border = _selection_border(sel2d, max(int(outline_width), 0)).reshape(-1)
    out = buffer.pixels.copy()
    out[border] = blend_colours(out[border], as_rgba(outline_colour), OUTLINE_MIX)
    return buffer.with_pixels(out)


__all__ = [
    "apply_difference",
    "shift_pixels",
    "finish_pixels",
    "apply_adjustments",
    "flood_fill_selection",
    "preview_with_outline",
]
