# texcol/high_precision.py
from __future__ import annotations

"""
High-precision pipeline: recolour against only the mesh-used part of a reference.

Steps:
  1) usage mask from the mesh UVs (or from an external mask texture)
  2) dominant colours of the used, opaque reference texels
  3) synthetic reference: used texels kept, unused texels drawn from the palette
  4) statistical transform of the target against the synthetic reference
  5) optional composite that keeps the original target outside used texels

Failures come back as TransformResult.error instead of exceptions.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from .cluster import extract_dominant_colours_from_mask, synthetic_reference_from_used_areas
from .constants import (
    DEFAULT_DOMINANT_COLOURS,
    MASK_PREVIEW_ALPHA,
    MASK_PREVIEW_COLOUR,
    MASK_TEXTURE_THRESHOLD,
    OPAQUE_FALLBACK_RGBA,
    SYNTHETIC_SEED,
)
from .core_types import (
    AdjustmentMode,
    ErrorKind,
    PixelBuffer,
    SampleQuality,
    TransformResult,
    UVUsageMask,
)
from .transfer import transform_pixels
from .utils import debug_log, format_percentage, warn
from .uv_mask import (
    MeshUVData,
    analyze_mesh_usage,
    composite_used_areas,
    masked_preview,
    usage_mask_from_buffer,
    uv_to_texel,
)


@dataclass(frozen=True)
class HighPrecisionConfig:
    """Settings for one high-precision run."""

    material_index: int = 0
    uv_channel: int = 0
    dominant_colour_count: int = DEFAULT_DOMINANT_COLOURS
    weighted_sampling: bool = True
    quality: SampleQuality = SampleQuality.FIVE
    mask_buffer: Optional[PixelBuffer] = None
    mask_threshold: float = MASK_TEXTURE_THRESHOLD
    seed: Optional[int] = SYNTHETIC_SEED
    composite_unused: bool = True
    mask_colour: Tuple[float, float, float, float] = MASK_PREVIEW_COLOUR
    mask_alpha: float = MASK_PREVIEW_ALPHA


def validate_config(
    config: Optional[HighPrecisionConfig],
    reference: Optional[PixelBuffer],
    mesh: Optional[MeshUVData],
) -> Optional[ErrorKind]:
    """None when the inputs can run, else the reason they cannot."""
    if config is None or reference is None or not reference.is_valid():
        return ErrorKind.INVALID_INPUT
    if config.dominant_colour_count <= 0:
        return ErrorKind.INVALID_INPUT
    if config.mask_buffer is not None:
        return None if config.mask_buffer.is_valid() else ErrorKind.UNREADABLE_SOURCE
    if mesh is None or not mesh.submeshes:
        return ErrorKind.INVALID_INPUT
    if mesh.uv_set(config.uv_channel) is None:
        return ErrorKind.UNREADABLE_SOURCE
    return None


def analyze_reference_usage(
    reference: PixelBuffer,
    mesh: Optional[MeshUVData],
    config: HighPrecisionConfig,
    debug: bool = False,
) -> Optional[UVUsageMask]:
    """Usage mask for `reference`: the external mask texture when given, else the mesh UVs."""
    if config.mask_buffer is not None:
        mb = config.mask_buffer
        if mb.width != reference.width or mb.height != reference.height:
            return None
        return usage_mask_from_buffer(mb, config.mask_threshold)
    return analyze_mesh_usage(
        mesh,
        reference.width,
        reference.height,
        config.material_index,
        config.uv_channel,
        config.quality,
        debug=debug,
    )


def process_with_high_precision(
    target: Optional[PixelBuffer],
    reference: Optional[PixelBuffer],
    mesh: Optional[MeshUVData],
    config: HighPrecisionConfig,
    intensity: float,
    preserve_luminance: bool,
    mode: AdjustmentMode,
    debug: bool = False,
) -> TransformResult:
    """
    Recolour `target` using statistics from the mesh-used area of `reference`.

    Returns:
      TransformResult with the new buffer and the usage mask, or an error:
        INVALID_INPUT            missing/malformed buffers, mesh or config
        UNREADABLE_SOURCE        no UVs on the mesh or an unusable mask texture
        NO_USABLE_REFERENCE_AREA nothing used and opaque to sample colours from
    """
    if target is None or not target.is_valid():
        return TransformResult.failure(ErrorKind.INVALID_INPUT)
    problem = validate_config(config, reference, mesh)
    if problem is not None:
        return TransformResult.failure(problem)
    if reference is None:
        return TransformResult.failure(ErrorKind.INVALID_INPUT)

    mask = analyze_reference_usage(reference, mesh, config, debug=debug)
    if mask is None:
        return TransformResult.failure(ErrorKind.UNREADABLE_SOURCE)
    if debug:
        debug_log(
            f"high-precision: using {format_percentage(mask.usage_percentage)} of the reference "
            f"({mask.used_uvs.shape[0]} UV points)"
        )

    palette = extract_dominant_colours_from_mask(
        reference.pixels, mask.used, config.dominant_colour_count, seed=config.seed
    )
    if palette.shape[0] == 0:
        if debug:
            warn("high-precision: no used opaque texels in the reference")
        return TransformResult.failure(ErrorKind.NO_USABLE_REFERENCE_AREA, mask)

    synthetic = synthetic_reference_from_used_areas(
        reference.pixels, mask.used, palette, weighted=config.weighted_sampling, seed=config.seed
    )
    adjusted = target.with_pixels(
        transform_pixels(target.pixels, synthetic, intensity, preserve_luminance, mode)
    )

    same_grid = target.width == reference.width and target.height == reference.height
    if config.composite_unused and same_grid:
        kept = composite_used_areas(target, adjusted, mask)
        if kept is not None:
            adjusted = kept
    elif config.composite_unused and debug:
        debug_log("high-precision: target and reference differ in size, skipping composite")

    return TransformResult(adjusted, None, mask)


def high_precision_preview(
    reference: Optional[PixelBuffer],
    mesh: Optional[MeshUVData],
    config: HighPrecisionConfig,
) -> TransformResult:
    """Reference with the unused texels dimmed by the configured mask colour."""
    problem = validate_config(config, reference, mesh)
    if problem is not None:
        return TransformResult.failure(problem)
    if reference is None:
        return TransformResult.failure(ErrorKind.INVALID_INPUT)
    mask = analyze_reference_usage(reference, mesh, config)
    if mask is None:
        return TransformResult.failure(ErrorKind.UNREADABLE_SOURCE)
    preview = masked_preview(reference, mask, config.mask_colour, config.mask_alpha)
    if preview is None:
        return TransformResult.failure(ErrorKind.INVALID_INPUT, mask)
    return TransformResult(preview, None, mask)


def extract_target_colour(
    reference: Optional[PixelBuffer],
    mask: Optional[UVUsageMask],
    u: float,
    v: float,
    seed: Optional[int] = SYNTHETIC_SEED,
) -> Tuple[float, float, float, float]:
    """
    Colour under UV (u, v) when that texel is mesh-used, otherwise the most
    dominant colour of the used area. Opaque white when neither exists.
    """
    if reference is None or not reference.is_valid() or mask is None:
        return OPAQUE_FALLBACK_RGBA
    w, h = reference.width, reference.height
    tx, ty = uv_to_texel((u, v), w, h)
    x = min(max(int(np.floor(tx)), 0), w - 1)
    row = min(max(int(np.floor(ty)), 0), h - 1)
    index = (h - 1 - row) * w + x

    if index < mask.used.size and mask.used[index]:
        px = reference.pixels[index]
        return (float(px[0]), float(px[1]), float(px[2]), float(px[3]))

    palette = extract_dominant_colours_from_mask(reference.pixels, mask.used, 1, seed=seed)
    if palette.shape[0] == 0:
        return OPAQUE_FALLBACK_RGBA
    top: Sequence[float] = palette[0]
    return (float(top[0]), float(top[1]), float(top[2]), float(top[3]))


__all__ = [
    "HighPrecisionConfig",
    "validate_config",
    "analyze_reference_usage",
    "process_with_high_precision",
    "high_precision_preview",
    "extract_target_colour",
]
