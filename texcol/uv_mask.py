# texcol/uv_mask.py
from __future__ import annotations

"""
Mesh UV -> texel usage masks.

Exports:
  uv_to_texel(uv, width, height)
  rasterize_triangle(mask, uv0, uv1, uv2, quality)
  analyze_usage(triangles, width, height, quality)
  MeshUVData, material_slot_indices(materials, material_index)
  analyze_mesh_usage(mesh, width, height, material_index, uv_channel, quality)
  usage_mask_from_buffer(mask_buffer, threshold) / mask_to_buffer(mask)
  composite_used_areas(original, adjusted, mask)
  masked_preview(source, mask, mask_colour, mask_alpha)
  describe_usage(mask)

Coordinates:
  UV (0,0) is the bottom-left of the texture. Rasterisation runs in a
  top-left texel space (x = u*W, y = (1-v)*H) and covered texels are written
  to mask index (H-1-row)*W + x, the same bottom-origin layout PixelBuffer uses.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .colour_convert import luminance
from .constants import (
    BARYCENTRIC_MIN_DENOM,
    BARYCENTRIC_TOLERANCE,
    CENTRE_SAMPLE,
    FIVE_SAMPLES,
    MASK_PREVIEW_ALPHA,
    MASK_PREVIEW_COLOUR,
    MASK_TEXTURE_THRESHOLD,
    UV_CHANNELS,
    UV_DEGENERATE_AREA,
)
from .core_types import (
    UV,
    PixelBuffer,
    SampleQuality,
    UVBounds,
    UVUsageMask,
    as_rgba,
)
from .utils import debug_log, format_percentage

# Texel rows rasterised per block for large triangles
_ROW_BLOCK = 256


# UV helpers


def _wrap(values: np.ndarray) -> np.ndarray:
    """Wrap coordinates outside [0,1] modulo 1; in-range values (1.0 included) stay put."""
    vals = np.asarray(values, dtype=np.float64)
    outside = (vals < 0.0) | (vals > 1.0)
    return np.where(outside, np.mod(vals, 1.0), vals)


def uv_to_texel(uv: Sequence[float], width: int, height: int) -> Tuple[float, float]:
    """Continuous top-left texel position of a (wrapped) UV."""
    u, v = _wrap(np.asarray(uv[:2], dtype=np.float64))
    return float(u * width), float((1.0 - v) * height)


def _sample_offsets(quality: SampleQuality) -> np.ndarray:
    return np.asarray(FIVE_SAMPLES if quality is SampleQuality.FIVE else CENTRE_SAMPLE)


def _uv_area(uv0: np.ndarray, uv1: np.ndarray, uv2: np.ndarray) -> float:
    return abs(
        (uv1[0] - uv0[0]) * (uv2[1] - uv0[1]) - (uv2[0] - uv0[0]) * (uv1[1] - uv0[1])
    )


# Rasterisation


def rasterize_triangle(
    mask: UVUsageMask,
    uv0: UV,
    uv1: UV,
    uv2: UV,
    quality: SampleQuality = SampleQuality.FIVE,
) -> bool:
    """
    Mark texels covered by one UV triangle in `mask.used` (in place).

    A texel is covered when any of its sample points passes a barycentric
    containment test with tolerance BARYCENTRIC_TOLERANCE. Triangles whose UV
    area is below UV_DEGENERATE_AREA are skipped.

    Returns:
      False when the triangle was skipped as degenerate, else True.
      `mask.used_uvs` is left alone; analyze_usage() maintains it.
    """
    width, height = mask.width, mask.height
    if width <= 0 or height <= 0:
        return False

    uvs = _wrap(np.asarray([uv0, uv1, uv2], dtype=np.float64)[:, :2])
    if _uv_area(uvs[0], uvs[1], uvs[2]) < UV_DEGENERATE_AREA:
        return False

    pts = np.empty((3, 2), dtype=np.float64)
    pts[:, 0] = uvs[:, 0] * width
    pts[:, 1] = (1.0 - uvs[:, 1]) * height
    a, b, c = pts

    v0 = c - a
    v1 = b - a
    dot00 = float(v0 @ v0)
    dot01 = float(v0 @ v1)
    dot11 = float(v1 @ v1)
    denom = dot00 * dot11 - dot01 * dot01
    if abs(denom) < BARYCENTRIC_MIN_DENOM:
        return True
    inv = 1.0 / denom

    floor_pts = np.floor(pts).astype(np.int64)
    min_x = max(0, int(floor_pts[:, 0].min()) - 1)
    max_x = min(width - 1, int(floor_pts[:, 0].max()) + 1)
    min_y = max(0, int(floor_pts[:, 1].min()) - 1)
    max_y = min(height - 1, int(floor_pts[:, 1].max()) + 1)
    if min_x > max_x or min_y > max_y:
        return True

    xs = np.arange(min_x, max_x + 1, dtype=np.float64)
    offsets = _sample_offsets(quality)
    tol = BARYCENTRIC_TOLERANCE
    used2d = mask.used.reshape(height, width)

    for top in range(min_y, max_y + 1, _ROW_BLOCK):
        bottom = min(max_y, top + _ROW_BLOCK - 1)
        ys = np.arange(top, bottom + 1, dtype=np.float64)
        covered = np.zeros((ys.size, xs.size), dtype=bool)
        for dx, dy in offsets:
            px = xs[None, :] + dx - a[0]
            py = ys[:, None] + dy - a[1]
            dot02 = v0[0] * px + v0[1] * py
            dot12 = v1[0] * px + v1[1] * py
            bu = (dot11 * dot02 - dot01 * dot12) * inv
            bv = (dot00 * dot12 - dot01 * dot02) * inv
            covered |= (bu >= -tol) & (bv >= -tol) & (bu + bv <= 1.0 + tol)
        if not covered.any():
            continue
        # top-left row r lives at buffer row (height-1-r)
        rows = (height - 1) - np.arange(top, bottom + 1)
        used2d[rows, min_x : max_x + 1] |= covered
    return True


def _finalise(mask: UVUsageMask, uvs: List[np.ndarray]) -> UVUsageMask:
    total = mask.used.size
    mask.usage_percentage = (100.0 * mask.used_count / total) if total else 0.0
    if uvs:
        mask.used_uvs = np.concatenate(uvs, axis=0).astype(np.float32)
        lo = mask.used_uvs.min(axis=0)
        hi = mask.used_uvs.max(axis=0)
        mask.uv_bounds = UVBounds(float(lo[0]), float(lo[1]), float(hi[0]), float(hi[1]))
    return mask


def _empty_mask(width: int, height: int) -> UVUsageMask:
    return UVUsageMask(max(int(width), 0), max(int(height), 0))


def analyze_usage(
    triangles: Iterable[Sequence[Sequence[float]]],
    width: int,
    height: int,
    quality: SampleQuality = SampleQuality.FIVE,
    debug: bool = False,
) -> UVUsageMask:
    """
    Rasterise UV triangles into a usage mask for a width x height texture.

    Args:
      triangles: iterable of three (u, v) pairs, or an array (T, 3, 2)
      quality: SampleQuality.SINGLE (texel centre) or FIVE (centre + quadrants)
    Returns:
      UVUsageMask with usage percentage and UV bounds over non-degenerate triangles
    """
    mask = _empty_mask(width, height)
    if mask.width == 0 or mask.height == 0:
        return mask
    uvs: List[np.ndarray] = []
    skipped = 0
    for tri in triangles:
        t = np.asarray(tri, dtype=np.float64).reshape(3, -1)[:, :2]
        if rasterize_triangle(mask, t[0], t[1], t[2], quality):
            uvs.append(_wrap(t))
        else:
            skipped += 1
    _finalise(mask, uvs)
    if debug:
        debug_log(
            f"uv usage: {len(uvs)} triangles, {skipped} degenerate, "
            f"{mask.used_count}/{mask.used.size} texels ({format_percentage(mask.usage_percentage)})"
        )
    return mask


# Meshes with submeshes / material slots


@dataclass
class MeshUVData:
    """
    Mesh data needed for usage analysis.

    uv_sets: up to four per-vertex UV arrays (V, 2); None for a missing channel
    submeshes: flat triangle index arrays, one per submesh
    materials: material name per slot (None for an empty slot)
    """

    uv_sets: List[Optional[np.ndarray]] = field(default_factory=list)
    submeshes: List[np.ndarray] = field(default_factory=list)
    materials: List[Optional[str]] = field(default_factory=list)

    def uv_set(self, channel: int) -> Optional[np.ndarray]:
        """UVs for `channel`; channels outside 0..3 or missing fall back to channel 0."""
        chosen: Optional[np.ndarray] = None
        if 0 <= channel < min(UV_CHANNELS, len(self.uv_sets)):
            chosen = self.uv_sets[channel]
        if (chosen is None or len(chosen) == 0) and self.uv_sets:
            chosen = self.uv_sets[0]
        if chosen is None or len(chosen) == 0:
            return None
        return np.asarray(chosen, dtype=np.float64).reshape(-1, 2)

    def triangles_for(self, slot: int, uvs: np.ndarray) -> np.ndarray:
        """(T, 3, 2) UV triangles of one submesh; indices past the UV array are dropped."""
        if slot < 0 or slot >= len(self.submeshes):
            return np.zeros((0, 3, 2), dtype=np.float64)
        idx = np.asarray(self.submeshes[slot], dtype=np.int64).reshape(-1)
        idx = idx[: (idx.size // 3) * 3].reshape(-1, 3)
        ok = np.all((idx >= 0) & (idx < uvs.shape[0]), axis=1)
        return uvs[idx[ok]]


def material_slot_indices(materials: Sequence[Optional[str]], material_index: int) -> List[int]:
    """Every slot whose material name equals that of `material_index`."""
    if material_index < 0 or material_index >= len(materials):
        return []
    name = materials[material_index]
    if name is None:
        return []
    return [i for i, other in enumerate(materials) if other is not None and other == name]


def analyze_mesh_usage(
    mesh: Optional[MeshUVData],
    width: int,
    height: int,
    material_index: int = 0,
    uv_channel: int = 0,
    quality: SampleQuality = SampleQuality.FIVE,
    debug: bool = False,
) -> UVUsageMask:
    """
    Union of every submesh drawn with the same material as `material_index`.
    A mesh without material names uses only the submesh at `material_index`.
    """
    if mesh is None:
        return _empty_mask(width, height)
    uvs = mesh.uv_set(uv_channel)
    if uvs is None:
        if debug:
            debug_log(f"uv usage: mesh has no UVs on channel {uv_channel}")
        return _empty_mask(width, height)

    if mesh.materials:
        slots = material_slot_indices(mesh.materials, material_index)
    else:
        slots = [material_index] if 0 <= material_index < len(mesh.submeshes) else []

    parts = [mesh.triangles_for(s, uvs) for s in slots]
    tris = np.concatenate(parts, axis=0) if parts else np.zeros((0, 3, 2))
    if debug:
        debug_log(f"uv usage: slots {slots} -> {tris.shape[0]} triangles")
    return analyze_usage(tris, width, height, quality, debug=debug)


# External mask textures


def usage_mask_from_buffer(
    mask_buffer: Optional[PixelBuffer], threshold: float = MASK_TEXTURE_THRESHOLD
) -> Optional[UVUsageMask]:
    """
    Usage mask from a painted mask texture: a texel is used when its
    luminance is at least `threshold`. Bounds span the used texel centres.
    """
    if mask_buffer is None or not mask_buffer.is_valid():
        return None
    w, h = mask_buffer.width, mask_buffer.height
    mask = UVUsageMask(w, h, used=luminance(mask_buffer.pixels) >= threshold)
    total = mask.used.size
    mask.usage_percentage = 100.0 * mask.used_count / total
    idx = np.flatnonzero(mask.used)
    if idx.size:
        u = (idx % w + 0.5) / w
        v = (idx // w + 0.5) / h
        mask.uv_bounds = UVBounds(float(u.min()), float(v.min()), float(u.max()), float(v.max()))
    return mask


def mask_to_buffer(mask: UVUsageMask) -> PixelBuffer:
    """Opaque white for used texels, opaque black elsewhere."""
    px = np.zeros((mask.used.size, 4), dtype=np.float32)
    px[mask.used, :3] = 1.0
    px[:, 3] = 1.0
    return PixelBuffer(px, mask.width, mask.height)


# Applying masks


def _mask_fits(buffer: Optional[PixelBuffer], mask: Optional[UVUsageMask]) -> bool:
    return (
        buffer is not None
        and mask is not None
        and buffer.is_valid()
        and mask.width == buffer.width
        and mask.height == buffer.height
        and mask.used.size == buffer.size
    )


def composite_used_areas(
    original: Optional[PixelBuffer],
    adjusted: Optional[PixelBuffer],
    mask: Optional[UVUsageMask],
) -> Optional[PixelBuffer]:
    """Adjusted pixels inside used texels, original pixels everywhere else."""
    if original is None or adjusted is None or mask is None:
        return None
    if not (_mask_fits(original, mask) and _mask_fits(adjusted, mask)):
        return None
    out = np.where(mask.used[:, None], adjusted.pixels, original.pixels)
    return original.with_pixels(out)


def masked_preview(
    source: Optional[PixelBuffer],
    mask: Optional[UVUsageMask],
    mask_colour: Sequence[float] = MASK_PREVIEW_COLOUR,
    mask_alpha: float = MASK_PREVIEW_ALPHA,
) -> Optional[PixelBuffer]:
    """Unused texels are pulled toward `mask_colour` by `mask_alpha`; used texels are untouched."""
    if source is None or mask is None or not _mask_fits(source, mask):
        return None
    colour = as_rgba(mask_colour)
    t = float(np.clip(mask_alpha, 0.0, 1.0))
    out = source.pixels.copy()
    unused = ~mask.used
    out[unused] = out[unused] + (colour - out[unused]) * t
    return source.with_pixels(out)


def describe_usage(mask: Optional[UVUsageMask]) -> str:
    """Human-readable usage summary, one fact per line."""
    if mask is None:
        return "No data available"
    b = mask.uv_bounds
    size_u, size_v = b.size
    return (
        f"UV Usage: {mask.usage_percentage:.1f}%\n"
        f"Used Triangles: {mask.triangle_count}\n"
        f"UV Bounds: ({b.min_u:.2f}, {b.min_v:.2f}) - ({b.max_u:.2f}, {b.max_v:.2f})\n"
        f"Coverage Area: {size_u:.2f} x {size_v:.2f}"
    )


__all__ = [
    "uv_to_texel",
    "rasterize_triangle",
    "analyze_usage",
    "MeshUVData",
    "material_slot_indices",
    "analyze_mesh_usage",
    "usage_mask_from_buffer",
    "mask_to_buffer",
    "composite_used_areas",
    "masked_preview",
    "describe_usage",
]
