# texcol/cluster.py
from __future__ import annotations

"""
Dominant-colour extraction (k-means in RGB) and synthetic references.

Exports:
  extract_dominant_colours(pixels, k, fast=False, seed=None)
  extract_dominant_colours_from_mask(pixels, used, k, seed=None)
  synthetic_reference_from_used_areas(pixels, used, palette, weighted=True, seed=42)
  synthetic_reference_with_main_colour(pixels, main_colour, seed=42)

Centroid sets are float32 (k, 4) arrays with alpha fixed to 1, ordered by
cluster population (most dominant first). Seeding is explicit: an int gives
a reproducible run, None draws fresh entropy.
"""

from typing import Optional, Sequence, Union

import numpy as np

from .constants import (
    KMEANS_FAST_ITERATIONS,
    KMEANS_FAST_STRIDE,
    KMEANS_ITERATIONS,
    MAIN_COLOUR_PALETTE_SIZE,
    MAIN_COLOUR_PROBABILITY,
    SYNTHETIC_SEED,
)
from .core_types import BoolMask, PixelBuffer, RGBAArray, as_rgba
from .statistics import opaque_mask
from .utils import nearest_centroid_indices

PixelsLike = Union[PixelBuffer, RGBAArray]


def _rows(pixels: PixelsLike) -> np.ndarray:
    if isinstance(pixels, PixelBuffer):
        return pixels.pixels
    arr = np.asarray(pixels, dtype=np.float32)
    return arr.reshape(-1, arr.shape[-1]) if arr.size else np.zeros((0, 4), np.float32)


def _empty_palette() -> RGBAArray:
    return np.zeros((0, 4), dtype=np.float32)


# k-means


def extract_dominant_colours(
    pixels: PixelsLike,
    k: int,
    *,
    fast: bool = False,
    seed: Optional[int] = None,
) -> RGBAArray:
    """
    k-means over RGB.

    Centroids start as k uniformly sampled input pixels, then run a fixed
    number of assign/update rounds (KMEANS_ITERATIONS, or KMEANS_FAST_ITERATIONS
    over every KMEANS_FAST_STRIDE-th pixel when `fast`). A cluster that loses
    all its members keeps its previous centroid.

    Returns:
      float32 (k, 4), exactly k rows for k > 0 and non-empty input, else (0, 4)
    """
    rows = _rows(pixels)
    if k <= 0 or rows.shape[0] == 0:
        return _empty_palette()

    rng = np.random.default_rng(seed)
    sample = rows[::KMEANS_FAST_STRIDE] if fast else rows
    iterations = KMEANS_FAST_ITERATIONS if fast else KMEANS_ITERATIONS
    colours = sample[:, :3].astype(np.float64)

    centroids = rows[rng.integers(0, rows.shape[0], size=k), :3].astype(np.float64)
    labels = np.zeros(colours.shape[0], dtype=np.int64)

    for _ in range(iterations):
        labels = nearest_centroid_indices(colours, centroids)
        counts = np.bincount(labels, minlength=k)
        sums = np.zeros((k, 3), dtype=np.float64)
        np.add.at(sums, labels, colours)
        filled = counts > 0
        centroids[filled] = sums[filled] / counts[filled, None]

    # Final population for ordering, after the last update
    counts = np.bincount(nearest_centroid_indices(colours, centroids), minlength=k)
    order = np.argsort(-counts, kind="stable")

    out = np.ones((k, 4), dtype=np.float32)
    out[:, :3] = centroids[order]
    return out


def extract_dominant_colours_from_mask(
    pixels: PixelsLike,
    used: BoolMask,
    k: int,
    seed: Optional[int] = None,
) -> RGBAArray:
    """k-means restricted to texels that are both mask-used and opaque."""
    rows = _rows(pixels)
    mask = np.asarray(used, dtype=bool).reshape(-1)
    n = min(rows.shape[0], mask.shape[0])
    if n == 0:
        return _empty_palette()
    head = rows[:n]
    selected = head[mask[:n] & opaque_mask(head)]
    if selected.shape[0] == 0:
        return _empty_palette()
    return extract_dominant_colours(selected, k, seed=seed)


# Synthetic references


def synthetic_reference_from_used_areas(
    pixels: PixelsLike,
    used: BoolMask,
    palette: RGBAArray,
    weighted: bool = True,
    seed: Optional[int] = SYNTHETIC_SEED,
) -> RGBAArray:
    """
    Same-length copy of `pixels` where transparent texels and mask-used texels
    keep their value and every other texel is drawn from `palette`.
    With `weighted`, palette entry j is drawn with weight 1/(j+1).
    """
    rows = _rows(pixels)
    pal = np.asarray(palette, dtype=np.float32).reshape(-1, 4)
    out = rows.astype(np.float32, copy=True)
    if pal.shape[0] == 0 or rows.shape[0] == 0:
        return out

    mask = np.zeros(rows.shape[0], dtype=bool)
    flat = np.asarray(used, dtype=bool).reshape(-1)[: rows.shape[0]]
    mask[: flat.shape[0]] = flat
    fill = opaque_mask(rows) & ~mask

    count = int(np.count_nonzero(fill))
    if count == 0:
        return out

    rng = np.random.default_rng(seed)
    if weighted:
        weights = 1.0 / np.arange(1, pal.shape[0] + 1, dtype=np.float64)
        choice = rng.choice(pal.shape[0], size=count, p=weights / weights.sum())
    else:
        choice = rng.integers(0, pal.shape[0], size=count)
    out[fill] = pal[choice]
    return out


def synthetic_reference_with_main_colour(
    pixels: PixelsLike,
    main_colour: Union[Sequence[float], np.ndarray],
    seed: Optional[int] = SYNTHETIC_SEED,
) -> RGBAArray:
    """
    Reference of the same length as `pixels` where each entry is `main_colour`
    with probability MAIN_COLOUR_PROBABILITY, else one of the other dominant
    colours of `pixels` (the most dominant one is replaced by `main_colour`).
    """
    rows = _rows(pixels)
    main = as_rgba(main_colour)
    if rows.shape[0] == 0:
        return main[None, :].copy()

    palette = extract_dominant_colours(rows, MAIN_COLOUR_PALETTE_SIZE, fast=True, seed=seed)
    palette[0] = main

    rng = np.random.default_rng(seed)
    n = rows.shape[0]
    out = np.tile(main, (n, 1)).astype(np.float32)
    if palette.shape[0] > 1:
        others = rng.random(n) >= MAIN_COLOUR_PROBABILITY
        picks = rng.integers(1, palette.shape[0], size=n)
        out[others] = palette[picks[others]]
    return out


__all__ = [
    "extract_dominant_colours",
    "extract_dominant_colours_from_mask",
    "synthetic_reference_from_used_areas",
    "synthetic_reference_with_main_colour",
]
