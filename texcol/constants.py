# texcol/constants.py
"""
Global tunables used across the project.

- Transparency and colour-science constants
- Statistics / transfer constants
- Clustering (k-means) constants
- UV rasterisation constants
- Difference engine and preview cache constants
"""
from __future__ import annotations

import math
from typing import Tuple

# =========================
# Transparency
# =========================
ALPHA_THRESHOLD: float = 0.01
OPAQUE_FALLBACK_RGBA: Tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)

# =========================
# Colour science (D65)
# =========================
D65_WHITE: Tuple[float, float, float] = (0.95047, 1.00000, 1.08883)

RGB_TO_XYZ: Tuple[Tuple[float, float, float], ...] = (
    (0.4124564, 0.3575761, 0.1804375),
    (0.2126729, 0.7151522, 0.0721750),
    (0.0193339, 0.1191920, 0.9503041),
)
XYZ_TO_RGB: Tuple[Tuple[float, float, float], ...] = (
    (3.2404542, -1.5371385, -0.4985314),
    (-0.9692660, 1.8760108, 0.0415560),
    (0.0556434, -0.2040259, 1.0572252),
)

SRGB_LINEAR_THRESHOLD: float = 0.04045
SRGB_GAMMA_THRESHOLD: float = 0.0031308
LAB_DELTA: float = 6.0 / 29.0

LUMA_WEIGHTS: Tuple[float, float, float] = (0.299, 0.587, 0.114)
MAX_RGB_DISTANCE: float = math.sqrt(3.0)
MAX_LAB_DISTANCE: float = 100.0

# =========================
# Transfer
# =========================
HUE_SATURATION_MIN: float = 0.1
LUMINANCE_DAMPING: float = 0.5  # L* moves at half intensity when preserving luminance
ADAPTIVE_HISTOGRAM_SHARE: float = 0.7
ADAPTIVE_TRANSFER_SHARE: float = 0.3
ADAPTIVE_MIX: float = 0.5

DUAL_SELECTION_RANGE: float = 0.3
DUAL_MIN_RANGE_INFLUENCE: float = 0.1
DUAL_DISTANT_STRENGTH: float = 0.1
DUAL_LIGHTNESS_KEEP: float = 0.7

SINGLE_TRANSFER_SHARE: float = 0.5
SINGLE_ADAPTIVE_MIX: float = 0.6

RATIO_MIN_CHANNEL: float = 0.001
RATIO_MAX: float = 10.0
RATIO_DIRECT_INTENSITY: float = 0.8

MAIN_COLOUR_PROBABILITY: float = 0.6
MAIN_COLOUR_PALETTE_SIZE: int = 5

# =========================
# Clustering (k-means)
# =========================
KMEANS_ITERATIONS: int = 10
KMEANS_FAST_ITERATIONS: int = 5
KMEANS_FAST_STRIDE: int = 10
DEFAULT_DOMINANT_COLOURS: int = 5
SYNTHETIC_SEED: int = 42

# =========================
# UV rasterisation
# =========================
UV_DEGENERATE_AREA: float = 1e-6
BARYCENTRIC_TOLERANCE: float = 1e-6
BARYCENTRIC_MIN_DENOM: float = 1e-10
UV_CHANNELS: int = 4

# (dx, dy) offsets inside a texel
CENTRE_SAMPLE: Tuple[Tuple[float, float], ...] = ((0.5, 0.5),)
FIVE_SAMPLES: Tuple[Tuple[float, float], ...] = (
    (0.5, 0.5),
    (0.25, 0.25),
    (0.75, 0.25),
    (0.25, 0.75),
    (0.75, 0.75),
)

MASK_PREVIEW_COLOUR: Tuple[float, float, float, float] = (0.2, 0.2, 0.2, 0.3)
MASK_PREVIEW_ALPHA: float = 0.3
MASK_TEXTURE_THRESHOLD: float = 0.5

# =========================
# Difference engine
# =========================
ADVANCED_SIMILARITY_POWER: float = 2.0
ADVANCED_SCALE_MIN: float = 0.5
ADVANCED_SCALE_MAX: float = 1.5
ADVANCED_SECONDARY_MIX: float = 0.3

FLOOD_FILL_TOLERANCE: float = 0.1
FLOOD_FILL_MAX_ITERATIONS: int = 10000
OUTLINE_MIX: float = 0.7

# =========================
# Preview cache
# =========================
CACHE_INTENSITY_TOLERANCE: float = 0.01
