# texcol/core_types.py
from __future__ import annotations

"""
Core type aliases, small value objects, and lightweight helpers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

# Basic aliases

RGBATuple = Tuple[float, float, float, float]
UV = Tuple[float, float]
UVTriangle = Tuple[UV, UV, UV]

RGBAArray = NDArray[np.float32]  # (N, 4) in 0..1
RGBArray = NDArray[np.float32]  # (..., 3) in 0..1
Lab = NDArray[np.float32]  # (..., 3) CIE Lab
Hsv = NDArray[np.float32]  # (..., 3) hue degrees, sat, value
BoolMask = NDArray[np.bool_]  # (N,)

# Enums


class AdjustmentMode(Enum):
    """Whole-image statistical recolouring strategies."""

    LAB_HISTOGRAM_MATCHING = "histogram"
    HUE_SHIFT = "hue"
    COLOR_TRANSFER = "transfer"
    ADAPTIVE = "adaptive"


class BalanceMode(Enum):
    """How strongly a from->to delta applies based on similarity to 'from'."""

    SIMPLE = "simple"
    WEIGHTED = "weighted"
    ADVANCED = "advanced"


class SampleQuality(Enum):
    """Coverage samples per texel when rasterising UV triangles."""

    SINGLE = 1
    FIVE = 5


class ErrorKind(Enum):
    INVALID_INPUT = "invalid_input"
    NO_USABLE_REFERENCE_AREA = "no_usable_reference_area"
    UNREADABLE_SOURCE = "unreadable_source"


class CacheDecision(Enum):
    FULL_RECOMPUTE = "full"
    POST_PROCESS_ONLY = "post_process"
    NO_OP = "no_op"


# Value objects


@dataclass(frozen=True)
class PixelBuffer:
    """
    Flat RGBA texture: pixels[(y * width) + x], y counted from the bottom row.
    The array is float32 (N, 4) with channels in 0..1.
    """

    pixels: RGBAArray
    width: int
    height: int

    def is_valid(self) -> bool:
        px = self.pixels
        return (
            isinstance(px, np.ndarray)
            and px.ndim == 2
            and px.shape[1] == 4
            and self.width > 0
            and self.height > 0
            and px.shape[0] == self.width * self.height
        )

    @property
    def size(self) -> int:
        return int(self.width * self.height)

    def with_pixels(self, pixels: np.ndarray) -> "PixelBuffer":
        """New buffer with the same dimensions and the given pixels."""
        return PixelBuffer(
            np.ascontiguousarray(pixels, dtype=np.float32), self.width, self.height
        )

    def copy(self) -> "PixelBuffer":
        return self.with_pixels(self.pixels.copy())

    @classmethod
    def from_array(
        cls, values: Union[Sequence[Sequence[float]], np.ndarray], width: int, height: int
    ) -> "PixelBuffer":
        """Build from any (N,3|4) array-like; missing alpha becomes 1."""
        arr = np.asarray(values, dtype=np.float32).reshape(-1, np.shape(values)[-1])
        if arr.shape[1] == 3:
            arr = np.concatenate([arr, np.ones((arr.shape[0], 1), np.float32)], axis=1)
        return cls(np.ascontiguousarray(arr), int(width), int(height))

    @classmethod
    def filled(cls, rgba: Sequence[float], width: int, height: int) -> "PixelBuffer":
        arr = np.tile(np.asarray(rgba, dtype=np.float32), (width * height, 1))
        return cls(arr, int(width), int(height))


@dataclass(frozen=True)
class ChannelStatistics:
    """Per-channel mean and population standard deviation (3 channels)."""

    mean: NDArray[np.float64]  # shape (3,)
    std: NDArray[np.float64]  # shape (3,)
    count: int = 0

    @classmethod
    def zeros(cls) -> "ChannelStatistics":
        return cls(np.zeros(3), np.zeros(3), 0)


@dataclass(frozen=True)
class TransformConfig:
    """Difference-engine settings; replace() between calls instead of mutating."""

    balance_mode: BalanceMode = BalanceMode.WEIGHTED
    intensity: float = 1.0
    selection_radius: float = 1.0
    min_similarity: float = 0.1
    brightness: float = 1.0
    contrast: float = 1.0
    gamma: float = 1.0
    transparency: float = 0.0

    @property
    def has_adjustments(self) -> bool:
        return (
            self.brightness != 1.0
            or self.contrast != 1.0
            or self.gamma != 1.0
            or self.transparency > 0.0
        )


@dataclass(frozen=True)
class UVBounds:
    """Axis-aligned bounds in UV space."""

    min_u: float = 0.0
    min_v: float = 0.0
    max_u: float = 0.0
    max_v: float = 0.0

    @property
    def center(self) -> UV:
        return (0.5 * (self.min_u + self.max_u), 0.5 * (self.min_v + self.max_v))

    @property
    def size(self) -> UV:
        return (self.max_u - self.min_u, self.max_v - self.min_v)


@dataclass
class UVUsageMask:
    """Texel usage bitset for one texture plus summary statistics."""

    width: int
    height: int
    used: BoolMask = field(default=None)  # type: ignore[assignment]
    usage_percentage: float = 0.0
    used_uvs: NDArray[np.float32] = field(default=None)  # type: ignore[assignment]
    uv_bounds: UVBounds = field(default_factory=UVBounds)

    def __post_init__(self) -> None:
        if self.used is None:
            self.used = np.zeros(self.width * self.height, dtype=bool)
        if self.used_uvs is None:
            self.used_uvs = np.zeros((0, 2), dtype=np.float32)

    @property
    def used_count(self) -> int:
        return int(np.count_nonzero(self.used))

    @property
    def triangle_count(self) -> int:
        return int(self.used_uvs.shape[0] // 3)

    def is_used(self, x: int, y: int) -> bool:
        """Texel test with y counted from the bottom row."""
        return bool(self.used[y * self.width + x])


@dataclass(frozen=True)
class TransformResult:
    """Outcome of a pipeline that can fail for a nameable reason."""

    buffer: Optional[PixelBuffer] = None
    error: Optional[ErrorKind] = None
    mask: Optional[UVUsageMask] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.buffer is not None

    @classmethod
    def failure(cls, kind: ErrorKind, mask: Optional[UVUsageMask] = None) -> "TransformResult":
        return cls(None, kind, mask)


# Small helpers


def clamp_value(value: float, lo: float, hi: float) -> float:
    """Clamp value to [lo, hi]."""
    return lo if value < lo else hi if value > hi else value


def hue_difference_degrees(hue_a: float, hue_b: float) -> float:
    """Minimal absolute difference between two hues in degrees (0..180]."""
    d = abs((hue_a - hue_b) % 360.0)
    return 360.0 - d if d > 180.0 else d


def hex_to_rgba(hex_str: str) -> RGBATuple:
    """Parse '#rgb', '#rrggbb' or '#rrggbbaa' into floats in 0..1."""
    s = hex_str.strip().lower()
    if not s.startswith("#"):
        s = f"#{s}"
    if len(s) == 4:
        r, g, b = s[1], s[2], s[3]
        s = f"#{r}{r}{g}{g}{b}{b}"
    if len(s) == 7:
        s = s + "ff"
    if len(s) != 9:
        raise ValueError("hex must be '#rgb', '#rrggbb' or '#rrggbbaa'")
    try:
        parts = [int(s[i : i + 2], 16) / 255.0 for i in (1, 3, 5, 7)]
    except ValueError as exc:
        raise ValueError(f"invalid hex colour {hex_str!r}") from exc
    return (parts[0], parts[1], parts[2], parts[3])


def rgba_to_hex(rgba: Sequence[float]) -> str:
    """Float RGB(A) in 0..1 to lowercase '#rrggbb'."""
    vals = [int(round(clamp_value(float(c), 0.0, 1.0) * 255.0)) for c in rgba[:3]]
    return f"#{vals[0]:02x}{vals[1]:02x}{vals[2]:02x}"


def as_rgba(colour: Union[Sequence[float], np.ndarray]) -> NDArray[np.float32]:
    """Coerce a 3- or 4-length colour to a float32 (4,) row; alpha defaults to 1."""
    arr = np.asarray(colour, dtype=np.float32).reshape(-1)
    if arr.size == 3:
        return np.append(arr, np.float32(1.0)).astype(np.float32)
    if arr.size != 4:
        raise ValueError("colour must have 3 or 4 components")
    return arr


def assert_rgba_array(pixels: np.ndarray) -> RGBAArray:
    """Validate a float (N,4) array and return it typed as RGBAArray."""
    if not isinstance(pixels, np.ndarray) or pixels.ndim != 2 or pixels.shape[1] != 4:
        raise TypeError("expected float (N,4) RGBA array")
    return pixels.astype(np.float32, copy=False)


def mask_matches(buffer: PixelBuffer, mask: Optional[np.ndarray]) -> bool:
    """True when mask is absent or has one entry per texel."""
    return mask is None or int(np.asarray(mask).size) == buffer.size


__all__ = [
    # aliases / types
    "RGBATuple",
    "UV",
    "UVTriangle",
    "RGBAArray",
    "RGBArray",
    "Lab",
    "Hsv",
    "BoolMask",
    # enums
    "AdjustmentMode",
    "BalanceMode",
    "SampleQuality",
    "ErrorKind",
    "CacheDecision",
    # value objects
    "PixelBuffer",
    "ChannelStatistics",
    "TransformConfig",
    "UVBounds",
    "UVUsageMask",
    "TransformResult",
    # helpers
    "clamp_value",
    "hue_difference_degrees",
    "hex_to_rgba",
    "rgba_to_hex",
    "as_rgba",
    "assert_rgba_array",
    "mask_matches",
]
