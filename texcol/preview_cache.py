# texcol/preview_cache.py
from __future__ import annotations

"""
Caller-owned single-slot cache for repeated difference-engine previews.

A preview UI typically re-runs apply_difference() with the same colours and
only nudges brightness/contrast/gamma. The slot keeps the shifted pixels and
blend weights from the last full run so such calls only redo the
post-process and blend, giving the same pixels as a full recompute.

Exports:
  DifferencePreviewCache
  source_fingerprint(buffer)
"""

import hashlib
import threading
from dataclasses import dataclass
from typing import Hashable, Optional, Sequence, Tuple, Union

import numpy as np

from .constants import CACHE_INTENSITY_TOLERANCE
from .core_types import (
    BalanceMode,
    BoolMask,
    CacheDecision,
    PixelBuffer,
    RGBAArray,
    TransformConfig,
    as_rgba,
    mask_matches,
)
from .difference import finish_pixels, shift_pixels

ColourLike = Union[Sequence[float], np.ndarray]


def source_fingerprint(buffer: PixelBuffer) -> str:
    """Content hash of a buffer's pixels and dimensions."""
    h = hashlib.blake2b(digest_size=16)
    h.update(f"{buffer.width}x{buffer.height}".encode("ascii"))
    h.update(np.ascontiguousarray(buffer.pixels, dtype=np.float32).tobytes())
    return h.hexdigest()


def _mask_fingerprint(mask: Optional[BoolMask]) -> Optional[str]:
    if mask is None:
        return None
    packed = np.packbits(np.asarray(mask, dtype=bool).reshape(-1))
    return hashlib.blake2b(packed.tobytes(), digest_size=16).hexdigest()


@dataclass(frozen=True)
class _CacheKey:
    source: Hashable
    from_colour: Tuple[float, ...]
    to_colour: Tuple[float, ...]
    balance_mode: BalanceMode
    selection_radius: float
    min_similarity: float
    mask: Optional[str]


@dataclass(frozen=True)
class _Slot:
    key: _CacheKey
    config: TransformConfig
    # intensity the shift stage ran at; post-process-only runs keep it
    shift_intensity: float
    shifted: RGBAArray
    weights: np.ndarray
    result: PixelBuffer


class DifferencePreviewCache:
    """
    One cached difference-engine run, guarded by a lock.

    The exact-match part of the key is the source (caller token or content
    fingerprint), both colours, balance mode, selection radius, min
    similarity and the selection mask. Intensity matches within
    CACHE_INTENSITY_TOLERANCE. Any other config change only needs the
    post-process step.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._slot: Optional[_Slot] = None

    # Key handling

    @staticmethod
    def _key(
        target: PixelBuffer,
        from_colour: ColourLike,
        to_colour: ColourLike,
        config: TransformConfig,
        selection_mask: Optional[BoolMask],
        source_token: Optional[Hashable],
    ) -> _CacheKey:
        return _CacheKey(
            source=source_token if source_token is not None else source_fingerprint(target),
            from_colour=tuple(float(c) for c in as_rgba(from_colour)),
            to_colour=tuple(float(c) for c in as_rgba(to_colour)),
            balance_mode=config.balance_mode,
            selection_radius=float(config.selection_radius),
            min_similarity=float(config.min_similarity),
            mask=_mask_fingerprint(selection_mask),
        )

    def _decide_locked(self, key: _CacheKey, config: TransformConfig) -> CacheDecision:
        slot = self._slot
        if slot is None or slot.key != key:
            return CacheDecision.FULL_RECOMPUTE
        if abs(slot.shift_intensity - config.intensity) > CACHE_INTENSITY_TOLERANCE:
            return CacheDecision.FULL_RECOMPUTE
        if slot.config == config:
            return CacheDecision.NO_OP
        return CacheDecision.POST_PROCESS_ONLY

    # Public API

    def decide(
        self,
        target: PixelBuffer,
        from_colour: ColourLike,
        to_colour: ColourLike,
        config: TransformConfig,
        selection_mask: Optional[BoolMask] = None,
        source_token: Optional[Hashable] = None,
    ) -> CacheDecision:
        """What process_incremental() would do for these inputs, without doing it."""
        key = self._key(target, from_colour, to_colour, config, selection_mask, source_token)
        with self._lock:
            return self._decide_locked(key, config)

    def process_incremental(
        self,
        target: Optional[PixelBuffer],
        from_colour: ColourLike,
        to_colour: ColourLike,
        config: TransformConfig,
        selection_mask: Optional[BoolMask] = None,
        source_token: Optional[Hashable] = None,
        force_full: bool = False,
    ) -> Tuple[Optional[PixelBuffer], CacheDecision]:
        """
        apply_difference() with reuse of the cached slot.

        Returns:
          (result buffer or None for invalid input, decision taken)
        """
        if target is None or not target.is_valid() or not mask_matches(target, selection_mask):
            return None, CacheDecision.FULL_RECOMPUTE

        key = self._key(target, from_colour, to_colour, config, selection_mask, source_token)
        with self._lock:
            decision = CacheDecision.FULL_RECOMPUTE if force_full else self._decide_locked(key, config)
            slot = self._slot

            if decision is CacheDecision.NO_OP and slot is not None:
                return slot.result.copy(), decision

            if decision is CacheDecision.POST_PROCESS_ONLY and slot is not None:
                shifted, weights = slot.shifted, slot.weights
                shift_intensity = slot.shift_intensity
            else:
                stage = shift_pixels(target.pixels, from_colour, to_colour, config)
                if stage is None:
                    self._slot = None
                    return target.copy(), CacheDecision.FULL_RECOMPUTE
                shifted, weights = stage
                shift_intensity = float(config.intensity)
                decision = CacheDecision.FULL_RECOMPUTE

            out = target.with_pixels(
                finish_pixels(target.pixels, shifted, weights, config, selection_mask)
            )
            self._slot = _Slot(key, config, shift_intensity, shifted, weights, out)
            return out.copy(), decision

    def clear(self) -> None:
        with self._lock:
            self._slot = None

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return self._slot is None


__all__ = ["DifferencePreviewCache", "source_fingerprint"]
