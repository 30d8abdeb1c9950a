from __future__ import annotations

from typing import Callable, Optional

import numpy as np
import pytest

from texcol.core_types import PixelBuffer


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def random_buffer(rng: np.random.Generator) -> Callable[..., PixelBuffer]:
    """Factory: opaque random texture with RGB drawn from [lo, hi]."""

    def make(width: int = 8, height: int = 8, lo: float = 0.0, hi: float = 1.0,
             alpha: Optional[np.ndarray] = None) -> PixelBuffer:
        n = width * height
        px = np.ones((n, 4), dtype=np.float32)
        px[:, :3] = rng.uniform(lo, hi, size=(n, 3))
        if alpha is not None:
            px[:, 3] = alpha
        return PixelBuffer(px, width, height)

    return make


@pytest.fixture
def half_transparent(random_buffer: Callable[..., PixelBuffer]) -> PixelBuffer:
    """8x8 texture: every 4th pixel fully transparent, every 4th+1 at alpha 0.5."""
    alpha = np.ones(64, dtype=np.float32)
    alpha[::4] = 0.0
    alpha[1::4] = 0.5
    return random_buffer(8, 8, 0.1, 0.9, alpha=alpha)
