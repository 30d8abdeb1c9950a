# texcol/__init__.py
"""
texcol package.

Purpose:
  Texture colour adjustment: recolour an RGBA texture so its palette follows a
  reference texture or a picked colour pair. See texcol.py for the CLI.

Public API:
  transform            : whole-image statistical recolouring (4 modes).
  dual_colour_matching : move one picked colour onto another, keeping shading.
  apply_difference     : from->to colour balance with similarity weighting.
  process_with_high_precision : sample only the mesh-used part of a reference.
  DifferencePreviewCache      : single-slot cache for interactive previews.
  colour_convert : colour space transforms (rgb_to_lab, rgb_to_hsv, etc.).
  core_types     : shared types (PixelBuffer, TransformConfig, UVUsageMask, ...).
  uv_mask        : UV triangle rasterisation and usage masks.
  cluster        : k-means dominant colours and synthetic references.
  utils          : shared helpers (formatting, logging).

Quick start:
  from texcol import PixelBuffer, AdjustmentMode, transform
  out = transform(target, reference, 0.8, True, AdjustmentMode.ADAPTIVE)
"""

__version__ = "0.1.0"

# Re-export namespaces for convenience.
from . import colour_convert
from . import core_types
from . import statistics
from . import cluster
from . import uv_mask
from . import utils

from .core_types import (  # noqa: E402
    AdjustmentMode,
    BalanceMode,
    CacheDecision,
    ErrorKind,
    PixelBuffer,
    SampleQuality,
    TransformConfig,
    TransformResult,
    UVUsageMask,
)
from .transfer import (  # noqa: E402
    dual_colour_matching,
    post_adjust,
    ratio_preserving_replacement,
    transform,
    transform_to_colour,
    transform_with_main_colour,
)
from .difference import apply_difference, flood_fill_selection  # noqa: E402
from .high_precision import (  # noqa: E402
    HighPrecisionConfig,
    process_with_high_precision,
)
from .preview_cache import DifferencePreviewCache  # noqa: E402

__all__ = [
    "__version__",
    # namespaces
    "colour_convert",
    "core_types",
    "statistics",
    "cluster",
    "uv_mask",
    "utils",
    # types
    "AdjustmentMode",
    "BalanceMode",
    "CacheDecision",
    "ErrorKind",
    "PixelBuffer",
    "SampleQuality",
    "TransformConfig",
    "TransformResult",
    "UVUsageMask",
    "HighPrecisionConfig",
    # entry points
    "transform",
    "transform_to_colour",
    "transform_with_main_colour",
    "dual_colour_matching",
    "ratio_preserving_replacement",
    "post_adjust",
    "apply_difference",
    "flood_fill_selection",
    "process_with_high_precision",
    "DifferencePreviewCache",
]
