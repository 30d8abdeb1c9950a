# texcol/utils.py
from __future__ import annotations

"""
Shared utilities for texcol.

Includes duration/number formatting for the CLI, the blocked nearest-centroid
lookup used by clustering, a colour usage report, and print-based logging.
Library code stays quiet unless a caller passes debug=True.
"""

import sys
from typing import Any, Iterable, List, Optional, TextIO, Tuple

import numpy as np

from .core_types import RGBAArray, rgba_to_hex

# Rows per block when computing pixel-to-centroid distances
_ASSIGN_BLOCK = 1 << 18


# Durations


def format_seconds_compact(seconds: float) -> str:
    """Stage timing: '12.5ms', '3.250s' or '2m 5.0s'."""
    if seconds >= 60.0:
        minutes, rest = divmod(seconds, 60.0)
        return f"{int(minutes)}m {rest:.1f}s"
    if seconds >= 1.0:
        return f"{seconds:.3f}s"
    return f"{seconds * 1e3:.1f}ms"


def format_total_duration_compact(seconds: float) -> str:
    """Whole-run timing, coarser than format_seconds_compact: '2m 5s', '3.2s', '12.5ms'."""
    if seconds >= 60.0:
        minutes, rest = divmod(seconds, 60.0)
        return f"{int(minutes)}m {int(round(rest))}s"
    if seconds >= 1.0:
        return f"{seconds:.1f}s"
    return f"{seconds * 1e3:.1f}ms"


# Values


def format_bool_on_off(value: Any) -> str:
    return ("on" if value else "off") if isinstance(value, bool) else str(value)


def format_number_compact(value: Any) -> str:
    """Ints with thousands separators, floats to at most 3 decimals, anything else as str()."""
    if isinstance(value, bool):
        return format_bool_on_off(value)
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        return f"{value:.3f}".rstrip("0").rstrip(".") or "0"
    return str(value)


def format_percentage(percent: float, decimals: int = 1) -> str:
    """A value already on the 0..100 scale (usage masks report that way)."""
    return f"{percent:.{decimals}f}%"


def key_value_pairs_to_string(
    pairs: Iterable[Tuple[str, Any]], sep: str = "  ", eq: str = ": "
) -> str:
    """'Name: value' blocks joined by `sep`, e.g. 'Mode: hue  Intensity: 0.8  Luminance: on'."""
    return sep.join(f"{name}{eq}{format_number_compact(value)}" for name, value in pairs)


# Colour helpers


def nearest_centroid_indices(colours: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    For each colour row, index of the nearest centroid row (Euclidean).
    Works in blocks so large textures never build an (N, k, 3) tensor.
    """
    src = np.asarray(colours, dtype=np.float64)[:, :3]
    cen = np.asarray(centroids, dtype=np.float64)[:, :3]
    out = np.empty(src.shape[0], dtype=np.int64)
    cen_sq = np.sum(cen * cen, axis=1)
    for start in range(0, src.shape[0], _ASSIGN_BLOCK):
        block = src[start : start + _ASSIGN_BLOCK]
        dist2 = cen_sq[None, :] - 2.0 * (block @ cen.T)
        out[start : start + block.shape[0]] = np.argmin(dist2, axis=1)
    return out


def colour_usage_report(
    pixels: RGBAArray, palette: RGBAArray, visible: np.ndarray
) -> List[Tuple[str, int]]:
    """
    Count visible pixels by nearest palette colour.

    Returns a list of (hex, count) sorted by count descending.
    """
    pal = np.asarray(palette)
    if pal.shape[0] == 0 or not np.any(visible):
        return []
    idx = nearest_centroid_indices(np.asarray(pixels)[visible], pal)
    counts = np.bincount(idx, minlength=pal.shape[0])
    report: List[Tuple[str, int]] = []
    for row, count in sorted(zip(pal, counts), key=lambda x: -int(x[1])):
        report.append((rgba_to_hex(row), int(count)))
    return report


# Logging


def _emit(message: str, prefix: str = "", stream: Optional[TextIO] = None) -> None:
    # stdout is looked up per call so redirect_stdout() captures folder jobs
    print(f"{prefix}{message}", file=stream or sys.stdout, flush=True)


def enable_line_buffered_stdout() -> None:
    """Flush stdout per line where the stream supports reconfigure()."""
    reconfig = getattr(sys.stdout, "reconfigure", None)
    if callable(reconfig):
        try:
            reconfig(line_buffering=True, write_through=True)
        except (AttributeError, OSError, ValueError):
            pass


def print_config_line(
    section: str, pairs: Iterable[Tuple[str, Any]], debug: bool
) -> None:
    """
    One config line, e.g. '[texcol] Op: reference  Intensity: 0.8  Mode: hue'.
    Goes through debug_log() when debug=True, else log().
    """
    line = f"[{section}] {key_value_pairs_to_string(pairs)}"
    (debug_log if debug else log)(line)


def print_banner(title: str) -> None:
    _emit(f"\n=== {title} ===")


def log(message: str) -> None:
    _emit(message)


def debug_log(message: str) -> None:
    _emit(message, "[debug] ")


def warn(message: str) -> None:
    _emit(message, "[warn] ")


def error(message: str) -> None:
    """Errors go to stderr so piped output stays clean."""
    _emit(message, "[error] ", sys.stderr)


__all__ = [
    # formatting
    "format_seconds_compact",
    "format_total_duration_compact",
    "format_bool_on_off",
    "format_number_compact",
    "format_percentage",
    "key_value_pairs_to_string",
    # colour helpers
    "nearest_centroid_indices",
    "colour_usage_report",
    # logging
    "enable_line_buffered_stdout",
    "print_config_line",
    "print_banner",
    "log",
    "debug_log",
    "warn",
    "error",
]
