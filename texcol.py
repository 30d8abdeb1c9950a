#!/usr/bin/env python3
"""
texcol.py
Recolour RGBA textures toward a reference texture or a picked colour pair.

Usage:
  python texcol.py TARGET [--reference REF] [--mode histogram|hue|transfer|adaptive]
                   [--intensity F] [--preserve-luminance] [--out PATH] [--debug]

Operations (picked from the flags given):
  reference      : statistical transfer from REF (--mode picks the strategy).
  mask           : like reference, but REF is only sampled where --mask is white.
  main colour    : reference with --main-colour dominating the statistics.
  single colour  : --colour pulls the whole texture toward one colour.
  dual colour    : --target-colour moves onto --reference-colour, shading kept.
                   --ratio switches to ratio-preserving replacement.
  difference     : --from-colour/--to-colour shifted with a balance policy and
                   brightness/contrast/gamma/transparency post-processing.

Input:
  Any Pillow-readable image. Alpha is preserved; transparent pixels pass through.

Output:
  PNG. If --out is omitted, writes <stem>_texcol.png next to TARGET.
  A folder TARGET processes every image inside it.
"""

from __future__ import annotations

import argparse
import io
import os
import sys
import time
from contextlib import redirect_stdout
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, List, Optional, Tuple

import numpy as np

from texcol.cluster import extract_dominant_colours
from texcol.core_types import (
    AdjustmentMode,
    BalanceMode,
    PixelBuffer,
    TransformConfig,
    hex_to_rgba,
)
from texcol.difference import apply_difference
from texcol.high_precision import HighPrecisionConfig, process_with_high_precision
from texcol.image_io import load_pixel_buffer, save_pixel_buffer
from texcol.statistics import opaque_mask
from texcol.transfer import (
    dual_colour_matching,
    post_adjust,
    ratio_preserving_replacement,
    transform,
    transform_to_colour,
    transform_with_main_colour,
)
from texcol.utils import (
    # formatting
    format_seconds_compact,
    format_total_duration_compact,
    format_percentage,
    key_value_pairs_to_string,
    colour_usage_report,
    # pretty logging
    print_banner,
    print_config_line,
    log,
    debug_log,
    error,
    enable_line_buffered_stdout,
)
from texcol.uv_mask import describe_usage

OUTPUT_SUFFIX = "_texcol"
IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".webp", ".tga", ".bmp"}


class CliError(Exception):
    """Bad flag combination or unusable input; reported with exit code 2."""


# CLI args & small helpers


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments.

    Returns:
      argparse.Namespace; colour flags stay as hex strings until _colour().
    """
    parser = argparse.ArgumentParser(
        prog="texcol",
        description="Recolour texture(s) toward a reference or a colour pair.",
    )
    parser.add_argument("target", type=Path, help="Texture or folder to recolour")
    parser.add_argument("--out", type=Path, default=None, help="Output file (single input) or directory")
    parser.add_argument("--reference", type=Path, default=None, help="Reference texture")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in AdjustmentMode],
        default=AdjustmentMode.ADAPTIVE.value,
        help="Statistical transfer mode.",
    )
    parser.add_argument("--intensity", type=float, default=1.0, help="0..1 effect strength")
    parser.add_argument("--preserve-luminance", action="store_true", help="Keep the target's lightness")
    parser.add_argument("--mask", type=Path, default=None, help="Mask texture: white = sample the reference here")
    parser.add_argument("--mask-threshold", type=float, default=0.5, help="Mask luminance threshold")
    parser.add_argument("--colours", type=int, default=5, help="Dominant colours for --mask sampling")
    parser.add_argument("--main-colour", default=None, help="Hex colour to dominate the reference")
    parser.add_argument("--colour", default=None, help="Hex colour to pull the whole texture toward")
    parser.add_argument("--target-colour", default=None, help="Picked hex colour in the target")
    parser.add_argument("--reference-colour", default=None, help="Hex colour the picked colour becomes")
    parser.add_argument("--selection-range", type=float, default=0.3, help="Reach of the dual-colour pull")
    parser.add_argument("--ratio", action="store_true", help="Ratio-preserving replacement for the colour pair")
    parser.add_argument("--from-colour", default=None, help="Difference mode: source hex colour")
    parser.add_argument("--to-colour", default=None, help="Difference mode: destination hex colour")
    parser.add_argument(
        "--balance",
        choices=[m.value for m in BalanceMode],
        default=BalanceMode.WEIGHTED.value,
        help="Difference mode balance policy.",
    )
    parser.add_argument("--radius", type=float, default=1.0, help="Difference selection radius")
    parser.add_argument("--min-similarity", type=float, default=0.1, help="Difference strength floor")
    parser.add_argument("--brightness", type=float, default=1.0)
    parser.add_argument("--contrast", type=float, default=1.0)
    parser.add_argument("--gamma", type=float, default=1.0)
    parser.add_argument("--transparency", type=float, default=0.0)
    parser.add_argument("--hue-shift", type=float, default=0.0, help="Post-adjust hue rotation (degrees)")
    parser.add_argument("--saturation", type=float, default=1.0, help="Post-adjust saturation multiplier")
    parser.add_argument("--palette", type=int, default=0, help="Report the top-K colours of the result")
    parser.add_argument("--seed", type=int, default=42, help="Seed for sampling/clustering")
    parser.add_argument("--jobs", type=int, default=1, help="Files processed in parallel (folders)")
    parser.add_argument("--debug", action="store_true", help="Verbose details")
    return parser.parse_args(argv)


def _colour(text: Optional[str], flag: str) -> Optional[Tuple[float, float, float, float]]:
    if text is None:
        return None
    try:
        return hex_to_rgba(text)
    except ValueError as exc:
        raise CliError(f"{flag}: {exc}") from exc


def _operation(args: argparse.Namespace) -> str:
    """Pick the operation implied by the flags, or raise CliError."""
    if args.from_colour or args.to_colour:
        if not (args.from_colour and args.to_colour):
            raise CliError("--from-colour and --to-colour go together")
        return "difference"
    if args.target_colour or args.reference_colour:
        if not (args.target_colour and args.reference_colour):
            raise CliError("--target-colour and --reference-colour go together")
        return "ratio" if args.ratio else "dual"
    if args.colour:
        return "colour"
    if args.reference is None:
        raise CliError("nothing to do: give --reference, --colour, a colour pair or --from/--to colours")
    if args.main_colour:
        return "main"
    if args.mask is not None:
        return "mask"
    return "reference"


def _load(path: Path, what: str) -> PixelBuffer:
    try:
        return load_pixel_buffer(path)
    except (OSError, ValueError) as exc:
        raise CliError(f"cannot read {what} {path}: {exc}") from exc


def _config_pairs(args: argparse.Namespace, op: str) -> List[Tuple[str, Any]]:
    pairs: List[Tuple[str, Any]] = [("Op", op), ("Intensity", args.intensity)]
    if op == "difference":
        pairs += [
            ("Balance", args.balance),
            ("Radius", args.radius),
            ("Min sim", args.min_similarity),
        ]
    elif op in ("dual", "ratio"):
        pairs += [("Range", args.selection_range), ("Luminance", args.preserve_luminance)]
    else:
        pairs += [("Mode", args.mode), ("Luminance", args.preserve_luminance)]
    return pairs


# Per-file processing


def _run_operation(
    op: str, target: PixelBuffer, reference: Optional[PixelBuffer], args: argparse.Namespace
) -> Optional[PixelBuffer]:
    mode = AdjustmentMode(args.mode)
    if op == "difference":
        config = TransformConfig(
            balance_mode=BalanceMode(args.balance),
            intensity=args.intensity,
            selection_radius=args.radius,
            min_similarity=args.min_similarity,
            brightness=args.brightness,
            contrast=args.contrast,
            gamma=args.gamma,
            transparency=args.transparency,
        )
        return apply_difference(
            target,
            _colour(args.from_colour, "--from-colour"),
            _colour(args.to_colour, "--to-colour"),
            config,
        )
    if op == "dual":
        return dual_colour_matching(
            target,
            _colour(args.target_colour, "--target-colour"),
            _colour(args.reference_colour, "--reference-colour"),
            args.intensity,
            args.preserve_luminance,
            args.selection_range,
        )
    if op == "ratio":
        return ratio_preserving_replacement(
            target,
            _colour(args.target_colour, "--target-colour"),
            _colour(args.reference_colour, "--reference-colour"),
            args.intensity,
            args.selection_range,
        )
    if op == "colour":
        return transform_to_colour(
            target, _colour(args.colour, "--colour"), args.intensity, args.preserve_luminance, mode
        )
    if op == "main":
        return transform_with_main_colour(
            target,
            reference,
            _colour(args.main_colour, "--main-colour"),
            args.intensity,
            args.preserve_luminance,
            mode,
            seed=args.seed,
        )
    if op == "mask":
        config = HighPrecisionConfig(
            dominant_colour_count=args.colours,
            mask_buffer=_load(args.mask, "mask"),
            mask_threshold=args.mask_threshold,
            seed=args.seed,
        )
        result = process_with_high_precision(
            target, reference, None, config, args.intensity, args.preserve_luminance, mode, debug=args.debug
        )
        if not result.ok:
            raise CliError(f"masked transfer failed: {result.error.value if result.error else 'unknown'}")
        if args.debug and result.mask is not None:
            for line in describe_usage(result.mask).splitlines():
                debug_log(line)
        return result.buffer
    return transform(target, reference, args.intensity, args.preserve_luminance, mode)


def _report_palette(buffer: PixelBuffer, k: int, seed: int) -> None:
    visible = opaque_mask(buffer.pixels)
    palette = extract_dominant_colours(buffer.pixels[visible], k, seed=seed)
    log("Colours used:")
    for hex_code, count in colour_usage_report(buffer.pixels, palette, visible):
        log(f"  {hex_code}: {count:,}")


def _process_single_image(
    src_path: Path,
    out_path: Optional[Path],
    op: str,
    reference: Optional[PixelBuffer],
    args: argparse.Namespace,
) -> Path:
    """
    Process a single image path end-to-end:
      load -> recolour -> optional post-adjust -> save -> report.
    """
    t_start = time.perf_counter()
    if out_path is None:
        out_path = src_path.with_name(f"{src_path.stem}{OUTPUT_SUFFIX}.png")

    print_banner(src_path.name)
    target = _load(src_path, "target")
    t_loaded = time.perf_counter()

    if args.debug:
        visible = int(np.count_nonzero(opaque_mask(target.pixels)))
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Loaded", f"{target.width}x{target.height}"),
                    ("Opaque", visible),
                    ("Share", format_percentage(100.0 * visible / max(target.size, 1))),
                ]
            )
        )
        if reference is not None:
            debug_log(f"reference {reference.width}x{reference.height}")

    result = _run_operation(op, target, reference, args)
    if result is None:
        raise CliError(f"{src_path.name}: recolouring produced no output")
    if args.hue_shift != 0.0 or args.saturation != 1.0:
        adjusted = post_adjust(result, args.hue_shift, args.saturation)
        if adjusted is not None:
            result = adjusted
    t_mapped = time.perf_counter()

    written = save_pixel_buffer(out_path, result)
    t_saved = time.perf_counter()

    log(f"Wrote {written.name} | size={result.width}x{result.height} | op={op}")
    if args.palette > 0:
        _report_palette(result, args.palette, args.seed)

    if args.debug:
        debug_log(
            f"Total {format_total_duration_compact(t_saved - t_start)}  "
            f"(load={format_seconds_compact(t_loaded - t_start)}, "
            f"recolour={format_seconds_compact(t_mapped - t_loaded)}, "
            f"save={format_seconds_compact(t_saved - t_mapped)})"
        )
    else:
        log(f"Total time {format_total_duration_compact(t_saved - t_start)}")
    return written


def _process_one_captured(
    path: Path, out_dir: Optional[Path], op: str, reference: Optional[PixelBuffer], args: argparse.Namespace
) -> str:
    """Process one file with stdout captured so parallel output prints in order."""
    buf = io.StringIO()
    with redirect_stdout(buf):
        dst = (out_dir / f"{path.stem}{OUTPUT_SUFFIX}.png") if out_dir else None
        try:
            _process_single_image(path, dst, op, reference, args)
        except CliError as exc:
            error(str(exc))
    return buf.getvalue()


def _folder_images(folder: Path) -> List[Path]:
    files = [
        p
        for p in folder.iterdir()
        if p.is_file() and p.suffix.lower() in IMAGE_EXTS and not p.stem.endswith(OUTPUT_SUFFIX)
    ]
    files.sort(key=lambda p: p.name.lower())
    return files


# Entry point


def run(args: argparse.Namespace) -> int:
    """Run the parsed CLI; returns the process exit code."""
    src = args.target
    if not src.exists():
        raise CliError(f"not found: {src}")
    op = _operation(args)
    reference = _load(args.reference, "reference") if args.reference is not None else None

    print_config_line("texcol", _config_pairs(args, op), debug=False)

    if not src.is_dir():
        _process_single_image(src, args.out, op, reference, args)
        return 0

    files = _folder_images(src)
    out_dir = args.out
    if out_dir is not None:
        out_dir.mkdir(parents=True, exist_ok=True)
    if args.debug:
        debug_log(key_value_pairs_to_string([("Images", len(files)), ("Jobs", args.jobs)]))

    if args.jobs <= 1:
        for p in files:
            dst = (out_dir / f"{p.stem}{OUTPUT_SUFFIX}.png") if out_dir else None
            _process_single_image(p, dst, op, reference, args)
    else:
        workers = min(args.jobs, os.cpu_count() or 1)
        with ThreadPoolExecutor(max_workers=workers) as ex:
            futures = [ex.submit(_process_one_captured, p, out_dir, op, reference, args) for p in files]
            blocks = [f.result() for f in futures]
        print("".join(blocks), end="", flush=True)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Bad flags or unreadable inputs exit with code 2."""
    enable_line_buffered_stdout()
    args = parse_cli_args(argv)
    try:
        return run(args)
    except CliError as exc:
        error(str(exc))
        return 2


if __name__ == "__main__":
    sys.exit(main())
