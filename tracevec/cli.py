"""Command line interface for tracevec."""
import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import numpy as np

from tracevec.config import PRESETS, Config
from tracevec.converter import convert_image_to_svg
from tracevec.types import ColorMode, Hierarchical, PathSimplifyMode, VectorizationError


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="tracevec",
        description="Convert raster images to SVG by clustering and tracing regions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tracevec -i input.png -o output.svg
  tracevec -i logo.png --preset poster --hierarchical cutout
  tracevec -i scan.png --colormode binary --mode polygon
  tracevec -i labels.png --colormode seg --filter_speckle 2
        """,
    )

    parser.add_argument("-i", "--input", required=True, help="Input image file path")
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output SVG file path (default: input name with .svg extension)",
    )
    parser.add_argument(
        "--preset",
        choices=sorted(PRESETS),
        default=None,
        help="Start from a preset; explicit options override it",
    )
    parser.add_argument(
        "--colormode",
        choices=[m.value for m in ColorMode],
        default=None,
        help="Input interpretation (default: color)",
    )
    parser.add_argument(
        "--hierarchical",
        choices=[h.value for h in Hierarchical],
        default=None,
        help="Stacked shapes or non-overlapping cutout pieces (default: stacked)",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in PathSimplifyMode],
        default=None,
        help="Path simplification (default: spline)",
    )
    parser.add_argument(
        "--filter_speckle", type=int, default=None,
        help="Discard patches smaller than X px in size (default: 4)",
    )
    parser.add_argument(
        "--color_precision", type=int, default=None,
        help="Number of significant bits per RGB channel (default: 6)",
    )
    parser.add_argument(
        "--gradient_step", type=int, default=None,
        help="Color difference between gradient layers (default: 16)",
    )
    parser.add_argument(
        "--corner_threshold", type=int, default=None,
        help="Minimum momentary angle in degrees to be a corner (default: 60)",
    )
    parser.add_argument(
        "--segment_length", type=float, default=None,
        help="Subdivide smoothed paths until segments are shorter than this (default: 4.0)",
    )
    parser.add_argument(
        "--splice_threshold", type=int, default=None,
        help="Minimum angle displacement in degrees to splice a spline (default: 45)",
    )
    parser.add_argument(
        "--max_error", type=float, default=None,
        help="Polygon and curve fitting tolerance in pixels (default: 1.0)",
    )
    parser.add_argument(
        "--path_precision", type=int, default=None,
        help="Number of decimal places in path coordinates (default: 2)",
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Seed for the key color search",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    return parser


def build_config(parsed: argparse.Namespace) -> Config:
    """Merge a preset (if any) with explicitly given options."""
    config = Config.from_preset(parsed.preset) if parsed.preset else Config()

    overrides = {
        "color_mode": ColorMode(parsed.colormode) if parsed.colormode else None,
        "hierarchical": Hierarchical(parsed.hierarchical) if parsed.hierarchical else None,
        "mode": PathSimplifyMode(parsed.mode) if parsed.mode else None,
        "filter_speckle": parsed.filter_speckle,
        "color_precision": parsed.color_precision,
        "layer_difference": parsed.gradient_step,
        "corner_threshold": parsed.corner_threshold,
        "length_threshold": parsed.segment_length,
        "splice_threshold": parsed.splice_threshold,
        "max_error": parsed.max_error,
        "path_precision": parsed.path_precision,
    }
    return replace(config, **{k: v for k, v in overrides.items() if v is not None})


def main(args: Optional[list] = None) -> int:
    """Main entry point for CLI.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    input_path = Path(parsed.input)
    output_path = Path(parsed.output) if parsed.output else input_path.with_suffix(".svg")

    try:
        config = build_config(parsed).validate()
        rng = np.random.default_rng(parsed.seed)

        print(f"Processing: {input_path}")
        print(f"  Color mode: {config.color_mode.value}")
        print(f"  Hierarchical: {config.hierarchical.value}")
        print(f"  Path mode: {config.mode.value}")

        convert_image_to_svg(input_path, output_path, config, rng)

        print(f"  Output saved: {output_path}")
        return 0

    except VectorizationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
