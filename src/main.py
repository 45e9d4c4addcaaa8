"""
Otsu segmentation tool.

Reads a single-channel image, picks a threshold with Otsu's method (or uses
the one given with -t), and writes a two-level image: samples above the
threshold become white, the rest black. Optionally prints how the input
intensities split into rank bins.
"""
from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, List, Optional

import numpy as np

from binning import RankedBinner, describe_bins
from image_io import ImageSource
from threshold import otsu_segment
from utils import DEFAULT_SETTINGS, load_settings, merge_settings


# ============================================================================
# Configuration Helpers
# ============================================================================

def resolve_settings(config_path: Optional[str]) -> Dict[str, Any]:
    """Defaults merged with the YAML file, if one was given and exists."""
    if not config_path:
        return merge_settings(DEFAULT_SETTINGS, {})

    try:
        overrides = load_settings(config_path)
    except FileNotFoundError:
        print(f"[INFO] Config not found: {config_path}, using defaults")
        return merge_settings(DEFAULT_SETTINGS, {})

    return merge_settings(DEFAULT_SETTINGS, overrides)


# ============================================================================
# Reporting
# ============================================================================

def report_bins(channel: np.ndarray, bins: int, adaptive: bool, drop_boundary: bool) -> List[str]:
    """Bin the channel intensities by themselves and format one line per bin."""
    samples = channel.ravel()
    binner = RankedBinner(samples, samples, bins, adaptive=adaptive, drop_boundary=drop_boundary)
    return [
        f"B{info['index']}) ({info['begin']:.2f}, {info['end']:.2f}), {info['count']} elements"
        for info in describe_bins(binner)
    ]


# ============================================================================
# Main Pipeline
# ============================================================================

def run(args: argparse.Namespace) -> int:
    settings = resolve_settings(args.config)
    otsu_cfg = settings.get("otsu", {})
    bin_cfg = settings.get("binning", {})

    max_intensity = int(otsu_cfg.get("max_intensity", 255))
    bits = args.bits or int(otsu_cfg.get("bits", 8))

    image = ImageSource.load(args.input)
    if image.num_channels() != 1:
        print(
            f"Error: expected a single-channel image, got {image.num_channels()} channels",
            file=sys.stderr,
        )
        return 1

    channel = image.channel(0)
    print(f"[INFO] Total # of pixels: {image.width() * image.height()}")

    bins = args.report_bins or int(bin_cfg.get("bins", 0))
    if bins > 0:
        lines = report_bins(
            channel,
            bins,
            adaptive=args.adaptive or bool(bin_cfg.get("adaptive", False)),
            drop_boundary=bool(bin_cfg.get("drop_boundary", False)),
        )
        for line in lines:
            print(line)

    segmented, threshold = otsu_segment(channel, args.threshold, max_intensity=max_intensity)
    if args.threshold is None:
        print(f"[INFO] Otsu threshold: {threshold}")
    else:
        print(f"[INFO] Using threshold: {threshold}")

    ImageSource([segmented]).save(args.output, bits)
    print(f"[INFO] Saved: {args.output}")
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Otsu thresholding segmentation")
    parser.add_argument("-t", "--threshold", type=int, default=None,
                        help="Use this threshold (0-255) instead of Otsu's")
    parser.add_argument("--config", "-c", default="settings.yaml", help="Path to YAML settings file")
    parser.add_argument("--bits", type=int, choices=(8, 16), default=None,
                        help="Bits per channel of the output image")
    parser.add_argument("--report-bins", type=int, default=None, metavar="N",
                        help="Print how the intensities split into N rank bins")
    parser.add_argument("--adaptive", action="store_true",
                        help="Equal-population bins for --report-bins")
    parser.add_argument("input", help="Input image path")
    parser.add_argument("output", help="Output image path")
    args = parser.parse_args(argv)

    if args.threshold is not None and not 0 <= args.threshold <= 255:
        parser.error("threshold must be in the range [0, 255]")
    if args.report_bins is not None and args.report_bins < 1:
        parser.error("--report-bins must be at least 1")

    return args


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        return run(args)
    except (FileNotFoundError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
