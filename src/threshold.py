"""
Otsu thresholding and two-level segmentation of intensity channels.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np

from histogram import INTENSITY_LEVELS, compute_histogram


logger = logging.getLogger(__name__)

MAX_INTENSITY = 255


def otsu_threshold(hist: np.ndarray) -> int:
    """
    Otsu's automatic threshold for a histogram.

    Maximizes the between-class variance q1 * q2 * (m1 - m2)^2 where class 1
    holds the levels <= t. When several consecutive thresholds share the
    maximum, the middle one is returned.

    Args:
        hist: Per-level sample counts

    Returns:
        Optimal threshold level

    Raises:
        ValueError: If the histogram holds no samples
    """
    hist = np.asarray(hist, dtype=np.float64).ravel()
    total = hist.sum()
    if total <= 0:
        raise ValueError("otsu_threshold expects a non-empty histogram")

    levels = np.arange(hist.size, dtype=np.float64)
    q1 = np.cumsum(hist)
    q2 = total - q1
    sum_b = np.cumsum(hist * levels)
    sum_all = sum_b[-1]

    with np.errstate(divide="ignore", invalid="ignore"):
        m1 = sum_b / q1
        m2 = (sum_all - sum_b) / q2
        between_variance = q1 * q2 * (m1 - m2) ** 2
    between_variance[(q1 == 0) | (q2 == 0)] = 0.0

    best = int(np.argmax(between_variance))
    peak = between_variance[best]
    if peak <= 0:
        # Single occupied level
        return int(np.flatnonzero(hist)[0])

    last = best
    while last + 1 < hist.size and between_variance[last + 1] == peak:
        last += 1
    return (best + last) // 2


def segment(channel: np.ndarray, threshold: int, max_intensity: int = MAX_INTENSITY) -> np.ndarray:
    """
    Two-level segmentation.

    Samples strictly above the threshold become max_intensity, the rest 0.
    """
    return np.where(channel > threshold, max_intensity, 0).astype(np.float32)


def otsu_segment(
    channel: np.ndarray,
    threshold: Optional[int] = None,
    max_intensity: int = MAX_INTENSITY,
) -> Tuple[np.ndarray, int]:
    """
    Segment a channel with Otsu's threshold.

    Args:
        channel: Single-channel intensity image
        threshold: Override threshold; skips the Otsu search when given
        max_intensity: Foreground value and top of the intensity range

    Returns:
        Tuple of (segmented channel, threshold used)
    """
    if channel.ndim != 2:
        raise ValueError("otsu_segment expects a single-channel image")

    if threshold is None:
        hist = compute_histogram(channel, levels=max(INTENSITY_LEVELS, int(max_intensity) + 1))
        threshold = otsu_threshold(hist)
        logger.debug("Otsu threshold: %d", threshold)
    else:
        threshold = int(threshold)
        if not 0 <= threshold <= max_intensity:
            raise ValueError(f"Threshold must lie in [0, {max_intensity}]")

    return segment(channel, threshold, max_intensity), threshold
