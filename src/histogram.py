"""
Fixed-range intensity histograms.
"""
from __future__ import annotations

import logging

import numpy as np


logger = logging.getLogger(__name__)

INTENSITY_LEVELS = 256


def compute_histogram(channel: np.ndarray, levels: int = INTENSITY_LEVELS) -> np.ndarray:
    """
    Count samples of a single intensity channel per integer level.

    Sample values are truncated towards zero before counting, so 12.7 lands
    in bucket 12.

    Args:
        channel: 1D or 2D array of intensities in [0, levels)
        levels: Number of buckets

    Returns:
        Array of ``levels`` counts (int64)

    Raises:
        ValueError: If the channel is not 1D/2D or holds out-of-range samples
    """
    channel = np.asarray(channel)
    if channel.ndim not in (1, 2):
        raise ValueError("compute_histogram expects a single-channel image")

    samples = channel.ravel()
    if samples.size and (samples.min() < 0 or samples.max() >= levels):
        raise ValueError(f"Intensity samples must lie in [0, {levels})")

    buckets = samples.astype(np.int64)
    hist = np.bincount(buckets, minlength=levels).astype(np.int64)

    logger.debug("Total # of pixels: %d", samples.size)
    return hist
