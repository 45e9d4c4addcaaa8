"""
Rank-ordered binning of sample arrays.

A RankedBinner splits a data array into a fixed number of bins according to
an auxiliary rank array. Bins either cover equal rank ranges or hold an equal
number of samples (adaptive mode). Each bin keeps its own copy of the data and
rank values that fell into it.
"""
from __future__ import annotations

import bisect
import logging
import operator
from typing import List, Sequence, Tuple, TypedDict

import numpy as np


logger = logging.getLogger(__name__)

# Above this many samples the adaptive scratch buffer is sized to one bin
SAVE_MEMORY_THRESHOLD = 6000 * 6000


# ============================================================================
# Type Definitions
# ============================================================================

class BinInfo(TypedDict):
    """Summary of one bin."""
    index: int
    begin: float
    end: float
    count: int


# ============================================================================
# Scratch Buffer
# ============================================================================

def plan_scratch_capacity(n: int, bin_count: int, adaptive: bool) -> int:
    """
    Initial scratch buffer length for a binning run.

    Small inputs get a buffer able to hold every sample. Large adaptive runs
    start with the expected population of a single bin.

    Args:
        n: Number of samples
        bin_count: Number of bins requested
        adaptive: True for equal-population binning

    Returns:
        Scratch buffer length
    """
    if n > SAVE_MEMORY_THRESHOLD and adaptive and bin_count > 1:
        return n // (bin_count - 1)
    return n


class ScratchBuffer:
    """
    Reusable staging area for the bin being filled.

    Capacity doubles when a bin outgrows it, so skewed rank distributions
    never write past the end of the buffer.
    """

    def __init__(self, capacity: int, item_shape: Tuple[int, ...], dtype: np.dtype) -> None:
        self.item_shape = tuple(item_shape)
        self.dtype = np.dtype(dtype)
        self._buffer = np.empty((max(1, int(capacity)),) + self.item_shape, dtype=self.dtype)

    @property
    def capacity(self) -> int:
        return self._buffer.shape[0]

    def reserve(self, size: int) -> None:
        """Grow the buffer so that it holds at least ``size`` items."""
        if size <= self.capacity:
            return
        new_capacity = max(size, 2 * self.capacity)
        logger.debug("Growing scratch buffer from %d to %d items", self.capacity, new_capacity)
        self._buffer = np.empty((new_capacity,) + self.item_shape, dtype=self.dtype)

    def stage(self, source: np.ndarray, indices: np.ndarray) -> np.ndarray:
        """Gather ``source[indices]`` into the buffer and return the filled part."""
        size = len(indices)
        self.reserve(size)
        staged = self._buffer[:size]
        np.take(source, indices, axis=0, out=staged)
        return staged


# ============================================================================
# Ranked Binner
# ============================================================================

class RankedBinner:
    """
    Immutable partition of a data array into rank-ordered bins.

    Bins are contiguous in rank: bin 0 starts at min(rank), the last bin ends
    at max(rank) and every bin ends where the next one begins.
    """

    def __init__(
        self,
        data: Sequence | np.ndarray,
        rank: Sequence[float] | np.ndarray,
        bin_count: int,
        adaptive: bool = False,
        drop_boundary: bool = False,
    ) -> None:
        """
        Args:
            data: Samples to distribute, indexed along the first axis
            rank: One rank value per sample, used to order and split
            bin_count: Number of bins (>= 1)
            adaptive: Equal population per bin instead of equal rank width
            drop_boundary: Discard the sample that closes each bin instead of
                moving it into the next bin

        Raises:
            ValueError: On empty input, mismatched lengths, bin_count < 1 or
                non-finite rank values
        """
        data = np.asarray(data)
        rank = np.asarray(rank, dtype=np.float32)
        bin_count = int(bin_count)

        # Same-shaped arrays (e.g. two image planes) pair up element by element
        if data.ndim > 1 and data.shape == rank.shape:
            data = data.ravel()
        rank = rank.ravel()

        if bin_count < 1:
            raise ValueError("bin_count must be at least 1")
        if rank.size == 0:
            raise ValueError("RankedBinner expects at least one sample")
        if data.ndim == 0 or data.shape[0] != rank.size:
            raise ValueError(
                f"data needs one sample per rank value along its first axis "
                f"(got {data.shape[0] if data.ndim else 0}, expected {rank.size})"
            )
        if not np.all(np.isfinite(rank)):
            raise ValueError("rank values must be finite")

        self.adaptive = bool(adaptive)
        self.drop_boundary = bool(drop_boundary)
        self._bin_count = bin_count

        self._limits_begin = np.empty(bin_count, dtype=np.float32)
        self._limits_end = np.empty(bin_count, dtype=np.float32)
        self._counts = np.zeros(bin_count, dtype=np.int64)
        self._data_bins: List[np.ndarray] = []
        self._rank_bins: List[np.ndarray] = []

        self._build(data, rank)

    def _build(self, data: np.ndarray, rank: np.ndarray) -> None:
        n = rank.size
        bins = self._bin_count

        order = np.argsort(rank, kind="stable")
        sorted_rank = rank[order]
        min_rank = sorted_rank[0]
        max_rank = sorted_rank[-1]

        capacity = plan_scratch_capacity(n, bins, self.adaptive)
        data_scratch = ScratchBuffer(capacity, data.shape[1:], data.dtype)
        rank_scratch = ScratchBuffer(capacity, (), np.float32)

        samples_per_bin = max(1, n // bins)
        step = (max_rank - min_rank) / np.float32(bins)

        def commit(start: int, stop: int, lim0: np.float32, lim1: np.float32) -> None:
            indices = order[start:stop]
            self._store_bin(
                data_scratch.stage(data, indices),
                rank_scratch.stage(rank, indices),
                lim0,
                lim1,
            )

        lim0 = min_rank
        start = 0
        scan = 0
        # Walk closure points directly instead of visiting every sample
        while len(self._data_bins) < bins - 1:
            if self.adaptive:
                closing = max(scan, start + samples_per_bin)
            elif step > 0:
                closing = bisect.bisect_left(
                    sorted_rank, step, lo=scan, hi=n, key=lambda r, base=lim0: r - base
                )
            else:
                closing = n
            if closing >= n:
                break

            lim1 = sorted_rank[closing]
            commit(start, closing, lim0, lim1)
            lim0 = lim1
            start = closing + 1 if self.drop_boundary else closing
            scan = closing + 1

        # Final flush
        commit(start, n, lim0, max_rank)
        while len(self._data_bins) < bins:
            self._store_bin(data[:0], rank[:0], max_rank, max_rank)
        self._limits_end[bins - 1] = max_rank

        logger.debug(
            "Binned %d samples into %d bins (%s), %d assigned",
            n, bins, "adaptive" if self.adaptive else "fixed width", int(self._counts.sum()),
        )

    def _store_bin(
        self,
        data_items: np.ndarray,
        rank_items: np.ndarray,
        lim0: np.float32,
        lim1: np.float32,
    ) -> None:
        index = len(self._data_bins)
        data_copy = np.array(data_items, copy=True)
        rank_copy = np.array(rank_items, dtype=np.float32, copy=True)
        data_copy.flags.writeable = False
        rank_copy.flags.writeable = False

        self._data_bins.append(data_copy)
        self._rank_bins.append(rank_copy)
        self._limits_begin[index] = lim0
        self._limits_end[index] = lim1
        self._counts[index] = len(rank_copy)
        logger.debug("B%d) (%.2f, %.2f), %d elements", index, lim0, lim1, len(rank_copy))

    # ------------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------------

    def _check_bin(self, bin_index: int) -> int:
        bin_index = operator.index(bin_index)
        if not 0 <= bin_index < self._bin_count:
            raise IndexError(
                f"bin index {bin_index} out of range [0, {self._bin_count})"
            )
        return bin_index

    def bin_count(self) -> int:
        return self._bin_count

    def __len__(self) -> int:
        return self._bin_count

    def limit_begin(self, bin_index: int) -> float:
        """Lower rank boundary of a bin."""
        return float(self._limits_begin[self._check_bin(bin_index)])

    def limit_end(self, bin_index: int) -> float:
        """Upper rank boundary of a bin."""
        return float(self._limits_end[self._check_bin(bin_index)])

    def count(self, bin_index: int) -> int:
        """Number of samples stored in a bin."""
        return int(self._counts[self._check_bin(bin_index)])

    def counts(self) -> Tuple[int, ...]:
        return tuple(int(c) for c in self._counts)

    def data_view(self, bin_index: int) -> np.ndarray:
        """Read-only view of the data samples in a bin, in rank order."""
        return self._data_bins[self._check_bin(bin_index)].view()

    def rank_view(self, bin_index: int) -> np.ndarray:
        """Read-only view of the rank values in a bin, in rank order."""
        return self._rank_bins[self._check_bin(bin_index)].view()


def describe_bins(binner: RankedBinner) -> List[BinInfo]:
    """Summarize every bin of a binner as a list of BinInfo dicts."""
    return [
        {
            "index": b,
            "begin": binner.limit_begin(b),
            "end": binner.limit_end(b),
            "count": binner.count(b),
        }
        for b in range(binner.bin_count())
    ]
