"""
Bounded Sample Store

Holds the admitted refresh-cycle samples used by the line fitter:

    raw[i]       Middle timestamp of the admitted 5-frame window
                 (x-axis ground truth for the timebase fit)
    smoothed[i]  Mean of the admitted 5-frame window
                 (used only to infer elapsed cycles between admissions)

Both sequences live in numpy float64 buffers that grow geometrically up to
the configured capacity. When the store is full, compact() keeps every
second sample (indices 0, 2, 4, ...) and the skip stride becomes
stride*2 + 1 (series 0, 1, 3, 7, ...). The caller absorbs `stride`
admissions between stored samples afterwards, so retained samples stay
evenly spaced in admission order.
"""

import logging
from typing import Tuple

import numpy as np

logger = logging.getLogger(__name__)


class BoundedSampleStore:
    """
    Two index-aligned, capacity-bounded sample sequences.
    """

    INITIAL_SIZE = 4096

    def __init__(self, capacity: int = 5_000_000):
        """
        Args:
            capacity: Maximum number of samples kept before compaction
        """
        if capacity < 2:
            raise ValueError(f"capacity must be >= 2, got {capacity}")
        self.capacity = capacity
        size = min(self.INITIAL_SIZE, capacity)
        self._raw = np.zeros(size, dtype=np.float64)
        self._smoothed = np.zeros(size, dtype=np.float64)
        self._length = 0
        self.stride = 0
        self.compactions = 0

    def __len__(self) -> int:
        return self._length

    @property
    def is_full(self) -> bool:
        return self._length >= self.capacity

    @property
    def raw(self) -> np.ndarray:
        """View of stored raw (window-middle) timestamps."""
        return self._raw[:self._length]

    @property
    def smoothed(self) -> np.ndarray:
        """View of stored smoothed (window-mean) timestamps."""
        return self._smoothed[:self._length]

    def append(self, raw: float, smoothed: float) -> int:
        """
        Store one admitted sample, compacting first if the store is full.

        Returns:
            Skip stride the caller should apply before the next admission
        """
        if self.is_full:
            self.compact()
        if self._length == len(self._raw):
            self._grow()
        self._raw[self._length] = raw
        self._smoothed[self._length] = smoothed
        self._length += 1
        return self.stride

    def compact(self) -> None:
        """Keep the even-indexed half of both sequences."""
        kept = (self._length + 1) // 2
        self._raw[:kept] = self._raw[:self._length:2].copy()
        self._smoothed[:kept] = self._smoothed[:self._length:2].copy()
        self._length = kept
        self.stride = self.stride * 2 + 1
        self.compactions += 1
        logger.debug(f"Sample store compacted to {kept} samples (stride={self.stride})")

    def clear(self) -> None:
        """Drop all samples and restore the initial stride."""
        size = min(self.INITIAL_SIZE, self.capacity)
        self._raw = np.zeros(size, dtype=np.float64)
        self._smoothed = np.zeros(size, dtype=np.float64)
        self._length = 0
        self.stride = 0
        self.compactions = 0

    def snapshot(self) -> Tuple[np.ndarray, np.ndarray]:
        """Copies of both sequences (for diagnostics and tests)."""
        return self.raw.copy(), self.smoothed.copy()

    def _grow(self) -> None:
        new_size = min(len(self._raw) * 2, self.capacity)
        raw = np.zeros(new_size, dtype=np.float64)
        smoothed = np.zeros(new_size, dtype=np.float64)
        raw[:self._length] = self._raw[:self._length]
        smoothed[:self._length] = self._smoothed[:self._length]
        self._raw = raw
        self._smoothed = smoothed
