"""
Synthetic VSYNC Source

Generates frame timestamps the way a presentation loop would observe them
on a fixed-Hz display:

    t[k] = start + k * period + jitter[k]      for each surviving cycle k

- jitter: uniform in [-jitter_ms, +jitter_ms], independent per frame
- drops:  each cycle is missing with probability drop_rate; surviving
          timestamps stay on the grid (gaps are whole multiples of period)

Used to exercise the estimator (tests, CLI --simulate) without a display.
"""

from dataclasses import dataclass
from typing import Optional
import logging

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class SyntheticVsyncSource:
    """
    Fixed-period timestamp generator.

    Attributes:
        hz: Refresh rate of the simulated display
        jitter_ms: Half-width of the uniform timestamp noise
        drop_rate: Probability that a cycle produces no timestamp
        start_ms: Time of cycle 0
        seed: Random seed for reproducibility
    """
    hz: float = 60.0
    jitter_ms: float = 0.0
    drop_rate: float = 0.0
    start_ms: float = 1000.0
    seed: Optional[int] = None

    def __post_init__(self):
        if self.hz <= 0:
            raise ValueError(f"hz must be > 0, got {self.hz}")
        if not 0.0 <= self.drop_rate < 1.0:
            raise ValueError(f"drop_rate must be in [0, 1), got {self.drop_rate}")
        if self.jitter_ms < 0:
            raise ValueError(f"jitter_ms must be >= 0, got {self.jitter_ms}")
        self._rng = np.random.default_rng(self.seed)

    @property
    def period_ms(self) -> float:
        return 1000.0 / self.hz

    def cycle_times(self, n_cycles: int) -> np.ndarray:
        """Exact refresh boundaries for cycles 0..n_cycles-1."""
        return self.start_ms + np.arange(n_cycles, dtype=np.float64) * self.period_ms

    def generate(self, n_cycles: int) -> np.ndarray:
        """
        Timestamps observed over n_cycles refresh cycles.

        Returns:
            Monotonic float64 array of surviving timestamps (ms)
        """
        times = self.cycle_times(n_cycles)
        if self.jitter_ms > 0:
            times = times + self._rng.uniform(-self.jitter_ms, self.jitter_ms, n_cycles)
        if self.drop_rate > 0:
            keep = self._rng.random(n_cycles) >= self.drop_rate
            times = times[keep]
        logger.debug(f"Generated {len(times)}/{n_cycles} timestamps at {self.hz}Hz")
        return times

    def end_ms(self, n_cycles: int) -> float:
        """Start of the cycle following the last generated one."""
        return self.start_ms + n_cycles * self.period_ms


def switch_rate(first: SyntheticVsyncSource, first_cycles: int,
                second_hz: float, second_cycles: int) -> np.ndarray:
    """
    Timestamps for a display that changes refresh rate mid-stream.

    The second segment starts one new-rate period after the end of the
    first and inherits its jitter, drop rate and seed.
    """
    head = first.generate(first_cycles)
    second = SyntheticVsyncSource(
        hz=second_hz,
        jitter_ms=first.jitter_ms,
        drop_rate=first.drop_rate,
        start_ms=first.end_ms(first_cycles) - first.period_ms + 1000.0 / second_hz,
        seed=None if first.seed is None else first.seed + 1,
    )
    return np.concatenate((head, second.generate(second_cycles)))
