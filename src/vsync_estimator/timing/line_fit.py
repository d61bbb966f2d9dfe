"""
Refresh Cycle Line Fit

Least-squares fit of the stored samples to the line

    raw[i] = timebase + X[i] * interval

where X[i] is an integer cycle index inferred from the smoothed samples.
Because X counts cycles rather than samples, dropped frames, skipped
admissions and store compaction leave gaps in X without bending the fit.

Formulas (closed-form OLS, see http://brownmath.com/stat/leastsq.htm):

    m = (N*sxy - sx*sy) / (N*sxx - sx*sx)
    b = (sxx*sy - sx*sxy) / (N*sxx - sx*sx)

The validation step folds every raw sample onto the fitted grid and
measures the spread of the residuals (the drift window). A spread of half
an interval or more means the line no longer explains the history.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class LineFit:
    """Result of a cycle line fit."""
    interval_ms: float          # Slope: refined cycle period
    timebase: float             # raw[0] + intercept
    n_samples: int
    span_cycles: int            # X of the last sample


def cycle_indices(smoothed: np.ndarray, interval_ms: float) -> np.ndarray:
    """
    Infer the cycle index of each sample from smoothed timestamps.

    Steps are rounded half up, matching a floor(x + 0.5) rounding of the
    elapsed time in cycles.
    """
    steps = np.floor(np.diff(smoothed) / interval_ms + 0.5)
    return np.concatenate(([0.0], np.cumsum(steps)))


def fit_cycle_line(raw: np.ndarray, smoothed: np.ndarray,
                   interval_ms: float) -> Optional[LineFit]:
    """
    Fit interval and timebase over all stored samples.

    Args:
        raw: Window-middle timestamps
        smoothed: Window-mean timestamps (same length as raw)
        interval_ms: Current interval estimate used to count cycles

    Returns:
        LineFit, or None when the samples do not determine a line
    """
    n = len(raw)
    if n < 2 or interval_ms <= 0:
        return None

    x = cycle_indices(smoothed, interval_ms)
    y = raw - raw[0]

    sx = float(np.sum(x))
    sy = float(np.sum(y))
    sxx = float(np.sum(x * x))
    sxy = float(np.sum(x * y))

    denom = n * sxx - sx * sx
    if denom == 0:
        return None

    m = (n * sxy - sx * sy) / denom
    b = (sxx * sy - sx * sxy) / denom
    if not np.isfinite(m) or m <= 0:
        return None

    return LineFit(
        interval_ms=m,
        timebase=float(raw[0]) + b,
        n_samples=n,
        span_cycles=int(x[-1]),
    )


def measure_drift(raw: np.ndarray, timebase: float,
                  interval_ms: float) -> Tuple[float, float]:
    """
    Spread of raw samples around the fitted refresh grid.

    Each residual is mapped into [-interval/2, interval/2). The window
    always includes 0 (the timebase itself).

    Returns:
        (min_offset_ms, max_offset_ms)
    """
    half = interval_ms / 2
    offsets = np.mod(raw - timebase + half, interval_ms) - half
    lo = min(0.0, float(np.min(offsets))) if len(offsets) else 0.0
    hi = max(0.0, float(np.max(offsets))) if len(offsets) else 0.0
    return lo, hi
