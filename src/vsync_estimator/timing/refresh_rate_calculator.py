"""
Refresh Rate Calculator - fixed-Hz display refresh estimator

Estimates the true refresh rate of a display and a dejittered timestamp
of its refresh cycles from jittery, lossy frame timestamps.

================================================================================
PIPELINE
================================================================================
    timestamp ──▶ grouping filter ──▶ change tracker ──▶ sample store
                                                              │
                           accessors ◀── validator/line fit ◀─┘

1. GROUPING FILTER: keep the last 5 timestamps. If the spread of their 4
   deltas is under tight_group_ms, the window is a clean, undropped run.
   Dropped frames and outliers produce a large spread and are ignored.
2. CHANGE TRACKER: running mean of accepted intervals. 21 consecutive
   admissions that disagree with the mean by more than ms_change mean the
   display changed Hz. Counting admissions (not time) makes the detector
   immune to dropped-frame gaps. The drift check below cannot catch a
   switch to an exact multiple of the old rate (59.802 -> 119.604), which
   is why this tracker exists.
3. SAMPLE STORE: window middle (raw) and window mean (smoothed) of every
   admitted window, compacted to half resolution when full.
4. VALIDATOR: every validate_ms of admitted-timestamp time, refit interval
   and timebase by least squares over all stored samples and check that
   every sample lies within half an interval of the fitted grid. If not,
   the history is inconsistent and everything restarts.

The estimator assumes a FIXED refresh period. On a variable refresh rate
display (G-SYNC/FreeSync) it measures the foreground application's fixed
frame rate at best and degrades severely when that rate varies.

Threading: no internal locking. Drive an instance from one thread (the
render/present thread) or serialize access externally.
"""

from collections import deque
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, Optional
import logging

import numpy as np

from ..interfaces.cycle_result import (
    CycleSnapshot,
    DriftWindow,
    EstimatorReport,
    EstimatorStatus,
)
from .line_fit import fit_cycle_line, measure_drift
from .sample_store import BoundedSampleStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshRateConfig:
    """
    Tunables, fixed at construction.

    Each is a trade-off between responsiveness and robustness; platforms
    with coarse timers or heavy jitter may need a wider tight_group_ms.
    """
    validate_ms: float = 100.0      # How often interval/timebase are refit
    tight_group_ms: float = 1.0     # Max spread of 4 deltas for a clean window
    ms_change: float = 1.0          # Interval deviation considered a Hz change
    max_store: int = 5_000_000      # Stored samples before compaction
    lowest_valid_hz: float = 35.0   # Slower windows are inactive/sleep noise
    startup_skip: int = 60          # Clean windows ignored once at startup

    def validate(self) -> "RefreshRateConfig":
        """Raise ValueError on values the estimator cannot run with."""
        if self.validate_ms <= 0:
            raise ValueError(f"validate_ms must be > 0, got {self.validate_ms}")
        if self.tight_group_ms <= 0:
            raise ValueError(f"tight_group_ms must be > 0, got {self.tight_group_ms}")
        if self.ms_change <= 0:
            raise ValueError(f"ms_change must be > 0, got {self.ms_change}")
        if self.max_store < 2:
            raise ValueError(f"max_store must be >= 2, got {self.max_store}")
        if self.lowest_valid_hz <= 0:
            raise ValueError(f"lowest_valid_hz must be > 0, got {self.lowest_valid_hz}")
        if self.startup_skip < 0:
            raise ValueError(f"startup_skip must be >= 0, got {self.startup_skip}")
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RefreshRateConfig":
        """
        Build from a config mapping (e.g. the [estimator] table of a TOML file).

        Raises:
            ValueError: on unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown estimator settings: {', '.join(unknown)}")
        kwargs = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            convert = int if f.type in (int, "int") else float
            try:
                kwargs[f.name] = convert(data[f.name])
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid value for {f.name}: {data[f.name]!r}") from e
        return cls(**kwargs).validate()


class RefreshRateCalculator:
    """
    Online refresh rate / VSYNC timebase estimator.

    Usage:
        calc = RefreshRateCalculator()
        # once per presented frame, timestamps in milliseconds
        calc.count_cycle(now_ms)
        hz = calc.get_current_frequency()
        snap = calc.get_filtered_cycle_timestamp()
    """

    WINDOW = 5
    MIN_MEAN_SAMPLES = 10           # Running mean must hold more than this to detect changes
    MIN_PRIMING_SAMPLES = 30        # ... and more than this to seed the interval
    MAX_CONSECUTIVE_CHANGES = 20    # More than this many deviations = Hz change

    def __init__(self, config: Optional[RefreshRateConfig] = None):
        self.config = (config or RefreshRateConfig()).validate()
        self._store = BoundedSampleStore(self.config.max_store)
        self.reset_count = 0
        self.last_reset_reason: Optional[str] = None
        self._startup_skip = self.config.startup_skip
        self._clear()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def restart_measuring(self) -> None:
        """
        Clear history and restart measuring, including the startup skip.

        Call this when the display mode is known to have changed.
        """
        self._startup_skip = self.config.startup_skip
        self._clear()
        self.reset_count = 0
        self.last_reset_reason = None
        logger.info("Refresh rate measurement restarted")

    def count_cycle(self, timestamp: float) -> None:
        """
        Count one refresh cycle with a (jittery) frame timestamp.

        Call once per presented frame while the frame rate matches the
        refresh rate, e.g. right after the present call returns.
        Missed cycles need no special handling.
        """
        self._cycle_count += 1
        window = self._window
        window.append(timestamp)
        if len(window) < self.WINDOW:
            return

        deltas = [window[i + 1] - window[i] for i in range(self.WINDOW - 1)]
        # ptp propagates NaN, so a non-numeric timestamp never groups tightly
        grouping = float(np.ptp(deltas))
        if not grouping < self.config.tight_group_ms:
            return

        if self._startup_skip > 0:
            self._startup_skip -= 1
            return
        if self._skip > 0:
            self._skip -= 1
            return

        avg_ms = (window[-1] - window[0]) / (self.WINDOW - 1)
        if not avg_ms < 1000.0 / self.config.lowest_valid_hz:
            return

        if self._track_change(avg_ms, grouping):
            return

        self._skip = self._store.append(window[2], sum(window) / self.WINDOW)

        if self._ms and timestamp - self._t_update > self.config.validate_ms:
            self._t_update = timestamp
            self._validate()

    def count_cycles(self, timestamps: Iterable[float]) -> None:
        """Feed a sequence of timestamps in order."""
        for t in timestamps:
            self.count_cycle(float(t))

    def ignore_next_cycle(self, cycles: int = 1) -> None:
        """
        Discard the next `cycles` clean windows.

        Useful when the next timestamps are known to be bad (resuming from
        freeze, background or sleep) to avoid polluting the history.
        """
        self._skip = cycles

    def get_current_frequency(self) -> float:
        """Current jitter-free Hz estimate, 0.0 until primed."""
        return 1000.0 / self._ms if self._ms else 0.0

    def get_filtered_cycle_timestamp(self) -> Optional[CycleSnapshot]:
        """
        Dejittered refresh boundary and interval.

        Returns None until a validation has succeeded since the last reset.
        """
        if self._tvsync is None:
            return None
        return CycleSnapshot(tvsync=self._tvsync, ms=self._ms)

    def get_count(self) -> int:
        """Timestamps counted since construction or restart_measuring()."""
        return self._cycle_count

    @property
    def sample_count(self) -> int:
        """Samples currently held in the store."""
        return len(self._store)

    @property
    def stride(self) -> int:
        return self._store.stride

    @property
    def drift_window(self) -> Optional[DriftWindow]:
        return self._drift

    @property
    def status(self) -> EstimatorStatus:
        if self._tvsync is not None:
            return EstimatorStatus.LOCKED
        if self._ms:
            return EstimatorStatus.FITTING
        if self._startup_skip > 0:
            return EstimatorStatus.SETTLING
        return EstimatorStatus.PRIMING

    def status_line(self) -> str:
        """One-line human readable state, for on-screen diagnostics."""
        line = f"Hz={len(self._store)}x{self._store.stride + 1} samples"
        if self._drift is not None:
            line += f"  drift=[{self._drift.min_ms:.2f}..{self._drift.max_ms:.2f}]"
        return line

    def report(self) -> EstimatorReport:
        return EstimatorReport(
            status=self.status,
            frequency_hz=self.get_current_frequency(),
            interval_ms=self._ms,
            tvsync=self._tvsync,
            drift=self._drift,
            cycle_count=self._cycle_count,
            sample_count=len(self._store),
            stride=self._store.stride,
            reset_count=self.reset_count,
            last_reset_reason=self.last_reset_reason,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _clear(self) -> None:
        """Drop all statistics (the startup skip is left alone)."""
        self._cycle_count = 0
        self._skip = 0
        self._t_update = 0.0
        self._window = deque(maxlen=self.WINDOW)
        self._store.clear()
        self._ms = 0.0
        self._tvsync: Optional[float] = None
        self._drift: Optional[DriftWindow] = None
        self._sum_ms = 0.0
        self._n_ms = 0
        self._n_change = 0

    def _reset(self, reason: str) -> None:
        logger.info(f"Resetting Hz statistics: {reason}")
        self._clear()
        self.reset_count += 1
        self.last_reset_reason = reason

    def _track_change(self, avg_ms: float, grouping: float) -> bool:
        """
        Update the running mean with one clean interval.

        Returns:
            True if a Hz change was confirmed and the estimator was reset
        """
        mean = self._sum_ms / self._n_ms if self._n_ms else 0.0
        changed = (self._n_ms > self.MIN_MEAN_SAMPLES
                   and abs(avg_ms - mean) > self.config.ms_change)

        if changed:
            self._n_change += 1
        else:
            self._n_change = 0
            self._sum_ms += avg_ms
            self._n_ms += 1
            if not self._ms and self._n_ms > max(self.MIN_PRIMING_SAMPLES, grouping * 60):
                # Jump-starts the line fit
                self._ms = self._sum_ms / self._n_ms
                logger.info(f"Interval primed at {self._ms:.4f}ms after {self._n_ms} samples")

        if self._n_change > self.MAX_CONSECUTIVE_CHANGES:
            self._reset(f"Change in Hz detected {mean:.3f}->{avg_ms:.3f}")
            return True
        return False

    def _validate(self) -> None:
        """Refit interval and timebase, then check the fit against history."""
        fit = fit_cycle_line(self._store.raw, self._store.smoothed, self._ms)
        if fit is None:
            logger.debug(f"Line fit skipped ({len(self._store)} samples)")
            return

        self._ms = fit.interval_ms
        lo, hi = measure_drift(self._store.raw, fit.timebase, self._ms)

        if hi - lo < self._ms / 2:
            if self._tvsync is None:
                logger.info(f"Refresh timebase locked: {1000.0 / self._ms:.4f}Hz "
                            f"over {fit.span_cycles} cycles")
            self._tvsync = fit.timebase + lo
            self._drift = DriftWindow(min_ms=lo, max_ms=hi)
            logger.debug(f"Validated {fit.n_samples} samples: {1000.0 / self._ms:.4f}Hz "
                         f"drift=[{lo:.2f}..{hi:.2f}]")
        else:
            self._reset("excessive drift")
