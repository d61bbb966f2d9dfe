"""
Unit tests for the refresh cycle line fit and drift measurement.
"""

import numpy as np
import pytest

from vsync_estimator.timing.line_fit import (
    cycle_indices,
    fit_cycle_line,
    measure_drift,
)


class TestCycleIndices:
    """Test cycle counting from smoothed timestamps."""

    def test_counts_gaps_in_cycles(self):
        x = np.array([0, 1, 2, 5, 6, 10], dtype=float)
        smoothed = 500.0 + x * 16.0
        np.testing.assert_array_equal(cycle_indices(smoothed, 15.9), x)

    def test_rounds_half_up(self):
        """Half a cycle counts as one cycle."""
        smoothed = np.array([0.0, 5.0, 10.0])
        np.testing.assert_array_equal(cycle_indices(smoothed, 10.0), [0.0, 1.0, 2.0])

    def test_tolerates_small_jitter(self):
        smoothed = np.array([0.0, 16.9, 33.1, 83.6])
        np.testing.assert_array_equal(cycle_indices(smoothed, 16.6667), [0.0, 1.0, 2.0, 5.0])


class TestFitCycleLine:
    """Test least-squares interval/timebase fit."""

    def test_recovers_line_with_gaps(self):
        x = np.array([0, 1, 2, 5, 6, 10, 11, 40], dtype=float)
        raw = 100.0 + x * 16.0
        smoothed = raw + 0.1

        fit = fit_cycle_line(raw, smoothed, 15.9)

        assert fit is not None
        assert fit.interval_ms == pytest.approx(16.0, abs=1e-9)
        assert fit.timebase == pytest.approx(100.0, abs=1e-9)
        assert fit.n_samples == 8
        assert fit.span_cycles == 40

    def test_noisy_line(self):
        rng = np.random.default_rng(42)
        x = np.arange(0, 3000, 3, dtype=float)
        raw = 250.0 + x * (1000.0 / 60.0) + rng.uniform(-0.3, 0.3, len(x))

        fit = fit_cycle_line(raw, raw, 16.6)

        assert fit.interval_ms == pytest.approx(1000.0 / 60.0, abs=1e-4)
        assert fit.timebase == pytest.approx(250.0, abs=0.1)

    def test_single_sample_is_degenerate(self):
        assert fit_cycle_line(np.array([1.0]), np.array([1.0]), 16.0) is None

    def test_same_cycle_is_degenerate(self):
        """All samples on one cycle index: the slope is undefined."""
        raw = np.array([100.0, 100.5, 101.0])
        assert fit_cycle_line(raw, raw, 16.0) is None

    def test_requires_positive_interval(self):
        raw = np.array([0.0, 16.0, 32.0])
        assert fit_cycle_line(raw, raw, 0.0) is None


class TestMeasureDrift:
    """Test residual spread around the fitted grid."""

    def test_min_max_offsets(self):
        raw = np.array([0.0, 11.0, 18.0, 33.0])
        assert measure_drift(raw, 0.0, 10.0) == (-2.0, 3.0)

    def test_window_includes_zero(self):
        raw = np.array([2.0, 12.0, 22.0])
        assert measure_drift(raw, 0.0, 10.0) == (0.0, 2.0)

    def test_half_interval_maps_negative(self):
        """Residuals are folded into [-ms/2, ms/2)."""
        lo, hi = measure_drift(np.array([5.0]), 0.0, 10.0)
        assert lo == -5.0
        assert hi == 0.0

    def test_samples_before_timebase(self):
        raw = np.array([-9.0, 1.0, 21.0])
        assert measure_drift(raw, 0.0, 10.0) == (0.0, 1.0)
