"""
Unit tests for the synthetic VSYNC source.
"""

import numpy as np
import pytest

from vsync_estimator.timing.synthetic_source import SyntheticVsyncSource, switch_rate


class TestSyntheticVsyncSource:
    """Test timestamp generation."""

    def test_exact_grid(self):
        source = SyntheticVsyncSource(hz=60.0, start_ms=0.0)
        stamps = source.generate(100)

        assert len(stamps) == 100
        np.testing.assert_allclose(np.diff(stamps), 1000.0 / 60.0)

    def test_jitter_is_bounded(self):
        source = SyntheticVsyncSource(hz=120.0, jitter_ms=0.3, seed=1)
        stamps = source.generate(1000)
        errors = stamps - source.cycle_times(1000)

        assert np.all(np.abs(errors) <= 0.3)
        assert np.std(errors) > 0.1

    def test_drops_stay_on_grid(self):
        """Gaps left by dropped frames are whole periods."""
        source = SyntheticVsyncSource(hz=60.0, drop_rate=0.3, seed=2)
        stamps = source.generate(2000)

        assert 1200 < len(stamps) < 1600
        cycles = np.diff(stamps) / source.period_ms
        np.testing.assert_allclose(cycles, np.round(cycles), atol=1e-6)
        assert cycles.max() >= 2

    def test_seed_is_reproducible(self):
        a = SyntheticVsyncSource(jitter_ms=0.5, drop_rate=0.1, seed=9).generate(500)
        b = SyntheticVsyncSource(jitter_ms=0.5, drop_rate=0.1, seed=9).generate(500)
        np.testing.assert_array_equal(a, b)

    @pytest.mark.parametrize("kwargs", [
        {'hz': 0.0},
        {'drop_rate': 1.0},
        {'drop_rate': -0.1},
        {'jitter_ms': -1.0},
    ])
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ValueError):
            SyntheticVsyncSource(**kwargs)


class TestSwitchRate:
    """Test mid-stream refresh rate changes."""

    def test_second_segment_follows_first(self):
        first = SyntheticVsyncSource(hz=60.0, start_ms=0.0)
        stamps = switch_rate(first, 10, 120.0, 10)

        assert len(stamps) == 20
        deltas = np.diff(stamps)
        np.testing.assert_allclose(deltas[:9], 1000.0 / 60.0)
        np.testing.assert_allclose(deltas[9:], 1000.0 / 120.0)
