"""
Pytest configuration and fixtures for vsync-estimator tests.
"""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))


@pytest.fixture
def period_60hz():
    """Exact 60 Hz refresh period in ms."""
    return 1000.0 / 60.0


@pytest.fixture
def fast_config():
    """Estimator config without the startup skip."""
    from vsync_estimator.timing.refresh_rate_calculator import RefreshRateConfig
    return RefreshRateConfig(startup_skip=0)


@pytest.fixture
def exact_timestamps():
    """Factory for timestamps exactly on a fixed-Hz grid."""
    def _make(hz, n_cycles, start_ms=1000.0):
        period = 1000.0 / hz
        return [start_ms + k * period for k in range(n_cycles)]
    return _make
