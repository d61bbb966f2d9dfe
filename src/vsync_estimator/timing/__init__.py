"""
Refresh cycle timing for vsync-estimator.

Core estimator, its sample store and line fit, and a synthetic source.
"""

from .refresh_rate_calculator import RefreshRateCalculator, RefreshRateConfig
from .sample_store import BoundedSampleStore
from .synthetic_source import SyntheticVsyncSource

__all__ = ['RefreshRateCalculator', 'RefreshRateConfig', 'BoundedSampleStore', 'SyntheticVsyncSource']
