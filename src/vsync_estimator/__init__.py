"""
vsync-estimator: Display Refresh Rate Estimator

Estimates the true refresh rate of a fixed-Hz display, and a dejittered
timestamp of its refresh cycles, from the jittery and occasionally dropped
frame timestamps an application observes (frame callback, present-API
return, vblank event).

Architecture:
    frame timestamps → RefreshRateCalculator → Hz / (tvsync, ms) snapshot
                                             → StatusWriter (JSON, optional)

The longer the estimator runs on a fixed-Hz display, the more accurate the
estimate becomes. Variable refresh rate displays are not supported.

Version: 1.0.0
"""

__version__ = "1.0.0"

from .interfaces.cycle_result import (
    CycleSnapshot,
    DriftWindow,
    EstimatorReport,
    EstimatorStatus,
)
from .timing.refresh_rate_calculator import RefreshRateCalculator, RefreshRateConfig

__all__ = [
    "RefreshRateCalculator",
    "RefreshRateConfig",
    "CycleSnapshot",
    "DriftWindow",
    "EstimatorReport",
    "EstimatorStatus",
    "__version__",
]
