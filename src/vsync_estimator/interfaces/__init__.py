"""Data contracts shared by the estimator, the status writer and the CLI."""

from .cycle_result import CycleSnapshot, DriftWindow, EstimatorReport, EstimatorStatus

__all__ = ['CycleSnapshot', 'DriftWindow', 'EstimatorReport', 'EstimatorStatus']
