"""Output modules for vsync-estimator."""

from .status_writer import StatusWriter, StatusReader

__all__ = ['StatusWriter', 'StatusReader']
