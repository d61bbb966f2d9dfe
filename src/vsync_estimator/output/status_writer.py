"""
Status Writer for vsync-estimator

Publishes an EstimatorReport as JSON (by default to /dev/shm/vsync_status)
so other processes can read the current refresh rate and timebase without
running their own estimator.

The file is updated atomically (write to temp, rename) to prevent partial
reads.

Usage:
    writer = StatusWriter('/dev/shm/vsync_status')
    writer.write(calc.report())
"""

import json
import os
import tempfile
import logging
from pathlib import Path
from typing import Optional

from ..interfaces.cycle_result import CycleSnapshot, EstimatorReport, EstimatorStatus

logger = logging.getLogger(__name__)


class StatusWriter:
    """
    Writes EstimatorReport to a status file.

    Errors are logged and reported through the return value; a failing
    status file never raises into the caller's frame loop.
    """

    DEFAULT_PATH = "/dev/shm/vsync_status"

    def __init__(self, status_path: Optional[str] = None):
        """
        Args:
            status_path: Path of the status file (default: /dev/shm/vsync_status)
        """
        self.status_path = Path(status_path or self.DEFAULT_PATH)
        self.write_count = 0
        logger.info(f"StatusWriter initialized: {self.status_path}")

    def write(self, report: EstimatorReport) -> bool:
        """
        Write a report atomically (temp file + rename).

        Returns:
            True if successful, False on error
        """
        temp_path = None
        try:
            self.status_path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=self.status_path.parent,
                prefix='.vsync_status_',
                suffix='.tmp'
            )
            with os.fdopen(fd, 'w') as f:
                f.write(report.to_json())
            os.replace(temp_path, self.status_path)
            temp_path = None

            self.write_count += 1
            if self.write_count % 60 == 0:
                logger.debug(
                    f"Status write #{self.write_count}: "
                    f"{report.frequency_hz:.4f}Hz, status={report.status.value}"
                )
            return True

        except OSError as e:
            logger.error(f"Failed to write status: {e}")
            return False
        finally:
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)

    def clear(self):
        """Remove the status file."""
        try:
            if self.status_path.exists():
                self.status_path.unlink()
                logger.info(f"Cleared status: {self.status_path}")
        except OSError as e:
            logger.warning(f"Failed to clear status: {e}")


class StatusReader:
    """
    Reads EstimatorReport from a status file.

    Usage:
        reader = StatusReader('/dev/shm/vsync_status')
        snap = reader.get_snapshot()
        if snap:
            next_vsync = snap.next_cycle(now_ms)
    """

    DEFAULT_PATH = "/dev/shm/vsync_status"

    def __init__(self, status_path: Optional[str] = None):
        self.status_path = Path(status_path or self.DEFAULT_PATH)
        self._read_count = 0

    def read(self) -> Optional[EstimatorReport]:
        """
        Read the current report.

        Returns:
            EstimatorReport or None if unavailable or invalid
        """
        try:
            if not self.status_path.exists():
                return None
            report = EstimatorReport.from_json(self.status_path.read_text())
            self._read_count += 1
            return report

        except (json.JSONDecodeError, ValueError, AttributeError) as e:
            logger.warning(f"Invalid status file: {e}")
            return None
        except OSError as e:
            logger.warning(f"Failed to read status: {e}")
            return None

    def get_frequency(self) -> Optional[float]:
        """Published Hz estimate, or None if there is none."""
        report = self.read()
        if report and report.has_estimate:
            return report.frequency_hz
        return None

    def get_snapshot(self) -> Optional[CycleSnapshot]:
        report = self.read()
        return report.snapshot() if report else None

    def is_locked(self) -> bool:
        report = self.read()
        return report is not None and report.status == EstimatorStatus.LOCKED

    @property
    def available(self) -> bool:
        return self.status_path.exists()
