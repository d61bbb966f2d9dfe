"""
Refresh Cycle Result Data Models

These dataclasses define what the estimator hands back to its callers and
what the status writer publishes for other processes. EstimatorReport is
serialized to JSON; CycleSnapshot is the in-process answer to "when was
the last refresh boundary and how long is a cycle".

Contract Version: 1.0.0
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional
import json
import math
import time


class EstimatorStatus(str, Enum):
    """Estimator progress."""
    SETTLING = "SETTLING"   # Startup skip not yet exhausted
    PRIMING = "PRIMING"     # Building the running-mean interval
    FITTING = "FITTING"     # Interval primed, no validated timebase yet
    LOCKED = "LOCKED"       # Validated timebase available


@dataclass(frozen=True)
class CycleSnapshot:
    """
    Dejittered refresh cycle timing.

    tvsync is an instant aligned with a refresh boundary; adding whole
    multiples of ms gives the other boundaries.
    """
    tvsync: float
    ms: float

    @property
    def frequency_hz(self) -> float:
        return 1000.0 / self.ms if self.ms else 0.0

    def next_cycle(self, t: float) -> float:
        """First refresh boundary strictly after t."""
        cycles = math.floor((t - self.tvsync) / self.ms) + 1
        return self.tvsync + cycles * self.ms

    def offset_from_vsync(self, t: float, lead_ms: float = 2.0) -> float:
        """
        Time of t relative to the nearest refresh boundary.

        Returns a value in [-lead_ms, ms - lead_ms): instants up to lead_ms
        before a boundary count as negative offsets from that boundary.
        """
        if not self.ms:
            return 0.0
        return (t - self.tvsync + lead_ms) % self.ms - lead_ms


@dataclass(frozen=True)
class DriftWindow:
    """Residual spread of the last successful validation."""
    min_ms: float
    max_ms: float

    @property
    def span_ms(self) -> float:
        return self.max_ms - self.min_ms


@dataclass
class EstimatorReport:
    """
    Summary of an estimator's state at one instant.

    Written as JSON by StatusWriter and consumed by StatusReader.
    """
    version: str = "1.0.0"
    generated_at: float = field(default_factory=time.time)

    status: EstimatorStatus = EstimatorStatus.SETTLING
    frequency_hz: float = 0.0
    interval_ms: float = 0.0
    tvsync: Optional[float] = None
    drift: Optional[DriftWindow] = None

    # Bookkeeping
    cycle_count: int = 0
    sample_count: int = 0
    stride: int = 0
    reset_count: int = 0
    last_reset_reason: Optional[str] = None

    @property
    def has_estimate(self) -> bool:
        return self.frequency_hz > 0

    def snapshot(self) -> Optional[CycleSnapshot]:
        if self.tvsync is None or not self.interval_ms:
            return None
        return CycleSnapshot(tvsync=self.tvsync, ms=self.interval_ms)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "EstimatorReport":
        """Deserialize from JSON."""
        data = json.loads(json_str)

        drift = None
        if data.get("drift"):
            drift = DriftWindow(
                min_ms=data["drift"].get("min_ms", 0.0),
                max_ms=data["drift"].get("max_ms", 0.0),
            )

        return cls(
            version=data.get("version", "1.0.0"),
            generated_at=data.get("generated_at", time.time()),
            status=EstimatorStatus(data.get("status", "SETTLING")),
            frequency_hz=data.get("frequency_hz", 0.0),
            interval_ms=data.get("interval_ms", 0.0),
            tvsync=data.get("tvsync"),
            drift=drift,
            cycle_count=data.get("cycle_count", 0),
            sample_count=data.get("sample_count", 0),
            stride=data.get("stride", 0),
            reset_count=data.get("reset_count", 0),
            last_reset_reason=data.get("last_reset_reason"),
        )
