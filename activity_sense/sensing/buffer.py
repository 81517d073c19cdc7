"""
Motion sample type and the bounded sliding-window buffer.

The buffer holds the most recent ``capacity`` samples, which at the nominal
sampling rate approximates a fixed wall-clock window (100 samples ~= 5 s at
20 Hz).  Eviction is strictly oldest-first.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Tuple

logger = logging.getLogger(__name__)

CHANNELS: Tuple[str, ...] = (
    "acc_x",
    "acc_y",
    "acc_z",
    "gyro_alpha",
    "gyro_beta",
    "gyro_gamma",
)


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MotionSample:
    """A single accelerometer + gyroscope reading."""

    timestamp: float          # UNIX epoch seconds (time.time())
    acc_x: float = 0.0        # m/s^2, gravity included
    acc_y: float = 0.0
    acc_z: float = 0.0
    gyro_alpha: float = 0.0   # deg/s around Z (yaw)
    gyro_beta: float = 0.0    # deg/s around X (pitch)
    gyro_gamma: float = 0.0   # deg/s around Y (roll)

    def channels(self) -> Tuple[float, float, float, float, float, float]:
        """Return the six channel values in ``CHANNELS`` order."""
        return (
            self.acc_x,
            self.acc_y,
            self.acc_z,
            self.gyro_alpha,
            self.gyro_beta,
            self.gyro_gamma,
        )


# ---------------------------------------------------------------------------
# Sliding-window buffer
# ---------------------------------------------------------------------------

class SampleBuffer:
    """Fixed-capacity FIFO of MotionSample objects."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"Buffer capacity must be positive, got {capacity}")
        self._buf: Deque[MotionSample] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._buf.maxlen

    def append(self, sample: MotionSample) -> None:
        self._buf.append(sample)

    def snapshot(self) -> List[MotionSample]:
        """Return a copy of all samples (oldest first)."""
        return list(self._buf)

    def latest(self, n: int) -> List[MotionSample]:
        """Return the most recent *n* samples."""
        if n <= 0:
            return []
        items = list(self._buf)
        return items[-n:] if n < len(items) else items

    def reset(self) -> None:
        self._buf.clear()

    def __len__(self) -> int:
        return len(self._buf)

    def __repr__(self) -> str:
        return f"SampleBuffer(len={len(self._buf)}, capacity={self.capacity})"
