"""
Statistical feature extraction over a window of motion samples.

For each of the six channels (three accelerometer axes, three gyroscope
axes) the extractor computes the arithmetic mean and the population
standard deviation, giving a twelve-value feature vector.  Channels are
treated independently; there are no cross-channel terms.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from activity_sense.sensing.buffer import CHANNELS, MotionSample

logger = logging.getLogger(__name__)

DEFAULT_MIN_FILL_RATIO = 0.4


# ---------------------------------------------------------------------------
# Feature dataclass
# ---------------------------------------------------------------------------

@dataclass
class MotionFeatures:
    """Mean and standard deviation for every motion channel."""

    # -- accelerometer (m/s^2) ---------------------------------------------
    acc_x_mean: float = 0.0
    acc_x_std: float = 0.0
    acc_y_mean: float = 0.0
    acc_y_std: float = 0.0
    acc_z_mean: float = 0.0
    acc_z_std: float = 0.0

    # -- gyroscope (deg/s) -------------------------------------------------
    gyro_alpha_mean: float = 0.0
    gyro_alpha_std: float = 0.0
    gyro_beta_mean: float = 0.0
    gyro_beta_std: float = 0.0
    gyro_gamma_mean: float = 0.0
    gyro_gamma_std: float = 0.0

    # -- metadata ----------------------------------------------------------
    n_samples: int = 0

    def to_dict(self) -> Dict[str, float]:
        """The twelve feature scalars keyed by name (metadata excluded)."""
        values = asdict(self)
        values.pop("n_samples")
        return values

    @property
    def acc_std_magnitude(self) -> float:
        """Euclidean norm of the three accelerometer standard deviations."""
        return math.sqrt(self.acc_x_std ** 2 + self.acc_y_std ** 2 + self.acc_z_std ** 2)

    @property
    def gyro_std_magnitude(self) -> float:
        """Euclidean norm of the three gyroscope standard deviations."""
        return math.sqrt(
            self.gyro_alpha_std ** 2 + self.gyro_beta_std ** 2 + self.gyro_gamma_std ** 2
        )


# ---------------------------------------------------------------------------
# Feature extractor
# ---------------------------------------------------------------------------

class MotionFeatureExtractor:
    """
    Compute per-channel statistics from a window of motion samples.

    Parameters
    ----------
    capacity : int
        Capacity of the window the samples come from.
    min_fill_ratio : float
        Fraction of ``capacity`` that must be present before features are
        produced (default 0.4, i.e. 40 of 100 samples, ~2 s at 20 Hz).
    """

    def __init__(self, capacity: int, min_fill_ratio: float = DEFAULT_MIN_FILL_RATIO) -> None:
        if capacity < 1:
            raise ValueError(f"Capacity must be positive, got {capacity}")
        if not 0.0 < min_fill_ratio <= 1.0:
            raise ValueError(f"min_fill_ratio must be in (0, 1], got {min_fill_ratio}")
        self._capacity = capacity
        self._min_fill_ratio = min_fill_ratio
        # round() first so 100 * 0.4 does not become 41 through float error
        self._min_samples = max(1, math.ceil(round(capacity * min_fill_ratio, 9)))

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def min_samples(self) -> int:
        return self._min_samples

    def has_enough(self, n_samples: int) -> bool:
        return n_samples >= self._min_samples

    def extract(self, samples: Sequence[MotionSample]) -> Optional[MotionFeatures]:
        """
        Extract features from a window snapshot.

        Returns ``None`` while the window holds fewer than ``min_samples``
        samples; callers treat that as "insufficient data", not an error.
        """
        if not self.has_enough(len(samples)):
            logger.debug(
                "Insufficient data for feature extraction (%d < %d)",
                len(samples),
                self._min_samples,
            )
            return None

        matrix = np.array([s.channels() for s in samples], dtype=np.float64)
        return self.extract_from_array(matrix)

    @staticmethod
    def extract_from_array(matrix: NDArray[np.float64]) -> MotionFeatures:
        """
        Extract features directly from an ``(N, 6)`` array, N >= 1.

        No fill threshold is applied here.
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[1] != len(CHANNELS):
            raise ValueError(
                f"Expected an (N, {len(CHANNELS)}) array, got shape {matrix.shape}"
            )
        if matrix.shape[0] == 0:
            raise ValueError("Cannot extract features from an empty window")

        means = matrix.mean(axis=0)
        # ddof=0: population standard deviation
        stds = np.sqrt(np.mean((matrix - means) ** 2, axis=0))

        values: Dict[str, float] = {}
        for idx, channel in enumerate(CHANNELS):
            values[f"{channel}_mean"] = float(means[idx])
            values[f"{channel}_std"] = float(stds[idx])

        return MotionFeatures(n_samples=int(matrix.shape[0]), **values)

