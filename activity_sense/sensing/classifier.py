"""
Activity classification contract and the local heuristic backend.

Every backend receives a ``ClassificationRequest`` (twelve feature scalars
plus the previously confirmed activity, if any) and returns an
``ActivityLabel``.  Backends must treat the previous activity as a soft
prior: re-affirm it unless the features show a strong, unambiguous shift.
Backends signal failure by raising; the session turns failures into the
degraded "Unknown" label.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple, runtime_checkable

from activity_sense.sensing.feature_extractor import MotionFeatures

logger = logging.getLogger(__name__)

UNKNOWN_ACTIVITY = "Unknown"
UNKNOWN_EMOJI = "❓"
UNREACHABLE_REASONING = "Could not connect to AI service."
NO_CONTEXT_MARKER = "None / Initializing"


class ClassificationError(Exception):
    """Raised when a backend cannot produce a usable label."""
    pass


# ---------------------------------------------------------------------------
# Request / response types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ClassificationRequest:
    """Input to a classification backend."""

    features: MotionFeatures
    previous_activity: Optional[str] = None   # None = no prior context

    @property
    def context_label(self) -> str:
        return self.previous_activity or NO_CONTEXT_MARKER


@dataclass
class ActivityLabel:
    """A classified activity as shown to consumers."""

    activity: str
    confidence: float                 # 0 to 100
    emoji: str
    reasoning: str
    timestamp: float                  # UNIX epoch seconds
    degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_response(
        cls, payload: Mapping[str, Any], timestamp: Optional[float] = None
    ) -> "ActivityLabel":
        """
        Validate a backend response payload and build a label from it.

        Raises
        ------
        ClassificationError
            If a required field is missing, empty or of the wrong type.
        """
        if not isinstance(payload, Mapping):
            raise ClassificationError(
                f"Expected a JSON object from backend, got {type(payload).__name__}"
            )

        missing = [k for k in ("activity", "confidence", "emoji", "reasoning") if k not in payload]
        if missing:
            raise ClassificationError(f"Backend response missing fields: {', '.join(missing)}")

        activity = payload["activity"]
        if not isinstance(activity, str) or not activity.strip():
            raise ClassificationError("Backend response has an empty activity name")

        for key in ("emoji", "reasoning"):
            if not isinstance(payload[key], str):
                raise ClassificationError(
                    f"Backend {key} must be a string, got {type(payload[key]).__name__}"
                )

        if isinstance(payload["confidence"], bool):
            raise ClassificationError("Backend confidence is a boolean, expected a number")
        try:
            confidence = float(payload["confidence"])
        except (TypeError, ValueError) as exc:
            raise ClassificationError(
                f"Backend confidence is not numeric: {payload['confidence']!r}"
            ) from exc
        if math.isnan(confidence):
            raise ClassificationError("Backend confidence is NaN")

        return cls(
            activity=activity.strip(),
            confidence=clamp_confidence(confidence),
            emoji=payload["emoji"],
            reasoning=payload["reasoning"],
            timestamp=time.time() if timestamp is None else timestamp,
        )


def clamp_confidence(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


def degraded_label(timestamp: Optional[float] = None) -> ActivityLabel:
    """The sentinel label published when the backend is unavailable."""
    return ActivityLabel(
        activity=UNKNOWN_ACTIVITY,
        confidence=0.0,
        emoji=UNKNOWN_EMOJI,
        reasoning=UNREACHABLE_REASONING,
        timestamp=time.time() if timestamp is None else timestamp,
        degraded=True,
    )


# ---------------------------------------------------------------------------
# Backend protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class ClassificationBackend(Protocol):
    """Protocol that all classification backends must implement."""

    async def classify(self, request: ClassificationRequest) -> ActivityLabel:
        """Classify the features in *request*, raising on failure."""
        ...


# ---------------------------------------------------------------------------
# Heuristic backend
# ---------------------------------------------------------------------------

ACTIVITY_EMOJI: Dict[str, str] = {
    "Stationary": "\U0001F9CD",
    "Walking": "\U0001F6B6",
    "Running": "\U0001F3C3",
    "Phone Usage": "\U0001F4F1",
}


class HeuristicClassifier:
    """
    Rule-based activity classifier with previous-activity hysteresis.

    Classification rules
    --------------------
    ``intensity`` is the norm of the three accelerometer standard deviations,
    ``rotation`` the norm of the three gyroscope standard deviations.

    1. ``Stationary`` if intensity < ``still_threshold``.
    2. ``Phone Usage`` if rotation >= ``phone_rotation_threshold`` and
       intensity < ``run_threshold`` (twisting without running).
    3. ``Walking`` if intensity < ``run_threshold``.
    4. ``Running`` otherwise.

    Stability
    ---------
    Each decision carries a margin in [0, 1]: how deep the features sit
    inside the chosen class relative to its boundaries.  When a previous
    activity is given and differs from the raw decision, the classifier only
    switches if the margin reaches ``switch_margin``; otherwise it
    re-affirms the previous activity.

    Parameters
    ----------
    still_threshold : float
        Intensity (m/s^2) below which the device is considered still (default 0.5).
    run_threshold : float
        Intensity (m/s^2) at or above which motion is running (default 6.0).
    phone_rotation_threshold : float
        Rotation (deg/s) indicating hand-held twisting (default 60).
    switch_margin : float
        Minimum margin needed to leave the previous activity (default 0.3).
    """

    def __init__(
        self,
        still_threshold: float = 0.5,
        run_threshold: float = 6.0,
        phone_rotation_threshold: float = 60.0,
        switch_margin: float = 0.3,
    ) -> None:
        if not 0.0 < still_threshold < run_threshold:
            raise ValueError("Thresholds must satisfy 0 < still_threshold < run_threshold")
        self._still = still_threshold
        self._run = run_threshold
        self._phone = phone_rotation_threshold
        self._switch_margin = switch_margin

    @property
    def switch_margin(self) -> float:
        return self._switch_margin

    async def classify(self, request: ClassificationRequest) -> ActivityLabel:
        return self.predict(request.features, request.previous_activity)

    def predict(
        self, features: MotionFeatures, previous_activity: Optional[str] = None
    ) -> ActivityLabel:
        """Classify *features*, biased towards *previous_activity*."""
        intensity = features.acc_std_magnitude
        rotation = features.gyro_std_magnitude
        activity, margin = self._decide(intensity, rotation)

        details = (
            f"acc_std={intensity:.2f} m/s^2 (still<{self._still}, run>={self._run}), "
            f"gyro_std={rotation:.2f} deg/s (phone>={self._phone})"
        )

        if previous_activity and previous_activity != activity:
            if margin < self._switch_margin:
                # Ambiguous evidence: hold the previous activity.
                confidence = 50.0 + 25.0 * (1.0 - margin / max(self._switch_margin, 1e-12))
                return ActivityLabel(
                    activity=previous_activity,
                    confidence=clamp_confidence(confidence),
                    emoji=ACTIVITY_EMOJI.get(previous_activity, UNKNOWN_EMOJI),
                    reasoning=(
                        f"Pattern leans towards {activity} but is not decisive; "
                        f"keeping {previous_activity}. {details}"
                    ),
                    timestamp=time.time(),
                )
            reasoning = f"Clear shift from {previous_activity} to {activity}. {details}"
        else:
            reasoning = f"{activity} pattern. {details}"

        confidence = 50.0 + 50.0 * margin
        if previous_activity == activity:
            confidence += 10.0

        return ActivityLabel(
            activity=activity,
            confidence=clamp_confidence(confidence),
            emoji=ACTIVITY_EMOJI[activity],
            reasoning=reasoning,
            timestamp=time.time(),
        )

    def _decide(self, intensity: float, rotation: float) -> Tuple[str, float]:
        """Return the raw activity and its margin in [0, 1]."""
        if intensity < self._still:
            return "Stationary", 1.0 - intensity / self._still

        if intensity < self._run:
            distance = min(intensity - self._still, self._run - intensity)
            band_margin = min(1.0, distance / ((self._run - self._still) / 2.0))
            if self._phone > 0 and rotation >= self._phone:
                return "Phone Usage", min(1.0, (rotation - self._phone) / self._phone)
            return "Walking", band_margin

        return "Running", min(1.0, (intensity - self._run) / self._run)
