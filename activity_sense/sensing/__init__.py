"""
Motion Activity Sensing Module
==============================

Streaming human-activity recognition from smartphone motion sensors.
Samples from the accelerometer and gyroscope are kept in a sliding window,
summarized into per-axis statistics, and classified on a fixed cadence with
the previous activity forwarded as a stability prior.

Components:
    - buffer: MotionSample type and the bounded sliding window
    - feature_extractor: per-channel mean / population std features
    - classifier: backend contract, degraded label, heuristic backend
    - gemini: remote Gemini backend over HTTP
    - session: periodic classification and start/stop lifecycle
    - sources: simulated and UDP motion sources
    - recorder: labeled feature recording and JSON export
    - ws_server: WebSocket broadcast of samples, features and labels
"""

from activity_sense.sensing.buffer import (
    CHANNELS,
    MotionSample,
    SampleBuffer,
)
from activity_sense.sensing.feature_extractor import (
    MotionFeatureExtractor,
    MotionFeatures,
)
from activity_sense.sensing.classifier import (
    ActivityLabel,
    ClassificationBackend,
    ClassificationError,
    ClassificationRequest,
    HeuristicClassifier,
    degraded_label,
)
from activity_sense.sensing.gemini import GeminiClassifier
from activity_sense.sensing.session import (
    ActivitySession,
    SessionState,
)
from activity_sense.sensing.sources import (
    SimulatedMotionSource,
    UdpMotionSource,
    sample_from_payload,
)
from activity_sense.sensing.recorder import (
    LabeledFeatureRecorder,
    LabeledFeatures,
)

__all__ = [
    "CHANNELS",
    "MotionSample",
    "SampleBuffer",
    "MotionFeatureExtractor",
    "MotionFeatures",
    "ActivityLabel",
    "ClassificationBackend",
    "ClassificationError",
    "ClassificationRequest",
    "HeuristicClassifier",
    "degraded_label",
    "GeminiClassifier",
    "ActivitySession",
    "SessionState",
    "SimulatedMotionSource",
    "UdpMotionSource",
    "sample_from_payload",
    "LabeledFeatureRecorder",
    "LabeledFeatures",
]
