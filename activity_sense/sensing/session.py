"""
Activity recognition session: sample buffering, periodic classification,
and start/stop lifecycle.

A session owns the sliding window and the "previous activity" context.
While active it fires a classification tick every ``tick_interval``
seconds.  Each tick extracts features from a window snapshot, sends them
together with the previous confirmed activity to the backend, and
publishes the resulting label to listeners.

Concurrency rules (single asyncio event loop):
    - at most one backend call is in flight; a tick that comes due while
      one is outstanding is dropped, not queued
    - stopping cancels the tick loop and the in-flight call, and any
      result belonging to an earlier start is discarded
    - a failed call publishes the degraded label but leaves the previous
      activity context untouched
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from activity_sense.sensing.buffer import MotionSample, SampleBuffer
from activity_sense.sensing.classifier import (
    ActivityLabel,
    ClassificationBackend,
    ClassificationError,
    ClassificationRequest,
    degraded_label,
)
from activity_sense.sensing.feature_extractor import (
    DEFAULT_MIN_FILL_RATIO,
    MotionFeatureExtractor,
    MotionFeatures,
)

logger = logging.getLogger(__name__)

LabelListener = Callable[[ActivityLabel], Union[None, Awaitable[None]]]


class SessionState(Enum):
    """Lifecycle state of a session."""

    IDLE = "idle"
    ACTIVE = "active"


class ActivitySession:
    """
    One activity recognition session.

    Parameters
    ----------
    backend : ClassificationBackend
        Backend invoked on every tick with enough data.
    capacity : int
        Sliding window capacity in samples (default 100, 5 s at 20 Hz).
    min_fill_ratio : float
        Fraction of the window required before classifying (default 0.4).
    tick_interval : float
        Seconds between classification ticks (default 2.0).
    classify_timeout : float, optional
        Upper bound on one backend call; defaults to ``tick_interval``.
    """

    def __init__(
        self,
        backend: ClassificationBackend,
        capacity: int = 100,
        min_fill_ratio: float = DEFAULT_MIN_FILL_RATIO,
        tick_interval: float = 2.0,
        classify_timeout: Optional[float] = None,
    ) -> None:
        if tick_interval <= 0:
            raise ValueError(f"tick_interval must be positive, got {tick_interval}")

        self._backend = backend
        self._buffer = SampleBuffer(capacity)
        self._extractor = MotionFeatureExtractor(capacity, min_fill_ratio)
        self._tick_interval = tick_interval
        self._classify_timeout = classify_timeout or tick_interval

        self._state = SessionState.IDLE
        self._generation = 0
        self._tick_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None

        self._current_sample: Optional[MotionSample] = None
        self._current_label: Optional[ActivityLabel] = None
        self._previous_activity: Optional[str] = None
        self._listeners: List[LabelListener] = []

        self.stats: Dict[str, int] = {
            "samples_ingested": 0,
            "ticks_fired": 0,
            "ticks_skipped": 0,
            "ticks_dropped": 0,
            "requests_sent": 0,
            "labels_published": 0,
            "degraded_labels": 0,
            "stale_results_discarded": 0,
        }

    @classmethod
    def from_settings(cls, settings, backend: ClassificationBackend) -> "ActivitySession":
        """Build a session from application settings."""
        return cls(
            backend=backend,
            capacity=settings.window_capacity,
            min_fill_ratio=settings.min_fill_ratio,
            tick_interval=settings.tick_interval,
            classify_timeout=settings.classify_timeout,
        )

    # -- consumer interface --------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SessionState.ACTIVE

    @property
    def is_classifying(self) -> bool:
        """True while a backend call is outstanding."""
        return self._inflight is not None and not self._inflight.done()

    @property
    def window_length(self) -> int:
        return len(self._buffer)

    @property
    def extractor(self) -> MotionFeatureExtractor:
        return self._extractor

    @property
    def backend(self) -> ClassificationBackend:
        return self._backend

    @property
    def tick_interval(self) -> float:
        return self._tick_interval

    @property
    def current_sample(self) -> Optional[MotionSample]:
        return self._current_sample

    @property
    def current_label(self) -> Optional[ActivityLabel]:
        return self._current_label

    @property
    def previous_activity(self) -> Optional[str]:
        return self._previous_activity

    def window_snapshot(self) -> List[MotionSample]:
        return self._buffer.snapshot()

    def get_features(self) -> Optional[MotionFeatures]:
        """Features of the current window, or None while warming up."""
        return self._extractor.extract(self._buffer.snapshot())

    def add_listener(self, listener: LabelListener) -> None:
        """Register a callable (sync or async) invoked with every published label."""
        self._listeners.append(listener)

    def remove_listener(self, listener: LabelListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # -- ingestion -----------------------------------------------------------

    def ingest(self, sample: MotionSample) -> None:
        """
        Accept one sample from a sensor source.

        The live sample is always updated; it only enters the window while
        the session is active.
        """
        self._current_sample = sample
        if self._state is SessionState.ACTIVE:
            self._buffer.append(sample)
            self.stats["samples_ingested"] += 1

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> SessionState:
        """Begin buffering and classifying. No-op when already active."""
        if self._state is SessionState.ACTIVE:
            return self._state

        self._generation += 1
        self._buffer.reset()
        self._previous_activity = None
        self._current_label = None
        self._state = SessionState.ACTIVE
        self._tick_task = asyncio.create_task(
            self._tick_loop(self._generation), name="activity-classification-loop"
        )
        logger.info(
            "Activity session started (window=%d samples, min=%d, tick=%.2fs)",
            self._buffer.capacity,
            self._extractor.min_samples,
            self._tick_interval,
        )
        return self._state

    async def stop(self) -> SessionState:
        """Stop classifying and clear the window and context. No-op when idle."""
        if self._state is SessionState.IDLE:
            return self._state

        self._state = SessionState.IDLE
        self._generation += 1

        # Detach everything before the first await; a start() may run meanwhile
        pending = (self._tick_task, self._inflight)
        self._tick_task = None
        self._inflight = None
        self._buffer.reset()
        self._previous_activity = None

        current = asyncio.current_task()
        for task in pending:
            if task is None or task.done() or task is current:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        logger.info("Activity session stopped")
        return self._state

    # -- orchestration -------------------------------------------------------

    async def tick(self) -> Optional[ActivityLabel]:
        """
        Run one classification tick now and wait for it.

        Returns the published label, or None when the tick was skipped
        (inactive, insufficient data, another call in flight) or its result
        was discarded.
        """
        if self._state is not SessionState.ACTIVE:
            return None
        task = self._dispatch_tick(self._generation)
        if task is None:
            return None
        return await task

    def _dispatch_tick(self, generation: int) -> Optional[asyncio.Task]:
        self.stats["ticks_fired"] += 1
        if self.is_classifying:
            self.stats["ticks_dropped"] += 1
            logger.debug("Classification still in flight; dropping tick")
            return None
        self._inflight = asyncio.create_task(
            self._run_tick(generation), name="activity-classification-tick"
        )
        return self._inflight

    async def _tick_loop(self, generation: int) -> None:
        """Fire a tick every ``tick_interval`` seconds until cancelled."""
        loop = asyncio.get_running_loop()
        next_due = loop.time() + self._tick_interval
        try:
            while self._state is SessionState.ACTIVE and generation == self._generation:
                await asyncio.sleep(max(0.0, next_due - loop.time()))
                if generation != self._generation:
                    break
                next_due += self._tick_interval
                self._dispatch_tick(generation)
        except asyncio.CancelledError:
            logger.debug("Classification loop cancelled")

    async def _run_tick(self, generation: int) -> Optional[ActivityLabel]:
        features = self.get_features()
        if features is None:
            self.stats["ticks_skipped"] += 1
            logger.debug(
                "Waiting for samples (%d/%d)", len(self._buffer), self._extractor.min_samples
            )
            return None

        request = ClassificationRequest(
            features=features, previous_activity=self._previous_activity
        )
        self.stats["requests_sent"] += 1

        confirmed = False
        try:
            label = await asyncio.wait_for(
                self._backend.classify(request), timeout=self._classify_timeout
            )
            if not isinstance(label, ActivityLabel):
                raise ClassificationError(
                    f"Backend returned {type(label).__name__}, expected ActivityLabel"
                )
            confirmed = True
        except asyncio.CancelledError:
            logger.debug("Classification cancelled")
            return None
        except asyncio.TimeoutError:
            logger.warning("Classification timed out after %.2fs", self._classify_timeout)
            label = degraded_label()
        except ClassificationError as exc:
            logger.warning("Classification failed: %s", exc)
            label = degraded_label()
        except Exception:
            logger.exception("Unexpected error from classification backend")
            label = degraded_label()

        if generation != self._generation:
            self.stats["stale_results_discarded"] += 1
            logger.debug("Discarding classification result from a stopped session")
            return None

        self._current_label = label
        if confirmed:
            self._previous_activity = label.activity
        else:
            self.stats["degraded_labels"] += 1
        self.stats["labels_published"] += 1

        logger.info(
            "Activity: %s %s (%.0f%%)", label.emoji, label.activity, label.confidence
        )
        # Fan-out is not part of the backend call
        if self._inflight is asyncio.current_task():
            self._inflight = None
        await self._notify(label)
        return label

    async def _notify(self, label: ActivityLabel) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(label)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Label listener %r failed", listener)

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of session state for status output."""
        return {
            "state": self._state.value,
            "window_length": len(self._buffer),
            "window_capacity": self._buffer.capacity,
            "min_samples": self._extractor.min_samples,
            "tick_interval": self._tick_interval,
            "classifying": self.is_classifying,
            "previous_activity": self._previous_activity,
            "current_label": self._current_label.to_dict() if self._current_label else None,
            "stats": dict(self.stats),
        }

    def __repr__(self) -> str:
        return (
            f"ActivitySession(state={self._state.value}, "
            f"window={len(self._buffer)}/{self._buffer.capacity})"
        )
