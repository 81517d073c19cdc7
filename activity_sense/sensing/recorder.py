"""
Labeled feature recording for building training datasets.

While recording, the recorder samples the session's feature vector at a
fixed interval and stores it under a manually chosen label.  Intervals
where the window is still warming up are skipped.  Records can be exported
as a JSON list of flat dictionaries.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from activity_sense.sensing.feature_extractor import MotionFeatures
from activity_sense.sensing.session import ActivitySession

logger = logging.getLogger(__name__)

DEFAULT_LABELS = ("Idle", "Walking", "Running", "Sitting", "Standing", "Jumping")


@dataclass
class LabeledFeatures:
    """One feature vector with its manual label."""

    label: str
    features: MotionFeatures
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = self.features.to_dict()
        record["label"] = self.label
        record["timestamp"] = self.timestamp
        return record


class LabeledFeatureRecorder:
    """
    Record labeled feature vectors from an active session.

    Parameters
    ----------
    session : ActivitySession
        Session whose window is sampled; it must be started separately.
    interval : float
        Seconds between recorded vectors (default 1.0).
    """

    def __init__(self, session: ActivitySession, interval: float = 1.0) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._session = session
        self._interval = interval
        self._records: List[LabeledFeatures] = []
        self._label: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._waiting_for_data = False

    @property
    def records(self) -> List[LabeledFeatures]:
        return list(self._records)

    @property
    def is_recording(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def waiting_for_data(self) -> bool:
        return self._waiting_for_data

    @property
    def label(self) -> Optional[str]:
        return self._label

    def capture(self, label: Optional[str] = None) -> Optional[LabeledFeatures]:
        """Record one vector now; returns None while the window is warming up."""
        label = label or self._label
        if not label:
            raise ValueError("A label is required to record features")

        features = self._session.get_features()
        if features is None:
            self._waiting_for_data = True
            return None

        self._waiting_for_data = False
        record = LabeledFeatures(label=label, features=features, timestamp=time.time())
        self._records.append(record)
        return record

    async def start(self, label: str) -> None:
        """Begin recording under *label* (switches label if already recording)."""
        if not label:
            raise ValueError("A label is required to record features")
        self._label = label
        if self.is_recording:
            logger.info("Recorder label switched to %s", label)
            return
        self._waiting_for_data = True
        self._task = asyncio.create_task(self._record_loop(), name="feature-recorder")
        logger.info("Recording labeled features as %s every %.1fs", label, self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self._waiting_for_data = False
        logger.info("Recorder stopped with %d records", len(self._records))

    def clear(self) -> None:
        self._records.clear()

    def export(self, path: Union[str, Path]) -> Path:
        """Write all records to *path* as indented JSON and return the path."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in self._records], f, indent=2)
        logger.info("Exported %d labeled records to %s", len(self._records), path)
        return path

    async def _record_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            record = self.capture()
            if record is None:
                logger.debug("Recorder waiting for data")
