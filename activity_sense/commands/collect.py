"""
Labeled feature collection command for activity-sense
"""

import time
from pathlib import Path
from typing import Optional

from activity_sense.commands.run import build_backend, build_source, close_backend, wait_for
from activity_sense.config.settings import Settings
from activity_sense.logger import get_logger
from activity_sense.sensing.recorder import LabeledFeatureRecorder
from activity_sense.sensing.session import ActivitySession

logger = get_logger(__name__)


async def collect_command(
    settings: Settings,
    label: str,
    duration: float,
    output: Optional[str] = None,
) -> Path:
    """Record labeled features for *duration* seconds and export them."""

    if output is None:
        output = f"har_training_data_{int(time.time() * 1000)}.json"

    backend = build_backend(settings)
    source = build_source(settings)
    session = ActivitySession.from_settings(settings, backend)
    recorder = LabeledFeatureRecorder(session, interval=settings.recorder_interval)

    await source.start(session.ingest)
    await session.start()
    await recorder.start(label)
    try:
        await wait_for(duration)
    finally:
        await recorder.stop()
        await session.stop()
        await source.stop()
        await close_backend(backend)

    if not recorder.records:
        logger.warning("No features recorded; the window never filled (is the source sending data?)")
    return recorder.export(output)
