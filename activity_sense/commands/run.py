"""
Run and serve command implementations for activity-sense
"""

import asyncio
import json
from typing import Optional, Union

import click

from activity_sense.config.settings import Settings
from activity_sense.logger import get_logger
from activity_sense.sensing.classifier import ActivityLabel, ClassificationBackend, HeuristicClassifier
from activity_sense.sensing.gemini import GeminiClassifier
from activity_sense.sensing.session import ActivitySession
from activity_sense.sensing.sources import SimulatedMotionSource, UdpMotionSource
from activity_sense.sensing.ws_server import ActivityWebSocketServer

logger = get_logger(__name__)

MotionSourceType = Union[SimulatedMotionSource, UdpMotionSource]


def build_backend(settings: Settings) -> ClassificationBackend:
    """Create the classification backend selected in settings."""
    if settings.backend == "heuristic":
        return HeuristicClassifier(
            still_threshold=settings.heuristic_still_threshold,
            run_threshold=settings.heuristic_run_threshold,
            phone_rotation_threshold=settings.heuristic_phone_rotation_threshold,
            switch_margin=settings.heuristic_switch_margin,
        )

    if not settings.ai_api_key:
        logger.warning("No API key configured; every classification will be degraded")
    return GeminiClassifier(
        api_key=settings.ai_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout=settings.classify_timeout or settings.tick_interval,
    )


def build_source(settings: Settings) -> MotionSourceType:
    """Create the motion source selected in settings."""
    if settings.source == "udp":
        return UdpMotionSource(
            host=settings.udp_host,
            port=settings.udp_port,
            sample_rate_hz=settings.sample_rate_hz,
        )
    return SimulatedMotionSource(
        seed=settings.simulation_seed,
        sample_rate_hz=settings.sample_rate_hz,
        profile=settings.simulation_profile,
    )


async def close_backend(backend: ClassificationBackend) -> None:
    aclose = getattr(backend, "aclose", None)
    if aclose is not None:
        await aclose()


async def wait_for(duration: Optional[float]) -> None:
    """Sleep for *duration* seconds, or forever when None."""
    if duration is None:
        await asyncio.Event().wait()
    else:
        await asyncio.sleep(duration)


def format_label(label: ActivityLabel, json_output: bool = False) -> str:
    if json_output:
        return json.dumps(label.to_dict())
    marker = " (degraded)" if label.degraded else ""
    return f"{label.emoji} {label.activity} {label.confidence:.0f}%{marker} - {label.reasoning}"


async def run_command(
    settings: Settings,
    duration: Optional[float] = None,
    json_output: bool = False,
) -> ActivitySession:
    """Run one session and print every published label."""

    backend = build_backend(settings)
    source = build_source(settings)
    session = ActivitySession.from_settings(settings, backend)
    session.add_listener(lambda label: click.echo(format_label(label, json_output)))

    logger.info(f"Starting session: source={settings.source}, backend={settings.backend}")
    await source.start(session.ingest)
    await session.start()
    try:
        await wait_for(duration)
    finally:
        await session.stop()
        await source.stop()
        await close_backend(backend)

    logger.info(f"Session finished: {session.stats}")
    return session


async def serve_command(settings: Settings, duration: Optional[float] = None) -> None:
    """Run a session and broadcast it over WebSocket."""

    backend = build_backend(settings)
    source = build_source(settings)
    session = ActivitySession.from_settings(settings, backend)
    server = ActivityWebSocketServer(
        session,
        host=settings.ws_host,
        port=settings.ws_port,
        display_interval=settings.display_interval,
        source=settings.source,
    )

    await source.start(session.ingest)
    await session.start()
    server_task = asyncio.create_task(server.run(), name="ws-server")
    try:
        if duration is None:
            await server_task
        else:
            await asyncio.sleep(duration)
    finally:
        server.stop()
        await session.stop()
        await source.stop()
        await close_backend(backend)
        await server_task
