"""
Integration tests for the streaming pipeline.

Runs a simulated (or UDP) source into a live session with the heuristic
backend and the real tick loop, using short intervals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from activity_sense.config.settings import Settings
from activity_sense.sensing.classifier import ActivityLabel, HeuristicClassifier
from activity_sense.sensing.session import ActivitySession
from activity_sense.sensing.sources import SimulatedMotionSource, UdpMotionSource

pytestmark = pytest.mark.integration


def fast_settings(**overrides) -> Settings:
    values = dict(
        environment="testing",
        backend="heuristic",
        sample_rate_hz=200.0,
        window_seconds=0.5,
        tick_interval=0.1,
    )
    values.update(overrides)
    return Settings(**values)


class SlowBackend:
    """Takes longer than several ticks to answer."""

    def __init__(self, delay: float):
        self.delay = delay
        self.calls = 0
        self.max_concurrent = 0
        self._active = 0

    async def classify(self, request):
        self.calls += 1
        self._active += 1
        self.max_concurrent = max(self.max_concurrent, self._active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self._active -= 1
        return ActivityLabel("Walking", 70.0, "*", "slow", 0.0)


class TestLivePipeline:
    @pytest.mark.asyncio
    async def test_simulated_walking_is_classified(self):
        settings = fast_settings()
        session = ActivitySession.from_settings(settings, HeuristicClassifier())
        source = SimulatedMotionSource(sample_rate_hz=settings.sample_rate_hz, profile="walking")
        labels = []
        session.add_listener(labels.append)

        await source.start(session.ingest)
        await session.start()
        await asyncio.sleep(1.0)
        await session.stop()
        await source.stop()

        assert labels
        assert labels[-1].activity == "Walking"
        assert session.stats["ticks_fired"] >= 5
        assert session.stats["degraded_labels"] == 0

    @pytest.mark.asyncio
    async def test_no_label_before_warm_up(self):
        settings = fast_settings(window_seconds=10.0)
        session = ActivitySession.from_settings(settings, HeuristicClassifier())
        source = SimulatedMotionSource(sample_rate_hz=settings.sample_rate_hz)

        await source.start(session.ingest)
        await session.start()
        await asyncio.sleep(0.35)
        await session.stop()
        await source.stop()

        # 800 samples needed at 200 Hz; well under that in 0.35 s
        assert session.current_label is None
        assert session.stats["ticks_skipped"] >= 2

    @pytest.mark.asyncio
    async def test_slow_backend_never_overlaps(self):
        settings = fast_settings(tick_interval=0.05, classify_timeout=1.0)
        backend = SlowBackend(delay=0.3)
        session = ActivitySession.from_settings(settings, backend)
        source = SimulatedMotionSource(sample_rate_hz=settings.sample_rate_hz)

        await source.start(session.ingest)
        await session.start()
        await asyncio.sleep(1.0)
        await session.stop()
        await source.stop()

        assert backend.max_concurrent == 1
        assert session.stats["ticks_dropped"] > 0

    @pytest.mark.asyncio
    async def test_stop_mid_flight_publishes_nothing_more(self):
        settings = fast_settings(tick_interval=0.05, classify_timeout=5.0)
        backend = SlowBackend(delay=2.0)
        session = ActivitySession.from_settings(settings, backend)
        listener = AsyncMock()
        session.add_listener(listener)
        source = SimulatedMotionSource(sample_rate_hz=settings.sample_rate_hz)

        await source.start(session.ingest)
        await session.start()
        while backend.calls == 0:
            await asyncio.sleep(0.02)
        await session.stop()
        await source.stop()
        await asyncio.sleep(0.1)

        listener.assert_not_awaited()
        assert session.current_label is None
        assert not session.is_classifying

    @pytest.mark.asyncio
    async def test_udp_source_feeds_session(self):
        settings = fast_settings(window_seconds=0.2, tick_interval=60.0)
        session = ActivitySession.from_settings(settings, HeuristicClassifier())
        source = UdpMotionSource(host="127.0.0.1", port=0)
        await source.start(session.ingest)
        await session.start()

        sockname = source._transport.get_extra_info("sockname")
        loop = asyncio.get_running_loop()
        sender, _ = await loop.create_datagram_endpoint(
            asyncio.DatagramProtocol, remote_addr=("127.0.0.1", sockname[1])
        )
        try:
            for i in range(session.extractor.min_samples):
                event = {
                    "accelerationIncludingGravity": {"x": 0.01 * (i % 2), "y": 9.81, "z": 0.0},
                    "rotationRate": {"alpha": 0.0, "beta": 0.0, "gamma": 0.0},
                }
                sender.sendto(json.dumps(event).encode())
            for _ in range(50):
                if session.window_length >= session.extractor.min_samples:
                    break
                await asyncio.sleep(0.01)
            label = await session.tick()
        finally:
            sender.close()
            await session.stop()
            await source.stop()

        assert source.frames_received == session.extractor.min_samples
        assert label is not None
        assert label.activity == "Stationary"
