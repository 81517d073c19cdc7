"""
Unit tests for motion sources and payload normalization.

Tests cover:
    - sample_from_payload for nested, flat and prefixed layouts
    - Missing / null / non-finite channels becoming zero
    - SimulatedMotionSource determinism (same seed = same output)
    - UdpMotionSource datagram handling
"""

import asyncio
import json

import numpy as np
import pytest

from activity_sense.sensing.feature_extractor import MotionFeatureExtractor
from activity_sense.sensing.sources import (
    SIMULATION_PROFILES,
    SimulatedMotionSource,
    UdpMotionSource,
    sample_from_payload,
)


def window_intensity(samples) -> float:
    features = MotionFeatureExtractor(capacity=len(samples), min_fill_ratio=1.0).extract(samples)
    return features.acc_std_magnitude


# ===========================================================================
# Payload normalization
# ===========================================================================

class TestSampleFromPayload:
    def test_nested_device_motion_layout(self):
        payload = {
            "accelerationIncludingGravity": {"x": 0.1, "y": 9.7, "z": -0.2},
            "rotationRate": {"alpha": 1.5, "beta": -3.0, "gamma": 0.25},
        }
        s = sample_from_payload(payload, timestamp=10.0)
        assert s.channels() == (0.1, 9.7, -0.2, 1.5, -3.0, 0.25)
        assert s.timestamp == 10.0

    def test_flat_layout(self):
        s = sample_from_payload({"x": 1, "y": 2, "z": 3, "alpha": 4, "beta": 5, "gamma": 6})
        assert s.channels() == (1.0, 2.0, 3.0, 4.0, 5.0, 6.0)

    def test_prefixed_layout(self):
        payload = {"acc_x": 1, "acc_y": 2, "acc_z": 3, "gyro_alpha": 4, "gyro_beta": 5, "gyro_gamma": 6}
        assert sample_from_payload(payload).channels() == (1.0, 2.0, 3.0, 4.0, 5.0, 6.0)

    def test_missing_and_null_channels_are_zero(self):
        payload = {
            "accelerationIncludingGravity": {"x": None, "y": 9.8},
            "rotationRate": None,
        }
        s = sample_from_payload(payload)
        assert s.channels() == (0.0, 9.8, 0.0, 0.0, 0.0, 0.0)

    def test_non_finite_channel_is_zero(self):
        s = sample_from_payload({"x": float("nan"), "y": float("inf"), "z": "1.5"})
        assert s.channels()[:3] == (0.0, 0.0, 1.5)

    def test_receive_time_used_by_default(self):
        s = sample_from_payload({"x": 1.0, "timestamp": 5})
        assert s.timestamp > 1_000_000_000

    @pytest.mark.parametrize("payload", [[1, 2, 3], "x", 42])
    def test_non_mapping_rejected(self, payload):
        with pytest.raises(ValueError):
            sample_from_payload(payload)

    @pytest.mark.parametrize("value", ["fast", True])
    def test_non_numeric_channel_rejected(self, value):
        with pytest.raises(ValueError):
            sample_from_payload({"x": value})


# ===========================================================================
# Simulated source
# ===========================================================================

class TestSimulatedMotionSource:
    def test_deterministic_with_same_seed(self):
        a = SimulatedMotionSource(seed=123).generate_samples(3.0)
        b = SimulatedMotionSource(seed=123).generate_samples(3.0)
        assert [s.channels() for s in a] == [s.channels() for s in b]

    def test_different_seeds_differ(self):
        a = SimulatedMotionSource(seed=1).generate_samples(1.0)
        b = SimulatedMotionSource(seed=2).generate_samples(1.0)
        assert [s.channels() for s in a] != [s.channels() for s in b]

    def test_sample_count_matches_rate(self):
        samples = SimulatedMotionSource(sample_rate_hz=20.0).generate_samples(5.0)
        assert len(samples) == 100
        timestamps = [s.timestamp for s in samples]
        assert timestamps == sorted(timestamps)

    def test_gravity_on_y_axis(self):
        samples = SimulatedMotionSource(profile="still").generate_samples(5.0)
        mean_y = np.mean([s.acc_y for s in samples])
        assert mean_y == pytest.approx(9.8, abs=0.1)

    def test_profiles_ordered_by_intensity(self):
        intensity = {
            name: window_intensity(SimulatedMotionSource(seed=7, profile=name).generate_samples(5.0))
            for name in SIMULATION_PROFILES
        }
        assert intensity["still"] < 0.5
        assert intensity["still"] < intensity["walking"] < intensity["running"]

    def test_unknown_profile(self):
        with pytest.raises(ValueError):
            SimulatedMotionSource(profile="swimming")

    @pytest.mark.asyncio
    async def test_background_delivery(self):
        source = SimulatedMotionSource(sample_rate_hz=200.0)
        received = []
        await source.start(received.append)
        await asyncio.sleep(0.1)
        await source.stop()
        assert len(received) > 0
        assert source.samples_emitted == len(received)


# ===========================================================================
# UDP source
# ===========================================================================

class TestUdpMotionSource:
    def test_single_event_datagram(self):
        source = UdpMotionSource()
        source.handle_datagram(json.dumps({"x": 1.0, "y": 9.8}).encode())
        assert source.frames_received == 1
        assert source.frames_dropped == 0

    def test_batched_datagram(self):
        source = UdpMotionSource()
        events = [{"acc_x": float(i)} for i in range(4)]
        source.handle_datagram(json.dumps(events).encode())
        assert source.frames_received == 4

    @pytest.mark.parametrize("data", [b"not json", b"\xff\xfe", b"[1, 2]", b'{"x": "fast"}'])
    def test_malformed_datagram_dropped(self, data):
        source = UdpMotionSource()
        source.handle_datagram(data, ("127.0.0.1", 9999))
        assert source.frames_dropped == 1
        assert source.frames_received == 0

    @pytest.mark.asyncio
    async def test_delivers_to_callback(self):
        source = UdpMotionSource(host="127.0.0.1", port=0)
        received = []
        await source.start(received.append)
        try:
            source.handle_datagram(json.dumps({"rotationRate": {"alpha": 12.0}}).encode())
        finally:
            await source.stop()
        assert len(received) == 1
        assert received[0].gyro_alpha == 12.0
