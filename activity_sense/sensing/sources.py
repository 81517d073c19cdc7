"""
Motion sample sources.

Provides two concrete sources that push ``MotionSample`` objects into a
callback (normally ``ActivitySession.ingest``):
    - SimulatedMotionSource: deterministic synthetic gait signal for demos and tests
    - UdpMotionSource: JSON motion events streamed over UDP by a phone or board

Sources are responsible for normalizing missing channel values to zero
before a sample reaches the session.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple

import numpy as np

from activity_sense.sensing.buffer import MotionSample

logger = logging.getLogger(__name__)

SampleCallback = Callable[[MotionSample], None]


# ---------------------------------------------------------------------------
# Payload normalization
# ---------------------------------------------------------------------------

def _channel(value: Any) -> float:
    """Coerce one channel value; missing or non-finite values become 0."""
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        raise ValueError("Boolean is not a valid channel value")
    number = float(value)
    if not math.isfinite(number):
        return 0.0
    return number


def sample_from_payload(
    payload: Mapping[str, Any], timestamp: Optional[float] = None
) -> MotionSample:
    """
    Build a MotionSample from a device-motion style mapping.

    Accepted layouts (any channel may be absent or null):
        - ``{"accelerationIncludingGravity": {"x", "y", "z"},
             "rotationRate": {"alpha", "beta", "gamma"}}``
        - ``{"x", "y", "z", "alpha", "beta", "gamma"}``
        - ``{"acc_x", ..., "gyro_gamma"}``

    The sample is stamped with the receive time unless *timestamp* is given.

    Raises
    ------
    ValueError
        If the payload is not a mapping or a channel is not numeric.
    """
    if not isinstance(payload, Mapping):
        raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")

    acc = payload.get("accelerationIncludingGravity") or payload.get("acceleration") or {}
    rot = payload.get("rotationRate") or {}
    if not isinstance(acc, Mapping) or not isinstance(rot, Mapping):
        raise ValueError("Nested acceleration/rotationRate must be objects")

    def pick(nested: Mapping[str, Any], short: str, flat: str) -> float:
        if short in nested:
            return _channel(nested[short])
        if short in payload:
            return _channel(payload[short])
        return _channel(payload.get(flat))

    return MotionSample(
        timestamp=time.time() if timestamp is None else timestamp,
        acc_x=pick(acc, "x", "acc_x"),
        acc_y=pick(acc, "y", "acc_y"),
        acc_z=pick(acc, "z", "acc_z"),
        gyro_alpha=pick(rot, "alpha", "gyro_alpha"),
        gyro_beta=pick(rot, "beta", "gyro_beta"),
        gyro_gamma=pick(rot, "gamma", "gyro_gamma"),
    )


# ---------------------------------------------------------------------------
# Source protocol
# ---------------------------------------------------------------------------

class MotionSource(Protocol):
    """Protocol that all motion sources must satisfy."""

    async def start(self, callback: SampleCallback) -> None: ...
    async def stop(self) -> None: ...
    @property
    def sample_rate_hz(self) -> float: ...


# ---------------------------------------------------------------------------
# Simulated source (deterministic, for demos and testing)
# ---------------------------------------------------------------------------

# (acceleration scale, rotation scale, phase step per sample, noise amplitude)
SIMULATION_PROFILES: Dict[str, Tuple[float, float, float, float]] = {
    "still": (0.0, 0.0, 0.2, 0.05),
    "walking": (1.0, 1.0, 0.2, 0.5),
    "running": (2.5, 1.5, 0.4, 1.0),
}


class SimulatedMotionSource:
    """
    Deterministic simulated motion source.

    Produces a walking-like signal: sinusoidal bobbing on the accelerometer
    axes (gravity on Y), hip sway on the gyroscope axes, plus uniform noise
    from a seeded PRNG.  Profiles scale the amplitudes to imitate standing
    still or running.

    This is explicitly a test/development tool and makes no attempt to
    appear as real hardware.

    Parameters
    ----------
    seed : int
        Random seed for deterministic output.
    sample_rate_hz : float
        Target sampling rate in Hz (default 20).
    profile : str
        One of ``SIMULATION_PROFILES`` (default ``"walking"``).
    """

    def __init__(
        self,
        seed: int = 42,
        sample_rate_hz: float = 20.0,
        profile: str = "walking",
    ) -> None:
        if sample_rate_hz <= 0:
            raise ValueError(f"sample_rate_hz must be positive, got {sample_rate_hz}")
        self._rate = sample_rate_hz
        self._rng = np.random.default_rng(seed)
        self._phase = 0.0
        self.set_profile(profile)

        self._task: Optional[asyncio.Task] = None
        self._samples_emitted = 0

    # -- public API ----------------------------------------------------------

    @property
    def sample_rate_hz(self) -> float:
        return self._rate

    @property
    def profile(self) -> str:
        return self._profile

    @property
    def samples_emitted(self) -> int:
        return self._samples_emitted

    def set_profile(self, profile: str) -> None:
        if profile not in SIMULATION_PROFILES:
            raise ValueError(
                f"Unknown simulation profile '{profile}', "
                f"expected one of {sorted(SIMULATION_PROFILES)}"
            )
        self._profile = profile

    def next_sample(self, timestamp: Optional[float] = None) -> MotionSample:
        """Advance the simulation by one sample."""
        acc_scale, rot_scale, step, noise = SIMULATION_PROFILES[self._profile]
        self._phase += step
        t = self._phase
        jitter = self._rng.uniform(-noise, noise, size=3)

        return MotionSample(
            timestamp=time.time() if timestamp is None else timestamp,
            acc_x=float(acc_scale * math.sin(t) * 3.0 + jitter[0]),
            acc_y=float(acc_scale * math.cos(t) * 5.0 + 9.8 + jitter[1]),
            acc_z=float(acc_scale * math.sin(t * 0.5) * 2.0 + jitter[2]),
            gyro_alpha=float(rot_scale * math.sin(t * 0.5) * 10.0),
            gyro_beta=float(rot_scale * math.cos(t) * 20.0),
            gyro_gamma=float(rot_scale * math.sin(t) * 5.0),
        )

    def generate_samples(self, duration_seconds: float) -> List[MotionSample]:
        """
        Generate a batch of samples without the background task.

        Useful for unit tests that need a known signal without timing jitter.
        """
        n_samples = int(round(duration_seconds * self._rate))
        base_time = time.time()
        return [self.next_sample(base_time + i / self._rate) for i in range(n_samples)]

    async def start(self, callback: SampleCallback) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._sample_loop(callback), name="sim-motion-source")
        logger.info(
            "SimulatedMotionSource started at %.1f Hz (profile=%s)", self._rate, self._profile
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("SimulatedMotionSource stopped (%d samples)", self._samples_emitted)

    # -- internals -----------------------------------------------------------

    async def _sample_loop(self, callback: SampleCallback) -> None:
        interval = 1.0 / self._rate
        loop = asyncio.get_running_loop()
        while True:
            t0 = loop.time()
            try:
                callback(self.next_sample())
                self._samples_emitted += 1
            except Exception:
                logger.exception("Error delivering simulated sample")
            elapsed = loop.time() - t0
            await asyncio.sleep(max(0.0, interval - elapsed))


# ---------------------------------------------------------------------------
# UDP source (phones / boards streaming JSON motion events)
# ---------------------------------------------------------------------------

class _MotionDatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, source: "UdpMotionSource") -> None:
        self._source = source

    def datagram_received(self, data: bytes, addr) -> None:
        self._source.handle_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        logger.warning("UDP motion source error: %s", exc)


class UdpMotionSource:
    """
    Receive motion events as JSON datagrams.

    Each datagram holds one event object or a list of them, in any layout
    accepted by ``sample_from_payload``.  Malformed datagrams are logged and
    dropped.

    Parameters
    ----------
    host : str
        Bind address (default ``"0.0.0.0"``).
    port : int
        UDP port (default 5005).
    sample_rate_hz : float
        Nominal rate of the sender, used for window sizing only.
    """

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 5005,
        sample_rate_hz: float = 20.0,
    ) -> None:
        self._host = host
        self._port = port
        self._rate = sample_rate_hz
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._callback: Optional[SampleCallback] = None
        self._frames_received = 0
        self._frames_dropped = 0

    @property
    def sample_rate_hz(self) -> float:
        return self._rate

    @property
    def frames_received(self) -> int:
        return self._frames_received

    @property
    def frames_dropped(self) -> int:
        return self._frames_dropped

    async def start(self, callback: SampleCallback) -> None:
        if self._transport is not None:
            return
        self._callback = callback
        loop = asyncio.get_running_loop()
        self._transport, _ = await loop.create_datagram_endpoint(
            lambda: _MotionDatagramProtocol(self),
            local_addr=(self._host, self._port),
        )
        logger.info("UdpMotionSource listening on %s:%d", self._host, self._port)

    async def stop(self) -> None:
        if self._transport is not None:
            self._transport.close()
            self._transport = None
        logger.info(
            "UdpMotionSource stopped (%d frames received, %d dropped)",
            self._frames_received,
            self._frames_dropped,
        )

    def handle_datagram(self, data: bytes, addr=None) -> None:
        try:
            decoded = json.loads(data.decode("utf-8"))
            events = decoded if isinstance(decoded, list) else [decoded]
            samples = [sample_from_payload(event) for event in events]
        except (UnicodeDecodeError, ValueError, TypeError) as exc:
            self._frames_dropped += 1
            logger.warning("Dropping malformed motion datagram from %s: %s", addr, exc)
            return

        for sample in samples:
            self._frames_received += 1
            if self._callback is not None:
                self._callback(sample)
