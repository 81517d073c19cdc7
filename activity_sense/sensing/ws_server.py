"""
WebSocket broadcast server.

Bridges an ``ActivitySession`` to browser clients.  Every published label
is pushed immediately as an ``activity_update`` frame; live sensor data and
the current feature vector are pushed as ``sensor_update`` frames on a
display tick (default 500 ms).  Clients are passive listeners.

Usage
-----
    activity-sense serve                  # ws://localhost:8765
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import asdict
from typing import Any, Dict, Optional, Set

import websockets

from activity_sense.sensing.classifier import ActivityLabel
from activity_sense.sensing.session import ActivitySession

logger = logging.getLogger(__name__)

HOST = "localhost"
PORT = 8765
DISPLAY_INTERVAL = 0.5  # seconds between sensor_update broadcasts


class ActivityWebSocketServer:
    """Async WebSocket server that broadcasts session updates."""

    def __init__(
        self,
        session: ActivitySession,
        host: str = HOST,
        port: int = PORT,
        display_interval: float = DISPLAY_INTERVAL,
        source: str = "unknown",
    ) -> None:
        self.session = session
        self.host = host
        self.port = port
        self.display_interval = display_interval
        self.source = source
        self.clients: Set = set()
        self._running = False
        self._stop_requested = False
        self._stop_event: Optional[asyncio.Event] = None

        session.add_listener(self._on_label)

    # -- message builders ----------------------------------------------------

    def build_activity_message(self, label: ActivityLabel) -> str:
        msg = {
            "type": "activity_update",
            "timestamp": time.time(),
            "source": self.source,
            "prediction": label.to_dict(),
        }
        return json.dumps(msg)

    def build_sensor_message(self) -> str:
        sample = self.session.current_sample
        features = self.session.get_features()
        msg: Dict[str, Any] = {
            "type": "sensor_update",
            "timestamp": time.time(),
            "source": self.source,
            "state": self.session.state.value,
            "classifying": self.session.is_classifying,
            "window": {
                "length": self.session.window_length,
                "min_samples": self.session.extractor.min_samples,
                "capacity": self.session.extractor.capacity,
            },
            "sample": asdict(sample) if sample is not None else None,
            "features": features.to_dict() if features is not None else None,
        }
        return json.dumps(msg)

    # -- client handling -----------------------------------------------------

    async def _handler(self, websocket, path=None):
        """Handle a single WebSocket client connection."""
        self.clients.add(websocket)
        remote = websocket.remote_address
        logger.info("Client connected: %s", remote)
        try:
            label = self.session.current_label
            if label is not None:
                await websocket.send(self.build_activity_message(label))
            async for _ in websocket:
                pass
        except websockets.ConnectionClosed:
            pass
        finally:
            self.clients.discard(websocket)
            logger.info("Client disconnected: %s", remote)

    async def broadcast(self, message: str) -> None:
        """Send message to all connected clients."""
        if not self.clients:
            return
        disconnected = set()
        for ws in list(self.clients):
            try:
                await ws.send(message)
            except websockets.ConnectionClosed:
                disconnected.add(ws)
        self.clients -= disconnected

    async def _on_label(self, label: ActivityLabel) -> None:
        await self.broadcast(self.build_activity_message(label))

    async def _display_loop(self) -> None:
        while self._running:
            try:
                await self.broadcast(self.build_sensor_message())
            except Exception:
                logger.exception("Error in display tick")
            await asyncio.sleep(self.display_interval)

    # -- lifecycle -----------------------------------------------------------

    async def run(self) -> None:
        """Serve until ``stop`` is called."""
        if self._stop_requested:
            return
        self._running = True
        self._stop_event = asyncio.Event()
        logger.info("Activity WebSocket server on ws://%s:%d", self.host, self.port)

        async with websockets.serve(self._handler, self.host, self.port):
            display = asyncio.create_task(self._display_loop(), name="ws-display-loop")
            try:
                await self._stop_event.wait()
            finally:
                self._running = False
                display.cancel()
                try:
                    await display
                except asyncio.CancelledError:
                    pass

    def stop(self) -> None:
        """Stop the server gracefully."""
        self._stop_requested = True
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        self.session.remove_listener(self._on_label)
        logger.info("Activity WebSocket server stopped")
