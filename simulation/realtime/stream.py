"""
WebSocket market stream manager.

Tracks connected WebSocket clients and broadcasts market events to
every one of them.

Architecture:
    FastAPI WebSocket endpoint  ──▶  MarketStreamManager
                                          │
                                    ┌─────┴──────┐
                                    │ Connected   │
                                    │ clients set │
                                    └─────┬──────┘
                                          │ broadcast()
                                          ▼
                                    JSON message to all

Events:
    priceUpdate  {id, symbol, price, priceChange24h}
    userUpdate   full public user {id, username, balance, holdings}

There is no per-user targeting: every client receives every user's
update. There is no backlog either: a client only sees events
broadcast after it connected.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

PRICE_UPDATE = "priceUpdate"
USER_UPDATE = "userUpdate"


@dataclass
class StreamEvent:
    """A single event pushed to connected clients."""

    event_type: str          # "priceUpdate" or "userUpdate"
    data: dict
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_json(self) -> str:
        # Decimals and datetimes are sent as strings.
        return json.dumps({
            "event": self.event_type,
            "data": self.data,
            "timestamp": self.timestamp,
        }, default=str)


class MarketStreamManager:
    """Manages real-time market streaming to WebSocket clients.

    All methods run on the server event loop. Publishers living on
    other threads go through StreamEventPublisher.

    Usage in FastAPI:
        manager = MarketStreamManager()

        @app.websocket("/ws")
        async def ws_endpoint(ws: WebSocket):
            await manager.connect(ws)
            try:
                while True:
                    await ws.receive_text()
            except WebSocketDisconnect:
                manager.disconnect(ws)

        await manager.broadcast_price_update({"id": "crn", ...})
    """

    def __init__(self) -> None:
        self._clients: set[Any] = set()
        self._stats = {
            "total_connections": 0,
            "total_events_broadcast": 0,
            "total_messages_sent": 0,
        }

    @property
    def active_connections(self) -> int:
        return len(self._clients)

    @property
    def stats(self) -> dict:
        return {**self._stats, "active_connections": self.active_connections}

    # ------------------------------------------------------------------
    # WebSocket lifecycle
    # ------------------------------------------------------------------

    async def connect(self, websocket: Any) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        self._clients.add(websocket)
        self._stats["total_connections"] += 1
        logger.info(
            "WebSocket client connected. Active: %d", self.active_connections
        )

    def disconnect(self, websocket: Any) -> None:
        """Remove a disconnected WebSocket client."""
        if websocket in self._clients:
            self._clients.discard(websocket)
            logger.info(
                "WebSocket client disconnected. Active: %d", self.active_connections
            )

    # ------------------------------------------------------------------
    # Broadcasting
    # ------------------------------------------------------------------

    async def broadcast(self, event: StreamEvent) -> int:
        """Send an event to every connected client.

        Clients that fail to receive are dropped.

        Returns the number of clients that received the message.
        """
        self._stats["total_events_broadcast"] += 1
        message = event.to_json()
        sent = 0
        dead: list[Any] = []

        for ws in list(self._clients):
            try:
                await ws.send_text(message)
                sent += 1
                self._stats["total_messages_sent"] += 1
            except Exception:
                dead.append(ws)

        for ws in dead:
            self.disconnect(ws)

        return sent

    async def broadcast_price_update(self, payload: dict) -> int:
        """Broadcast the changed fields of a coin."""
        return await self.broadcast(StreamEvent(event_type=PRICE_UPDATE, data=payload))

    async def broadcast_user_update(self, payload: dict) -> int:
        """Broadcast a user's full public state."""
        return await self.broadcast(StreamEvent(event_type=USER_UPDATE, data=payload))
