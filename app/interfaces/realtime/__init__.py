"""
FastAPI router for real-time market streaming.

Provides:
- WebSocket endpoint pushing `priceUpdate` and `userUpdate` events
- Stream status endpoint
- Price simulator status endpoint
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.infrastructure.trading.stream_publisher import StreamEventPublisher
from simulation.realtime.scheduler import PriceSimulationScheduler
from simulation.realtime.stream import MarketStreamManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["realtime"])

# ── Singletons ───────────────────────────────────────────────────
# The stream manager and publisher exist from import time so request
# handlers can publish before the lifespan binds the event loop; the
# scheduler is set by app.main during startup.
stream_manager = MarketStreamManager()
event_publisher = StreamEventPublisher(stream_manager)
_scheduler: PriceSimulationScheduler | None = None


def set_scheduler(scheduler: PriceSimulationScheduler | None) -> None:
    """Called by the app lifespan to register the running simulator."""
    global _scheduler
    _scheduler = scheduler


def get_stream_manager() -> MarketStreamManager:
    return stream_manager


def get_event_publisher() -> StreamEventPublisher:
    return event_publisher


# ------------------------------------------------------------------
# WebSocket endpoint
# ------------------------------------------------------------------


@router.websocket("/ws")
async def ws_market(websocket: WebSocket) -> None:
    """WebSocket endpoint for live market updates.

    Server → client only (JSON text frames):
        ← {"event": "priceUpdate", "data": {"id", "symbol", "price", "priceChange24h"}, "timestamp": "..."}
        ← {"event": "userUpdate", "data": {"id", "username", "balance", "holdings"}, "timestamp": "..."}

    Frames sent by the client are read and discarded.
    """
    await stream_manager.connect(websocket)

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        stream_manager.disconnect(websocket)
    except Exception:
        logger.debug("WebSocket closed with an error.", exc_info=True)
        stream_manager.disconnect(websocket)


# ------------------------------------------------------------------
# Status endpoints
# ------------------------------------------------------------------


@router.get(
    "/stream/status",
    summary="Get stream status",
    description="Return WebSocket connection and broadcast counters.",
)
def stream_status() -> dict:
    """Return streaming stats."""
    return stream_manager.stats


@router.get(
    "/scheduler/status",
    summary="Get price simulator status",
    description="Return the simulator state and its latest ticks.",
)
def scheduler_status() -> dict:
    """Return scheduler status and recent tick history."""
    if _scheduler is None:
        return {"running": False, "note": "Price simulator not started."}
    return _scheduler.get_status()
