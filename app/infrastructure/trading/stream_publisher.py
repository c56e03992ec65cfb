"""
Adapter: Market event publisher over the WebSocket stream.

Implements the MarketEventPublisher port on top of MarketStreamManager.
Use cases run in worker threads (sync routes, scheduler jobs) while the
WebSockets belong to the server event loop, so each broadcast is handed
to that loop with run_coroutine_threadsafe and not awaited.
"""

import asyncio
import logging
from collections.abc import Coroutine
from concurrent.futures import Future
from typing import Any, Optional

from app.domain.trading.entities import PriceUpdate, User
from app.domain.trading.ports import MarketEventPublisher
from simulation.realtime.stream import MarketStreamManager

logger = logging.getLogger(__name__)


def price_update_payload(update: PriceUpdate) -> dict[str, Any]:
    """Wire form of a price update."""
    return {
        "id": update.coin_id,
        "symbol": update.symbol,
        "price": str(update.price),
        "priceChange24h": str(update.price_change_24h),
    }


def user_update_payload(user: User) -> dict[str, Any]:
    """Wire form of a user update. Credentials are never included."""
    return {
        "id": user.id,
        "username": user.username,
        "balance": str(user.balance),
        "holdings": {symbol: str(qty) for symbol, qty in user.holdings.items()},
    }


class StreamEventPublisher(MarketEventPublisher):
    """Fire-and-forget publisher bound to the server event loop.

    Until a loop is bound (application startup), events are dropped.
    Delivery failures are logged and never reach the caller.
    """

    def __init__(
        self,
        manager: MarketStreamManager,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self._manager = manager
        self._loop = loop

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def unbind_loop(self) -> None:
        self._loop = None

    def publish_price_update(self, update: PriceUpdate) -> None:
        self._submit(self._manager.broadcast_price_update(price_update_payload(update)))

    def publish_user_update(self, user: User) -> None:
        self._submit(self._manager.broadcast_user_update(user_update_payload(user)))

    def _submit(self, coro: Coroutine[Any, Any, int]) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            coro.close()
            logger.debug("No event loop bound; market event dropped.")
            return

        try:
            future = asyncio.run_coroutine_threadsafe(coro, loop)
        except RuntimeError:
            coro.close()
            logger.warning("Event loop rejected market event.", exc_info=True)
            return
        future.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning("Market event broadcast failed: %s", exc)
