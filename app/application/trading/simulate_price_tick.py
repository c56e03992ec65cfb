"""
Use case: Run one price simulator tick over every listed coin.

Input: None
Output: PriceTickResult
Side effects: Moves every coin's price by a bounded random step, appends
    to its price history window, recomputes the 24h change and publishes
    a price update per coin.
Failure cases: None raised. A coin that cannot be updated is logged and
    skipped; the remaining coins are still processed.
"""

import logging
from datetime import datetime, timezone
from typing import Callable

from app.application.trading.dtos import PriceTickResult
from app.domain.trading.entities import Coin, PriceUpdate
from app.domain.trading.errors import ConcurrencyConflictError
from app.domain.trading.ports import LedgerStore, MarketEventPublisher
from app.domain.trading.pricing import PriceSimulator

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SimulatePriceTickUseCase:
    """Applies one random-walk step to every coin.

    Each coin is read, moved and written in its own unit of work, so a
    failure on one coin never rolls back or blocks the others. Writes are
    compare-and-swap; a coin that was traded between read and write is
    re-read and moved again.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        publisher: MarketEventPublisher,
        simulator: PriceSimulator,
        max_retries: int = DEFAULT_MAX_RETRIES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ledger = ledger
        self._publisher = publisher
        self._simulator = simulator
        self._max_retries = max(1, max_retries)
        self._clock = clock

    def execute(self) -> PriceTickResult:
        """Run the tick.

        Returns:
            The symbols (or ids, when the coin could not be loaded) that
            were updated and those that failed.
        """
        result = PriceTickResult()

        try:
            with self._ledger.unit_of_work() as uow:
                coin_ids = uow.list_coin_ids()
        except Exception:
            logger.exception("Price tick aborted: coins could not be listed.")
            return result

        for coin_id in coin_ids:
            try:
                coin = self._tick_coin(coin_id)
            except Exception:
                logger.exception("Price update failed for coin %s.", coin_id)
                result.failed.append(coin_id)
                continue
            if coin is None:
                continue

            result.updated.append(coin.symbol)
            self._publisher.publish_price_update(PriceUpdate.from_coin(coin))

        logger.debug(
            "Price tick done: %d updated, %d failed.",
            len(result.updated),
            len(result.failed),
        )
        return result

    def _tick_coin(self, coin_id: str) -> Coin | None:
        """Move one coin, retrying on write conflicts."""
        attempt = 1
        while True:
            try:
                with self._ledger.unit_of_work() as uow:
                    coin = uow.get_coin(coin_id)
                    if coin is None:
                        # Delisted between listing and update.
                        return None
                    moved = self._simulator.tick(coin, self._clock())
                    return uow.save_coin(moved, expected_version=coin.version)
            except ConcurrencyConflictError:
                if attempt >= self._max_retries:
                    raise
                attempt += 1
