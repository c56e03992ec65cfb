"""
Use case: List the default coins on a fresh ledger.

Input: optional coin definitions (defaults to DEFAULT_COINS)
Output: list of symbols that were created
Side effects: Inserts every missing coin with a one-point price history.
Failure cases: LedgerUnavailableError.

Idempotent: coins already listed are left untouched.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable

from app.domain.trading.entities import (
    DEFAULT_PRICE_HISTORY_WINDOW,
    Coin,
    PriceHistory,
    PricePoint,
)
from app.domain.trading.ports import LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoinDefinition:
    """Listing parameters of a coin."""

    symbol: str
    name: str
    price: Decimal
    supply: int

    @property
    def coin_id(self) -> str:
        return self.symbol.lower()


DEFAULT_COINS: tuple[CoinDefinition, ...] = (
    CoinDefinition("CRN", "Cryptone", Decimal("175"), 500_000_000),
    CoinDefinition("SOL", "Solara", Decimal("250"), 500_000_000),
    CoinDefinition("ZRX", "ZeroX", Decimal("1.25"), 1_000_000_000),
    CoinDefinition("MNT", "Mintium", Decimal("5"), 21_000_000),
    CoinDefinition("DOT", "Polaris", Decimal("35"), 1_000_000_000),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SeedCoinsUseCase:
    """Creates the coins that are not listed yet."""

    def __init__(
        self,
        ledger: LedgerStore,
        history_window: int = DEFAULT_PRICE_HISTORY_WINDOW,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ledger = ledger
        self._history_window = history_window
        self._clock = clock

    def execute(self, definitions: Iterable[CoinDefinition] = DEFAULT_COINS) -> list[str]:
        created: list[str] = []
        now = self._clock()

        with self._ledger.unit_of_work() as uow:
            for definition in definitions:
                if uow.get_coin_by_symbol(definition.symbol) is not None:
                    logger.debug("%s already listed.", definition.symbol)
                    continue
                uow.add_coin(
                    Coin(
                        id=definition.coin_id,
                        symbol=definition.symbol,
                        name=definition.name,
                        price=definition.price,
                        supply=definition.supply,
                        price_history=PriceHistory(
                            [PricePoint(price=definition.price, timestamp=now)],
                            window=self._history_window,
                        ),
                    )
                )
                created.append(definition.symbol)

        if created:
            logger.info("Listed %d coins: %s", len(created), ", ".join(created))
        return created
