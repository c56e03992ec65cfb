"""
Domain service: Coin price dynamics.

Pure pricing logic for the simulated market.
No framework imports. No IO. The random source is injected.

Two forces move a coin's price:
    - Drift: a bounded uniform random walk applied on every simulator tick.
    - Impact: a deterministic shift proportional to each executed trade.
"""

import random
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.domain.trading.entities import Coin, PricePoint, TransactionType
from app.domain.trading.errors import MarketDepthExceededError

ONE = Decimal("1")
HUNDRED = Decimal("100")
# Random draws are converted to Decimal at this precision.
CHANGE_QUANTUM = Decimal("1e-12")


def compute_price_change_24h(current: Decimal, oldest: Decimal) -> Decimal:
    """Return the percentage difference between `current` and `oldest`."""
    if oldest <= 0:
        return Decimal("0")
    return (current - oldest) / oldest * HUNDRED


def apply_price_impact(
    coin: Coin,
    trade_type: TransactionType,
    amount: Decimal,
    impact_factor: Decimal,
) -> Coin:
    """Return the coin with its price moved by a trade of `amount` units.

    Buys multiply the price by (1 + factor * amount), sells by
    (1 - factor * amount). Only the price changes; the history window and
    the 24h change are left to the simulator.

    Raises:
        MarketDepthExceededError: If a sell would drive the price to zero
            or below.
    """
    impact = impact_factor * amount
    multiplier = ONE + impact if trade_type is TransactionType.BUY else ONE - impact
    if multiplier <= 0:
        raise MarketDepthExceededError(coin.symbol, amount)
    return replace(coin, price=coin.price * multiplier)


class PriceSimulator:
    """Random-walk price generator for simulator ticks.

    Each tick draws an independent fractional change uniformly in
    [-max_change_pct %, +max_change_pct %] per coin.
    """

    def __init__(
        self,
        max_change_pct: Decimal = Decimal("0.3"),
        rng: Optional[random.Random] = None,
    ) -> None:
        """Initialize the simulator.

        Args:
            max_change_pct: Largest absolute move per tick, in percent.
            rng: Random source. A fresh unseeded Random is used if omitted.
        """
        if not Decimal("0") <= max_change_pct < HUNDRED:
            raise ValueError(f"max_change_pct must be in [0, 100), got {max_change_pct}")
        self._max_change = max_change_pct / HUNDRED
        self._rng = rng or random.Random()

    def draw_change(self) -> Decimal:
        """Return a fractional change in [-max_change, +max_change]."""
        bound = float(self._max_change)
        draw = Decimal(repr(self._rng.uniform(-bound, bound)))
        return draw.quantize(CHANGE_QUANTUM)

    def tick(self, coin: Coin, now: datetime) -> Coin:
        """Return the coin after one simulator tick.

        The new price is appended to the history window (evicting the
        oldest point when full) and the 24h change is recomputed against
        the oldest point still retained.
        """
        new_price = coin.price * (ONE + self.draw_change())
        history = coin.price_history.appended(PricePoint(price=new_price, timestamp=now))
        oldest = history.oldest
        change_24h = compute_price_change_24h(new_price, oldest.price if oldest else new_price)
        return replace(
            coin,
            price=new_price,
            price_history=history,
            price_change_24h=change_24h,
        )
