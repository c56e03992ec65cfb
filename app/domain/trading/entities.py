"""
Domain entities for the trading bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
Every entity is immutable; state changes produce new instances, which
lets a failed operation be discarded without undoing anything.
"""

from collections import deque
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, overload
from uuid import UUID, uuid4

from app.domain.trading.errors import InvalidTransactionTypeError

DEFAULT_PRICE_HISTORY_WINDOW = 1440

ZERO = Decimal("0")


class TransactionType(Enum):
    """Side of a trade against the simulated market."""

    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value: object) -> "TransactionType":
        """Return the matching member or raise InvalidTransactionTypeError."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidTransactionTypeError(value) from exc


class Holdings(Mapping[str, Decimal]):
    """Sparse mapping of coin symbol to a strictly positive quantity.

    A symbol that is not held is absent; zero is never stored. Mutators
    return a new mapping and leave the receiver untouched.
    """

    __slots__ = ("_quantities",)

    def __init__(self, quantities: Optional[Mapping[str, Decimal]] = None) -> None:
        cleaned: dict[str, Decimal] = {}
        for symbol, quantity in (quantities or {}).items():
            quantity = Decimal(quantity)
            if quantity < ZERO:
                raise ValueError(f"Negative holding for {symbol}: {quantity}")
            if quantity > ZERO:
                cleaned[symbol] = quantity
        self._quantities = cleaned

    def __getitem__(self, symbol: str) -> Decimal:
        return self._quantities[symbol]

    def __iter__(self) -> Iterator[str]:
        return iter(self._quantities)

    def __len__(self) -> int:
        return len(self._quantities)

    def __repr__(self) -> str:
        return f"Holdings({self._quantities!r})"

    def quantity(self, symbol: str) -> Decimal:
        """Return the held quantity, zero when the symbol is absent."""
        return self._quantities.get(symbol, ZERO)

    def credit(self, symbol: str, amount: Decimal) -> "Holdings":
        """Return holdings with `amount` more of `symbol`."""
        if amount <= ZERO:
            raise ValueError(f"Credit amount must be positive, got {amount}")
        updated = dict(self._quantities)
        updated[symbol] = self.quantity(symbol) + amount
        return Holdings(updated)

    def debit(self, symbol: str, amount: Decimal) -> "Holdings":
        """Return holdings with `amount` less of `symbol`.

        The symbol is removed when the remaining quantity is exactly zero.

        Raises:
            ValueError: If more than the held quantity is debited.
        """
        if amount <= ZERO:
            raise ValueError(f"Debit amount must be positive, got {amount}")
        remaining = self.quantity(symbol) - amount
        if remaining < ZERO:
            raise ValueError(
                f"Cannot debit {amount} {symbol}, only {self.quantity(symbol)} held"
            )
        updated = dict(self._quantities)
        if remaining == ZERO:
            updated.pop(symbol, None)
        else:
            updated[symbol] = remaining
        return Holdings(updated)

    def to_dict(self) -> dict[str, Decimal]:
        return dict(self._quantities)


@dataclass(frozen=True)
class PricePoint:
    """One recorded price of a coin."""

    price: Decimal
    timestamp: datetime


class PriceHistory(Sequence[PricePoint]):
    """Bounded FIFO window of price points, oldest first.

    Backed by a deque with a fixed maxlen: appending to a full window
    evicts the oldest point.
    """

    __slots__ = ("_points",)

    def __init__(
        self,
        points: Iterable[PricePoint] = (),
        window: int = DEFAULT_PRICE_HISTORY_WINDOW,
    ) -> None:
        if window < 1:
            raise ValueError(f"Price history window must be >= 1, got {window}")
        self._points: deque[PricePoint] = deque(points, maxlen=window)

    @overload
    def __getitem__(self, index: int) -> PricePoint: ...

    @overload
    def __getitem__(self, index: slice) -> list[PricePoint]: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return list(self._points)[index]
        return self._points[index]

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[PricePoint]:
        return iter(self._points)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PriceHistory):
            return NotImplemented
        return self.window == other.window and list(self) == list(other)

    def __repr__(self) -> str:
        return f"PriceHistory(len={len(self)}, window={self.window})"

    @property
    def window(self) -> int:
        return self._points.maxlen  # type: ignore[return-value]

    @property
    def oldest(self) -> Optional[PricePoint]:
        return self._points[0] if self._points else None

    @property
    def latest(self) -> Optional[PricePoint]:
        return self._points[-1] if self._points else None

    def appended(self, point: PricePoint) -> "PriceHistory":
        """Return a copy of the window with `point` appended."""
        history = PriceHistory(self._points, window=self.window)
        history._points.append(point)
        return history


@dataclass(frozen=True)
class Coin:
    """A synthetic coin listed on the simulated exchange.

    Attributes:
        id: Stable identifier (lower-case symbol).
        symbol: Unique ticker, immutable.
        name: Display name.
        price: Current price, always > 0.
        supply: Informational total supply, immutable.
        price_history: Bounded window of recent prices.
        price_change_24h: Percentage change against the oldest point
            still in the window.
        version: Optimistic concurrency counter.
    """

    id: str
    symbol: str
    name: str
    price: Decimal
    supply: int
    price_history: PriceHistory
    price_change_24h: Decimal = ZERO
    version: int = 0


@dataclass(frozen=True)
class User:
    """A registered trader and their virtual portfolio."""

    id: str
    username: str
    password_hash: str = field(repr=False)
    balance: Decimal = ZERO
    holdings: Holdings = field(default_factory=Holdings)
    version: int = 0


@dataclass(frozen=True)
class Transaction:
    """Append-only record of an executed trade.

    `price` is the coin price the trade was valued at, before the
    trade's own price impact was applied.
    """

    user_id: str
    coin_id: str
    coin_symbol: str
    type: TransactionType
    amount: Decimal
    price: Decimal
    timestamp: datetime
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class PriceUpdate:
    """The coin fields pushed to subscribers after a price change."""

    coin_id: str
    symbol: str
    price: Decimal
    price_change_24h: Decimal

    @classmethod
    def from_coin(cls, coin: Coin) -> "PriceUpdate":
        return cls(
            coin_id=coin.id,
            symbol=coin.symbol,
            price=coin.price,
            price_change_24h=coin.price_change_24h,
        )
