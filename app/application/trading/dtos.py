"""
Data Transfer Objects for the trading application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from app.domain.trading.entities import Coin, Transaction, User


@dataclass(frozen=True)
class RegisterUserCommand:
    """Input DTO for creating an account.

    Attributes:
        username: Unique login name.
        password: Plain-text password, hashed before storage.
    """

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class AuthenticateUserCommand:
    """Input DTO for exchanging credentials for an access token."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class AccessTokenResult:
    """Output DTO carrying a signed access token."""

    token: str
    token_type: str = "bearer"


@dataclass(frozen=True)
class UserResult:
    """Output DTO for a user's public state (no credentials).

    Attributes:
        id: User identifier.
        username: Login name.
        balance: Cash balance.
        holdings: Coin symbol to positive quantity.
    """

    id: str
    username: str
    balance: Decimal
    holdings: dict[str, Decimal]

    @classmethod
    def from_entity(cls, user: User) -> "UserResult":
        return cls(
            id=user.id,
            username=user.username,
            balance=user.balance,
            holdings=user.holdings.to_dict(),
        )


@dataclass(frozen=True)
class PricePointResult:
    price: Decimal
    timestamp: datetime


@dataclass(frozen=True)
class CoinResult:
    """Output DTO for a listed coin with its price window."""

    id: str
    symbol: str
    name: str
    price: Decimal
    supply: int
    price_change_24h: Decimal
    price_history: list[PricePointResult]

    @classmethod
    def from_entity(cls, coin: Coin) -> "CoinResult":
        return cls(
            id=coin.id,
            symbol=coin.symbol,
            name=coin.name,
            price=coin.price,
            supply=coin.supply,
            price_change_24h=coin.price_change_24h,
            price_history=[
                PricePointResult(price=p.price, timestamp=p.timestamp)
                for p in coin.price_history
            ],
        )


@dataclass(frozen=True)
class ExecuteTransactionCommand:
    """Input DTO for a buy or sell order.

    Attributes:
        user_id: Authenticated user placing the order.
        coin_symbol: Ticker of the traded coin.
        type: "buy" or "sell".
        amount: Number of coins, must be > 0.
    """

    user_id: str
    coin_symbol: str
    type: str
    amount: Decimal


@dataclass(frozen=True)
class TransactionRecordResult:
    """Output DTO for one stored transaction."""

    id: UUID
    user_id: str
    coin_id: str
    coin_symbol: str
    type: str
    amount: Decimal
    price: Decimal
    timestamp: datetime

    @classmethod
    def from_entity(cls, transaction: Transaction) -> "TransactionRecordResult":
        return cls(
            id=transaction.id,
            user_id=transaction.user_id,
            coin_id=transaction.coin_id,
            coin_symbol=transaction.coin_symbol,
            type=transaction.type.value,
            amount=transaction.amount,
            price=transaction.price,
            timestamp=transaction.timestamp,
        )


@dataclass(frozen=True)
class TransactionResult:
    """Output DTO of a successful trade.

    Attributes:
        user: The user after the trade.
        transaction: The recorded transaction.
        coin_price: The coin price after impact.
    """

    user: UserResult
    transaction: TransactionRecordResult
    coin_price: Decimal


@dataclass(frozen=True)
class GetRecentTransactionsQuery:
    """Input DTO for listing a user's latest transactions."""

    user_id: str
    limit: int = 5


@dataclass(frozen=True)
class PriceTickResult:
    """Output DTO of one price simulator tick.

    Attributes:
        updated: Symbols whose new price was committed.
        failed: Ids of coins skipped because of an error.
    """

    updated: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
