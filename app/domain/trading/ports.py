"""
Port interfaces (ABCs) for the trading bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional

from app.domain.trading.entities import Coin, PriceUpdate, Transaction, User


class LedgerUnitOfWork(ABC):
    """One atomic, isolated group of reads and writes against the ledger.

    Everything written through a unit of work is committed together when
    the surrounding context exits normally, and discarded when it exits
    with an exception.
    """

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        """Return a user by id, or None if not found."""
        raise NotImplementedError

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]:
        """Return a user by username, or None if not found."""
        raise NotImplementedError

    @abstractmethod
    def add_user(self, user: User) -> None:
        """Insert a new user.

        Raises:
            DuplicateUsernameError: If the username is already taken.
        """
        raise NotImplementedError

    @abstractmethod
    def save_user(self, user: User, expected_version: int) -> User:
        """Replace a stored user if its version still equals `expected_version`.

        Returns:
            The user carrying its new version.

        Raises:
            ConcurrencyConflictError: If the stored version moved on.
        """
        raise NotImplementedError

    @abstractmethod
    def get_coin(self, coin_id: str) -> Optional[Coin]:
        """Return a coin by id, or None if not found."""
        raise NotImplementedError

    @abstractmethod
    def get_coin_by_symbol(self, symbol: str) -> Optional[Coin]:
        """Return a coin by ticker symbol, or None if not found."""
        raise NotImplementedError

    @abstractmethod
    def list_coins(self) -> list[Coin]:
        """Return every listed coin ordered by symbol."""
        raise NotImplementedError

    @abstractmethod
    def list_coin_ids(self) -> list[str]:
        """Return the ids of every listed coin."""
        raise NotImplementedError

    @abstractmethod
    def add_coin(self, coin: Coin) -> None:
        """Insert a new coin."""
        raise NotImplementedError

    @abstractmethod
    def save_coin(self, coin: Coin, expected_version: int) -> Coin:
        """Replace a stored coin if its version still equals `expected_version`.

        Raises:
            ConcurrencyConflictError: If the stored version moved on.
        """
        raise NotImplementedError

    @abstractmethod
    def save_coin_price(self, coin: Coin, expected_version: int) -> Coin:
        """Write only the price of a coin, compare-and-swap on its version.

        The price history and 24h change are left as stored.

        Raises:
            ConcurrencyConflictError: If the stored version moved on.
        """
        raise NotImplementedError

    @abstractmethod
    def add_transaction(self, transaction: Transaction) -> None:
        """Append a transaction record."""
        raise NotImplementedError

    @abstractmethod
    def recent_transactions(self, user_id: str, limit: int) -> list[Transaction]:
        """Return a user's latest transactions, newest first."""
        raise NotImplementedError


class LedgerStore(ABC):
    """Port for the durable store of users, coins and transactions."""

    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[LedgerUnitOfWork]:
        """Open a unit of work bound to one store transaction."""
        raise NotImplementedError


class MarketEventPublisher(ABC):
    """Port for pushing state changes to real-time subscribers.

    Publishing is fire-and-forget: implementations must not raise.
    """

    @abstractmethod
    def publish_price_update(self, update: PriceUpdate) -> None:
        """Announce a coin's new price and 24h change."""
        raise NotImplementedError

    @abstractmethod
    def publish_user_update(self, user: User) -> None:
        """Announce a user's full public state."""
        raise NotImplementedError


class PasswordHasher(ABC):
    """Port for one-way password hashing."""

    @abstractmethod
    def hash(self, password: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def verify(self, password: str, password_hash: str) -> bool:
        raise NotImplementedError


class TokenService(ABC):
    """Port for issuing and verifying stateless access tokens."""

    @abstractmethod
    def issue(self, user_id: str) -> str:
        """Return a signed token carrying the user id."""
        raise NotImplementedError

    @abstractmethod
    def verify(self, token: str) -> str:
        """Return the user id carried by a valid token.

        Raises:
            InvalidTokenError: If the token is malformed, forged or expired.
        """
        raise NotImplementedError
