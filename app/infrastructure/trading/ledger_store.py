"""
Adapter: SQL ledger store.

Implements the LedgerStore and LedgerUnitOfWork ports on SQLAlchemy Core.
A unit of work is one database transaction: commit on normal exit,
rollback on any exception. Writes to users and coins are
compare-and-swap on the row version.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Connection, Engine, RowMapping
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.domain.trading.entities import (
    DEFAULT_PRICE_HISTORY_WINDOW,
    Coin,
    Holdings,
    PriceHistory,
    PricePoint,
    Transaction,
    TransactionType,
    User,
)
from app.domain.trading.errors import (
    ConcurrencyConflictError,
    DuplicateUsernameError,
    LedgerUnavailableError,
)
from app.domain.trading.ports import LedgerStore, LedgerUnitOfWork
from app.infrastructure.trading.database import (
    coins_table,
    transactions_table,
    users_table,
)

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo; stored timestamps are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _holdings_to_json(holdings: Holdings) -> dict[str, str]:
    return {symbol: str(quantity) for symbol, quantity in holdings.items()}


def _history_to_json(history: PriceHistory) -> list[dict[str, str]]:
    return [
        {"price": str(point.price), "timestamp": point.timestamp.isoformat()}
        for point in history
    ]


def _history_from_json(raw: list[dict[str, Any]], window: int) -> PriceHistory:
    return PriceHistory(
        (
            PricePoint(
                price=Decimal(item["price"]),
                timestamp=_as_utc(datetime.fromisoformat(item["timestamp"])),
            )
            for item in raw
        ),
        window=window,
    )


class SqlAlchemyUnitOfWork(LedgerUnitOfWork):
    """Ledger reads and writes bound to one open connection."""

    def __init__(self, connection: Connection, history_window: int) -> None:
        self._conn = connection
        self._history_window = history_window

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[User]:
        row = self._conn.execute(
            select(users_table).where(users_table.c.id == user_id)
        ).mappings().first()
        return self._user_from_row(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        row = self._conn.execute(
            select(users_table).where(users_table.c.username == username)
        ).mappings().first()
        return self._user_from_row(row) if row else None

    def add_user(self, user: User) -> None:
        try:
            self._conn.execute(
                insert(users_table).values(
                    id=user.id,
                    username=user.username,
                    password_hash=user.password_hash,
                    balance=user.balance,
                    holdings=_holdings_to_json(user.holdings),
                    version=user.version,
                )
            )
        except IntegrityError as exc:
            raise DuplicateUsernameError(user.username) from exc

    def save_user(self, user: User, expected_version: int) -> User:
        result = self._conn.execute(
            update(users_table)
            .where(
                users_table.c.id == user.id,
                users_table.c.version == expected_version,
            )
            .values(
                balance=user.balance,
                holdings=_holdings_to_json(user.holdings),
                version=expected_version + 1,
            )
        )
        if result.rowcount != 1:
            raise ConcurrencyConflictError("user", user.id)
        return replace(user, version=expected_version + 1)

    # ------------------------------------------------------------------
    # Coins
    # ------------------------------------------------------------------

    def get_coin(self, coin_id: str) -> Optional[Coin]:
        row = self._conn.execute(
            select(coins_table).where(coins_table.c.id == coin_id)
        ).mappings().first()
        return self._coin_from_row(row) if row else None

    def get_coin_by_symbol(self, symbol: str) -> Optional[Coin]:
        row = self._conn.execute(
            select(coins_table).where(coins_table.c.symbol == symbol)
        ).mappings().first()
        return self._coin_from_row(row) if row else None

    def list_coins(self) -> list[Coin]:
        rows = self._conn.execute(
            select(coins_table).order_by(coins_table.c.symbol)
        ).mappings().all()
        return [self._coin_from_row(row) for row in rows]

    def list_coin_ids(self) -> list[str]:
        return list(
            self._conn.execute(
                select(coins_table.c.id).order_by(coins_table.c.id)
            ).scalars()
        )

    def add_coin(self, coin: Coin) -> None:
        self._conn.execute(
            insert(coins_table).values(
                id=coin.id,
                symbol=coin.symbol,
                name=coin.name,
                price=coin.price,
                supply=coin.supply,
                price_history=_history_to_json(coin.price_history),
                price_change_24h=coin.price_change_24h,
                version=coin.version,
            )
        )

    def save_coin(self, coin: Coin, expected_version: int) -> Coin:
        result = self._conn.execute(
            update(coins_table)
            .where(
                coins_table.c.id == coin.id,
                coins_table.c.version == expected_version,
            )
            .values(
                price=coin.price,
                price_history=_history_to_json(coin.price_history),
                price_change_24h=coin.price_change_24h,
                version=expected_version + 1,
            )
        )
        if result.rowcount != 1:
            raise ConcurrencyConflictError("coin", coin.id)
        return replace(coin, version=expected_version + 1)

    def save_coin_price(self, coin: Coin, expected_version: int) -> Coin:
        result = self._conn.execute(
            update(coins_table)
            .where(
                coins_table.c.id == coin.id,
                coins_table.c.version == expected_version,
            )
            .values(price=coin.price, version=expected_version + 1)
        )
        if result.rowcount != 1:
            raise ConcurrencyConflictError("coin", coin.id)
        return replace(coin, version=expected_version + 1)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def add_transaction(self, transaction: Transaction) -> None:
        self._conn.execute(
            insert(transactions_table).values(
                id=transaction.id.hex,
                user_id=transaction.user_id,
                coin_id=transaction.coin_id,
                coin_symbol=transaction.coin_symbol,
                type=transaction.type.value,
                amount=transaction.amount,
                price=transaction.price,
                timestamp=transaction.timestamp,
            )
        )

    def recent_transactions(self, user_id: str, limit: int) -> list[Transaction]:
        rows = self._conn.execute(
            select(transactions_table)
            .where(transactions_table.c.user_id == user_id)
            .order_by(transactions_table.c.seq.desc())
            .limit(limit)
        ).mappings().all()
        return [
            Transaction(
                id=UUID(hex=row["id"]),
                user_id=row["user_id"],
                coin_id=row["coin_id"],
                coin_symbol=row["coin_symbol"],
                type=TransactionType(row["type"]),
                amount=row["amount"],
                price=row["price"],
                timestamp=_as_utc(row["timestamp"]),
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _user_from_row(row: RowMapping) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            password_hash=row["password_hash"],
            balance=row["balance"],
            holdings=Holdings(
                {symbol: Decimal(qty) for symbol, qty in row["holdings"].items()}
            ),
            version=row["version"],
        )

    def _coin_from_row(self, row: RowMapping) -> Coin:
        return Coin(
            id=row["id"],
            symbol=row["symbol"],
            name=row["name"],
            price=row["price"],
            supply=row["supply"],
            price_history=_history_from_json(row["price_history"], self._history_window),
            price_change_24h=row["price_change_24h"],
            version=row["version"],
        )


class SqlAlchemyLedgerStore(LedgerStore):
    """Concrete adapter for the ledger store.

    Implements the LedgerStore port defined in the domain layer.
    Store failures surface as LedgerUnavailableError.
    """

    def __init__(
        self,
        engine: Engine,
        history_window: int = DEFAULT_PRICE_HISTORY_WINDOW,
    ) -> None:
        self._engine = engine
        self._history_window = history_window

    @contextmanager
    def unit_of_work(self) -> Iterator[LedgerUnitOfWork]:
        """Open a transaction; commit on exit, roll back on any exception."""
        try:
            with self._engine.begin() as conn:
                yield SqlAlchemyUnitOfWork(conn, self._history_window)
        except SQLAlchemyError as exc:
            logger.error("Ledger store failure: %s", type(exc).__name__)
            raise LedgerUnavailableError(type(exc).__name__) from exc
