"""
SQLAlchemy schema and engine factory for the ledger store.

Each aggregate lives in a single row so one UPDATE replaces it
atomically: a user's holdings and a coin's price history are JSON
columns next to the scalar fields. Every mutable row carries a
`version` column for compare-and-swap writes.

Monetary values and quantities are stored as decimal text to keep
exact Decimal arithmetic across SQLite and PostgreSQL.
"""

import logging
from decimal import Decimal

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.types import TypeDecorator

logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT_SECONDS = 30


class DecimalText(TypeDecorator):
    """Stores a Decimal as its exact string form."""

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


metadata = MetaData()

users_table = Table(
    "users",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("username", String(64), nullable=False, unique=True),
    Column("password_hash", String(128), nullable=False),
    Column("balance", DecimalText(), nullable=False),
    Column("holdings", JSON, nullable=False),
    Column("version", Integer, nullable=False, default=0),
)

coins_table = Table(
    "coins",
    metadata,
    Column("id", String(16), primary_key=True),
    Column("symbol", String(16), nullable=False, unique=True),
    Column("name", String(64), nullable=False),
    Column("price", DecimalText(), nullable=False),
    Column("supply", BigInteger, nullable=False),
    Column("price_history", JSON, nullable=False),
    Column("price_change_24h", DecimalText(), nullable=False),
    Column("version", Integer, nullable=False, default=0),
)

transactions_table = Table(
    "transactions",
    metadata,
    # Insertion order; newest-first listings sort on it.
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(32), nullable=False, unique=True),
    Column("user_id", String(32), ForeignKey("users.id"), nullable=False, index=True),
    Column("coin_id", String(16), ForeignKey("coins.id"), nullable=False),
    Column("coin_symbol", String(16), nullable=False),
    Column("type", String(8), nullable=False),
    Column("amount", DecimalText(), nullable=False),
    Column("price", DecimalText(), nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
)


def _use_immediate_transactions(engine: Engine) -> None:
    """Make every SQLite transaction take the write lock up front.

    pysqlite defers BEGIN until the first write, so two transactions can
    read the same rows and then race for the lock. BEGIN IMMEDIATE
    serializes them at the start instead.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Build a SQLAlchemy engine for the ledger store.

    Args:
        database_url: Any SQLAlchemy URL, SQLite by default.
        echo: Log every SQL statement.

    Returns:
        A configured Engine.
    """
    url = make_url(database_url)
    connect_args: dict = {}
    if url.get_backend_name() == "sqlite":
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT_SECONDS

    engine = create_engine(url, echo=echo, pool_pre_ping=True, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        _use_immediate_transactions(engine)

    logger.debug("Ledger engine ready (%s).", engine.dialect.name)
    return engine


def create_schema(engine: Engine) -> None:
    """Create the ledger tables if they do not exist."""
    metadata.create_all(engine)
