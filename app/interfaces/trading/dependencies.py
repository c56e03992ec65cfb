"""
Dependency injection for the trading bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the trading context.
Tests replace the adapter providers through `app.dependency_overrides`.
"""

from functools import lru_cache

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.engine import Engine

from app.application.trading.authenticate_user import AuthenticateUserUseCase
from app.application.trading.execute_transaction import ExecuteTransactionUseCase
from app.application.trading.get_recent_transactions import GetRecentTransactionsUseCase
from app.application.trading.get_user import GetUserUseCase
from app.application.trading.list_coins import ListCoinsUseCase
from app.application.trading.register_user import RegisterUserUseCase
from app.core.config import settings
from app.domain.trading.errors import MissingTokenError
from app.domain.trading.ports import (
    LedgerStore,
    MarketEventPublisher,
    PasswordHasher,
    TokenService,
)
from app.domain.trading.trade_service import TradeService
from app.infrastructure.trading.database import build_engine
from app.infrastructure.trading.ledger_store import SqlAlchemyLedgerStore
from app.infrastructure.trading.security import BcryptPasswordHasher, JwtTokenService
from app.interfaces.realtime import get_event_publisher as _get_stream_publisher

bearer_scheme = HTTPBearer(auto_error=False)


# ------------------------------------------------------------------
# Adapters
# ------------------------------------------------------------------


@lru_cache
def get_db_engine() -> Engine:
    """Build the SQLAlchemy engine once per process."""
    return build_engine(settings.database_url)


@lru_cache
def get_ledger_store() -> LedgerStore:
    """Return the process-wide ledger store."""
    return SqlAlchemyLedgerStore(
        get_db_engine(),
        history_window=settings.price_history_window,
    )


def get_event_publisher() -> MarketEventPublisher:
    """Return the WebSocket-backed market event publisher."""
    return _get_stream_publisher()


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return BcryptPasswordHasher(rounds=settings.bcrypt_rounds)


@lru_cache
def get_token_service() -> TokenService:
    return JwtTokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expire_minutes=settings.jwt_expire_minutes,
    )


# ------------------------------------------------------------------
# Authentication
# ------------------------------------------------------------------


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    token_service: TokenService = Depends(get_token_service),
) -> str:
    """Resolve the bearer token to a user id.

    Raises:
        MissingTokenError: No bearer token was sent (401).
        InvalidTokenError: The token does not verify (403).
    """
    if credentials is None or not credentials.credentials:
        raise MissingTokenError()
    return token_service.verify(credentials.credentials)


# ------------------------------------------------------------------
# Use cases
# ------------------------------------------------------------------


def get_register_user_use_case(
    ledger: LedgerStore = Depends(get_ledger_store),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
) -> RegisterUserUseCase:
    """Build RegisterUserUseCase with its infrastructure dependencies."""
    return RegisterUserUseCase(
        ledger=ledger,
        password_hasher=password_hasher,
        starting_balance=settings.starting_balance,
    )


def get_authenticate_user_use_case(
    ledger: LedgerStore = Depends(get_ledger_store),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
    token_service: TokenService = Depends(get_token_service),
) -> AuthenticateUserUseCase:
    """Build AuthenticateUserUseCase with its infrastructure dependencies."""
    return AuthenticateUserUseCase(
        ledger=ledger,
        password_hasher=password_hasher,
        token_service=token_service,
    )


def get_user_use_case(
    ledger: LedgerStore = Depends(get_ledger_store),
) -> GetUserUseCase:
    return GetUserUseCase(ledger=ledger)


def get_list_coins_use_case(
    ledger: LedgerStore = Depends(get_ledger_store),
) -> ListCoinsUseCase:
    return ListCoinsUseCase(ledger=ledger)


def get_execute_transaction_use_case(
    ledger: LedgerStore = Depends(get_ledger_store),
    publisher: MarketEventPublisher = Depends(get_event_publisher),
) -> ExecuteTransactionUseCase:
    """Build ExecuteTransactionUseCase with its infrastructure dependencies."""
    return ExecuteTransactionUseCase(
        ledger=ledger,
        publisher=publisher,
        trade_service=TradeService(impact_factor=settings.price_impact_factor),
        max_retries=settings.transaction_max_retries,
    )


def get_recent_transactions_use_case(
    ledger: LedgerStore = Depends(get_ledger_store),
) -> GetRecentTransactionsUseCase:
    return GetRecentTransactionsUseCase(ledger=ledger)
