"""
Shared fixtures.

Every test gets its own file-backed SQLite ledger under tmp_path, seeded
with the default coins. API tests run the real application with the
ledger, password hasher and event publisher swapped through
dependency_overrides.
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.application.trading.seed_coins import SeedCoinsUseCase
from app.domain.trading.entities import PriceUpdate, User
from app.domain.trading.ports import MarketEventPublisher
from app.infrastructure.trading.database import build_engine, create_schema
from app.infrastructure.trading.ledger_store import SqlAlchemyLedgerStore
from app.infrastructure.trading.security import BcryptPasswordHasher
from app.interfaces.trading.dependencies import (
    get_event_publisher,
    get_ledger_store,
    get_password_hasher,
)
from app.main import app
from app.shared.security.rate_limiting import limiter

FIXED_NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class RecordingPublisher(MarketEventPublisher):
    """Collects published events instead of broadcasting them."""

    def __init__(self) -> None:
        self.price_updates: list[PriceUpdate] = []
        self.user_updates: list[User] = []

    def publish_price_update(self, update: PriceUpdate) -> None:
        self.price_updates.append(update)

    def publish_user_update(self, user: User) -> None:
        self.user_updates.append(user)


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def ledger(engine) -> SqlAlchemyLedgerStore:
    store = SqlAlchemyLedgerStore(engine)
    SeedCoinsUseCase(store, clock=lambda: FIXED_NOW).execute()
    return store


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def password_hasher() -> BcryptPasswordHasher:
    # Minimum cost keeps the suite fast.
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def client(ledger, publisher, password_hasher):
    app.dependency_overrides[get_ledger_store] = lambda: ledger
    app.dependency_overrides[get_event_publisher] = lambda: publisher
    app.dependency_overrides[get_password_hasher] = lambda: password_hasher
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client) -> dict[str, str]:
    """Register and log in `alice`, returning the bearer header."""
    credentials = {"username": "alice", "password": "s3cret"}
    assert client.post("/api/signup", json=credentials).status_code == 201
    token = client.post("/api/login", json=credentials).json()["token"]
    return {"Authorization": f"Bearer {token}"}
