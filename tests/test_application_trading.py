"""
Tests for the trading application layer (use cases).

Use cases run against a real SQLite ledger in tmp_path and a recording
publisher. Failure paths use mocked ports where the store has to
misbehave.
"""

import random
from datetime import datetime, timezone
from contextlib import contextmanager
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.application.trading.authenticate_user import AuthenticateUserUseCase
from app.application.trading.dtos import (
    AuthenticateUserCommand,
    ExecuteTransactionCommand,
    GetRecentTransactionsQuery,
    RegisterUserCommand,
)
from app.application.trading.execute_transaction import ExecuteTransactionUseCase
from app.application.trading.get_recent_transactions import GetRecentTransactionsUseCase
from app.application.trading.get_user import GetUserUseCase
from app.application.trading.list_coins import ListCoinsUseCase
from app.application.trading.register_user import RegisterUserUseCase
from app.application.trading.seed_coins import DEFAULT_COINS, SeedCoinsUseCase
from app.application.trading.simulate_price_tick import SimulatePriceTickUseCase
from app.domain.trading.errors import (
    CoinNotFoundError,
    ConcurrencyConflictError,
    DuplicateUsernameError,
    InsufficientFundsError,
    InsufficientHoldingsError,
    InvalidAmountError,
    InvalidCredentialsError,
    InvalidTransactionTypeError,
    UnknownUsernameError,
    UserNotFoundError,
)
from app.domain.trading.pricing import PriceSimulator
from app.domain.trading.trade_service import TradeService
from app.infrastructure.trading.security import JwtTokenService

FIXED_NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def register(ledger, password_hasher):
    use_case = RegisterUserUseCase(ledger, password_hasher, starting_balance=Decimal("10000"))

    def _register(username: str = "alice", password: str = "pw") -> str:
        return use_case.execute(RegisterUserCommand(username=username, password=password)).id

    return _register


@pytest.fixture
def trade(ledger, publisher):
    return ExecuteTransactionUseCase(
        ledger=ledger,
        publisher=publisher,
        trade_service=TradeService(),
        clock=lambda: FIXED_NOW,
    )


def order(user_id: str, type_: str = "buy", amount="10", symbol: str = "CRN") -> ExecuteTransactionCommand:
    return ExecuteTransactionCommand(
        user_id=user_id,
        coin_symbol=symbol,
        type=type_,
        amount=Decimal(amount),
    )


def snapshot(ledger, user_id: str):
    """Return the stored user, coins and transaction log."""
    with ledger.unit_of_work() as uow:
        return uow.get_user(user_id), uow.list_coins(), uow.recent_transactions(user_id, 100)


# =====================================================================
# Accounts
# =====================================================================

class TestRegisterUserUseCase:
    """Tests for account registration."""

    def test_new_user_gets_starting_balance(self, ledger, register) -> None:
        user_id = register()
        user = GetUserUseCase(ledger).execute(user_id)
        assert user.username == "alice"
        assert user.balance == Decimal("10000")
        assert user.holdings == {}

    def test_duplicate_username_rejected(self, register) -> None:
        register()
        with pytest.raises(DuplicateUsernameError):
            register()

    def test_password_is_stored_hashed(self, ledger, register) -> None:
        user_id = register(password="plain-text")
        with ledger.unit_of_work() as uow:
            stored = uow.get_user(user_id)
        assert stored.password_hash != "plain-text"
        assert stored.password_hash.startswith("$2")


class TestAuthenticateUserUseCase:
    """Tests for login."""

    @pytest.fixture
    def authenticate(self, ledger, password_hasher):
        return AuthenticateUserUseCase(ledger, password_hasher, JwtTokenService("test-secret"))

    def test_valid_credentials_issue_token_for_user(self, register, authenticate) -> None:
        user_id = register(password="pw")
        result = authenticate.execute(AuthenticateUserCommand(username="alice", password="pw"))
        assert JwtTokenService("test-secret").verify(result.token) == user_id
        assert result.token_type == "bearer"

    def test_unknown_username(self, authenticate) -> None:
        with pytest.raises(UnknownUsernameError):
            authenticate.execute(AuthenticateUserCommand(username="nobody", password="pw"))

    def test_wrong_password(self, register, authenticate) -> None:
        register(password="pw")
        with pytest.raises(InvalidCredentialsError):
            authenticate.execute(AuthenticateUserCommand(username="alice", password="nope"))


class TestGetUserUseCase:
    """Tests for reading the current user."""

    def test_unknown_user_raises(self, ledger) -> None:
        with pytest.raises(UserNotFoundError):
            GetUserUseCase(ledger).execute("missing")


# =====================================================================
# Market
# =====================================================================

class TestSeedCoinsUseCase:
    """Tests for listing the default coins."""

    def test_default_coins_are_listed(self, ledger) -> None:
        coins = {c.symbol: c for c in ListCoinsUseCase(ledger).execute()}
        assert set(coins) == {"CRN", "SOL", "ZRX", "MNT", "DOT"}
        assert coins["CRN"].price == Decimal("175")
        assert coins["CRN"].id == "crn"
        assert len(coins["CRN"].price_history) == 1

    def test_seeding_is_idempotent(self, ledger) -> None:
        with ledger.unit_of_work() as uow:
            before = uow.get_coin_by_symbol("CRN")

        assert SeedCoinsUseCase(ledger).execute() == []

        with ledger.unit_of_work() as uow:
            after = uow.get_coin_by_symbol("CRN")
            assert len(uow.list_coins()) == len(DEFAULT_COINS)
        assert after == before


class TestExecuteTransactionUseCase:
    """Tests for buy/sell orchestration."""

    def test_buy_updates_user_coin_and_log(self, ledger, publisher, register, trade) -> None:
        user_id = register()

        result = trade.execute(order(user_id, "buy", "10"))

        assert result.user.balance == Decimal("8250")
        assert result.user.holdings == {"CRN": Decimal("10")}
        assert result.coin_price == Decimal("175.0175")
        assert result.transaction.price == Decimal("175.0175")
        assert result.transaction.type == "buy"

        user, coins, transactions = snapshot(ledger, user_id)
        assert user.balance == Decimal("8250")
        assert {c.symbol: c.price for c in coins}["CRN"] == Decimal("175.0175")
        assert len(transactions) == 1

    def test_publishes_price_then_user_after_commit(self, publisher, register, trade) -> None:
        user_id = register()
        trade.execute(order(user_id))

        assert [u.symbol for u in publisher.price_updates] == ["CRN"]
        assert publisher.price_updates[0].price == Decimal("175.0175")
        assert [u.id for u in publisher.user_updates] == [user_id]

    def test_sell_all_removes_holding(self, register, trade) -> None:
        user_id = register()
        trade.execute(order(user_id, "buy", "2"))
        result = trade.execute(order(user_id, "sell", "2"))
        assert "CRN" not in result.user.holdings

    @pytest.mark.parametrize(
        ("command_args", "error"),
        [
            (("buy", "1000"), InsufficientFundsError),
            (("sell", "1"), InsufficientHoldingsError),
            (("hold", "1"), InvalidTransactionTypeError),
            (("buy", "0"), InvalidAmountError),
            (("buy", "-5"), InvalidAmountError),
        ],
    )
    def test_failed_trade_leaves_no_trace(
        self, ledger, publisher, register, trade, command_args, error
    ) -> None:
        """A rejected order changes nothing and publishes nothing."""
        user_id = register()
        before = snapshot(ledger, user_id)

        with pytest.raises(error):
            trade.execute(order(user_id, *command_args))

        assert snapshot(ledger, user_id) == before
        assert publisher.price_updates == []
        assert publisher.user_updates == []

    def test_unknown_coin(self, register, trade) -> None:
        user_id = register()
        with pytest.raises(CoinNotFoundError):
            trade.execute(order(user_id, symbol="XYZ"))

    def test_unknown_user(self, trade) -> None:
        with pytest.raises(UserNotFoundError):
            trade.execute(order("ghost"))

    def test_conflict_is_retried_then_reported(self, publisher) -> None:
        """Every attempt losing the write race surfaces a conflict."""
        uow = MagicMock()
        uow.save_user.side_effect = ConcurrencyConflictError("user", "u1")

        @contextmanager
        def unit_of_work():
            yield uow

        ledger = MagicMock()
        ledger.unit_of_work = unit_of_work

        use_case = ExecuteTransactionUseCase(
            ledger=ledger,
            publisher=publisher,
            trade_service=MagicMock(),
            max_retries=3,
        )
        with pytest.raises(ConcurrencyConflictError):
            use_case.execute(order("u1"))

        assert uow.save_user.call_count == 3
        assert publisher.user_updates == []


class TestGetRecentTransactionsUseCase:
    """Tests for the recent transactions listing."""

    def test_newest_first_and_limited(self, ledger, register, trade) -> None:
        user_id = register()
        for amount in ["1", "2", "3", "4", "5", "6"]:
            trade.execute(order(user_id, "buy", amount))

        results = GetRecentTransactionsUseCase(ledger).execute(
            GetRecentTransactionsQuery(user_id=user_id, limit=5)
        )

        assert [r.amount for r in results] == [Decimal(a) for a in ["6", "5", "4", "3", "2"]]

    def test_only_own_transactions(self, ledger, register, trade) -> None:
        alice = register("alice")
        bob = register("bob")
        trade.execute(order(alice))

        results = GetRecentTransactionsUseCase(ledger).execute(
            GetRecentTransactionsQuery(user_id=bob)
        )
        assert results == []


class TestSimulatePriceTickUseCase:
    """Tests for one price simulator tick."""

    def test_every_coin_moves_and_is_published(self, ledger, publisher) -> None:
        use_case = SimulatePriceTickUseCase(
            ledger, publisher, PriceSimulator(rng=random.Random(3)), clock=lambda: FIXED_NOW
        )

        result = use_case.execute()

        assert sorted(result.updated) == sorted(d.symbol for d in DEFAULT_COINS)
        assert result.failed == []
        assert len(publisher.price_updates) == len(DEFAULT_COINS)
        with ledger.unit_of_work() as uow:
            for coin in uow.list_coins():
                assert len(coin.price_history) == 2
                assert coin.price > 0

    def test_failing_coin_does_not_stop_the_others(self, ledger, publisher) -> None:
        simulator = PriceSimulator(rng=random.Random(3))
        real_tick = simulator.tick

        def flaky_tick(coin, now):
            if coin.symbol == "SOL":
                raise RuntimeError("boom")
            return real_tick(coin, now)

        simulator.tick = flaky_tick
        result = SimulatePriceTickUseCase(ledger, publisher, simulator).execute()

        assert result.failed == ["sol"]
        assert "SOL" not in result.updated
        assert len(result.updated) == len(DEFAULT_COINS) - 1
        assert "SOL" not in [u.symbol for u in publisher.price_updates]

    def test_store_unavailable_returns_empty_result(self, publisher) -> None:
        ledger = MagicMock()
        ledger.unit_of_work.side_effect = RuntimeError("down")

        result = SimulatePriceTickUseCase(ledger, publisher, PriceSimulator()).execute()

        assert result.updated == []
        assert result.failed == []
        assert publisher.price_updates == []
