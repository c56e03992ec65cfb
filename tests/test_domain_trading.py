"""
Tests for the trading domain layer.

Tests domain entities, pricing and trade rules in isolation.
No external dependencies or IO required.
"""

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.domain.trading.entities import (
    Coin,
    Holdings,
    PriceHistory,
    PricePoint,
    TransactionType,
    User,
)
from app.domain.trading.errors import (
    InsufficientFundsError,
    InsufficientHoldingsError,
    InvalidAmountError,
    InvalidTransactionTypeError,
    MarketDepthExceededError,
)
from app.domain.trading.pricing import (
    PriceSimulator,
    apply_price_impact,
    compute_price_change_24h,
)
from app.domain.trading.trade_service import TradeService, validate_amount

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_coin(price: str = "175", symbol: str = "CRN", history_len: int = 1) -> Coin:
    points = [
        PricePoint(price=Decimal(price), timestamp=NOW - timedelta(minutes=history_len - i))
        for i in range(history_len)
    ]
    return Coin(
        id=symbol.lower(),
        symbol=symbol,
        name="Cryptone",
        price=Decimal(price),
        supply=500_000_000,
        price_history=PriceHistory(points),
    )


def make_user(balance: str = "10000", holdings: dict | None = None) -> User:
    return User(
        id="u1",
        username="alice",
        password_hash="x",
        balance=Decimal(balance),
        holdings=Holdings({k: Decimal(v) for k, v in (holdings or {}).items()}),
    )


def fixed_rng(value: float) -> MagicMock:
    rng = MagicMock(spec=random.Random)
    rng.uniform.return_value = value
    return rng


# =====================================================================
# Holdings
# =====================================================================

class TestHoldings:
    """Tests for the sparse holdings mapping."""

    def test_zero_quantities_are_dropped(self) -> None:
        holdings = Holdings({"CRN": Decimal("0"), "SOL": Decimal("2")})
        assert "CRN" not in holdings
        assert holdings.to_dict() == {"SOL": Decimal("2")}

    def test_negative_quantity_rejected(self) -> None:
        with pytest.raises(ValueError):
            Holdings({"CRN": Decimal("-1")})

    def test_credit_returns_new_mapping(self) -> None:
        original = Holdings()
        credited = original.credit("CRN", Decimal("1.5"))
        assert credited.quantity("CRN") == Decimal("1.5")
        assert len(original) == 0

    def test_debit_to_zero_removes_symbol(self) -> None:
        """Selling the whole position leaves no zero entry behind."""
        holdings = Holdings({"CRN": Decimal("3")}).debit("CRN", Decimal("3"))
        assert "CRN" not in holdings
        assert holdings.quantity("CRN") == Decimal("0")

    def test_over_debit_rejected(self) -> None:
        with pytest.raises(ValueError):
            Holdings({"CRN": Decimal("1")}).debit("CRN", Decimal("2"))


# =====================================================================
# PriceHistory
# =====================================================================

class TestPriceHistory:
    """Tests for the bounded price window."""

    def test_append_to_full_window_evicts_oldest(self) -> None:
        points = [PricePoint(Decimal(i + 1), NOW + timedelta(seconds=i)) for i in range(3)]
        history = PriceHistory(points, window=3)

        updated = history.appended(PricePoint(Decimal("9"), NOW + timedelta(seconds=9)))

        assert len(updated) == 3
        assert updated.oldest.price == Decimal("2")
        assert updated.latest.price == Decimal("9")
        # The original window is untouched.
        assert history.oldest.price == Decimal("1")

    def test_invalid_window_rejected(self) -> None:
        with pytest.raises(ValueError):
            PriceHistory(window=0)

    def test_default_window_is_one_day_of_minutes(self) -> None:
        assert PriceHistory().window == 1440


# =====================================================================
# TransactionType
# =====================================================================

class TestTransactionType:
    """Tests for transaction type parsing."""

    def test_parse_known_values(self) -> None:
        assert TransactionType.parse("buy") is TransactionType.BUY
        assert TransactionType.parse("sell") is TransactionType.SELL

    @pytest.mark.parametrize("value", ["hold", "BUY", "", None])
    def test_parse_unknown_value_raises(self, value) -> None:
        with pytest.raises(InvalidTransactionTypeError):
            TransactionType.parse(value)


# =====================================================================
# Pricing
# =====================================================================

class TestPriceImpact:
    """Tests for trade-driven price moves."""

    def test_buy_raises_price(self) -> None:
        coin = apply_price_impact(make_coin("100"), TransactionType.BUY, Decimal("10"), Decimal("0.00001"))
        assert coin.price == Decimal("100.01")

    def test_sell_lowers_price(self) -> None:
        coin = apply_price_impact(make_coin("100"), TransactionType.SELL, Decimal("10"), Decimal("0.00001"))
        assert coin.price == Decimal("99.99")

    def test_sell_beyond_market_depth_rejected(self) -> None:
        """A sell of 1/factor units or more would zero the price."""
        with pytest.raises(MarketDepthExceededError):
            apply_price_impact(make_coin("100"), TransactionType.SELL, Decimal("100000"), Decimal("0.00001"))

    def test_impact_leaves_history_alone(self) -> None:
        coin = make_coin("100")
        moved = apply_price_impact(coin, TransactionType.BUY, Decimal("1"), Decimal("0.00001"))
        assert moved.price_history == coin.price_history
        assert moved.price_change_24h == coin.price_change_24h


class TestPriceSimulator:
    """Tests for the random-walk tick."""

    def test_tick_applies_drawn_change(self) -> None:
        simulator = PriceSimulator(rng=fixed_rng(0.002))
        coin = simulator.tick(make_coin("100"), NOW)

        assert coin.price == Decimal("100.2")
        assert coin.price_history.latest == PricePoint(coin.price, NOW)
        assert len(coin.price_history) == 2

    def test_change_stays_within_bound(self) -> None:
        simulator = PriceSimulator(max_change_pct=Decimal("0.3"), rng=random.Random(7))
        for _ in range(500):
            change = simulator.draw_change()
            assert Decimal("-0.003") <= change <= Decimal("0.003")

    def test_price_stays_positive(self) -> None:
        simulator = PriceSimulator(rng=random.Random(1))
        coin = make_coin("0.01")
        for i in range(200):
            coin = simulator.tick(coin, NOW + timedelta(seconds=i))
            assert coin.price > 0

    def test_full_window_stays_full_and_change_uses_new_oldest(self) -> None:
        """At 1440 points a tick evicts one and recomputes the 24h change."""
        points = [
            PricePoint(Decimal(100 + i), NOW + timedelta(minutes=i))
            for i in range(1440)
        ]
        coin = Coin(
            id="crn",
            symbol="CRN",
            name="Cryptone",
            price=Decimal("1539"),
            supply=500_000_000,
            price_history=PriceHistory(points),
        )

        ticked = PriceSimulator(rng=fixed_rng(0.0)).tick(coin, NOW + timedelta(days=2))

        assert len(ticked.price_history) == 1440
        assert ticked.price_history.oldest.price == Decimal("101")
        assert ticked.price_change_24h == compute_price_change_24h(Decimal("1539"), Decimal("101"))

    def test_invalid_bound_rejected(self) -> None:
        with pytest.raises(ValueError):
            PriceSimulator(max_change_pct=Decimal("-1"))


class TestPriceChange24h:
    """Tests for the percentage change helper."""

    def test_percentage(self) -> None:
        assert compute_price_change_24h(Decimal("110"), Decimal("100")) == Decimal("10")

    def test_zero_reference_gives_zero(self) -> None:
        assert compute_price_change_24h(Decimal("5"), Decimal("0")) == Decimal("0")


# =====================================================================
# TradeService
# =====================================================================

class TestValidateAmount:
    """Tests for trade amount validation."""

    @pytest.mark.parametrize("amount", [0, -1, "0", float("nan"), float("inf"), "abc", None, True])
    def test_invalid_amounts_rejected(self, amount) -> None:
        with pytest.raises(InvalidAmountError):
            validate_amount(amount)

    def test_float_is_converted_exactly_as_written(self) -> None:
        assert validate_amount(0.1) == Decimal("0.1")

    @pytest.mark.parametrize(
        "amount",
        ["0.000000001", "0.1234567890123456789012345678401", "1e12", Decimal("1E-30")],
    )
    def test_too_precise_or_too_large_rejected(self, amount) -> None:
        with pytest.raises(InvalidAmountError):
            validate_amount(amount)

    @pytest.mark.parametrize("amount", ["0.00000001", "1.50000000000", "999999999999.99999999"])
    def test_amounts_within_limits_accepted(self, amount) -> None:
        assert validate_amount(amount) == Decimal(amount)

    def test_bought_amount_can_be_sold_back_exactly(self) -> None:
        amount = validate_amount("0.12345678")
        bought = TradeService().execute(
            make_user(), make_coin("1.25", symbol="ZRX"), TransactionType.BUY, amount, NOW
        )
        sold = TradeService().execute(
            bought.user, bought.coin, TransactionType.SELL, amount, NOW
        )

        assert bought.user.holdings.quantity("ZRX") == amount
        assert "ZRX" not in sold.user.holdings


class TestTradeService:
    """Tests for buy/sell execution rules."""

    def test_buy_crn_example(self) -> None:
        """Buying 10 CRN at 175 from 10000 leaves 8250 and moves price to 175.0175."""
        outcome = TradeService().execute(
            make_user(), make_coin("175"), TransactionType.BUY, Decimal("10"), NOW
        )

        assert outcome.user.balance == Decimal("8250")
        assert outcome.user.holdings.to_dict() == {"CRN": Decimal("10")}
        assert outcome.coin.price == Decimal("175.0175")
        assert outcome.transaction.price == Decimal("175.0175")
        assert outcome.transaction.type is TransactionType.BUY
        assert outcome.transaction.timestamp == NOW

    def test_sell_all_removes_holding(self) -> None:
        user = make_user(balance="0", holdings={"CRN": "4"})
        outcome = TradeService().execute(
            user, make_coin("100"), TransactionType.SELL, Decimal("4"), NOW
        )

        assert outcome.user.balance == Decimal("400")
        assert "CRN" not in outcome.user.holdings
        assert outcome.coin.price == Decimal("99.996")

    def test_buy_over_balance_rejected(self) -> None:
        user = make_user(balance="100")
        with pytest.raises(InsufficientFundsError) as excinfo:
            TradeService().execute(user, make_coin("175"), TransactionType.BUY, Decimal("1"), NOW)
        assert excinfo.value.required == Decimal("175")
        assert excinfo.value.available == Decimal("100")

    def test_sell_over_holding_rejected(self) -> None:
        user = make_user(holdings={"CRN": "1"})
        with pytest.raises(InsufficientHoldingsError):
            TradeService().execute(user, make_coin(), TransactionType.SELL, Decimal("2"), NOW)

    def test_buy_exactly_balance_allowed(self) -> None:
        user = make_user(balance="175")
        outcome = TradeService().execute(user, make_coin("175"), TransactionType.BUY, Decimal("1"), NOW)
        assert outcome.user.balance == Decimal("0")

    def test_inputs_are_not_modified(self) -> None:
        user = make_user()
        coin = make_coin()
        TradeService().execute(user, coin, TransactionType.BUY, Decimal("1"), NOW)
        assert user.balance == Decimal("10000")
        assert len(user.holdings) == 0
        assert coin.price == Decimal("175")
