"""
Domain service: Trade execution rules.

Pure business logic for buying and selling coins against the
simulated market. No framework imports. No IO. No side effects.

Given a user and a coin snapshot, produces the user's new balance and
holdings, the coin's post-impact price, and the transaction record.
The inputs are never modified, so a rejected trade leaves nothing to
undo.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from app.domain.trading.entities import Coin, Transaction, TransactionType, User
from app.domain.trading.errors import (
    InsufficientFundsError,
    InsufficientHoldingsError,
    InvalidAmountError,
)
from app.domain.trading.pricing import apply_price_impact

DEFAULT_IMPACT_FACTOR = Decimal("0.00001")

# Amounts are capped so that holdings stay exact within the default
# 28-digit decimal context.
AMOUNT_DECIMAL_PLACES = 8
AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_DECIMAL_PLACES)
MAX_AMOUNT = Decimal("1e12")


def validate_amount(amount: object) -> Decimal:
    """Return `amount` as a Decimal, or raise InvalidAmountError.

    Accepts ints, floats, Decimals and numeric strings that are finite,
    strictly positive, below MAX_AMOUNT and carry at most
    AMOUNT_DECIMAL_PLACES decimal places. Booleans are rejected.
    """
    if isinstance(amount, bool):
        raise InvalidAmountError(amount)
    if isinstance(amount, float) and not math.isfinite(amount):
        raise InvalidAmountError(amount)
    try:
        value = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)
    except (ArithmeticError, TypeError, ValueError) as exc:
        raise InvalidAmountError(amount) from exc
    if not value.is_finite() or value <= 0 or value >= MAX_AMOUNT:
        raise InvalidAmountError(amount)
    if value.quantize(AMOUNT_QUANTUM) != value:
        raise InvalidAmountError(amount)
    return value


@dataclass(frozen=True)
class TradeOutcome:
    """The new state produced by one executed trade."""

    user: User
    coin: Coin
    transaction: Transaction


class TradeService:
    """Domain service applying buy/sell rules and price impact."""

    def __init__(self, impact_factor: Decimal = DEFAULT_IMPACT_FACTOR) -> None:
        """Initialize the trade service.

        Args:
            impact_factor: Relative price move per traded unit
                (0.00001 = 0.001% per coin).
        """
        self._impact_factor = impact_factor

    def execute(
        self,
        user: User,
        coin: Coin,
        trade_type: TransactionType,
        amount: Decimal,
        now: datetime,
    ) -> TradeOutcome:
        """Execute a trade at the coin's current price.

        The trade is settled at the pre-trade price; the transaction
        record carries the price after the trade's own impact.

        Args:
            user: Snapshot of the trading user.
            coin: Snapshot of the traded coin.
            trade_type: Buy or sell.
            amount: Number of coins, already validated > 0.
            now: Execution timestamp.

        Returns:
            The updated user, the coin after price impact and the
            transaction record.

        Raises:
            InsufficientFundsError: A buy costs more than the balance.
            InsufficientHoldingsError: A sell exceeds the held quantity.
            MarketDepthExceededError: A sell would push the price to <= 0.
        """
        total_price = amount * coin.price

        if trade_type is TransactionType.BUY:
            if user.balance < total_price:
                raise InsufficientFundsError(required=total_price, available=user.balance)
            updated_user = replace(
                user,
                balance=user.balance - total_price,
                holdings=user.holdings.credit(coin.symbol, amount),
            )
        else:
            held = user.holdings.quantity(coin.symbol)
            if held < amount:
                raise InsufficientHoldingsError(coin.symbol, required=amount, available=held)
            updated_user = replace(
                user,
                balance=user.balance + total_price,
                holdings=user.holdings.debit(coin.symbol, amount),
            )

        updated_coin = apply_price_impact(coin, trade_type, amount, self._impact_factor)

        transaction = Transaction(
            user_id=user.id,
            coin_id=coin.id,
            coin_symbol=coin.symbol,
            type=trade_type,
            amount=amount,
            price=updated_coin.price,
            timestamp=now,
        )
        return TradeOutcome(user=updated_user, coin=updated_coin, transaction=transaction)
