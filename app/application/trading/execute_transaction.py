"""
Use case: Execute a buy or sell order against the simulated market.

Input: ExecuteTransactionCommand (user_id, coin_symbol, type, amount)
Output: TransactionResult
Side effects: Updates the user's balance and holdings, moves the coin
    price, appends a transaction record, then publishes a price update
    and a user update.
Failure cases: InvalidTransactionTypeError, InvalidAmountError,
    UserNotFoundError, CoinNotFoundError, InsufficientFundsError,
    InsufficientHoldingsError, MarketDepthExceededError,
    ConcurrencyConflictError, LedgerUnavailableError.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from app.application.trading.dtos import (
    ExecuteTransactionCommand,
    TransactionRecordResult,
    TransactionResult,
    UserResult,
)
from app.domain.trading.entities import PriceUpdate, TransactionType
from app.domain.trading.errors import (
    CoinNotFoundError,
    ConcurrencyConflictError,
    UserNotFoundError,
)
from app.domain.trading.ports import LedgerStore, MarketEventPublisher
from app.domain.trading.trade_service import TradeOutcome, TradeService, validate_amount

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExecuteTransactionUseCase:
    """Orchestrates one atomic trade.

    Loads the user and the coin, applies the TradeService rules and
    writes the user, the coin and the transaction record in a single
    unit of work. Writes are compare-and-swap on each row's version;
    on a conflict the unit of work is rolled back and the whole
    load-compute-commit cycle runs again against fresh state.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        publisher: MarketEventPublisher,
        trade_service: TradeService,
        max_retries: int = DEFAULT_MAX_RETRIES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ledger = ledger
        self._publisher = publisher
        self._trade_service = trade_service
        self._max_retries = max(1, max_retries)
        self._clock = clock

    def execute(self, command: ExecuteTransactionCommand) -> TransactionResult:
        """Run the trade.

        Args:
            command: The order placed by an authenticated user.

        Returns:
            The updated user, the transaction record and the new price.

        Raises:
            InvalidTransactionTypeError: If type is not buy or sell.
            InvalidAmountError: If amount is not > 0 or too precise.
            UserNotFoundError: If the user does not exist.
            CoinNotFoundError: If the symbol is not listed.
            InsufficientFundsError: If a buy exceeds the balance.
            InsufficientHoldingsError: If a sell exceeds the holding.
            MarketDepthExceededError: If a sell would zero the price.
            ConcurrencyConflictError: If every attempt lost a write race.
        """
        trade_type = TransactionType.parse(command.type)
        amount = validate_amount(command.amount)

        logger.info(
            "Transaction request user=%s coin=%s type=%s amount=%s",
            command.user_id,
            command.coin_symbol,
            trade_type.value,
            amount,
        )

        outcome = self._execute_with_retries(command, trade_type, amount)

        logger.info(
            "Transaction committed id=%s user=%s %s %s %s @ %s",
            outcome.transaction.id,
            outcome.user.id,
            trade_type.value,
            amount,
            outcome.coin.symbol,
            outcome.transaction.price,
        )

        self._publisher.publish_price_update(PriceUpdate.from_coin(outcome.coin))
        self._publisher.publish_user_update(outcome.user)

        return TransactionResult(
            user=UserResult.from_entity(outcome.user),
            transaction=TransactionRecordResult.from_entity(outcome.transaction),
            coin_price=outcome.coin.price,
        )

    def _execute_with_retries(
        self,
        command: ExecuteTransactionCommand,
        trade_type: TransactionType,
        amount: Decimal,
    ) -> TradeOutcome:
        attempt = 1
        while True:
            try:
                return self._attempt(command, trade_type, amount)
            except ConcurrencyConflictError as exc:
                logger.warning(
                    "Write conflict on %s %s (attempt %d/%d).",
                    exc.entity,
                    exc.entity_id,
                    attempt,
                    self._max_retries,
                )
                if attempt >= self._max_retries:
                    raise
                attempt += 1

    def _attempt(
        self,
        command: ExecuteTransactionCommand,
        trade_type: TransactionType,
        amount: Decimal,
    ) -> TradeOutcome:
        """Run one load-compute-commit cycle inside a unit of work."""
        with self._ledger.unit_of_work() as uow:
            user = uow.get_user(command.user_id)
            if user is None:
                raise UserNotFoundError(command.user_id)
            coin = uow.get_coin_by_symbol(command.coin_symbol)
            if coin is None:
                raise CoinNotFoundError(command.coin_symbol)

            outcome = self._trade_service.execute(
                user=user,
                coin=coin,
                trade_type=trade_type,
                amount=amount,
                now=self._clock(),
            )

            saved_user = uow.save_user(outcome.user, expected_version=user.version)
            saved_coin = uow.save_coin_price(outcome.coin, expected_version=coin.version)
            uow.add_transaction(outcome.transaction)

        return TradeOutcome(user=saved_user, coin=saved_coin, transaction=outcome.transaction)
