"""
Use case: List a user's most recent transactions.

Input: GetRecentTransactionsQuery (user_id, limit)
Output: list[TransactionRecordResult], newest first
Side effects: None.
Failure cases: None beyond store errors.
"""

import logging

from app.application.trading.dtos import (
    GetRecentTransactionsQuery,
    TransactionRecordResult,
)
from app.domain.trading.ports import LedgerStore

logger = logging.getLogger(__name__)

MAX_LIMIT = 100


class GetRecentTransactionsUseCase:
    """Reads the tail of a user's transaction log."""

    def __init__(self, ledger: LedgerStore) -> None:
        self._ledger = ledger

    def execute(self, query: GetRecentTransactionsQuery) -> list[TransactionRecordResult]:
        limit = min(max(query.limit, 1), MAX_LIMIT)
        with self._ledger.unit_of_work() as uow:
            transactions = uow.recent_transactions(query.user_id, limit)
        logger.debug("Loaded %d transactions for user id=%s.", len(transactions), query.user_id)
        return [TransactionRecordResult.from_entity(t) for t in transactions]
