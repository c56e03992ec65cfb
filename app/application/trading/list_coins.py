"""
Use case: List every coin with its current price and history window.

Input: None
Output: list[CoinResult]
Side effects: None.
Failure cases: LedgerUnavailableError.
"""

from app.application.trading.dtos import CoinResult
from app.domain.trading.ports import LedgerStore


class ListCoinsUseCase:
    def __init__(self, ledger: LedgerStore) -> None:
        self._ledger = ledger

    def execute(self) -> list[CoinResult]:
        with self._ledger.unit_of_work() as uow:
            coins = uow.list_coins()
        return [CoinResult.from_entity(coin) for coin in coins]
