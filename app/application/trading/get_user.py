"""
Use case: Return a user's public state.

Input: user id
Output: UserResult
Side effects: None.
Failure cases: UserNotFoundError.
"""

from app.application.trading.dtos import UserResult
from app.domain.trading.errors import UserNotFoundError
from app.domain.trading.ports import LedgerStore


class GetUserUseCase:
    """Loads a user without credentials."""

    def __init__(self, ledger: LedgerStore) -> None:
        self._ledger = ledger

    def execute(self, user_id: str) -> UserResult:
        with self._ledger.unit_of_work() as uow:
            user = uow.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return UserResult.from_entity(user)
