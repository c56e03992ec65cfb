"""
Use case: Register a new trader account.

Input: RegisterUserCommand (username, password)
Output: UserResult
Side effects: Stores a user with the starting cash balance and no holdings.
Failure cases: DuplicateUsernameError.
"""

import logging
from decimal import Decimal
from uuid import uuid4

from app.application.trading.dtos import RegisterUserCommand, UserResult
from app.domain.trading.entities import Holdings, User
from app.domain.trading.errors import DuplicateUsernameError
from app.domain.trading.ports import LedgerStore, PasswordHasher

logger = logging.getLogger(__name__)


class RegisterUserUseCase:
    """Creates an account funded with virtual cash."""

    def __init__(
        self,
        ledger: LedgerStore,
        password_hasher: PasswordHasher,
        starting_balance: Decimal,
    ) -> None:
        self._ledger = ledger
        self._password_hasher = password_hasher
        self._starting_balance = starting_balance

    def execute(self, command: RegisterUserCommand) -> UserResult:
        """Register the user.

        Raises:
            DuplicateUsernameError: If the username is already taken.
        """
        password_hash = self._password_hasher.hash(command.password)
        user = User(
            id=uuid4().hex,
            username=command.username,
            password_hash=password_hash,
            balance=self._starting_balance,
            holdings=Holdings(),
        )

        with self._ledger.unit_of_work() as uow:
            if uow.get_user_by_username(command.username) is not None:
                logger.warning("Registration refused: username already taken.")
                raise DuplicateUsernameError(command.username)
            uow.add_user(user)

        logger.info("Registered user id=%s.", user.id)
        return UserResult.from_entity(user)
