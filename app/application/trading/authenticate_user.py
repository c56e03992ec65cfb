"""
Use case: Exchange a username and password for an access token.

Input: AuthenticateUserCommand (username, password)
Output: AccessTokenResult
Side effects: None.
Failure cases: UnknownUsernameError, InvalidCredentialsError.
"""

import logging

from app.application.trading.dtos import AccessTokenResult, AuthenticateUserCommand
from app.domain.trading.errors import InvalidCredentialsError, UnknownUsernameError
from app.domain.trading.ports import LedgerStore, PasswordHasher, TokenService

logger = logging.getLogger(__name__)


class AuthenticateUserUseCase:
    """Verifies credentials and issues a stateless token.

    An unknown username and a wrong password are reported with distinct
    errors.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        password_hasher: PasswordHasher,
        token_service: TokenService,
    ) -> None:
        self._ledger = ledger
        self._password_hasher = password_hasher
        self._token_service = token_service

    def execute(self, command: AuthenticateUserCommand) -> AccessTokenResult:
        """Authenticate the user.

        Raises:
            UnknownUsernameError: If no user has this username.
            InvalidCredentialsError: If the password does not match.
        """
        with self._ledger.unit_of_work() as uow:
            user = uow.get_user_by_username(command.username)

        if user is None:
            raise UnknownUsernameError()
        if not self._password_hasher.verify(command.password, user.password_hash):
            logger.warning("Login refused for user id=%s: bad password.", user.id)
            raise InvalidCredentialsError()

        logger.info("Issued token for user id=%s.", user.id)
        return AccessTokenResult(token=self._token_service.issue(user.id))
