"""
Adapters: Password hashing and access tokens.

Implements the PasswordHasher port with bcrypt and the TokenService
port with PyJWT. Tokens carry the user id in the `sub` claim and no
other identity data.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from app.domain.trading.errors import InvalidTokenError
from app.domain.trading.ports import PasswordHasher, TokenService

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 10


class BcryptPasswordHasher(PasswordHasher):
    """Salted bcrypt hashes.

    bcrypt only reads the first 72 bytes of a password; longer inputs
    are truncated before hashing and verification.
    """

    MAX_PASSWORD_BYTES = 72

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._rounds = rounds

    def _encode(self, password: str) -> bytes:
        return password.encode("utf-8")[: self.MAX_PASSWORD_BYTES]

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(self._encode(password), salt).decode("ascii")

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(self._encode(password), password_hash.encode("ascii"))
        except ValueError:
            logger.warning("Stored password hash is malformed.")
            return False


class JwtTokenService(TokenService):
    """HMAC-signed JWT access tokens.

    Tokens never expire unless `expire_minutes` is set.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expire_minutes: Optional[int] = None,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes

    def issue(self, user_id: str) -> str:
        now = datetime.now(timezone.utc)
        claims: dict = {"sub": user_id, "iat": now}
        if self._expire_minutes is not None:
            claims["exp"] = now + timedelta(minutes=self._expire_minutes)
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> str:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub"]},
            )
        except jwt.PyJWTError as exc:
            logger.warning("Token verification failed: %s", type(exc).__name__)
            raise InvalidTokenError(type(exc).__name__) from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidTokenError("missing subject")
        return subject
