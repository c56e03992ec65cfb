"""
Domain-specific errors for the trading bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""

from decimal import Decimal


class TradingDomainError(Exception):
    """Base error for all trading domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------


class InvalidAmountError(TradingDomainError):
    """Raised when a trade amount is not positive or is too large or precise."""

    def __init__(self, amount: object) -> None:
        super().__init__(
            f"Invalid amount: {amount}. Must be a number > 0 with at most 8 decimal places."
        )
        self.amount = amount


class InvalidTransactionTypeError(TradingDomainError):
    """Raised when a transaction type is neither buy nor sell."""

    def __init__(self, transaction_type: object) -> None:
        super().__init__("Invalid transaction type")
        self.transaction_type = transaction_type


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------


class InsufficientFundsError(TradingDomainError):
    """Raised when the user's cash balance cannot cover a purchase."""

    def __init__(self, required: Decimal, available: Decimal) -> None:
        super().__init__("Insufficient funds")
        self.required = required
        self.available = available


class InsufficientHoldingsError(TradingDomainError):
    """Raised when the user holds fewer coins than they try to sell."""

    def __init__(self, symbol: str, required: Decimal, available: Decimal) -> None:
        super().__init__("Insufficient coin balance")
        self.symbol = symbol
        self.required = required
        self.available = available


class MarketDepthExceededError(TradingDomainError):
    """Raised when a sell is large enough to push the price to zero or below."""

    def __init__(self, symbol: str, amount: Decimal) -> None:
        super().__init__(f"Trade size {amount} exceeds market depth for {symbol}")
        self.symbol = symbol
        self.amount = amount


class DuplicateUsernameError(TradingDomainError):
    """Raised when registering a username that is already taken."""

    def __init__(self, username: str) -> None:
        super().__init__("Username already exists")
        self.username = username


class UserNotFoundError(TradingDomainError):
    """Raised when a user id does not resolve to a stored user."""

    def __init__(self, user_id: str) -> None:
        super().__init__("User not found")
        self.user_id = user_id


class CoinNotFoundError(TradingDomainError):
    """Raised when a coin symbol does not resolve to a listed coin."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Coin not found: {symbol}")
        self.symbol = symbol


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class AuthenticationError(TradingDomainError):
    """Base error for credential and token failures."""


class UnknownUsernameError(AuthenticationError):
    """Raised at login when no user has the given username."""

    def __init__(self) -> None:
        super().__init__("Cannot find user")


class InvalidCredentialsError(AuthenticationError):
    """Raised at login when the password does not match."""

    def __init__(self) -> None:
        super().__init__("Not Allowed")


class MissingTokenError(AuthenticationError):
    """Raised when a protected operation is called without a bearer token."""

    def __init__(self) -> None:
        super().__init__("No token provided")


class InvalidTokenError(AuthenticationError):
    """Raised when a bearer token fails signature or claim checks."""

    def __init__(self, reason: str) -> None:
        super().__init__("Invalid token")
        self.reason = reason


# ---------------------------------------------------------------------------
# Ledger store
# ---------------------------------------------------------------------------


class ConcurrencyConflictError(TradingDomainError):
    """Raised when a compare-and-swap write finds a newer version stored."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"Concurrent modification of {entity} {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class LedgerUnavailableError(TradingDomainError):
    """Raised when the ledger store cannot be reached or fails a query."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Ledger store unavailable: {reason}")
        self.reason = reason
