"""
Centralized error handlers for FastAPI.

Maps domain-specific errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses use the ErrorResponse schema.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.domain.trading.errors import (
    CoinNotFoundError,
    ConcurrencyConflictError,
    DuplicateUsernameError,
    InsufficientFundsError,
    InsufficientHoldingsError,
    InvalidAmountError,
    InvalidCredentialsError,
    InvalidTokenError,
    InvalidTransactionTypeError,
    LedgerUnavailableError,
    MarketDepthExceededError,
    MissingTokenError,
    TradingDomainError,
    UnknownUsernameError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

HTTP_400 = 400
HTTP_401 = 401
HTTP_403 = 403
HTTP_404 = 404
HTTP_409 = 409
HTTP_500 = 500


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(parts)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed bodies are client errors like any business rejection."""
        detail = _format_validation_errors(exc)
        logger.warning("Request validation failed: %s", detail)
        return _error_response(HTTP_400, "Invalid request", detail)

    @app.exception_handler(InvalidAmountError)
    async def handle_invalid_amount(
        _request: Request, exc: InvalidAmountError
    ) -> JSONResponse:
        logger.warning("Invalid amount: %s", exc.amount)
        return _error_response(HTTP_400, "Invalid amount", exc.message)

    @app.exception_handler(InvalidTransactionTypeError)
    async def handle_invalid_type(
        _request: Request, exc: InvalidTransactionTypeError
    ) -> JSONResponse:
        logger.warning("Invalid transaction type: %s", exc.transaction_type)
        return _error_response(HTTP_400, exc.message)

    @app.exception_handler(InsufficientFundsError)
    async def handle_insufficient_funds(
        _request: Request, exc: InsufficientFundsError
    ) -> JSONResponse:
        """Handle insufficient funds errors."""
        logger.warning("Insufficient funds: required=%s available=%s", exc.required, exc.available)
        return _error_response(HTTP_400, exc.message)

    @app.exception_handler(InsufficientHoldingsError)
    async def handle_insufficient_holdings(
        _request: Request, exc: InsufficientHoldingsError
    ) -> JSONResponse:
        """Handle sells larger than the user's holding."""
        logger.warning(
            "Insufficient %s holdings: required=%s available=%s",
            exc.symbol,
            exc.required,
            exc.available,
        )
        return _error_response(HTTP_400, exc.message)

    @app.exception_handler(MarketDepthExceededError)
    async def handle_market_depth(
        _request: Request, exc: MarketDepthExceededError
    ) -> JSONResponse:
        logger.warning("Market depth exceeded: %s x %s", exc.symbol, exc.amount)
        return _error_response(HTTP_400, "Trade too large", exc.message)

    @app.exception_handler(DuplicateUsernameError)
    async def handle_duplicate_username(
        _request: Request, exc: DuplicateUsernameError
    ) -> JSONResponse:
        logger.warning("Signup rejected: username taken")
        return _error_response(HTTP_400, exc.message)

    @app.exception_handler(CoinNotFoundError)
    async def handle_coin_not_found(
        _request: Request, exc: CoinNotFoundError
    ) -> JSONResponse:
        """Handle unknown coin symbols."""
        logger.warning("Coin not found: %s", exc.symbol)
        return _error_response(HTTP_400, exc.message)

    @app.exception_handler(UnknownUsernameError)
    async def handle_unknown_username(
        _request: Request, exc: UnknownUsernameError
    ) -> JSONResponse:
        logger.warning("Login rejected: unknown username")
        return _error_response(HTTP_400, exc.message)

    @app.exception_handler(InvalidCredentialsError)
    async def handle_invalid_credentials(
        _request: Request, exc: InvalidCredentialsError
    ) -> JSONResponse:
        logger.warning("Login rejected: wrong password")
        return _error_response(HTTP_401, exc.message)

    @app.exception_handler(MissingTokenError)
    async def handle_missing_token(
        _request: Request, exc: MissingTokenError
    ) -> JSONResponse:
        return _error_response(HTTP_401, exc.message)

    @app.exception_handler(InvalidTokenError)
    async def handle_invalid_token(
        _request: Request, exc: InvalidTokenError
    ) -> JSONResponse:
        """Handle bearer tokens that fail verification."""
        logger.warning("Invalid token: %s", exc.reason)
        return _error_response(HTTP_403, exc.message)

    @app.exception_handler(UserNotFoundError)
    async def handle_user_not_found(
        _request: Request, exc: UserNotFoundError
    ) -> JSONResponse:
        """Handle tokens whose user no longer exists."""
        logger.warning("User not found: %s", exc.user_id)
        return _error_response(HTTP_404, exc.message)

    @app.exception_handler(ConcurrencyConflictError)
    async def handle_concurrency_conflict(
        _request: Request, exc: ConcurrencyConflictError
    ) -> JSONResponse:
        """Handle writes that kept losing the compare-and-swap race."""
        logger.warning("Concurrency conflict: %s %s", exc.entity, exc.entity_id)
        return _error_response(HTTP_409, "Concurrent update, please retry")

    @app.exception_handler(LedgerUnavailableError)
    async def handle_ledger_unavailable(
        _request: Request, exc: LedgerUnavailableError
    ) -> JSONResponse:
        logger.error("Ledger store error: %s", exc.reason)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(TradingDomainError)
    async def handle_trading_domain(
        _request: Request, exc: TradingDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled trading domain errors."""
        logger.error("Unhandled trading domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
