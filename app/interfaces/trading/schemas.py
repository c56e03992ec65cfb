"""
Pydantic schemas for trading API request/response validation.

These schemas enforce input validation and define the API contract.
All fields use strict typing with constraints.
No business logic belongs here.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.domain.trading.trade_service import AMOUNT_DECIMAL_PLACES

SYMBOL_DESCRIPTION = "Coin ticker symbol"
SYMBOL_PATTERN = r"^[A-Z0-9]+$"
SYMBOL_MIN_LEN = 2
SYMBOL_MAX_LEN = 10
USERNAME_MAX_LEN = 64
PASSWORD_MAX_LEN = 128
AMOUNT_MAX_DIGITS = 20


class CredentialsRequest(BaseModel):
    """Request schema for signup and login.

    Attributes:
        username: Login name (1-64 chars).
        password: Plain-text password (1-128 chars).
    """

    username: str = Field(..., min_length=1, max_length=USERNAME_MAX_LEN)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)


class MessageResponse(BaseModel):
    message: str


class TokenResponse(BaseModel):
    """Response schema for a successful login."""

    token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """Public user state. The password hash is never part of it."""

    id: str
    username: str
    balance: Decimal
    holdings: dict[str, Decimal]


class PricePointItem(BaseModel):
    price: Decimal
    timestamp: datetime


class CoinItem(BaseModel):
    """A listed coin in the response."""

    id: str
    symbol: str
    name: str
    price: Decimal
    supply: int
    price_change_24h: Decimal
    price_history: list[PricePointItem]


class TransactionRequest(BaseModel):
    """Request schema for the transaction endpoint.

    Attributes:
        coin_id: Coin ticker symbol, sent as `coinId`.
        type: "buy" or "sell". Checked by the use case so an unknown
            type gets its business error message.
        amount: Number of coins, > 0 with at most 8 decimal places.
    """

    model_config = ConfigDict(populate_by_name=True)

    coin_id: str = Field(
        ...,
        alias="coinId",
        min_length=SYMBOL_MIN_LEN,
        max_length=SYMBOL_MAX_LEN,
        pattern=SYMBOL_PATTERN,
        description=SYMBOL_DESCRIPTION,
    )
    type: str = Field(..., min_length=1, max_length=8, description="buy or sell")
    amount: Decimal = Field(
        ...,
        gt=0,
        max_digits=AMOUNT_MAX_DIGITS,
        decimal_places=AMOUNT_DECIMAL_PLACES,
        description="Number of coins to trade",
    )


class TransactionItem(BaseModel):
    """A single stored transaction in the response."""

    id: UUID
    user_id: str
    coin_id: str
    coin_symbol: str
    type: str
    amount: Decimal
    price: Decimal
    timestamp: datetime


class TransactionResponse(BaseModel):
    """Response schema for a successful trade.

    Attributes:
        coin_price: Coin price after the trade's own impact.
    """

    message: str
    user: UserResponse
    transaction: TransactionItem
    coin_price: Decimal


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    version: str
