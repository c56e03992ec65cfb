"""
FastAPI router for the trading bounded context.

All routes delegate to use cases. No business logic here.
Input validation is handled by Pydantic schemas.
Error mapping is handled by centralized error handlers.
"""

from fastapi import APIRouter, Depends, Request, status

from app.application.trading.authenticate_user import AuthenticateUserUseCase
from app.application.trading.dtos import (
    AuthenticateUserCommand,
    CoinResult,
    ExecuteTransactionCommand,
    GetRecentTransactionsQuery,
    RegisterUserCommand,
    TransactionRecordResult,
    UserResult,
)
from app.application.trading.execute_transaction import ExecuteTransactionUseCase
from app.application.trading.get_recent_transactions import GetRecentTransactionsUseCase
from app.application.trading.get_user import GetUserUseCase
from app.application.trading.list_coins import ListCoinsUseCase
from app.application.trading.register_user import RegisterUserUseCase
from app.core.config import settings
from app.interfaces.trading.dependencies import (
    get_authenticate_user_use_case,
    get_current_user_id,
    get_execute_transaction_use_case,
    get_list_coins_use_case,
    get_recent_transactions_use_case,
    get_register_user_use_case,
    get_user_use_case,
)
from app.interfaces.trading.schemas import (
    CoinItem,
    CredentialsRequest,
    ErrorResponse,
    MessageResponse,
    PricePointItem,
    TokenResponse,
    TransactionItem,
    TransactionRequest,
    TransactionResponse,
    UserResponse,
)
from app.shared.security.rate_limiting import limiter

router = APIRouter(tags=["trading"])


def _user_response(result: UserResult) -> UserResponse:
    return UserResponse(
        id=result.id,
        username=result.username,
        balance=result.balance,
        holdings=result.holdings,
    )


def _coin_item(result: CoinResult) -> CoinItem:
    return CoinItem(
        id=result.id,
        symbol=result.symbol,
        name=result.name,
        price=result.price,
        supply=result.supply,
        price_change_24h=result.price_change_24h,
        price_history=[
            PricePointItem(price=p.price, timestamp=p.timestamp)
            for p in result.price_history
        ],
    )


def _transaction_item(result: TransactionRecordResult) -> TransactionItem:
    return TransactionItem(
        id=result.id,
        user_id=result.user_id,
        coin_id=result.coin_id,
        coin_symbol=result.coin_symbol,
        type=result.type,
        amount=result.amount,
        price=result.price,
        timestamp=result.timestamp,
    )


# ------------------------------------------------------------------
# Accounts
# ------------------------------------------------------------------


@router.post(
    "/signup",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Create an account",
    description="Register a username with a starting cash balance and no holdings.",
)
@limiter.limit(settings.rate_limit_auth)
def signup(
    request: Request,
    credentials: CredentialsRequest,
    use_case: RegisterUserUseCase = Depends(get_register_user_use_case),
) -> MessageResponse:
    """Register a new user."""
    use_case.execute(
        RegisterUserCommand(username=credentials.username, password=credentials.password)
    )
    return MessageResponse(message="User registered successfully")


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    summary="Log in",
    description="Exchange a username and password for a bearer token.",
)
@limiter.limit(settings.rate_limit_auth)
def login(
    request: Request,
    credentials: CredentialsRequest,
    use_case: AuthenticateUserUseCase = Depends(get_authenticate_user_use_case),
) -> TokenResponse:
    """Authenticate and issue an access token."""
    result = use_case.execute(
        AuthenticateUserCommand(username=credentials.username, password=credentials.password)
    )
    return TokenResponse(token=result.token, token_type=result.token_type)


@router.get(
    "/user",
    response_model=UserResponse,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Get the current user",
    description="Return the authenticated user's balance and holdings.",
)
def get_user(
    user_id: str = Depends(get_current_user_id),
    use_case: GetUserUseCase = Depends(get_user_use_case),
) -> UserResponse:
    return _user_response(use_case.execute(user_id))


# ------------------------------------------------------------------
# Market
# ------------------------------------------------------------------


@router.get(
    "/coins",
    response_model=list[CoinItem],
    summary="List coins",
    description="Return every listed coin with its current price and price history.",
)
def list_coins(
    use_case: ListCoinsUseCase = Depends(get_list_coins_use_case),
) -> list[CoinItem]:
    return [_coin_item(c) for c in use_case.execute()]


@router.post(
    "/transaction",
    response_model=TransactionResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Buy or sell a coin",
    description=(
        "Trade at the current price. The trade moves the coin price and is "
        "broadcast to every connected stream client."
    ),
)
def execute_transaction(
    order: TransactionRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: ExecuteTransactionUseCase = Depends(get_execute_transaction_use_case),
) -> TransactionResponse:
    """Execute a buy or sell for the authenticated user."""
    result = use_case.execute(
        ExecuteTransactionCommand(
            user_id=user_id,
            coin_symbol=order.coin_id,
            type=order.type,
            amount=order.amount,
        )
    )
    return TransactionResponse(
        message="Transaction successful",
        user=_user_response(result.user),
        transaction=_transaction_item(result.transaction),
        coin_price=result.coin_price,
    )


@router.get(
    "/transactions",
    response_model=list[TransactionItem],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
    summary="List recent transactions",
    description="Return the authenticated user's latest transactions, newest first.",
)
def list_transactions(
    user_id: str = Depends(get_current_user_id),
    use_case: GetRecentTransactionsUseCase = Depends(get_recent_transactions_use_case),
) -> list[TransactionItem]:
    query = GetRecentTransactionsQuery(
        user_id=user_id,
        limit=settings.recent_transactions_limit,
    )
    return [_transaction_item(t) for t in use_case.execute(query)]
