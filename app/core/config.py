"""
Application configuration.

Loads settings from environment variables and .env file.
Every tunable of the exchange (market parameters, auth, storage) lives here.
"""

from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode. Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        api_prefix: Path prefix for every HTTP and WebSocket route.
        cors_origins: Browser origins allowed to call the API.
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_auth: Rate limit for the signup and login endpoints.
        database_url: SQLAlchemy URL of the ledger store.
        jwt_secret: HMAC secret used to sign access tokens.
        jwt_algorithm: JWT signing algorithm.
        jwt_expire_minutes: Token lifetime. None issues non-expiring tokens.
        bcrypt_rounds: Cost factor of password hashes.
        starting_balance: Virtual cash credited to every new user.
        price_tick_seconds: Interval between two price simulator ticks.
        price_history_window: Number of price points kept per coin.
        price_max_change_pct: Bound of the per-tick random walk, in percent.
        price_impact_factor: Relative price move per traded unit.
        transaction_max_retries: Attempts before a write conflict is reported.
        recent_transactions_limit: Size of the recent transactions listing.
        simulator_enabled: Start the price simulator with the application.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    project_name: str = "CoinSim"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api"
    cors_origins: list[str] = ["http://localhost:3000"]
    rate_limit_default: str = "60/minute"
    rate_limit_auth: str = "20/minute"

    database_url: str = "sqlite:///./coinsim.db"

    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: Optional[int] = None
    bcrypt_rounds: int = 10

    starting_balance: Decimal = Decimal("10000")
    price_tick_seconds: float = 2.0
    price_history_window: int = 1440
    price_max_change_pct: Decimal = Decimal("0.3")
    price_impact_factor: Decimal = Decimal("0.00001")
    transaction_max_retries: int = 5
    recent_transactions_limit: int = 5
    simulator_enabled: bool = True


settings = Settings()
