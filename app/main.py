"""
Application entry point.

Creates the FastAPI application and wires together:
- Routers (health, trading, realtime)
- Error handlers (centralized domain-to-HTTP mapping)
- Security middleware (headers, CORS, rate limiting)
- Logging configuration
- Ledger bootstrap and the price simulator

No business logic belongs here.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.application.trading.seed_coins import SeedCoinsUseCase
from app.application.trading.simulate_price_tick import SimulatePriceTickUseCase
from app.core.config import settings
from app.domain.trading.pricing import PriceSimulator
from app.infrastructure.trading.database import create_schema
from app.interfaces.health import router as health_router
from app.interfaces.realtime import (
    event_publisher,
    router as realtime_router,
    set_scheduler,
)
from app.interfaces.trading.dependencies import (
    get_db_engine,
    get_event_publisher,
    get_ledger_store,
)
from app.interfaces.trading.router import router as trading_router
from app.shared.errors.handlers import register_error_handlers
from app.shared.logging import configure_logging
from app.shared.security.headers import SecurityHeadersMiddleware
from app.shared.security.rate_limiting import limiter, rate_limit_exceeded_handler
from simulation.realtime.scheduler import PriceSimulationScheduler

logger = logging.getLogger(__name__)


def _resolve(app: FastAPI, provider: Callable[[], Any]) -> Any:
    """Call a dependency provider, honouring app.dependency_overrides."""
    return app.dependency_overrides.get(provider, provider)()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the ledger, bind the stream loop, run the price simulator."""
    create_schema(_resolve(app, get_db_engine))
    ledger = _resolve(app, get_ledger_store)
    SeedCoinsUseCase(ledger, history_window=settings.price_history_window).execute()

    event_publisher.bind_loop(asyncio.get_running_loop())

    scheduler: PriceSimulationScheduler | None = None
    if settings.simulator_enabled:
        tick = SimulatePriceTickUseCase(
            ledger=ledger,
            publisher=_resolve(app, get_event_publisher),
            simulator=PriceSimulator(max_change_pct=settings.price_max_change_pct),
        )
        scheduler = PriceSimulationScheduler(
            tick.execute,
            interval_seconds=settings.price_tick_seconds,
        )
        scheduler.start()
        set_scheduler(scheduler)
    else:
        logger.info("Price simulator disabled.")

    yield

    # Shutdown
    if scheduler is not None:
        scheduler.stop()
        set_scheduler(None)
    event_publisher.unbind_loop()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Registers routers, error handlers, and security middleware.
    This is the composition root of the application.

    Returns:
        A fully configured FastAPI application instance.
    """
    configure_logging(level=settings.log_level)

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # --- Rate Limiting ---
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # --- Security Middleware ---
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )

    # --- Error Handlers ---
    register_error_handlers(app)

    # --- Routers ---
    app.include_router(health_router, prefix=settings.api_prefix)
    app.include_router(trading_router, prefix=settings.api_prefix)
    app.include_router(realtime_router, prefix=settings.api_prefix)

    return app


app = create_app()
