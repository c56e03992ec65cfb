"""
CLI entry point for the market simulation.

Usage:
    # Create the ledger tables and list the default coins
    python -m simulation.cli init-db

    # Move every price once (or N times) without the API server
    python -m simulation.cli tick --count 10

    # Run the API server with the live price simulator
    python -m simulation.cli serve --port 8000
"""

import argparse
import logging
import sys
import time

from app.core.config import settings
from app.shared.logging import configure_logging

logger = logging.getLogger(__name__)


def _build_ledger():
    from app.infrastructure.trading.database import build_engine, create_schema
    from app.infrastructure.trading.ledger_store import SqlAlchemyLedgerStore

    engine = build_engine(settings.database_url)
    create_schema(engine)
    return SqlAlchemyLedgerStore(engine, history_window=settings.price_history_window)


def cmd_init_db(args: argparse.Namespace) -> None:
    """Create the schema and seed the default coins."""
    from app.application.trading.seed_coins import SeedCoinsUseCase

    ledger = _build_ledger()
    created = SeedCoinsUseCase(ledger, history_window=settings.price_history_window).execute()
    if created:
        logger.info("Ledger ready, listed: %s", ", ".join(created))
    else:
        logger.info("Ledger ready, all coins already listed.")


def cmd_tick(args: argparse.Namespace) -> None:
    """Run price simulator ticks in the foreground."""
    from app.application.trading.simulate_price_tick import SimulatePriceTickUseCase
    from app.domain.trading.pricing import PriceSimulator
    from app.infrastructure.trading.stream_publisher import StreamEventPublisher
    from simulation.realtime.stream import MarketStreamManager

    if args.count < 1:
        logger.error("--count must be at least 1.")
        sys.exit(1)

    # No event loop is bound, so updates are dropped instead of broadcast.
    use_case = SimulatePriceTickUseCase(
        ledger=_build_ledger(),
        publisher=StreamEventPublisher(MarketStreamManager()),
        simulator=PriceSimulator(max_change_pct=settings.price_max_change_pct),
    )

    for i in range(args.count):
        result = use_case.execute()
        logger.info(
            "Tick %d/%d: %d updated, %d failed%s",
            i + 1,
            args.count,
            len(result.updated),
            len(result.failed),
            f" ({', '.join(result.failed)})" if result.failed else "",
        )
        if args.interval and i + 1 < args.count:
            time.sleep(args.interval)


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the full FastAPI application."""
    import uvicorn

    logger.info("Starting %s at http://%s:%d", settings.project_name, args.host, args.port)
    logger.info("WebSocket: ws://%s:%d%s/realtime/ws", args.host, args.port, settings.api_prefix)
    uvicorn.run("app.main:app", host=args.host, port=args.port, reload=args.reload)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CoinSim market simulation CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Init DB
    init_parser = subparsers.add_parser("init-db", help="Create tables and list the default coins")
    init_parser.set_defaults(func=cmd_init_db)

    # Tick
    tick_parser = subparsers.add_parser("tick", help="Run price simulator ticks")
    tick_parser.add_argument(
        "--count", type=int, default=1,
        help="Number of ticks to run (default 1)",
    )
    tick_parser.add_argument(
        "--interval", type=float, default=0.0,
        help="Seconds to wait between ticks (default 0)",
    )
    tick_parser.set_defaults(func=cmd_tick)

    # Serve
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port (default 8000)")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> None:
    configure_logging(level=settings.log_level)
    args = build_parser().parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
