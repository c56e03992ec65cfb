"""
Logging configuration for the exchange service.

One plain-text format shared by the API, the price simulator and the CLI.
Logging must not change program behavior.
Never logs passwords, tokens or raw request bodies.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every request or every scheduler run at INFO.
NOISY_LOGGERS = (
    "uvicorn.access",
    "uvicorn.error",
    "apscheduler.scheduler",
    "apscheduler.executors.default",
)


def configure_logging(level: str = "INFO") -> None:
    """Configure process-wide logging.

    Args:
        level: The log level string (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
