"""Centralized logging configuration for Music Video Maker."""

import logging
import sys
from typing import Optional

# Libraries that log far more than we want at INFO
NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "urllib3",
    "google.genai",
    "google_genai",
    "google.auth",
    "numba",
    "audioread",
    "PIL",
    "asyncio",
)


def configure_logging(
    level: str = "INFO",
    format: Optional[str] = None,
    suppress_external: bool = True
) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        format: Custom format string, or None for default
        suppress_external: If True, suppress noisy external library logs
    """
    # Default format: levelname | time | filename:lineno | message
    if format is None:
        format = "%(levelname)-5s | %(asctime)s | %(filename)s:%(lineno)d | %(message)s"

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=format,
        datefmt="%H:%M:%S",
        stream=sys.stdout,
        force=True  # Reconfigure if already configured
    )

    if suppress_external:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        # Everything under google.* except our own callers
        for name in list(logging.root.manager.loggerDict):
            if name.startswith("google."):
                logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
