"""
Logging setup for rocketcart.

Usage:
    from rocketcart.logging import get_logger
    logger = get_logger(__name__)

Level comes from LOG_LEVEL (default INFO). Output goes to stderr so the CLI
keeps stdout for the cart listing; LOG_FORMAT=simple drops timestamps.
"""

import logging
import os
import sys
from functools import cache

# Chatty HTTP client loggers (inventory and Telegram calls)
_QUIET_LOGGERS = ("httpx", "httpcore")

# Characters that would let a product id or storage key forge a log line
_LOG_ESCAPES = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": None})


def _setup() -> None:
    root = logging.getLogger()
    if root.handlers:
        # Host application (or pytest) already configured logging
        return

    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    if os.environ.get("LOG_FORMAT", "").lower() == "simple":
        fmt = "%(levelname)s - %(name)s - %(message)s"
    else:
        fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


_setup()


@cache
def get_logger(name: str) -> logging.Logger:
    """Logger for a rocketcart module (typically __name__)."""
    return logging.getLogger(name)


def sanitize_for_logging(value: object, max_length: int = 50) -> str:
    """
    Render a caller-supplied value (product id, storage key) safe for a log line.

    Control characters are escaped and long values truncated; None and ""
    become "N/A".
    """
    if value is None or value == "":
        return "N/A"
    text = str(value).translate(_LOG_ESCAPES)
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


__all__ = ["get_logger", "sanitize_for_logging"]
