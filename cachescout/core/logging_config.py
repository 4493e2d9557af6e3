"""
Logging setup for command-line use.
Library modules only create loggers; handlers are installed here.
"""

import logging
import sys


LOG_FORMAT = "[%(asctime)s] [%(name)s] %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Chatty third-party loggers kept at WARNING unless debugging
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic")


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """
    Install a stderr handler on the `cachescout` logger.

    Args:
        level: Log level name or number

    Returns:
        The package root logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger("cachescout")
    root.setLevel(level)

    if not any(getattr(h, "_cachescout", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._cachescout = True
        root.addHandler(handler)
    root.propagate = False

    noisy_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    return root
