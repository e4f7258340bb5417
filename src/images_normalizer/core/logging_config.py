"""Logger setup shared by the CLI, the services and the worker threads."""

import os
import sys
import logging
from typing import Optional

DEFAULT_LOGGER_NAME = "images-normalizer"

# Worker threads share loggers, so structured lines name the thread
STRUCTURED_FORMAT = (
    "%(asctime)s | %(name)s | %(levelname)-8s | %(threadName)s | "
    "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
)
SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_debug_enabled = False


def _resolve_level(level: Optional[str]) -> int:
    if level:
        return getattr(logging, level.upper(), logging.INFO)
    if _debug_enabled:
        return logging.DEBUG
    return getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)


def _stdout_handler(format_type: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if os.getenv("LOG_FORMAT", format_type).lower() == "structured":
        handler.setFormatter(logging.Formatter(STRUCTURED_FORMAT, datefmt=DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
    return handler


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Configure and return the logger called ``name``.

    The level comes from ``level``, then from ``--debug``, then from the
    ``LOG_LEVEL`` environment variable, and defaults to INFO. ``LOG_FORMAT``
    overrides ``format_type`` (``"structured"`` or ``"simple"``). Each logger
    gets a single stdout handler and does not propagate.
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    if not logger.handlers:
        logger.addHandler(_stdout_handler(format_type))

    logger.propagate = False
    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Get a configured logger.

    Loggers other than the default one are namespaced under it, so
    ``get_logger("pipeline")`` returns ``images-normalizer.pipeline``.
    """
    if name != DEFAULT_LOGGER_NAME and not name.startswith(DEFAULT_LOGGER_NAME):
        name = f"{DEFAULT_LOGGER_NAME}.{name}"
    return setup_logger(name)


def set_debug_logging(enabled: bool) -> None:
    """Switch every images-normalizer logger, existing or future, to DEBUG or back to INFO."""
    global _debug_enabled
    _debug_enabled = enabled
    level = logging.DEBUG if enabled else logging.INFO
    for logger_name in list(logging.root.manager.loggerDict):
        if logger_name == DEFAULT_LOGGER_NAME or logger_name.startswith(
            DEFAULT_LOGGER_NAME + "."
        ):
            logging.getLogger(logger_name).setLevel(level)


logger = setup_logger()
