"""Logging setup shared by every flowmatch module.

All package loggers hang below the ``flowmatch`` logger, which owns the only
handler. Module loggers stay at NOTSET so one call to `set_global_log_level`
(or the ``FLOWMATCH_LOG_LEVEL`` environment variable, read on first setup)
controls the whole package.
"""

import logging
import os
import sys
from contextlib import contextmanager
from typing import Iterator, Optional, Union

ROOT_LOGGER_NAME = "flowmatch"
LEVEL_ENV_VAR = "FLOWMATCH_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LevelLike = Union[int, str]

_ROOT_LOGGER_CONFIGURED = False


def _resolve_level(level: LevelLike) -> int:
    """Turn ``logging.DEBUG`` or ``"debug"`` into a numeric level."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level '{level}'.")
    return value


def setup_root_logger(
    level: LevelLike = logging.INFO,
    format_string: Optional[str] = None,
    handler: Optional[logging.Handler] = None,
) -> None:
    """Attach a single handler to the ``flowmatch`` logger.

    Repeated calls are ignored until `reset_logging` runs. A level named in
    ``FLOWMATCH_LOG_LEVEL`` wins over ``level``.

    Args:
        level: Numeric level or level name (default: INFO).
        format_string: Custom format string (optional).
        handler: Custom handler (optional, defaults to a stdout StreamHandler).
    """
    global _ROOT_LOGGER_CONFIGURED

    if _ROOT_LOGGER_CONFIGURED:
        return

    env_level = os.getenv(LEVEL_ENV_VAR)
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(_resolve_level(env_level or level))
    package_logger.handlers.clear()

    handler = handler if handler is not None else logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))
    package_logger.addHandler(handler)

    # pytest's caplog listens on the root logger
    package_logger.propagate = True

    _ROOT_LOGGER_CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name``, usually a module's ``__name__``.

    The logger is left at NOTSET so the ``flowmatch`` logger decides what is
    emitted.
    """
    setup_root_logger()

    logger = logging.getLogger(name)
    logger.setLevel(logging.NOTSET)
    return logger


def set_global_log_level(level: LevelLike) -> None:
    """Set the level of the ``flowmatch`` logger and its handlers.

    Args:
        level: Numeric level or level name, e.g. ``logging.DEBUG`` or ``"info"``.
    """
    setup_root_logger()

    value = _resolve_level(level)
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(value)
    for handler in package_logger.handlers:
        handler.setLevel(value)


def enable_debug_logging() -> None:
    """Log solver progress (pushes, relabels, flow values) at DEBUG level."""
    set_global_log_level(logging.DEBUG)


def disable_debug_logging() -> None:
    """Go back to INFO level."""
    set_global_log_level(logging.INFO)


@contextmanager
def debug_logging() -> Iterator[None]:
    """Enable DEBUG output inside a ``with`` block, then restore the old level."""
    setup_root_logger()
    previous = logging.getLogger(ROOT_LOGGER_NAME).level
    enable_debug_logging()
    try:
        yield
    finally:
        set_global_log_level(previous)


def reset_logging() -> None:
    """Drop the handler and level so the next call sets logging up afresh."""
    global _ROOT_LOGGER_CONFIGURED
    _ROOT_LOGGER_CONFIGURED = False

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


setup_root_logger()
