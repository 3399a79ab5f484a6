"""Logging helpers shared by every Service Desk Tools module."""

import logging
import sys

ROOT_LOGGER = "servicedesk_tools"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger inside the package namespace.

    Args:
        name: Optional child name (e.g. "jira"). Dotted module names that
            already start with the package name are used as-is.
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(level: str = "INFO", verbose: bool = False) -> logging.Logger:
    """Configure the package logger with a single stderr handler.

    Calling this repeatedly replaces the handler instead of stacking them.

    Args:
        level: Log level name
        verbose: Force DEBUG regardless of level

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    resolved = logging.DEBUG if verbose else getattr(logging, level.upper(), None)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    for handler in list(logger.handlers):
        if getattr(handler, "_servicedesk_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._servicedesk_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(resolved)
    return logger
