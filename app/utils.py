"""
Shared helpers.
"""
import logging

from app.core import config


_configured = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger.

    The root handler is installed once, on first use, with the level taken
    from ``LOG_LEVEL``.

    Usage:
        log = get_logger(__name__)
        log.info("Initializing server")
    """
    global _configured
    if not _configured:
        logging.basicConfig(
            level=config.LOG_LEVEL,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
        _configured = True
    return logging.getLogger(name)
