"""Logging utilities for nunupy modules."""

import logging


def get_logger(name: str) -> logging.Logger:
    """Return a package logger that reports through the root logger.

    Applications calling logging.basicConfig() see nunupy output without
    further setup. Without any root handler the logger stays at WARNING
    so library use is quiet by default.

    Args:
        name: Logger name, e.g. 'nunupy.upload.multipart'

    Returns:
        The logger
    """
    logger = logging.getLogger(name)
    logger.propagate = True

    if not logging.getLogger().handlers and logger.level == logging.NOTSET:
        logger.setLevel(logging.WARNING)

    return logger
