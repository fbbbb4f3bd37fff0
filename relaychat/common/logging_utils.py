"""
Console handler setup shared by the relay and the client.
"""

from __future__ import annotations

import logging
from typing import TextIO

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s"


def setup_logger(
    logger: logging.Logger,
    log_level: int,
    log_format: str = DEFAULT_FORMAT,
    stream: TextIO | None = None,
) -> None:
    """
    Attach a console handler to logger unless it already has handlers.

    Args:
        logger: Logger to configure
        log_level: Level for the logger and its console handler
        log_format: Format string for the handler
        stream: Output stream, stderr when omitted
    """
    logger.setLevel(log_level)
    if logger.handlers:
        return

    console = logging.StreamHandler(stream)
    console.setLevel(log_level)
    console.setFormatter(logging.Formatter(log_format))
    logger.addHandler(console)
