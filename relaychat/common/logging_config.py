import logging
import logging.handlers
from pathlib import Path

from .config import Config
from .logging_utils import setup_logger


def setup_logging(config: Config | None = None) -> logging.Logger:
    """Configure logging for the application."""
    if config is None:
        config = Config()

    logger = logging.getLogger("relaychat")

    # Remove existing handlers
    logger.handlers.clear()

    # Console handler
    setup_logger(logger, config.LOG_LEVEL, config.LOG_FORMAT)

    # File handler (rotating)
    if config.LOG_FILE:
        log_path = Path(config.LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(config.LOG_FORMAT))
        logger.addHandler(file_handler)

    return logger
