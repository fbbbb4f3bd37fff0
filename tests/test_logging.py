import logging
import logging.handlers

import pytest

from relaychat.common.config import Config
from relaychat.common.logging_config import setup_logging
from relaychat.common.logging_utils import setup_logger


pytestmark = pytest.mark.usefixtures("reset_relaychat_logger")


def test_setup_logging_console_only(monkeypatch):
    monkeypatch.delenv("RELAYCHAT_LOG_FILE", raising=False)
    logger = setup_logging(Config())
    assert logger.name == "relaychat"
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.StreamHandler)


def test_setup_logging_with_file(monkeypatch, tmp_path):
    log_file = tmp_path / "logs" / "relay.log"
    monkeypatch.setenv("RELAYCHAT_LOG_FILE", str(log_file))
    monkeypatch.setenv("RELAYCHAT_LOG_LEVEL", "DEBUG")

    logger = setup_logging()

    assert logger.level == logging.DEBUG
    file_handlers = [
        h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)
    ]
    assert len(file_handlers) == 1
    logger.info("written")
    file_handlers[0].close()
    assert "written" in log_file.read_text()


def test_setup_logging_is_repeatable():
    setup_logging(Config())
    logger = setup_logging(Config())
    stream_handlers = [
        h for h in logger.handlers if not isinstance(h, logging.FileHandler)
    ]
    assert len(stream_handlers) == 1


def test_setup_logger_keeps_existing_handler():
    logger = logging.getLogger("relaychat.test_logging")
    try:
        setup_logger(logger, logging.WARNING)
        setup_logger(logger, logging.WARNING)
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
    finally:
        logger.handlers.clear()
