"""Tests for logging configuration."""

import logging

import pytest

from phaser.domain import Phase
from phaser.logging_config import (
    LOG_FILE_NAME,
    get_logger,
    log_lock,
    log_scan,
    log_transition,
    setup_logging,
)


@pytest.fixture
def phaser_logger():
    """Detach any handlers setup_logging attached during the test."""
    logger = logging.getLogger("phaser")
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


class TestSetupLogging:
    def test_creates_log_file(self, tmp_path, phaser_logger):
        log_path = setup_logging(tmp_path / "data")

        assert log_path == tmp_path / "data" / LOG_FILE_NAME
        get_logger("engine.test").warning("hello file")
        for handler in phaser_logger.handlers:
            handler.flush()
        assert "hello file" in log_path.read_text()

    def test_reinitialize_replaces_handlers(self, tmp_path, phaser_logger):
        setup_logging(tmp_path)
        setup_logging(tmp_path)

        assert len(phaser_logger.handlers) == 2

    def test_file_level_respected(self, tmp_path, phaser_logger):
        log_path = setup_logging(tmp_path, log_level=logging.WARNING)

        get_logger("quiet").debug("not written")
        for handler in phaser_logger.handlers:
            handler.flush()
        assert "not written" not in log_path.read_text()


class TestGetLogger:
    def test_prefixes_plain_names(self):
        assert get_logger("custom").name == "phaser.custom"

    def test_keeps_phaser_names(self):
        assert get_logger("phaser.engine.scanner").name == "phaser.engine.scanner"
        assert get_logger("phaser").name == "phaser"


class TestHelpers:
    def test_log_transition(self, caplog):
        logger = get_logger("test.transition")
        with caplog.at_level(logging.DEBUG, logger="phaser"):
            log_transition(logger, "certification c1", Phase.STAGED, Phase.ACTIVE, "ENTERED")

        assert "TRANSITION | certification c1 | staged -> active | ENTERED" in caplog.text

    def test_log_transition_from_nothing(self, caplog):
        logger = get_logger("test.transition")
        with caplog.at_level(logging.DEBUG, logger="phaser"):
            log_transition(logger, "item i1", None, Phase.ACTIVE, "ENTERED", details="rolling")

        assert "none -> active | ENTERED | rolling" in caplog.text

    def test_log_lock_busy(self, caplog):
        logger = get_logger("test.lock")
        with caplog.at_level(logging.DEBUG, logger="phaser"):
            log_lock(logger, "c1", "acquire", owner="w1", success=False)

        assert "LOCK | c1 | acquire | owner=w1 | BUSY" in caplog.text

    def test_log_scan(self, caplog):
        logger = get_logger("test.scan")
        with caplog.at_level(logging.INFO, logger="phaser"):
            log_scan(logger, "items", "start", details="3 due")

        assert "SCAN | items | start | 3 due" in caplog.text
