from __future__ import annotations

import logging

from directory_sync.logging.init import LOGGER_NAME, get_logger, log_summary, setup_logging


def test_setup_logging_configures_named_logger():
    logger = setup_logging()
    assert logger.name == LOGGER_NAME == "directory_sync"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert logger.propagate is False


def test_setup_logging_is_idempotent():
    first = setup_logging()
    second = setup_logging(debug=True)
    assert first is second
    assert len(second.handlers) == 1
    assert second.level == logging.DEBUG


def test_labeled_prefixes(capsys):
    logger = setup_logging()
    logger.info("starting")
    logger.warning("careful")
    logger.error("broken")
    log_summary("created: 1 | updated: 0 | ignored: 0")
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "INFO starting",
        "WARN careful",
        "ERROR broken",
        "SUMMARY created: 1 | updated: 0 | ignored: 0",
    ]


def test_module_loggers_share_the_handler(capsys):
    setup_logging(debug=True)
    logging.getLogger("directory_sync.services.commit").debug("chunk=1")
    assert "DEBUG chunk=1" in capsys.readouterr().out


def test_get_logger_configures_on_first_use():
    assert get_logger().name == LOGGER_NAME
