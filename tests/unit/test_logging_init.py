from __future__ import annotations

import logging
import sys
from io import StringIO

from fondant.logging.init import (
    APP_LOGGER_NAME,
    SUMMARY_LEVEL,
    ConsoleHandler,
    LabeledFormatter,
    get_logger,
    log_summary,
    reset_logging,
    set_debug,
    setup_logging,
)

"""Unit tests for the labeled console logging."""


def _captured() -> tuple[logging.Logger, StringIO]:
    stream = StringIO()
    return setup_logging(stream=stream), stream


def test_setup_logging_attaches_one_labeled_console_handler():
    logger = setup_logging()

    assert logger.name == APP_LOGGER_NAME == "fondant"
    assert logger.level == logging.INFO
    assert logger.propagate is False
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], ConsoleHandler)
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)


def test_lines_carry_level_labels():
    logger, stream = _captured()

    logger.info("loaded")
    logger.warning("snapshot unusable")
    logger.error("reload failed")
    logger.log(SUMMARY_LEVEL, "version=1")

    assert stream.getvalue().splitlines() == [
        "INFO loaded",
        "WARN snapshot unusable",
        "ERROR reload failed",
        "SUMMARY version=1",
    ]


def test_unknown_level_uses_registered_name():
    formatter = LabeledFormatter(labels={})
    record = logging.LogRecord("fondant", logging.INFO, __file__, 1, "hello", None, None)
    assert formatter.format(record) == "INFO hello"


def test_module_loggers_reach_the_console_handler():
    _, stream = _captured()

    logging.getLogger("fondant.services.catalog").info("published snapshot v1")

    assert stream.getvalue().strip() == "INFO published snapshot v1"


def test_second_setup_repoints_stream_without_new_handler():
    logger, first = _captured()
    second = StringIO()

    assert setup_logging(stream=second) is logger
    assert len(logger.handlers) == 1
    logger.info("moved")

    assert first.getvalue() == ""
    assert second.getvalue() == "INFO moved\n"


def test_unpinned_handler_follows_stdout(monkeypatch):
    logger = setup_logging()
    replacement = StringIO()
    monkeypatch.setattr(sys, "stdout", replacement)

    logger.info("to current stdout")

    assert replacement.getvalue() == "INFO to current stdout\n"


def test_get_logger_configures_on_first_use():
    reset_logging()
    logger = get_logger()
    assert logger.name == "fondant"
    assert len(logger.handlers) == 1
    assert get_logger() is logger


def test_set_debug_toggles_levels():
    logger, stream = _captured()

    logger.debug("hidden")
    set_debug(True)
    assert logger.level == logging.DEBUG
    logger.debug("shown")
    set_debug(False)
    assert logger.level == logging.INFO
    logger.debug("hidden again")

    assert stream.getvalue().strip() == "DEBUG shown"


def test_log_summary_uses_summary_level():
    _, stream = _captured()

    log_summary("version=1 sheets=2 records=5 elapsed_sec=0.01")

    assert logging.getLevelName(SUMMARY_LEVEL) == "SUMMARY"
    assert stream.getvalue().strip() == "SUMMARY version=1 sheets=2 records=5 elapsed_sec=0.01"
