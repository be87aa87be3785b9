from __future__ import annotations

import logging
import sys
from typing import TextIO

"""Console logging for the fondant command loop.

Every console line is `LABEL message`, where LABEL is one of
DEBUG|INFO|WARN|ERROR|SUMMARY. SUMMARY is a custom level used once per
published snapshot. Module loggers (`logging.getLogger(__name__)` inside the
package) are children of the `fondant` logger and reach its single console
handler; nothing is passed on to the root logger.

The console handler writes to whatever `sys.stdout` is at emit time unless
`setup_logging` was given an explicit stream.
"""

__all__ = [
    "APP_LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "ConsoleHandler",
    "setup_logging",
    "get_logger",
    "set_debug",
    "log_summary",
    "reset_logging",
]

APP_LOGGER_NAME = "fondant"

SUMMARY_LEVEL = 25

LABELS: dict[int, str] = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    SUMMARY_LEVEL: "SUMMARY",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}

_configured: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """`LABEL message`; unknown levels fall back to their registered name."""

    def __init__(self, labels: dict[int, str] | None = None) -> None:
        super().__init__()
        self.labels = dict(LABELS if labels is None else labels)

    def format(self, record: logging.LogRecord) -> str:
        label = self.labels.get(record.levelno) or record.levelname
        return f"{label} {record.getMessage()}"


class ConsoleHandler(logging.StreamHandler):
    """StreamHandler that follows `sys.stdout` unless pinned to a stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__(stream if stream is not None else sys.stdout)
        self.pinned = stream is not None

    def emit(self, record: logging.LogRecord) -> None:
        if not self.pinned and self.stream is not sys.stdout:
            self.stream = sys.stdout
        super().emit(record)


def setup_logging(stream: TextIO | None = None, level: int = logging.INFO) -> logging.Logger:
    """Attach the labeled console handler to the `fondant` logger.

    A second call returns the same logger; passing `stream` then re-points the
    existing handler instead of adding another one.
    """
    global _configured

    if _configured is not None:
        if stream is not None:
            for h in _configured.handlers:
                if isinstance(h, ConsoleHandler):
                    h.setStream(stream)
                    h.pinned = True
        return _configured

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    logger = logging.getLogger(APP_LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)

    handler = ConsoleHandler(stream)
    handler.setFormatter(LabeledFormatter())
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    _configured = logger
    return logger


def get_logger() -> logging.Logger:
    return _configured if _configured is not None else setup_logging()


def set_debug(enabled: bool = True) -> None:
    level = logging.DEBUG if enabled else logging.INFO
    logger = get_logger()
    logger.setLevel(level)
    for h in logger.handlers:
        h.setLevel(level)


def log_summary(message: str) -> None:
    """Log `message` at SUMMARY level; the label is added by the formatter."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the configured logger so the next setup starts over (tests)."""
    global _configured
    _configured = None
