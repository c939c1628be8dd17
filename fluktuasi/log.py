from __future__ import annotations

import logging
import sys

"""Logging setup with labeled prefixes (INFO|WARN|ERROR).

Library modules log through ``logging.getLogger(__name__)``; only the CLI and
the web app call :func:`setup_logging`. Output goes to stderr so JSON written
to stdout stays machine-readable.
"""

__all__ = [
    "setup_logging",
    "reset_logging",
]

LOGGER_NAME = "fluktuasi"

_configured: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        message = f"{label} {record.getMessage()}"
        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logging(*, verbose: bool = False, quiet: bool = False) -> logging.Logger:
    global _configured

    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.INFO
    if _configured is not None:
        _configured.setLevel(level)
        for handler in _configured.handlers:
            handler.setLevel(level)
        return _configured

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    _configured = logger
    return logger


def reset_logging() -> None:
    global _configured
    if _configured is not None:
        for handler in _configured.handlers[:]:
            _configured.removeHandler(handler)
        _configured.propagate = True
    _configured = None
