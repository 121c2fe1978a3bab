"""Factories for the loggers used by brokers and clients."""

from __future__ import annotations

import enum
import logging

DEFAULT_LOG_LEVEL = logging.INFO
EMERGENCY = logging.CRITICAL + 10
DEFAULT_LOG_FILE = "LMQ.log"

_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

logging.addLevelName(EMERGENCY, "EMERGENCY")


class LoggerClass(enum.IntEnum):
    """The part of the library a logger reports for."""

    BROKER = 0
    PUBLISHER = 1
    SUBSCRIBER = 2
    UNKNOWN = 3


def _service_name(class_name) -> str:
    try:
        return LoggerClass(class_name).name
    except ValueError:
        return LoggerClass.UNKNOWN.name


def _new_logger(class_name, level: int, handler: logging.Handler) -> logging.Logger:
    logger = logging.Logger(_service_name(class_name), level)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def initialize_serial_logger(class_name, level=DEFAULT_LOG_LEVEL) -> logging.Logger:
    """Return a new logger that writes records at ``level`` or above to stderr."""
    return _new_logger(class_name, level, logging.StreamHandler())


def initialize_file_logger(class_name, path=DEFAULT_LOG_FILE, level=DEFAULT_LOG_LEVEL) -> logging.Logger:
    """Return a new logger that appends to ``path``.

    If the file cannot be opened, a console logger is returned instead and a
    warning is logged through it.
    """
    try:
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError:
        logger = initialize_serial_logger(class_name, level)
        logger.warning(
            "Could not start file logging at %s, check the path. Logs will be printed to the console.",
            path,
        )
        return logger
    return _new_logger(class_name, level, handler)


def disable_logger() -> logging.Logger:
    """Return a logger that only lets emergency records through."""
    return initialize_serial_logger(LoggerClass.UNKNOWN, EMERGENCY)