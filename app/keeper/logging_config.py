"""
Logging for the auction keeper: one shared logger, console and file output.

The keeper runs pool passes and quotes on worker threads, so every line carries
the thread name and uncaught exceptions are captured on threads as well.
"""

import logging
import os
import threading
import traceback
from pathlib import Path
from typing import Any

LOGS_PATH = os.environ.get("LOGS_PATH", "logs/ajna_keeper.log")
LOGGER_NAME = "ajna_keeper"

LINE_FORMAT = "%(asctime)s - %(levelname)s - [%(threadName)s] %(message)s"
CONSOLE_HANDLER_NAME = "ajna_keeper_console"
FILE_HANDLER_NAME = "ajna_keeper_file"


class DetailedExceptionFormatter(logging.Formatter):
    """Appends the full traceback to ERROR and CRITICAL records that carry one."""

    def __init__(self) -> None:
        super().__init__(LINE_FORMAT)

    def formatException(self, ei: Any) -> str:
        return "".join(traceback.format_exception(*ei)).rstrip()

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno < logging.ERROR and record.exc_info:
            # below ERROR only the message is kept
            record = logging.makeLogRecord({**record.__dict__, "exc_info": None, "exc_text": None})
        return super().format(record)


def setup_logger() -> logging.Logger:
    """
    Set up and configure the keeper logger.

    The console handler level comes from ``LOG_LEVEL`` (default INFO); the file at
    ``LOGS_PATH`` always receives DEBUG.

    Returns:
        Configured logger instance with console and file handlers.
    """
    logger = logging.getLogger(LOGGER_NAME)

    # other tooling may attach its own handlers to the logger
    if any(handler.get_name() in (CONSOLE_HANDLER_NAME, FILE_HANDLER_NAME) for handler in logger.handlers):
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    formatter = DetailedExceptionFormatter()

    console_handler = logging.StreamHandler()
    console_handler.set_name(CONSOLE_HANDLER_NAME)
    console_handler.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    Path(LOGS_PATH).parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(LOGS_PATH, mode="a")
    file_handler.set_name(FILE_HANDLER_NAME)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger


def global_exception_handler(exctype: type, value: BaseException, tb: Any) -> None:
    """
    Log uncaught exceptions of the main thread. Installed as ``sys.excepthook``.

    Args:
        exctype: The type of the exception.
        value: The exception instance.
        tb: A traceback object encapsulating the call stack.
    """
    logging.getLogger(LOGGER_NAME).critical("Uncaught exception", exc_info=(exctype, value, tb))


def thread_exception_handler(args: "threading.ExceptHookArgs") -> None:
    """Log uncaught exceptions of keeper threads. Installed as ``threading.excepthook``."""
    if issubclass(args.exc_type, SystemExit):
        return
    thread_name = args.thread.name if args.thread else "unknown"
    logging.getLogger(LOGGER_NAME).critical(
        "Uncaught exception in thread %s", thread_name, exc_info=(args.exc_type, args.exc_value, args.exc_traceback)
    )
