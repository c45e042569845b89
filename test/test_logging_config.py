"""
Tests for the keeper logging setup.
"""

import logging
import sys
import threading
from types import SimpleNamespace

from app.keeper.logging_config import (
    CONSOLE_HANDLER_NAME,
    FILE_HANDLER_NAME,
    LOGGER_NAME,
    DetailedExceptionFormatter,
    global_exception_handler,
    setup_logger,
    thread_exception_handler,
)


def make_record(level: int, with_exception: bool) -> logging.LogRecord:
    exc_info = None
    if with_exception:
        try:
            raise ValueError("quote failed")
        except ValueError:
            exc_info = sys.exc_info()
    return logging.LogRecord(LOGGER_NAME, level, __file__, 1, "dispatch failed", None, exc_info)


def test_error_records_carry_traceback():
    formatted = DetailedExceptionFormatter().format(make_record(logging.ERROR, True))

    assert "dispatch failed" in formatted
    assert "Traceback" in formatted
    assert "ValueError: quote failed" in formatted
    assert "[MainThread]" in formatted


def test_warning_records_drop_traceback():
    formatted = DetailedExceptionFormatter().format(make_record(logging.WARNING, True))

    assert "dispatch failed" in formatted
    assert "Traceback" not in formatted


class CollectingHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(logging.CRITICAL)
        self.messages = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


def keeper_handlers(logger: logging.Logger) -> list:
    return [
        handler for handler in logger.handlers if handler.get_name() in (CONSOLE_HANDLER_NAME, FILE_HANDLER_NAME)
    ]


def test_setup_logger_is_idempotent():
    logger = setup_logger()

    assert setup_logger() is logger
    assert sorted(handler.get_name() for handler in keeper_handlers(logger)) == [CONSOLE_HANDLER_NAME, FILE_HANDLER_NAME]


def test_setup_logger_ignores_foreign_handlers():
    logger = setup_logger()
    foreign = CollectingHandler()
    logger.addHandler(foreign)
    try:
        setup_logger()
        assert len(keeper_handlers(logger)) == 2
    finally:
        logger.removeHandler(foreign)


def hook_args(exc: BaseException, thread: threading.Thread) -> SimpleNamespace:
    return SimpleNamespace(exc_type=type(exc), exc_value=exc, exc_traceback=None, thread=thread)


def test_uncaught_exceptions_are_logged():
    logger = setup_logger()
    collector = CollectingHandler()
    logger.addHandler(collector)
    try:
        global_exception_handler(RuntimeError, RuntimeError("main"), None)

        thread = threading.Thread(target=lambda: None, name="pool_0")
        thread_exception_handler(hook_args(RuntimeError("worker"), thread))
        thread_exception_handler(hook_args(SystemExit(0), thread))
    finally:
        logger.removeHandler(collector)

    assert collector.messages == ["Uncaught exception", "Uncaught exception in thread pool_0"]
