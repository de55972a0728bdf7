from __future__ import annotations

import logging
from io import StringIO

from marks_to_pdf.logging.init import (
    LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    reset_logging,
    set_debug,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter():
    """setup_logging configures one stdout handler with the labeled format."""
    logger = setup_logging()

    assert logger.name == LOGGER_NAME
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert logger.propagate is False

    handler = logger.handlers[0]
    assert isinstance(handler, logging.StreamHandler)
    assert isinstance(handler.formatter, LabeledFormatter)


def test_setup_logging_is_idempotent():
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert len(second.handlers) == 1
    assert get_logger() is first


def test_logging_labeled_prefixes():
    """Output lines carry INFO|WARN|ERROR|SUMMARY prefixes."""
    captured_output = StringIO()

    logger = logging.getLogger("test_marks_to_pdf")
    logger.setLevel(logging.INFO)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    handler = logging.StreamHandler(captured_output)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    logger.info("Test info message")
    logger.warning("Test warning message")
    logger.error("Test error message")
    logger.log(SUMMARY_LEVEL, "Test summary message")
    logger.info("")

    lines = captured_output.getvalue().split("\n")
    assert lines[:5] == [
        "INFO Test info message",
        "WARN Test warning message",
        "ERROR Test error message",
        "SUMMARY Test summary message",
        "",  # 空メッセージはラベル無しの空行
    ]


def test_console_output_follows_current_stdout(capsys):
    setup_logging()
    log_summary("Done. Generated PDFs for 2 students.")
    get_logger().info("")
    out = capsys.readouterr().out
    assert out == "SUMMARY Done. Generated PDFs for 2 students.\n\n"


def test_set_debug_toggles_level(capsys):
    logger = setup_logging()
    logger.debug("hidden")
    set_debug(True)
    logger.debug("shown")
    set_debug(False)
    logger.debug("hidden again")
    out = capsys.readouterr().out
    assert out == "DEBUG shown\n"


def test_reset_logging_removes_handlers():
    logger = setup_logging()
    assert logger.handlers
    reset_logging()
    assert logging.getLogger(LOGGER_NAME).handlers == []
    assert setup_logging() is not None
