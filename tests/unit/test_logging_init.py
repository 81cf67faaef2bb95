from __future__ import annotations

import logging
from io import StringIO

from rtu_recon.logging.init import (
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    reset_logging,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter():
    """Test logger setup with LabeledFormatter."""
    logger = setup_logging()
    assert logger.name == "rtu_recon"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_is_idempotent():
    """Repeated setup adds no handlers."""
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert len(second.handlers) == 1
    assert get_logger() is first


def test_debug_flag_applies_after_setup():
    """debug=True lowers the level on an existing logger."""
    setup_logging()
    logger = setup_logging(debug=True)
    assert logger.level == logging.DEBUG
    assert logger.handlers[0].level == logging.DEBUG


def test_labeled_prefixes():
    """Test level label prefixes."""
    out = StringIO()
    logger = logging.getLogger("test_rtu_recon_labels")
    logger.setLevel(logging.INFO)
    for h in logger.handlers[:]:
        logger.removeHandler(h)
    handler = logging.StreamHandler(out)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    logger.info("info message")
    logger.warning("warning message")
    logger.error("error message")
    logger.log(SUMMARY_LEVEL, "summary message")

    lines = out.getvalue().splitlines()
    assert lines == [
        "INFO info message",
        "WARN warning message",
        "ERROR error message",
        "SUMMARY summary message",
    ]


def test_log_summary_and_child_loggers(capsys):
    """SUMMARY level and child loggers share the handler."""
    setup_logging()
    logging.getLogger("rtu_recon.services.pipeline").warning("child warning")
    log_summary("datasets=1/1 records=0")
    out = capsys.readouterr().out
    assert "WARN child warning" in out
    assert "SUMMARY datasets=1/1 records=0" in out


def test_reset_logging_drops_handlers():
    """Test reset_logging."""
    logger = setup_logging()
    reset_logging()
    assert logger.handlers == []
