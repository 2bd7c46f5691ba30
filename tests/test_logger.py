"""Tests for logging setup."""

import json
import logging

from rich.logging import RichHandler

from domscan.utils.logger import JSONFormatter, configure_logging


def test_json_formatter_includes_structured_extras():
    record = logging.LogRecord("domscan.differ", logging.WARNING, __file__, 1, "found %s", ("xss",), None)
    record.parameter = "q"
    record.severity = "high"

    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "found xss"
    assert data["level"] == "WARNING"
    assert data["parameter"] == "q"
    assert data["severity"] == "high"
    assert "payload" not in data


def test_configure_logging_writes_json_lines(tmp_path):
    log_file = tmp_path / "logs" / "scan.jsonl"
    logger = configure_logging(verbose=False, log_file=log_file)

    logging.getLogger("domscan.scanner").debug("Navigating to %s", "https://site.test/", extra={"url": "https://site.test/"})
    for handler in logger.handlers:
        handler.flush()

    [line] = log_file.read_text().splitlines()
    assert json.loads(line)["url"] == "https://site.test/"
    # console stays at INFO without --verbose
    assert [h.level for h in logger.handlers if isinstance(h, RichHandler)] == [logging.INFO]


def test_reconfiguring_replaces_handlers():
    configure_logging()
    logger = configure_logging(verbose=True)

    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
