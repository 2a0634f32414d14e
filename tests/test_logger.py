"""Tests for pe2/logger.py - structured JSON logging."""

import json
import logging
import sys

from pe2.logger import JsonFormatter, get_logger


def test_formatter_includes_extra_fields():
    record = logging.LogRecord("pe2", logging.INFO, __file__, 1, "refine.start", None, None)
    record.component = "pe2.refinement"
    record.iterations = 3
    record.error = ValueError("boom")

    data = json.loads(JsonFormatter().format(record))

    assert data["message"] == "refine.start"
    assert data["level"] == "INFO"
    assert data["component"] == "pe2.refinement"
    assert data["iterations"] == 3
    assert data["error"] == "boom"
    assert "timestamp" in data


def test_component_logger_attaches_fields():
    log = get_logger("pe2.test")
    captured = []

    class Capture(logging.Handler):
        def emit(self, record):
            captured.append(record)

    handler = Capture()
    log.logger.addHandler(handler)
    try:
        log.warning("parse.failed", response_chars=12)
    finally:
        log.logger.removeHandler(handler)

    assert captured[0].component == "pe2.test"
    assert captured[0].response_chars == 12


def test_formatter_includes_exception_and_record_time():
    try:
        raise RuntimeError("transport closed")
    except RuntimeError:
        record = logging.LogRecord(
            "pe2", logging.ERROR, __file__, 1, "llm.complete.error", None, sys.exc_info()
        )
    record.created = 0

    data = json.loads(JsonFormatter().format(record))

    assert data["timestamp"].startswith("1970-01-01T00:00:00")
    assert "RuntimeError: transport closed" in data["exception"]
    assert "exc_info" not in data
