"""Tests for logging configuration."""

import io
import json
import logging

from claimguard.core.logging import JSONFormatter, get_logger, setup_logging


class TestJSONFormatter:
    def test_extra_fields_are_top_level(self):
        record = logging.LogRecord(
            "claimguard.security.fallback", logging.ERROR, __file__, 1, "write failed", (), None
        )
        record.event_type = "token_used"
        record.source_ip = "203.0.113.1"

        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "ERROR"
        assert entry["logger"] == "claimguard.security.fallback"
        assert entry["message"] == "write failed"
        assert entry["event_type"] == "token_used"
        assert entry["source_ip"] == "203.0.113.1"


class TestSetupLogging:
    def test_structured_output_to_stream(self):
        stream = io.StringIO()
        root_handlers = logging.root.handlers[:]
        root_level = logging.root.level
        try:
            setup_logging(level="INFO", format_type="structured", stream=stream)
            get_logger("test").info("hello", extra={"participant_id": 42})
        finally:
            logging.root.handlers = root_handlers
            logging.root.setLevel(root_level)

        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert lines[-1]["message"] == "hello"
        assert lines[-1]["participant_id"] == 42

    def test_get_logger_prefix(self):
        assert get_logger("claim_tokens").name == "claimguard.claim_tokens"
