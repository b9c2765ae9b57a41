"""
Test suite for log formatting and context tagging.

Run with: pytest test_logging_config.py -v
"""

import json
import logging

from logging_config import DevelopmentFormatter, JSONFormatter, get_logger, username_var


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("game", logging.INFO, __file__, 1, "roy played", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:

    def test_json_includes_context_var(self):
        token = username_var.set("roy")
        try:
            data = json.loads(JSONFormatter().format(make_record()))
        finally:
            username_var.reset(token)
        assert data["message"] == "roy played"
        assert data["username"] == "roy"
        assert "connection_id" not in data

    def test_json_uses_record_extra(self):
        data = json.loads(JSONFormatter().format(make_record(connection_id="abc")))
        assert data["connection_id"] == "abc"

    def test_development_tags_short_connection_id(self):
        line = DevelopmentFormatter().format(make_record(connection_id="0123456789", username="gaal"))
        assert "[conn=01234567, user=gaal]" in line
        assert line.endswith("- roy played")


class TestContextLogger:

    def test_with_context_merges_extra(self):
        logger = get_logger("test").with_context(connection_id="abc").with_context(username="lomba")
        assert logger.extra == {"connection_id": "abc", "username": "lomba"}
        msg, kwargs = logger.process("hi", {"extra": {"seat": 1}})
        assert kwargs["extra"] == {"connection_id": "abc", "username": "lomba", "seat": 1}
