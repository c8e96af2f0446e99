"""Tests for JSON structured logging."""

import json
import logging
import sys

from codeweight.observability import JsonFormatter, setup_logging


def _record(msg="hello %s", args=("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord("codeweight.test", logging.INFO, __file__, 1, msg, args, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


class TestJsonFormatter:
    def test_basic_fields(self):
        data = json.loads(JsonFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "codeweight.test"
        assert data["message"] == "hello world"
        assert "timestamp" in data

    def test_extra_keys_copied(self):
        data = json.loads(JsonFormatter().format(_record(path_id="p1", query="query_blast_radius", duration_ms=3.5)))
        assert data["path_id"] == "p1"
        assert data["query"] == "query_blast_radius"
        assert data["duration_ms"] == 3.5

    def test_unknown_extras_ignored(self):
        data = json.loads(JsonFormatter().format(_record(secret="x")))
        assert "secret" not in data

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("codeweight.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        data = json.loads(JsonFormatter().format(record))
        assert "ValueError: boom" in data["exception"]


class TestSetupLogging:
    def test_installs_json_handler(self):
        setup_logging("debug")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("neo4j").level == logging.WARNING
