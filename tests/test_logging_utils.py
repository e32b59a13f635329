"""
Tests for structured logging utilities.
"""

import json
import logging

from pudim.shared.logging_utils import (
    StructuredFormatter,
    error_context,
    request_id_var,
    set_request_id,
)


def make_record(message="hello", **extra):
    record = logging.LogRecord("pudim.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_json_with_extras():
    request_id_var.set("req-1")
    record = make_record("Cache HIT for stats", operation="get", key="pudim:github:octocat")

    entry = json.loads(StructuredFormatter().format(record))

    assert entry["message"] == "Cache HIT for stats"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "pudim.test"
    assert entry["request_id"] == "req-1"
    assert entry["operation"] == "get"
    assert entry["key"] == "pudim:github:octocat"


def test_formatter_serializes_unknown_types():
    record = make_record(payload=object())
    entry = json.loads(StructuredFormatter().format(record))
    assert "object" in entry["payload"]


def test_request_id_from_api_gateway():
    assert set_request_id({"requestContext": {"requestId": "abc"}}) == "abc"
    assert request_id_var.get() == "abc"


def test_request_id_from_header():
    assert set_request_id({"headers": {"x-request-id": "from-header"}}) == "from-header"


def test_request_id_generated():
    request_id = set_request_id({})
    assert len(request_id) == 36


def test_error_context():
    assert error_context(ConnectionError("refused")) == {"error_name": "ConnectionError", "error": "refused"}
    assert error_context(TimeoutError()) == {"error_name": "TimeoutError", "error": "TimeoutError"}
