"""
Tests for transport error classification and error mapping.
"""

import json
import socket

import httpx
import pytest

from pudim.shared.error_classification import classify_transport_error
from pudim.shared.errors import (
    HTTP_ERROR,
    NOT_FOUND,
    RATE_LIMITED,
    UNKNOWN_ERROR,
    InvalidRequestError,
    UpstreamError,
    UpstreamRateLimitedError,
    UserNotFoundError,
    api_error_for,
    stats_error,
)


class TestClassifyTransportError:
    def test_httpx_timeouts(self):
        assert classify_transport_error(httpx.ReadTimeout("read timed out")) == "timeout"
        assert classify_transport_error(httpx.ConnectTimeout("")) == "timeout"

    def test_builtin_timeout(self):
        assert classify_transport_error(TimeoutError()) == "timeout"

    @pytest.mark.parametrize(
        "message",
        [
            "[Errno -2] Name or service not known",
            "[Errno 8] nodename nor servname provided, or not known",
            "[Errno -3] Temporary failure in name resolution",
            "getaddrinfo ENOTFOUND api.github.com",
        ],
    )
    def test_dns_failures_by_message(self, message):
        assert classify_transport_error(httpx.ConnectError(message)) == "dns_error"

    def test_dns_failure_by_cause(self):
        error = httpx.ConnectError("connect failed")
        error.__cause__ = socket.gaierror(-2, "unresolvable")
        assert classify_transport_error(error) == "dns_error"

    def test_other_transport_errors_are_network_errors(self):
        assert classify_transport_error(httpx.ConnectError("[Errno 111] Connection refused")) == "network_error"
        assert classify_transport_error(httpx.RemoteProtocolError("peer closed")) == "network_error"
        assert classify_transport_error(ConnectionResetError()) == "network_error"

    def test_timeout_in_message(self):
        assert classify_transport_error(RuntimeError("operation timeout")) == "timeout"

    def test_everything_else_is_unknown(self):
        assert classify_transport_error(ValueError("bad json")) == "unknown_error"


class TestStatsError:
    def test_http_error_message_includes_status(self):
        assert stats_error(HTTP_ERROR, status_code=422) == {
            "error": "Failed to fetch user data (HTTP 422)",
            "code": "http_error",
        }

    def test_unknown_error_names_exception_type(self):
        assert stats_error(UNKNOWN_ERROR, error_name="KeyError")["error"] == (
            "Failed to fetch GitHub data. Please try again later. (Error: KeyError)"
        )

    def test_unrecognized_code_becomes_unknown(self):
        assert stats_error("mystery")["code"] == UNKNOWN_ERROR


class TestApiErrors:
    def test_not_found(self):
        error = api_error_for(stats_error(NOT_FOUND))
        assert isinstance(error, UserNotFoundError)
        assert error.status_code == 404

    def test_rate_limited_response(self):
        error = api_error_for(stats_error(RATE_LIMITED))
        assert isinstance(error, UpstreamRateLimitedError)

        response = error.to_response()

        assert response["statusCode"] == 429
        assert response["headers"]["Retry-After"] == "60"
        body = json.loads(response["body"])
        assert body["error"]["details"] == {"retry_after_seconds": 60}

    def test_upstream_error(self):
        error = api_error_for(stats_error("upstream_unavailable"))
        assert isinstance(error, UpstreamError)
        assert error.status_code == 503

    def test_invalid_request_response(self):
        response = InvalidRequestError("Username is required", details={"username": ""}).to_response()

        assert response["statusCode"] == 400
        assert json.loads(response["body"]) == {
            "error": {
                "code": "invalid_request",
                "message": "Username is required",
                "details": {"username": ""},
            }
        }
