"""Tests for error normalization and the error taxonomy.

Covers the four raw error shapes, status precedence, httpx exceptions
routed through the transport, and the retryability rule.
"""

from __future__ import annotations

import httpx
import pytest

from geminifs.errors import (
    ApiError,
    ErrorKind,
    ProcessingFailedError,
    ProcessingTimeoutError,
    ProtocolError,
    classify_status,
    is_retryable,
    normalize_error,
)


class _RawError(Exception):
    """Ad-hoc error object with arbitrary attributes, like an SDK would raise."""

    def __init__(self, **attrs):
        super().__init__(attrs.get("message", ""))
        for key, value in attrs.items():
            setattr(self, key, value)


# ======================================================================
# Raw error shapes
# ======================================================================


class TestNormalizeShapes:
    """normalize_error over the four known shapes."""

    def test_structured_response(self):
        """(a) response.status + response.data.error.message."""
        raw = {"response": {"status": 404, "data": {"error": {"message": "File not found"}}}}
        err = normalize_error(raw)
        assert err.kind is ErrorKind.NOT_FOUND
        assert err.message == "File not found"
        assert err.http_status == 404

    def test_cause_body_json_string(self):
        """(b) cause.response.body holding a JSON string."""
        raw = _RawError(
            cause={"response": {"body": '{"error": {"message": "Quota exceeded"}}'}},
            httpCode=429,
        )
        err = normalize_error(raw)
        assert err.kind is ErrorKind.RATE_LIMITED
        assert err.message == "Quota exceeded"

    def test_cause_body_object(self):
        raw = {"cause": {"response": {"body": {"error": {"message": "Bad key"}}}}, "httpCode": 403}
        err = normalize_error(raw)
        assert err.kind is ErrorKind.FORBIDDEN
        assert err.message == "Bad key"

    def test_flat_description(self):
        """(c) flat description; string status codes are accepted."""
        err = normalize_error({"description": "Invalid argument", "httpCode": "400"})
        assert err.kind is ErrorKind.BAD_REQUEST
        assert err.message == "Invalid argument"
        assert err.http_status == 400

    def test_bare_message(self):
        """(d) bare message and no status."""
        err = normalize_error(_RawError(message="socket hang up"))
        assert err.kind is ErrorKind.UNKNOWN
        assert err.message == "socket hang up"
        assert err.http_status is None

    def test_rate_limited_with_unparseable_body(self):
        """httpCode=429 with a non-JSON body keeps the body text verbatim."""
        raw = {"cause": {"response": {"body": "<html>Too Many Requests</html>"}}, "httpCode": 429}
        err = normalize_error(raw)
        assert err.kind is ErrorKind.RATE_LIMITED
        assert err.message == "<html>Too Many Requests</html>"

    def test_rate_limited_with_no_body_at_all(self):
        err = normalize_error({"httpCode": 429})
        assert err.kind is ErrorKind.RATE_LIMITED
        assert err.message == "Unknown API error"


class TestPrecedence:
    """First strategy to yield a message wins; httpCode beats response.status."""

    def test_cause_body_beats_description(self):
        raw = {
            "cause": {"response": {"body": '{"error": {"message": "from body"}}'}},
            "description": "from description",
            "message": "from message",
        }
        assert normalize_error(raw).message == "from body"

    def test_description_beats_response_data(self):
        raw = {
            "description": "from description",
            "response": {"status": 400, "data": {"error": {"message": "from data"}}},
        }
        assert normalize_error(raw).message == "from description"

    def test_http_code_beats_response_status(self):
        raw = {"httpCode": 429, "response": {"status": 500}}
        assert normalize_error(raw).http_status == 429

    @pytest.mark.parametrize(
        "status,kind",
        [
            (400, ErrorKind.BAD_REQUEST),
            (403, ErrorKind.FORBIDDEN),
            (404, ErrorKind.NOT_FOUND),
            (429, ErrorKind.RATE_LIMITED),
            (500, ErrorKind.UNKNOWN),
            (401, ErrorKind.UNKNOWN),
            (None, ErrorKind.UNKNOWN),
        ],
    )
    def test_classify_status(self, status, kind):
        assert classify_status(status) is kind


# ======================================================================
# httpx exceptions
# ======================================================================


class TestHttpxErrors:
    """Errors raised by httpx carry their status and body through."""

    def test_http_status_error(self):
        request = httpx.Request("GET", "https://example.test/v1beta/files/x")
        response = httpx.Response(
            404, json={"error": {"code": 404, "message": "Requested entity was not found."}},
            request=request,
        )
        exc = httpx.HTTPStatusError("404", request=request, response=response)
        err = normalize_error(exc)
        assert err.kind is ErrorKind.NOT_FOUND
        assert err.message == "Requested entity was not found."
        assert err.http_status == 404

    def test_http_status_error_plain_text_body(self):
        request = httpx.Request("POST", "https://example.test/upload")
        response = httpx.Response(429, text="slow down", request=request)
        exc = httpx.HTTPStatusError("429", request=request, response=response)
        err = normalize_error(exc)
        assert err.kind is ErrorKind.RATE_LIMITED
        assert err.message == "slow down"

    def test_transport_error(self):
        err = normalize_error(httpx.ConnectError("connection refused"))
        assert err.kind is ErrorKind.UNKNOWN
        assert err.message == "connection refused"
        assert err.http_status is None

    async def test_transport_raises_api_error_on_status(self, handler, transport):
        handler.add_json({"error": {"message": "API key not valid"}}, status_code=403)
        with pytest.raises(ApiError) as exc_info:
            await transport.request_json("GET", transport.api_path("files/abc"))
        assert exc_info.value.kind is ErrorKind.FORBIDDEN
        assert str(exc_info.value) == "Forbidden: API key not valid"
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    async def test_transport_raises_api_error_on_connect_failure(self, handler, transport):
        handler.add(httpx.ConnectError("network unreachable"))
        with pytest.raises(ApiError) as exc_info:
            await transport.request("GET", transport.api_path("files/abc"))
        assert exc_info.value.kind is ErrorKind.UNKNOWN
        assert "network unreachable" in exc_info.value.message

    async def test_empty_body_error_never_contains_api_key(self, handler, transport):
        handler.add(httpx.Response(500, content=b""))
        with pytest.raises(ApiError) as exc_info:
            await transport.request_json("GET", transport.api_path("files/abc"))
        err = exc_info.value
        assert err.message == "HTTP 500 Internal Server Error"
        assert "test-key" not in str(err)
        assert "test-key" not in repr(err)
        assert "test-key" not in str(err.to_dict())
        assert handler.requests[0].headers["x-goog-api-key"] == "test-key"

    def test_status_line_used_when_body_empty(self):
        request = httpx.Request("GET", "https://example.test/v1beta/files/x?key=secret")
        response = httpx.Response(503, content=b"", request=request)
        exc = httpx.HTTPStatusError("503 for url ...?key=secret", request=request, response=response)
        err = normalize_error(exc)
        assert err.message == "HTTP 503 Service Unavailable"
        assert "secret" not in str(err)

    async def test_non_object_body_is_protocol_error(self, handler, transport):
        handler.add_json(["not", "an", "object"])
        with pytest.raises(ProtocolError):
            await transport.request_json("GET", transport.api_path("files/abc"))


# ======================================================================
# Taxonomy
# ======================================================================


class TestTaxonomy:
    def test_label_prefix(self):
        err = ApiError(ErrorKind.RATE_LIMITED, "Quota exceeded", 429)
        assert str(err) == "Rate limited: Quota exceeded"
        assert err.label == "Rate limited"

    def test_to_dict(self):
        err = ApiError(ErrorKind.NOT_FOUND, "gone", 404)
        assert err.to_dict() == {
            "error": "Not found: gone",
            "kind": "not_found",
            "message": "gone",
            "httpStatus": 404,
        }

    def test_api_error_passes_through(self):
        err = ProtocolError("no session url")
        assert normalize_error(err) is err

    def test_processing_failed_message(self):
        err = ProcessingFailedError("files/abc", {"code": 3, "message": "Unsupported format"})
        assert err.kind is ErrorKind.PROCESSING_FAILED
        assert str(err) == "Processing failed: files/abc. Error: Unsupported format"

    def test_processing_failed_without_detail(self):
        assert ProcessingFailedError("files/abc").message == "files/abc. Error: Unknown error"

    def test_processing_timeout_message(self):
        err = ProcessingTimeoutError("files/abc", 10)
        assert err.message == "files/abc. Maximum wait time of 10 seconds exceeded."

    @pytest.mark.parametrize(
        "kind,expected",
        [
            (ErrorKind.RATE_LIMITED, True),
            (ErrorKind.UNKNOWN, True),
            (ErrorKind.FORBIDDEN, False),
            (ErrorKind.BAD_REQUEST, False),
            (ErrorKind.PROCESSING_FAILED, False),
        ],
    )
    def test_is_retryable(self, kind, expected):
        assert is_retryable(ApiError(kind, "x")) is expected

    def test_plain_exceptions_are_not_retryable(self):
        assert is_retryable(RuntimeError("x")) is False
