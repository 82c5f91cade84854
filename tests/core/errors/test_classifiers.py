"""Tests for ErrorClassifier response and transport classification."""

import asyncio
import json
from unittest.mock import MagicMock

import aiohttp
import pytest

from core.errors.classifiers import ErrorClassifier, parse_error_envelope
from core.errors.exceptions import ErrorKind


def _envelope(*entries) -> bytes:
    return json.dumps({"errors": list(entries)}).encode()


NOT_FOUND_ENTRY = {
    "id": "ABCDEFG",
    "title": "Not Found",
    "detail": "Not Found",
    "status": "404",
    "code": "40400",
}


class TestParseErrorEnvelope:
    """Tests for error envelope parsing."""

    def test_parses_entries(self):
        envelope = parse_error_envelope(_envelope(NOT_FOUND_ENTRY))
        assert envelope is not None
        assert envelope.errors[0].code == "40400"
        assert envelope.errors[0].detail == "Not Found"

    def test_empty_body(self):
        assert parse_error_envelope(b"") is None

    def test_not_json(self):
        assert parse_error_envelope(b"<html>Bad Gateway</html>") is None

    def test_missing_fields(self):
        assert parse_error_envelope(_envelope({"detail": "only detail"})) is None

    def test_invalid_utf8(self):
        assert parse_error_envelope(b"\xff\xfe\xfa") is None


class TestClassifyResponse:
    """Tests for ErrorClassifier.classify."""

    @pytest.mark.parametrize("status", [200, 201, 202, 204, 299])
    def test_success_returns_none(self, status):
        assert ErrorClassifier.classify(status, b"") is None

    def test_not_found_envelope(self):
        error = ErrorClassifier.classify(404, _envelope(NOT_FOUND_ENTRY))

        assert error.kind == ErrorKind.API_ERROR
        assert error.status == 404
        assert error.message == "Not Found"
        assert error.is_retryable is False
        assert error.context == {"code": "40400", "title": "Not Found"}

    def test_first_entry_wins(self):
        second = dict(NOT_FOUND_ENTRY, detail="Second")
        first = dict(NOT_FOUND_ENTRY, detail="First", status="400", code="40000")

        error = ErrorClassifier.classify(400, _envelope(first, second))

        assert error.message == "First"

    def test_empty_errors_list_falls_back_to_body(self):
        body = _envelope()
        error = ErrorClassifier.classify(400, body)
        assert error.message == body.decode()

    def test_raw_body_fallback(self):
        error = ErrorClassifier.classify(502, b"Bad Gateway")
        assert error.kind == ErrorKind.API_ERROR
        assert error.status == 502
        assert error.message == "Bad Gateway"

    def test_invalid_utf8_body_replaced(self):
        error = ErrorClassifier.classify(500, b"oops \xff")
        assert error.message == "oops \ufffd"

    def test_rate_limited_status_stays_api_error(self):
        error = ErrorClassifier.classify(429, b"Too Many Requests")
        assert error.kind == ErrorKind.API_ERROR
        assert error.is_retryable is False


class TestClassifyTransportException:
    """Tests for aiohttp exception mapping."""

    def test_asyncio_timeout(self):
        error = ErrorClassifier.classify_transport_exception(asyncio.TimeoutError())
        assert error.kind == ErrorKind.TIMEOUT
        assert error.is_retryable is True

    def test_server_timeout(self):
        error = ErrorClassifier.classify_transport_exception(
            aiohttp.ServerTimeoutError("read timeout"), url="https://x/y"
        )
        assert error.kind == ErrorKind.TIMEOUT
        assert "https://x/y" in error.message

    def test_connection_refused(self):
        exc = aiohttp.ClientConnectionError("Connection refused")
        error = ErrorClassifier.classify_transport_exception(exc)

        assert error.kind == ErrorKind.TRANSPORT
        assert error.connect_failed is True
        assert error.is_retryable is True
        assert error.cause is exc

    def test_response_error_carries_status(self):
        exc = aiohttp.ClientResponseError(
            request_info=MagicMock(), history=(), status=503, message="Service Unavailable"
        )
        error = ErrorClassifier.classify_transport_exception(exc)

        assert error.kind == ErrorKind.TRANSPORT
        assert error.status_code == 503
        assert error.is_retryable is True

    def test_response_error_client_status_not_retryable(self):
        exc = aiohttp.ClientResponseError(
            request_info=MagicMock(), history=(), status=400, message="Bad Request"
        )
        assert ErrorClassifier.classify_transport_exception(exc).is_retryable is False

    def test_generic_client_error(self):
        error = ErrorClassifier.classify_transport_exception(
            aiohttp.ClientPayloadError("truncated")
        )
        assert error.kind == ErrorKind.TRANSPORT
        assert error.connect_failed is False
        assert error.is_retryable is False
