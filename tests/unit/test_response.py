"""
Unit tests for HTTP responses and status codes.
"""

import json
from datetime import datetime, timezone

import pytest

from queryserver.http.response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    format_http_date,
    internal_error,
    not_modified,
    ok_json,
    plain_text,
)
from queryserver.http.status_codes import HTTPStatus


def split_response(data: bytes):
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = dict(line.split(": ", 1) for line in lines[1:])
    return lines[0], headers, body


class TestHTTPStatus:
    """Tests for HTTPStatus."""

    def test_compares_to_int(self):
        assert HTTPStatus.NOT_FOUND == 404
        assert HTTPStatus(500) is HTTPStatus.INTERNAL_SERVER_ERROR

    def test_phrases(self):
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"

    def test_every_member_has_a_phrase(self):
        for status in HTTPStatus:
            assert status.phrase != "Unknown"

    def test_categories(self):
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.NOT_FOUND.is_client_error
        assert HTTPStatus.SERVICE_UNAVAILABLE.is_server_error
        assert HTTPStatus.BAD_REQUEST.is_error
        assert not HTTPStatus.NOT_MODIFIED.is_error

    def test_not_modified_has_no_body(self):
        assert not HTTPStatus.NOT_MODIFIED.allows_body
        assert HTTPStatus.OK.allows_body


class TestResponseBuilder:
    """Tests for ResponseBuilder."""

    def test_defaults(self):
        response = ResponseBuilder().build()

        assert response.status == HTTPStatus.OK
        assert response.body == b""

    def test_json_is_compact_utf8(self):
        response = ResponseBuilder().json({"beast": "cat"}).build()

        assert response.body == b'{"beast":"cat"}'
        assert response.content_type == "application/json; charset=utf-8"

    def test_json_keeps_non_ascii(self):
        response = ResponseBuilder().json({"beast": "Löwe"}).build()

        assert response.body == '{"beast":"Löwe"}'.encode("utf-8")

    def test_text(self):
        response = ResponseBuilder().status(HTTPStatus.NOT_FOUND).text("Cannot find /x").build()

        assert response.status == 404
        assert response.body == b"Cannot find /x"
        assert response.content_type == "text/plain; charset=utf-8"

    def test_html(self):
        response = ResponseBuilder().html("<h1>hi</h1>").build()
        assert response.content_type == "text/html; charset=utf-8"

    def test_file_guesses_content_type(self):
        response = ResponseBuilder().file(b"body {}", "style.css").build()

        assert response.content_type == "text/css; charset=utf-8"
        assert response.body == b"body {}"

    def test_status_accepts_int(self):
        assert ResponseBuilder().status(404).build().status is HTTPStatus.NOT_FOUND

    def test_build_copies_headers(self):
        builder = ResponseBuilder().header("X-A", "1")
        first = builder.build()
        first.headers["X-B"] = "2"

        assert "X-B" not in builder.build().headers


class TestSerialization:
    """Tests for HTTPResponse.to_bytes()."""

    def test_status_line_and_default_headers(self):
        status, headers, body = split_response(ok_json({"beast": "cat"}).to_bytes("test/1.0"))

        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Length"] == str(len(body))
        assert headers["Server"] == "test/1.0"
        assert headers["Date"].endswith(" GMT")
        assert json.loads(body) == {"beast": "cat"}

    def test_head_keeps_content_length_drops_body(self):
        response = plain_text(HTTPStatus.NOT_FOUND, "Cannot find /missing")
        status, headers, body = split_response(response.to_bytes(include_body=False))

        assert status == "HTTP/1.1 404 Not Found"
        assert headers["Content-Length"] == str(len(b"Cannot find /missing"))
        assert body == b""

    def test_not_modified_has_no_body_or_length(self):
        status, headers, body = split_response(not_modified('"1-2"').to_bytes())

        assert status == "HTTP/1.1 304 Not Modified"
        assert headers["ETag"] == '"1-2"'
        assert "Content-Length" not in headers
        assert body == b""

    def test_explicit_headers_win(self):
        response = HTTPResponse(headers={"Server": "custom"}, body=b"x")
        _, headers, _ = split_response(response.to_bytes("ignored"))

        assert headers["Server"] == "custom"


class TestHelpers:
    """Tests for the response helper functions."""

    def test_internal_error_is_generic(self):
        response = internal_error()

        assert response.status == 500
        assert response.body == b"Internal Server Error"
        assert response.content_type.startswith("text/plain")

    def test_error_response_closes_connection(self):
        response = error_response(HTTPStatus.BAD_REQUEST, "Invalid request line")

        assert response.status == 400
        assert response.headers["Connection"] == "close"

    def test_format_http_date(self):
        dt = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Thu, 01 Jan 2026 12:00:00 GMT"

    @pytest.mark.parametrize("filename,expected", [
        ("index.html", "text/html; charset=utf-8"),
        ("app.js", "text/javascript; charset=utf-8"),
        ("logo.png", "image/png"),
        ("blob.unknown", "application/octet-stream"),
    ])
    def test_file_content_types(self, filename: str, expected: str):
        assert ResponseBuilder().file(b"", filename).build().content_type == expected
