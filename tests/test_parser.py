"""Tests for the raw HTTP request template parser."""

import pytest

from reqforge.parser import (
    ParsedRequest,
    decode_chunked,
    load_template_file,
    parse_raw_request,
)


class TestParseRawRequest:
    """Tests for parse_raw_request function."""

    def test_basic_get_request(self):
        raw = (
            b"GET /api/v1/users HTTP/1.1\r\n"
            b"Host: example.com\r\n"
            b"Authorization: Bearer token_123\r\n"
            b"Accept: application/json\r\n"
            b"\r\n"
        )
        result = parse_raw_request(raw)
        assert result.method == "GET"
        assert result.path == "/api/v1/users"
        assert result.query is None
        assert result.headers["Authorization"] == "Bearer token_123"
        assert result.headers["Accept"] == "application/json"
        assert result.body == b""

    def test_host_header_moved_to_host(self):
        raw = b"GET / HTTP/1.1\r\nHost: example.com\r\n\r\n"
        result = parse_raw_request(raw)
        assert result.host == "example.com"
        assert "Host" not in result.headers

    def test_missing_host(self):
        raw = b"GET / HTTP/1.1\r\nAccept: */*\r\n\r\n"
        assert parse_raw_request(raw).host is None

    def test_post_request_with_json_body(self):
        raw = (
            b"POST /api/v1/users/update HTTP/1.1\r\n"
            b"Host: example.com\r\n"
            b"Content-Type: application/json\r\n"
            b"\r\n"
            b'{"name": "John", "role": "admin"}'
        )
        result = parse_raw_request(raw)
        assert result.method == "POST"
        assert result.body == b'{"name": "John", "role": "admin"}'

    def test_query_string(self):
        raw = b"GET /search?q=test&page=2 HTTP/1.1\r\n\r\n"
        result = parse_raw_request(raw)
        assert result.path == "/search"
        assert result.query == "q=test&page=2"

    def test_absolute_form_target(self):
        raw = (
            b"GET http://other.example:8080/p?x=1 HTTP/1.1\r\n"
            b"Host: ignored.example\r\n"
            b"\r\n"
        )
        result = parse_raw_request(raw)
        assert result.path == "/p"
        assert result.query == "x=1"
        assert result.host == "other.example:8080"

    def test_absolute_form_path_kept_verbatim(self):
        raw = b"GET http://other.example/a/../b%2e%2e/?f=..%2f HTTP/1.1\r\n\r\n"
        result = parse_raw_request(raw)
        assert result.path == "/a/../b%2e%2e/"
        assert result.query == "f=..%2f"

    def test_unix_line_endings(self):
        raw = (
            b"GET /api/data HTTP/1.1\n"
            b"Host: example.com\n"
            b"Authorization: Bearer abc\n"
            b"\n"
            b"body"
        )
        result = parse_raw_request(raw)
        assert result.path == "/api/data"
        assert result.headers["Authorization"] == "Bearer abc"
        assert result.body == b"body"

    def test_no_blank_line_no_body(self):
        raw = (
            b"GET /api/v1/info HTTP/1.1\r\n"
            b"Host: example.com\r\n"
            b"Authorization: Bearer token\r\n"
        )
        result = parse_raw_request(raw)
        assert result.path == "/api/v1/info"
        assert result.body == b""

    def test_body_bytes_kept_verbatim(self):
        body = b"line1\r\n\r\nline2\n\x00\xff"
        raw = b"POST /upload HTTP/1.1\r\nHost: x\r\n\r\n" + body
        assert parse_raw_request(raw).body == body

    def test_body_beyond_content_length_kept(self):
        raw = (
            b"POST /api HTTP/1.1\r\n"
            b"Host: example.com\r\n"
            b"Content-Length: 3\r\n"
            b"\r\n"
            b"abcdef"
        )
        result = parse_raw_request(raw)
        assert result.body == b"abcdef"
        assert "Content-Length" not in result.headers

    def test_chunked_body_decoded(self):
        raw = (
            b"POST /api HTTP/1.1\r\n"
            b"Host: example.com\r\n"
            b"Transfer-Encoding: chunked\r\n"
            b"\r\n"
            b"4\r\nWiki\r\n5\r\npedia\r\n0\r\n\r\n"
        )
        result = parse_raw_request(raw)
        assert result.body == b"Wikipedia"
        assert "Transfer-Encoding" not in result.headers

    def test_repeated_headers_kept(self):
        raw = b"GET / HTTP/1.1\r\nX-Foo: a\r\nX-Foo: b\r\n\r\n"
        result = parse_raw_request(raw)
        assert result.headers.getlist("X-Foo") == ["a", "b"]

    def test_header_with_colon_in_value(self):
        raw = (
            b"GET /api/test HTTP/1.1\r\n"
            b"Host: example.com\r\n"
            b"Cookie: session=abc:def:ghi\r\n"
            b"\r\n"
        )
        result = parse_raw_request(raw)
        assert result.headers["Cookie"] == "session=abc:def:ghi"

    def test_malformed_request_line_raises(self):
        raw = b"INVALID\r\nHost: example.com\r\n\r\n"
        with pytest.raises(ValueError, match="malformed HTTP request"):
            parse_raw_request(raw)

    def test_empty_request_line_raises(self):
        raw = b"\r\nHost: example.com\r\n\r\n"
        with pytest.raises(ValueError, match="malformed HTTP request"):
            parse_raw_request(raw)

    def test_empty_input_raises(self):
        with pytest.raises(ValueError):
            parse_raw_request(b"")

    def test_invalid_version_raises(self):
        with pytest.raises(ValueError, match="malformed HTTP version"):
            parse_raw_request(b"GET / FOO/1.1\r\n\r\n")

    def test_invalid_method_raises(self):
        with pytest.raises(ValueError, match="invalid method"):
            parse_raw_request(b"G(T / HTTP/1.1\r\n\r\n")

    def test_invalid_target_raises(self):
        with pytest.raises(ValueError, match="invalid request target"):
            parse_raw_request(b"GET relative/path HTTP/1.1\r\n\r\n")

    def test_header_without_colon_raises(self):
        raw = b"GET / HTTP/1.1\r\nNotAHeader\r\n\r\n"
        with pytest.raises(ValueError, match="malformed MIME header line"):
            parse_raw_request(raw)

    def test_parsed_request_repr(self):
        req = parse_raw_request(b"GET /test HTTP/1.1\r\nHost: x\r\n\r\n")
        r = repr(req)
        assert "GET" in r
        assert "/test" in r
        assert "<none>" in r

    def test_parsed_request_repr_with_body(self):
        req = parse_raw_request(b"POST /test HTTP/1.1\r\n\r\ndata")
        assert isinstance(req, ParsedRequest)
        assert "<present>" in repr(req)


class TestDecodeChunked:
    """Tests for chunked body decoding."""

    def test_bytes_after_last_chunk_appended(self):
        data = b"3\r\nabc\r\n0\r\n\r\nextra"
        assert decode_chunked(data) == b"abcextra"

    def test_trailers_skipped(self):
        data = b"3\r\nabc\r\n0\r\nX-Trailer: 1\r\n\r\nrest"
        assert decode_chunked(data) == b"abcrest"

    def test_truncated_chunk(self):
        assert decode_chunked(b"a\r\nshort") == b"short"

    def test_chunk_extension_ignored(self):
        assert decode_chunked(b"3;name=value\r\nabc\r\n0\r\n\r\n") == b"abc"

    def test_unix_line_endings(self):
        assert decode_chunked(b"3\nabc\n0\n\n") == b"abc"

    def test_missing_size_line_appended(self):
        assert decode_chunked(b"3\r\nabc\r\ntail") == b"abctail"

    def test_invalid_size_raises(self):
        with pytest.raises(ValueError, match="invalid chunk size"):
            decode_chunked(b"zz\r\nabc\r\n")

    def test_empty(self):
        assert decode_chunked(b"") == b""


class TestLoadTemplateFile:
    """Tests for load_template_file function."""

    def test_load_valid_file(self, tmp_path):
        f = tmp_path / "req.txt"
        f.write_bytes(b"GET /test HTTP/1.1\r\nHost: x\r\n\r\n")
        content = load_template_file(str(f))
        assert content.startswith(b"GET /test")

    def test_load_nonexistent_file(self):
        with pytest.raises(FileNotFoundError):
            load_template_file("/nonexistent/path/file.txt")
