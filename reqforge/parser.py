"""Raw HTTP request template parsing.

Converts a raw HTTP request (e.g. copied out of a proxy history) into
structured components. The head ends at the first blank line and every byte
after it belongs to the body.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from urllib3 import HTTPHeaderDict
from urllib3.exceptions import LocationParseError
from urllib3.util import parse_url

from reqforge.headers import TOKEN_RE

_HEAD_END_RE = re.compile(rb"\r?\n\r?\n")
_VERSION_RE = re.compile(r"^HTTP/\d\.\d$")

# Framing is recomputed from the final body, never taken from the template
FRAMING_HEADERS = ("Content-Length", "Transfer-Encoding")


class ParsedRequest:
    """Container for a parsed raw HTTP request."""

    __slots__ = ("method", "path", "query", "headers", "host", "body")

    def __init__(
        self,
        method: str,
        path: str,
        query: str | None,
        headers: HTTPHeaderDict,
        host: str | None,
        body: bytes,
    ) -> None:
        self.method = method
        self.path = path
        self.query = query
        self.headers = headers
        self.host = host
        self.body = body

    def __repr__(self) -> str:
        return (
            f"ParsedRequest(method={self.method!r}, path={self.path!r}, "
            f"headers=<{len(self.headers)} headers>, "
            f"body={'<present>' if self.body else '<none>'})"
        )


def parse_raw_request(raw: bytes) -> ParsedRequest:
    """Parse a raw HTTP/1.x request into its components.

    Handles:
      - origin-form (``/path?q``) and absolute-form request targets
      - \\r\\n and \\n line endings in the head
      - repeated header names (all values are kept)
      - chunked bodies, which are decoded

    The ``Host`` header is moved to ``ParsedRequest.host``. ``Content-Length``
    and ``Transfer-Encoding`` are dropped from the headers.

    Args:
        raw: The raw request bytes.

    Returns:
        A ParsedRequest.

    Raises:
        ValueError: If the request line or a header line is malformed.
    """
    match = _HEAD_END_RE.search(raw)
    if match is None:
        head_bytes, body = raw, b""
    else:
        head_bytes, body = raw[: match.start()], raw[match.end() :]

    lines = _decode_head(head_bytes).replace("\r\n", "\n").split("\n")

    # --- Parse request line ---
    request_line = lines[0]
    parts = request_line.split(" ")
    if len(parts) != 3:
        raise ValueError(f"malformed HTTP request {request_line!r}")

    method, target, version = parts
    if not TOKEN_RE.match(method):
        raise ValueError(f"invalid method {method!r}")
    if not _VERSION_RE.match(version):
        raise ValueError(f"malformed HTTP version {version!r}")

    path, query, target_host = _split_target(target)

    # --- Parse headers ---
    headers = HTTPHeaderDict()
    for line in lines[1:]:
        if not line:
            continue
        colon_idx = line.find(":")
        if colon_idx == -1:
            raise ValueError(f"malformed MIME header line: {line!r}")
        key = line[:colon_idx]
        if not TOKEN_RE.match(key):
            raise ValueError(f"malformed MIME header line: {line!r}")
        headers.add(key, line[colon_idx + 1 :].strip(" \t"))

    host = target_host
    if "Host" in headers:
        if host is None:
            host = headers.getlist("Host")[0]
        del headers["Host"]

    transfer_encoding = headers.get("Transfer-Encoding", "")
    for name in FRAMING_HEADERS:
        headers.discard(name)

    if transfer_encoding.lower().rstrip().endswith("chunked"):
        body = decode_chunked(body)

    return ParsedRequest(
        method=method,
        path=path,
        query=query,
        headers=headers,
        host=host,
        body=body,
    )


def decode_chunked(data: bytes) -> bytes:
    """Decode a chunked body.

    Bytes following the terminating chunk, or a chunk that runs past the end
    of the data, are appended to the decoded body as they are.

    Raises:
        ValueError: If a chunk size line is not a hex number.
    """
    out = bytearray()
    pos = 0
    while pos < len(data):
        eol = data.find(b"\n", pos)
        if eol == -1:
            break

        size_field = data[pos:eol].rstrip(b"\r").split(b";", 1)[0].strip()
        try:
            size = int(size_field, 16)
        except ValueError:
            raise ValueError(f"invalid chunk size {size_field!r}") from None

        start = eol + 1
        if size == 0:
            # skip the (optional) trailer section
            if data.startswith(b"\r\n", start):
                pos = start + 2
            elif data.startswith(b"\n", start):
                pos = start + 1
            else:
                trailer_end = _HEAD_END_RE.search(data, start)
                pos = trailer_end.end() if trailer_end else len(data)
            break

        chunk = data[start : start + size]
        out += chunk
        pos = start + len(chunk)
        if len(chunk) < size:
            break

        if data.startswith(b"\r\n", pos):
            pos += 2
        elif data.startswith(b"\n", pos):
            pos += 1

    out += data[pos:]
    return bytes(out)


def load_template_file(filepath: str) -> bytes:
    """Read and return the raw bytes of a request template file.

    Raises:
        OSError: If the file cannot be read.
    """
    with open(filepath, "rb") as fh:
        return fh.read()


def _decode_head(head: bytes) -> str:
    try:
        return head.decode("utf-8")
    except UnicodeDecodeError:
        return head.decode("iso-8859-1")


def _split_target(target: str) -> tuple[str, str | None, str | None]:
    """Split a request target into (path, query, host)."""
    if target.startswith("/") or target == "*":
        path, sep, query = target.partition("?")
        return path, (query if sep else None), None

    if "://" in target:
        try:
            url = parse_url(target)
        except LocationParseError as exc:
            raise ValueError(f"invalid request target {target!r}: {exc}") from None
        # path and query as written, parse_url would normalize them
        raw = urlsplit(target)
        return raw.path or "/", (raw.query if "?" in target else None), url.netloc

    raise ValueError(f"invalid request target {target!r}")
