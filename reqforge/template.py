"""Request templates.

A :class:`RequestTemplate` holds the configured URL, method, body, headers and
(optionally) a raw request template file. :func:`materialize` substitutes a
value for the placeholder and builds one :class:`MaterializedRequest` from it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from urllib.parse import quote, unquote, urlsplit

import requests
from requests.structures import CaseInsensitiveDict
from urllib3 import HTTPHeaderDict
from urllib3.exceptions import LocationParseError
from urllib3.util import SKIP_HEADER, Url, make_headers, parse_url

from reqforge.errors import (
    RequestConstructionError,
    TemplateFileError,
    TemplateParseError,
    UnsupportedConfigurationError,
    UrlSyntaxError,
    UrlValidationError,
)
from reqforge.headers import TOKEN_RE, HeaderSet, HeaderSnapshot, apply_headers
from reqforge.parser import load_template_file, parse_raw_request

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMES = ("http", "https")

# Characters left as they are in the path and query. Includes "%" so existing
# escapes, and a stray "%", reach the server untouched.
_RAW_SAFE_CHARS = "/%:@!$&'()*+,;=?[]"


@dataclass
class RequestTemplate:
    """Template for an HTTP request. Fields may contain the placeholder."""

    url: str = ""
    method: str = ""
    body: str = ""
    headers: HeaderSet = field(default_factory=HeaderSet)
    template_file: str | None = None
    force_chunked: bool = False


class MaterializedRequest:
    """A concrete request, ready to be handed to a transport.

    ``content_length`` is ``None`` when the length is unknown and the body
    must be sent with chunked encoding. ``host`` overrides the ``Host``
    header sent on the wire; the connection still goes to ``url.host``.
    """

    __slots__ = (
        "method",
        "url",
        "headers",
        "body",
        "content_length",
        "host",
        "username",
        "password",
    )

    def __init__(
        self,
        method: str,
        url: Url,
        headers: HTTPHeaderDict | None = None,
        body: bytes = b"",
        content_length: int | None = 0,
        host: str | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        self.method = method
        self.url = url
        self.headers = headers if headers is not None else HTTPHeaderDict()
        self.body = body
        self.content_length = content_length
        self.host = host
        self.username = username
        self.password = password

    @property
    def chunked(self) -> bool:
        return self.content_length is None

    def prepare(self) -> requests.PreparedRequest:
        """Build a :class:`requests.PreparedRequest` from this request.

        Repeated header values are folded into one comma separated line.
        """
        headers = CaseInsensitiveDict()
        for name, value in self.headers.itermerged():
            headers[name] = value
        if self.host:
            headers["Host"] = self.host

        if self.chunked:
            # requests streams iterators with Transfer-Encoding: chunked
            data = iter([self.body])
        else:
            data = self.body

        # requests only sees scheme and host, it would remove dot segments
        # and rewrite escapes in the path and query
        prepared = requests.Request(
            method=self.method,
            url=self.url._replace(path="/", query=None).url,
            headers=headers,
            data=data,
        ).prepare()
        prepared.url = self.url.url
        return prepared

    def __repr__(self) -> str:
        return (
            f"MaterializedRequest(method={self.method!r}, url={self.url.url!r}, "
            f"headers=<{len(self.headers)} headers>, "
            f"content_length={self.content_length!r})"
        )


def substitute(s: str, placeholder: str, value: str) -> str:
    """Replace every occurrence of ``placeholder`` in ``s`` with ``value``."""
    if not placeholder or placeholder not in s:
        return s
    return s.replace(placeholder, value)


def materialize(template: RequestTemplate, placeholder: str, value: str) -> MaterializedRequest:
    """Replace the placeholder with ``value`` in all fields of the template
    and return a new request.

    The template itself is never modified.

    Raises:
        TemplateFileError: The template file could not be read.
        TemplateParseError: The template file is not a valid HTTP request.
        UrlSyntaxError: The URL is malformed.
        UrlValidationError: The URL has a path or query while a template
            file is used.
        UnsupportedConfigurationError: The header configuration can't be
            expressed (removing ``Host``, several user agents and removal).
        RequestConstructionError: The method is invalid.
    """
    headers = template.headers.snapshot()
    _check_header_config(headers)

    def insert_value(s: str) -> str:
        return substitute(s, placeholder, value)

    target_url = insert_value(template.url)
    method = insert_value(template.method)
    body = insert_value(template.body).encode("utf-8")

    if template.template_file:
        request = _from_template_file(
            template.template_file, placeholder, value, target_url, method, body
        )
    else:
        request = _from_fields(target_url, method, body)

    if template.force_chunked:
        request.content_length = None

    if request.username is not None:
        credentials = f"{request.username}:{request.password or ''}"
        request.headers["Authorization"] = make_headers(basic_auth=credentials)["authorization"]

    # make sure there's a valid path
    if not request.url.path:
        request.url = request.url._replace(path="/")

    apply_headers(headers, request.headers, insert_value)

    # the Host header is carried in the host field, not in the header list
    host_values = request.headers.getlist("Host")
    if host_values:
        request.host = host_values[0]
        del request.headers["Host"]

    # an explicit marker stops the transport from adding its own user agent
    if headers.is_removed("User-Agent"):
        request.headers["User-Agent"] = SKIP_HEADER

    return request


def _check_header_config(headers: HeaderSnapshot) -> None:
    if headers.is_removed("Host"):
        raise UnsupportedConfigurationError("request without Host header is not supported")

    if headers.is_removed("User-Agent"):
        entry = headers.entry("User-Agent")
        if entry is not None and len(entry.values) > 1:
            raise UnsupportedConfigurationError(
                "removing the User-Agent header while setting several "
                "User-Agent values is not supported"
            )


def _from_fields(target_url: str, method: str, body: bytes) -> MaterializedRequest:
    """Create a new request from scratch."""
    logger.debug("building request from fields")
    method = method or "GET"
    if not TOKEN_RE.match(method):
        raise RequestConstructionError(f"invalid method {method!r}")

    url = _parse_target_url(target_url)
    username, password = _split_auth(url.auth)
    path, query = _raw_path_and_query(target_url)

    return MaterializedRequest(
        method=method,
        url=Url(
            scheme=url.scheme,
            host=url.host,
            port=url.port,
            path=path,
            query=query,
        ),
        body=body,
        content_length=len(body),
        username=username,
        password=password,
    )


def _from_template_file(
    path: str,
    placeholder: str,
    value: str,
    target_url: str,
    method: str,
    body: bytes,
) -> MaterializedRequest:
    """Read the HTTP request from a template file and fill in the details."""
    logger.debug("reading HTTP request from %s", path)
    try:
        raw = load_template_file(path)
    except OSError as exc:
        raise TemplateFileError(path, exc) from exc

    if placeholder:
        raw = raw.replace(placeholder.encode("utf-8"), value.encode("utf-8"))

    try:
        parsed = parse_raw_request(raw)
    except ValueError as exc:
        raise TemplateParseError(path, str(exc)) from exc

    url = _parse_target_url(target_url)
    url_path, url_query = _raw_path_and_query(target_url)

    # only scheme, host, port and credentials are taken from the URL
    if url_path not in (None, "/"):
        raise UrlValidationError("URL must not contain a path, it's taken from the template file")
    if url_query:
        raise UrlValidationError(
            "URL must not contain a query string, it's taken from the template file"
        )

    username, password = _split_auth(url.auth)

    request = MaterializedRequest(
        method=parsed.method,
        url=Url(
            scheme=url.scheme,
            host=url.host,
            port=url.port,
            path=_escape(parsed.path),
            query=_escape(parsed.query),
        ),
        headers=parsed.headers,
        body=parsed.body,
        content_length=len(parsed.body),
        host=parsed.host,
        username=username,
        password=password,
    )

    if body:
        request.body = body
        request.content_length = len(body)

    if method:
        if not TOKEN_RE.match(method):
            raise RequestConstructionError(f"invalid method {method!r}")
        request.method = method

    return request


def _parse_target_url(target_url: str) -> Url:
    try:
        url = parse_url(target_url)
    except LocationParseError as exc:
        raise UrlSyntaxError(f"invalid URL {target_url!r}: {exc}") from exc

    if url.scheme not in SUPPORTED_SCHEMES:
        raise UrlSyntaxError(f"unsupported protocol scheme in URL {target_url!r}")
    if not url.host:
        raise UrlSyntaxError(f"no host in URL {target_url!r}")
    return url


def _split_auth(auth: str | None) -> tuple[str | None, str | None]:
    if auth is None:
        return None, None
    username, sep, password = auth.partition(":")
    return unquote(username), (unquote(password) if sep else None)


def _raw_path_and_query(target_url: str) -> tuple[str | None, str | None]:
    """Return path and query exactly as written, only escaping invalid characters.

    No dot segment removal and no escape normalization, so values such as
    ``../`` or ``%2e%2e/`` are sent as given.
    """
    parts = urlsplit(target_url)
    return _escape(parts.path or None), _escape(parts.query or None)


def _escape(component: str | None) -> str | None:
    if component is None:
        return None
    return quote(component, safe=_RAW_SAFE_CHARS)
