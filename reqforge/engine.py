"""Transport hand-off.

Sends a materialized request with requests, and renders requests and
responses for the terminal.
"""

from __future__ import annotations

import logging

import requests
from urllib3.util import SKIP_HEADER

from reqforge.template import MaterializedRequest

logger = logging.getLogger(__name__)

# Maximum number of body characters shown in reports
BODY_PREVIEW_LENGTH = 500


def send_request(
    request: MaterializedRequest,
    proxy: str | None = None,
    timeout: float = 30,
    verify: bool = True,
    session: requests.Session | None = None,
) -> requests.Response:
    """Send ``request`` and return the response. Redirects are not followed.

    Args:
        request: The request to send.
        proxy: Optional proxy URL used for both http and https.
        timeout: Timeout in seconds.
        verify: Whether to verify TLS certificates.
        session: Session to send with; a new one is used if not given.

    Raises:
        requests.RequestException: If the request could not be sent.
    """
    proxies = None
    if proxy:
        proxies = {"http": proxy, "https": proxy}

    prepared = request.prepare()
    logger.debug("sending %s %s", prepared.method, prepared.url)

    own_session = session is None
    if own_session:
        session = requests.Session()

    try:
        return session.send(
            prepared,
            proxies=proxies,
            timeout=timeout,
            verify=verify,
            allow_redirects=False,
        )
    finally:
        if own_session:
            session.close()


def format_request(request: MaterializedRequest) -> str:
    """Render ``request`` roughly as it goes out on the wire."""
    target = request.url.request_uri
    lines = [f"{request.method} {target} HTTP/1.1"]
    lines.append(f"Host: {request.host or request.url.netloc}")

    for name, value in request.headers.items():
        if value == SKIP_HEADER:
            continue
        lines.append(f"{name}: {value}")

    if request.chunked:
        lines.append("Transfer-Encoding: chunked")
    elif request.content_length:
        lines.append(f"Content-Length: {request.content_length}")

    text = "\r\n".join(lines) + "\r\n\r\n"
    if request.body:
        text += request.body.decode("utf-8", errors="replace")
    return text


def print_report(response: requests.Response) -> None:
    """Print a short summary of ``response`` to stdout."""
    banner = "=" * 60
    print(f"\n{banner}")
    print(f"  {response.request.method} {response.url}")
    print(banner)
    print(f"\n  Status Code : {response.status_code} {response.reason}")
    print(f"  Length      : {len(response.content)}")

    print("\n  Response Headers:")
    for key, value in response.headers.items():
        print(f"    {key}: {value}")

    print(f"\n  Response Body (first {BODY_PREVIEW_LENGTH} chars):")
    print(f"    {response.text[:BODY_PREVIEW_LENGTH]}")
    print(f"\n{banner}\n")
