"""HTTP transport for signed requests."""

import logging
from dataclasses import dataclass, field

import requests

from sigv4_http.config import DEFAULT_TIMEOUT
from sigv4_http.errors import TransportFailed
from sigv4_http.request import UnsignedRequest

logger = logging.getLogger(__name__)


@dataclass
class HTTPResponse:
    """Status, headers and body returned by the endpoint."""

    status_code: int
    reason: str = ""
    headers: dict = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @classmethod
    def from_requests(cls, response: requests.Response) -> "HTTPResponse":
        return cls(
            status_code=response.status_code,
            reason=response.reason or "",
            headers=dict(response.headers),
            body=response.content,
        )


def merge_headers(request: UnsignedRequest) -> dict[str, str]:
    """Collapse repeated header names into one comma-joined value.

    The comma join matches how repeated values are canonicalized, so the
    server recomputes the same canonical header line.
    """
    merged: dict[str, str] = {}
    names: dict[str, str] = {}
    for name, value in request.headers:
        lname = name.lower()
        if lname in names:
            merged[names[lname]] = f"{merged[names[lname]]},{value}"
        else:
            names[lname] = name
            merged[name] = value
    return merged


def send_request(
    request: UnsignedRequest,
    verify_ssl: bool = True,
    timeout: float = DEFAULT_TIMEOUT,
) -> HTTPResponse:
    """Send a signed request.

    Args:
        request: Signed request
        verify_ssl: Whether to verify TLS certificates
        timeout: Connect/read timeout in seconds

    Returns:
        HTTPResponse, whatever its status code

    Raises:
        TransportFailed: connection, TLS or timeout failure
    """
    logger.debug("Sending %s %s", request.method, request.url)
    try:
        response = requests.request(
            request.method,
            request.url,
            data=request.body,
            headers=merge_headers(request),
            verify=verify_ssl,
            timeout=timeout,
            allow_redirects=False,
        )
    except requests.RequestException as e:
        raise TransportFailed(f"{request.method} {request.url} failed: {e}") from e

    logger.debug("Received HTTP %s", response.status_code)
    return HTTPResponse.from_requests(response)
