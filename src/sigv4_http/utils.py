"""Hashing and verbose trace helpers."""

import hashlib
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from sigv4_http.request import UnsignedRequest
    from sigv4_http.transport import HTTPResponse


def calculate_content_sha256(content: Union[str, bytes]) -> str:
    """Calculate x-amz-content-sha256 header value (hex encoded).

    Args:
        content: Request body as string or bytes

    Returns:
        Hex-encoded SHA256 hash
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def format_request_lines(request: "UnsignedRequest") -> list[str]:
    """Render a request as curl-style ``> `` trace lines.

    Ends with a bare ``>`` terminator line.
    """
    target = request.path or "/"
    if request.query:
        target = f"{target}?{request.query}"

    lines = [f"> {request.method} {target} HTTP/1.1"]
    if not request.has_header("host"):
        lines.append(f"> Host: {request.host}")
    for name, value in request.headers:
        lines.append(f"> {name}: {value}")
    lines.append(">")
    return lines


def format_response_lines(response: "HTTPResponse") -> list[str]:
    """Render a response status line and headers as ``< `` trace lines."""
    status = f"< HTTP/1.1 {response.status_code}"
    if response.reason:
        status = f"{status} {response.reason}"

    lines = [status]
    for name, value in response.headers.items():
        lines.append(f"< {name}: {value}")
    lines.append("<")
    return lines
