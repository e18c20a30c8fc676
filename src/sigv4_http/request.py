"""Unsigned request construction from command-line style input."""

import re
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Union
from urllib.parse import SplitResult, urlsplit

from sigv4_http.errors import InvalidHeaderFormat, RequestConstructionFailed

Header = tuple[str, str]

# RFC 7230 token characters
_TOKEN_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
# Header values are sent as-is, so only visible ASCII, space and tab
_VALUE_RE = re.compile(r"[\t\x20-\x7e]*")

DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class UnsignedRequest:
    """An HTTP request ready to be canonicalized.

    Headers keep their insertion order and original spelling. Names compare
    case-insensitively and a name may repeat to carry multiple values.
    """

    method: str
    url: str
    headers: tuple[Header, ...] = ()
    body: bytes = b""

    @property
    def parts(self) -> SplitResult:
        return urlsplit(self.url)

    @property
    def path(self) -> str:
        return self.parts.path

    @property
    def query(self) -> str:
        return self.parts.query

    @property
    def host(self) -> str:
        """Host header value derived from the URL, default ports dropped."""
        parts = self.parts
        host = parts.hostname or ""
        if ":" in host:
            host = f"[{host}]"
        port = parts.port
        if port is not None and port != DEFAULT_PORTS.get(parts.scheme):
            host = f"{host}:{port}"
        return host

    def get_header(self, name: str) -> Optional[str]:
        """Return the first value for ``name`` or None."""
        lname = name.lower()
        for key, value in self.headers:
            if key.lower() == lname:
                return value
        return None

    def get_all(self, name: str) -> list[str]:
        lname = name.lower()
        return [value for key, value in self.headers if key.lower() == lname]

    def has_header(self, name: str) -> bool:
        return self.get_header(name) is not None

    def without_headers(self, *names: str) -> "UnsignedRequest":
        """Copy of the request with every header named in ``names`` removed."""
        drop = {name.lower() for name in names}
        kept = tuple((k, v) for k, v in self.headers if k.lower() not in drop)
        return replace(self, headers=kept)

    def with_replaced(self, updates: Iterable[Header]) -> "UnsignedRequest":
        """Copy of the request with each header in ``updates`` set to one value.

        A header that already exists keeps the position of its first
        occurrence and loses any repeats; new headers are appended.
        """
        headers = list(self.headers)
        for name, value in updates:
            lname = name.lower()
            positions = [i for i, (k, _) in enumerate(headers) if k.lower() == lname]
            if not positions:
                headers.append((name, value))
                continue
            first = positions[0]
            headers[first] = (headers[first][0], value)
            for i in reversed(positions[1:]):
                del headers[i]
        return replace(self, headers=tuple(headers))


def parse_header(raw_header: str) -> Header:
    """Split a raw ``"Name: Value"`` argument on its first colon.

    Raises:
        InvalidHeaderFormat: no colon present
        RequestConstructionFailed: empty or illegal header name, or a value
            with control or non-ASCII characters
    """
    name, sep, value = raw_header.partition(":")
    if not sep:
        raise InvalidHeaderFormat(raw_header)
    name = name.strip()
    value = value.strip()
    if not name or not _TOKEN_RE.fullmatch(name):
        raise RequestConstructionFailed(f"Invalid header name in {raw_header!r}")
    if not _VALUE_RE.fullmatch(value):
        raise RequestConstructionFailed(f"Invalid header value in {raw_header!r}")
    return name, value


def _validate_url(url: str) -> None:
    try:
        parts = urlsplit(url)
        # Accessing .port raises ValueError for out-of-range or non-numeric ports
        parts.port
    except ValueError as e:
        raise RequestConstructionFailed(f"Invalid URL {url!r}: {e}") from e
    if parts.scheme not in DEFAULT_PORTS:
        raise RequestConstructionFailed(
            f"Invalid URL {url!r}: scheme must be http or https"
        )
    if not parts.hostname:
        raise RequestConstructionFailed(f"Invalid URL {url!r}: missing host")


def default_method(body: Optional[Union[str, bytes]]) -> str:
    """POST when a body is supplied, GET otherwise."""
    return "POST" if body is not None else "GET"


def build_unsigned_request(
    url: str,
    method: Optional[str] = None,
    body: Optional[Union[str, bytes]] = None,
    headers: Iterable[str] = (),
) -> UnsignedRequest:
    """Build an UnsignedRequest from command-line style arguments.

    Args:
        url: Full request URL (http or https)
        method: Explicit HTTP method; uppercased when given
        body: Request body; strings are UTF-8 encoded. An explicit empty
            body still counts as present for method defaulting.
        headers: Raw ``"Name: Value"`` strings, in order

    Returns:
        UnsignedRequest

    Raises:
        InvalidHeaderFormat: a header has no colon
        RequestConstructionFailed: the URL, a header, or the method is invalid
    """
    # Parse every header before anything else so a bad one leaves nothing built
    parsed_headers = tuple(parse_header(raw) for raw in headers)

    _validate_url(url)

    if method:
        method = method.upper()
        if not _TOKEN_RE.fullmatch(method):
            raise RequestConstructionFailed(f"Invalid HTTP method: {method!r}")
    else:
        method = default_method(body)

    if body is None:
        body_bytes = b""
    elif isinstance(body, str):
        body_bytes = body.encode("utf-8")
    else:
        body_bytes = bytes(body)

    return UnsignedRequest(
        method=method,
        url=url,
        headers=parsed_headers,
        body=body_bytes,
    )
