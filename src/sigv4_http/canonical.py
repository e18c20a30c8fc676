"""Canonical request construction for AWS Signature Version 4.

The canonical request is the newline-joined sequence of:

    HTTPMethod
    CanonicalURI
    CanonicalQueryString
    CanonicalHeaders (one ``name:value`` line per header, plus a trailing newline)
    SignedHeaders
    HexEncode(Hash(Payload))

Every byte has to match what the server recomputes, otherwise the request is
rejected with ``SignatureDoesNotMatch``.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import parse_qsl, quote, unquote

from sigv4_http.request import Header, UnsignedRequest
from sigv4_http.utils import calculate_content_sha256

logger = logging.getLogger(__name__)

CONTENT_SHA256_HEADER = "x-amz-content-sha256"


@dataclass(frozen=True)
class PayloadHash:
    """Hash of the request payload as it enters the canonical request.

    ``computed`` hashes come from the body; ``declared`` hashes are taken
    verbatim from an ``x-amz-content-sha256`` header the caller supplied.
    """

    value: str
    declared: bool = False

    @classmethod
    def compute(cls, body: bytes) -> "PayloadHash":
        return cls(calculate_content_sha256(body))

    @classmethod
    def declare(cls, value: str) -> "PayloadHash":
        return cls(value.strip(), declared=True)


def resolve_payload_hash(request: UnsignedRequest) -> PayloadHash:
    """Use a pre-declared content hash when present, else hash the body."""
    declared = request.get_header(CONTENT_SHA256_HEADER)
    if declared is not None:
        return PayloadHash.declare(declared)
    return PayloadHash.compute(request.body)


def uri_encode(value: str) -> str:
    """Percent-encode everything except ``A-Z a-z 0-9 - . _ ~``.

    Non-ASCII characters are encoded from their UTF-8 bytes with uppercase
    hex digits.
    """
    return quote(value, safe="~")


def remove_dot_segments(path: str) -> str:
    """Resolve ``.`` and ``..`` segments and collapse empty ones."""
    if not path:
        return ""
    output = []
    for segment in path.split("/"):
        if not segment or segment == ".":
            continue
        if segment == "..":
            if output:
                output.pop()
        else:
            output.append(segment)
    first = "/" if path.startswith("/") else ""
    last = "/" if path.endswith("/") and output else ""
    return first + "/".join(output) + last


def canonical_uri(path: str, s3: bool = False) -> str:
    """Encode each path segment, keeping ``/`` as the separator.

    Most services expect dot segments removed and the raw path encoded
    as-is, so characters already percent-encoded in the URL are encoded a
    second time. S3 signs the path without normalization and encodes it
    once: each segment is decoded before encoding.
    """
    if not s3:
        path = remove_dot_segments(path)
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path
    segments = path.split("/")
    if s3:
        segments = [unquote(segment) for segment in segments]
    return "/".join(uri_encode(segment) for segment in segments)


def canonical_query_string(query: str) -> str:
    """Sort and re-encode query parameters.

    Parameters are decoded with form rules first (``+`` is a space), then
    each key and value is encoded independently and the pairs are sorted by
    encoded key, then encoded value.
    """
    if not query:
        return ""
    pairs = [
        (uri_encode(key), uri_encode(value))
        for key, value in parse_qsl(query, keep_blank_values=True)
    ]
    return "&".join(f"{key}={value}" for key, value in sorted(pairs))


def normalize_header_value(value: str) -> str:
    """Trim and collapse internal whitespace runs to single spaces."""
    return " ".join(value.split())


def _group_headers(headers: Iterable[Header]) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    for name, value in headers:
        grouped.setdefault(name.strip().lower(), []).append(value)
    return grouped


def canonical_headers(headers: Iterable[Header]) -> str:
    """Render ``name:value\\n`` lines sorted by lowercase name.

    Values repeated under one name are joined with commas in their original
    order.
    """
    grouped = _group_headers(headers)
    lines = []
    for name in sorted(grouped):
        value = ",".join(normalize_header_value(v) for v in grouped[name])
        lines.append(f"{name}:{value}\n")
    return "".join(lines)


def signed_headers(headers: Iterable[Header]) -> str:
    return ";".join(sorted(_group_headers(headers)))


@dataclass(frozen=True)
class CanonicalRequest:
    """A canonical request and the pieces later signing steps reuse."""

    text: str
    signed_headers: str
    payload_hash: PayloadHash


def headers_to_sign(request: UnsignedRequest) -> tuple[Header, ...]:
    """All headers on the request, plus ``host`` when not given explicitly."""
    if request.has_header("host"):
        return request.headers
    return request.headers + (("host", request.host),)


def build_canonical_request(
    request: UnsignedRequest,
    payload_hash: Optional[PayloadHash] = None,
    s3: bool = False,
) -> CanonicalRequest:
    """Serialize ``request`` into its canonical form.

    Args:
        request: Request whose headers are all signed
        payload_hash: Pre-resolved payload hash; resolved from the request
            when omitted. A declared hash is never recomputed.
        s3: Use S3 path rules (no dot-segment removal, single encoding)

    Returns:
        CanonicalRequest
    """
    if payload_hash is None:
        payload_hash = resolve_payload_hash(request)

    to_sign = headers_to_sign(request)
    signed = signed_headers(to_sign)

    text = "\n".join(
        [
            request.method.upper(),
            canonical_uri(request.path, s3=s3),
            canonical_query_string(request.query),
            canonical_headers(to_sign),
            signed,
            payload_hash.value,
        ]
    )
    logger.debug("CanonicalRequest:\n%s", text)
    return CanonicalRequest(text=text, signed_headers=signed, payload_hash=payload_hash)
