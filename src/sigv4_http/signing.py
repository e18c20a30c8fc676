"""SigV4 signing pipeline.

Unsigned -> Canonicalized -> StringToSign -> Keyed -> Signed -> Applied.
Every step is a pure function of its inputs: the same request, credentials
and signing context always produce byte-identical headers.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sigv4_http.canonical import (
    CONTENT_SHA256_HEADER,
    CanonicalRequest,
    build_canonical_request,
    resolve_payload_hash,
)
from sigv4_http.errors import SigningFailed
from sigv4_http.request import Header, UnsignedRequest

logger = logging.getLogger(__name__)

ALGORITHM = "AWS4-HMAC-SHA256"
SCOPE_TERMINATOR = "aws4_request"
SIGV4_TIMESTAMP = "%Y%m%dT%H%M%SZ"

AMZ_DATE_HEADER = "x-amz-date"
SECURITY_TOKEN_HEADER = "x-amz-security-token"
AUTHORIZATION_HEADER = "Authorization"


@dataclass(frozen=True)
class Credentials:
    """Resolved AWS credentials. The secret and token never appear in repr."""

    access_key: str
    secret_key: str = field(repr=False)
    token: Optional[str] = field(default=None, repr=False)


@dataclass(frozen=True)
class SigningContext:
    """Region, service and the instant a request is signed at."""

    region: str
    service: str
    timestamp: datetime

    def __post_init__(self):
        ts = self.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        object.__setattr__(
            self, "timestamp", ts.astimezone(timezone.utc).replace(microsecond=0)
        )

    @classmethod
    def now(cls, region: str, service: str) -> "SigningContext":
        return cls(region=region, service=service, timestamp=datetime.now(timezone.utc))

    @property
    def amz_date(self) -> str:
        """ISO8601 basic timestamp, e.g. ``20130524T000000Z``."""
        return format_amz_date(self.timestamp)

    @property
    def date_stamp(self) -> str:
        return self.amz_date[:8]

    @property
    def credential_scope(self) -> str:
        return credential_scope(self.date_stamp, self.region, self.service)


@dataclass(frozen=True)
class SigningResult:
    """Signed request plus the intermediate values, for tracing."""

    request: UnsignedRequest
    canonical_request: CanonicalRequest
    string_to_sign: str
    signature: str
    authorization: str
    amz_date: str


def format_amz_date(timestamp: datetime) -> str:
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)
    return timestamp.strftime(SIGV4_TIMESTAMP)


def credential_scope(date_stamp: str, region: str, service: str) -> str:
    return "/".join([date_stamp, region, service, SCOPE_TERMINATOR])


def build_string_to_sign(canonical_request: str, context: SigningContext) -> str:
    """Combine the algorithm, timestamp, scope and canonical request hash."""
    canonical_hash = hashlib.sha256(canonical_request.encode("utf-8")).hexdigest()
    string_to_sign = "\n".join(
        [ALGORITHM, context.amz_date, context.credential_scope, canonical_hash]
    )
    logger.debug("StringToSign:\n%s", string_to_sign)
    return string_to_sign


def _hmac_sha256(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    """Derive the 32-byte signing key.

    kDate    = HMAC("AWS4" + secret, date)
    kRegion  = HMAC(kDate, region)
    kService = HMAC(kRegion, service)
    kSigning = HMAC(kService, "aws4_request")
    """
    k_date = _hmac_sha256(f"AWS4{secret_key}".encode("utf-8"), date_stamp)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, SCOPE_TERMINATOR)


def compute_signature(signing_key: bytes, string_to_sign: str) -> str:
    return hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


def build_authorization_header(
    access_key: str,
    context: SigningContext,
    signed_headers: str,
    signature: str,
) -> str:
    return (
        f"{ALGORITHM} Credential={access_key}/{context.credential_scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )


def apply_signature(
    request: UnsignedRequest,
    amz_date: str,
    authorization: str,
    session_token: Optional[str] = None,
    content_sha256: Optional[str] = None,
) -> UnsignedRequest:
    """Merge signing headers into ``request``.

    Existing headers keep their order. A signing header that is already
    present is overwritten in place rather than duplicated; new ones are
    appended.
    """
    return request.with_replaced(
        _signing_headers(amz_date, content_sha256, session_token)
        + [(AUTHORIZATION_HEADER, authorization)]
    )


def _signing_headers(
    amz_date: str,
    content_sha256: Optional[str],
    session_token: Optional[str],
) -> list[Header]:
    headers: list[Header] = [(AMZ_DATE_HEADER, amz_date)]
    if content_sha256 is not None:
        headers.append((CONTENT_SHA256_HEADER, content_sha256))
    if session_token:
        headers.append((SECURITY_TOKEN_HEADER, session_token))
    return headers


def sign_request(
    request: UnsignedRequest,
    credentials: Credentials,
    context: SigningContext,
) -> SigningResult:
    """Sign ``request`` with SigV4 and return the signed request.

    All headers on the request are signed, along with ``host``,
    ``x-amz-date``, ``x-amz-content-sha256`` and, for temporary credentials,
    ``x-amz-security-token``. A caller-supplied ``x-amz-content-sha256`` is
    used verbatim as the payload hash.

    Args:
        request: Request to sign; an existing Authorization header is dropped
            and other signing headers are overwritten in place
        credentials: Access key, secret key and optional session token
        context: Region, service and timestamp

    Returns:
        SigningResult with the signed request and intermediate values

    Raises:
        SigningFailed: canonicalization or key derivation hit invalid input
    """
    # A previous Authorization header must never be signed or duplicated,
    # nor a session token left over from other credentials
    stale = [AUTHORIZATION_HEADER]
    if not credentials.token:
        stale.append(SECURITY_TOKEN_HEADER)
    base = request.without_headers(*stale)

    payload_hash = resolve_payload_hash(base)
    amz_date = context.amz_date
    content_sha256 = None if payload_hash.declared else payload_hash.value

    try:
        canonical = build_canonical_request(
            base.with_replaced(
                _signing_headers(amz_date, content_sha256, credentials.token)
            ),
            payload_hash=payload_hash,
            s3=context.service == "s3",
        )
        string_to_sign = build_string_to_sign(canonical.text, context)
        signing_key = derive_signing_key(
            credentials.secret_key, context.date_stamp, context.region, context.service
        )
        signature = compute_signature(signing_key, string_to_sign)
    except UnicodeError as e:
        raise SigningFailed(f"Unable to sign request: {e}") from e

    authorization = build_authorization_header(
        credentials.access_key, context, canonical.signed_headers, signature
    )
    logger.debug("Signature: %s", signature)

    signed = apply_signature(
        base,
        amz_date=amz_date,
        authorization=authorization,
        session_token=credentials.token,
        content_sha256=content_sha256,
    )
    return SigningResult(
        request=signed,
        canonical_request=canonical,
        string_to_sign=string_to_sign,
        signature=signature,
        authorization=authorization,
        amz_date=amz_date,
    )
