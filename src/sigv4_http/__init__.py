"""HTTP client that signs requests with AWS Signature Version 4."""

from sigv4_http.request import UnsignedRequest, build_unsigned_request, parse_header
from sigv4_http.canonical import (
    CanonicalRequest,
    PayloadHash,
    build_canonical_request,
    resolve_payload_hash,
)
from sigv4_http.signing import (
    Credentials,
    SigningContext,
    SigningResult,
    apply_signature,
    build_authorization_header,
    build_string_to_sign,
    compute_signature,
    derive_signing_key,
    sign_request,
)
from sigv4_http.config import ClientConfig, resolve_signing_inputs
from sigv4_http.transport import HTTPResponse, send_request
from sigv4_http.errors import (
    CredentialsUnavailable,
    InvalidHeaderFormat,
    NonSuccessStatus,
    RegionUnresolved,
    RequestConstructionFailed,
    Sigv4HttpError,
    SigningFailed,
    TransportFailed,
)

__all__ = [
    # Request
    "UnsignedRequest",
    "build_unsigned_request",
    "parse_header",
    # Canonicalization
    "CanonicalRequest",
    "PayloadHash",
    "build_canonical_request",
    "resolve_payload_hash",
    # Signing
    "Credentials",
    "SigningContext",
    "SigningResult",
    "apply_signature",
    "build_authorization_header",
    "build_string_to_sign",
    "compute_signature",
    "derive_signing_key",
    "sign_request",
    # Config
    "ClientConfig",
    "resolve_signing_inputs",
    # Transport
    "HTTPResponse",
    "send_request",
    # Errors
    "CredentialsUnavailable",
    "InvalidHeaderFormat",
    "NonSuccessStatus",
    "RegionUnresolved",
    "RequestConstructionFailed",
    "Sigv4HttpError",
    "SigningFailed",
    "TransportFailed",
]
