"""Error taxonomy for the signing client.

Every failure aborts the invocation. The CLI maps any of these to exit code 1.
"""

from typing import Optional


class Sigv4HttpError(Exception):
    """Base class for all errors surfaced to the command line."""

    exit_code = 1


class InvalidHeaderFormat(Sigv4HttpError):
    """A raw header argument has no colon separator."""

    def __init__(self, raw_header: str):
        self.raw_header = raw_header
        super().__init__(f"Invalid header: {raw_header!r} (expected 'Name: Value')")


class CredentialsUnavailable(Sigv4HttpError):
    """No credential source could be resolved."""


class RegionUnresolved(Sigv4HttpError):
    """No region was supplied via flag, environment, or profile."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "No region configured. Use --region, AWS_REGION, or set a region in your profile"
        )


class RequestConstructionFailed(Sigv4HttpError):
    """The URL or a header value cannot form a valid request."""


class SigningFailed(Sigv4HttpError):
    """Internal invariant violation during canonicalization or key derivation."""


class TransportFailed(Sigv4HttpError):
    """The endpoint could not be reached."""


class NonSuccessStatus(Sigv4HttpError):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        detail = f" {reason}" if reason else ""
        super().__init__(f"Request failed with HTTP {status_code}{detail}")
