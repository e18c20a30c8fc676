"""Command-line entry point: sign an HTTP request with SigV4 and send it.

Usage:
    sigv4-http [options] URL

    # GET an API Gateway endpoint in the profile's region
    sigv4-http https://abc123.execute-api.eu-west-1.amazonaws.com/prod/items

    # POST a JSON body (method defaults to POST when --data is given)
    sigv4-http -d '{"name": "x"}' -H 'Content-Type: application/json' URL

    # Sign for S3 with an explicit profile and region
    sigv4-http --service s3 --profile dev --region us-east-1 URL

Environment Variables:
    AWS_PROFILE             - Profile for credentials and region
    AWS_REGION              - Signing region (overridden by --region)
    AWS_DEFAULT_REGION      - Signing region fallback
    AWS_ACCESS_KEY_ID       - Static credentials (with AWS_SECRET_ACCESS_KEY)
    AWS_SESSION_TOKEN       - Session token for temporary credentials

Exit status is 0 for a 2xx response and 1 for any error or other status.
"""

import argparse
import logging
import math
import sys
from typing import Optional, Sequence

from sigv4_http.config import DEFAULT_SERVICE, DEFAULT_TIMEOUT, ClientConfig, resolve_signing_inputs
from sigv4_http.errors import NonSuccessStatus, Sigv4HttpError
from sigv4_http.request import build_unsigned_request
from sigv4_http.signing import sign_request
from sigv4_http.transport import send_request
from sigv4_http.utils import format_request_lines, format_response_lines

logger = logging.getLogger(__name__)


class ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit 1, like every other failure."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if not math.isfinite(number) or number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive number: {value!r}")
    return number


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="sigv4-http",
        description="Send an HTTP request signed with AWS Signature Version 4",
    )
    parser.add_argument("url", help="Request URL")
    parser.add_argument(
        "--data", "-d",
        help="Request body (method defaults to POST when given)",
    )
    parser.add_argument(
        "--request", "-X",
        dest="method",
        help="HTTP method (default: GET, or POST with --data)",
    )
    parser.add_argument(
        "--header", "-H",
        action="append",
        default=[],
        help="Request header as 'Name: Value' (repeatable)",
    )
    parser.add_argument(
        "--service",
        default=DEFAULT_SERVICE,
        help=f"Service name for the credential scope (default: {DEFAULT_SERVICE})",
    )
    parser.add_argument(
        "--region",
        help="Signing region (default: AWS_REGION, AWS_DEFAULT_REGION, or profile)",
    )
    parser.add_argument(
        "--profile",
        help="Named profile from the shared AWS config (default: AWS_PROFILE)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print request and response headers to stderr",
    )
    parser.add_argument(
        "--no-verify-ssl",
        action="store_true",
        help="Disable TLS certificate verification (INSECURE - use for testing only)",
    )
    parser.add_argument(
        "--timeout",
        type=positive_float,
        default=DEFAULT_TIMEOUT,
        help=f"Request timeout in seconds (default: {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log canonical request and string-to-sign to stderr",
    )
    return parser


def run(args: argparse.Namespace) -> int:
    """Execute one signed request. Raises Sigv4HttpError on failure."""
    unsigned = build_unsigned_request(
        args.url,
        method=args.method,
        body=args.data,
        headers=args.header,
    )
    config = ClientConfig(
        service=args.service,
        region=args.region,
        profile=args.profile,
        verify_ssl=not args.no_verify_ssl,
        timeout=args.timeout,
    )
    credentials, context = resolve_signing_inputs(config)
    result = sign_request(unsigned, credentials, context)

    if args.verbose:
        for line in format_request_lines(result.request):
            print(line, file=sys.stderr)

    response = send_request(
        result.request,
        verify_ssl=config.verify_ssl,
        timeout=config.timeout,
    )

    if args.verbose:
        for line in format_response_lines(response):
            print(line, file=sys.stderr)

    print(response.text)

    if not response.ok:
        raise NonSuccessStatus(response.status_code, response.reason)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.debug:
        logging.basicConfig(
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )
        logging.getLogger("sigv4_http").setLevel(logging.DEBUG)

    if args.no_verify_ssl:
        import urllib3
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    try:
        return run(args)
    except Sigv4HttpError as e:
        logger.debug("Request aborted", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code


if __name__ == "__main__":
    sys.exit(main())
