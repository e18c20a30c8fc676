"""Credential, region and client settings resolution.

Everything ambient (flags, environment, shared config files) is resolved
once here. The signing core only ever sees the resulting ``Credentials``
and ``SigningContext`` values.

Region precedence:
    --region > AWS_REGION > AWS_DEFAULT_REGION > profile ``region`` setting

Credential precedence follows the boto3 chain for the selected profile
(--profile > AWS_PROFILE > default): environment variables, shared
credentials/config files, SSO, then container and instance metadata.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, ProfileNotFound

from sigv4_http.errors import CredentialsUnavailable, RegionUnresolved
from sigv4_http.signing import Credentials, SigningContext

logger = logging.getLogger(__name__)

DEFAULT_SERVICE = "execute-api"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class ClientConfig:
    """Settings for one invocation."""

    service: str = DEFAULT_SERVICE
    region: Optional[str] = None
    profile: Optional[str] = None
    verify_ssl: bool = True
    timeout: float = DEFAULT_TIMEOUT


def create_session(profile: Optional[str] = None) -> boto3.Session:
    """Create a boto3 session for ``profile``.

    Raises:
        CredentialsUnavailable: the profile does not exist
    """
    try:
        return boto3.Session(profile_name=profile)
    except ProfileNotFound as e:
        raise CredentialsUnavailable(str(e)) from e


def resolve_region(config: ClientConfig, session: Optional[boto3.Session] = None) -> str:
    """Resolve the signing region.

    Raises:
        RegionUnresolved: no source provides a region
    """
    if config.region:
        return config.region

    env_region = os.getenv("AWS_REGION")
    if env_region:
        return env_region

    # boto3 consults AWS_DEFAULT_REGION and then the profile's config
    if session is None:
        session = create_session(config.profile)
    if session.region_name:
        return session.region_name

    raise RegionUnresolved()


def resolve_credentials(session: boto3.Session) -> Credentials:
    """Freeze the session's credentials into a ``Credentials`` value.

    Raises:
        CredentialsUnavailable: the chain yields nothing or a provider fails
    """
    try:
        botocore_credentials = session.get_credentials()
        if botocore_credentials is None:
            raise CredentialsUnavailable(
                "Unable to locate credentials. Configure a profile or set "
                "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY"
            )
        frozen = botocore_credentials.get_frozen_credentials()
    except (BotoCoreError, ClientError) as e:
        raise CredentialsUnavailable(f"Failed to resolve credentials: {e}") from e

    if not frozen.access_key or not frozen.secret_key:
        raise CredentialsUnavailable("Resolved credentials are incomplete")

    logger.debug(
        "Using credentials for access key %s (method: %s)",
        frozen.access_key,
        getattr(botocore_credentials, "method", "unknown"),
    )
    return Credentials(
        access_key=frozen.access_key,
        secret_key=frozen.secret_key,
        token=frozen.token or None,
    )


def resolve_signing_inputs(
    config: ClientConfig,
    timestamp: Optional[datetime] = None,
) -> tuple[Credentials, SigningContext]:
    """Resolve credentials and signing context for one request.

    Args:
        config: Invocation settings
        timestamp: Fixed signing instant; defaults to now

    Returns:
        Tuple of (Credentials, SigningContext)
    """
    session = create_session(config.profile)
    region = resolve_region(config, session)
    credentials = resolve_credentials(session)

    if timestamp is None:
        context = SigningContext.now(region=region, service=config.service)
    else:
        context = SigningContext(region=region, service=config.service, timestamp=timestamp)
    return credentials, context
