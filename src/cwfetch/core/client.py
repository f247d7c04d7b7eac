"""
CloudWatch Logs client construction and error mapping.

Builds boto3 clients from profile-based or assumed-role credentials and
converts botocore failures into cwfetch exceptions.
"""

from typing import Any, Callable, Optional

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, ProfileNotFound

from ..config import AWSSettings
from .exceptions import (
    BackendRejectedError,
    ConfigurationError,
    CwFetchException,
    TransportError,
)

logger = structlog.get_logger(__name__)


def map_client_error(error: Exception, operation: str, group_name: Optional[str] = None) -> CwFetchException:
    """Map a botocore exception to a cwfetch exception.

    Args:
        error: The exception raised by the boto3 call
        operation: The API operation that failed (e.g. "GetLogEvents")
        group_name: Log group the request targeted, for context

    Returns:
        BackendRejectedError for structured service errors,
        TransportError for everything that never produced a service response
    """
    context = operation
    if group_name:
        context += f" on {group_name}"

    if isinstance(error, ClientError):
        error_info = error.response.get("Error", {})
        error_code = error_info.get("Code", "Unknown")
        error_message = error_info.get("Message", str(error))
        return BackendRejectedError(
            f"{context} rejected: {error_message}",
            aws_error_code=error_code,
            details={"operation": operation, "group_name": group_name},
        )

    return TransportError(
        f"{context} failed: {error}",
        details={
            "operation": operation,
            "group_name": group_name,
            "error_type": type(error).__name__,
        },
    )


def _client_config(settings: AWSSettings) -> Config:
    return Config(
        retries={"max_attempts": settings.max_retries},
        connect_timeout=settings.connect_timeout_seconds,
        read_timeout=settings.read_timeout_seconds,
    )


def _assume_role(
    session: boto3.Session,
    settings: AWSSettings,
    mfa_token_provider: Optional[Callable[[], str]],
) -> boto3.Session:
    """Return a session holding temporary credentials for settings.role_arn."""
    sts = session.client("sts", config=_client_config(settings))

    kwargs: dict[str, Any] = {
        "RoleArn": settings.role_arn,
        "RoleSessionName": settings.role_session_name,
    }
    if settings.mfa_serial:
        if mfa_token_provider is None:
            raise ConfigurationError(
                "An MFA token is required when --mfa-serial is given",
                details={"mfa_serial": settings.mfa_serial},
            )
        kwargs["SerialNumber"] = settings.mfa_serial
        kwargs["TokenCode"] = mfa_token_provider()

    logger.info("Assuming role", role_arn=settings.role_arn, mfa=bool(settings.mfa_serial))
    try:
        credentials = sts.assume_role(**kwargs)["Credentials"]
    except (ClientError, BotoCoreError) as e:
        raise map_client_error(e, "AssumeRole") from e

    return boto3.Session(
        aws_access_key_id=credentials["AccessKeyId"],
        aws_secret_access_key=credentials["SecretAccessKey"],
        aws_session_token=credentials["SessionToken"],
        region_name=settings.region,
    )


def create_logs_client(
    settings: AWSSettings,
    mfa_token_provider: Optional[Callable[[], str]] = None,
) -> Any:
    """
    Create a CloudWatch Logs client.

    Args:
        settings: AWS settings (profile, region, optional role to assume)
        mfa_token_provider: Called once to obtain the MFA code when the role
            assumption needs one

    Raises:
        ConfigurationError: If the profile does not exist
        BackendRejectedError: If STS refuses the role assumption
        TransportError: If STS cannot be reached
    """
    logger.info(
        "Creating CloudWatch Logs client",
        profile=settings.profile,
        region=settings.region,
        role_arn=settings.role_arn,
    )

    try:
        session = boto3.Session(profile_name=settings.profile, region_name=settings.region)
    except ProfileNotFound as e:
        raise ConfigurationError(
            f"AWS profile not found: {settings.profile}",
            details={"profile": settings.profile},
        ) from e

    if settings.role_arn:
        session = _assume_role(session, settings, mfa_token_provider)

    return session.client("logs", config=_client_config(settings))
