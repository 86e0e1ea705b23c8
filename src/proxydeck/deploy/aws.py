"""AWS session and client helpers.

Clients are created once per command from the resolved configuration and
handed to the components that need them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from proxydeck.lib.errors import DeploymentError
from proxydeck.models.deployment import DeploymentConfig

logger = logging.getLogger(__name__)


def error_code(exc: ClientError) -> str:
    """Return the AWS error code of a ClientError."""
    return str(exc.response.get("Error", {}).get("Code", ""))


def error_message(exc: ClientError) -> str:
    """Return the AWS error message of a ClientError, verbatim."""
    return str(exc.response.get("Error", {}).get("Message", "")) or str(exc)


def create_session(config: DeploymentConfig) -> boto3.Session:
    """Create a boto3 session for the configured region.

    Explicit credentials from the configuration are used when present;
    otherwise boto3 falls back to its default credential chain (profiles,
    SSO, instance roles).
    """
    kwargs: dict[str, Any] = {"region_name": config.region}
    if (
        config.has_local_credentials
        and config.aws_access_key_id
        and config.aws_secret_access_key
    ):
        kwargs["aws_access_key_id"] = config.aws_access_key_id.get_secret_value()
        kwargs["aws_secret_access_key"] = (
            config.aws_secret_access_key.get_secret_value()
        )
        if config.aws_session_token:
            kwargs["aws_session_token"] = config.aws_session_token.get_secret_value()
    return boto3.Session(**kwargs)


@dataclass
class AWSClients:
    """The provider clients the pipeline and teardown use."""

    ecr: Any
    ec2: Any
    cloudformation: Any
    sts: Any

    @classmethod
    def from_config(cls, config: DeploymentConfig) -> AWSClients:
        """Create all clients from one session."""
        try:
            session = create_session(config)
            return cls(
                ecr=session.client("ecr"),
                ec2=session.client("ec2"),
                cloudformation=session.client("cloudformation"),
                sts=session.client("sts"),
            )
        except BotoCoreError as exc:
            raise DeploymentError(
                operation="init", message=f"Failed to create AWS clients: {exc}"
            ) from exc


def resolve_account_id(sts: Any, config: DeploymentConfig) -> str:
    """Return the configured account ID, or ask STS for the caller's account.

    Raises:
        DeploymentError: If the caller identity cannot be resolved
    """
    if config.account_id:
        return config.account_id

    try:
        identity = sts.get_caller_identity()
    except ClientError as exc:
        raise DeploymentError(
            operation="identity", message=error_message(exc)
        ) from exc
    except BotoCoreError as exc:
        raise DeploymentError(operation="identity", message=str(exc)) from exc

    account_id = str(identity["Account"])
    logger.debug("Resolved AWS account %s through STS", account_id)
    return account_id


def registry_host(account_id: str, region: str) -> str:
    """Return the ECR registry host for an account and region."""
    return f"{account_id}.dkr.ecr.{region}.amazonaws.com"
