"""ECR repository lifecycle for the gateway image.

Guarantees the repository exists (with scanning and an untagged-image expiry
rule), issues short-lived registry credentials, derives per-deploy image tags
and deletes the repository on teardown.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from datetime import datetime, timezone
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from proxydeck.deploy.aws import error_code, error_message
from proxydeck.lib.errors import DeploymentError
from proxydeck.models.deployment import (
    ImageTag,
    ImageURI,
    RegistryCredentials,
    Repository,
)

logger = logging.getLogger(__name__)

REPOSITORY_NOT_FOUND = "RepositoryNotFoundException"
LIFECYCLE_POLICY_NOT_FOUND = "LifecyclePolicyNotFoundException"


def generate_tag(now: datetime | None = None) -> ImageTag:
    """Generate a timestamp image tag.

    Every deploy gets a new tag, so a redeploy with unchanged inputs still
    rolls a new container revision.

    Args:
        now: Point in time to derive the tag from (default: current UTC time)

    Returns:
        Tag formatted as YYYYMMDD-HHMMSS

    Example:
        >>> generate_tag(datetime(2025, 1, 2, 3, 4, 5))
        '20250102-030405'
    """
    return ImageTag.from_time(now or datetime.now(timezone.utc))


def build_image_uri(repository_uri: str, tag: str) -> ImageURI:
    """Compose the image reference for a tag in an existing repository.

    Args:
        repository_uri: Repository URI as reported by ECR (``<host>/<name>``)
        tag: Image tag

    Example:
        >>> str(build_image_uri("123.dkr.ecr.eu-north-1.amazonaws.com/repo", "t1"))
        '123.dkr.ecr.eu-north-1.amazonaws.com/repo:t1'
    """
    registry, _, repository = repository_uri.partition("/")
    if not registry or not repository:
        raise DeploymentError(
            operation="repository",
            message=f"Unexpected repository URI: {repository_uri}",
        )
    return ImageURI(registry=registry, repository=repository, tag=tag)


def lifecycle_policy(expiry_days: int) -> str:
    """Return the lifecycle policy text expiring untagged images.

    Args:
        expiry_days: Days after push before an untagged image expires
    """
    return json.dumps(
        {
            "rules": [
                {
                    "rulePriority": 1,
                    "selection": {
                        "tagStatus": "untagged",
                        "countType": "sinceImagePushed",
                        "countUnit": "days",
                        "countNumber": expiry_days,
                    },
                    "action": {"type": "expire"},
                }
            ]
        }
    )


class RegistryManager:
    """Manage the ECR repository that holds gateway images.

    Example:
        >>> manager = RegistryManager(session.client("ecr"))
        >>> repo = manager.ensure_repository("litellm-repo")
        >>> creds = manager.get_credentials()
    """

    def __init__(self, ecr: Any) -> None:
        """Initialize the manager with an ECR client.

        Args:
            ecr: boto3 ECR client for the deployment region
        """
        self._ecr = ecr

    def ensure_repository(self, name: str, expiry_days: int = 7) -> Repository:
        """Return the named repository, creating it when absent.

        A newly created repository scans images on push and expires untagged
        images after ``expiry_days``. An existing repository keeps its
        settings; only a missing lifecycle policy is attached, so a run that
        failed between creation and policy attachment is completed by the next.

        Args:
            name: Repository name
            expiry_days: Untagged image expiry for new repositories

        Returns:
            Repository details, with ``created`` set when this call created it

        Raises:
            DeploymentError: If ECR rejects the lookup, creation or policy
        """
        try:
            response = self._ecr.describe_repositories(repositoryNames=[name])
            existing = response["repositories"][0]
        except ClientError as exc:
            if error_code(exc) != REPOSITORY_NOT_FOUND:
                raise DeploymentError(
                    operation="repository", message=error_message(exc)
                ) from exc
        except BotoCoreError as exc:
            raise DeploymentError(operation="repository", message=str(exc)) from exc
        else:
            logger.debug("Repository %s already exists", name)
            if not self._has_lifecycle_policy(name):
                logger.info("Attaching missing lifecycle policy to %s", name)
                self._put_lifecycle_policy(name, expiry_days)
            return Repository(name=name, uri=existing["repositoryUri"])

        logger.info("Creating ECR repository %s", name)
        try:
            created = self._ecr.create_repository(
                repositoryName=name,
                imageScanningConfiguration={"scanOnPush": True},
            )
        except ClientError as exc:
            raise DeploymentError(
                operation="repository", message=error_message(exc)
            ) from exc
        except BotoCoreError as exc:
            raise DeploymentError(operation="repository", message=str(exc)) from exc

        self._put_lifecycle_policy(name, expiry_days)
        return Repository(
            name=name, uri=created["repository"]["repositoryUri"], created=True
        )

    def _has_lifecycle_policy(self, name: str) -> bool:
        try:
            self._ecr.get_lifecycle_policy(repositoryName=name)
        except ClientError as exc:
            if error_code(exc) == LIFECYCLE_POLICY_NOT_FOUND:
                return False
            raise DeploymentError(
                operation="repository", message=error_message(exc)
            ) from exc
        except BotoCoreError as exc:
            raise DeploymentError(operation="repository", message=str(exc)) from exc
        return True

    def _put_lifecycle_policy(self, name: str, expiry_days: int) -> None:
        try:
            self._ecr.put_lifecycle_policy(
                repositoryName=name,
                lifecyclePolicyText=lifecycle_policy(expiry_days),
            )
        except ClientError as exc:
            raise DeploymentError(
                operation="repository", message=error_message(exc)
            ) from exc
        except BotoCoreError as exc:
            raise DeploymentError(operation="repository", message=str(exc)) from exc

    def get_credentials(self) -> RegistryCredentials:
        """Obtain a short-lived registry login.

        Raises:
            DeploymentError: If the token cannot be issued or decoded
        """
        try:
            response = self._ecr.get_authorization_token()
            data = response["authorizationData"][0]
        except ClientError as exc:
            raise DeploymentError(operation="login", message=error_message(exc)) from exc
        except BotoCoreError as exc:
            raise DeploymentError(operation="login", message=str(exc)) from exc

        try:
            decoded = base64.b64decode(data["authorizationToken"]).decode("utf-8")
            username, password = decoded.split(":", 1)
        except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
            raise DeploymentError(
                operation="login", message="Malformed ECR authorization token"
            ) from exc

        return RegistryCredentials(
            username=username, password=password, endpoint=data["proxyEndpoint"]
        )

    def delete_repository(self, name: str) -> bool:
        """Delete a repository and every image in it.

        Args:
            name: Repository name

        Returns:
            True if the repository was deleted, False if it was already absent

        Raises:
            DeploymentError: For any failure other than the repository not existing
        """
        try:
            self._ecr.delete_repository(repositoryName=name, force=True)
        except ClientError as exc:
            if error_code(exc) == REPOSITORY_NOT_FOUND:
                logger.info("Repository %s already absent", name)
                return False
            raise DeploymentError(
                operation="delete_repository", message=error_message(exc)
            ) from exc
        except BotoCoreError as exc:
            raise DeploymentError(
                operation="delete_repository", message=str(exc)
            ) from exc
        return True
