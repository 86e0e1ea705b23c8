"""Container image builder for the gateway image.

This module builds, tags and pushes the LiteLLM gateway image using the
Docker SDK, and removes local copies of it on cleanup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import docker
from docker.errors import APIError, BuildError, DockerException, ImageNotFound

from proxydeck.lib.errors import DeploymentError, DockerNotAvailableError

if TYPE_CHECKING:
    from docker.models.images import Image

    from proxydeck.models.deployment import ImageURI, RegistryCredentials

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of a container image build operation.

    Attributes:
        image_id: The SHA256 ID of the built image
        image_name: The local repository/image name
        tag: The image tag
        full_name: Full local image reference (name:tag)
        log_lines: Build log output lines
    """

    image_id: str
    image_name: str
    tag: str
    full_name: str
    log_lines: list[str] = field(default_factory=list)

    @classmethod
    def from_image(
        cls,
        image: Image,
        image_name: str,
        tag: str,
        log_lines: list[str] | None = None,
    ) -> BuildResult:
        """Create BuildResult from a Docker image object."""
        return cls(
            image_id=image.id or "",
            image_name=image_name,
            tag=tag,
            full_name=f"{image_name}:{tag}",
            log_lines=log_lines or [],
        )


def get_oci_labels(name_prefix: str, version: str) -> dict[str, str]:
    """Generate OCI-compliant container image labels.

    Args:
        name_prefix: Deployment name prefix used as the image title
        version: Image tag

    Returns:
        Dictionary of OCI labels
    """
    return {
        "org.opencontainers.image.title": f"{name_prefix}-gateway",
        "org.opencontainers.image.version": version,
        "org.opencontainers.image.created": datetime.now(timezone.utc).isoformat(),
        "com.proxydeck.managed": "true",
    }


def _stream_lines(entries: Any, operation: str) -> list[str]:
    """Collect readable lines from a Docker build or push stream.

    Raises:
        DeploymentError: When the stream reports an error entry
    """
    lines: list[str] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if "error" in entry:
            detail = entry.get("errorDetail", {}).get("message") or entry["error"]
            raise DeploymentError(operation=operation, message=str(detail))
        if "stream" in entry and isinstance(entry["stream"], str):
            lines.append(entry["stream"].rstrip("\n"))
        elif "status" in entry:
            layer = entry.get("id")
            status = str(entry["status"])
            lines.append(f"{layer}: {status}" if layer else status)
    return lines


class ContainerBuilder:
    """Builder for gateway container images.

    Uses the Docker SDK to build the image from its fixed build context, log
    in to the registry, tag the image with its registry URI and push it.

    Example:
        >>> builder = ContainerBuilder()
        >>> result = builder.build("litellm-image", "litellm-repo", "20250101-120000")
        >>> builder.login(credentials)
        >>> builder.tag(result, image_uri)
        >>> builder.push(image_uri)
    """

    def __init__(self) -> None:
        """Connect to the Docker daemon using the environment configuration.

        Raises:
            DockerNotAvailableError: If Docker daemon is not available
        """
        try:
            self.client = docker.from_env()  # type: ignore[attr-defined]
        except DockerException as e:
            raise DockerNotAvailableError(operation="init") from e

    def login(self, credentials: RegistryCredentials) -> None:
        """Log the Docker client in to a registry.

        Raises:
            DeploymentError: If the registry rejects the credentials
        """
        try:
            self.client.login(
                username=credentials.username,
                password=credentials.password.get_secret_value(),
                registry=credentials.endpoint,
                reauth=True,
            )
        except APIError as e:
            raise DeploymentError(
                operation="login", message=f"Registry login failed: {e.explanation}"
            ) from e
        logger.debug("Logged in to %s", credentials.endpoint)

    def build(
        self,
        build_context: str,
        image_name: str,
        tag: str,
        labels: dict[str, str] | None = None,
        dockerfile: str = "Dockerfile",
        platform: str = "linux/amd64",
        **build_kwargs: Any,
    ) -> BuildResult:
        """Build a container image from the specified context.

        Args:
            build_context: Path to the build context directory
            image_name: Local repository name for the built image
            tag: Tag for the built image
            labels: Optional OCI labels to apply
            dockerfile: Path to Dockerfile relative to context
            platform: Target platform (cross-builds when it differs from host)
            **build_kwargs: Additional arguments passed to Docker build

        Returns:
            BuildResult with image details and build logs

        Raises:
            DeploymentError: If build context doesn't exist or build fails
        """
        context_path = Path(build_context)
        if not context_path.is_dir():
            raise DeploymentError(
                operation="build",
                message=f"Build context not found: {build_context}",
            )

        full_tag = f"{image_name}:{tag}"

        try:
            image, build_logs = self.client.images.build(
                path=str(context_path),
                tag=full_tag,
                dockerfile=dockerfile,
                labels=labels or {},
                rm=True,
                platform=platform,
                pull=True,  # base image must match the target platform
                **build_kwargs,
            )
            log_lines = _stream_lines(build_logs, "build")
        except BuildError as e:
            raise DeploymentError(
                operation="build",
                message=f"Docker build failed: {e.msg}",
            ) from e
        except DockerException as e:
            raise DeploymentError(
                operation="build",
                message=f"Docker error during build: {e}",
            ) from e

        return BuildResult.from_image(
            image=image,
            image_name=image_name,
            tag=tag,
            log_lines=log_lines,
        )

    def tag(self, result: BuildResult, image_uri: ImageURI) -> None:
        """Tag a built image with its registry URI.

        Raises:
            DeploymentError: If the image is missing or cannot be tagged
        """
        try:
            image = self.client.images.get(result.full_name)
            tagged = image.tag(image_uri.repository_uri, tag=image_uri.tag)
        except ImageNotFound as e:
            raise DeploymentError(
                operation="tag", message=f"Built image not found: {result.full_name}"
            ) from e
        except APIError as e:
            raise DeploymentError(operation="tag", message=str(e.explanation)) from e

        if not tagged:
            raise DeploymentError(
                operation="tag", message=f"Failed to tag image as {image_uri}"
            )

    def push(self, image_uri: ImageURI) -> list[str]:
        """Push a tagged image to its registry.

        Args:
            image_uri: Registry reference to push

        Returns:
            Push progress lines

        Raises:
            DeploymentError: If the push fails or the stream reports an error
        """
        try:
            stream = self.client.images.push(
                image_uri.repository_uri, tag=image_uri.tag, stream=True, decode=True
            )
            lines = _stream_lines(stream, "push")
        except APIError as e:
            raise DeploymentError(operation="push", message=str(e.explanation)) from e

        logger.info("Pushed %s", image_uri)
        return lines

    def remove_images(self, reference: str) -> list[str]:
        """Force-remove local images whose reference matches a pattern.

        Best effort: failures are logged, not raised.

        Args:
            reference: Docker reference filter (e.g. ``litellm-repo*``)

        Returns:
            IDs of removed images
        """
        removed: list[str] = []
        try:
            images = self.client.images.list(filters={"reference": reference})
        except DockerException as e:
            logger.warning("Could not list images matching %s: %s", reference, e)
            return removed

        for image in images:
            try:
                self.client.images.remove(image.id, force=True)
                removed.append(image.id)
            except DockerException as e:
                logger.warning("Could not remove image %s: %s", image.id, e)
        return removed
