"""Run the gateway locally under Docker Compose."""

from __future__ import annotations

import logging
import subprocess  # nosec B404
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from proxydeck.config.defaults import COMPOSE_COMMAND
from proxydeck.deploy.builder import ContainerBuilder
from proxydeck.deploy.outputs import render_client_exports
from proxydeck.lib.errors import (
    ConfigError,
    DeploymentError,
    DockerNotAvailableError,
    MissingCredentialsError,
)
from proxydeck.models.deployment import ClientExports, DeploymentConfig

logger = logging.getLogger(__name__)


class LocalRunner:
    """Start and clean up the local Compose deployment.

    Args:
        base_env: Environment the compose process inherits (PATH, DOCKER_HOST...)
        compose_command: Compose executable and subcommand
        builder_factory: Creates the Docker SDK wrapper used for image cleanup
    """

    def __init__(
        self,
        base_env: Mapping[str, str] | None = None,
        compose_command: Sequence[str] = COMPOSE_COMMAND,
        builder_factory: Callable[[], ContainerBuilder] = ContainerBuilder,
    ) -> None:
        self._base_env = dict(base_env or {})
        self._compose_command = list(compose_command)
        self._builder_factory = builder_factory

    def child_env(self, config: DeploymentConfig) -> dict[str, str]:
        """Environment for the compose process, with secrets from the config."""
        env = dict(self._base_env)
        env["ANTHROPIC_API_KEY"] = config.anthropic_api_key.get_secret_value()
        env["LITELLM_MASTER_KEY"] = config.master_key.get_secret_value()
        env["AWS_REGION"] = config.region
        for name, secret in (
            ("AWS_ACCESS_KEY_ID", config.aws_access_key_id),
            ("AWS_SECRET_ACCESS_KEY", config.aws_secret_access_key),
            ("AWS_SESSION_TOKEN", config.aws_session_token),
        ):
            if secret is not None and secret.get_secret_value():
                env[name] = secret.get_secret_value()
        return env

    def _compose(
        self, config: DeploymentConfig, *args: str
    ) -> subprocess.CompletedProcess[str]:
        command = [*self._compose_command, "-f", config.compose_file, *args]
        logger.debug("Running %s", " ".join(command))
        try:
            return subprocess.run(  # noqa: S603  # nosec B603
                command,
                env=self.child_env(config),
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise DockerNotAvailableError(operation="compose") from exc
        except OSError as exc:
            raise DeploymentError(
                operation="compose", message=f"Could not run compose: {exc}"
            ) from exc

    def start(self, config: DeploymentConfig) -> ClientExports:
        """Start the gateway in detached mode, rebuilding the image if needed.

        Args:
            config: Resolved configuration

        Returns:
            Client exports pointing at the local endpoint

        Raises:
            MissingCredentialsError: If local AWS credentials are absent
            ConfigError: If the compose file does not exist
            DeploymentError: If compose fails to start the containers
        """
        missing = [
            name
            for name, secret in (
                ("AWS_ACCESS_KEY_ID", config.aws_access_key_id),
                ("AWS_SECRET_ACCESS_KEY", config.aws_secret_access_key),
            )
            if secret is None or not secret.get_secret_value()
        ]
        if missing:
            raise MissingCredentialsError(missing)

        if not Path(config.compose_file).is_file():
            raise ConfigError(
                field="compose_file",
                message=f"Compose file not found: {config.compose_file}",
            )

        result = self._compose(config, "up", "--build", "-d")
        if result.returncode != 0:
            raise DeploymentError(
                operation="compose_up",
                message=(result.stderr or result.stdout).strip()
                or f"compose exited with status {result.returncode}",
            )

        logger.info("Gateway running at %s", config.local_endpoint)
        return render_client_exports(config.local_endpoint, config)

    def clean(self, config: DeploymentConfig) -> list[str]:
        """Stop local containers and remove local gateway images.

        Best effort: every failure is logged and skipped.

        Returns:
            IDs of the images that were removed
        """
        try:
            result = self._compose(config, "down", "--volumes", "--remove-orphans")
            if result.returncode != 0:
                logger.warning("compose down failed: %s", result.stderr.strip())
        except DeploymentError as exc:
            logger.warning("Skipping compose down: %s", exc.message)

        try:
            builder = self._builder_factory()
        except DockerNotAvailableError as exc:
            logger.warning("Skipping image cleanup: %s", exc.message)
            return []

        return builder.remove_images(f"{config.repository_name}*")
