"""Pytest configuration and shared fixtures for ProxyDeck tests."""

import os
from collections.abc import Generator
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from proxydeck.models.deployment import DeploymentConfig


@pytest.fixture
def isolated_env() -> Generator[dict[str, str]]:
    """Provide isolated environment variables for testing.

    Saves current environment and restores after test.

    Yields:
        Dictionary of original environment variables

    Cleanup:
        Restores original environment after test
    """
    original_env = os.environ.copy()
    yield original_env
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def base_config() -> DeploymentConfig:
    """Minimal valid configuration with both secrets set."""
    return DeploymentConfig(
        anthropic_api_key="sk-ant-test",
        master_key="sk-master-test",
    )


@pytest.fixture
def project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Working directory holding a template, build context and compose file."""
    (tmp_path / "template.yaml").write_text(
        "AWSTemplateFormatVersion: '2010-09-09'\nResources: {}\n"
    )
    build_context = tmp_path / "litellm-image"
    build_context.mkdir()
    (build_context / "Dockerfile").write_text("FROM ghcr.io/berriai/litellm:main\n")
    (tmp_path / "docker-compose.yml").write_text("services: {}\n")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def make_client_error(
    code: str, message: str = "error", operation: str = "Operation"
) -> ClientError:
    """Build a real botocore ClientError."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


@pytest.fixture
def client_error() -> Any:
    """Factory fixture for botocore ClientError instances."""
    return make_client_error


@pytest.fixture
def mock_ecr() -> MagicMock:
    """ECR client with an existing repository and a valid token."""
    ecr = MagicMock()
    ecr.describe_repositories.return_value = {
        "repositories": [
            {
                "repositoryName": "litellm-repo",
                "repositoryUri": (
                    "123456789012.dkr.ecr.eu-north-1.amazonaws.com/litellm-repo"
                ),
            }
        ]
    }
    ecr.get_authorization_token.return_value = {
        "authorizationData": [
            {
                # base64("AWS:secret-token")
                "authorizationToken": "QVdTOnNlY3JldC10b2tlbg==",
                "proxyEndpoint": "https://123456789012.dkr.ecr.eu-north-1.amazonaws.com",
            }
        ]
    }
    return ecr
