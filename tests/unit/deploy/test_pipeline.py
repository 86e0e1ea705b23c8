"""Unit tests for the cloud deployment pipeline.

Tests cover:
- End-to-end deploy into eu-north-1 with a fresh repository
- Step ordering and early failures
- Preflight checks before any side effect
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from proxydeck.deploy.aws import AWSClients
from proxydeck.deploy.builder import BuildResult
from proxydeck.deploy.pipeline import CloudDeployPipeline
from proxydeck.lib.errors import ConfigError, DeploymentError, PrefixListNotFoundError
from proxydeck.models.deployment import DeploymentConfig, StackDeployment, StackOutputs

REGISTRY = "123456789012.dkr.ecr.eu-north-1.amazonaws.com"
FIXED_TIME = datetime(2025, 3, 14, 15, 9, 26, tzinfo=timezone.utc)


@pytest.fixture
def config(project_dir: Path) -> DeploymentConfig:
    """Default configuration in eu-north-1."""
    return DeploymentConfig(anthropic_api_key="sk-ant", master_key="sk-master")


@pytest.fixture
def clients(mock_ecr: MagicMock, client_error: Any) -> AWSClients:
    """AWS clients for a region where the repository does not exist yet."""
    mock_ecr.describe_repositories.side_effect = client_error(
        "RepositoryNotFoundException", "The repository does not exist"
    )
    mock_ecr.create_repository.return_value = {
        "repository": {"repositoryUri": f"{REGISTRY}/litellm-repo"}
    }

    ec2 = MagicMock()
    ec2.describe_managed_prefix_lists.return_value = {
        "PrefixLists": [{"PrefixListId": "pl-fab65193"}]
    }
    sts = MagicMock()
    sts.get_caller_identity.return_value = {"Account": "123456789012"}

    return AWSClients(ecr=mock_ecr, ec2=ec2, cloudformation=MagicMock(), sts=sts)


@pytest.fixture
def builder() -> MagicMock:
    """Docker wrapper that builds and pushes successfully."""
    mock = MagicMock()
    mock.build.return_value = BuildResult(
        image_id="sha256:abc",
        image_name="litellm-repo",
        tag="20250314-150926",
        full_name="litellm-repo:20250314-150926",
    )
    return mock


@pytest.fixture
def deployer() -> MagicMock:
    """Stack deployer that converges and reports the edge URL."""
    mock = MagicMock()
    mock.deploy.return_value = StackDeployment(
        stack_name="litellm-stack",
        stack_id="arn:stack",
        status="CREATE_COMPLETE",
        changed=True,
    )
    mock.get_outputs.return_value = StackOutputs(
        stack_name="litellm-stack",
        values={"CloudFrontURL": "https://d111111abcdef8.cloudfront.net"},
    )
    return mock


def make_pipeline(
    config: DeploymentConfig,
    clients: AWSClients,
    builder: MagicMock,
    deployer: MagicMock,
    progress: list[str] | None = None,
) -> CloudDeployPipeline:
    return CloudDeployPipeline(
        config,
        clients,
        builder_factory=lambda: builder,
        deployer=deployer,
        clock=lambda: FIXED_TIME,
        progress=progress.append if progress is not None else None,
    )


@pytest.mark.unit
class TestCloudDeployPipeline:
    """Tests for CloudDeployPipeline.run."""

    def test_fresh_deploy_to_eu_north_1(
        self,
        config: DeploymentConfig,
        clients: AWSClients,
        builder: MagicMock,
        deployer: MagicMock,
    ) -> None:
        """Test a first deploy creates the repository and prints the URL."""
        progress: list[str] = []

        result = make_pipeline(config, clients, builder, deployer, progress).run()

        clients.ecr.create_repository.assert_called_once_with(
            repositoryName="litellm-repo",
            imageScanningConfiguration={"scanOnPush": True},
        )
        policy = json.loads(
            clients.ecr.put_lifecycle_policy.call_args.kwargs["lifecyclePolicyText"]
        )
        assert policy["rules"][0]["selection"]["countNumber"] == 7

        builder.build.assert_called_once()
        assert builder.build.call_args.kwargs["tag"] == "20250314-150926"
        assert builder.build.call_args.kwargs["platform"] == "linux/amd64"
        builder.tag.assert_called_once()
        builder.push.assert_called_once_with(result.image_uri)

        assert str(result.image_uri) == f"{REGISTRY}/litellm-repo:20250314-150926"
        assert result.edge_prefix_list_id == "pl-fab65193"
        assert result.exports.base_url == "https://d111111abcdef8.cloudfront.net"
        assert "Image tag: 20250314-150926" in progress
        assert "CloudFront prefix list ID: pl-fab65193" in progress

    def test_stack_parameters(
        self,
        config: DeploymentConfig,
        clients: AWSClients,
        builder: MagicMock,
        deployer: MagicMock,
    ) -> None:
        """Test the stack receives image, prefix list, secrets and tags."""
        make_pipeline(config, clients, builder, deployer).run()

        kwargs = deployer.deploy.call_args.kwargs
        assert kwargs["stack_name"] == "litellm-stack"
        assert kwargs["capabilities"] == ("CAPABILITY_IAM",)
        assert kwargs["tags"] == {"project": "litellm"}
        assert "AWSTemplateFormatVersion" in kwargs["template_body"]
        parameters = kwargs["parameters"]
        assert str(parameters.image_uri).endswith(":20250314-150926")
        assert parameters.edge_prefix_list_id == "pl-fab65193"
        assert parameters.master_key.get_secret_value() == "sk-master"

    def test_account_from_config_skips_sts(
        self,
        project_dir: Path,
        clients: AWSClients,
        builder: MagicMock,
        deployer: MagicMock,
    ) -> None:
        """Test an explicit account ID is checked without calling STS."""
        config = DeploymentConfig(
            anthropic_api_key="a", master_key="b", account_id="123456789012"
        )

        result = make_pipeline(config, clients, builder, deployer).run()

        clients.sts.get_caller_identity.assert_not_called()
        assert result.image_uri.registry == REGISTRY

    def test_mismatched_account_stops_before_build(
        self,
        project_dir: Path,
        clients: AWSClients,
        builder: MagicMock,
        deployer: MagicMock,
    ) -> None:
        """Test a wrong account ID never pushes to a foreign registry."""
        config = DeploymentConfig(
            anthropic_api_key="a", master_key="b", account_id="210987654321"
        )

        with pytest.raises(ConfigError) as exc_info:
            make_pipeline(config, clients, builder, deployer).run()

        assert exc_info.value.field == "account_id"
        expected = "210987654321.dkr.ecr.eu-north-1.amazonaws.com"
        assert expected in exc_info.value.message
        builder.build.assert_not_called()
        builder.push.assert_not_called()
        deployer.deploy.assert_not_called()

    def test_unchanged_stack_still_reports_url(
        self,
        config: DeploymentConfig,
        clients: AWSClients,
        builder: MagicMock,
        deployer: MagicMock,
    ) -> None:
        """Test a no-op stack update still completes with outputs."""
        deployer.deploy.return_value = StackDeployment(
            stack_name="litellm-stack", status="UPDATE_COMPLETE", changed=False
        )
        progress: list[str] = []

        result = make_pipeline(config, clients, builder, deployer, progress).run()

        assert result.stack.changed is False
        assert "No changes to deploy. Stack is up to date" in progress
        assert result.exports.base_url.startswith("https://")

    def test_missing_template_fails_before_side_effects(
        self,
        config: DeploymentConfig,
        clients: AWSClients,
        builder: MagicMock,
        deployer: MagicMock,
        project_dir: Path,
    ) -> None:
        """Test preflight errors happen before any AWS call."""
        (project_dir / "template.yaml").unlink()

        with pytest.raises(ConfigError) as exc_info:
            make_pipeline(config, clients, builder, deployer).run()

        assert exc_info.value.field == "template_file"
        clients.ecr.describe_repositories.assert_not_called()
        builder.build.assert_not_called()

    def test_missing_build_context_fails_before_side_effects(
        self,
        config: DeploymentConfig,
        clients: AWSClients,
        builder: MagicMock,
        deployer: MagicMock,
        project_dir: Path,
    ) -> None:
        """Test the build context is checked up front."""
        (project_dir / "litellm-image" / "Dockerfile").unlink()
        (project_dir / "litellm-image").rmdir()

        with pytest.raises(ConfigError):
            make_pipeline(config, clients, builder, deployer).run()

        clients.ecr.describe_repositories.assert_not_called()

    def test_push_failure_stops_pipeline(
        self,
        config: DeploymentConfig,
        clients: AWSClients,
        builder: MagicMock,
        deployer: MagicMock,
    ) -> None:
        """Test later steps do not run after a failed push."""
        builder.push.side_effect = DeploymentError("push", "denied")

        with pytest.raises(DeploymentError):
            make_pipeline(config, clients, builder, deployer).run()

        clients.ec2.describe_managed_prefix_lists.assert_not_called()
        deployer.deploy.assert_not_called()

    def test_missing_prefix_list_stops_before_stack(
        self,
        config: DeploymentConfig,
        clients: AWSClients,
        builder: MagicMock,
        deployer: MagicMock,
    ) -> None:
        """Test the stack is never touched without a prefix list."""
        clients.ec2.describe_managed_prefix_lists.return_value = {"PrefixLists": []}

        with pytest.raises(PrefixListNotFoundError):
            make_pipeline(config, clients, builder, deployer).run()

        deployer.deploy.assert_not_called()

    def test_default_deployer_uses_cloudformation_client(
        self, config: DeploymentConfig, clients: AWSClients
    ) -> None:
        """Test the default deployer wraps the CloudFormation client."""
        from proxydeck.deploy.deployers import CloudFormationDeployer

        pipeline = CloudDeployPipeline(config, clients)

        assert isinstance(pipeline.deployer, CloudFormationDeployer)
