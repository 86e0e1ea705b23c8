"""Unit tests for the deploy-cloud and delete CLI commands.

Tests cover:
- deploy-cloud argument overrides and output
- Exit codes for precondition, configuration and deployment errors
- delete confirmation handling and teardown order
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from proxydeck.cli.main import main
from proxydeck.lib.errors import (
    DeploymentError,
    DockerNotAvailableError,
    PrefixListNotFoundError,
)
from proxydeck.models.deployment import (
    ClientExports,
    DeployResult,
    ImageURI,
    StackDeployment,
    StackOutputs,
)


@pytest.fixture
def deploy_result() -> DeployResult:
    """A successful cloud deployment."""
    return DeployResult(
        image_uri=ImageURI(
            registry="123456789012.dkr.ecr.eu-north-1.amazonaws.com",
            repository="litellm-repo",
            tag="20250101-120000",
        ),
        edge_prefix_list_id="pl-fab65193",
        stack=StackDeployment(
            stack_name="litellm-stack", status="CREATE_COMPLETE", changed=True
        ),
        outputs=StackOutputs(
            stack_name="litellm-stack",
            values={"CloudFrontURL": "https://d1.cloudfront.net"},
        ),
        exports=ClientExports(
            base_url="https://d1.cloudfront.net",
            auth_token="sk-master-cli",
            model="sonnet-4",
        ),
    )


@pytest.fixture
def mock_clients() -> MagicMock:
    """AWS clients where the stack and repository exist."""
    clients = MagicMock()
    clients.ecr.delete_repository.return_value = {}
    return clients


class TestDeployCloudCommand:
    """Tests for 'proxydeck deploy-cloud'."""

    def test_deploy_cloud_success(
        self, cli_runner: CliRunner, cli_env: Path, deploy_result: DeployResult
    ) -> None:
        """Test a successful deploy prints the URL and exports."""
        with (
            patch("proxydeck.cli.commands.deploy.AWSClients") as mock_clients,
            patch("proxydeck.cli.commands.deploy.CloudDeployPipeline") as mock_pipeline,
        ):
            mock_pipeline.return_value.run.return_value = deploy_result

            result = cli_runner.invoke(main, ["deploy-cloud"])

        assert result.exit_code == 0, result.output
        assert "LiteLLM HTTPS URL: https://d1.cloudfront.net" in result.output
        assert "export ANTHROPIC_BASE_URL=https://d1.cloudfront.net" in result.output
        assert "pl-fab65193" in result.output
        config = mock_clients.from_config.call_args[0][0]
        assert config.region == "eu-north-1"

    def test_positional_overrides(
        self, cli_runner: CliRunner, cli_env: Path, deploy_result: DeployResult
    ) -> None:
        """Test REGION STACK_NAME REPO_NAME NAME_PREFIX override defaults."""
        with (
            patch("proxydeck.cli.commands.deploy.AWSClients") as mock_clients,
            patch("proxydeck.cli.commands.deploy.CloudDeployPipeline") as mock_pipeline,
        ):
            mock_pipeline.return_value.run.return_value = deploy_result

            result = cli_runner.invoke(
                main, ["deploy-cloud", "us-east-1", "gw-stack", "gw-repo", "gw"]
            )

        assert result.exit_code == 0, result.output
        config = mock_clients.from_config.call_args[0][0]
        assert config.region == "us-east-1"
        assert config.stack_name == "gw-stack"
        assert config.repository_name == "gw-repo"
        assert config.name_prefix == "gw"

    def test_missing_secret_exits_before_aws(
        self,
        cli_runner: CliRunner,
        cli_env: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test a missing secret exits 1 before any client is created."""
        monkeypatch.delenv("ANTHROPIC_API_KEY")

        with patch("proxydeck.cli.commands.deploy.AWSClients") as mock_clients:
            result = cli_runner.invoke(main, ["deploy-cloud"])

        assert result.exit_code == 1
        assert "ANTHROPIC_API_KEY is not set" in result.output
        mock_clients.from_config.assert_not_called()

    def test_invalid_region_exits_2(self, cli_runner: CliRunner, cli_env: Path) -> None:
        """Test configuration errors exit with code 2."""
        with patch("proxydeck.cli.commands.deploy.AWSClients"):
            result = cli_runner.invoke(main, ["deploy-cloud", "moon-base"])

        assert result.exit_code == 2
        assert "Configuration error" in result.output

    @pytest.mark.parametrize(
        "error",
        [
            DeploymentError("push", "denied: not authorized"),
            DockerNotAvailableError("init"),
            PrefixListNotFoundError("il-central-1", "com.example.list"),
        ],
    )
    def test_deployment_errors_exit_3(
        self, cli_runner: CliRunner, cli_env: Path, error: DeploymentError
    ) -> None:
        """Test external failures exit with code 3 and report the step."""
        with (
            patch("proxydeck.cli.commands.deploy.AWSClients"),
            patch("proxydeck.cli.commands.deploy.CloudDeployPipeline") as mock_pipeline,
        ):
            mock_pipeline.return_value.run.side_effect = error

            result = cli_runner.invoke(main, ["deploy-cloud"])

        assert result.exit_code == 3
        assert f"Error: {error.operation} failed" in result.output
        assert error.message in result.output

    def test_env_file_option(
        self, cli_runner: CliRunner, cli_env: Path, deploy_result: DeployResult
    ) -> None:
        """Test --env-file values override the environment."""
        env_file = cli_env / "prod.env"
        env_file.write_text("STACK_NAME=prod-stack\n")

        with (
            patch("proxydeck.cli.commands.deploy.AWSClients") as mock_clients,
            patch("proxydeck.cli.commands.deploy.CloudDeployPipeline") as mock_pipeline,
        ):
            mock_pipeline.return_value.run.return_value = deploy_result

            result = cli_runner.invoke(
                main, ["--env-file", str(env_file), "deploy-cloud"]
            )

        assert result.exit_code == 0, result.output
        assert mock_clients.from_config.call_args[0][0].stack_name == "prod-stack"


class TestDeleteCommand:
    """Tests for 'proxydeck delete'."""

    def test_delete_declined(
        self, cli_runner: CliRunner, cli_env: Path, mock_clients: MagicMock
    ) -> None:
        """Test answering N cancels without touching any resource."""
        with patch(
            "proxydeck.cli.commands.deploy.AWSClients.from_config",
            return_value=mock_clients,
        ):
            result = cli_runner.invoke(main, ["delete"], input="N\n")

        assert result.exit_code == 0, result.output
        assert "Are you sure? (y/N)" in result.output
        assert "Deletion cancelled" in result.output
        mock_clients.cloudformation.delete_stack.assert_not_called()
        mock_clients.ecr.delete_repository.assert_not_called()

    def test_delete_empty_answer_declines(
        self, cli_runner: CliRunner, cli_env: Path, mock_clients: MagicMock
    ) -> None:
        """Test the default answer is no."""
        with patch(
            "proxydeck.cli.commands.deploy.AWSClients.from_config",
            return_value=mock_clients,
        ):
            result = cli_runner.invoke(main, ["delete"], input="\n")

        assert result.exit_code == 0
        assert "Deletion cancelled" in result.output
        mock_clients.cloudformation.delete_stack.assert_not_called()

    def test_delete_end_of_input_declines(
        self, cli_runner: CliRunner, cli_env: Path, mock_clients: MagicMock
    ) -> None:
        """Test closed input at the prompt cancels instead of failing."""
        with patch(
            "proxydeck.cli.commands.deploy.AWSClients.from_config",
            return_value=mock_clients,
        ):
            result = cli_runner.invoke(main, ["delete"], input="")

        assert result.exit_code == 0, result.output
        assert "Deletion cancelled" in result.output
        mock_clients.cloudformation.delete_stack.assert_not_called()
        mock_clients.ecr.delete_repository.assert_not_called()

    def test_delete_confirmed(
        self, cli_runner: CliRunner, cli_env: Path, mock_clients: MagicMock
    ) -> None:
        """Test the stack is deleted and awaited before the repository."""
        with patch(
            "proxydeck.cli.commands.deploy.AWSClients.from_config",
            return_value=mock_clients,
        ):
            result = cli_runner.invoke(
                main, ["delete", "gw-stack", "eu-west-1", "gw-repo"], input="y\n"
            )

        assert result.exit_code == 0, result.output
        assert "Cleanup complete" in result.output
        mock_clients.cloudformation.delete_stack.assert_called_once_with(
            StackName="gw-stack"
        )
        mock_clients.cloudformation.get_waiter.assert_called_once_with(
            "stack_delete_complete"
        )
        mock_clients.ecr.delete_repository.assert_called_once_with(
            repositoryName="gw-repo", force=True
        )
        call_names = [c[0] for c in mock_clients.mock_calls]
        assert call_names.index("cloudformation.get_waiter().wait") < call_names.index(
            "ecr.delete_repository"
        )

    def test_delete_yes_flag_skips_prompt(
        self, cli_runner: CliRunner, cli_env: Path, mock_clients: MagicMock
    ) -> None:
        """Test --yes confirms without prompting."""
        with patch(
            "proxydeck.cli.commands.deploy.AWSClients.from_config",
            return_value=mock_clients,
        ):
            result = cli_runner.invoke(main, ["delete", "--yes"])

        assert result.exit_code == 0, result.output
        assert "Are you sure?" not in result.output
        mock_clients.cloudformation.delete_stack.assert_called_once_with(
            StackName="litellm-stack"
        )

    def test_delete_absent_repository(
        self,
        cli_runner: CliRunner,
        cli_env: Path,
        mock_clients: MagicMock,
        client_error: Any,
    ) -> None:
        """Test a repository that is already gone still completes."""
        mock_clients.ecr.delete_repository.side_effect = client_error(
            "RepositoryNotFoundException"
        )

        with patch(
            "proxydeck.cli.commands.deploy.AWSClients.from_config",
            return_value=mock_clients,
        ):
            result = cli_runner.invoke(main, ["delete", "-y"])

        assert result.exit_code == 0, result.output
        assert "already absent" in result.output

    def test_delete_stack_failure_exits_3(
        self,
        cli_runner: CliRunner,
        cli_env: Path,
        mock_clients: MagicMock,
        client_error: Any,
    ) -> None:
        """Test a rejected stack deletion keeps the repository."""
        mock_clients.cloudformation.delete_stack.side_effect = client_error(
            "AccessDenied", "not authorized to perform cloudformation:DeleteStack"
        )

        with patch(
            "proxydeck.cli.commands.deploy.AWSClients.from_config",
            return_value=mock_clients,
        ):
            result = cli_runner.invoke(main, ["delete", "-y"])

        assert result.exit_code == 3
        assert "cloudformation:DeleteStack" in result.output
        mock_clients.ecr.delete_repository.assert_not_called()
