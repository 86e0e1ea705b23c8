"""CLI commands for deploying the gateway to AWS and tearing it down.

Implements 'proxydeck deploy-cloud' and 'proxydeck delete', plus the error
handling and configuration helpers shared by every command.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import Any

import click

from proxydeck.config.loader import load_deployment_config
from proxydeck.deploy.aws import AWSClients
from proxydeck.deploy.deployers import create_deployer
from proxydeck.deploy.pipeline import CloudDeployPipeline
from proxydeck.deploy.registry import RegistryManager
from proxydeck.deploy.teardown import TeardownSequencer, is_affirmative
from proxydeck.lib.errors import ConfigError, DeploymentError, PreconditionError
from proxydeck.lib.logging_config import get_logger
from proxydeck.models.deployment import DeploymentConfig

logger = get_logger(__name__)


@contextmanager
def handle_deployment_errors() -> Generator[None, None, None]:
    """Context manager for consistent error handling in commands.

    Exit codes:
        1: Precondition failure (missing secret or credentials)
        2: Configuration error
        3: Deployment/execution error
    """
    try:
        yield
    except PreconditionError as e:
        logger.debug(f"Precondition failed: {e}")
        click.secho("Error: Precondition failed", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(1)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        click.secho("Error: Configuration error", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(2)
    except DeploymentError as e:
        logger.error(f"Deployment error: {e}")
        click.secho(f"Error: {e.operation} failed", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(3)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(3)


def resolve_config(
    ctx: click.Context,
    overrides: dict[str, Any] | None = None,
    require_secrets: bool = True,
) -> DeploymentConfig:
    """Resolve configuration from CLI overrides, the .env file and environment."""
    options = ctx.find_root().obj or {}
    return load_deployment_config(
        overrides=overrides,
        environ=os.environ,
        env_file=options.get("env_file"),
        require_secrets=require_secrets,
    )


def progress_printer(ctx: click.Context) -> Callable[[str], None]:
    """Return a progress callback honouring --quiet."""
    options = ctx.find_root().obj or {}
    if options.get("quiet"):
        return lambda line: None
    return click.echo


def echo_exports(lines: list[str]) -> None:
    """Print client export lines."""
    click.echo()
    click.secho("Configure Claude Code to use this endpoint:", bold=True)
    for line in lines:
        click.echo(line)


@click.command(name="deploy-cloud")
@click.argument("region", required=False)
@click.argument("stack_name", required=False)
@click.argument("repo_name", required=False)
@click.argument("name_prefix", required=False)
@click.pass_context
def deploy_cloud(
    ctx: click.Context,
    region: str | None,
    stack_name: str | None,
    repo_name: str | None,
    name_prefix: str | None,
) -> None:
    """Deploy the gateway to AWS behind CloudFront.

    Builds and pushes the image to ECR, converges the CloudFormation stack and
    prints the HTTPS endpoint.

    Example:

        proxydeck deploy-cloud

        proxydeck deploy-cloud eu-west-1 my-stack my-repo my-prefix
    """
    with handle_deployment_errors():
        config = resolve_config(
            ctx,
            {
                "region": region,
                "stack_name": stack_name,
                "repository_name": repo_name,
                "name_prefix": name_prefix,
            },
        )
        clients = AWSClients.from_config(config)
        pipeline = CloudDeployPipeline(config, clients, progress=progress_printer(ctx))
        result = pipeline.run()

    click.echo()
    click.secho("Deployment complete!", fg="green", bold=True)
    click.echo(f"  Image:       {result.image_uri}")
    click.echo(f"  Prefix list: {result.edge_prefix_list_id}")
    click.echo(f"  Stack:       {result.stack.stack_name} ({result.stack.status})")
    click.echo(f"LiteLLM HTTPS URL: {result.exports.base_url}")
    echo_exports(result.exports.lines())


def _ask_confirmation() -> bool | str:
    """Prompt for the teardown decision; EOF or Ctrl-C counts as a refusal."""
    try:
        answer: str = click.prompt(
            "Are you sure? (y/N)", default="", show_default=False
        )
    except click.Abort:
        click.echo()
        return False
    return answer


@click.command(name="delete")
@click.argument("stack_name", required=False)
@click.argument("region", required=False)
@click.argument("repo_name", required=False)
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    help="Skip confirmation prompt",
)
@click.pass_context
def delete(
    ctx: click.Context,
    stack_name: str | None,
    region: str | None,
    repo_name: str | None,
    yes: bool,
) -> None:
    """Delete the CloudFormation stack and all AWS resources."""
    with handle_deployment_errors():
        config = resolve_config(
            ctx,
            {
                "stack_name": stack_name,
                "region": region,
                "repository_name": repo_name,
            },
        )

        click.echo("Deleting deployment...")
        click.echo(
            "This will delete ALL resources including ECR repository and images."
        )

        clients = AWSClients.from_config(config)
        sequencer = TeardownSequencer(
            deployer=create_deployer(config, clients.cloudformation),
            registry=RegistryManager(clients.ecr),
            stack_name=config.stack_name,
            repository_name=config.repository_name,
        )
        sequencer.request()

        decision: bool | str = True if yes else _ask_confirmation()
        if is_affirmative(decision):
            click.echo(f"Deleting CloudFormation stack {config.stack_name}...")
            click.echo("Waiting for stack deletion...")
        result = sequencer.confirm(decision)

    if result.aborted:
        click.secho("Deletion cancelled", fg="yellow")
        return

    if result.repository_already_absent:
        click.echo(f"Repository {result.repository_name} was already absent")
    click.secho("Cleanup complete", fg="green", bold=True)
