"""CLI commands for running the gateway locally."""

from __future__ import annotations

import os

import click

from proxydeck.cli.commands.deploy import (
    echo_exports,
    handle_deployment_errors,
    resolve_config,
)
from proxydeck.deploy.local import LocalRunner
from proxydeck.lib.errors import ProxyDeckError
from proxydeck.lib.logging_config import get_logger

logger = get_logger(__name__)


@click.command(name="deploy-local")
@click.pass_context
def deploy_local(ctx: click.Context) -> None:
    """Run the gateway locally with Docker Compose.

    Requires AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY (Bedrock access is
    enough).
    """
    with handle_deployment_errors():
        config = resolve_config(ctx)
        click.echo("Starting LiteLLM locally...")
        exports = LocalRunner(base_env=os.environ).start(config)

    click.echo(f"LiteLLM running at: {exports.base_url}")
    echo_exports(exports.lines())


@click.command(name="clean")
@click.pass_context
def clean(ctx: click.Context) -> None:
    """Stop local containers and clean up."""
    click.echo("Cleaning up local environment...")
    try:
        config = resolve_config(ctx, require_secrets=False)
        removed = LocalRunner(base_env=os.environ).clean(config)
    except ProxyDeckError as e:
        logger.warning(f"Local cleanup incomplete: {e}")
        click.secho(f"Warning: {e}", fg="yellow", err=True)
    else:
        click.echo(f"Removed {len(removed)} project image(s)")
    click.echo("Local cleanup complete")
