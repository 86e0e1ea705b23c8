"""ProxyDeck command-line entry point."""

from __future__ import annotations

from pathlib import Path

import click

from proxydeck import __version__
from proxydeck.cli.commands.deploy import (
    delete,
    deploy_cloud,
    handle_deployment_errors,
    resolve_config,
)
from proxydeck.cli.commands.local import clean, deploy_local
from proxydeck.config.defaults import ENV_FILE
from proxydeck.lib.logging_config import setup_logging


@click.group(invoke_without_command=True)
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=ENV_FILE,
    show_default=True,
    help="Override file with KEY=VALUE settings (optional)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose debug logging",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress progress output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, env_file: Path, verbose: bool, quiet: bool) -> None:
    """ProxyDeck: deploy a LiteLLM gateway locally or on AWS."""
    ctx.ensure_object(dict)
    ctx.obj.update({"env_file": env_file, "verbose": verbose, "quiet": quiet})

    setup_logging(verbose=verbose, quiet=quiet)

    # No subcommand: same as `proxydeck help`
    if ctx.invoked_subcommand is None:
        ctx.invoke(help_command)


@main.command(name="help")
@click.pass_context
def help_command(ctx: click.Context) -> None:
    """Show this help message."""
    with handle_deployment_errors():
        config = resolve_config(ctx, require_secrets=False)

    click.echo("Simple LiteLLM Deployment")
    click.echo("=========================")
    click.echo()
    click.echo("Available commands:")
    for name in sorted(main.commands):
        command = main.commands[name]
        click.echo(f"  {name:<20} {command.get_short_help_str(limit=60)}")
    click.echo()
    click.echo("Variables (can be overridden):")
    for key, value in config.describe().items():
        click.echo(f"  {key}={value}")
    click.echo("  IMAGE_TAG=<generated per deploy from the current time>")


main.add_command(deploy_local)
main.add_command(deploy_cloud)
main.add_command(delete)
main.add_command(clean)


if __name__ == "__main__":
    main()
