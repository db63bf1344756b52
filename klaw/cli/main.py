"""klaw command-line interface."""

from __future__ import annotations

import asyncio

import click

from klaw.config import default_config_path
from klaw.errors import KlawError

_CONFIG_HELP = "Path to the YAML configuration file (env: KLAW_CONFIG)."
_config_option = click.option(
    "-c", "--config", "config_path", default=default_config_path, show_default="configs/config.yaml", help=_CONFIG_HELP
)


@click.group()
@click.version_option(package_name="klaw")
def cli() -> None:
    """klaw - multi-cluster Kubernetes monitoring and chat-ops sidecar."""


@cli.command()
@_config_option
def serve(config_path: str) -> None:
    """Run the monitoring loops and the REST API until SIGTERM/SIGINT."""
    from klaw.app import main

    asyncio.run(main(config_path))


@cli.command("exec")
@_config_option
@click.argument("command", nargs=-1, required=True)
def exec_command(config_path: str, command: tuple[str, ...]) -> None:
    """Run one chat-ops COMMAND (e.g. ``cluster status prod``) and print the reply.

    Runs in a fresh process: monitoring commands use one sample taken on the
    spot, and alerts held by a running ``klaw serve`` are not visible.
    """
    from klaw.app import run_command

    try:
        reply = asyncio.run(run_command(" ".join(command), config_path))
    except KlawError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(reply.rstrip("\n"))
