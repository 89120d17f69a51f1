# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""CLI entry point for nginxdock."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import click

from nginxdock import __version__


@dataclasses.dataclass
class CliContext:
    """Shared state passed through Click's context object."""

    project_dir: Path | None = None
    config_file: Path | None = None
    socket: str | None = None
    verbose: bool = False


@click.group(invoke_without_command=True)
@click.option(
    "--project-dir",
    "-C",
    envvar="NGINXDOCK_PROJECT",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project directory holding config.env (default: nearest parent with one, else cwd).",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to the key=value config file (default: <project>/config.env).",
)
@click.option(
    "--socket",
    envvar="NGINXDOCK_SOCKET",
    default=None,
    help="Path to container engine socket.",
)
@click.option("--verbose", "-v", is_flag=True, help="Show the resolved configuration.")
@click.version_option(version=__version__, prog_name="nginxdock")
@click.pass_context
def cli(
    ctx: click.Context,
    project_dir: Path | None,
    config_file: Path | None,
    socket: str | None,
    *,
    verbose: bool,
) -> None:
    """Manage a Docker-hosted Nginx container serving static files."""
    ctx.ensure_object(dict)
    ctx.obj = CliContext(
        project_dir=project_dir,
        config_file=config_file,
        socket=socket,
        verbose=verbose,
    )
    if ctx.invoked_subcommand is None:
        click.echo("Error: no command given.\n", err=True)
        click.echo(ctx.get_help(), err=True)
        ctx.exit(1)


# --- Register commands ---

from nginxdock.cli._commands import (  # noqa: E402
    exec_cmd,
    help_cmd,
    history_cmd,
    init_cmd,
    logs_cmd,
    reload_cmd,
    remove_cmd,
    restart_cmd,
    start_cmd,
    status_cmd,
    stop_cmd,
)

cli.add_command(init_cmd)
cli.add_command(start_cmd)
cli.add_command(stop_cmd)
cli.add_command(restart_cmd)
cli.add_command(status_cmd)
cli.add_command(logs_cmd)
cli.add_command(reload_cmd)
cli.add_command(exec_cmd)
cli.add_command(exec_cmd, name="shell")
cli.add_command(remove_cmd)
cli.add_command(remove_cmd, name="rm")
cli.add_command(history_cmd)
cli.add_command(help_cmd)
