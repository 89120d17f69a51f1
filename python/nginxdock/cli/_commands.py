# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""CLI command implementations."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import click

if TYPE_CHECKING:
    from nginxdock.cli.main import CliContext
    from nginxdock.controller import LifecycleController
    from nginxdock.errors import NginxDockError
    from nginxdock.types import ActionResult

from nginxdock.cli._output import (
    format_error,
    print_info,
    print_success,
    print_warning,
)

_MESSAGES: dict[str, str] = {
    "created": "Container '{name}' created and started ({detail})",
    "started": "Container '{name}' started",
    "already-running": "Container '{name}' is already running",
    "stopped": "Container '{name}' stopped",
    "not-running": "Container '{name}' is not running",
    "absent": "Container '{name}' does not exist",
    "restarted": "Container '{name}' restarted",
    "removed": "Container '{name}' removed",
    "reloaded": "Nginx configuration reloaded in '{name}'",
}


def _get_ctx(ctx: click.Context) -> CliContext:
    """Extract the CliContext from Click's context object."""
    return ctx.obj  # type: ignore[no-any-return]


def _project_root(cli_ctx: CliContext) -> Path:
    """Resolve the project directory: option, nearest marked parent, or cwd."""
    from nginxdock.projects import find_project_root  # noqa: PLC0415

    if cli_ctx.project_dir is not None:
        return cli_ctx.project_dir.resolve()
    return find_project_root() or Path.cwd().resolve()


def _fail(exc: NginxDockError) -> NoReturn:
    format_error(exc)
    raise SystemExit(1) from exc


def _build_controller(ctx: click.Context, *, assume_yes: bool = False) -> LifecycleController:
    """Load configuration fresh and wire a controller to the Docker engine."""
    import nginxdock  # noqa: PLC0415
    from nginxdock.cli._output import confirm, format_config  # noqa: PLC0415

    cli_ctx = _get_ctx(ctx)
    root = _project_root(cli_ctx)
    settings = nginxdock.load_settings(root)
    try:
        config = nginxdock.load_deployment_config(root, cli_ctx.config_file)
    except nginxdock.NginxDockError as exc:
        _fail(exc)

    if config.source is None:
        print_warning(
            f"No config file found in {root}; using defaults. "
            "Copy config.env.example to config.env (or run 'nginxdock init')."
        )

    runtime = nginxdock.DockerRuntime(cli_ctx.socket or settings.socket)
    if cli_ctx.verbose:
        format_config(config, cli_ctx.socket or settings.socket)

    history = nginxdock.HistoryLogger(
        nginxdock.history_path(root),
        enabled=settings.auto_log,
        max_entries=settings.max_history_entries,
        on_error=lambda exc: print_warning(f"Could not write history: {exc}"),
    )
    return nginxdock.LifecycleController(
        config,
        runtime,
        confirm=(lambda _prompt: True) if assume_yes else confirm,
        history=history,
        shell=settings.shell,
    )


def _report(result: ActionResult) -> None:
    """Print an ActionResult: success for changes, a warning for no-ops."""
    msg = _MESSAGES.get(result.action, "{name}: {action}").format(
        name=result.name, action=result.action, detail=result.detail
    )
    if result.changed:
        print_success(msg)
    else:
        print_warning(msg)


# ---------------------------------------------------------------------------
# Project setup
# ---------------------------------------------------------------------------


@click.command("init")
@click.argument("path", required=False, default=None)
@click.option("--name", default=None, help="Container name (default: nginx_<directory>).")
@click.option("--port", default="8080:80", show_default=True, help="Port mapping HOST:CONTAINER.")
@click.option("--web-root", default="/data/www", show_default=True, help="Static files dir.")
def init_cmd(path: str | None, name: str | None, port: str, web_root: str) -> None:
    """Scaffold config.env and Nginx configuration templates."""
    import nginxdock  # noqa: PLC0415

    resolved = Path(path) if path else None
    try:
        report = nginxdock.init_project(
            resolved, container_name=name, port=port, web_root=web_root
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--port") from exc

    for created in report.created:
        print_info(f"Created {created.relative_to(report.root)}")
    for skipped in report.skipped:
        print_warning(f"Kept existing {skipped.relative_to(report.root)}")
    print_success(f"Project initialized at {report.root}")


# ---------------------------------------------------------------------------
# Lifecycle commands
# ---------------------------------------------------------------------------


@click.command("start")
@click.option("--yes", "-y", is_flag=True, help="Create a missing web root without asking.")
@click.pass_context
def start_cmd(ctx: click.Context, *, yes: bool) -> None:
    """Start the web server, creating the container if needed."""
    import nginxdock  # noqa: PLC0415

    controller = _build_controller(ctx, assume_yes=yes)
    try:
        result = controller.start()
    except nginxdock.NginxDockError as exc:
        _fail(exc)
    _report(result)
    if result.action == "created":
        print_info(f"Access URL: {controller.config.access_url}")


@click.command("stop")
@click.pass_context
def stop_cmd(ctx: click.Context) -> None:
    """Stop the web server (the container is kept)."""
    import nginxdock  # noqa: PLC0415

    controller = _build_controller(ctx)
    try:
        result = controller.stop()
    except nginxdock.NginxDockError as exc:
        _fail(exc)
    _report(result)


@click.command("restart")
@click.option("--yes", "-y", is_flag=True, help="Create a missing web root without asking.")
@click.pass_context
def restart_cmd(ctx: click.Context, *, yes: bool) -> None:
    """Restart the web server; creates the container if it does not exist."""
    import nginxdock  # noqa: PLC0415

    controller = _build_controller(ctx, assume_yes=yes)
    try:
        result = controller.restart()
    except nginxdock.NginxDockError as exc:
        _fail(exc)
    _report(result)
    if result.action == "created":
        print_info(f"Access URL: {controller.config.access_url}")


@click.command("remove")
@click.pass_context
def remove_cmd(ctx: click.Context) -> None:
    """Stop and remove the container."""
    import nginxdock  # noqa: PLC0415

    controller = _build_controller(ctx)
    try:
        result = controller.remove()
    except nginxdock.NginxDockError as exc:
        _fail(exc)
    _report(result)


@click.command("reload")
@click.pass_context
def reload_cmd(ctx: click.Context) -> None:
    """Check the Nginx configuration and reload it without restarting."""
    import nginxdock  # noqa: PLC0415

    controller = _build_controller(ctx)
    try:
        result = controller.reload()
    except nginxdock.NginxDockError as exc:
        _fail(exc)
    _report(result)


# ---------------------------------------------------------------------------
# Inspection commands
# ---------------------------------------------------------------------------


@click.command("status")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def status_cmd(ctx: click.Context, *, json_output: bool) -> None:
    """Show whether the container exists and is running."""
    import nginxdock  # noqa: PLC0415
    from nginxdock.cli._output import format_status  # noqa: PLC0415

    controller = _build_controller(ctx)
    try:
        status = controller.status()
    except nginxdock.NginxDockError as exc:
        _fail(exc)
    format_status(status, json_output=json_output)


@click.command("logs")
@click.option(
    "-n", "--tail", "tail", type=click.IntRange(min=0), default=None, help="Show the last N lines."
)
@click.option("--follow", "-f", is_flag=True, help="Stream new output (default without -n).")
@click.pass_context
def logs_cmd(ctx: click.Context, tail: int | None, *, follow: bool) -> None:
    """View container logs (Ctrl+C to quit when following)."""
    import nginxdock  # noqa: PLC0415
    from nginxdock.cli._output import write_log  # noqa: PLC0415

    controller = _build_controller(ctx)
    try:
        controller.logs(write_log, tail=tail, follow=follow or tail is None)
    except nginxdock.NginxDockError as exc:
        _fail(exc)
    except KeyboardInterrupt:
        return


@click.command("exec")
@click.pass_context
def exec_cmd(ctx: click.Context) -> None:
    """Open an interactive shell inside the container."""
    import nginxdock  # noqa: PLC0415

    controller = _build_controller(ctx)
    try:
        code = controller.exec()
    except nginxdock.NginxDockError as exc:
        _fail(exc)
    raise SystemExit(code)


@click.command("history")
@click.option("--last", "last_n", type=int, default=20, help="Number of entries to show.")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def history_cmd(ctx: click.Context, *, last_n: int, json_output: bool) -> None:
    """Show recorded lifecycle operations for this project."""
    import nginxdock  # noqa: PLC0415
    from nginxdock.cli._output import format_history  # noqa: PLC0415

    root = _project_root(_get_ctx(ctx))
    entries = nginxdock.HistoryLogger(nginxdock.history_path(root)).read_history()
    format_history(entries[-last_n:] if last_n > 0 else entries, json_output=json_output)


@click.command("help")
@click.pass_context
def help_cmd(ctx: click.Context) -> None:
    """Show this help message."""
    parent = ctx.parent if ctx.parent is not None else ctx
    click.echo(parent.get_help())
