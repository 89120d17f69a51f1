# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Rich output formatters for the CLI."""

from __future__ import annotations

import dataclasses
import json
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nginxdock._config import DeploymentConfig
    from nginxdock.errors import NginxDockError
    from nginxdock.types import ContainerStatus

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

_console = Console()
_err_console = Console(stderr=True)


def format_status(status: ContainerStatus, *, json_output: bool = False) -> None:
    """Print container status as a rich panel or JSON."""
    if json_output:
        data = dataclasses.asdict(status)
        data["state"] = status.state.value
        click_echo_json(data)
        return

    style = {"running": "green", "stopped": "yellow"}.get(status.state.value, "red")
    lines = [
        f"[bold]Name:[/bold]   {escape(status.name)}",
        f"[bold]State:[/bold]  [{style}]{status.state.value}[/{style}]",
    ]
    for container_port, bindings in sorted(status.ports.items()):
        lines.append(f"[bold]Port:[/bold]   {', '.join(bindings)} -> {container_port}")
    if status.access_url:
        lines.append(f"[bold]URL:[/bold]    {status.access_url}")

    panel = Panel("\n".join(lines), title=f"[cyan]{escape(status.name)}[/cyan]", expand=False)
    _console.print(panel)


def format_config(config: DeploymentConfig, socket_path: str | None = None) -> None:
    """Print the resolved deployment configuration."""
    table = Table(title="Configuration", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Source", escape(str(config.source)) if config.source else "[dim]defaults[/dim]")
    table.add_row("Container", escape(config.container_name))
    table.add_row("Image", escape(config.image_reference))
    table.add_row("Port", escape(config.port_mapping))
    table.add_row("Web root", escape(str(config.web_root)))
    table.add_row("Nginx config", escape(str(config.nginx_conf_dir)))
    table.add_row("Log rotation", escape(f"{config.log_max_size} x {config.log_max_file}"))
    if socket_path:
        table.add_row("Socket", escape(socket_path))
    _err_console.print(table)


def format_history(entries: list[dict[str, object]], *, json_output: bool = False) -> None:
    """Print operation history entries as a rich table or JSON."""
    if json_output:
        click_echo_json(entries)
        return

    if not entries:
        _console.print("[dim]No history entries found.[/dim]")
        return

    table = Table(title="Operation History")
    table.add_column("Timestamp", style="dim")
    table.add_column("Container", style="cyan")
    table.add_column("Action")
    table.add_column("Result")
    table.add_column("Detail")

    for entry in entries:
        error = entry.get("error")
        if error:
            result = f"[red]{escape(str(error))}[/red]"
        else:
            result = f"[green]{escape(str(entry.get('state', '')))}[/green]"
        table.add_row(
            escape(str(entry.get("timestamp", ""))),
            escape(str(entry.get("container", ""))),
            escape(str(entry.get("action", ""))),
            result,
            escape(str(entry.get("detail", ""))[:60]),
        )

    _console.print(table)


def format_error(err: NginxDockError) -> None:
    """Print an error as a rich panel with suggestions."""
    title, suggestion = _error_info(err)
    lines = [escape(str(err))]
    if suggestion:
        lines.append(f"\n[dim]{suggestion}[/dim]")

    panel = Panel(
        "\n".join(lines),
        title=f"[red]{title}[/red]",
        expand=False,
    )
    _err_console.print(panel)


def _error_info(err: NginxDockError) -> tuple[str, str]:
    """Map an error to a title and suggestion string."""
    from nginxdock.errors import (  # noqa: PLC0415
        ConfigInvalid,
        ContainerNotFound,
        ContainerNotRunning,
        ImageNotFound,
        RuntimeCommandFailed,
        RuntimeUnavailable,
    )

    if isinstance(err, RuntimeUnavailable):
        return "Engine Not Available", "Install and start Docker, then try again."
    if isinstance(err, ConfigInvalid):
        return "Invalid Configuration", "Check config.env, or run 'nginxdock init' to scaffold it."
    if isinstance(err, ContainerNotFound):
        return "Container Not Found", "Run 'nginxdock start' to create it."
    if isinstance(err, ContainerNotRunning):
        return "Container Not Running", "Run 'nginxdock start' first."
    if isinstance(err, ImageNotFound):
        return "Image Not Found", "Check NGINX_VERSION / CUSTOM_IMAGE in config.env."
    if isinstance(err, RuntimeCommandFailed):
        return "Engine Command Failed", ""
    return "Error", ""


def print_success(msg: str) -> None:
    """Print a success message with a checkmark."""
    _console.print(f"[green]✓[/green] {escape(msg)}")


def print_info(msg: str) -> None:
    """Print a neutral progress message."""
    _console.print(f"[cyan]•[/cyan] {escape(msg)}")


def print_warning(msg: str) -> None:
    """Print a warning to stderr."""
    _err_console.print(f"[yellow]![/yellow] {escape(msg)}")


def confirm(msg: str) -> bool:
    """Prompt for confirmation. Returns True if confirmed; EOF counts as no."""
    try:
        answer = _console.input(f"[yellow]{escape(msg)} \\[y/N]:[/yellow] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def write_log(stream: str, text: str) -> None:
    """Write raw container log text to the matching stream."""
    target = sys.stderr if stream == "stderr" else sys.stdout
    target.write(text)
    target.flush()


def click_echo_json(data: object) -> None:
    """Serialize data to JSON and echo to stdout."""
    sys.stdout.write(json.dumps(data, indent=2, default=str) + "\n")
