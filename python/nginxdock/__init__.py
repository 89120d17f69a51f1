# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

from __future__ import annotations

from importlib.metadata import version
from pathlib import Path

from nginxdock._config import (
    DeploymentConfig,
    ToolSettings,
    load_deployment_config,
    load_settings,
)
from nginxdock._logger import HistoryLogger
from nginxdock.controller import LifecycleController
from nginxdock.errors import (
    ConfigInvalid,
    ContainerError,
    ContainerNotFound,
    ContainerNotRunning,
    EngineNotRunning,
    ImageNotFound,
    NginxDockError,
    RuntimeCommandFailed,
    RuntimeUnavailable,
    SocketCommunicationError,
    SocketConnectionError,
)
from nginxdock.projects import InitReport, find_project_root, history_path, init_project
from nginxdock.runtime import ContainerRuntime, DockerRuntime
from nginxdock.types import ActionResult, ContainerState, ContainerStatus, ExecResult

__version__ = version("nginxdock")


def get_version() -> str:
    """Return the nginxdock package version string."""
    return __version__


def open_controller(
    project_dir: Path | None = None,
    *,
    socket_path: str | None = None,
) -> LifecycleController:
    """Build a controller for the project in *project_dir* (default: cwd).

    Loads ``config.env`` and settings fresh; history logging follows the
    ``auto_log`` setting. The returned controller never prompts.
    """
    root = (project_dir or find_project_root() or Path.cwd()).resolve()
    settings = load_settings(root)
    config = load_deployment_config(root)
    history = HistoryLogger(
        history_path(root),
        enabled=settings.auto_log,
        max_entries=settings.max_history_entries,
    )
    return LifecycleController(
        config,
        DockerRuntime(socket_path or settings.socket),
        history=history,
        shell=settings.shell,
    )


__all__ = [
    "ActionResult",
    "ConfigInvalid",
    "ContainerError",
    "ContainerNotFound",
    "ContainerNotRunning",
    "ContainerRuntime",
    "ContainerState",
    "ContainerStatus",
    "DeploymentConfig",
    "DockerRuntime",
    "EngineNotRunning",
    "ExecResult",
    "HistoryLogger",
    "ImageNotFound",
    "InitReport",
    "LifecycleController",
    "NginxDockError",
    "RuntimeCommandFailed",
    "RuntimeUnavailable",
    "SocketCommunicationError",
    "SocketConnectionError",
    "ToolSettings",
    "__version__",
    "find_project_root",
    "get_version",
    "history_path",
    "init_project",
    "load_deployment_config",
    "load_settings",
    "open_controller",
]
