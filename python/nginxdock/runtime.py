# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Container runtime capability interface and its Docker Engine implementation.

The lifecycle controller only sees :class:`ContainerRuntime`.
:class:`DockerRuntime` fulfils it by driving the async socket client to
completion for every call, so callers stay synchronous.
"""

from __future__ import annotations

import asyncio
import datetime
import shutil
import subprocess  # nosec B404
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from nginxdock import _socket_client as sc
from nginxdock._helpers import (
    build_binds,
    build_exposed_ports,
    build_log_config,
    build_port_bindings,
    parse_port_bindings,
    parse_port_mapping,
)
from nginxdock._stream import stream_name
from nginxdock.errors import (
    ContainerNotFound,
    EngineNotRunning,
    ImageNotFound,
    RuntimeUnavailable,
    SocketCommunicationError,
)
from nginxdock.types import ContainerState

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from nginxdock.types import ExecResult

_T = TypeVar("_T")

NGINX_TEST_COMMAND = ["nginx", "-t"]
NGINX_RELOAD_COMMAND = ["nginx", "-s", "reload"]

# Engine states in which the container's process is owned by the engine
_LIVE_STATES = frozenset({"running", "restarting"})


class ContainerRuntime(Protocol):
    """Operations the lifecycle controller needs from a container engine.

    Every container is addressed by its unique name.
    """

    def ping(self) -> None:
        """Raise :class:`RuntimeUnavailable` if the engine cannot be reached."""
        ...

    def state(self, name: str) -> ContainerState:
        """Return the current state of container *name*."""
        ...

    def exists(self, name: str) -> bool: ...

    def is_running(self, name: str) -> bool: ...

    def create(
        self,
        name: str,
        *,
        image: str,
        ports: str,
        mounts: dict[str, str],
        restart_policy: str,
        log_config: dict[str, str],
    ) -> str:
        """Create and start a container, returning its ID.

        Args:
            name: Container name.
            image: Image reference; pulled first if not present locally.
            ports: ``HOST:CONTAINER`` port mapping.
            mounts: Host path to container path, bound read/write.
            restart_policy: Engine restart policy name (e.g. ``always``).
            log_config: ``max-size`` / ``max-file`` options for the json-file driver.

        """
        ...

    def start(self, name: str) -> None: ...

    def stop(self, name: str) -> None: ...

    def restart(self, name: str) -> None: ...

    def remove(self, name: str) -> None: ...

    def logs(
        self,
        name: str,
        on_output: Callable[[str, str], None],
        *,
        tail: int | None = None,
        follow: bool = False,
    ) -> None:
        """Stream log output to ``on_output(stream, text)``."""
        ...

    def exec_interactive(self, name: str, command: list[str]) -> int:
        """Attach the current terminal to *command* in the container; return its exit code."""
        ...

    def check_config_syntax(self, name: str) -> ExecResult: ...

    def signal_reload(self, name: str) -> ExecResult: ...

    def inspect_port_bindings(self, name: str) -> dict[str, list[str]]: ...


class DockerRuntime:
    """:class:`ContainerRuntime` backed by the Docker Engine API over a Unix socket."""

    def __init__(self, socket_path: str | None = None, *, engine_cli: str | None = None) -> None:
        self._explicit_socket = socket_path
        self._socket_path: str | None = None
        self._engine_cli = engine_cli

    @property
    def socket_path(self) -> str:
        """The resolved engine socket.

        Raises:
            EngineNotRunning: If no socket can be found.

        """
        if self._socket_path is None:
            detected = sc.detect_socket(self._explicit_socket)
            if detected is None:
                raise EngineNotRunning
            self._socket_path = detected
        return self._socket_path

    def ping(self) -> None:
        try:
            self._run(sc.ping(self.socket_path))
        except SocketCommunicationError as exc:
            raise RuntimeUnavailable(str(exc)) from exc

    def state(self, name: str) -> ContainerState:
        try:
            data = self._run(sc.inspect_container(self.socket_path, name))
        except ContainerNotFound:
            return ContainerState.ABSENT
        engine_state = data.get("State") or {}
        status = str(engine_state.get("Status", "")).lower()
        if engine_state.get("Running") or status in _LIVE_STATES:
            return ContainerState.RUNNING
        return ContainerState.STOPPED

    def exists(self, name: str) -> bool:
        return self.state(name) is not ContainerState.ABSENT

    def is_running(self, name: str) -> bool:
        return self.state(name) is ContainerState.RUNNING

    def create(
        self,
        name: str,
        *,
        image: str,
        ports: str,
        mounts: dict[str, str],
        restart_policy: str,
        log_config: dict[str, str],
    ) -> str:
        host_port, container_port = parse_port_mapping(ports)
        host_config: dict[str, Any] = {
            "Binds": build_binds(mounts),
            "PortBindings": build_port_bindings(host_port, container_port),
            "RestartPolicy": {"Name": restart_policy},
            "LogConfig": build_log_config(log_config["max-size"], int(log_config["max-file"])),
        }
        labels = {
            "nginxdock.managed": "true",
            "nginxdock.created-at": datetime.datetime.now(tz=datetime.timezone.utc).isoformat(),
        }

        async def _create_and_start() -> str:
            kwargs: dict[str, Any] = {
                "exposed_ports": build_exposed_ports(container_port),
                "labels": labels,
                "host_config": host_config,
            }
            try:
                container_id = await sc.create_container(self.socket_path, name, image, **kwargs)
            except ImageNotFound:
                await sc.pull_image(self.socket_path, image)
                container_id = await sc.create_container(self.socket_path, name, image, **kwargs)
            await sc.start_container(self.socket_path, name)
            return container_id

        return self._run(_create_and_start())

    def start(self, name: str) -> None:
        self._run(sc.start_container(self.socket_path, name))

    def stop(self, name: str) -> None:
        self._run(sc.stop_container(self.socket_path, name))

    def restart(self, name: str) -> None:
        self._run(sc.restart_container(self.socket_path, name))

    def remove(self, name: str) -> None:
        self._run(sc.remove_container(self.socket_path, name))

    def logs(
        self,
        name: str,
        on_output: Callable[[str, str], None],
        *,
        tail: int | None = None,
        follow: bool = False,
    ) -> None:
        def _on_frame(stream_type: int, payload: bytes) -> None:
            on_output(stream_name(stream_type), payload.decode("utf-8", errors="replace"))

        self._run(sc.container_logs(self.socket_path, name, _on_frame, tail=tail, follow=follow))

    def exec_interactive(self, name: str, command: list[str]) -> int:
        engine = self.engine_cli
        try:
            ret = subprocess.run(  # noqa: S603  # nosec B603
                [engine, "exec", "-it", name, *command],
                check=False,
            )
        except FileNotFoundError as exc:
            raise RuntimeUnavailable(f"'{engine}' command not found on PATH") from exc
        return ret.returncode

    def check_config_syntax(self, name: str) -> ExecResult:
        return self._run(sc.exec_command(self.socket_path, name, NGINX_TEST_COMMAND))

    def signal_reload(self, name: str) -> ExecResult:
        return self._run(sc.exec_command(self.socket_path, name, NGINX_RELOAD_COMMAND))

    def inspect_port_bindings(self, name: str) -> dict[str, list[str]]:
        return parse_port_bindings(self._run(sc.inspect_container(self.socket_path, name)))

    @property
    def engine_cli(self) -> str:
        """Engine CLI used for interactive sessions (``docker`` or ``podman``)."""
        if self._engine_cli is None:
            self._engine_cli = _detect_engine_cli(self._socket_path or self._explicit_socket)
        return self._engine_cli

    @staticmethod
    def _run(coro: Coroutine[Any, Any, _T]) -> _T:
        return asyncio.run(coro)


def _detect_engine_cli(socket_path: str | None) -> str:
    """Detect which container engine CLI to use (docker or podman)."""
    if socket_path and "podman" in socket_path:
        return "podman"
    if socket_path and "docker" in socket_path:
        return "docker"
    if shutil.which("docker"):
        return "docker"
    if shutil.which("podman"):
        return "podman"
    return "docker"
