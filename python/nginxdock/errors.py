# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class NginxDockError(Exception):
    """Base exception for all nginxdock errors."""


class RuntimeUnavailable(NginxDockError):
    """The container engine cannot be reached at all."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        msg = "Container engine is not available"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class SocketConnectionError(RuntimeUnavailable):
    """Cannot connect to the container engine socket."""

    def __init__(self, socket_path: str, detail: str = "") -> None:
        self.socket_path = socket_path
        msg = f"cannot connect to socket at {socket_path}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class EngineNotRunning(RuntimeUnavailable):
    """No container engine socket found."""

    def __init__(self) -> None:
        super().__init__(
            "no engine socket found. Is Docker running? Try: sudo systemctl start docker"
        )


class ConfigInvalid(NginxDockError):
    """Deployment configuration is missing or unusable."""

    def __init__(self, problems: Iterable[str]) -> None:
        self.problems = tuple(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))


class RuntimeCommandFailed(NginxDockError):
    """The engine rejected or failed a command."""

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        self.detail = detail
        msg = f"{operation} failed"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class SocketCommunicationError(RuntimeCommandFailed):
    """Error during communication over the socket."""

    def __init__(self, detail: str = "") -> None:
        super().__init__("socket communication", detail)


class ImageNotFound(RuntimeCommandFailed):
    """Requested image is not available locally and could not be pulled."""

    def __init__(self, image: str, detail: str = "") -> None:
        self.image = image
        super().__init__(f"pull of image {image}", detail or "image not found")


class ContainerError(NginxDockError):
    """Error related to a specific container."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        msg = f"Container '{name}'"
        if detail:
            msg = f"{msg} {detail}"
        super().__init__(msg)


class ContainerNotFound(ContainerError):
    """Container does not exist (HTTP 404)."""

    def __init__(self, name: str) -> None:
        super().__init__(name, "does not exist")


class ContainerNotRunning(ContainerError):
    """Container exists but is not running (HTTP 409)."""

    def __init__(self, name: str) -> None:
        super().__init__(name, "is not running")
