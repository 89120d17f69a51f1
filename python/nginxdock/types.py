# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

from __future__ import annotations

import dataclasses
import enum


class ContainerState(str, enum.Enum):
    """Observed engine state of a named container."""

    ABSENT = "absent"
    STOPPED = "stopped"
    RUNNING = "running"


@dataclasses.dataclass(frozen=True)
class ContainerStatus:
    """Snapshot reported by ``status``."""

    name: str
    state: ContainerState
    ports: dict[str, list[str]] = dataclasses.field(default_factory=dict)
    access_url: str = ""

    @property
    def running(self) -> bool:
        """Return True if the container is running."""
        return self.state is ContainerState.RUNNING


@dataclasses.dataclass(frozen=True)
class ActionResult:
    """Outcome of a lifecycle operation.

    ``changed`` is False when the operation was a no-op (e.g. starting a
    container that is already running).
    """

    name: str
    action: str
    changed: bool
    state: ContainerState
    detail: str = ""


@dataclasses.dataclass(frozen=True)
class ExecResult:
    """Result of executing a command inside a container."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        """Return True if the command exited successfully (exit code 0)."""
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """Combined stderr and stdout, stripped."""
        return "\n".join(p.strip() for p in (self.stderr, self.stdout) if p.strip())
