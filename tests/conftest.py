"""Shared fixtures for nginxdock tests."""

from __future__ import annotations

import os
import pathlib
from typing import TYPE_CHECKING

import pytest
from nginxdock._config import DeploymentConfig
from nginxdock.types import ContainerState, ExecResult

if TYPE_CHECKING:
    from collections.abc import Callable


def _path_exists(path: pathlib.Path) -> bool:
    """Check if *path* exists, returning ``False`` on ``PermissionError``."""
    try:
        return path.exists()
    except PermissionError:
        return False


def _find_socket() -> str | None:
    """Detect an available Docker engine socket."""
    explicit = os.environ.get("NGINXDOCK_SOCKET")
    if explicit and _path_exists(pathlib.Path(explicit)):
        return explicit

    xdg = os.environ.get("XDG_RUNTIME_DIR", f"/run/user/{os.getuid()}")
    candidates = [
        pathlib.Path("/var/run/docker.sock"),
        pathlib.Path(xdg) / "docker.sock",
    ]
    for candidate in candidates:
        if _path_exists(candidate):
            return str(candidate)
    return None


SOCKET_PATH = _find_socket()
HAS_ENGINE = SOCKET_PATH is not None

requires_engine = pytest.mark.skipif(
    not HAS_ENGINE,
    reason="No Docker engine socket found",
)


@pytest.fixture
def socket_path() -> str:
    """Return the detected socket path, or skip the test."""
    if SOCKET_PATH is None:
        pytest.skip("No Docker engine socket found")
    return SOCKET_PATH


@pytest.fixture(autouse=True)
def _isolated_home(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Keep the user's ~/.nginxdock settings out of every test."""
    monkeypatch.setenv("HOME", str(tmp_path_factory.mktemp("home")))


class FakeRuntime:
    """In-memory ContainerRuntime that records every call.

    ``calls`` holds ``(method, name)`` tuples in call order. Set
    ``unavailable`` to an exception to make ``ping`` raise it.
    """

    def __init__(self, state: ContainerState = ContainerState.ABSENT) -> None:
        self.current = state
        self.calls: list[tuple[str, str]] = []
        self.unavailable: Exception | None = None
        self.created: dict[str, object] = {}
        self.check_result = ExecResult(exit_code=0, stderr="syntax is ok\ntest is successful")
        self.reload_result = ExecResult(exit_code=0)
        self.exec_codes: list[int] = [0]
        self.exec_commands: list[list[str]] = []
        self.log_lines: list[tuple[str, str]] = [("stdout", "GET / 200\n")]
        self.ports = {"80/tcp": ["0.0.0.0:8080"]}

    def ping(self) -> None:
        self.calls.append(("ping", ""))
        if self.unavailable is not None:
            raise self.unavailable

    def state(self, name: str) -> ContainerState:
        self.calls.append(("state", name))
        return self.current

    def exists(self, name: str) -> bool:
        return self.state(name) is not ContainerState.ABSENT

    def is_running(self, name: str) -> bool:
        return self.state(name) is ContainerState.RUNNING

    def create(self, name: str, **kwargs: object) -> str:
        self.calls.append(("create", name))
        self.created = dict(kwargs)
        self.current = ContainerState.RUNNING
        return "0123456789abcdef0123"

    def start(self, name: str) -> None:
        self.calls.append(("start", name))
        self.current = ContainerState.RUNNING

    def stop(self, name: str) -> None:
        self.calls.append(("stop", name))
        self.current = ContainerState.STOPPED

    def restart(self, name: str) -> None:
        self.calls.append(("restart", name))
        self.current = ContainerState.RUNNING

    def remove(self, name: str) -> None:
        self.calls.append(("remove", name))
        self.current = ContainerState.ABSENT

    def logs(
        self,
        name: str,
        on_output: Callable[[str, str], None],
        *,
        tail: int | None = None,
        follow: bool = False,
    ) -> None:
        self.calls.append(("logs", name))
        self.log_options = {"tail": tail, "follow": follow}
        for stream, text in self.log_lines:
            on_output(stream, text)

    def exec_interactive(self, name: str, command: list[str]) -> int:
        self.calls.append(("exec", name))
        self.exec_commands.append(command)
        return self.exec_codes.pop(0) if self.exec_codes else 0

    def check_config_syntax(self, name: str) -> ExecResult:
        self.calls.append(("check", name))
        return self.check_result

    def signal_reload(self, name: str) -> ExecResult:
        self.calls.append(("reload", name))
        return self.reload_result

    def inspect_port_bindings(self, name: str) -> dict[str, list[str]]:
        self.calls.append(("ports", name))
        return self.ports

    def engine_calls(self) -> list[str]:
        """Method names of calls that change engine state."""
        mutating = {"create", "start", "stop", "restart", "remove", "reload"}
        return [method for method, _ in self.calls if method in mutating]


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def deployment(tmp_path: pathlib.Path) -> DeploymentConfig:
    """A valid deployment whose web root and Nginx config exist on disk."""
    web_root = tmp_path / "www"
    web_root.mkdir()
    conf_dir = tmp_path / "dockerfiles" / "config" / "nginx"
    (conf_dir / "conf.d").mkdir(parents=True)
    (conf_dir / "nginx.conf").write_text("events {}\n")
    return DeploymentConfig(
        container_name="web1",
        port_mapping="8080:80",
        web_root=web_root,
        nginx_conf_dir=conf_dir,
    )
