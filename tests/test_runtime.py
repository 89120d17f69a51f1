"""Unit tests for DockerRuntime with the socket client patched out."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from nginxdock.errors import (
    ContainerNotFound,
    EngineNotRunning,
    ImageNotFound,
    RuntimeUnavailable,
    SocketCommunicationError,
)
from nginxdock.runtime import (
    NGINX_RELOAD_COMMAND,
    NGINX_TEST_COMMAND,
    ContainerRuntime,
    DockerRuntime,
    _detect_engine_cli,
)
from nginxdock.types import ContainerState, ExecResult

if TYPE_CHECKING:
    from collections.abc import Iterator

_SC = "nginxdock._socket_client"
_SOCK = "/tmp/docker-test.sock"


@pytest.fixture
def runtime() -> Iterator[DockerRuntime]:
    with patch(f"{_SC}.detect_socket", return_value=_SOCK):
        yield DockerRuntime(engine_cli="docker")


def _inspect(status: str, *, running: bool = False) -> AsyncMock:
    return AsyncMock(return_value={"State": {"Status": status, "Running": running}})


# --- socket resolution ---


def test_socket_path_resolved_once() -> None:
    with patch(f"{_SC}.detect_socket", return_value=_SOCK) as detect:
        rt = DockerRuntime("/explicit.sock")
        assert rt.socket_path == _SOCK
        assert rt.socket_path == _SOCK
    detect.assert_called_once_with("/explicit.sock")


def test_socket_path_missing_raises_engine_not_running() -> None:
    with patch(f"{_SC}.detect_socket", return_value=None):
        rt = DockerRuntime()
        with pytest.raises(EngineNotRunning):
            rt.ping()


def test_docker_runtime_satisfies_protocol() -> None:
    rt: ContainerRuntime = DockerRuntime()
    assert callable(rt.state)


# --- ping ---


def test_ping(runtime: DockerRuntime) -> None:
    with patch(f"{_SC}.ping", new_callable=AsyncMock, return_value="OK") as ping:
        runtime.ping()
    ping.assert_awaited_once_with(_SOCK)


def test_ping_failure_is_runtime_unavailable(runtime: DockerRuntime) -> None:
    with (
        patch(f"{_SC}.ping", new_callable=AsyncMock, side_effect=SocketCommunicationError("x")),
        pytest.raises(RuntimeUnavailable),
    ):
        runtime.ping()


# --- state ---


def test_state_absent(runtime: DockerRuntime) -> None:
    with patch(
        f"{_SC}.inspect_container", new_callable=AsyncMock, side_effect=ContainerNotFound("web1")
    ):
        assert runtime.state("web1") is ContainerState.ABSENT
        assert runtime.exists("web1") is False


def test_state_running(runtime: DockerRuntime) -> None:
    with patch(f"{_SC}.inspect_container", _inspect("running", running=True)):
        assert runtime.state("web1") is ContainerState.RUNNING
        assert runtime.is_running("web1") is True


def test_state_restarting_counts_as_running(runtime: DockerRuntime) -> None:
    with patch(f"{_SC}.inspect_container", _inspect("restarting")):
        assert runtime.state("web1") is ContainerState.RUNNING


@pytest.mark.parametrize("status", ["exited", "created", "paused", "dead"])
def test_state_stopped(runtime: DockerRuntime, status: str) -> None:
    with patch(f"{_SC}.inspect_container", _inspect(status)):
        assert runtime.state("web1") is ContainerState.STOPPED


# --- create ---

_MOUNTS = {"/srv/conf.d": "/etc/nginx/conf.d", "/srv/www": "/data"}
_LOGS = {"max-size": "10m", "max-file": "3"}


def test_create_builds_payload_and_starts(runtime: DockerRuntime) -> None:
    with (
        patch(f"{_SC}.create_container", new_callable=AsyncMock, return_value="abc") as create,
        patch(f"{_SC}.start_container", new_callable=AsyncMock) as start,
    ):
        cid = runtime.create(
            "web1",
            image="nginx:latest",
            ports="8080:80",
            mounts=_MOUNTS,
            restart_policy="always",
            log_config=_LOGS,
        )
    assert cid == "abc"
    start.assert_awaited_once_with(_SOCK, "web1")
    args = create.await_args
    assert args.args == (_SOCK, "web1", "nginx:latest")
    assert args.kwargs["exposed_ports"] == {"80/tcp": {}}
    assert args.kwargs["labels"]["nginxdock.managed"] == "true"
    host_config = args.kwargs["host_config"]
    assert host_config["Binds"] == ["/srv/conf.d:/etc/nginx/conf.d:rw", "/srv/www:/data:rw"]
    assert host_config["PortBindings"] == {"80/tcp": [{"HostIp": "", "HostPort": "8080"}]}
    assert host_config["RestartPolicy"] == {"Name": "always"}
    assert host_config["LogConfig"] == {
        "Type": "json-file",
        "Config": {"max-size": "10m", "max-file": "3"},
    }


def test_create_pulls_missing_image(runtime: DockerRuntime) -> None:
    with (
        patch(
            f"{_SC}.create_container",
            new_callable=AsyncMock,
            side_effect=[ImageNotFound("nginx:1.25"), "def"],
        ) as create,
        patch(f"{_SC}.pull_image", new_callable=AsyncMock) as pull,
        patch(f"{_SC}.start_container", new_callable=AsyncMock),
    ):
        cid = runtime.create(
            "web1",
            image="nginx:1.25",
            ports="8080:80",
            mounts=_MOUNTS,
            restart_policy="always",
            log_config=_LOGS,
        )
    assert cid == "def"
    pull.assert_awaited_once_with(_SOCK, "nginx:1.25")
    assert create.await_count == 2


def test_create_pull_failure_propagates(runtime: DockerRuntime) -> None:
    with (
        patch(
            f"{_SC}.create_container",
            new_callable=AsyncMock,
            side_effect=ImageNotFound("nginx:9"),
        ),
        patch(f"{_SC}.pull_image", new_callable=AsyncMock, side_effect=ImageNotFound("nginx:9")),
        patch(f"{_SC}.start_container", new_callable=AsyncMock) as start,
        pytest.raises(ImageNotFound),
    ):
        runtime.create(
            "web1",
            image="nginx:9",
            ports="8080:80",
            mounts=_MOUNTS,
            restart_policy="always",
            log_config=_LOGS,
        )
    start.assert_not_awaited()


# --- simple lifecycle calls ---


@pytest.mark.parametrize(
    ("method", "target"),
    [
        ("start", "start_container"),
        ("stop", "stop_container"),
        ("restart", "restart_container"),
        ("remove", "remove_container"),
    ],
)
def test_lifecycle_calls(runtime: DockerRuntime, method: str, target: str) -> None:
    with patch(f"{_SC}.{target}", new_callable=AsyncMock) as mock:
        getattr(runtime, method)("web1")
    mock.assert_awaited_once_with(_SOCK, "web1")


# --- logs ---


def test_logs_decodes_frames(runtime: DockerRuntime) -> None:
    async def _fake_logs(_socket: str, _name: str, on_frame: object, **_kw: object) -> None:
        on_frame(1, b"GET / 200\n")  # type: ignore[operator]
        on_frame(2, b"\xffwarn\n")  # type: ignore[operator]

    seen: list[tuple[str, str]] = []
    with patch(f"{_SC}.container_logs", side_effect=_fake_logs) as logs:
        runtime.logs("web1", lambda s, t: seen.append((s, t)), tail=10, follow=False)
    assert seen == [("stdout", "GET / 200\n"), ("stderr", "�warn\n")]
    assert logs.call_args.kwargs == {"tail": 10, "follow": False}


# --- exec ---


def test_exec_interactive_runs_engine_cli(runtime: DockerRuntime) -> None:
    with patch("nginxdock.runtime.subprocess.run", return_value=MagicMock(returncode=0)) as run:
        code = runtime.exec_interactive("web1", ["/bin/bash"])
    assert code == 0
    run.assert_called_once_with(["docker", "exec", "-it", "web1", "/bin/bash"], check=False)


def test_exec_interactive_missing_cli(runtime: DockerRuntime) -> None:
    with (
        patch("nginxdock.runtime.subprocess.run", side_effect=FileNotFoundError),
        pytest.raises(RuntimeUnavailable, match="docker"),
    ):
        runtime.exec_interactive("web1", ["/bin/bash"])


def test_check_config_syntax_runs_nginx_t(runtime: DockerRuntime) -> None:
    result = ExecResult(exit_code=0, stderr="syntax is ok")
    with patch(f"{_SC}.exec_command", new_callable=AsyncMock, return_value=result) as ex:
        assert runtime.check_config_syntax("web1") is result
    ex.assert_awaited_once_with(_SOCK, "web1", NGINX_TEST_COMMAND)


def test_signal_reload(runtime: DockerRuntime) -> None:
    result = ExecResult(exit_code=0)
    with patch(f"{_SC}.exec_command", new_callable=AsyncMock, return_value=result) as ex:
        runtime.signal_reload("web1")
    ex.assert_awaited_once_with(_SOCK, "web1", NGINX_RELOAD_COMMAND)


def test_inspect_port_bindings(runtime: DockerRuntime) -> None:
    data = {"NetworkSettings": {"Ports": {"80/tcp": [{"HostIp": "0.0.0.0", "HostPort": "8080"}]}}}
    with patch(f"{_SC}.inspect_container", new_callable=AsyncMock, return_value=data):
        assert runtime.inspect_port_bindings("web1") == {"80/tcp": ["0.0.0.0:8080"]}


# --- engine CLI detection ---


def test_detect_engine_cli_from_socket() -> None:
    assert _detect_engine_cli("/run/user/1000/podman/podman.sock") == "podman"
    assert _detect_engine_cli("/var/run/docker.sock") == "docker"


def test_detect_engine_cli_from_path() -> None:
    with patch("nginxdock.runtime.shutil.which", side_effect=lambda n: n == "podman"):
        assert _detect_engine_cli("/tmp/engine.sock") == "podman"


def test_detect_engine_cli_default() -> None:
    with patch("nginxdock.runtime.shutil.which", return_value=None):
        assert _detect_engine_cli(None) == "docker"
