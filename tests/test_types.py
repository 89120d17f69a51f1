"""Tests for nginxdock data types."""

from __future__ import annotations

import dataclasses

import pytest
from nginxdock.types import ActionResult, ContainerState, ContainerStatus, ExecResult


def test_container_state_values() -> None:
    assert [s.value for s in ContainerState] == ["absent", "stopped", "running"]
    assert ContainerState("running") is ContainerState.RUNNING


def test_container_status_defaults() -> None:
    status = ContainerStatus(name="web1", state=ContainerState.STOPPED)
    assert status.ports == {}
    assert status.access_url == ""
    assert status.running is False


def test_container_status_running() -> None:
    assert ContainerStatus(name="web1", state=ContainerState.RUNNING).running is True


def test_action_result_is_frozen() -> None:
    result = ActionResult(name="web1", action="started", changed=True, state=ContainerState.RUNNING)
    with pytest.raises(dataclasses.FrozenInstanceError):
        result.action = "stopped"  # type: ignore[misc]


def test_exec_result_ok() -> None:
    assert ExecResult(exit_code=0).ok is True
    assert ExecResult(exit_code=1).ok is False


def test_exec_result_output_joins_streams() -> None:
    result = ExecResult(
        exit_code=1,
        stdout="\n",
        stderr="nginx: [emerg] unexpected end of file\nnginx: configuration file test failed\n",
    )
    assert result.output == (
        "nginx: [emerg] unexpected end of file\nnginx: configuration file test failed"
    )


def test_exec_result_output_both() -> None:
    assert ExecResult(exit_code=0, stdout="out\n", stderr="err\n").output == "err\nout"
