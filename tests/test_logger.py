"""Unit tests for _logger.py: JSONL operation history."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from nginxdock._logger import HistoryLogger
from nginxdock.errors import ContainerNotRunning
from nginxdock.types import ActionResult, ContainerState

if TYPE_CHECKING:
    from pathlib import Path


def _result(action: str = "started", detail: str = "") -> ActionResult:
    return ActionResult(
        name="web1", action=action, changed=True, state=ContainerState.RUNNING, detail=detail
    )


def test_log_action_writes_jsonl(tmp_path: Path) -> None:
    path = tmp_path / ".nginxdock" / "history.jsonl"
    logger = HistoryLogger(path)
    logger.log_action(_result("created", "0123456789ab"), image="nginx:latest")

    lines = path.read_text().splitlines()
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["container"] == "web1"
    assert entry["action"] == "created"
    assert entry["changed"] is True
    assert entry["state"] == "running"
    assert entry["image"] == "nginx:latest"
    assert entry["detail"] == "0123456789ab"
    assert "timestamp" in entry


def test_log_action_omits_empty_fields(tmp_path: Path) -> None:
    logger = HistoryLogger(tmp_path / "history.jsonl")
    logger.log_action(_result())
    (entry,) = logger.read_history()
    assert "image" not in entry
    assert "detail" not in entry


def test_log_failure(tmp_path: Path) -> None:
    logger = HistoryLogger(tmp_path / "history.jsonl")
    logger.log_failure("web1", "exec", ContainerNotRunning("web1"))
    (entry,) = logger.read_history()
    assert entry["error"] == "ContainerNotRunning"
    assert entry["detail"] == "Container 'web1' is not running"


def test_disabled_logger_writes_nothing(tmp_path: Path) -> None:
    path = tmp_path / "history.jsonl"
    logger = HistoryLogger(path, enabled=False)
    logger.log_action(_result())
    assert logger.enabled is False
    assert not path.exists()


def test_history_trimmed_to_max_entries(tmp_path: Path) -> None:
    logger = HistoryLogger(tmp_path / "history.jsonl", max_entries=3)
    for i in range(5):
        logger.append_history({"n": i})
    assert [e["n"] for e in logger.read_history()] == [2, 3, 4]


def test_read_history_missing_file(tmp_path: Path) -> None:
    assert HistoryLogger(tmp_path / "none.jsonl").read_history() == []


def test_read_history_skips_malformed_lines(tmp_path: Path) -> None:
    path = tmp_path / "history.jsonl"
    path.write_text('{"action": "started"}\nnot json\n\n[1, 2]\n{"action": "stopped"}\n')
    logger = HistoryLogger(path)
    assert [e["action"] for e in logger.read_history()] == ["started", "stopped"]
    assert logger.path == path


def test_unwritable_history_is_reported_not_raised(tmp_path: Path) -> None:
    blocker = tmp_path / "ro"
    blocker.write_text("not a directory\n")
    errors: list[OSError] = []
    logger = HistoryLogger(blocker / ".nginxdock" / "history.jsonl", on_error=errors.append)

    logger.log_action(_result())

    assert len(errors) == 1
    assert isinstance(errors[0], NotADirectoryError)


def test_unwritable_history_without_callback_is_silent(tmp_path: Path) -> None:
    path = tmp_path / "history.jsonl"
    path.mkdir()
    logger = HistoryLogger(path)
    logger.log_failure("web1", "reload", ContainerNotRunning("web1"))
    assert logger.read_history() == []
