# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Fire-and-forget operation history on disk.

Every mutating lifecycle action is appended as one JSON line to
``.nginxdock/history.jsonl`` in the project directory.  All I/O is
synchronous filesystem writes.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from nginxdock.types import ActionResult

HISTORY_FILENAME = "history.jsonl"


class HistoryLogger:
    """Appends lifecycle actions to a JSONL history file."""

    def __init__(
        self,
        path: Path,
        *,
        enabled: bool = True,
        max_entries: int = 1000,
        on_error: Callable[[OSError], None] | None = None,
    ) -> None:
        self._path = path
        self._enabled = enabled
        self._max_entries = max_entries
        self._on_error = on_error

    @property
    def enabled(self) -> bool:
        """Whether logging is active."""
        return self._enabled

    @property
    def path(self) -> Path:
        return self._path

    def log_action(self, result: ActionResult, *, image: str = "") -> None:
        """Record a completed lifecycle action."""
        entry: dict[str, object] = {
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
            "container": result.name,
            "action": result.action,
            "changed": result.changed,
            "state": result.state.value,
        }
        if image:
            entry["image"] = image
        if result.detail:
            entry["detail"] = result.detail
        self.append_history(entry)

    def log_failure(self, name: str, action: str, error: Exception) -> None:
        """Record a lifecycle action that raised."""
        self.append_history(
            {
                "timestamp": datetime.now(tz=timezone.utc).isoformat(),
                "container": name,
                "action": action,
                "error": type(error).__name__,
                "detail": str(error),
            }
        )

    def append_history(self, entry: dict[str, object]) -> None:
        """Append one JSONL line, keeping at most ``max_entries`` lines.

        Filesystem errors are passed to ``on_error`` (if set) instead of raised.
        """
        if not self._enabled:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a") as f:
                f.write(json.dumps(entry, default=str) + "\n")
            self._trim()
        except OSError as exc:
            if self._on_error is not None:
                self._on_error(exc)

    def read_history(self) -> list[dict[str, object]]:
        """Return parsed history entries, skipping malformed lines."""
        if not self._path.is_file():
            return []
        entries: list[dict[str, object]] = []
        for raw in self._path.read_text().splitlines():
            stripped = raw.strip()
            if not stripped:
                continue
            try:
                entry = json.loads(stripped)
            except json.JSONDecodeError:
                continue
            if isinstance(entry, dict):
                entries.append(entry)
        return entries

    def _trim(self) -> None:
        if self._max_entries <= 0:
            return
        lines = self._path.read_text().splitlines()
        if len(lines) > self._max_entries:
            self._path.write_text("\n".join(lines[-self._max_entries :]) + "\n")
