# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Lifecycle controller for a single Nginx container.

Each operation checks that the engine is reachable, queries the container
state exactly once, then issues the engine command the state calls for:

========  ================  ===============  ======================
command   absent            stopped          running
========  ================  ===============  ======================
start     validate, create  start            no-op
stop      no-op             no-op            stop
restart   (start)           restart          restart
remove    no-op             remove           stop, remove
logs      ContainerNotFound stream           stream
exec      ContainerNotRunning                shell
reload    ContainerNotRunning                ``nginx -t``, reload
========  ================  ===============  ======================

State is never cached between calls; the engine is the only source of truth.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from nginxdock.errors import (
    ConfigInvalid,
    ContainerNotFound,
    ContainerNotRunning,
    NginxDockError,
    RuntimeCommandFailed,
)
from nginxdock.types import ActionResult, ContainerState, ContainerStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from nginxdock._config import DeploymentConfig
    from nginxdock._logger import HistoryLogger
    from nginxdock.runtime import ContainerRuntime

RESTART_POLICY = "always"
DEFAULT_SHELL = "/bin/bash"
FALLBACK_SHELL = "/bin/sh"
_EXEC_NOT_FOUND = 126


def _decline(_prompt: str) -> bool:
    return False


class LifecycleController:
    """Decides and issues engine commands for one deployment.

    Args:
        config: The deployment to manage.
        runtime: Engine capability interface.
        confirm: Asked before creating a missing web root; declining
            makes ``start`` fail with :class:`ConfigInvalid`.
        history: Optional operation history sink.
        shell: Shell opened by :meth:`exec`.

    """

    def __init__(
        self,
        config: DeploymentConfig,
        runtime: ContainerRuntime,
        *,
        confirm: Callable[[str], bool] = _decline,
        history: HistoryLogger | None = None,
        shell: str = DEFAULT_SHELL,
    ) -> None:
        self._config = config
        self._runtime = runtime
        self._confirm = confirm
        self._history = history
        self._shell = shell

    @property
    def config(self) -> DeploymentConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.container_name

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def start(self) -> ActionResult:
        """Start the container, creating it if it does not exist."""
        state = self._observe()
        return self._recorded("start", lambda: self._start_from(state))

    def stop(self) -> ActionResult:
        """Stop the container if it is running."""
        state = self._observe()

        def _stop() -> ActionResult:
            if state is ContainerState.ABSENT:
                return self._result("absent", state, changed=False)
            if state is ContainerState.STOPPED:
                return self._result("not-running", state, changed=False)
            self._runtime.stop(self.name)
            return self._result("stopped", ContainerState.STOPPED)

        return self._recorded("stop", _stop)

    def restart(self) -> ActionResult:
        """Restart the container; a missing container is created instead."""
        state = self._observe()
        if state is ContainerState.ABSENT:
            return self._recorded("start", lambda: self._start_from(state))

        def _restart() -> ActionResult:
            self._runtime.restart(self.name)
            return self._result("restarted", ContainerState.RUNNING)

        return self._recorded("restart", _restart)

    def remove(self) -> ActionResult:
        """Remove the container, stopping it first if it is running."""
        state = self._observe()

        def _remove() -> ActionResult:
            if state is ContainerState.ABSENT:
                return self._result("absent", state, changed=False)
            if state is ContainerState.RUNNING:
                self._runtime.stop(self.name)
            self._runtime.remove(self.name)
            return self._result("removed", ContainerState.ABSENT)

        return self._recorded("remove", _remove)

    def reload(self) -> ActionResult:
        """Validate the served Nginx configuration, then reload it in place.

        Raises:
            ContainerNotRunning: If the container is not running.
            ConfigInvalid: If ``nginx -t`` rejects the configuration; no
                reload signal is sent in that case.
            RuntimeCommandFailed: If the reload signal itself fails.

        """
        state = self._observe()
        if state is not ContainerState.RUNNING:
            raise ContainerNotRunning(self.name)

        def _reload() -> ActionResult:
            check = self._runtime.check_config_syntax(self.name)
            if not check.ok:
                raise ConfigInvalid([f"nginx -t failed: {check.output or 'no output'}"])
            signal = self._runtime.signal_reload(self.name)
            if not signal.ok:
                raise RuntimeCommandFailed("nginx -s reload", signal.output)
            return self._result("reloaded", state, detail=check.output)

        return self._recorded("reload", _reload)

    # ------------------------------------------------------------------
    # Read-only / interactive operations
    # ------------------------------------------------------------------

    def status(self) -> ContainerStatus:
        """Report state; bound ports and the access URL when running."""
        state = self._observe()
        if state is not ContainerState.RUNNING:
            return ContainerStatus(name=self.name, state=state)
        return ContainerStatus(
            name=self.name,
            state=state,
            ports=self._runtime.inspect_port_bindings(self.name),
            access_url=self._config.access_url,
        )

    def logs(
        self,
        on_output: Callable[[str, str], None],
        *,
        tail: int | None = None,
        follow: bool = False,
    ) -> None:
        """Stream container logs to ``on_output(stream, text)``.

        Raises:
            ContainerNotFound: If the container does not exist.

        """
        if self._observe() is ContainerState.ABSENT:
            raise ContainerNotFound(self.name)
        self._runtime.logs(self.name, on_output, tail=tail, follow=follow)

    def exec(self) -> int:
        """Open an interactive shell in the container and return its exit code.

        Falls back to ``/bin/sh`` when the configured shell is missing.

        Raises:
            ContainerNotRunning: If the container is not running.

        """
        if self._observe() is not ContainerState.RUNNING:
            raise ContainerNotRunning(self.name)
        code = self._runtime.exec_interactive(self.name, [self._shell])
        if code == _EXEC_NOT_FOUND and self._shell != FALLBACK_SHELL:
            code = self._runtime.exec_interactive(self.name, [FALLBACK_SHELL])
        return code

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _observe(self) -> ContainerState:
        """Check engine reachability, then query the container state once."""
        self._runtime.ping()
        return self._runtime.state(self.name)

    def _start_from(self, state: ContainerState) -> ActionResult:
        if state is ContainerState.RUNNING:
            return self._result("already-running", state, changed=False)
        if state is ContainerState.STOPPED:
            self._runtime.start(self.name)
            return self._result("started", ContainerState.RUNNING)

        self._validate_for_create()
        cfg = self._config
        container_id = self._runtime.create(
            self.name,
            image=cfg.image_reference,
            ports=cfg.port_mapping,
            mounts=cfg.mounts,
            restart_policy=RESTART_POLICY,
            log_config={"max-size": cfg.log_max_size, "max-file": str(cfg.log_max_file)},
        )
        return self._result("created", ContainerState.RUNNING, detail=container_id[:12])

    def _validate_for_create(self) -> None:
        """Raise :class:`ConfigInvalid` unless the deployment can be created.

        A missing web root may be created after confirmation.
        """
        cfg = self._config
        problems = cfg.problems()

        if not problems and not cfg.web_root.is_dir():
            if cfg.web_root.exists():
                problems.append(f"WEB_ROOT is not a directory: {cfg.web_root}")
            elif self._confirm(f"WEB_ROOT directory does not exist: {cfg.web_root}. Create it?"):
                try:
                    cfg.web_root.mkdir(parents=True, exist_ok=True)
                except OSError as exc:
                    problems.append(f"cannot create WEB_ROOT {cfg.web_root}: {exc}")
            else:
                problems.append(f"WEB_ROOT directory does not exist: {cfg.web_root}")

        if not cfg.nginx_conf_file.is_file():
            problems.append(f"Nginx config file not found: {cfg.nginx_conf_file}")
        if not cfg.conf_d_dir.is_dir():
            problems.append(f"Nginx conf.d directory not found: {cfg.conf_d_dir}")

        if problems:
            raise ConfigInvalid(problems)

    def _result(
        self,
        action: str,
        state: ContainerState,
        *,
        changed: bool = True,
        detail: str = "",
    ) -> ActionResult:
        return ActionResult(
            name=self.name, action=action, changed=changed, state=state, detail=detail
        )

    def _recorded(self, action: str, op: Callable[[], ActionResult]) -> ActionResult:
        """Run *op*, writing its outcome (or failure) to the history log."""
        try:
            result = op()
        except NginxDockError as exc:
            if self._history is not None:
                self._history.log_failure(self.name, action, exc)
            raise
        if self._history is not None and result.changed:
            self._history.log_action(result, image=self._config.image_reference)
        return result
