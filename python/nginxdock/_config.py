# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Configuration loading.

Two layers:

* ``DeploymentConfig``: what to run, read from the project's flat
  ``config.env`` (``KEY=value``) on every invocation.
* ``ToolSettings``: how nginxdock itself behaves, read from YAML with
  precedence project > install > defaults.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values

from nginxdock._helpers import host_port_of, parse_port_mapping, parse_size
from nginxdock.errors import ConfigInvalid

CONFIG_FILENAME = "config.env"
SETTINGS_DIRNAME = ".nginxdock"
SETTINGS_FILENAME = "nginxdock.yaml"

DEFAULT_CONTAINER_NAME = "nginx_web_app"
DEFAULT_PORT = "8080:80"
DEFAULT_WEB_ROOT = "/data/www"
DEFAULT_NGINX_VERSION = "latest"
DEFAULT_LOG_MAX_SIZE = "10m"
DEFAULT_LOG_MAX_FILE = 3

CONTAINER_CONF_D = "/etc/nginx/conf.d"
CONTAINER_NGINX_CONF = "/etc/nginx/nginx.conf"
CONTAINER_WEB_ROOT = "/data"


@dataclasses.dataclass(frozen=True)
class DeploymentConfig:
    """Resolved deployment configuration for one Nginx container."""

    container_name: str = DEFAULT_CONTAINER_NAME
    port_mapping: str = DEFAULT_PORT
    web_root: Path = Path(DEFAULT_WEB_ROOT)
    nginx_version: str = DEFAULT_NGINX_VERSION
    custom_image: str = ""
    log_max_size: str = DEFAULT_LOG_MAX_SIZE
    log_max_file: int = DEFAULT_LOG_MAX_FILE
    nginx_conf_dir: Path = Path("dockerfiles/config/nginx")
    source: Path | None = None

    @property
    def image_reference(self) -> str:
        """The custom image if set, else ``nginx:<version>``."""
        return self.custom_image or f"nginx:{self.nginx_version}"

    @property
    def host_port(self) -> str:
        return host_port_of(self.port_mapping)

    @property
    def access_url(self) -> str:
        return f"http://localhost:{self.host_port}"

    @property
    def nginx_conf_file(self) -> Path:
        return self.nginx_conf_dir / "nginx.conf"

    @property
    def conf_d_dir(self) -> Path:
        return self.nginx_conf_dir / "conf.d"

    @property
    def mounts(self) -> dict[str, str]:
        """Host path to container path for the three read/write bind mounts."""
        return {
            str(self.conf_d_dir): CONTAINER_CONF_D,
            str(self.nginx_conf_file): CONTAINER_NGINX_CONF,
            str(self.web_root): CONTAINER_WEB_ROOT,
        }

    def problems(self) -> list[str]:
        """Return static validation problems (empty when usable).

        Filesystem checks (web root, Nginx config files) are left to the
        controller, which may offer to fix them.
        """
        found: list[str] = []
        if not self.container_name.strip():
            found.append("CONTAINER_NAME is not set")
        if not self.port_mapping.strip():
            found.append("PORT is not set")
        else:
            try:
                parse_port_mapping(self.port_mapping)
            except ValueError as exc:
                found.append(f"PORT: {exc}")
        if not str(self.web_root).strip() or str(self.web_root) == ".":
            found.append("WEB_ROOT is not set")
        if not self.image_reference.strip() or self.image_reference.endswith(":"):
            found.append("no image: set NGINX_VERSION or CUSTOM_IMAGE")
        try:
            parse_size(self.log_max_size)
        except ValueError as exc:
            found.append(f"LOG_MAX_SIZE: {exc}")
        if self.log_max_file < 1:
            found.append("LOG_MAX_FILE must be at least 1")
        return found


def load_deployment_config(
    project_dir: Path | None = None,
    config_file: Path | None = None,
) -> DeploymentConfig:
    """Load ``config.env`` from *project_dir* (default: cwd), applying defaults.

    A missing default ``config.env`` is not an error; ``source`` is ``None``
    in that case. An explicit *config_file* must exist.
    Blank values count as unset. Relative paths resolve against *project_dir*.

    Raises:
        ConfigInvalid: If *config_file* does not exist, or ``LOG_MAX_FILE``
            is not an integer.

    """
    root = (project_dir or Path.cwd()).resolve()
    path = config_file if config_file is not None else root / CONFIG_FILENAME
    if config_file is not None and not path.is_file():
        raise ConfigInvalid([f"config file not found: {path}"])

    values: dict[str, str] = {}
    source: Path | None = None
    if path.is_file():
        source = path
        values = {k: v.strip() for k, v in dotenv_values(path).items() if v and v.strip()}

    raw_max_file = values.get("LOG_MAX_FILE", str(DEFAULT_LOG_MAX_FILE))
    try:
        log_max_file = int(raw_max_file)
    except ValueError as exc:
        raise ConfigInvalid([f"LOG_MAX_FILE must be an integer, got {raw_max_file!r}"]) from exc

    conf_dir = values.get("NGINX_CONF_DIR")
    nginx_conf_dir = (
        _resolve(root, conf_dir) if conf_dir else root / "dockerfiles" / "config" / "nginx"
    )
    return DeploymentConfig(
        container_name=values.get("CONTAINER_NAME", DEFAULT_CONTAINER_NAME),
        port_mapping=values.get("PORT", DEFAULT_PORT),
        web_root=_resolve(root, values.get("WEB_ROOT", DEFAULT_WEB_ROOT)),
        nginx_version=values.get("NGINX_VERSION", DEFAULT_NGINX_VERSION),
        custom_image=values.get("CUSTOM_IMAGE", ""),
        log_max_size=values.get("LOG_MAX_SIZE", DEFAULT_LOG_MAX_SIZE),
        log_max_file=log_max_file,
        nginx_conf_dir=nginx_conf_dir,
        source=source,
    )


def _resolve(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else root / path


# ---------------------------------------------------------------------------
# Tool settings
# ---------------------------------------------------------------------------


@dataclasses.dataclass(frozen=True)
class ToolSettings:
    """Resolved nginxdock behaviour settings."""

    socket: str | None = None
    auto_log: bool = True
    max_history_entries: int = 1000
    shell: str = "/bin/bash"


def load_settings(project_root: Path | None = None) -> ToolSettings:
    """Load settings with precedence: project > install > defaults.

    1. Start with defaults
    2. Overlay install-level ``~/.nginxdock/nginxdock.yaml`` (if exists)
    3. Overlay project-level ``.nginxdock/nginxdock.yaml`` (if exists)
    """
    overrides: dict[str, Any] = {}

    install_settings = Path.home() / SETTINGS_DIRNAME / SETTINGS_FILENAME
    if install_settings.is_file():
        _merge_yaml(overrides, install_settings)

    if project_root is not None:
        project_settings = project_root / SETTINGS_DIRNAME / SETTINGS_FILENAME
        if project_settings.is_file():
            _merge_yaml(overrides, project_settings)

    return _build_settings(overrides)


def _merge_yaml(target: dict[str, Any], path: Path) -> None:
    """Parse a YAML file and merge its values into *target*."""
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError:
        return
    if not isinstance(data, dict):
        return

    for key, value in data.items():
        if key == "logging" and isinstance(value, dict):
            # Flatten logging sub-keys into top-level settings keys
            target.update(value)
        else:
            target[key] = value


def _build_settings(overrides: dict[str, Any]) -> ToolSettings:
    """Build a ``ToolSettings`` from a dict of overrides."""
    field_names = {f.name for f in dataclasses.fields(ToolSettings)}
    filtered = {k: v for k, v in overrides.items() if k in field_names}
    return ToolSettings(**filtered)
