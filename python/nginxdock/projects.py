# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Project management: ``config.env``, Nginx config templates, ``.nginxdock/``."""

from __future__ import annotations

import dataclasses
from pathlib import Path

from nginxdock._config import (
    CONFIG_FILENAME,
    DEFAULT_LOG_MAX_FILE,
    DEFAULT_LOG_MAX_SIZE,
    DEFAULT_NGINX_VERSION,
    DEFAULT_PORT,
    DEFAULT_WEB_ROOT,
    SETTINGS_DIRNAME,
    SETTINGS_FILENAME,
)
from nginxdock._helpers import parse_port_mapping
from nginxdock._logger import HISTORY_FILENAME

_NGINX_DIR = Path("dockerfiles") / "config" / "nginx"

_CONFIG_ENV_TEMPLATE = """\
# Nginx web container configuration
# Copy to config.env and edit; missing keys fall back to the defaults shown.

# Container name (unique on this host)
CONTAINER_NAME={container_name}

# Port mapping HOST:CONTAINER
PORT={port}

# Static files directory, mounted at /data in the container
WEB_ROOT={web_root}

# Nginx image tag (nginx:<NGINX_VERSION>)
NGINX_VERSION={nginx_version}

# Use a custom image instead of nginx:<NGINX_VERSION>
# CUSTOM_IMAGE=registry.example.com/my-nginx:1.0

# Container log rotation (json-file driver)
LOG_MAX_SIZE={log_max_size}
LOG_MAX_FILE={log_max_file}
"""

_NGINX_CONF_TEMPLATE = """\
user  nginx;
worker_processes  auto;

error_log  /var/log/nginx/error.log notice;
pid        /var/run/nginx.pid;

events {
    worker_connections  1024;
}

http {
    include       /etc/nginx/mime.types;
    default_type  application/octet-stream;

    log_format  main  '$remote_addr - $remote_user [$time_local] "$request" '
                      '$status $body_bytes_sent "$http_referer" '
                      '"$http_user_agent" "$http_x_forwarded_for"';

    access_log  /var/log/nginx/access.log  main;

    sendfile        on;
    tcp_nopush      on;
    keepalive_timeout  65;
    server_tokens   off;

    gzip  on;
    gzip_min_length 1024;
    gzip_types text/plain text/css application/javascript application/json image/svg+xml;

    include /etc/nginx/conf.d/*.conf;
}
"""

_DEFAULT_SITE_TEMPLATE = """\
server {{
    listen       {container_port};
    listen  [::]:{container_port};
    server_name  localhost;

    root   /data;
    index  index.html index.htm;

    location / {{
        try_files $uri $uri/ /index.html;
    }}

    location ~* \\.(?:css|js|png|jpg|jpeg|gif|svg|ico|woff2?)$ {{
        expires 7d;
        add_header Cache-Control "public";
    }}

    error_page   500 502 503 504  /50x.html;
    location = /50x.html {{
        root   /usr/share/nginx/html;
    }}
}}
"""

_SETTINGS_TEMPLATE = """\
# nginxdock settings for this project
# socket: /var/run/docker.sock
shell: /bin/bash

logging:
  auto_log: true
  max_history_entries: 1000
"""


@dataclasses.dataclass(frozen=True)
class InitReport:
    """Files written (and left untouched) by :func:`init_project`."""

    root: Path
    created: tuple[Path, ...] = ()
    skipped: tuple[Path, ...] = ()


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for ``config.env`` or ``.nginxdock/``.

    Returns the directory containing it, or ``None`` if not found.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        if (current / CONFIG_FILENAME).is_file() or (current / SETTINGS_DIRNAME).is_dir():
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


def init_project(
    path: Path | None = None,
    *,
    container_name: str | None = None,
    port: str = DEFAULT_PORT,
    web_root: str = DEFAULT_WEB_ROOT,
) -> InitReport:
    """Scaffold a project in *path* (default: cwd). Existing files are kept.

    Writes ``config.env.example``, ``config.env``, the Nginx templates under
    ``dockerfiles/config/nginx/`` and ``.nginxdock/nginxdock.yaml``.

    Raises:
        ValueError: If *port* is not a valid ``HOST:CONTAINER`` mapping.

    """
    _, container_port = parse_port_mapping(port)
    root = (path or Path.cwd()).resolve()
    name = container_name or f"nginx_{root.name}".replace("-", "_")

    config_text = _CONFIG_ENV_TEMPLATE.format(
        container_name=name,
        port=port,
        web_root=web_root,
        nginx_version=DEFAULT_NGINX_VERSION,
        log_max_size=DEFAULT_LOG_MAX_SIZE,
        log_max_file=DEFAULT_LOG_MAX_FILE,
    )
    files = {
        root / f"{CONFIG_FILENAME}.example": config_text,
        root / CONFIG_FILENAME: config_text,
        root / _NGINX_DIR / "nginx.conf": _NGINX_CONF_TEMPLATE,
        root / _NGINX_DIR / "conf.d" / "default.conf": _DEFAULT_SITE_TEMPLATE.format(
            container_port=container_port
        ),
        root / SETTINGS_DIRNAME / SETTINGS_FILENAME: _SETTINGS_TEMPLATE,
    }

    created: list[Path] = []
    skipped: list[Path] = []
    for file_path, content in files.items():
        if file_path.exists():
            skipped.append(file_path)
            continue
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)
        created.append(file_path)

    return InitReport(root=root, created=tuple(created), skipped=tuple(skipped))


def history_path(project_root: Path) -> Path:
    """Location of the operation history for *project_root*."""
    return project_root / SETTINGS_DIRNAME / HISTORY_FILENAME
