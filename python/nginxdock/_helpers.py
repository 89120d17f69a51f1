# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Parsing and payload-building utilities for ports, mounts and log options."""

from __future__ import annotations

import re
from typing import Any

_KIB = 1024

_UNIT_MULTIPLIERS: dict[str, int] = {
    "b": 1,
    "k": _KIB,
    "m": _KIB**2,
    "g": _KIB**3,
}

_MAX_PORT = 65535


def parse_port_mapping(s: str) -> tuple[int, int]:
    """Parse a ``HOST:CONTAINER`` port mapping like ``8080:80``.

    Raises:
        ValueError: If the mapping is not two ports in 1..65535.

    """
    parts = s.strip().split(":")
    if len(parts) != 2:  # noqa: PLR2004
        msg = f"invalid port mapping: {s!r} (expected HOST:CONTAINER)"
        raise ValueError(msg)
    ports: list[int] = []
    for part in parts:
        if not part.isdigit() or not 0 < int(part) <= _MAX_PORT:
            msg = f"invalid port mapping: {s!r} ({part!r} is not a port number)"
            raise ValueError(msg)
        ports.append(int(part))
    return ports[0], ports[1]


def host_port_of(mapping: str) -> str:
    """Return the substring of *mapping* before the first ``:``."""
    return mapping.split(":", 1)[0]


def parse_size(s: str) -> int:
    """Parse a size string like ``10m`` or ``512k`` into bytes.

    Supports suffixes ``b``, ``k``, ``m``, ``g`` (case-insensitive).
    Plain integers are treated as bytes.
    """
    s = s.strip()
    match = re.fullmatch(r"(\d+)\s*([bkmg])?", s, flags=re.IGNORECASE)
    if not match or int(match.group(1)) == 0:
        msg = f"invalid size: {s!r}"
        raise ValueError(msg)
    value = int(match.group(1))
    suffix = (match.group(2) or "b").lower()
    return value * _UNIT_MULTIPLIERS[suffix]


def build_exposed_ports(container_port: int) -> dict[str, dict[str, Any]]:
    """Build the ``ExposedPorts`` section of a create payload."""
    return {f"{container_port}/tcp": {}}


def build_port_bindings(host_port: int, container_port: int) -> dict[str, list[dict[str, str]]]:
    """Build the ``HostConfig.PortBindings`` section of a create payload."""
    return {f"{container_port}/tcp": [{"HostIp": "", "HostPort": str(host_port)}]}


def build_binds(mounts: dict[str, str]) -> list[str]:
    """Convert ``{host_path: container_path}`` into read/write bind strings."""
    return [f"{host}:{container}:rw" for host, container in mounts.items()]


def build_log_config(max_size: str, max_file: int) -> dict[str, Any]:
    """Build a ``json-file`` log driver config with bounded rotation."""
    return {
        "Type": "json-file",
        "Config": {"max-size": max_size, "max-file": str(max_file)},
    }


def parse_port_bindings(inspect: dict[str, Any]) -> dict[str, list[str]]:
    """Extract bound ports from ``GET /containers/{id}/json``.

    Returns a mapping like ``{"80/tcp": ["0.0.0.0:8080", ":::8080"]}``.
    Prefers live ``NetworkSettings.Ports``, falling back to the declared
    ``HostConfig.PortBindings`` for stopped containers.
    """
    net = inspect.get("NetworkSettings") or {}
    bindings = net.get("Ports") if isinstance(net, dict) else None
    if not bindings:
        host_config = inspect.get("HostConfig") or {}
        bindings = host_config.get("PortBindings") if isinstance(host_config, dict) else None
    if not isinstance(bindings, dict):
        return {}

    result: dict[str, list[str]] = {}
    for container_port, hosts in bindings.items():
        if not hosts:
            continue
        result[container_port] = [
            f"{h.get('HostIp') or '0.0.0.0'}:{h.get('HostPort', '')}"  # noqa: S104
            for h in hosts
            if isinstance(h, dict)
        ]
    return result
