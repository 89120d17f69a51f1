# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Async HTTP-over-Unix-socket client for the Docker Engine API.

Each function opens its own connection to the Unix socket, performs the
HTTP request, and closes the connection.  This is the connection-per-operation
model: Unix sockets are free, and isolation prevents a followed log stream
from blocking other operations.

Containers are addressed by name; the engine accepts a name anywhere an ID
is expected.  Uses unversioned API paths (``/containers/create``) so that
Docker and Podman's Docker-compatible service both work.
"""

from __future__ import annotations

import asyncio
import json
import os
import pathlib
import time
import urllib.parse
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

from nginxdock._stream import (
    HEADER_SIZE as _DEMUX_HEADER_SIZE,
)
from nginxdock._stream import (
    DemuxResult,
    demux_stream,
    demux_stream_iter,
    parse_stream_header,
)
from nginxdock.errors import (
    ContainerNotFound,
    ContainerNotRunning,
    ImageNotFound,
    RuntimeCommandFailed,
    SocketCommunicationError,
    SocketConnectionError,
)
from nginxdock.types import ExecResult

# ---------------------------------------------------------------------------
# Socket detection
# ---------------------------------------------------------------------------


def detect_socket(explicit: str | None = None) -> str | None:
    """Auto-detect an available container engine socket.

    Detection order:
    1. *explicit* argument
    2. ``NGINXDOCK_SOCKET`` env var
    3. ``DOCKER_HOST`` env var (``unix://`` URLs only)
    4. Docker system: ``/var/run/docker.sock``
    5. Docker rootless: ``$XDG_RUNTIME_DIR/docker.sock``
    6. Podman rootless / system sockets

    Returns:
        The path to the first socket found, or ``None``.

    """
    for candidate_str in (explicit, os.environ.get("NGINXDOCK_SOCKET")):
        if candidate_str and pathlib.Path(candidate_str).exists():
            return candidate_str

    docker_host = os.environ.get("DOCKER_HOST", "")
    if docker_host.startswith("unix://"):
        path = docker_host[len("unix://") :]
        if pathlib.Path(path).exists():
            return path

    xdg = os.environ.get("XDG_RUNTIME_DIR", f"/run/user/{os.getuid()}")
    candidates = [
        pathlib.Path("/var/run/docker.sock"),
        pathlib.Path(xdg) / "docker.sock",
        pathlib.Path(xdg) / "podman" / "podman.sock",
        pathlib.Path("/run/podman/podman.sock"),
    ]
    for candidate in candidates:
        if candidate.exists():
            return str(candidate)
    return None


# ---------------------------------------------------------------------------
# Raw HTTP helpers
# ---------------------------------------------------------------------------


async def _open_connection(
    socket_path: str,
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Open an async connection to a Unix socket."""
    try:
        return await asyncio.open_unix_connection(socket_path)
    except (OSError, ConnectionRefusedError) as exc:
        raise SocketConnectionError(socket_path, str(exc)) from exc


async def _send_request(
    writer: asyncio.StreamWriter,
    method: str,
    path: str,
    body: bytes | None = None,
    content_type: str = "application/json",
) -> None:
    """Write an HTTP/1.1 request to the writer."""
    lines = [
        f"{method} {path} HTTP/1.1",
        "Host: localhost",
    ]
    if body is not None:
        lines.append(f"Content-Type: {content_type}")
        lines.append(f"Content-Length: {len(body)}")
    lines.append("Connection: close")
    lines.append("")
    lines.append("")

    header_bytes = "\r\n".join(lines).encode("ascii")
    writer.write(header_bytes)
    if body is not None:
        writer.write(body)
    await writer.drain()


async def _read_status_line(reader: asyncio.StreamReader) -> int:
    """Read the HTTP status line and return the status code."""
    line = await reader.readline()
    if not line:
        msg = "empty response"
        raise SocketCommunicationError(msg)
    parts = line.decode("ascii", errors="replace").split(None, 2)
    if len(parts) < 2:  # noqa: PLR2004
        msg = f"malformed status line: {line!r}"
        raise SocketCommunicationError(msg)
    try:
        return int(parts[1])
    except ValueError as exc:
        msg = f"malformed status line: {line!r}"
        raise SocketCommunicationError(msg) from exc


async def _read_headers(reader: asyncio.StreamReader) -> dict[str, str]:
    """Read HTTP headers until the blank line."""
    headers: dict[str, str] = {}
    while True:
        line = await reader.readline()
        stripped = line.strip()
        if not stripped:
            break
        decoded = stripped.decode("ascii", errors="replace")
        if ":" in decoded:
            key, value = decoded.split(":", 1)
            headers[key.strip().lower()] = value.strip()
    return headers


async def _read_body(
    reader: asyncio.StreamReader,
    headers: dict[str, str],
) -> bytes:
    """Read the HTTP response body, handling Content-Length and chunked TE."""
    if headers.get("transfer-encoding", "").lower() == "chunked":
        return await _read_chunked(reader)

    content_length_str = headers.get("content-length")
    if content_length_str is not None:
        length = int(content_length_str)
        return await _read_exact_body(reader, length)

    # No Content-Length, no chunked: read until EOF
    parts: list[bytes] = []
    while True:
        chunk = await reader.read(65536)
        if not chunk:
            break
        parts.append(chunk)
    return b"".join(parts)


async def _read_exact_body(reader: asyncio.StreamReader, length: int) -> bytes:
    """Read exactly ``length`` bytes from the reader."""
    data = b""
    while len(data) < length:
        chunk = await reader.read(length - len(data))
        if not chunk:
            break
        data += chunk
    return data


async def _read_chunked(reader: asyncio.StreamReader) -> bytes:
    """Read a chunked transfer-encoded body."""
    parts: list[bytes] = []
    async for chunk in _iter_chunks(reader):
        parts.append(chunk)
    return b"".join(parts)


async def _iter_chunks(reader: asyncio.StreamReader) -> AsyncGenerator[bytes, None]:
    """Yield the payload of each chunk of a chunked transfer-encoded body."""
    while True:
        size_line = await reader.readline()
        if not size_line:
            return
        size_str = size_line.strip().decode("ascii", errors="replace")
        if not size_str:
            continue
        chunk_size = int(size_str.split(";", 1)[0], 16)
        if chunk_size == 0:
            await reader.readline()  # trailing \r\n
            return
        chunk_data = await _read_exact_body(reader, chunk_size)
        await reader.readline()  # trailing \r\n after chunk
        yield chunk_data


async def _request(
    socket_path: str,
    method: str,
    path: str,
    body: dict[str, Any] | None = None,
) -> tuple[int, bytes]:
    """Make an HTTP request and return (status_code, response_body).

    Opens a new connection per call.
    """
    reader, writer = await _open_connection(socket_path)
    try:
        body_bytes = json.dumps(body).encode("utf-8") if body is not None else None
        await _send_request(writer, method, path, body_bytes)

        status = await _read_status_line(reader)
        headers = await _read_headers(reader)
        response_body = await _read_body(reader, headers)
    except SocketConnectionError:
        raise
    except (OSError, asyncio.IncompleteReadError) as exc:
        raise SocketCommunicationError(str(exc)) from exc
    else:
        return status, response_body
    finally:
        writer.close()
        await writer.wait_closed()


async def _request_stream(
    socket_path: str,
    method: str,
    path: str,
    body: dict[str, Any] | None = None,
) -> tuple[int, dict[str, str], asyncio.StreamReader, asyncio.StreamWriter]:
    """Make an HTTP request and return (status, headers, reader, writer) for streaming.

    The caller is responsible for closing the writer.
    """
    reader, writer = await _open_connection(socket_path)
    try:
        body_bytes = json.dumps(body).encode("utf-8") if body is not None else None
        await _send_request(writer, method, path, body_bytes)

        status = await _read_status_line(reader)
        headers = await _read_headers(reader)
    except Exception:
        writer.close()
        await writer.wait_closed()
        raise
    else:
        return status, headers, reader, writer


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def _error_message(body: bytes) -> str:
    """Extract the engine's ``{"message": ...}`` text, or the raw body."""
    text = body.decode("utf-8", errors="replace").strip()
    try:
        data = json.loads(text)
    except ValueError:
        return text
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return text


def _check_container_response(
    status: int,
    body: bytes,
    name: str,
    operation: str,
) -> None:
    """Raise appropriate errors based on HTTP status codes."""
    if status < 400:  # noqa: PLR2004
        return
    if status == 404:  # noqa: PLR2004
        raise ContainerNotFound(name)
    if status == 409 and operation.startswith("exec"):  # noqa: PLR2004
        raise ContainerNotRunning(name)
    raise RuntimeCommandFailed(operation, f"HTTP {status}: {_error_message(body)}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def ping(socket_path: str) -> str:
    """Ping the container engine.

    Returns:
        ``"OK"`` on success.

    """
    status, body = await _request(socket_path, "GET", "/_ping")
    if status != 200:  # noqa: PLR2004
        msg = f"ping failed: HTTP {status}"
        raise SocketCommunicationError(msg)
    return body.decode("ascii").strip()


async def inspect_container(socket_path: str, name: str) -> dict[str, Any]:
    """Inspect a container, returning its full JSON state."""
    status, body = await _request(socket_path, "GET", f"/containers/{_quote(name)}/json")
    _check_container_response(status, body, name, "inspect")
    return json.loads(body)  # type: ignore[no-any-return]


async def create_container(
    socket_path: str,
    name: str,
    image: str,
    *,
    exposed_ports: dict[str, dict[str, Any]] | None = None,
    labels: dict[str, str] | None = None,
    host_config: dict[str, Any] | None = None,
) -> str:
    """Create a named container and return its ID.

    Args:
        socket_path: Path to the container engine Unix socket.
        name: Container name (must be unused).
        image: Image reference to use.
        exposed_ports: Docker-compatible ``ExposedPorts`` dict.
        labels: OCI labels to attach.
        host_config: Docker-compatible ``HostConfig`` dict (binds, ports, restart, logs).

    Returns:
        The container ID (full hex string).

    Raises:
        ImageNotFound: If the image is not present locally.
        RuntimeCommandFailed: For any other engine error (e.g. name conflict).

    """
    payload: dict[str, Any] = {"Image": image}
    if exposed_ports is not None:
        payload["ExposedPorts"] = exposed_ports
    if labels is not None:
        payload["Labels"] = labels
    if host_config is not None:
        payload["HostConfig"] = host_config

    status, body = await _request(
        socket_path, "POST", f"/containers/create?name={_quote(name)}", payload
    )

    if status == 404:  # noqa: PLR2004
        raise ImageNotFound(image, _error_message(body))
    if status >= 400:  # noqa: PLR2004
        raise RuntimeCommandFailed("create", f"HTTP {status}: {_error_message(body)}")

    data = json.loads(body)
    return str(data["Id"])


async def pull_image(socket_path: str, image: str) -> None:
    """Pull *image* from its registry.

    Uses ``POST /images/create?fromImage=...&tag=...``.  The engine answers
    200 and reports failures inside the JSON progress stream, so every
    progress line is checked for an ``error`` key.
    """
    from_image, tag = _split_image_reference(image)
    params = {"fromImage": from_image}
    if tag:
        params["tag"] = tag
    status, body = await _request(
        socket_path, "POST", f"/images/create?{urllib.parse.urlencode(params)}"
    )
    if status >= 400:  # noqa: PLR2004
        raise ImageNotFound(image, f"HTTP {status}: {_error_message(body)}")

    for line in body.decode("utf-8", errors="replace").splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        try:
            progress = json.loads(stripped)
        except ValueError:
            continue
        if isinstance(progress, dict) and progress.get("error"):
            raise ImageNotFound(image, str(progress["error"]))


def _split_image_reference(image: str) -> tuple[str, str]:
    """Split ``repo[:tag]`` into ``(repo, tag)``; digests stay whole."""
    if "@" in image:
        return image, ""
    repo, sep, tag = image.rpartition(":")
    if not sep or "/" in tag:
        return image, "latest"
    return repo, tag


async def start_container(socket_path: str, name: str) -> None:
    """Start a created container."""
    status, body = await _request(socket_path, "POST", f"/containers/{_quote(name)}/start")
    # 204 = success, 304 = already started
    if status not in (204, 304):
        _check_container_response(status, body, name, "start")


async def stop_container(socket_path: str, name: str, timeout: int = 10) -> None:
    """Stop a running container."""
    status, body = await _request(
        socket_path, "POST", f"/containers/{_quote(name)}/stop?t={timeout}"
    )
    # 204 = success, 304 = already stopped
    if status not in (204, 304):
        _check_container_response(status, body, name, "stop")


async def restart_container(socket_path: str, name: str, timeout: int = 10) -> None:
    """Restart a container.

    Uses ``POST /containers/{name}/restart?t={timeout}``.
    """
    status, body = await _request(
        socket_path, "POST", f"/containers/{_quote(name)}/restart?t={timeout}"
    )
    # 204 = success
    if status != 204:  # noqa: PLR2004
        _check_container_response(status, body, name, "restart")


async def remove_container(
    socket_path: str,
    name: str,
    *,
    force: bool = False,
) -> None:
    """Remove a container."""
    force_param = "true" if force else "false"
    status, body = await _request(
        socket_path,
        "DELETE",
        f"/containers/{_quote(name)}?force={force_param}",
    )
    if status not in (200, 204):
        _check_container_response(status, body, name, "remove")


async def container_logs(
    socket_path: str,
    name: str,
    on_frame: Callable[[int, bytes], None],
    *,
    tail: int | None = None,
    follow: bool = False,
) -> None:
    """Stream a container's stdout/stderr log to *on_frame*.

    Uses ``GET /containers/{name}/logs``.  With ``follow=True`` this returns
    only when the container stops or the caller is interrupted.

    Args:
        socket_path: Path to the container engine Unix socket.
        name: Container name.
        on_frame: Called with ``(stream_type, payload)`` for each frame.
        tail: Only the last *tail* lines; ``None`` = all.
        follow: Keep the connection open and stream new output.

    """
    params = {
        "stdout": "true",
        "stderr": "true",
        "follow": "true" if follow else "false",
        "tail": "all" if tail is None else str(tail),
    }
    status, headers, reader, writer = await _request_stream(
        socket_path,
        "GET",
        f"/containers/{_quote(name)}/logs?{urllib.parse.urlencode(params)}",
    )
    try:
        if status >= 400:  # noqa: PLR2004
            rest = await _read_body(reader, headers)
            _check_container_response(status, rest, name, "logs")

        if headers.get("transfer-encoding", "").lower() == "chunked":
            frames: AsyncGenerator[tuple[int, bytes], None] = _demux_chunked_stream(reader)
        else:
            frames = demux_stream_iter(reader)
        async for stream_type, payload in frames:
            on_frame(stream_type, payload)
    finally:
        writer.close()
        await writer.wait_closed()


async def exec_command(
    socket_path: str,
    name: str,
    command: list[str],
    max_output: int = 1024 * 1024,
) -> ExecResult:
    """Execute a command inside a running container and wait for it.

    This performs three HTTP calls:
    1. Create exec instance (``POST /containers/{name}/exec``)
    2. Start exec and read multiplexed stream (``POST /exec/{id}/start``)
    3. Inspect exec to get exit code (``GET /exec/{id}/json``)

    Returns:
        ExecResult with exit code, stdout, stderr, and timing info.

    """
    start_time = time.monotonic()

    exec_id = await _exec_create(socket_path, name, command)
    demux_result = await _exec_start(socket_path, exec_id, max_output)
    exit_code = await _exec_inspect_exit_code(socket_path, exec_id)

    duration_ms = (time.monotonic() - start_time) * 1000

    return ExecResult(
        exit_code=exit_code,
        stdout=demux_result.stdout_text(),
        stderr=demux_result.stderr_text(),
        duration_ms=duration_ms,
    )


async def _exec_create(socket_path: str, name: str, command: list[str]) -> str:
    """Create an exec instance and return its ID."""
    payload: dict[str, object] = {
        "AttachStdout": True,
        "AttachStderr": True,
        "Cmd": command,
    }
    status, body = await _request(
        socket_path,
        "POST",
        f"/containers/{_quote(name)}/exec",
        payload,
    )
    # Podman returns 500 with "container state improper" for stopped containers
    if status >= 400 and "container state improper" in _error_message(body):  # noqa: PLR2004
        raise ContainerNotRunning(name)
    _check_container_response(status, body, name, "exec create")

    data = json.loads(body)
    return str(data["Id"])


async def _exec_start(
    socket_path: str,
    exec_id: str,
    max_output: int,
) -> DemuxResult:
    """Start an exec instance and read the multiplexed stream."""
    payload = {"Detach": False, "Tty": False}
    status, headers, reader, writer = await _request_stream(
        socket_path,
        "POST",
        f"/exec/{exec_id}/start",
        payload,
    )
    try:
        if status >= 400:  # noqa: PLR2004
            rest = await reader.read(65536)
            msg = f"HTTP {status}: {rest.decode('utf-8', errors='replace')}"
            raise RuntimeCommandFailed("exec start", msg)

        # Docker wraps the multiplexed stream in chunked transfer encoding;
        # Podman sends the raw multiplexed stream directly.
        if headers.get("transfer-encoding", "").lower() == "chunked":
            raw = await _read_chunked(reader)
            mem_reader = asyncio.StreamReader()
            mem_reader.feed_data(raw)
            mem_reader.feed_eof()
            return await demux_stream(mem_reader, max_output)
        return await demux_stream(reader, max_output)
    finally:
        writer.close()
        await writer.wait_closed()


async def _demux_chunked_stream(
    reader: asyncio.StreamReader,
) -> AsyncGenerator[tuple[int, bytes], None]:
    """Parse multiplexed frames from a chunked transfer-encoded stream.

    HTTP chunk boundaries may not align with demux frame boundaries, so we
    accumulate unchunked data and parse complete frames from it.
    """
    buf = bytearray()
    async for chunk_data in _iter_chunks(reader):
        buf.extend(chunk_data)

        # Parse all complete demux frames from the accumulated buffer
        while len(buf) >= _DEMUX_HEADER_SIZE:
            stream_type, payload_length = parse_stream_header(bytes(buf[:_DEMUX_HEADER_SIZE]))
            total_frame = _DEMUX_HEADER_SIZE + payload_length
            if len(buf) < total_frame:
                break
            payload = bytes(buf[_DEMUX_HEADER_SIZE:total_frame])
            del buf[:total_frame]
            if payload_length > 0:
                yield stream_type, payload


async def _exec_inspect_exit_code(socket_path: str, exec_id: str) -> int:
    """Inspect an exec instance and return its exit code."""
    status, body = await _request(socket_path, "GET", f"/exec/{exec_id}/json")
    if status >= 400:  # noqa: PLR2004
        raise RuntimeCommandFailed("exec inspect", f"HTTP {status}: {_error_message(body)}")
    data = json.loads(body)
    return int(data["ExitCode"])


def _quote(name: str) -> str:
    return urllib.parse.quote(name, safe="")
