"""Example worker that connects to the core and answers hello/greet requests.

The worker dials the core's socket, announces its routes with a handshake
frame, answers heartbeats and serves two routes:

* ``GET /api/hello`` (roles ``guest`` or ``user``)
* ``POST /api/greet`` (schema ``greet``, role ``user``)
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import socket
import struct
import sys
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from vyx.ipc.framing import MessageType

WORKER_ID = "go:api"
CAPABILITIES = (
    {"path": "/api/hello", "method": "GET"},
    {"path": "/api/greet", "method": "POST"},
)

_HEADER = struct.Struct("<IB")
_JSON_HEADERS = {"Content-Type": "application/json"}
_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}

log = logging.getLogger(__name__)


def _encode_json(value: Any) -> bytes:
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    for char, escape in _HTML_ESCAPES.items():
        text = text.replace(char, escape)
    return text.encode("utf-8")


def _string_map(value: Any, name: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
        raise ValueError(f"request field {name!r} must map strings to strings")
    return dict(value)


def _format_value(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return str(value)


@dataclass
class Request:
    """A request forwarded by the core.

    ``body`` holds the raw JSON text of the body, or None when the payload
    carried no body at all.
    """

    method: str = ""
    path: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)
    body: str | None = None
    claims: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: bytes | str) -> Request:
        """Decode a request frame payload; raise ``ValueError`` if it is malformed."""
        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError("request payload must be a JSON object")
        method = data.get("method") or ""
        path = data.get("path") or ""
        if not isinstance(method, str) or not isinstance(path, str):
            raise ValueError("request method and path must be strings")
        claims = data.get("claims")
        if claims is None:
            claims = {}
        if not isinstance(claims, dict):
            raise ValueError("request field 'claims' must be an object")
        return cls(
            method=method,
            path=path,
            headers=_string_map(data.get("headers"), "headers"),
            query=_string_map(data.get("query"), "query"),
            params=_string_map(data.get("params"), "params"),
            body=json.dumps(data["body"]) if "body" in data else None,
            claims=dict(claims),
        )


@dataclass
class Response:
    """A response sent back to the core."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    def to_payload(self) -> bytes:
        """Encode the response as a JSON frame payload."""
        return _encode_json(
            {
                "status_code": self.status_code,
                "headers": dict(sorted(self.headers.items())) or None,
                "body": self.body,
            }
        )


def _json_response(status_code: int, body: dict[str, str]) -> Response:
    return Response(status_code, dict(_JSON_HEADERS), dict(sorted(body.items())))


def write_frame(conn: socket.socket, msg_type: int, payload: bytes = b"") -> None:
    """Send one frame: little-endian length, type byte, payload."""
    data = bytes(payload)
    conn.sendall(_HEADER.pack(len(data), int(msg_type)) + data)


def _recv_exact(conn: socket.socket, size: int) -> bytes:
    buffer = bytearray()
    while len(buffer) < size:
        chunk = conn.recv(size - len(buffer))
        if not chunk:
            raise EOFError("connection closed" if not buffer else "unexpected EOF")
        buffer += chunk
    return bytes(buffer)


def read_frame(conn: socket.socket) -> tuple[int, bytes]:
    """Receive one frame and return its type byte and payload.

    Raises ``EOFError`` if the connection ends before the frame does.
    """
    length, msg_type = _HEADER.unpack(_recv_exact(conn, _HEADER.size))
    payload = _recv_exact(conn, length) if length else b""
    return msg_type, payload


def handle_hello(request: Request) -> Response:
    """Answer ``GET /api/hello`` with a greeting naming the caller's subject."""
    user_id = _format_value(request.claims["sub"]) if "sub" in request.claims else ""
    return _json_response(200, {"message": "Hello from the Go worker!", "user": user_id})


def handle_greet(request: Request) -> Response:
    """Answer ``POST /api/greet`` with a greeting for the ``name`` in the body."""
    invalid = _json_response(400, {"error": "invalid body"})
    if request.body is None:
        return invalid
    try:
        body = json.loads(request.body)
    except ValueError:
        return invalid
    if body is None:
        name = ""
    elif isinstance(body, dict):
        name = body.get("name")
        if name is None:
            name = ""
        elif not isinstance(name, str):
            return invalid
    else:
        return invalid
    return _json_response(
        200, {"message": f"Hello, {name}! Greetings from the Go worker."}
    )


def dispatch(request: Request) -> Response:
    """Route ``request`` to its handler, or answer 404."""
    if request.method == "GET" and request.path == "/api/hello":
        return handle_hello(request)
    if request.method == "POST" and request.path == "/api/greet":
        return handle_greet(request)
    return _json_response(404, {"error": "route not found"})


def serve(conn: socket.socket) -> None:
    """Send the handshake, then answer frames until the connection ends.

    A failure to send the handshake raises ``OSError``; read failures end
    the loop quietly.
    """
    handshake = {
        "type": "handshake",
        "worker_id": WORKER_ID,
        "capabilities": [dict(cap) for cap in CAPABILITIES],
    }
    write_frame(conn, MessageType.HANDSHAKE, _encode_json(handshake))
    log.info("[%s] handshake sent", WORKER_ID)

    while True:
        try:
            msg_type, payload = read_frame(conn)
        except (EOFError, OSError) as exc:
            log.info("[%s] connection closed: %s", WORKER_ID, exc)
            return

        if msg_type == MessageType.HEARTBEAT:
            try:
                write_frame(conn, MessageType.HEARTBEAT)
            except OSError:
                pass
        elif msg_type == MessageType.REQUEST:
            try:
                request = Request.from_payload(payload)
            except ValueError as exc:
                log.warning("[%s] failed to parse request: %s", WORKER_ID, exc)
                continue
            log.info("[%s] %s %s", WORKER_ID, request.method, request.path)
            response = dispatch(request)
            try:
                write_frame(conn, MessageType.RESPONSE, response.to_payload())
            except OSError as exc:
                log.warning("[%s] failed to send response: %s", WORKER_ID, exc)


def _default_socket() -> str:
    if sys.platform == "win32":
        return "\\\\.\\pipe\\vyx-" + WORKER_ID
    return f"/tmp/vyx/{WORKER_ID}.sock"


def _dial(address: str) -> socket.socket:
    if sys.platform == "win32":
        raise OSError(f"named pipe connections are not supported (path: {address})")
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.connect(address)
    except OSError:
        sock.close()
        raise
    return sock


def _install_signal_handlers(conn: socket.socket) -> None:
    if threading.current_thread() is not threading.main_thread():
        return

    def shutdown(signum: int, frame: object) -> None:
        log.info("[%s] shutting down", WORKER_ID)
        conn.close()
        raise SystemExit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)


def main(argv: Sequence[str] | None = None) -> int:
    """Connect to the core and serve until the connection closes."""
    parser = argparse.ArgumentParser(
        prog="hello-worker", description="Hello-world worker for the vyx core."
    )
    parser.add_argument(
        "-vyx-socket",
        "--vyx-socket",
        dest="vyx_socket",
        default=_default_socket(),
        help="IPC address provided by vyx core",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    try:
        conn = _dial(args.vyx_socket)
    except OSError as exc:
        log.error("[%s] failed to connect to core: %s", WORKER_ID, exc)
        return 1

    with conn:
        log.info("[%s] connected to core via %s", WORKER_ID, args.vyx_socket)
        _install_signal_handlers(conn)
        try:
            serve(conn)
        except OSError as exc:
            log.error("[%s] handshake failed: %s", WORKER_ID, exc)
            return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())