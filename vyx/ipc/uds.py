"""Unix domain socket transport between the core and its workers.

Each worker gets its own socket file, ``<socket_dir>/<worker_id>.sock``,
created with mode 0600 so that only the owning user can connect. The core
listens on it and accepts exactly one connection from the worker. Frames are
exchanged with the protocol in :mod:`vyx.ipc.framing`.
"""

from __future__ import annotations

import contextlib
import os
import socket
import threading
from dataclasses import dataclass, field

from vyx.ipc.framing import Message, read_frame, write_frame

DEFAULT_SOCKET_DIR = "/tmp/vyx"
SOCKET_PERM = 0o600
_ACCEPT_POLL_SECONDS = 0.1


class WorkerNotConnectedError(ConnectionError):
    """No connection from the named worker is available."""

    def __init__(self, worker_id: str) -> None:
        super().__init__(f"ipc: worker not connected: {worker_id}")
        self.worker_id = worker_id


class _Connection:
    """A connected stream socket with serialised frame writes."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._reader = sock.makefile("rb")
        self._writer = sock.makefile("wb")
        self._write_lock = threading.Lock()
        self._read_lock = threading.Lock()

    def send(self, message: Message) -> None:
        with self._write_lock:
            write_frame(self._writer, message)

    def receive(self) -> Message:
        with self._read_lock:
            return read_frame(self._reader)

    def close(self) -> None:
        with contextlib.suppress(OSError):
            self._sock.shutdown(socket.SHUT_RDWR)
        for stream in (self._writer, self._reader):
            with contextlib.suppress(OSError, ValueError):
                stream.close()
        self._sock.close()


@dataclass
class _Listener:
    sock: socket.socket
    stopped: threading.Event = field(default_factory=threading.Event)

    def close(self) -> None:
        self.stopped.set()
        with contextlib.suppress(OSError):
            self.sock.close()


class Transport:
    """Core-side transport holding one socket per registered worker."""

    def __init__(self, socket_dir: str | os.PathLike[str]) -> None:
        self.socket_dir = os.fspath(socket_dir)
        self._lock = threading.Lock()
        self._listeners: dict[str, _Listener] = {}
        self._connections: dict[str, _Connection] = {}

    def __enter__(self) -> Transport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def socket_path(self, worker_id: str) -> str:
        """Return the filesystem path of the socket for ``worker_id``."""
        return os.path.join(self.socket_dir, worker_id + ".sock")

    def register(self, worker_id: str) -> None:
        """Create the worker's socket and accept its connection in the background.

        A stale socket file left by an earlier run is removed first. Raises
        ``OSError`` if the directory, socket or permissions cannot be set up.
        """
        os.makedirs(self.socket_dir, mode=0o700, exist_ok=True)
        path = self.socket_path(worker_id)
        with contextlib.suppress(OSError):
            os.remove(path)

        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.bind(path)
            sock.listen(1)
            os.chmod(path, SOCKET_PERM)
        except OSError:
            sock.close()
            raise
        sock.settimeout(_ACCEPT_POLL_SECONDS)

        listener = _Listener(sock)
        with self._lock:
            previous = self._listeners.pop(worker_id, None)
            self._listeners[worker_id] = listener
        if previous is not None:
            previous.close()

        threading.Thread(
            target=self._accept,
            args=(worker_id, listener),
            name=f"uds-accept-{worker_id}",
            daemon=True,
        ).start()

    def _accept(self, worker_id: str, listener: _Listener) -> None:
        while not listener.stopped.is_set():
            try:
                sock, _ = listener.sock.accept()
            except TimeoutError:
                continue
            except OSError:
                return
            sock.settimeout(None)
            connection = _Connection(sock)
            with self._lock:
                if listener.stopped.is_set() or self._listeners.get(worker_id) is not listener:
                    stale = connection
                else:
                    stale = self._connections.pop(worker_id, None)
                    self._connections[worker_id] = connection
            if stale is not None:
                stale.close()
            return

    def deregister(self, worker_id: str) -> None:
        """Close the worker's connection and socket and remove the socket file."""
        with self._lock:
            connection = self._connections.pop(worker_id, None)
            listener = self._listeners.pop(worker_id, None)
        if connection is not None:
            connection.close()
        if listener is not None:
            listener.close()
        with contextlib.suppress(OSError):
            os.remove(self.socket_path(worker_id))

    def close(self) -> None:
        """Shut down every connection and listener and remove their socket files."""
        with self._lock:
            connections = list(self._connections.values())
            listeners = list(self._listeners.items())
            self._connections.clear()
            self._listeners.clear()
        for connection in connections:
            connection.close()
        for worker_id, listener in listeners:
            listener.close()
            with contextlib.suppress(OSError):
                os.remove(self.socket_path(worker_id))

    def send(self, worker_id: str, message: Message) -> None:
        """Write ``message`` as one frame to the worker's connection."""
        self._connection(worker_id).send(message)

    def receive(self, worker_id: str) -> Message:
        """Block until one complete frame arrives from the worker."""
        return self._connection(worker_id).receive()

    def _connection(self, worker_id: str) -> _Connection:
        with self._lock:
            connection = self._connections.get(worker_id)
        if connection is None:
            raise WorkerNotConnectedError(worker_id)
        return connection


class Client:
    """Worker-side end of a core socket."""

    def __init__(self, sock: socket.socket) -> None:
        self._connection = _Connection(sock)

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def send(self, message: Message) -> None:
        """Write one framed message to the core."""
        self._connection.send(message)

    def receive(self) -> Message:
        """Read one framed message from the core."""
        return self._connection.receive()

    def close(self) -> None:
        """Close the connection."""
        self._connection.close()


def dial(socket_path: str | os.PathLike[str]) -> Client:
    """Connect to the core socket at ``socket_path``; raise ``OSError`` on failure."""
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.connect(os.fspath(socket_path))
    except OSError:
        sock.close()
        raise
    return Client(sock)


def platform_transport() -> Transport:
    """Return the transport for this platform, rooted at the default socket directory."""
    return Transport(DEFAULT_SOCKET_DIR)