import os
import stat
import tempfile
import time

import pytest

from vyx.ipc.framing import Message, MessageType
from vyx.ipc.uds import (
    DEFAULT_SOCKET_DIR,
    Transport,
    WorkerNotConnectedError,
    dial,
    platform_transport,
)


@pytest.fixture
def socket_dir():
    # Short path: Unix socket paths are limited to about 100 bytes.
    with tempfile.TemporaryDirectory(prefix="vyx") as directory:
        yield directory


@pytest.fixture
def transport(socket_dir):
    t = Transport(socket_dir)
    yield t
    t.close()


def _retry(action, timeout=5.0):
    deadline = time.monotonic() + timeout
    while True:
        try:
            return action()
        except WorkerNotConnectedError:
            if time.monotonic() > deadline:
                raise
            time.sleep(0.01)


def test_send_receive(transport, socket_dir):
    worker_id = "test-worker"
    transport.register(worker_id)
    client = dial(os.path.join(socket_dir, worker_id + ".sock"))
    try:
        want = Message(MessageType.REQUEST, b'{"route":"/api/users"}')
        _retry(lambda: transport.send(worker_id, want))
        got = client.receive()
        assert got.type == MessageType.REQUEST
        assert got.payload == b'{"route":"/api/users"}'
    finally:
        client.close()


def test_worker_sends_heartbeat(transport, socket_dir):
    worker_id = "heartbeat-worker"
    transport.register(worker_id)
    client = dial(os.path.join(socket_dir, worker_id + ".sock"))
    try:
        client.send(Message(MessageType.HEARTBEAT, b""))
        got = _retry(lambda: transport.receive(worker_id))
        assert got.type == MessageType.HEARTBEAT
        assert got.payload == b""
    finally:
        client.close()


def test_deregister_removes_socket_file(socket_dir):
    t = Transport(socket_dir)
    worker_id = "temp-worker"
    t.register(worker_id)
    sock_path = t.socket_path(worker_id)
    assert sock_path == os.path.join(socket_dir, worker_id + ".sock")
    assert os.path.exists(sock_path)

    t.deregister(worker_id)
    assert not os.path.exists(sock_path)


def test_send_worker_not_connected(transport):
    with pytest.raises(WorkerNotConnectedError) as info:
        transport.send("ghost-worker", Message(MessageType.REQUEST, b"test"))
    assert info.value.worker_id == "ghost-worker"
    assert "ghost-worker" in str(info.value)


def test_receive_worker_not_connected(transport):
    with pytest.raises(WorkerNotConnectedError):
        transport.receive("ghost-worker")


def test_socket_permissions(transport, socket_dir):
    worker_id = "perm-worker"
    transport.register(worker_id)
    mode = os.stat(transport.socket_path(worker_id)).st_mode
    assert stat.S_ISSOCK(mode)
    assert stat.S_IMODE(mode) == 0o600


def test_socket_path(socket_dir):
    t = Transport(socket_dir)
    assert t.socket_path("go:api") == os.path.join(socket_dir, "go:api.sock")


def test_send_fails_after_deregister(transport, socket_dir):
    worker_id = "dereg-worker"
    transport.register(worker_id)
    client = dial(os.path.join(socket_dir, worker_id + ".sock"))
    try:
        _retry(lambda: transport.send(worker_id, Message(MessageType.HEARTBEAT)))
        assert client.receive().type == MessageType.HEARTBEAT
        transport.deregister(worker_id)
        with pytest.raises(WorkerNotConnectedError):
            transport.send(worker_id, Message(MessageType.REQUEST, b"x"))
    finally:
        client.close()


def test_client_sees_eof_after_deregister(transport, socket_dir):
    worker_id = "eof-worker"
    transport.register(worker_id)
    client = dial(os.path.join(socket_dir, worker_id + ".sock"))
    try:
        _retry(lambda: transport.send(worker_id, Message(MessageType.HEARTBEAT)))
        assert client.receive().type == MessageType.HEARTBEAT
        transport.deregister(worker_id)
        with pytest.raises(EOFError):
            client.receive()
    finally:
        client.close()


def test_register_replaces_stale_socket_file(transport, socket_dir):
    worker_id = "stale-worker"
    path = transport.socket_path(worker_id)
    assert path == os.path.join(socket_dir, worker_id + ".sock")
    with open(path, "w") as handle:
        handle.write("stale")
    transport.register(worker_id)
    assert stat.S_ISSOCK(os.stat(path).st_mode)
    with dial(path) as client:
        client.send(Message(MessageType.HEARTBEAT, b"alive"))
        got = _retry(lambda: transport.receive(worker_id))
        assert got.type == MessageType.HEARTBEAT
        assert got.payload == b"alive"


def test_register_creates_socket_dir(socket_dir):
    nested = os.path.join(socket_dir, "sub")
    with Transport(nested) as t:
        t.register("w")
        assert t.socket_dir == nested
        assert os.path.isdir(t.socket_dir)
        assert os.path.exists(t.socket_path("w"))


def test_close_removes_all_socket_files(socket_dir):
    t = Transport(socket_dir)
    t.register("a")
    t.register("b")
    assert sorted(os.listdir(socket_dir)) == ["a.sock", "b.sock"]
    t.close()
    assert os.listdir(socket_dir) == []


def test_multiple_frames_in_order(transport, socket_dir):
    worker_id = "multi-worker"
    transport.register(worker_id)
    with dial(os.path.join(socket_dir, worker_id + ".sock")) as client:
        messages = [
            Message(MessageType.REQUEST, b"first"),
            Message(MessageType.HEARTBEAT, b""),
            Message(MessageType.RESPONSE, b"third"),
        ]
        _retry(lambda: transport.send(worker_id, messages[0]))
        for message in messages[1:]:
            transport.send(worker_id, message)
        received = [client.receive() for _ in messages]
        assert received == messages


def test_workers_are_independent(transport, socket_dir):
    transport.register("one")
    transport.register("two")
    with dial(transport.socket_path("one")) as first, dial(transport.socket_path("two")) as second:
        _retry(lambda: transport.send("one", Message(MessageType.REQUEST, b"1")))
        _retry(lambda: transport.send("two", Message(MessageType.REQUEST, b"2")))
        assert first.receive().payload == b"1"
        assert second.receive().payload == b"2"


def test_dial_missing_socket_raises(socket_dir):
    with pytest.raises(OSError):
        dial(os.path.join(socket_dir, "absent.sock"))


def test_platform_transport_uses_default_dir():
    t = platform_transport()
    assert t.socket_dir == DEFAULT_SOCKET_DIR
    assert t.socket_path("w") == os.path.join(DEFAULT_SOCKET_DIR, "w.sock")