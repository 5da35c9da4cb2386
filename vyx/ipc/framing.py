"""Binary frame protocol used on IPC connections.

A frame is a little-endian uint32 payload length, one message-type byte and
the payload bytes.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import BinaryIO

HEADER = struct.Struct("<IB")
HEADER_SIZE = HEADER.size
MAX_PAYLOAD_SIZE = 16 * 1024 * 1024


class MessageType(enum.IntEnum):
    """Kinds of frames exchanged between the core and its workers."""

    REQUEST = 0x01
    RESPONSE = 0x02
    HEARTBEAT = 0x03
    ERROR = 0x04
    HANDSHAKE = 0x10


@dataclass(frozen=True)
class Message:
    """One decoded frame."""

    type: MessageType
    payload: bytes = b""


class FramingError(Exception):
    """A frame violates the protocol."""


class PayloadTooLargeError(FramingError):
    """A frame announces a payload larger than ``MAX_PAYLOAD_SIZE``."""


class UnknownMessageTypeError(FramingError):
    """A frame carries a message-type byte that is not defined."""


def write_frame(stream: BinaryIO, message: Message) -> None:
    """Encode ``message`` and write it to ``stream`` in a single write."""
    payload = bytes(message.payload)
    stream.write(HEADER.pack(len(payload), int(message.type)) + payload)
    flush = getattr(stream, "flush", None)
    if flush is not None:
        flush()


def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    buffer = bytearray()
    while len(buffer) < size:
        chunk = stream.read(size - len(buffer))
        if not chunk:
            reason = "EOF" if not buffer else "unexpected EOF"
            raise EOFError(f"framing: read {what}: {reason}")
        buffer += chunk
    return bytes(buffer)


def read_frame(stream: BinaryIO) -> Message:
    """Read one frame from ``stream``.

    Raises ``UnknownMessageTypeError`` or ``PayloadTooLargeError`` for bad
    headers and ``EOFError`` when the stream ends before the frame does.
    """
    length, type_byte = HEADER.unpack(_read_exact(stream, HEADER_SIZE, "header"))
    try:
        message_type = MessageType(type_byte)
    except ValueError:
        raise UnknownMessageTypeError(f"ipc: unknown message type 0x{type_byte:02x}") from None
    if length > MAX_PAYLOAD_SIZE:
        raise PayloadTooLargeError(
            f"ipc: payload of {length} bytes exceeds limit of {MAX_PAYLOAD_SIZE}"
        )
    payload = _read_exact(stream, length, "payload") if length else b""
    return Message(message_type, payload)