"""MessagePack codec for IPC payloads."""

from __future__ import annotations

from typing import Any

import msgpack


class MsgPackCodec:
    """Encodes and decodes values as MessagePack."""

    def marshal(self, value: Any) -> bytes:
        """Encode ``value`` to MessagePack bytes."""
        return msgpack.packb(value, use_bin_type=True)

    def unmarshal(self, data: bytes) -> Any:
        """Decode MessagePack bytes; raise ``ValueError`` on malformed input."""
        try:
            return msgpack.unpackb(data, raw=False)
        except (ValueError, msgpack.UnpackException) as exc:
            raise ValueError(f"msgpack: cannot decode payload: {exc}") from exc