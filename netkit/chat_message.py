"""Fixed-size chat message record exchanged between chat clients and server."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

NAME_SIZE = 20
TEXT_SIZE = 128
_FORMAT = struct.Struct(f"!i{NAME_SIZE}s{TEXT_SIZE}s")
MESSAGE_SIZE = _FORMAT.size


class MessageType(enum.IntEnum):
    LOGIN = 1
    CHAT = 2
    QUIT = 3


def _field(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", "ignore")


@dataclass(frozen=True)
class Message:
    """A chat record: a type, a sender name and a line of text.

    ``kind`` keeps the raw integer so unknown types survive decoding.
    On the wire the name holds at most 19 bytes and the text at most 128.
    """

    kind: int
    name: str = ""
    text: str = ""

    def pack(self) -> bytes:
        name = self.name.encode("utf-8")[: NAME_SIZE - 1]
        text = self.text.encode("utf-8")[:TEXT_SIZE]
        return _FORMAT.pack(int(self.kind), name, text)


def unpack(data: bytes) -> Message:
    """Decode one message from the first ``MESSAGE_SIZE`` bytes of ``data``."""
    if len(data) < MESSAGE_SIZE:
        raise ValueError(f"need {MESSAGE_SIZE} bytes, got {len(data)}")
    kind, name, text = _FORMAT.unpack_from(data)
    return Message(kind=kind, name=_field(name), text=_field(text))