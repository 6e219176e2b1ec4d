"""Packet encoding and decoding for the TFTP subset used by the client and server."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

PORT = 8888
BLOCK_SIZE = 512
HEADER_SIZE = 4
BUFFER_SIZE = BLOCK_SIZE + HEADER_SIZE
DEFAULT_MODE = "octet"

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class Opcode(enum.IntEnum):
    RRQ = 1
    WRQ = 2
    DATA = 3
    ACK = 4
    ERROR = 5


class TFTPError(Exception):
    """Raised for a malformed packet or for an error reported by the peer."""


@dataclass(frozen=True)
class Request:
    """A read or write request. ``opcode`` holds the raw value from the packet."""

    opcode: int
    filename: str
    mode: str

    @property
    def is_binary(self) -> bool:
        return self.mode.lower() == DEFAULT_MODE


def _encode(text: str) -> bytes:
    return text.encode(_ENCODING, _ERRORS)


def _decode(raw: bytes) -> str:
    return raw.decode(_ENCODING, _ERRORS)


def build_request(opcode: int, filename: str, mode: str = DEFAULT_MODE) -> bytes:
    """Build an RRQ or WRQ packet: opcode, filename, NUL, mode, NUL."""
    if opcode not in (Opcode.RRQ, Opcode.WRQ):
        raise ValueError(f"not a request opcode: {opcode}")
    name = _encode(filename)
    if b"\0" in name:
        raise ValueError("filename must not contain NUL")
    return struct.pack("!H", int(opcode)) + name + b"\0" + _encode(mode) + b"\0"


def parse_request(data: bytes) -> Request:
    """Decode a request packet into its opcode, filename and mode."""
    if len(data) < 2 or data[0] != 0:
        raise TFTPError("malformed request packet")
    fields = data[2:].split(b"\0")
    if len(fields) < 2:
        raise TFTPError("request packet lacks a filename terminator")
    return Request(opcode=data[1], filename=_decode(fields[0]), mode=_decode(fields[1]))


def build_data(block: int, payload: bytes) -> bytes:
    """Build a DATA packet; the block number wraps at 16 bits."""
    if len(payload) > BLOCK_SIZE:
        raise ValueError(f"payload of {len(payload)} bytes exceeds {BLOCK_SIZE}")
    return struct.pack("!HH", Opcode.DATA, block & 0xFFFF) + bytes(payload)


def build_ack(block: int) -> bytes:
    """Build an ACK packet; the block number wraps at 16 bits."""
    return struct.pack("!HH", Opcode.ACK, block & 0xFFFF)


def build_error(message: str, code: int = 1) -> bytes:
    """Build an ERROR packet with a NUL-terminated message."""
    return struct.pack("!HH", Opcode.ERROR, code & 0xFFFF) + _encode(message) + b"\0"


def opcode_of(data: bytes) -> int:
    """Return the opcode byte of a packet."""
    if len(data) < 2:
        raise TFTPError("packet too short for an opcode")
    return data[1]


def parse_block(data: bytes) -> int:
    """Return the block number carried by a DATA or ACK packet."""
    if len(data) < HEADER_SIZE:
        raise TFTPError("packet too short for a block number")
    (block,) = struct.unpack_from("!H", data, 2)
    return block


def error_message(data: bytes) -> str:
    """Return the text of an ERROR packet."""
    if len(data) < HEADER_SIZE:
        raise TFTPError("packet too short for an error message")
    return _decode(data[HEADER_SIZE:].split(b"\0", 1)[0])