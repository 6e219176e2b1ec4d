"""A single-threaded TFTP server serving files from a root directory."""

from __future__ import annotations

import argparse
import logging
import socket
import sys
from typing import Optional, Sequence, Tuple

from netkit.tftp_protocol import (
    BLOCK_SIZE,
    BUFFER_SIZE,
    HEADER_SIZE,
    PORT,
    Opcode,
    TFTPError,
    build_ack,
    build_data,
    build_error,
    parse_block,
    parse_request,
)

logger = logging.getLogger(__name__)

Address = Tuple[str, int]


def _matches(packet: bytes, opcode: Opcode, block: int) -> bool:
    return (
        len(packet) >= HEADER_SIZE
        and packet[1] == opcode
        and parse_block(packet) == block
    )


class TFTPServer:
    """Serves read and write requests in binary mode, one transfer at a time."""

    def __init__(self, root_dir: str = ".", host: str = "0.0.0.0", port: int = PORT) -> None:
        self.root_dir = str(root_dir)
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
        except OSError:
            sock.close()
            raise
        self._sock = sock

    @property
    def address(self) -> Address:
        """The address the server socket is bound to."""
        return self._sock.getsockname()

    def run(self) -> None:
        """Receive and handle requests until the socket fails or is closed."""
        print(f"TFTP Server started on port {self.address[1]}", flush=True)
        print(f"Serving files from {self.root_dir}", flush=True)
        while True:
            try:
                data, client_addr = self._sock.recvfrom(BUFFER_SIZE)
            except OSError as exc:
                logger.error("recvfrom error: %s", exc)
                return
            self.handle_request(data, client_addr)

    def handle_request(self, data: bytes, client_addr: Address) -> None:
        """Handle one request packet, carrying out the whole transfer it asks for."""
        if not data or data[0] != 0:
            return
        try:
            request = parse_request(data)
        except TFTPError:
            return
        if not request.is_binary:
            self._send_error("Only binary mode supported", client_addr)
            return
        try:
            if request.opcode == Opcode.RRQ:
                print(f"Read request for: {request.filename}", flush=True)
                self._handle_read(request.filename, client_addr)
            elif request.opcode == Opcode.WRQ:
                print(f"Write request for: {request.filename}", flush=True)
                self._handle_write(request.filename, client_addr)
            else:
                self._send_error("Unknown request", client_addr)
        except OSError as exc:
            logger.error("transfer of %s failed: %s", request.filename, exc)

    def _path(self, filename: str) -> str:
        return f"{self.root_dir}/{filename}"

    def _handle_read(self, filename: str, client_addr: Address) -> None:
        try:
            source = open(self._path(filename), "rb")
        except OSError:
            self._send_error("File not found", client_addr)
            return
        with source:
            block = 1
            while True:
                try:
                    chunk = source.read(BLOCK_SIZE)
                except OSError:
                    self._send_error("Read error", client_addr)
                    return
                self._sock.sendto(build_data(block, chunk), client_addr)
                client_addr = self._await(Opcode.ACK, block)
                if len(chunk) < BLOCK_SIZE:
                    return
                block = (block + 1) & 0xFFFF

    def _handle_write(self, filename: str, client_addr: Address) -> None:
        try:
            target = open(self._path(filename), "wb")
        except OSError:
            self._send_error("Cannot create file", client_addr)
            return
        with target:
            block = 0
            self._sock.sendto(build_ack(block), client_addr)
            while True:
                packet, client_addr = self._sock.recvfrom(BUFFER_SIZE)
                if not _matches(packet, Opcode.DATA, (block + 1) & 0xFFFF):
                    continue
                try:
                    target.write(packet[HEADER_SIZE:])
                    target.flush()
                except OSError:
                    self._send_error("Write error", client_addr)
                    return
                block = (block + 1) & 0xFFFF
                self._sock.sendto(build_ack(block), client_addr)
                if len(packet) < BUFFER_SIZE:
                    return

    def _await(self, opcode: Opcode, block: int) -> Address:
        while True:
            packet, addr = self._sock.recvfrom(BUFFER_SIZE)
            if _matches(packet, opcode, block):
                return addr

    def _send_error(self, message: str, client_addr: Address) -> None:
        try:
            self._sock.sendto(build_error(message, 1), client_addr)
        except OSError as exc:
            logger.error("sendto error: %s", exc)

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> "TFTPServer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start a TFTP server on the given root directory."""
    parser = argparse.ArgumentParser(description="Serve files over TFTP.")
    parser.add_argument("root_dir", nargs="?", default=".", help="directory to serve")
    parser.add_argument("--host", default="0.0.0.0", help="address to bind")
    parser.add_argument("--port", type=int, default=PORT, help="UDP port to bind")
    args = parser.parse_args(argv)
    try:
        with TFTPServer(args.root_dir, args.host, args.port) as server:
            server.run()
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())