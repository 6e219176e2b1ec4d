"""An interactive TFTP client that downloads and uploads files in binary mode."""

from __future__ import annotations

import argparse
import logging
import socket
import sys
from typing import Optional, Sequence

from netkit.tftp_protocol import (
    BLOCK_SIZE,
    BUFFER_SIZE,
    HEADER_SIZE,
    PORT,
    Opcode,
    TFTPError,
    build_ack,
    build_data,
    build_request,
    error_message,
    parse_block,
)

logger = logging.getLogger(__name__)

_MENU = (
    "******************基于UDP的TFTP文件传输********************",
    "*********************1、下载************************",
    "*********************2、上传************************",
    "*********************3、退出************************",
    "**********************************************************",
)


def _opcode(packet: bytes) -> Optional[int]:
    return packet[1] if len(packet) >= 2 else None


class TFTPClient:
    """Talks to one TFTP server; files are read from and written to the working directory."""

    def __init__(self, server_ip: str, port: int = PORT) -> None:
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._server = (server_ip, port)

    def download(self, filename: str) -> int:
        """Fetch ``filename`` from the server and return the number of bytes written.

        Raises TFTPError with the server's message if it reports an error.
        """
        self._sock.sendto(build_request(Opcode.RRQ, filename), self._server)
        expected = 1
        written = 0
        target = None
        try:
            while True:
                packet, self._server = self._sock.recvfrom(BUFFER_SIZE)
                opcode = _opcode(packet)
                if opcode == Opcode.DATA and len(packet) >= HEADER_SIZE:
                    if target is None:
                        target = open(filename, "wb")
                    block = parse_block(packet)
                    if block == expected:
                        payload = packet[HEADER_SIZE:]
                        target.write(payload)
                        written += len(payload)
                    self._sock.sendto(build_ack(block), self._server)
                    if len(packet) < BUFFER_SIZE:
                        return written
                    expected = (expected + 1) & 0xFFFF
                elif opcode == Opcode.ERROR:
                    raise TFTPError(error_message(packet))
        finally:
            if target is not None:
                target.close()

    def upload(self, filename: str) -> int:
        """Send ``filename`` to the server and return the number of bytes sent.

        Raises FileNotFoundError if the file is missing and TFTPError if the
        server reports an error.
        """
        with open(filename, "rb") as source:
            self._sock.sendto(build_request(Opcode.WRQ, filename), self._server)
            block = 0
            sent = 0
            finished = False
            while True:
                packet, self._server = self._sock.recvfrom(BUFFER_SIZE)
                opcode = _opcode(packet)
                if (
                    opcode == Opcode.ACK
                    and len(packet) >= HEADER_SIZE
                    and parse_block(packet) == block
                ):
                    if finished:
                        return sent
                    chunk = source.read(BLOCK_SIZE)
                    block = (block + 1) & 0xFFFF
                    self._sock.sendto(build_data(block, chunk), self._server)
                    sent += len(chunk)
                    finished = len(chunk) < BLOCK_SIZE
                elif opcode == Opcode.ERROR:
                    raise TFTPError(error_message(packet))

    def run(self) -> None:
        """Show the menu and carry out transfers until the user quits or input ends."""
        try:
            while True:
                _show_menu()
                choice = input().strip()[:1]
                if choice == "1":
                    self._interactive_download()
                elif choice == "2":
                    self._interactive_upload()
                elif choice == "3":
                    return
                else:
                    print("输入有误请重新输入")
                input("请输入任意字符进行清屏")
        except EOFError:
            return

    def _interactive_download(self) -> None:
        filename = input("请输入要下载的文件名称:")
        try:
            self.download(filename)
        except TFTPError as exc:
            print(f"________error: {exc}________")
        except OSError as exc:
            logger.error("download of %s failed: %s", filename, exc)
        else:
            print("------------文件下载完成--------------")

    def _interactive_upload(self) -> None:
        filename = input("请输入要上传的文件名：")
        try:
            self.upload(filename)
        except FileNotFoundError:
            print("文件不存在")
        except TFTPError:
            print("-----------文件上传失败-----------")
        except OSError as exc:
            logger.error("upload of %s failed: %s", filename, exc)
        else:
            print("--------------上传完成------------")

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> "TFTPClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _show_menu() -> None:
    print("\033[H\033[2J", end="")
    for line in _MENU:
        print(line)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the interactive client against a server address."""
    parser = argparse.ArgumentParser(description="Transfer files with a TFTP server.")
    parser.add_argument("server_ip", help="server IP address")
    parser.add_argument("--port", type=int, default=PORT, help="server UDP port")
    args = parser.parse_args(argv)
    try:
        with TFTPClient(args.server_ip, args.port) as client:
            client.run()
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())