"""A chat client that sends typed lines and prints what the server relays."""

from __future__ import annotations

import argparse
import logging
import socket
import sys
import threading
from typing import Iterable, Optional, Sequence

from netkit.chat_message import MESSAGE_SIZE, Message, MessageType, unpack

logger = logging.getLogger(__name__)


def _recv_exact(conn: socket.socket, size: int) -> Optional[bytes]:
    """Read exactly ``size`` bytes, or return None if the peer closed first."""
    chunks = bytearray()
    while len(chunks) < size:
        chunk = conn.recv(size - len(chunks))
        if not chunk:
            return None
        chunks.extend(chunk)
    return bytes(chunks)


class ChatClient:
    """A connection to a chat server under one user name; logs in on creation."""

    def __init__(self, host: str, port: int, name: str) -> None:
        self.name = name
        self._sock = socket.create_connection((host, port))
        self._send_lock = threading.Lock()
        self._running = True
        self._closed = False
        self._receiver: Optional[threading.Thread] = None
        try:
            self.send(MessageType.LOGIN)
        except OSError:
            self._sock.close()
            raise

    @property
    def running(self) -> bool:
        return self._running

    def send(self, kind: int, text: str = "") -> None:
        """Send one message of type ``kind``; the text "quit" ends the session."""
        data = Message(kind, self.name, text).pack()
        with self._send_lock:
            self._sock.sendall(data)
        print("消息发送成功", flush=True)
        if text == "quit":
            self._running = False

    def receive(self) -> Message:
        """Block until one message arrives; raise ConnectionError if the server closed."""
        data = _recv_exact(self._sock, MESSAGE_SIZE)
        if data is None:
            raise ConnectionError("connection closed by server")
        return unpack(data)

    def _receive_loop(self) -> None:
        while self._running:
            try:
                message = self.receive()
            except OSError as exc:
                if self._running:
                    logger.error("recv error: %s", exc)
                self._running = False
                return
            print(f"{message.name}: {message.text}", flush=True)

    def run(self, lines: Optional[Iterable[str]] = None) -> None:
        """Print incoming messages while sending each line as a chat message."""
        source = sys.stdin if lines is None else lines
        self._receiver = threading.Thread(target=self._receive_loop, daemon=True)
        self._receiver.start()
        for line in source:
            if not self._running:
                break
            self.send(MessageType.CHAT, line.rstrip("\r\n"))
            if not self._running:
                break

    def close(self) -> None:
        """Announce leaving to the server and close the connection."""
        if self._closed:
            return
        self._closed = True
        self._running = False
        try:
            self.send(MessageType.QUIT)
        except OSError:
            pass
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._sock.close()
        receiver = self._receiver
        if receiver is not None and receiver is not threading.current_thread():
            receiver.join(1)

    def __enter__(self) -> "ChatClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Join a chat server and chat from standard input."""
    parser = argparse.ArgumentParser(description="Join a chat room.")
    parser.add_argument("host", help="server IP address")
    parser.add_argument("port", type=int, help="server TCP port")
    parser.add_argument("name", help="user name")
    args = parser.parse_args(argv)
    try:
        with ChatClient(args.host, args.port, args.name) as client:
            client.run()
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())