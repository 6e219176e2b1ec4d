"""A multi-client chat server that relays messages between logged-in users."""

from __future__ import annotations

import argparse
import dataclasses
import functools
import logging
import socket
import sys
import threading
from typing import Dict, List, Optional, Sequence, Set, Tuple

from netkit.chat_message import MESSAGE_SIZE, Message, MessageType, unpack
from netkit.threadpool import ThreadPool

logger = logging.getLogger(__name__)

Address = Tuple[str, int]

_BACKLOG = 10
_ACCEPT_POLL = 0.2


def _recv_exact(conn: socket.socket, size: int) -> Optional[bytes]:
    """Read exactly ``size`` bytes, or return None if the peer went away first."""
    chunks = bytearray()
    while len(chunks) < size:
        try:
            chunk = conn.recv(size - len(chunks))
        except OSError:
            return None
        if not chunk:
            return None
        chunks.extend(chunk)
    return bytes(chunks)


class ChatServer:
    """Accepts TCP clients and serves each of them on a worker thread."""

    def __init__(self, host: str, port: int, pool_size: int = 4) -> None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen(_BACKLOG)
        except OSError:
            sock.close()
            raise
        sock.settimeout(_ACCEPT_POLL)
        self._sock = sock
        self._clients: Dict[socket.socket, Address] = {}
        self._clients_lock = threading.RLock()
        self._connections: Set[socket.socket] = set()
        self._connections_lock = threading.Lock()
        self._closed = threading.Event()
        self._pool = ThreadPool(pool_size)

    @property
    def address(self) -> Address:
        """The address the listening socket is bound to."""
        return self._sock.getsockname()

    @property
    def clients(self) -> List[Address]:
        """Addresses of the clients currently logged in, in login order."""
        with self._clients_lock:
            return list(self._clients.values())

    def run(self) -> None:
        """Accept connections until the server is closed."""
        while not self._closed.is_set():
            try:
                conn, addr = self._sock.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if self._closed.is_set():
                    return
                logger.error("accept error: %s", exc)
                continue
            conn.settimeout(None)
            with self._connections_lock:
                if self._closed.is_set():
                    conn.close()
                    return
                self._connections.add(conn)
            try:
                self._pool.add_task(functools.partial(self.handle_client, conn, addr))
            except RuntimeError:
                self._drop_connection(conn)
                return

    def handle_client(self, conn: socket.socket, addr: Address) -> None:
        """Serve one connection until the client quits or disconnects."""
        try:
            while True:
                data = _recv_exact(conn, MESSAGE_SIZE)
                if data is None:
                    with self._clients_lock:
                        self._clients.pop(conn, None)
                    return
                message = unpack(data)
                if message.kind == MessageType.LOGIN:
                    with self._clients_lock:
                        self._clients[conn] = addr
                        notice = f"-------{message.name} 登录成功-----------"
                        self.broadcast(dataclasses.replace(message, text=notice))
                elif message.kind == MessageType.CHAT:
                    self.broadcast(message, exclude=conn)
                elif message.kind == MessageType.QUIT:
                    with self._clients_lock:
                        if conn in self._clients:
                            notice = f"---------{message.name} 退出聊天室---------"
                            self.broadcast(dataclasses.replace(message, text=notice))
                            del self._clients[conn]
                    return
                else:
                    print("消息类型有误", flush=True)
        finally:
            self._drop_connection(conn)

    def broadcast(self, message: Message, exclude: Optional[socket.socket] = None) -> None:
        """Send ``message`` to every logged-in client except ``exclude``."""
        data = message.pack()
        with self._clients_lock:
            for conn in list(self._clients):
                if conn is exclude:
                    continue
                try:
                    conn.sendall(data)
                except OSError as exc:
                    logger.error("send error: %s", exc)

    def _drop_connection(self, conn: socket.socket) -> None:
        with self._connections_lock:
            self._connections.discard(conn)
        conn.close()

    def close(self) -> None:
        """Stop accepting, disconnect every client and join the workers."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._sock.close()
        with self._connections_lock:
            connections = list(self._connections)
        for conn in connections:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        self._pool.shutdown()

    def __enter__(self) -> "ChatServer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start a chat server on the given address and port."""
    parser = argparse.ArgumentParser(description="Run a chat room server.")
    parser.add_argument("host", help="address to bind")
    parser.add_argument("port", type=int, help="TCP port to bind")
    parser.add_argument("--pool-size", type=int, default=4, help="number of worker threads")
    args = parser.parse_args(argv)
    try:
        with ChatServer(args.host, args.port, args.pool_size) as server:
            server.run()
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())