import socket
import threading

import pytest

from netkit.chat_message import MESSAGE_SIZE, Message, MessageType, unpack
from netkit.chat_server import ChatServer


def read_message(sock):
    data = bytearray()
    while len(data) < MESSAGE_SIZE:
        chunk = sock.recv(MESSAGE_SIZE - len(data))
        if not chunk:
            raise ConnectionError("closed")
        data.extend(chunk)
    return unpack(bytes(data))


@pytest.fixture
def running_server():
    server = ChatServer("127.0.0.1", 0, 2)
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()
    yield server
    server.close()
    thread.join(5)


def connect(server):
    return socket.create_connection(server.address, timeout=5)


def login(sock, name):
    sock.sendall(Message(MessageType.LOGIN, name).pack())


def test_login_is_broadcast_with_notice(running_server):
    with connect(running_server) as alice:
        login(alice, "alice")
        message = read_message(alice)
        assert message == Message(MessageType.LOGIN, "alice", "-------alice 登录成功-----------")
        assert len(running_server.clients) == 1


def test_chat_reaches_others_but_not_sender(running_server):
    with connect(running_server) as alice, connect(running_server) as bob:
        login(alice, "alice")
        read_message(alice)
        login(bob, "bob")
        assert read_message(alice).name == "bob"
        assert read_message(bob).name == "bob"

        alice.sendall(Message(MessageType.CHAT, "alice", "hi").pack())
        assert read_message(bob) == Message(MessageType.CHAT, "alice", "hi")

        bob.sendall(Message(MessageType.CHAT, "bob", "yo").pack())
        assert read_message(alice) == Message(MessageType.CHAT, "bob", "yo")


def test_quit_notifies_everyone_and_closes(running_server):
    with connect(running_server) as alice, connect(running_server) as bob:
        login(alice, "alice")
        read_message(alice)
        login(bob, "bob")
        read_message(alice)
        read_message(bob)

        bob.sendall(Message(MessageType.QUIT, "bob").pack())
        expected = Message(MessageType.QUIT, "bob", "---------bob 退出聊天室---------")
        assert read_message(alice) == expected
        assert read_message(bob) == expected
        assert bob.recv(1) == b""


def test_handle_client_login_then_quit_over_socketpair():
    with ChatServer("127.0.0.1", 0, 1) as server:
        server_side, peer = socket.socketpair()
        with peer:
            peer.settimeout(5)
            peer.sendall(
                Message(MessageType.LOGIN, "carol").pack()
                + Message(MessageType.QUIT, "carol").pack()
            )
            server.handle_client(server_side, ("127.0.0.1", 1))
            assert read_message(peer).kind == MessageType.LOGIN
            assert read_message(peer).text == "---------carol 退出聊天室---------"
            assert peer.recv(1) == b""
        assert server.clients == []


def test_disconnect_removes_client():
    with ChatServer("127.0.0.1", 0, 1) as server:
        server_side, peer = socket.socketpair()
        with peer:
            peer.settimeout(5)
            peer.sendall(Message(MessageType.LOGIN, "dave").pack())
            peer.shutdown(socket.SHUT_WR)
            server.handle_client(server_side, ("127.0.0.1", 2))
            assert read_message(peer).name == "dave"
        assert server.clients == []


def test_unknown_type_is_reported_and_not_relayed(capsys):
    with ChatServer("127.0.0.1", 0, 1) as server:
        server_side, peer = socket.socketpair()
        with peer:
            peer.settimeout(5)
            peer.sendall(Message(9, "eve", "odd").pack())
            peer.shutdown(socket.SHUT_WR)
            server.handle_client(server_side, ("127.0.0.1", 3))
            assert peer.recv(1) == b""
    assert "消息类型有误" in capsys.readouterr().out


def test_close_stops_run():
    server = ChatServer("127.0.0.1", 0, 1)
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()
    client = connect(server)
    login(client, "frank")
    read_message(client)
    server.close()
    thread.join(5)
    assert not thread.is_alive()
    assert client.recv(1) == b""
    client.close()


def test_bind_conflict_raises():
    with ChatServer("127.0.0.1", 0, 1) as first:
        port = first.address[1]
        with pytest.raises(OSError):
            ChatServer("127.0.0.1", port, 1)


def test_main_requires_arguments():
    with pytest.raises(SystemExit):
        from netkit.chat_server import main

        main([])