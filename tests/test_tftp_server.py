import socket
import threading

import pytest

from netkit.tftp_protocol import (
    BLOCK_SIZE,
    BUFFER_SIZE,
    Opcode,
    build_ack,
    build_data,
    build_request,
    error_message,
    opcode_of,
    parse_block,
)
from netkit.tftp_server import TFTPServer, main


@pytest.fixture
def server(tmp_path):
    srv = TFTPServer(str(tmp_path), "127.0.0.1", 0)
    yield srv
    srv.close()


@pytest.fixture
def peer():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(5)
    yield sock
    sock.close()


def _serve(server, packet, peer):
    worker = threading.Thread(
        target=server.handle_request, args=(packet, peer.getsockname()), daemon=True
    )
    worker.start()
    return worker


def _collect(peer):
    received = b""
    blocks = []
    while True:
        packet, addr = peer.recvfrom(BUFFER_SIZE)
        assert opcode_of(packet) == Opcode.DATA
        block = parse_block(packet)
        blocks.append(block)
        received += packet[4:]
        peer.sendto(build_ack(block), addr)
        if len(packet) < BUFFER_SIZE:
            return received, blocks


def test_non_binary_mode_is_rejected(server, peer):
    server.handle_request(build_request(Opcode.RRQ, "a.txt", "netascii"), peer.getsockname())
    packet = peer.recv(BUFFER_SIZE)
    assert opcode_of(packet) == Opcode.ERROR
    assert error_message(packet) == "Only binary mode supported"


def test_unknown_request_opcode(server, peer):
    server.handle_request(b"\x00\x07name\x00octet\x00", peer.getsockname())
    packet = peer.recv(BUFFER_SIZE)
    assert opcode_of(packet) == Opcode.ERROR
    assert error_message(packet) == "Unknown request"


def test_missing_file_reports_not_found(server, peer):
    server.handle_request(build_request(Opcode.RRQ, "absent.bin"), peer.getsockname())
    packet = peer.recv(BUFFER_SIZE)
    assert error_message(packet) == "File not found"


def test_packet_without_leading_zero_is_ignored(server, peer):
    server.handle_request(b"\x01\x01a\x00octet\x00", peer.getsockname())
    peer.settimeout(0.2)
    with pytest.raises(TimeoutError):
        peer.recv(BUFFER_SIZE)


def test_read_request_streams_blocks(server, peer, tmp_path):
    content = bytes(range(256)) * 4 + b"tail"
    (tmp_path / "data.bin").write_bytes(content)
    worker = _serve(server, build_request(Opcode.RRQ, "data.bin"), peer)
    received, blocks = _collect(peer)
    worker.join(5)
    assert received == content
    assert blocks == [1, 2, 3]
    assert not worker.is_alive()


def test_read_of_exact_block_ends_with_empty_block(server, peer, tmp_path):
    content = b"x" * BLOCK_SIZE
    (tmp_path / "full.bin").write_bytes(content)
    worker = _serve(server, build_request(Opcode.RRQ, "full.bin"), peer)
    received, blocks = _collect(peer)
    worker.join(5)
    assert received == content
    assert blocks == [1, 2]


def test_read_ignores_stray_ack(server, peer, tmp_path):
    (tmp_path / "small.bin").write_bytes(b"hello")
    worker = _serve(server, build_request(Opcode.RRQ, "small.bin"), peer)
    packet, addr = peer.recvfrom(BUFFER_SIZE)
    peer.sendto(build_ack(7), addr)
    assert worker.is_alive()
    peer.sendto(build_ack(1), addr)
    worker.join(5)
    assert packet[4:] == b"hello"
    assert not worker.is_alive()


def test_write_request_stores_file(server, peer, tmp_path):
    content = b"a" * BLOCK_SIZE + b"b" * 100
    worker = _serve(server, build_request(Opcode.WRQ, "up.bin"), peer)
    ack, addr = peer.recvfrom(BUFFER_SIZE)
    assert opcode_of(ack) == Opcode.ACK
    assert parse_block(ack) == 0
    peer.sendto(build_data(1, content[:BLOCK_SIZE]), addr)
    assert parse_block(peer.recv(BUFFER_SIZE)) == 1
    peer.sendto(build_data(2, content[BLOCK_SIZE:]), addr)
    assert parse_block(peer.recv(BUFFER_SIZE)) == 2
    worker.join(5)
    assert (tmp_path / "up.bin").read_bytes() == content


def test_write_ignores_out_of_order_block(server, peer, tmp_path):
    worker = _serve(server, build_request(Opcode.WRQ, "order.bin"), peer)
    _, addr = peer.recvfrom(BUFFER_SIZE)
    peer.sendto(build_data(2, b"wrong"), addr)
    peer.sendto(build_data(1, b"right"), addr)
    ack = peer.recv(BUFFER_SIZE)
    worker.join(5)
    assert parse_block(ack) == 1
    assert (tmp_path / "order.bin").read_bytes() == b"right"


def test_write_into_missing_directory_fails(server, peer):
    server.handle_request(build_request(Opcode.WRQ, "nodir/x.bin"), peer.getsockname())
    packet = peer.recv(BUFFER_SIZE)
    assert error_message(packet) == "Cannot create file"


def test_run_serves_requests(server, peer, tmp_path):
    (tmp_path / "served.txt").write_bytes(b"served content")
    threading.Thread(target=server.run, daemon=True).start()
    peer.sendto(build_request(Opcode.RRQ, "served.txt"), server.address)
    received, blocks = _collect(peer)
    assert received == b"served content"
    assert blocks == [1]


def test_main_reports_bind_failure(capsys):
    holder = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    holder.bind(("127.0.0.1", 0))
    try:
        port = holder.getsockname()[1]
        code = main([".", "--host", "256.0.0.1", "--port", str(port)])
    finally:
        holder.close()
    assert code == 1