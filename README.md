# netkit

A small collection of networking tools built on the standard library only:

- **Thread pool** (`netkit.threadpool`): a fixed set of worker threads that
  run queued callables in submission order.
- **TFTP** (`netkit.tftp_protocol`, `netkit.tftp_server`,
  `netkit.tftp_client`): a UDP server and an interactive client for
  octet-mode transfers with 512-byte blocks.
- **Chat** (`netkit.chat_message`, `netkit.chat_server`,
  `netkit.chat_client`): a TCP chat server that relays messages between
  logged-in users, and a line-based client to talk to it.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Command-line tools

### Thread pool demo

```
netkit-threadpool-demo
```

Starts a pool of three workers and queues twenty tasks; each prints its
number and the identifier of the thread running it, then sleeps half a
second. The pool is shut down after five seconds, once the queue is
drained.

### TFTP server

```
netkit-tftp-server [ROOT_DIR] [--host HOST] [--port PORT]
```

Serves files from `ROOT_DIR` (the current directory by default), bound to
`0.0.0.0` on UDP port 8888 unless told otherwise. Read requests send the
file in 512-byte DATA blocks, waiting for the matching ACK after each;
write requests create or truncate the file and acknowledge each block in
turn. Only octet (binary) mode is accepted. Other modes
(`Only binary mode supported`), unknown request opcodes (`Unknown request`),
files that cannot be opened (`File not found`) or created
(`Cannot create file`) are answered with a TFTP error packet. Packets that
are not well-formed requests are ignored. Transfers are handled one at a
time.

### TFTP client

```
netkit-tftp-client SERVER_IP [--port PORT]
```

Shows a menu: `1` downloads a file, `2` uploads a file, `3` quits (end of
input also quits). Downloads are written to a file of the same name in the
current directory; uploads are read from there. An error reported by the
server is printed.

### Chat server

```
netkit-chat-server HOST PORT [--pool-size N]
```

Listens on `HOST:PORT`. Each connection is handled by a worker from the
server's thread pool (four workers by default, so at most that many
clients are served at once). A login is announced to every logged-in user,
including the one who logged in; a quit is announced to everyone before
the user is removed; chat messages go to all other logged-in users.

### Chat client

```
netkit-chat-client HOST PORT NAME
```

Connects and logs in as `NAME`, prints incoming messages as `name: text`,
and sends every line read from standard input as a chat message. Sending
the line `quit` ends the session; on exit the client tells the server it is
leaving and closes the connection.

## Using the library

```python
from netkit.threadpool import ThreadPool

with ThreadPool(3) as pool:
    for i in range(5):
        pool.add_task(lambda i=i: print("task", i))
# leaving the block waits for queued tasks to finish
```

`add_task` raises `TypeError` for a non-callable and `RuntimeError` once the
pool has been shut down. Exceptions raised by tasks are logged and do not
stop the worker.

TFTP packets can be built and inspected with `netkit.tftp_protocol`:

```python
from netkit.tftp_protocol import Opcode, build_ack, build_request, parse_block, parse_request

packet = build_request(Opcode.RRQ, "notes.txt", "octet")
request = parse_request(packet)   # Request(opcode=1, filename='notes.txt', mode='octet')
assert request.is_binary

ack = build_ack(7)
assert parse_block(ack) == 7
```

The module also provides `build_data`, `build_error`, `opcode_of` and
`error_message`; malformed packets raise `TFTPError`.

Chat messages use a fixed-size binary frame (`MESSAGE_SIZE` bytes: a
32-bit type, a 20-byte name field and a 128-byte text field) provided by
`netkit.chat_message`:

```python
from netkit.chat_message import Message, MessageType, unpack

frame = Message(MessageType.CHAT, "alice", "hello").pack()
message = unpack(frame)
```

Names longer than 19 bytes and texts longer than 128 bytes are cut short
when packed.

The servers and clients are also available as classes: `TFTPServer`
(with `run`, `handle_request` and `address`), `TFTPClient` (with
`download`, `upload` and `run`), `ChatServer` (with `run`,
`handle_client`, `broadcast`, `clients` and `address`) and `ChatClient`
(with `send`, `receive` and `run`). Each can be used as a context manager
so its socket is closed on exit.

## Limitations

- The TFTP server and client have no timeouts and never retransmit: a lost
  packet stalls the transfer.
- Only octet mode is supported; netascii and mail modes are refused.
- Error packets are always sent with error code 1.
- The TFTP server serves one transfer at a time and does not restrict
  filenames to the root directory.
- The chat server keeps no history and has no authentication.