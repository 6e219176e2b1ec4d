"""Thread pool, TFTP client and server, and TCP chat server and client."""

__version__ = "0.1.0"