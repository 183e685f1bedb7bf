#!/usr/bin/env python

"""
Socket-level dummy server used for unit testing.
"""

from __future__ import annotations

import logging
import socket
import sys
import threading
import typing

log = logging.getLogger(__name__)


class SocketServerThread(threading.Thread):
    """
    :param socket_handler: Callable which receives a socket argument for one
        request.
    :param ready_event: Event which gets set when the socket handler is
        ready to receive requests.
    """

    def __init__(
        self,
        socket_handler: typing.Callable[[socket.socket], None],
        host: str = "127.0.0.1",
        ready_event: threading.Event | None = None,
    ) -> None:
        super().__init__()
        self.daemon = True

        self.socket_handler = socket_handler
        self.host = host
        self.ready_event = ready_event

    def _start_server(self) -> None:
        sock = socket.socket(socket.AF_INET)
        if sys.platform != "win32":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((self.host, 0))
        self.port = sock.getsockname()[1]

        # Once listen() returns, the server socket is ready
        sock.listen(1)

        if self.ready_event:
            self.ready_event.set()

        self.socket_handler(sock)
        sock.close()

    def run(self) -> None:
        self._start_server()


def consume_request(sock: socket.socket, chunks: int = 65536) -> bytes:
    """Read one HTTP request: the header block, then ``Content-Length``
    bytes of body if announced."""
    consumed = bytearray()
    while b"\r\n\r\n" not in consumed:
        b = sock.recv(chunks)
        if not b:
            return bytes(consumed)
        consumed += b

    head, _, body = bytes(consumed).partition(b"\r\n\r\n")
    length = 0
    for line in head.split(b"\r\n")[1:]:
        name, _, value = line.partition(b":")
        if name.strip().lower() == b"content-length":
            length = int(value.strip())

    while len(body) < length:
        b = sock.recv(chunks)
        if not b:
            break
        body += b

    log.debug("Dummy server received %d header bytes", len(head))
    return head + b"\r\n\r\n" + body
