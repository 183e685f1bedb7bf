from __future__ import annotations

import socket
import threading
import typing

from dummyserver.socketserver import SocketServerThread, consume_request


class SocketDummyServerTestCase:
    """
    A simple socket-based server is created for this class that is good for
    exactly ``num`` requests.
    """

    scheme = "http"
    host = "127.0.0.1"

    server_thread: typing.ClassVar[SocketServerThread]
    port: typing.ClassVar[int]

    #: Raw requests received by the server, in order.
    received: typing.ClassVar[list[bytes]]

    @classmethod
    def _start_server(
        cls, socket_handler: typing.Callable[[socket.socket], None]
    ) -> None:
        ready_event = threading.Event()
        cls.server_thread = SocketServerThread(
            socket_handler=socket_handler, ready_event=ready_event, host=cls.host
        )
        cls.server_thread.start()
        ready_event.wait(5)
        if not ready_event.is_set():
            raise Exception("most likely failed to start server")
        cls.port = cls.server_thread.port

    @classmethod
    def start_response_handler(cls, *responses: bytes) -> threading.Event:
        """Serve each canned response to one connection, in order."""
        ready_event = threading.Event()
        cls.received = []

        def socket_handler(listener: socket.socket) -> None:
            for response in responses:
                ready_event.set()

                sock = listener.accept()[0]
                cls.received.append(consume_request(sock))
                sock.sendall(response)
                sock.close()

        cls._start_server(socket_handler)
        return ready_event

    @classmethod
    def start_basic_handler(cls) -> threading.Event:
        return cls.start_response_handler(
            b"HTTP/1.1 200 OK\r\nContent-Length: 0\r\nConnection: close\r\n\r\n"
        )

    @classmethod
    def teardown_class(cls) -> None:
        if hasattr(cls, "server_thread"):
            cls.server_thread.join(0.1)

    def url(self, path: str = "/") -> str:
        return f"{self.scheme}://{self.host}:{self.port}{path}"

    def assert_header_received(
        self,
        received_headers: typing.Iterable[bytes],
        header_name: str,
        expected_value: str | None = None,
    ) -> None:
        header_name_bytes = header_name.encode("ascii")
        if expected_value is None:
            expected_value_bytes = None
        else:
            expected_value_bytes = expected_value.encode("ascii")
        header_titles = []
        for header in received_headers:
            key, value = header.split(b": ", 1)
            header_titles.append(key)
            if key == header_name_bytes and expected_value_bytes is not None:
                assert value == expected_value_bytes
        assert header_name_bytes in header_titles

    def request_headers(self, index: int = 0) -> list[bytes]:
        """Header lines of the ``index``-th received request."""
        head = self.received[index].partition(b"\r\n\r\n")[0]
        return head.split(b"\r\n")[1:]

    def request_body(self, index: int = 0) -> bytes:
        return self.received[index].partition(b"\r\n\r\n")[2]
