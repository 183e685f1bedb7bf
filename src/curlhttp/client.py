from __future__ import annotations

import contextlib
import json
import logging
import tempfile
import typing

from ._collections import HTTPHeaderDict
from .exceptions import (
    HTTPClientError,
    SinkAllocationError,
    TransferError,
    TransferExecutionError,
    UnrewindableBodyError,
)
from .handle import Option, TransferHandle, _TYPE_CURL_FACTORY
from .request import Request
from .response import HTTPResponse
from .util.request import METHODS_WITH_BODY, read_body
from .util.timeout import _DEFAULT_TIMEOUT, _TYPE_TIMEOUT, Timeout

log = logging.getLogger(__name__)

USER_AGENT_BROWSER_FIREFOX = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:106.0) "
    "Gecko/20100101 Firefox/106.0"
)
USER_AGENT_CLI = "curlhttp/1.0"

# Responses stay in memory up to this size, then spill to a temporary file.
SINK_MAX_MEMORY = 2 * 1024 * 1024


class ResponseHeaderCollector:
    """
    Header-line callback for libcurl, collecting ``Name: value`` pairs.

    libcurl calls it once per raw header line, status line and blank
    separator included. Lines without a colon are skipped. With redirects
    followed, headers of every hop are collected in arrival order.
    """

    def __init__(self) -> None:
        self.headers = HTTPHeaderDict()

    def __call__(self, line: bytes | str) -> int:
        if isinstance(line, bytes):
            raw = line
            text = line.decode("iso-8859-1")
        else:
            raw = line.encode("iso-8859-1", errors="replace")
            text = line

        name, sep, value = text.partition(":")
        if sep:
            self.headers.add(name.strip(), value.strip())

        # libcurl aborts the transfer unless the whole line is acknowledged.
        return len(raw)


class HTTPClient:
    """
    Synchronous HTTP client running one libcurl transfer per request.

    The client only holds configuration. Each call to :meth:`send_request`
    gets its own transfer handle, response sink and header collector, so one
    client can be shared between threads.

    :param timeout:
        Default :class:`~curlhttp.util.timeout.Timeout` (or number of
        seconds) for requests, 3 seconds overall and 1 second to connect
        unless given. ``None`` disables both limits.

    :param user_agent:
        Value of the ``User-Agent`` header. A ``User-Agent`` in the request
        headers takes precedence.

    :param sandboxed:
        Set when the process runs with restricted filesystem access;
        redirects are then never followed.

    :param curl_factory:
        Passed to each :class:`~curlhttp.handle.TransferHandle`.
    """

    def __init__(
        self,
        timeout: _TYPE_TIMEOUT = _DEFAULT_TIMEOUT,
        user_agent: str = USER_AGENT_BROWSER_FIREFOX,
        *,
        sandboxed: bool = False,
        curl_factory: _TYPE_CURL_FACTORY | None = None,
    ) -> None:
        self.timeout = Timeout.from_value(timeout)
        self.user_agent = user_agent
        self.sandboxed = sandboxed
        self.curl_factory = curl_factory

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(timeout={self.timeout!r}, "
            f"user_agent={self.user_agent!r})"
        )

    def send_request(
        self, request: Request, timeout: _TYPE_TIMEOUT = _DEFAULT_TIMEOUT
    ) -> HTTPResponse:
        """
        Send ``request`` and return the response with its body ready to read.

        :param timeout:
            Overrides the client's timeout for this request only. ``None``
            disables both limits.

        :raises HTTPClientError: the request could not be completed. The
            transfer handle and the response sink are released first.
        """
        resolved = Timeout.from_value(timeout, default=self.timeout)

        try:
            sink = tempfile.SpooledTemporaryFile(max_size=SINK_MAX_MEMORY, mode="w+b")
        except OSError as e:
            raise SinkAllocationError(
                "Cannot open stream resource for HTTPClient"
            ) from e

        collector = ResponseHeaderCollector()
        with contextlib.ExitStack() as stack:
            stack.callback(sink.close)

            with TransferHandle(
                sandboxed=self.sandboxed, curl_factory=self.curl_factory
            ) as handle:
                try:
                    self._prepare_handle(handle, request, sink, collector, resolved)
                    outcome = handle.exec()
                except (TransferError, UnrewindableBodyError) as e:
                    raise HTTPClientError(str(e), getattr(e, "code", 0)) from e

                info = outcome.info
                status = int(info.get("http_code") or 200)

                if not outcome.ok:
                    error = handle.get_error()
                    errno = handle.get_error_number()
                    raise TransferExecutionError(
                        "Execution failed! (error: %s, code: %d, infos: %s)"
                        % (error, errno, json.dumps(info, default=str)),
                        errno,
                        info,
                    )

            # Move the pointer past the header block written to the sink.
            sink.seek(int(info.get("header_size") or 0))
            stack.pop_all()

        log.debug(
            '"%s %s" %s %s',
            request.method,
            request.url,
            status,
            info.get("size_download"),
        )
        return HTTPResponse(
            body=sink,
            headers=collector.headers,
            status=status,
            request_url=request.url,
            url=info.get("url"),
        )

    def _prepare_handle(
        self,
        handle: TransferHandle,
        request: Request,
        sink: typing.IO[bytes],
        collector: ResponseHeaderCollector,
        timeout: Timeout,
    ) -> TransferHandle:
        handle.init(request.url).set_method(request.method)

        handle.set_options(
            {
                Option.RETURN_TRANSFER: False,
                Option.CONNECT_TIMEOUT: timeout.connect,
                Option.TIMEOUT: timeout.total,
                Option.OUTPUT: sink,
                Option.HEADER: True,
                Option.HEADER_FUNCTION: collector,
                Option.FOLLOW_LOCATION: True,
                Option.USER_AGENT: self.user_agent,
            }
        )

        header_lines = request.header_lines()
        if header_lines:
            handle.set_option(Option.HTTP_HEADER, header_lines)

        # Without post fields libcurl would read a POST body from stdin.
        if request.method == "POST" and request.body is None:
            handle.set_post_data(b"")
        elif request.method in METHODS_WITH_BODY and request.body is not None:
            handle.set_post_data(read_body(request.body))

        return handle
