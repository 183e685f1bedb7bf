from __future__ import annotations

import io
import json as _json
import logging
import typing
from http.client import responses

from ._collections import HTTPHeaderDict

log = logging.getLogger(__name__)


class HTTPResponse(io.IOBase):
    """
    HTTP Response container.

    The body is the sink libcurl streamed the raw response into, already
    positioned after the header block, so reading starts at the first payload
    byte. The response owns the sink and closes it in :meth:`close`.

    :param body:
        Seekable binary file object holding the response.

    :param headers:
        Response headers in the order they were received.

    :param status:
        Final HTTP status code.

    :param request_url:
        URL the request was sent to.

    :param url:
        Effective URL after redirects, when known.
    """

    REDIRECT_STATUSES = [301, 302, 303, 307, 308]

    def __init__(
        self,
        body: typing.IO[bytes] | None = None,
        headers: typing.Mapping[str, str] | None = None,
        status: int = 0,
        request_url: str | None = None,
        url: str | None = None,
    ) -> None:
        if isinstance(headers, HTTPHeaderDict):
            self.headers = headers
        else:
            self.headers = HTTPHeaderDict(headers)
        self.status = status
        self.request_url = request_url
        self._url = url
        self._fp = body if body is not None else io.BytesIO()
        self._body: bytes | None = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} [{self.status}]>"

    @property
    def reason(self) -> str:
        """Standard reason phrase for :attr:`status`, ``""`` when unknown."""
        return responses.get(self.status, "")

    @property
    def url(self) -> str | None:
        """Effective URL of the response, falling back to the request URL."""
        return self._url or self.request_url

    @property
    def data(self) -> bytes:
        """Whole remaining body. Read once, then cached."""
        if self._body is None:
            self._body = self.read()
        return self._body

    def json(self) -> typing.Any:
        """
        Parses the body of the HTTP response as JSON.

        To use a custom JSON decoder pass the result of
        :attr:`HTTPResponse.data` to the decoder.

        This method can raise either `UnicodeDecodeError` or `json.JSONDecodeError`.
        """
        data = self.data.decode("utf-8")
        return _json.loads(data)

    def get_redirect_location(self) -> str | None | typing.Literal[False]:
        """
        Should we redirect and where to?

        :returns: Truthy redirect location string if we got a redirect status
            code and valid location. ``None`` if redirect status and no
            location. ``False`` if not a redirect status code.
        """
        if self.status in self.REDIRECT_STATUSES:
            return self.headers.get("location")
        return False

    def read(self, amt: int | None = None) -> bytes:
        """
        Similar to :meth:`http.client.HTTPResponse.read`, but reads from the
        local sink rather than the socket.

        :param amt:
            How much of the content to read. If specified, caching is skipped
            because it doesn't make sense to cache partial content as the full
            response.
        """
        if self._fp.closed:
            return b""
        if amt is None or amt < 0:
            return self._fp.read()
        return self._fp.read(amt)

    def stream(self, amt: int = 2**16) -> typing.Iterator[bytes]:
        """
        A generator wrapper for the read() method. A call will block until
        ``amt`` bytes have been read from the sink or the sink is exhausted.

        :param amt:
            How much of the content to read per iteration.
        """
        while True:
            data = self.read(amt=amt)
            if not data:
                break
            yield data

    def readable(self) -> bool:
        return True

    def readinto(self, b: bytearray) -> int:
        temp = self.read(len(b))
        if len(temp) == 0:
            return 0
        else:
            b[: len(temp)] = temp
            return len(temp)

    def tell(self) -> int:
        """Current offset in the raw sink, header block included."""
        return self._fp.tell()

    @property
    def closed(self) -> bool:
        return self._fp.closed

    def close(self) -> None:
        if not self._fp.closed:
            log.debug("Closing response body for %s", self.url)
            self._fp.close()

    def fileno(self) -> int:
        return self._fp.fileno()
