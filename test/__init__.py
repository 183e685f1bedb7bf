from __future__ import annotations

import os
import typing

import pycurl

from curlhttp.handle import _INFO_FIELDS

# We use timeouts in two different ways in our tests
#
# 1. To make sure that the operation timeouts, we can use a short timeout.
# 2. To make sure that the test does not hang even if the operation should succeed, we
#    want to use a long timeout, even more so on CI where tests can be really slow
SHORT_TIMEOUT = 0.001
LONG_TIMEOUT = 5.0
if os.environ.get("CI") or os.environ.get("GITHUB_ACTIONS") == "true":
    LONG_TIMEOUT = 15.0

# Reserved internet scoped address, connections to it hang.
# See the IANA IPv4 special-purpose address registry.
TARPIT_HOST = "240.0.0.0"

_INFO_NAMES = {const: name for name, const in _INFO_FIELDS.items()}

OK_RESPONSE = b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\n\r\nhello"


class FakeCurl:
    """
    Stand-in for ``pycurl.Curl`` replaying a canned raw response.

    :param response: Raw response bytes, header block included.
    :param info: Overrides for ``getinfo()`` keyed by curl_getinfo names.
    :param error: ``(errno, message)`` raised by ``perform()``.
    :param fail_options: pycurl option constants whose ``setopt`` fails.
    """

    def __init__(
        self,
        response: bytes = OK_RESPONSE,
        info: dict[str, typing.Any] | None = None,
        error: tuple[int, str] | None = None,
        fail_options: typing.Iterable[int] = (),
    ) -> None:
        self.response = response
        self.info = dict(info or {})
        self.error = error
        self.fail_options = set(fail_options)
        self.options: dict[int, typing.Any] = {}
        self.setopt_calls: list[tuple[int, typing.Any]] = []
        self.performed = False
        self.closed = False

    @property
    def header_block(self) -> bytes:
        head, sep, _ = self.response.partition(b"\r\n\r\n")
        return head + sep

    @property
    def body(self) -> bytes:
        return self.response[len(self.header_block) :]

    def setopt(self, option: int, value: typing.Any) -> None:
        assert not self.closed, "setopt() on a closed curl object"
        self.setopt_calls.append((option, value))
        if option in self.fail_options:
            raise pycurl.error(43, "A libcurl function was given a bad argument")
        if isinstance(value, str):
            # pycurl only accepts ASCII text
            value.encode("ascii")
        elif isinstance(value, (dict, set)):
            raise TypeError("invalid arguments to setopt")
        if value is None:
            self.options.pop(option, None)
        else:
            self.options[option] = value

    def unsetopt(self, option: int) -> None:
        self.options.pop(option, None)

    def perform(self) -> None:
        assert not self.closed, "perform() on a closed curl object"
        self.performed = True
        if self.error is not None:
            raise pycurl.error(*self.error)

        header_function = self.options.get(pycurl.HEADERFUNCTION)
        if header_function is not None:
            for line in self.header_block.splitlines(keepends=True):
                if header_function(line) not in (None, len(line)):
                    raise pycurl.error(23, "Failed writing header")

        output = self.options.get(pycurl.WRITEDATA)
        if output is not None:
            if self.options.get(pycurl.HEADER):
                output.write(self.response)
            else:
                output.write(self.body)

    def getinfo(self, const: int) -> typing.Any:
        assert not self.closed, "getinfo() on a closed curl object"
        name = _INFO_NAMES[const]
        if name in self.info:
            return self.info[name]
        if name == "url":
            url = self.options.get(pycurl.URL)
            return url.decode("utf-8") if isinstance(url, bytes) else url
        if name == "http_code":
            return 0 if self.error else 200
        if name == "header_size":
            return 0 if self.error else len(self.header_block)
        if name == "size_download":
            return 0 if self.error else len(self.body)
        if name in ("download_content_length", "upload_content_length"):
            return -1
        if name in ("content_type", "redirect_url", "primary_ip", "local_ip"):
            return None
        return 0

    def errstr(self) -> str:
        return self.error[1] if self.error else ""

    def close(self) -> None:
        self.closed = True


class FakeCurlFactory:
    """Builds :class:`FakeCurl` objects and keeps every one it built."""

    def __init__(self, **kwargs: typing.Any) -> None:
        self.kwargs = kwargs
        self.curls: list[FakeCurl] = []

    def __call__(self) -> FakeCurl:
        curl = FakeCurl(**self.kwargs)
        self.curls.append(curl)
        return curl

    @property
    def last(self) -> FakeCurl:
        return self.curls[-1]
