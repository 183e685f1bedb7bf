from __future__ import annotations

import typing

from ._collections import HTTPHeaderDict
from .util.request import _TYPE_BODY, body_to_stream, normalize_method

__all__ = ["Request"]


class Request:
    """
    Description of one HTTP request, consumed by
    :meth:`~curlhttp.client.HTTPClient.send_request`.

    :param method:
        HTTP method. Case-insensitive; stored uppercase without surrounding
        whitespace.

    :param url:
        Target URL, passed to libcurl unchanged.

    :param headers:
        Mapping or iterable of header pairs. A mapping value may be a list
        of values for that header.

    :param body:
        Optional request body: ``bytes``, ``str`` (encoded as UTF-8) or a
        seekable binary file object.
    """

    def __init__(
        self,
        method: str,
        url: str,
        headers: typing.Mapping[str, str | typing.Sequence[str]]
        | typing.Iterable[tuple[str, str]]
        | None = None,
        body: _TYPE_BODY | None = None,
    ) -> None:
        self.method = normalize_method(method)
        self.url = url
        self.headers = HTTPHeaderDict(headers)  # type: ignore[arg-type]
        self.body = body_to_stream(body)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} [{self.method}] {self.url}>"

    def header_lines(self) -> list[str]:
        """Headers serialized as ``"Name: value1, value2"`` lines, one per
        field name, in insertion order."""
        return [f"{name}: {value}" for name, value in self.headers.itermerged()]
