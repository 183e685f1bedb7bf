from __future__ import annotations

import io
import typing

from ..exceptions import UnrewindableBodyError
from .util import to_bytes

_TYPE_BODY = typing.Union[bytes, str, typing.IO[bytes]]

#: HTTP methods a transfer handle knows how to express.
SUPPORTED_METHODS = frozenset(["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD"])

#: Methods whose request body is sent as the transfer payload.
METHODS_WITH_BODY = frozenset(["POST", "PUT", "PATCH"])


def normalize_method(method: str) -> str:
    """Uppercase an HTTP method name and drop surrounding whitespace.

    >>> normalize_method(" post")
    'POST'
    """
    return method.strip().upper()


def body_to_stream(body: _TYPE_BODY | None) -> typing.IO[bytes] | None:
    """
    Wrap a request body in a seekable binary stream.

    ``str`` bodies are encoded as UTF-8. File-like bodies are returned
    as-is; they must support ``seek`` and ``read`` to be sent.
    """
    if body is None:
        return None
    if isinstance(body, str):
        body = body.encode("utf-8")
    if isinstance(body, (bytes, bytearray)):
        return io.BytesIO(body)
    return body


def rewind_body(body: typing.IO[typing.AnyStr], body_pos: int = 0) -> None:
    """
    Attempt to rewind body to a certain position.
    Used before the whole request body is handed to libcurl.

    :param body:
        File-like object that supports seek.

    :param int body_pos:
        Position to seek to in file.
    """
    body_seek = getattr(body, "seek", None)
    if body_seek is None:
        raise UnrewindableBodyError(
            f"Request body of type {type(body).__name__} cannot be rewound."
        )
    try:
        body_seek(body_pos)
    except OSError as e:
        raise UnrewindableBodyError(
            "An error occurred when rewinding request body."
        ) from e


def read_body(body: typing.IO[typing.AnyStr]) -> bytes:
    """Rewind ``body`` and return its full contents as bytes."""
    rewind_body(body)
    return to_bytes(body.read(), encoding="utf-8")
