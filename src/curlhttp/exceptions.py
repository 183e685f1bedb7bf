from __future__ import annotations

import typing

_TYPE_REDUCE_RESULT = typing.Tuple[
    typing.Callable[..., object], typing.Tuple[object, ...]
]

# Base Exceptions


class HTTPError(Exception):
    """Base exception used by this module."""

    pass


class TransferError(HTTPError):
    """Base exception for errors raised by a :class:`~curlhttp.handle.TransferHandle`.

    :param message: Human readable description, usually the libcurl error text.
    :param code: libcurl error number, ``0`` when the failure did not come
        from the engine itself.
    """

    def __init__(self, message: str, code: int = 0) -> None:
        self.message = message
        self.code = code
        super().__init__(message)

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.message, self.code)


class HTTPClientError(HTTPError):
    """Raised by :meth:`~curlhttp.client.HTTPClient.send_request` when a
    request cannot be completed.

    Errors coming from the transfer handle are re-raised as this type with
    their message and code preserved; the original error is available as
    ``__cause__``.
    """

    def __init__(self, message: str, code: int = 0) -> None:
        self.message = message
        self.code = code
        super().__init__(message)

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.message, self.code)


# Leaf Exceptions


class InitError(TransferError):
    """Raised when a transfer handle cannot be allocated, or is used while it
    holds no live curl object."""

    pass


class OptionError(TransferError):
    """Raised when libcurl rejects a transfer option. The handle is closed."""

    pass


class UnsupportedMethodError(TransferError, ValueError):
    """Raised when a request uses an HTTP method the handle cannot express."""

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Set method failed: method {method} is not supported")

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.method,)


class TransferExecutionError(HTTPClientError):
    """Raised when the transfer itself fails (DNS, connect, timeout, ...).

    :param info: Introspection snapshot captured right after the failure.
    """

    def __init__(
        self,
        message: str,
        code: int = 0,
        info: typing.Mapping[str, typing.Any] | None = None,
    ) -> None:
        self.info = dict(info or {})
        super().__init__(message, code)

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.message, self.code, self.info)


class SinkAllocationError(HTTPClientError):
    """Raised when the temporary response sink cannot be created."""

    #: Fixed error code, outside libcurl's range.
    CODE = 1001

    def __init__(self, message: str, code: int = CODE) -> None:
        super().__init__(message, code)


class UnrewindableBodyError(HTTPError):
    """curlhttp encountered an error when trying to rewind a request body"""

    pass
