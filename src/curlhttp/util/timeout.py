from __future__ import annotations

import typing
from enum import Enum


class _TYPE_DEFAULT(Enum):
    # This value should never be passed to libcurl
    token = -1


_DEFAULT_TIMEOUT: typing.Final[_TYPE_DEFAULT] = _TYPE_DEFAULT.token

_TYPE_TIMEOUT_VALUE = typing.Optional[float]
_TYPE_TIMEOUT = typing.Union["Timeout", float, _TYPE_DEFAULT, None]


class Timeout:
    """Timeout configuration for a single transfer.

    Timeouts are enforced by libcurl, not by this package. Cancellation of a
    running transfer only ever happens through these two limits. Limits must
    be positive; libcurl counts in milliseconds and anything shorter than one
    millisecond is rounded up to it.

    .. code-block:: python

        timeout = Timeout(connect=2.0, total=10.0)
        client = HTTPClient(timeout=timeout)

    :param total:
        Maximum number of seconds the whole transfer may take, connection
        included. ``None`` waits forever.

    :param connect:
        Maximum number of seconds to wait for the connection to be
        established. ``None`` leaves libcurl's own default in place.
    """

    #: Overall limit used when nothing else is configured.
    DEFAULT_TOTAL = 3.0

    #: Connect limit used when nothing else is configured.
    DEFAULT_CONNECT = 1.0

    def __init__(
        self,
        total: _TYPE_TIMEOUT_VALUE = DEFAULT_TOTAL,
        connect: _TYPE_TIMEOUT_VALUE = DEFAULT_CONNECT,
    ) -> None:
        self.total = self._validate_timeout(total, "total")
        self.connect = self._validate_timeout(connect, "connect")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(connect={self.connect!r}, total={self.total!r})"

    # __str__ provided for backwards compatibility
    __str__ = __repr__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Timeout):
            return NotImplemented
        return (self.total, self.connect) == (other.total, other.connect)

    def __hash__(self) -> int:
        return hash((self.total, self.connect))

    @classmethod
    def _validate_timeout(
        cls, value: _TYPE_TIMEOUT_VALUE, name: str
    ) -> _TYPE_TIMEOUT_VALUE:
        """Check that a timeout attribute is valid.

        :param value: The timeout value to validate
        :param name: The name of the timeout attribute to validate. This is
            used to specify in error messages.
        :return: The validated and casted version of the given value.
        :raises ValueError: If it is a numeric value less than or equal to
            zero, or the type is not an integer, float, or None.
        """
        if value is None:
            return value

        if isinstance(value, bool):
            raise ValueError(
                "Timeout cannot be a boolean value. It must "
                "be an int, float or None."
            )
        try:
            float(value)
        except (TypeError, ValueError):
            raise ValueError(
                "Timeout value %s was %s, but it must be an "
                "int, float or None." % (name, value)
            ) from None

        try:
            if value < 0:
                raise ValueError(
                    "Attempted to set %s timeout to %s, but the "
                    "timeout cannot be set to a value less "
                    "than 0." % (name, value)
                )
            if value == 0:
                raise ValueError(
                    "Attempted to set %s timeout to 0, which libcurl reads "
                    "as no timeout. Use None to disable it." % name
                )
        except TypeError:
            raise ValueError(
                "Timeout value %s was %s, but it must be an "
                "int, float or None." % (name, value)
            ) from None

        return float(value)

    @classmethod
    def from_value(
        cls, timeout: _TYPE_TIMEOUT, default: Timeout | None = None
    ) -> Timeout:
        """Build a :class:`Timeout` from a number or return it unchanged.

        A bare number applies to both the connect and the overall limit,
        ``None`` disables both. The ``_DEFAULT_TIMEOUT`` sentinel resolves to
        ``default``, or to the class defaults when that is not given.

        :param timeout: An existing :class:`Timeout` or a number of seconds.
        :param default: What ``_DEFAULT_TIMEOUT`` stands for.
        :return: A :class:`Timeout` object
        :rtype: :class:`Timeout`
        """
        if timeout is _DEFAULT_TIMEOUT:
            return default if default is not None else cls()
        if isinstance(timeout, Timeout):
            return timeout
        return cls(total=timeout, connect=timeout)
