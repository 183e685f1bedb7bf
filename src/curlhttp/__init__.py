"""
Minimal synchronous HTTP client running each request as one libcurl transfer
"""

from __future__ import annotations

# Set default logging handler to avoid "No handler found" warnings.
import logging
import typing
from logging import NullHandler

from . import exceptions
from ._collections import HTTPHeaderDict
from ._version import __version__
from .client import USER_AGENT_BROWSER_FIREFOX, USER_AGENT_CLI, HTTPClient
from .handle import Option, TransferHandle, TransferOutcome
from .request import Request
from .response import HTTPResponse
from .util.request import _TYPE_BODY
from .util.timeout import _DEFAULT_TIMEOUT, _TYPE_TIMEOUT, Timeout

__license__ = "MIT"
__version__ = __version__

__all__ = (
    "HTTPClient",
    "HTTPHeaderDict",
    "HTTPResponse",
    "Option",
    "Request",
    "Timeout",
    "TransferHandle",
    "TransferOutcome",
    "USER_AGENT_BROWSER_FIREFOX",
    "USER_AGENT_CLI",
    "add_stderr_logger",
    "exceptions",
    "request",
)

logging.getLogger(__name__).addHandler(NullHandler())


def add_stderr_logger(
    level: int = logging.DEBUG,
) -> logging.StreamHandler[typing.TextIO]:
    """
    Helper for quickly adding a StreamHandler to the logger. Useful for
    debugging.

    Returns the handler after adding it.
    """
    # This method needs to be in this __init__.py to get the __name__ correct
    # even if curlhttp is vendored within another package.
    logger = logging.getLogger(__name__)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.debug("Added a stderr logging handler to logger: %s", __name__)
    return handler


# ... Clean up.
del NullHandler


def request(
    method: str,
    url: str,
    *,
    body: _TYPE_BODY | None = None,
    headers: typing.Mapping[str, str] | None = None,
    timeout: _TYPE_TIMEOUT = _DEFAULT_TIMEOUT,
    user_agent: str = USER_AGENT_BROWSER_FIREFOX,
) -> HTTPResponse:
    """
    A convenience, top-level request method. Each call builds a throwaway
    :class:`HTTPClient`, so no state is shared between calls. ``timeout``
    behaves as in :class:`HTTPClient`: the defaults when omitted, no limit
    when ``None``.
    """
    client = HTTPClient(timeout=timeout, user_agent=user_agent)
    return client.send_request(Request(method, url, headers=headers, body=body))
