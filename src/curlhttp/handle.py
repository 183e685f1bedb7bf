from __future__ import annotations

import io
import logging
import typing
from dataclasses import dataclass, field
from enum import Enum

import pycurl

from .exceptions import InitError, OptionError, UnsupportedMethodError
from .util.request import SUPPORTED_METHODS, normalize_method
from .util.util import first_digit

log = logging.getLogger(__name__)

_TYPE_CURL_FACTORY = typing.Callable[[], typing.Any]
_TYPE_INFO = typing.Dict[str, typing.Any]

# setopt() raises pycurl.error when libcurl rejects a value, TypeError or
# UnicodeError when pycurl cannot convert it.
_SETOPT_ERRORS = (pycurl.error, TypeError, UnicodeError)


class Option(Enum):
    """Transfer options understood by :class:`TransferHandle`.

    ``RETURN_TRANSFER`` is handled by the handle itself: when enabled and no
    ``OUTPUT`` is set, :meth:`TransferHandle.exec` returns the response bytes.
    ``CONNECT_TIMEOUT`` and ``TIMEOUT`` take seconds; ``None`` disables them
    and any other value is applied with a floor of one millisecond. String
    values reach libcurl encoded as UTF-8.
    """

    URL = "url"
    RETURN_TRANSFER = "return_transfer"
    POST = "post"
    NOBODY = "nobody"
    CUSTOM_REQUEST = "custom_request"
    POST_FIELDS = "post_fields"
    CONNECT_TIMEOUT = "connect_timeout"
    TIMEOUT = "timeout"
    OUTPUT = "output"
    HEADER = "header"
    HEADER_FUNCTION = "header_function"
    FOLLOW_LOCATION = "follow_location"
    USER_AGENT = "user_agent"
    HTTP_HEADER = "http_header"


_CURL_OPTIONS: dict[Option, int] = {
    Option.URL: pycurl.URL,
    Option.POST: pycurl.POST,
    Option.NOBODY: pycurl.NOBODY,
    Option.CUSTOM_REQUEST: pycurl.CUSTOMREQUEST,
    Option.POST_FIELDS: pycurl.POSTFIELDS,
    Option.CONNECT_TIMEOUT: pycurl.CONNECTTIMEOUT_MS,
    Option.TIMEOUT: pycurl.TIMEOUT_MS,
    Option.OUTPUT: pycurl.WRITEDATA,
    Option.HEADER: pycurl.HEADER,
    Option.HEADER_FUNCTION: pycurl.HEADERFUNCTION,
    Option.FOLLOW_LOCATION: pycurl.FOLLOWLOCATION,
    Option.USER_AGENT: pycurl.USERAGENT,
    Option.HTTP_HEADER: pycurl.HTTPHEADER,
}

_TIMEOUT_OPTIONS = frozenset([Option.CONNECT_TIMEOUT, Option.TIMEOUT])

# Names follow libcurl's curl_getinfo() keys.
_INFO_FIELDS: dict[str, int] = {
    "url": pycurl.EFFECTIVE_URL,
    "content_type": pycurl.CONTENT_TYPE,
    "http_code": pycurl.RESPONSE_CODE,
    "header_size": pycurl.HEADER_SIZE,
    "request_size": pycurl.REQUEST_SIZE,
    "filetime": pycurl.INFO_FILETIME,
    "ssl_verify_result": pycurl.SSL_VERIFYRESULT,
    "redirect_count": pycurl.REDIRECT_COUNT,
    "total_time": pycurl.TOTAL_TIME,
    "namelookup_time": pycurl.NAMELOOKUP_TIME,
    "connect_time": pycurl.CONNECT_TIME,
    "pretransfer_time": pycurl.PRETRANSFER_TIME,
    "starttransfer_time": pycurl.STARTTRANSFER_TIME,
    "redirect_time": pycurl.REDIRECT_TIME,
    "size_upload": pycurl.SIZE_UPLOAD_T,
    "size_download": pycurl.SIZE_DOWNLOAD_T,
    "speed_download": pycurl.SPEED_DOWNLOAD_T,
    "speed_upload": pycurl.SPEED_UPLOAD_T,
    "download_content_length": pycurl.CONTENT_LENGTH_DOWNLOAD_T,
    "upload_content_length": pycurl.CONTENT_LENGTH_UPLOAD_T,
    "redirect_url": pycurl.REDIRECT_URL,
    "primary_ip": pycurl.PRIMARY_IP,
    "primary_port": pycurl.PRIMARY_PORT,
    "local_ip": pycurl.LOCAL_IP,
    "local_port": pycurl.LOCAL_PORT,
}


def _error_details(e: Exception) -> tuple[int, str]:
    """Split an error into ``(errno, message)``. Only ``pycurl.error`` carries
    a libcurl error number."""
    if isinstance(e, pycurl.error) and len(e.args) >= 2:
        return int(e.args[0]), str(e.args[1])
    return 0, str(e)


def _curl_value(value: typing.Any) -> typing.Any:
    """Encode ``str`` values, alone or in a list, for ``setopt``."""
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, list):
        return [_curl_value(item) for item in value]
    return value


def _milliseconds(value: float | None) -> int:
    if value is None:
        return 0
    # 0 would disable the limit in libcurl
    return max(1, int(round(value * 1000)))


@dataclass(frozen=True)
class TransferOutcome:
    """Result of :meth:`TransferHandle.exec`.

    On success ``payload`` is the response bytes when return-transfer mode
    is on, or ``True`` when the output went to a sink. On failure
    ``payload`` is ``False`` and ``error``/``error_code`` describe it.
    ``info`` is the introspection snapshot either way.
    """

    payload: bytes | bool
    error: str | None = None
    error_code: int = 0
    info: _TYPE_INFO = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok


class TransferHandle:
    """
    Lifecycle wrapper around one libcurl easy handle.

    A handle holds no curl object until :meth:`init` is called and none after
    :meth:`close`. Configuring or executing it in that state raises
    :class:`~curlhttp.exceptions.InitError`. Mutating methods return the
    handle so calls can be chained::

        with TransferHandle() as handle:
            outcome = handle.init("http://example.com/").set_return(True).exec()

    :param sandboxed:
        Security policy for processes running with restricted filesystem
        access. When set, following redirects is always disabled.

    :param curl_factory:
        Callable returning a new curl object, ``pycurl.Curl`` by default.
    """

    def __init__(
        self,
        *,
        sandboxed: bool = False,
        curl_factory: _TYPE_CURL_FACTORY | None = None,
    ) -> None:
        self.sandboxed = sandboxed
        self._curl_factory = curl_factory or pycurl.Curl
        self._curl: typing.Any = None
        self._message: str | None = None
        self._info: _TYPE_INFO | None = None
        self._error_code = 0
        self._error_message: str | None = None
        self._return_transfer = False
        self._output: typing.Any = None
        self._options: dict[Option, typing.Any] = {}
        self._default_options: dict[Option, typing.Any] = {}

    def __repr__(self) -> str:
        state = "open" if self._curl is not None else "closed"
        return f"<{type(self).__name__} {state} url={self._options.get(Option.URL)!r}>"

    def __enter__(self) -> TransferHandle:
        return self

    def __exit__(self, *exc_info: object) -> typing.Literal[False]:
        self.close()
        return False

    @property
    def is_open(self) -> bool:
        return self._curl is not None

    @property
    def options(self) -> typing.Mapping[Option, typing.Any]:
        """Effective option values applied since the last :meth:`init`."""
        return dict(self._options)

    def init(self, url: str | None = None) -> TransferHandle:
        """
        Allocate the curl object, optionally bound to ``url``.

        Any curl object already held is closed first. Default options set
        with :meth:`set_option_default` are applied afterwards.

        :raises InitError: libcurl could not allocate the handle.
        """
        self.close()
        curl = None
        try:
            curl = self._curl_factory()
            if url:
                curl.setopt(pycurl.URL, _curl_value(url))
        except _SETOPT_ERRORS as e:
            if curl is not None:
                curl.close()
            code, message = _error_details(e)
            raise InitError(
                f"Initialization failed! (error: {message})", code
            ) from e

        self._curl = curl
        self._message = None
        self._info = None
        self._error_code = 0
        self._error_message = None
        self._return_transfer = False
        self._output = None
        self._options = {Option.URL: url} if url else {}
        log.debug("Initialized transfer handle for %s", url)

        if self._default_options:
            self.set_options(self._default_options)
        return self

    def close(self) -> TransferHandle:
        """Release the curl object. Does nothing when none is held."""
        if self._curl is not None:
            self._curl.close()
            self._curl = None
            log.debug("Closed transfer handle for %s", self._options.get(Option.URL))
        return self

    def _live_curl(self) -> typing.Any:
        if self._curl is None:
            raise InitError("Transfer handle is not initialized, call init() first!")
        return self._curl

    def set_option_default(
        self,
        name: Option | typing.Mapping[Option, typing.Any],
        value: typing.Any = None,
    ) -> TransferHandle:
        """
        Register options applied on every subsequent :meth:`init`.

        A mapping is merged under the existing defaults, which win on
        conflicts. A single option overrides its previous default.
        """
        if isinstance(name, Option):
            self._default_options[name] = value
        else:
            self._default_options = {**name, **self._default_options}
        return self

    def set_option(self, name: Option, value: typing.Any) -> TransferHandle:
        """
        Apply one transfer option.

        :raises InitError: the handle holds no curl object.
        :raises OptionError: libcurl rejected the option. The handle is
            closed and cannot be reused without :meth:`init`.
        """
        curl = self._live_curl()
        if name is Option.FOLLOW_LOCATION:
            value = self._redirect_policy(value)

        try:
            self._apply(curl, name, value)
        except _SETOPT_ERRORS as e:
            self._fail_option(e, "Set option failed!")
        return self

    def set_options(
        self, options: typing.Mapping[Option, typing.Any]
    ) -> TransferHandle:
        """
        Apply a batch of options, one at a time and in order.

        Options applied before a failing one stay applied; the handle is
        then closed, so the partial state is never observable.

        :raises InitError: the handle holds no curl object.
        :raises OptionError: libcurl rejected one of the options.
        """
        curl = self._live_curl()
        if not options:
            return self

        for name, value in options.items():
            if name is Option.FOLLOW_LOCATION:
                value = self._redirect_policy(value)
            try:
                self._apply(curl, name, value)
            except _SETOPT_ERRORS as e:
                self._fail_option(e, "Set option array failed!")
        return self

    def _redirect_policy(self, requested: typing.Any) -> bool:
        if self.sandboxed and requested:
            log.debug("Following redirects is disabled under the sandbox policy")
            return False
        return bool(requested)

    def _apply(self, curl: typing.Any, name: Option, value: typing.Any) -> None:
        if name is Option.RETURN_TRANSFER:
            self._return_transfer = bool(value)
        else:
            if name in _TIMEOUT_OPTIONS:
                curl_value = _milliseconds(value)
            else:
                curl_value = _curl_value(value)
            curl.setopt(_CURL_OPTIONS[name], curl_value)
            if name is Option.OUTPUT:
                self._output = value
        self._options[name] = value

    def _fail_option(self, e: Exception, message: str) -> typing.NoReturn:
        code, error = _error_details(e)
        self._error_code, self._error_message = code, error
        self.close()
        raise OptionError(f"{message} (error: {error})", code) from e

    def set_url(self, url: str) -> TransferHandle:
        return self.set_option(Option.URL, str(url))

    def set_return(self, return_transfer: bool) -> TransferHandle:
        """
        Configure the return behavior.

        :param return_transfer: If true, :meth:`exec` returns the response
            content. Otherwise it goes to ``Option.OUTPUT`` (or stdout).
        """
        return self.set_option(Option.RETURN_TRANSFER, bool(return_transfer))

    def set_post_data(self, data: bytes | str) -> TransferHandle:
        return self.set_option(Option.POST_FIELDS, data)

    def set_method(self, method: str) -> TransferHandle:
        """
        Select the HTTP method.

        The flags selecting a method are mutually exclusive, so all of them
        are reset in the same batch that applies the chosen one.

        :raises UnsupportedMethodError: ``method`` is not one of GET, POST,
            PUT, DELETE, PATCH or HEAD.
        """
        method = normalize_method(method)
        if method not in SUPPORTED_METHODS:
            raise UnsupportedMethodError(method)

        chosen: dict[Option, typing.Any] = {}
        if method == "POST":
            chosen[Option.POST] = True
        elif method == "HEAD":
            chosen[Option.NOBODY] = True
        elif method != "GET":
            chosen[Option.CUSTOM_REQUEST] = method

        options: dict[Option, typing.Any] = {
            Option.POST: False,
            Option.NOBODY: False,
            Option.CUSTOM_REQUEST: None,
        }
        for name in chosen:
            del options[name]
        options.update(chosen)
        return self.set_options(options)

    def exec(self) -> TransferOutcome:
        """
        Perform the blocking transfer.

        The introspection snapshot is captured and cached right after,
        whatever the outcome.

        :raises InitError: the handle holds no curl object.
        """
        curl = self._live_curl()
        buffer = None
        if self._return_transfer and self._output is None:
            buffer = io.BytesIO()
            curl.setopt(pycurl.WRITEDATA, buffer)

        self._message = None
        self._error_code, self._error_message = 0, None
        try:
            curl.perform()
        except pycurl.error as e:
            self._error_code, self._error_message = _error_details(e)
            log.debug(
                "Transfer to %s failed: (%d) %s",
                self._options.get(Option.URL),
                self._error_code,
                self._error_message,
            )
        finally:
            self._info = self._snapshot(curl)

        if self._error_code or self._error_message:
            return TransferOutcome(
                payload=False,
                error=self._error_message or "",
                error_code=self._error_code,
                info=dict(self._info),
            )
        payload: bytes | bool = buffer.getvalue() if buffer is not None else True
        return TransferOutcome(payload=payload, info=dict(self._info))

    def _snapshot(self, curl: typing.Any) -> _TYPE_INFO:
        return {key: curl.getinfo(const) for key, const in _INFO_FIELDS.items()}

    def get_error(self) -> str:
        """
        Return the message left by :meth:`is_success` and clear it; otherwise
        the last libcurl error for this handle.

        :raises InitError: there is nothing recorded and no curl object to ask.
        """
        if self._message is not None:
            message, self._message = self._message, None
            return message
        if self._error_message is not None:
            return self._error_message
        return str(self._live_curl().errstr())

    def get_error_number(self) -> int:
        """Last libcurl error number, ``0`` when there was none."""
        return self._error_code

    def get_info(self) -> _TYPE_INFO:
        """
        Introspection data of the last transfer.

        :raises InitError: nothing was cached and there is no curl object
            to query.
        """
        if self._info is not None:
            return dict(self._info)
        return self._snapshot(self._live_curl())

    def is_success(self) -> bool:
        """
        Whether the last transfer succeeded: no libcurl error, a 2XX or 3XX
        status and, when the server announced a length, every byte received.

        On failure the reason is available once from :meth:`get_error`.
        Never raises.
        """
        self._message = self._classify()
        return self._message is None

    def _classify(self) -> str | None:
        if self._error_code != 0:
            return self._error_message or (
                f"Transfer failed with error {self._error_code}"
            )

        try:
            info = self.get_info()
        except (InitError, pycurl.error):
            return "Cannot get information from connection!"

        http_code = info.get("http_code")
        if not isinstance(http_code, (int, str)) or isinstance(http_code, bool):
            return 'No information about "http_code"!'

        if first_digit(http_code) not in ("2", "3"):
            return (
                '"http_code" is not a 2XX or 3XX status code! '
                f"http-code: {http_code}"
            )

        # 0 or -1: no size information
        expected = int(info.get("download_content_length") or 0)
        if expected > 0 and expected != int(info.get("size_download") or 0):
            return "Transfer did not complete!"

        return None
