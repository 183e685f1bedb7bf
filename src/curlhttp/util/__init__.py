from __future__ import annotations

from .request import (
    SUPPORTED_METHODS,
    body_to_stream,
    normalize_method,
    read_body,
    rewind_body,
)
from .timeout import Timeout
from .util import to_bytes

__all__ = (
    "SUPPORTED_METHODS",
    "Timeout",
    "body_to_stream",
    "normalize_method",
    "read_body",
    "rewind_body",
    "to_bytes",
)
