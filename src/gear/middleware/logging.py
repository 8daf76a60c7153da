"""
Access logging middleware.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from gear.log import log_attrs
from gear.middleware.base import Middleware
from gear.request import Request, canonical_header_key
from gear.types import Next

if TYPE_CHECKING:
    from gear.context import Gear

# Attribute key of the request method
LOGGER_METHOD_KEY = "method"
# Attribute key of the request host
LOGGER_HOST_KEY = "host"
# Attribute key of the request URI
LOGGER_URL_KEY = "URL"
# Group key of the request headers, rendered as "header.<Name>"
LOGGER_HEADER_KEY = "header"


@dataclass
class LoggerOptions:
    """
    Options of :class:`AccessLogger`.

    Attributes:
        keys: Attribute keys to log. None means all of method, host and URL,
            plus the headers named in header_keys.
        header_keys: Request headers to log. Only used when LOGGER_HEADER_KEY
            is in keys (or keys is None).
        attrs: If set, all fields above are ignored and the attributes to
            log are the return value of this function.
    """

    keys: set[str] | None = None
    header_keys: list[str] | None = None
    attrs: Callable[[Request], Mapping[str, Any]] | None = None


class AccessLogger(Middleware):
    """
    Logs one record per request before passing control on.

    Log message "HTTP" with attributes::

        method=<request method>
        host=<Host header>
        URL=<path?query>
        header.<Name>=[<values>]

    Usage:
        wrap(handler, AccessLogger(LoggerOptions(header_keys=["User-Agent"])))
    """

    def __init__(
        self,
        options: LoggerOptions | None = None,
        logger: logging.Logger | None = None,
        log_level: int | None = None,
    ) -> None:
        self.options = options
        self._logger = logger or logging.getLogger("gear.access")
        self._log_level = log_level or logging.INFO

    @property
    def name(self) -> str:
        return "Logger"

    def request_attrs(self, request: Request) -> Mapping[str, Any]:
        """Attributes logged for request."""
        opt = self.options
        if opt is not None and opt.attrs is not None:
            return opt.attrs(request)

        log_method = log_host = log_url = True
        header_keys: list[str] = []
        if opt is not None:
            log_header = True
            if opt.keys is not None:
                log_method = LOGGER_METHOD_KEY in opt.keys
                log_host = LOGGER_HOST_KEY in opt.keys
                log_url = LOGGER_URL_KEY in opt.keys
                log_header = LOGGER_HEADER_KEY in opt.keys
            if log_header and opt.header_keys:
                header_keys = opt.header_keys

        attrs: dict[str, Any] = {}
        if log_method:
            attrs[LOGGER_METHOD_KEY] = request.method
        if log_host:
            attrs[LOGGER_HOST_KEY] = request.host
        if log_url:
            attrs[LOGGER_URL_KEY] = request.request_uri
        for key in header_keys:
            values = request.header_values.get(canonical_header_key(key), [])
            attrs[f"{LOGGER_HEADER_KEY}.{key}"] = list(values)
        return attrs

    async def serve(self, g: "Gear", next: Next) -> None:
        log_attrs(self._logger, self._log_level, "HTTP", self.request_attrs(g.request))
        await next()
