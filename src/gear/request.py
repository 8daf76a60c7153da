"""
Request handle for the Gear middleware layer.
Read-only view over an ASGI scope and receive channel.
"""

import json
from collections.abc import Mapping
from functools import cached_property
from typing import Any
from urllib.parse import parse_qs

from gear.exceptions import BodyTooLarge
from gear.types import MultiValues, Receive, Scope, State

# Default maximum request body size: 1 MB
DEFAULT_MAX_BODY_SIZE: int = 1_048_576

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def canonical_header_key(name: str) -> str:
    """
    Return the canonical form of a header name.

    The first letter and any letter following a hyphen are upper case,
    the rest are lower case: ``x-my-header`` becomes ``X-My-Header``.
    """
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


def parse_values(query: str) -> MultiValues:
    """Parse a urlencoded string into a key -> values mapping."""
    return {
        key: list(values)
        for key, values in parse_qs(query, keep_blank_values=True).items()
    }


class Request:
    """
    HTTP Request wrapper.

    Follows Single Responsibility Principle - handles only request data.
    Uses lazy loading for body parsing to optimize performance.
    """

    def __init__(
        self,
        scope: Scope,
        receive: Receive,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
    ) -> None:
        self._scope = scope
        self._receive = receive
        self._body: bytes | None = None
        self._body_consumed = False
        self._max_body_size = max_body_size
        self.state: State = {}

    @property
    def scope(self) -> Scope:
        """The underlying ASGI scope."""
        return self._scope

    @property
    def receive(self) -> Receive:
        """The underlying ASGI receive channel."""
        return self._receive

    @property
    def method(self) -> str:
        """HTTP method (GET, POST, etc.)."""
        return self._scope.get("method", "GET")

    @property
    def path(self) -> str:
        """Request path."""
        return self._scope.get("path", "/")

    @property
    def query_string(self) -> str:
        """Raw query string."""
        return self._scope.get("query_string", b"").decode("utf-8")

    @property
    def request_uri(self) -> str:
        """Path and query as sent by the client, e.g. ``/a/b?x=y``."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    @cached_property
    def query_values(self) -> MultiValues:
        """Query parameters, every key mapped to all its values."""
        return parse_values(self.query_string)

    @cached_property
    def header_values(self) -> MultiValues:
        """Request headers keyed by canonical name, with all values."""
        headers: MultiValues = {}
        for name, value in self._scope.get("headers", []):
            key = canonical_header_key(name.decode("latin-1"))
            headers.setdefault(key, []).append(value.decode("latin-1"))
        return headers

    @cached_property
    def headers(self) -> Mapping[str, str]:
        """Request headers as a dictionary of lower-cased names."""
        headers: dict[str, str] = {}
        raw_headers = self._scope.get("headers", [])

        for name, value in raw_headers:
            header_name = name.decode("latin-1").lower()
            header_value = value.decode("latin-1")
            headers[header_name] = header_value

        return headers

    @property
    def content_type(self) -> str:
        """Content-Type header value."""
        return self.headers.get("content-type", "")

    @property
    def media_type(self) -> str:
        """Content-Type without parameters, e.g. ``application/json``."""
        return self.content_type.split(";", 1)[0].strip().lower()

    @property
    def content_length(self) -> int | None:
        """Content-Length header value."""
        length = self.headers.get("content-length")
        return int(length) if length else None

    @property
    def host(self) -> str:
        """Host header value."""
        return self.headers.get("host", "")

    @property
    def client(self) -> tuple[str, int] | None:
        """Client address as (host, port) tuple."""
        client = self._scope.get("client")
        if client:
            return (client[0], client[1])
        return None

    @property
    def path_params(self) -> dict[str, Any]:
        """Path parameters set by :class:`~gear.routing.Router`."""
        return self._scope.get("path_params", {})

    async def body(self) -> bytes:
        """
        Read and return the request body.

        Raises:
            BodyTooLarge: If body exceeds max_body_size.
        """
        if self._body is not None:
            return self._body

        if self._body_consumed:
            return b""

        if (
            self._max_body_size > 0
            and self.content_length is not None
            and self.content_length > self._max_body_size
        ):
            raise BodyTooLarge(self._max_body_size)

        chunks: list[bytes] = []
        total_size = 0

        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                total_size += len(body)
                if self._max_body_size > 0 and total_size > self._max_body_size:
                    raise BodyTooLarge(self._max_body_size)
                chunks.append(body)

            if not message.get("more_body", False):
                break

        self._body = b"".join(chunks)
        self._body_consumed = True
        return self._body

    async def text(self) -> str:
        """Read body as text."""
        body = await self.body()
        return body.decode("utf-8")

    async def json(self) -> Any:
        """Parse body as JSON."""
        text = await self.text()
        return json.loads(text) if text else None

    async def form_values(self) -> MultiValues:
        """
        Form values: urlencoded body values followed by query values.

        The body is only parsed for urlencoded POST, PUT and PATCH requests.
        """
        values: MultiValues = {}
        if self.method in ("POST", "PUT", "PATCH") and self.media_type == FORM_CONTENT_TYPE:
            values = parse_values(await self.text())
        for key, query_values in self.query_values.items():
            values.setdefault(key, []).extend(query_values)
        return values

    def get_header(self, name: str, default: str | None = None) -> str | None:
        """Get a specific header value."""
        return self.headers.get(name.lower(), default)
