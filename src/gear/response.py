"""
Response handling for the Gear middleware layer.

``ResponseWriter`` is the outbound handle shared by every middleware and the
terminal handler of one request. Status and headers are write-once: they are
sent with the first body chunk and can't be changed afterwards.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from gear.types import Message, Send


def encode_json(value: Any) -> bytes:
    """JSON encoding of value followed by a newline."""
    return json.dumps(
        value,
        ensure_ascii=False,
        allow_nan=False,
        separators=(",", ":"),
    ).encode("utf-8") + b"\n"


def _encode_headers(headers: dict[str, str]) -> list[tuple[bytes, bytes]]:
    return [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in headers.items()
    ]


class ResponseWriter:
    """
    Outbound response sink wrapping an ASGI ``send`` callable.

    Middlewares write through :meth:`write_header` and :meth:`write`;
    the terminal ASGI handler writes through :meth:`send`. Both paths
    share one state so "after" code of a middleware can observe what
    the handler did.
    """

    def __init__(self, send: Send, logger: logging.Logger | None = None) -> None:
        self._send = send
        self._logger = logger or logging.getLogger("gear.response")
        self.headers: dict[str, str] = {}
        self._status_code: int | None = None
        self._started = False
        self._finished = False

    @property
    def status_code(self) -> int:
        """Status written so far, 200 if none."""
        return self._status_code or 200

    @property
    def started(self) -> bool:
        """Whether status and headers have been sent."""
        return self._started

    @property
    def finished(self) -> bool:
        """Whether the final body chunk has been sent."""
        return self._finished

    def write_header(self, status_code: int) -> None:
        """Set the response status. Only the first call has effect."""
        if self._status_code is not None or self._started:
            self._logger.warning(
                "superfluous write_header(%d), status already %d",
                status_code,
                self.status_code,
            )
            return
        self._status_code = int(status_code)

    async def _start(self) -> None:
        self._started = True
        if self._status_code is None:
            self._status_code = 200
        await self._send({
            "type": "http.response.start",
            "status": self._status_code,
            "headers": _encode_headers(self.headers),
        })

    async def write(self, data: bytes | str) -> int:
        """Write a body chunk, starting the response if needed."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self._finished:
            self._logger.warning("write after response finished, %d bytes dropped", len(data))
            return 0
        if not self._started:
            await self._start()
        await self._send({
            "type": "http.response.body",
            "body": data,
            "more_body": True,
        })
        return len(data)

    async def send(self, message: Message) -> None:
        """ASGI send for the terminal handler."""
        if message["type"] == "http.response.start":
            if self._started:
                self._logger.warning(
                    "superfluous response start with status %s, status already %d",
                    message.get("status"),
                    self.status_code,
                )
                return
            self._started = True
            self._status_code = message.get("status", 200)
            headers = list(message.get("headers", []))
            present = {name.lower() for name, _ in headers}
            for name, value in _encode_headers(self.headers):
                if name not in present:
                    headers.append((name, value))
            message = {**message, "headers": headers}
        elif message["type"] == "http.response.body":
            if self._finished:
                self._logger.warning("body sent after response finished, dropped")
                return
            if not self._started:
                await self._start()
            if not message.get("more_body", False):
                self._finished = True
        await self._send(message)

    async def finish(self) -> None:
        """Complete the response. Sends an empty 200 if nothing was written."""
        if self._finished:
            return
        if not self._started:
            await self._start()
        self._finished = True
        await self._send({
            "type": "http.response.body",
            "body": b"",
            "more_body": False,
        })


class Response(ABC):
    """
    Abstract base response class for terminal handlers.

    Follows Open/Closed Principle - open for extension, closed for modification.
    """

    media_type: str = "text/plain"
    charset: str = "utf-8"

    def __init__(
        self,
        content: Any = None,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self._headers: dict[str, str] = headers or {}
        self._content = content

    @property
    def content_type(self) -> str:
        """Full content type with charset."""
        if self.media_type.startswith("text/") or "json" in self.media_type:
            return f"{self.media_type}; charset={self.charset}"
        return self.media_type

    @abstractmethod
    def render(self) -> bytes:
        """Render the response body. Must be implemented by subclasses."""
        ...

    def _build_headers(self) -> list[tuple[bytes, bytes]]:
        """Build header list for ASGI response."""
        headers: list[tuple[bytes, bytes]] = [
            (b"content-type", self.content_type.encode("latin-1")),
        ]
        headers.extend(_encode_headers(self._headers))
        return headers

    async def __call__(self, send: Send) -> None:
        """Send the response via ASGI."""
        body = self.render()

        await send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": self._build_headers(),
        })

        await send({
            "type": "http.response.body",
            "body": body,
        })


class TextResponse(Response):
    """Plain text response."""

    media_type = "text/plain"

    def render(self) -> bytes:
        if self._content is None:
            return b""
        if isinstance(self._content, bytes):
            return self._content
        return str(self._content).encode(self.charset)


class JSONResponse(Response):
    """JSON response with automatic serialization."""

    media_type = "application/json"

    def render(self) -> bytes:
        return encode_json(self._content)
