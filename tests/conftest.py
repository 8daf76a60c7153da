"""
Helpers for building ASGI scope / receive / send in tests.
"""

from collections.abc import Callable, Awaitable
from typing import Any

from gear.context import Gear


def make_scope(
    method: str = "GET",
    path: str = "/",
    headers: dict[str, str] | list[tuple[str, str]] | None = None,
    query_string: str = "",
    scope_type: str = "http",
    extras: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a minimal ASGI scope dict. A list of headers may repeat names."""
    items = headers.items() if isinstance(headers, dict) else (headers or [])
    raw_headers: list[tuple[bytes, bytes]] = []
    for name, value in items:
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    scope: dict[str, Any] = {
        "type": scope_type,
        "method": method,
        "path": path,
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "client": ("127.0.0.1", 12345),
        "scheme": "http",
    }
    if extras:
        scope.update(extras)
    return scope


def make_receive(body: bytes = b"") -> Callable[[], Awaitable[dict[str, Any]]]:
    """Create a simple ASGI receive callable that yields one body chunk."""
    called = False

    async def receive() -> dict[str, Any]:
        nonlocal called
        if not called:
            called = True
            return {"type": "http.request", "body": body, "more_body": False}
        return {"type": "http.disconnect"}

    return receive


class ResponseCapture:
    """Captures ASGI send() messages for assertions."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []
        self.status: int = 0
        self.headers: dict[str, str] = {}
        self.body: bytes = b""

    async def __call__(self, message: dict[str, Any]) -> None:
        self.messages.append(message)
        if message["type"] == "http.response.start":
            self.status = message.get("status", 0)
            for name, value in message.get("headers", []):
                self.headers[name.decode("latin-1").lower()] = value.decode("latin-1")
        elif message["type"] == "http.response.body":
            self.body += message.get("body", b"")

    @property
    def starts(self) -> list[dict[str, Any]]:
        return [m for m in self.messages if m["type"] == "http.response.start"]


def make_gear(
    body: bytes = b"",
    **scope_kwargs: Any,
) -> tuple[Gear, ResponseCapture]:
    """Build a Gear on a fresh scope, returning it with its send capture."""
    cap = ResponseCapture()
    return Gear(make_scope(**scope_kwargs), make_receive(body), cap), cap


async def ok_handler(scope: dict[str, Any], receive: Any, send: Any) -> None:
    """Terminal handler answering 200 "ok"."""
    await send({
        "type": "http.response.start",
        "status": 200,
        "headers": [(b"content-type", b"text/plain")],
    })
    await send({"type": "http.response.body", "body": b"ok"})
