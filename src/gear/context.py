"""
Per-request context.

A :class:`Gear` is attached to the ASGI scope of every request that goes
through :func:`gear.wrap`. Middlewares receive it directly; the terminal
handler and anything else holding the scope retrieves it with
:func:`current_gear`.
"""

import logging
from collections.abc import Awaitable, Callable
from http import HTTPStatus
from typing import Any

from gear import encoding
from gear.encoding.body import BodyDecoder
from gear.exceptions import DecodeError, GearAlreadyAttachedError, NoGearError
from gear.request import Request
from gear.response import ResponseWriter, encode_json
from gear.types import Receive, Scope, Send, State

# Scope key the Gear of a request is stored under
GEAR_SCOPE_KEY = "gear"


def status_text(status_code: int) -> str:
    """Reason phrase of status_code, empty if unknown."""
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""


class Gear:
    """
    State of one request: the request and response handles and the
    ``stopped`` flag.

    Owned by a single request; never shared across requests.
    """

    def __init__(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
        logger: logging.Logger | None = None,
    ) -> None:
        self.request = Request(scope, receive)
        self.response = ResponseWriter(send, logger=logger)
        self._stopped = False

    @property
    def scope(self) -> Scope:
        return self.request.scope

    @property
    def state(self) -> State:
        """Request-scoped values shared between middlewares and handler."""
        return self.request.state

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        """
        Stop further middleware processing.

        The calling middleware is unaffected: its remaining code still runs.
        """
        self._stopped = True

    # -------------------------------------------------------------------------
    # Response helpers
    # -------------------------------------------------------------------------

    async def code(self, status_code: int) -> None:
        """Write status_code and its status text as a plain text response."""
        self.response.headers["content-type"] = "text/plain; charset=utf-8"
        self.response.headers["x-content-type-options"] = "nosniff"
        self.response.write_header(status_code)
        await self.response.write(f"{status_text(status_code)}\n")

    async def write(self, data: bytes | str) -> int:
        return await self.response.write(data)

    async def string(self, body: str) -> None:
        """Write body with the current status, 200 by default."""
        await self.response.write(body)

    async def string_response(self, status_code: int, body: str) -> None:
        self.response.write_header(status_code)
        await self.response.write(body)

    async def string_responsef(self, status_code: int, fmt: str, *args: Any) -> None:
        """Write status_code and ``fmt % args`` followed by a newline."""
        self.response.headers["content-type"] = "text/plain; charset=utf-8"
        self.response.headers["x-content-type-options"] = "nosniff"
        self.response.write_header(status_code)
        await self.response.write((fmt % args if args else fmt) + "\n")

    async def json(self, value: Any) -> None:
        """Write the JSON encoding of value."""
        self.response.headers.setdefault("content-type", "application/json; charset=utf-8")
        await self.response.write(encode_json(value))

    async def json_response(self, status_code: int, value: Any) -> None:
        self.response.write_header(status_code)
        await self.json(value)

    # -------------------------------------------------------------------------
    # Decoding
    # -------------------------------------------------------------------------

    async def decode_body(self, dest: Any, decoder: BodyDecoder | None = None) -> Any:
        """Decode the request body into dest, selecting a decoder by Content-Type."""
        return await encoding.decode_body(self.request, dest, decoder)

    async def decode_form(self, dest: Any) -> Any:
        """Decode urlencoded body values and query values into dest."""
        return await encoding.decode_form(self.request, dest)

    async def decode_header(self, dest: Any) -> Any:
        return encoding.decode_header(self.request, dest)

    async def decode_query(self, dest: Any) -> Any:
        return encoding.decode_query(self.request, dest)

    async def _must(self, decode: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await decode()
        except DecodeError:
            await self.code(HTTPStatus.BAD_REQUEST)
            self.stop()
            raise

    async def must_decode_body(self, dest: Any, decoder: BodyDecoder | None = None) -> Any:
        """
        Like :meth:`decode_body`, but on failure also writes a 400 response
        and stops the middleware processing before re-raising.
        """
        return await self._must(lambda: self.decode_body(dest, decoder))

    async def must_decode_form(self, dest: Any) -> Any:
        """:meth:`decode_form` answering 400 and stopping on failure."""
        return await self._must(lambda: self.decode_form(dest))

    async def must_decode_header(self, dest: Any) -> Any:
        """:meth:`decode_header` answering 400 and stopping on failure."""
        return await self._must(lambda: self.decode_header(dest))

    async def must_decode_query(self, dest: Any) -> Any:
        """:meth:`decode_query` answering 400 and stopping on failure."""
        return await self._must(lambda: self.decode_query(dest))


def attach(
    scope: Scope,
    receive: Receive,
    send: Send,
    logger: logging.Logger | None = None,
) -> Gear:
    """
    Create a Gear for a request and store it in the scope.

    Raises:
        GearAlreadyAttachedError: The scope already carries a Gear.
    """
    if GEAR_SCOPE_KEY in scope:
        raise GearAlreadyAttachedError()
    g = Gear(scope, receive, send, logger=logger)
    scope[GEAR_SCOPE_KEY] = g
    return g


def get_gear(source: Scope | Request) -> Gear | None:
    """Return the Gear attached to a scope or request, None if there is none."""
    scope = source.scope if isinstance(source, Request) else source
    return scope.get(GEAR_SCOPE_KEY)


def current_gear(source: Scope | Request) -> Gear:
    """
    Return the Gear attached to a scope or request.

    Raises:
        NoGearError: The request did not go through :func:`gear.wrap`.
    """
    g = get_gear(source)
    if g is None:
        raise NoGearError()
    return g
