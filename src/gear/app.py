"""
Entry point of the middleware layer.

:func:`wrap` turns an ASGI handler and a list of middlewares into an ASGI
application that attaches a :class:`~gear.context.Gear` to each HTTP
request and drives the middlewares around the handler.
"""

import logging
from typing import Any

from gear.context import attach, get_gear
from gear.middleware.base import Middleware
from gear.middleware.chain import MiddlewareChain, build_middlewares
from gear.routing import default_router
from gear.types import ASGIApp, Receive, Scope, Send


class GearApp:
    """
    ASGI application running a middleware chain around a handler.

    Non-HTTP scopes (lifespan, websocket) are passed to the handler
    untouched.
    """

    def __init__(
        self,
        handler: ASGIApp,
        middlewares: tuple[Middleware, ...],
        logger: logging.Logger | None = None,
    ) -> None:
        self.handler = handler
        self.middlewares = middlewares
        self._logger = logger

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.handler(scope, receive, send)
            return

        g = attach(scope, receive, send, logger=self._logger)
        await MiddlewareChain(self.middlewares, self.handler, logger=self._logger).exec(g)
        await g.response.finish()


class GroupApp(GearApp):
    """
    Handler registered by :class:`~gear.routing.Group`.

    Runs its middlewares on the Gear of an enclosing :func:`wrap` when the
    router itself is wrapped, and attaches a Gear of its own otherwise.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        g = get_gear(scope) if scope["type"] == "http" else None
        if g is None:
            await super().__call__(scope, receive, send)
            return
        await MiddlewareChain(self.middlewares, self.handler, logger=self._logger).exec(g)


def wrap(
    handler: ASGIApp | None = None,
    *middlewares: Any,
    logger: logging.Logger | None = None,
) -> GearApp:
    """
    Wrap handler with middlewares.

    Middlewares run in the reverse of the order given. If handler is None,
    :data:`gear.routing.default_router` is used.

    Raises:
        ConfigurationError: The middleware list is invalid.

    Usage:
        app = wrap(handler, AccessLogger(), PanicRecovery())
    """
    if handler is None:
        handler = default_router
    return GearApp(handler, build_middlewares(middlewares), logger=logger)


def run(
    handler: ASGIApp | None = None,
    *middlewares: Any,
    host: str = "localhost",
    port: int = 8000,
    log_level: str = "info",
    **options: Any,
) -> None:
    """
    Wrap handler and serve it using uvicorn.

    Args:
        handler: Terminal handler, the default router if None.
        middlewares: Middlewares, see :func:`wrap`.
        host: Host to bind to.
        port: Port to bind to.
        log_level: Logging level.
        options: Passed on to ``uvicorn.run``.
    """
    import uvicorn

    uvicorn.run(
        wrap(handler, *middlewares),
        host=host,
        port=port,
        log_level=log_level,
        **options,
    )
