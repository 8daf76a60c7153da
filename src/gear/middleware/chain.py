"""
Middleware execution engine.

Middlewares run in the REVERSE of the order they were supplied: the last
one supplied is the outermost wrapper. This lets a caller append
:class:`~gear.middleware.recovery.PanicRecovery` last so that it catches
failures raised by every middleware supplied before it.

Given ``[m0, m1, m2]`` and a handler ``h`` the call sequence is::

    m2 -> m1 -> m0 -> h -> m0 -> m1 -> m2
"""

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

from gear.exceptions import ChainError, ConfigurationError
from gear.middleware.base import Middleware, as_middleware
from gear.middleware.recovery import PanicRecovery
from gear.types import ASGIApp

if TYPE_CHECKING:
    from gear.context import Gear


def build_middlewares(middlewares: Iterable[Any]) -> tuple[Middleware, ...]:
    """
    Adapt and validate a middleware list.

    Raises:
        ConfigurationError: More than one PanicRecovery is supplied, or
            the PanicRecovery is not the last one.
    """
    result = tuple(as_middleware(m) for m in middlewares)
    recoveries = [i for i, m in enumerate(result) if isinstance(m, PanicRecovery)]
    if len(recoveries) > 1:
        raise ConfigurationError(
            f"at most one PanicRecovery may be supplied, got {len(recoveries)}"
        )
    if recoveries and recoveries[0] != len(result) - 1:
        raise ConfigurationError(
            "PanicRecovery must be the last middleware supplied, "
            f"found at position {recoveries[0]} of {len(result)}"
        )
    return result


class MiddlewareChain:
    """
    Drives the middlewares of ONE request.

    The cursor is consumed as the chain advances, so a fresh instance is
    created for every request. The middleware sequence and handler are
    shared read-only between instances.
    """

    def __init__(
        self,
        middlewares: Sequence[Middleware],
        handler: ASGIApp,
        logger: logging.Logger | None = None,
    ) -> None:
        self._middlewares = middlewares
        self._handler = handler
        self._cursor = len(middlewares) - 1
        self._logger = logger or logging.getLogger("gear.chain")

    @property
    def cursor(self) -> int:
        """Index of the middleware currently being served, -1 once exhausted."""
        return self._cursor

    async def exec(self, g: "Gear") -> None:
        """Run the chain for g."""
        if g.stopped:
            return
        if not self._middlewares:
            await self._serve_handler(g)
        else:
            await self._serve_middlewares(g)

    async def _serve_handler(self, g: "Gear") -> None:
        await self._handler(g.scope, g.request.receive, g.response.send)

    async def _serve_middlewares(self, g: "Gear") -> None:
        middleware = self._middlewares[self._cursor]
        called = False

        async def next() -> None:
            nonlocal called
            if called:
                raise ChainError(
                    f"next() called more than once by middleware {middleware.name}"
                )
            called = True
            if g.stopped:
                return
            self._cursor -= 1
            if self._cursor >= 0:
                await self._serve_middlewares(g)
            else:
                await self._serve_handler(g)

        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug(
                "middleware %s serving %s %s",
                middleware.name,
                g.request.method,
                g.request.path,
            )
        await middleware.serve(g, next)
