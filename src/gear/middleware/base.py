"""
Base middleware classes for Gear.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeAlias

from gear.types import Next

if TYPE_CHECKING:
    from gear.context import Gear


class Middleware(ABC):
    """
    Abstract base middleware class.

    A middleware does some work, then optionally resumes the chain with
    ``await next()``, then optionally does more work. Not calling ``next``
    short-circuits the chain; calling ``g.stop()`` also prevents anything
    downstream from running even if ``next`` is called.
    """

    @property
    def name(self) -> str:
        """Diagnostic name. Never used for dispatch."""
        return type(self).__name__

    @abstractmethod
    async def serve(self, g: "Gear", next: Next) -> None:
        """Serve the request. Must be implemented by subclasses."""
        ...


ServeFunc: TypeAlias = Callable[["Gear", Next], Awaitable[None]]


class MiddlewareFunc(Middleware):
    """
    Adapter to allow the use of ordinary async functions as middlewares.

    Usage:
        async def timing(g, next):
            start = time.perf_counter()
            await next()
            g.state["elapsed"] = time.perf_counter() - start

        wrap(handler, MiddlewareFunc(timing, name="timing"))
    """

    def __init__(self, func: ServeFunc, name: str | None = None) -> None:
        self._func = func
        self._name = name or getattr(func, "__name__", type(func).__name__)

    @property
    def name(self) -> str:
        return self._name

    async def serve(self, g: "Gear", next: Next) -> None:
        await self._func(g, next)


def as_middleware(obj: Any) -> Middleware:
    """Return obj as a Middleware, adapting plain callables."""
    if isinstance(obj, Middleware):
        return obj
    if callable(obj):
        return MiddlewareFunc(obj)
    raise TypeError(f"{obj!r} is not a middleware")

