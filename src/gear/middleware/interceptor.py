"""
Path interceptor middleware.
"""

import posixpath
from typing import TYPE_CHECKING, Any

from gear.middleware.base import Middleware, as_middleware
from gear.types import Next

if TYPE_CHECKING:
    from gear.context import Gear


class PathInterceptor(Middleware):
    """
    Runs a middleware only for requests under a path prefix.

    The request path matches if it equals the cleaned prefix or starts with
    the prefix followed by a slash: ``/a/b`` matches ``/a/b``, ``/a/b/`` and
    ``/a/b/c`` but not ``/a/bc``. Other requests continue down the chain.
    """

    def __init__(self, prefix: str, middleware: Any) -> None:
        self.prefix = posixpath.normpath(prefix)
        self._prefix_slash = self.prefix if self.prefix.endswith("/") else self.prefix + "/"
        self.middleware = as_middleware(middleware)

    @property
    def name(self) -> str:
        return f"PathInterceptor({self.prefix}, {self.middleware.name})"

    def matches(self, path: str) -> bool:
        return path == self.prefix or path.startswith(self._prefix_slash)

    async def serve(self, g: "Gear", next: Next) -> None:
        if self.matches(g.request.path):
            await self.middleware.serve(g, next)
        else:
            await next()
