"""
Routing for Gear.

:class:`Router` is a plain ASGI application dispatching on path and method.
It is the terminal handler used by :func:`gear.wrap` when no handler is
given. :class:`Group` registers handlers under a common path prefix, each
with the group middlewares outermost, and works with a wrapped router.
"""

import logging
import posixpath
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Pattern

from gear.exceptions import MethodNotAllowed, NotFound, RoutingError
from gear.middleware.chain import build_middlewares
from gear.response import TextResponse
from gear.types import ASGIApp, Receive, Scope, Send


# Pattern for extracting path parameters: {param} or {param:type}
PATH_PARAM_PATTERN: Pattern[str] = re.compile(r"\{(\w+)(?::(\w+))?\}")

# Type patterns for path parameter matching
TYPE_PATTERNS: dict[str, str] = {
    "int": r"\d+",
    "str": r"[^/]+",
    "path": r".+",
    "uuid": r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}",
    "slug": r"[a-z0-9]+(?:-[a-z0-9]+)*",
}

# Type converters
TYPE_CONVERTERS: dict[str, Callable[[str], Any]] = {
    "int": int,
    "str": str,
    "path": str,
    "uuid": str,
    "slug": str,
}

logger = logging.getLogger("gear.routing")


@dataclass(slots=True)
class Route:
    """
    A single route.

    A path ending with ``/`` is a subtree route: it matches every path
    starting with it. Other paths match exactly.
    """

    path: str
    app: ASGIApp
    methods: set[str] | None = None
    name: str | None = None
    _pattern: re.Pattern[str] | None = field(default=None, init=False, repr=False)
    _param_types: dict[str, str] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        """Compile the route pattern."""
        self._compile_pattern()

    @property
    def is_subtree(self) -> bool:
        return self.path.endswith("/")

    def _compile_pattern(self) -> None:
        """Convert path pattern to regex."""
        self._param_types = {}
        parts: list[str] = []
        last = 0

        for match in PATH_PARAM_PATTERN.finditer(self.path):
            param_name = match.group(1)
            param_type = match.group(2) or "str"

            if param_type not in TYPE_PATTERNS:
                raise RoutingError(f"Unknown parameter type: {param_type}")

            self._param_types[param_name] = param_type
            parts.append(re.escape(self.path[last:match.start()]))
            parts.append(f"(?P<{param_name}>{TYPE_PATTERNS[param_type]})")
            last = match.end()

        parts.append(re.escape(self.path[last:]))
        suffix = "" if self.is_subtree else "$"
        self._pattern = re.compile("^" + "".join(parts) + suffix)

    def match(self, path: str) -> dict[str, Any] | None:
        """
        Match a path against this route's pattern.
        Returns path parameters if matched, None otherwise.
        """
        if self._pattern is None:
            return None

        match = self._pattern.match(path)
        if not match:
            return None

        params: dict[str, Any] = {}
        for name, value in match.groupdict().items():
            param_type = self._param_types.get(name, "str")
            converter = TYPE_CONVERTERS.get(param_type, str)
            try:
                params[name] = converter(value)
            except (ValueError, TypeError):
                return None

        return params

    def allows(self, method: str) -> bool:
        return self.methods is None or method in self.methods


class Router:
    """
    Path router.

    Exact routes take precedence over subtree routes; among subtree routes
    the longest path wins. Unknown paths are answered with 404 and known
    paths with a wrong method with 405.
    """

    def __init__(self) -> None:
        self._routes: list[Route] = []

    @property
    def routes(self) -> list[Route]:
        """Get all registered routes."""
        return list(self._routes)

    def add_route(
        self,
        path: str,
        app: ASGIApp,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Route:
        """Add a route. methods None means any method."""
        methods_set = {m.upper() for m in methods} if methods else None
        route = Route(path=path, app=app, methods=methods_set, name=name)
        self._routes.append(route)
        logger.debug("route %s %s registered", sorted(methods_set or {"*"}), path)
        return route

    def route(
        self,
        path: str,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Callable[[ASGIApp], ASGIApp]:
        """Decorator registering an ASGI application at path."""
        def decorator(app: ASGIApp) -> ASGIApp:
            self.add_route(path, app, methods, name)
            return app
        return decorator

    def match(self, path: str, method: str) -> tuple[Route, dict[str, Any]]:
        """
        Find the route for path and method.

        Raises:
            NotFound: No route matches path.
            MethodNotAllowed: Routes match path but none allows method.
        """
        method = method.upper()
        exact = [r for r in self._routes if not r.is_subtree]
        subtree = sorted(
            (r for r in self._routes if r.is_subtree),
            key=lambda r: len(r.path),
            reverse=True,
        )

        allowed: set[str] = set()
        for candidates in (exact, subtree):
            for route in candidates:
                params = route.match(path)
                if params is None:
                    continue
                if route.allows(method):
                    return route, params
                allowed |= route.methods or set()
            if allowed:
                raise MethodNotAllowed(method, allowed)

        raise NotFound(path)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        if scope["type"] == "websocket":
            await send({"type": "websocket.close", "code": 1008})
            return

        try:
            route, path_params = self.match(scope.get("path", "/"), scope.get("method", "GET"))
        except NotFound:
            await TextResponse("404 page not found\n", status_code=404)(send)
            return
        except MethodNotAllowed as exc:
            response = TextResponse(
                "Method Not Allowed\n",
                status_code=405,
                headers={"Allow": ", ".join(sorted(exc.allowed))},
            )
            await response(send)
            return

        scope["path_params"] = path_params
        await route.app(scope, receive, send)

    @staticmethod
    async def _lifespan(receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return


# Router used by wrap() when no handler is given
default_router = Router()


def join_path(prefix: str, pattern: str) -> str:
    """Join and clean prefix and pattern, keeping a trailing slash of pattern."""
    joined = posixpath.normpath(posixpath.join("/", prefix.lstrip("/"), pattern.lstrip("/")))
    if pattern.endswith("/") and not joined.endswith("/"):
        joined += "/"
    return joined


async def _empty_app(scope: Scope, receive: Receive, send: Send) -> None:
    pass


class Group:
    """
    A path prefix on a router.

    Every handler registered through the group is wrapped with the group
    middlewares, which take precedence (run first) over the middlewares
    given at registration.

    Usage:
        Group("/admin", auth).handle("/users", users_app).handle("/logs", logs_app)
    """

    def __init__(
        self,
        prefix: str,
        *middlewares: Any,
        router: Router | None = None,
    ) -> None:
        self.prefix = prefix
        self.middlewares = middlewares
        self.router = router if router is not None else default_router

    def handle(
        self,
        pattern: str,
        handler: ASGIApp | None = None,
        *middlewares: Any,
        methods: list[str] | None = None,
    ) -> "Group":
        """
        Register handler at the prefix joined with pattern.

        If handler is None, an empty handler is used. The router may itself
        be wrapped: the registered handler then runs its middlewares on the
        Gear already attached to the request.
        """
        from gear.app import GroupApp

        app = GroupApp(
            handler or _empty_app,
            build_middlewares((*middlewares, *self.middlewares)),
        )
        self.router.add_route(join_path(self.prefix, pattern), app, methods)
        return self

    def group(self, prefix: str, *middlewares: Any) -> "Group":
        """
        Create a nested prefix. The middlewares of this group run before
        those of the new group.
        """
        return Group(
            join_path(self.prefix, prefix),
            *middlewares,
            *self.middlewares,
            router=self.router,
        )
