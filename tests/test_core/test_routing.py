"""Tests for gear.routing: pattern matching, subtrees, groups."""

import pytest

from gear.app import GearApp, GroupApp, wrap
from gear.context import current_gear
from gear.exceptions import MethodNotAllowed, NotFound, RoutingError
from gear.routing import Group, Route, Router, join_path

from tests.conftest import ResponseCapture, make_receive, make_scope, ok_handler


async def handler(scope, receive, send) -> None: ...


def text_app(body: str):
    async def app(scope, receive, send) -> None:
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": body.encode()})
    return app


class TestRoute:
    def test_static_match(self) -> None:
        assert Route("/hello", handler).match("/hello") == {}

    def test_no_match(self) -> None:
        assert Route("/hello", handler).match("/world") is None

    def test_int_param(self) -> None:
        assert Route("/users/{user_id:int}", handler).match("/users/42") == {"user_id": 42}

    def test_uuid_param(self) -> None:
        route = Route("/items/{item_id:uuid}", handler)
        result = route.match("/items/550e8400-e29b-41d4-a716-446655440000")
        assert result == {"item_id": "550e8400-e29b-41d4-a716-446655440000"}

    def test_slug_param(self) -> None:
        route = Route("/posts/{slug:slug}", handler)
        assert route.match("/posts/my-first-post") is not None
        assert route.match("/posts/CAPS") is None  # slugs are lowercase

    def test_unknown_param_type(self) -> None:
        with pytest.raises(RoutingError):
            Route("/x/{a:float}", handler)

    def test_subtree_match(self) -> None:
        route = Route("/static/", handler)
        assert route.is_subtree
        assert route.match("/static/css/site.css") == {}
        assert route.match("/static/") == {}
        assert route.match("/static") is None


class TestRouter:
    def test_add_route_and_match(self) -> None:
        router = Router()
        router.add_route("/test", handler, methods=["get"])
        route, params = router.match("/test", "GET")
        assert route.path == "/test"
        assert route.methods == {"GET"}
        assert params == {}

    def test_method_not_allowed(self) -> None:
        router = Router()
        router.add_route("/test", handler, methods=["GET", "HEAD"])
        with pytest.raises(MethodNotAllowed) as info:
            router.match("/test", "POST")
        assert info.value.allowed == {"GET", "HEAD"}

    def test_not_found(self) -> None:
        with pytest.raises(NotFound):
            Router().match("/missing", "GET")

    def test_exact_route_beats_subtree(self) -> None:
        router = Router()
        router.add_route("/api/", handler, name="subtree")
        router.add_route("/api/health", handler, name="exact")
        route, _ = router.match("/api/health", "GET")
        assert route.name == "exact"

    def test_longest_subtree_wins(self) -> None:
        router = Router()
        router.add_route("/", handler, name="root")
        router.add_route("/api/", handler, name="api")
        router.add_route("/api/v1/", handler, name="v1")
        assert router.match("/api/v1/users", "GET")[0].name == "v1"
        assert router.match("/api/v2", "GET")[0].name == "api"
        assert router.match("/other", "GET")[0].name == "root"

    def test_route_decorator(self) -> None:
        router = Router()

        @router.route("/deco", methods=["PUT"])
        async def deco(scope, receive, send) -> None: ...

        assert router.routes[0].app is deco
        assert router.routes[0].methods == {"PUT"}

    async def test_dispatch_sets_path_params(self) -> None:
        router = Router()
        seen: list[dict] = []

        async def user(scope, receive, send) -> None:
            seen.append(scope["path_params"])
            await text_app("user")(scope, receive, send)

        router.add_route("/users/{id:int}", user)
        cap = ResponseCapture()
        await router(make_scope(path="/users/7"), make_receive(), cap)

        assert seen == [{"id": 7}]
        assert cap.body == b"user"

    async def test_dispatch_404(self) -> None:
        cap = ResponseCapture()
        await Router()(make_scope(path="/nope"), make_receive(), cap)
        assert cap.status == 404
        assert cap.body == b"404 page not found\n"

    async def test_dispatch_405(self) -> None:
        router = Router()
        router.add_route("/only-get", handler, methods=["GET"])
        cap = ResponseCapture()
        await router(make_scope(method="DELETE", path="/only-get"), make_receive(), cap)
        assert cap.status == 405
        assert cap.headers["allow"] == "GET"

    async def test_lifespan(self) -> None:
        messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])
        sent: list[dict] = []

        async def receive():
            return next(messages)

        async def send(message) -> None:
            sent.append(message)

        await Router()({"type": "lifespan"}, receive, send)
        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]

    async def test_websocket_closed(self) -> None:
        sent: list[dict] = []

        async def send(message) -> None:
            sent.append(message)

        await Router()({"type": "websocket", "path": "/ws"}, make_receive(), send)
        assert sent == [{"type": "websocket.close", "code": 1008}]


class TestJoinPath:
    @pytest.mark.parametrize(
        "prefix, pattern, expected",
        [
            ("/admin", "/users", "/admin/users"),
            ("/admin/", "users/", "/admin/users/"),
            ("admin", "", "/admin"),
            ("/a/../b", "/c", "/b/c"),
            ("/", "/", "/"),
        ],
    )
    def test_join(self, prefix: str, pattern: str, expected: str) -> None:
        assert join_path(prefix, pattern) == expected


class TestGroup:
    async def test_handle_registers_group_app(self) -> None:
        router = Router()
        Group("/admin", router=router).handle("/users", ok_handler, methods=["GET"])

        (route,) = router.routes
        assert route.path == "/admin/users"
        assert isinstance(route.app, GroupApp)
        assert isinstance(route.app, GearApp)

        cap = ResponseCapture()
        await router(make_scope(path="/admin/users"), make_receive(), cap)
        assert cap.body == b"ok"

    async def test_group_middlewares_run_first(self) -> None:
        trace: list[str] = []

        def recorder(label: str):
            async def mw(g, next) -> None:
                trace.append(label)
                await next()
            return mw

        async def leaf(scope, receive, send) -> None:
            trace.append("handler")
            await current_gear(scope).string("done")

        router = Router()
        parent = Group("/api", recorder("parent"), router=router)
        child = parent.group("/v1", recorder("child"))
        child.handle("/items", leaf, recorder("route"))

        cap = ResponseCapture()
        await router(make_scope(path="/api/v1/items"), make_receive(), cap)

        assert router.routes[0].path == "/api/v1/items"
        assert trace == ["parent", "child", "route", "handler"]
        assert cap.body == b"done"

    async def test_handle_without_handler(self) -> None:
        router = Router()
        Group("/noop", router=router).handle("/")

        cap = ResponseCapture()
        await router(make_scope(path="/noop/anything"), make_receive(), cap)
        assert cap.status == 200
        assert cap.body == b""

    def test_handle_is_chainable(self) -> None:
        router = Router()
        group = Group("/g", router=router)
        assert group.handle("/a", ok_handler).handle("/b", ok_handler) is group
        assert [r.path for r in router.routes] == ["/g/a", "/g/b"]


def recorder(trace: list[str], label: str):
    async def mw(g, next) -> None:
        trace.append(label)
        await next()
    return mw


class TestGroupUnderWrap:
    """Group routes served by a router that is itself wrapped."""

    async def test_wrapped_router_serves_group_route(self) -> None:
        router = Router()
        Group("/admin", router=router).handle("/users", ok_handler, methods=["GET"])

        cap = ResponseCapture()
        await wrap(router)(make_scope(path="/admin/users"), make_receive(), cap)

        assert cap.status == 200
        assert cap.body == b"ok"
        assert len(cap.starts) == 1

    async def test_nested_groups_share_the_outer_gear(self) -> None:
        trace: list[str] = []
        seen: list[object] = []

        async def outer(g, next) -> None:
            trace.append("outer")
            seen.append(g)
            await next()

        async def leaf(scope, receive, send) -> None:
            trace.append("handler")
            g = current_gear(scope)
            seen.append(g)
            await g.string("done")

        router = Router()
        parent = Group("/api", recorder(trace, "parent"), router=router)
        child = parent.group("/v1", recorder(trace, "child"))
        child.handle("/items", leaf, recorder(trace, "route"))

        cap = ResponseCapture()
        await wrap(router, outer)(make_scope(path="/api/v1/items"), make_receive(), cap)

        assert trace == ["outer", "parent", "child", "route", "handler"]
        assert seen[0] is seen[1]
        assert cap.status == 200
        assert cap.body == b"done"

    async def test_group_middleware_stop_answers_under_wrap(self) -> None:
        called: list[str] = []

        async def deny(g, next) -> None:
            await g.code(403)
            g.stop()

        async def leaf(scope, receive, send) -> None:
            called.append("handler")

        router = Router()
        Group("/private", deny, router=router).handle("/data", leaf)

        cap = ResponseCapture()
        await wrap(router)(make_scope(path="/private/data"), make_receive(), cap)

        assert called == []
        assert cap.status == 403
        assert cap.body == b"Forbidden\n"

    async def test_path_params_reach_the_gear(self) -> None:
        params: list[dict] = []

        async def leaf(scope, receive, send) -> None:
            g = current_gear(scope)
            params.append(g.request.path_params)
            await g.string("ok")

        router = Router()
        Group("/users", router=router).handle("/{id:int}", leaf)

        cap = ResponseCapture()
        await wrap(router)(make_scope(path="/users/42"), make_receive(), cap)

        assert params == [{"id": 42}]
        assert cap.body == b"ok"

    async def test_unknown_path_under_wrap_is_404(self) -> None:
        router = Router()
        Group("/admin", router=router).handle("/users", ok_handler)

        cap = ResponseCapture()
        await wrap(router)(make_scope(path="/admin/other"), make_receive(), cap)

        assert cap.status == 404
