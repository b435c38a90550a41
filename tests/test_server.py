"""
ASGI server: route matching, transport-level faults, HEAD, lifespan.
"""

from typing import Annotated

import pytest

from strix.guards import use_guards
from strix.response import Reply
from strix.routing import (
    GET,
    POST,
    Body,
    Headers,
    Param,
    Query,
    RouteCompiler,
    build_controller_descriptor,
    controller,
)
from strix.server import ASGIServer

from conftest import make_client


def echo(label):
    async def handler(request, reply: Reply) -> Reply:
        reply.send({"route": label, "params": request.path_params})
        return reply
    return handler


@controller("/items")
class ItemController:
    @GET("/:id")
    async def show(self, id: Annotated[str, Param("id")], verbose: Annotated[str, Query("verbose")]):
        return {"id": id, "verbose": verbose}

    @POST("/")
    async def create(self, body: Annotated[dict, Body()], agent: Annotated[str, Headers("user-agent")]):
        return {"received": body, "agent": agent}


class DenyAll:
    def can_activate(self, context):
        return False


@controller("/locked")
@use_guards(DenyAll())
class LockedController:
    @POST("/")
    async def create(self, body: Annotated[dict, Body()]):
        return body


@pytest.fixture
def asgi_server():
    return ASGIServer()


# ============================================================================
# Matching
# ============================================================================

class TestMatching:

    def test_static_route_beats_template(self, asgi_server):
        asgi_server.register("GET", "/users/{id}", echo("param"))
        asgi_server.register("GET", "/users/me", echo("static"))

        handler, params = asgi_server.match("GET", "/users/me")
        assert params == {}

        handler, params = asgi_server.match("GET", "/users/42")
        assert params == {"id": "42"}

    def test_static_segment_wins_position_by_position(self, asgi_server):
        asgi_server.register("GET", "/{org}/{repo}", echo("both"))
        asgi_server.register("GET", "/{org}/settings", echo("settings"))

        _, params = asgi_server.match("GET", "/acme/settings")
        assert params == {"org": "acme"}

    def test_trailing_slash_is_ignored(self, asgi_server):
        asgi_server.register("GET", "/users/", echo("list"))
        assert asgi_server.match("GET", "/users") is not None
        assert asgi_server.match("GET", "/users/") is not None

    def test_allowed_methods(self, asgi_server):
        asgi_server.register("GET", "/users/{id}", echo("show"))
        asgi_server.register("DELETE", "/users/{id}", echo("remove"))

        assert asgi_server.allowed_methods("/users/1") == ["DELETE", "GET"]
        assert asgi_server.allowed_methods("/nothing") == []


# ============================================================================
# HTTP
# ============================================================================

class TestHTTP:

    @pytest.mark.asyncio
    async def test_path_params_reach_handler(self, asgi_server):
        asgi_server.register("GET", "/users/{id}", echo("show"))

        async with make_client(asgi_server) as client:
            response = await client.get("/users/42")

        assert response.status_code == 200
        assert response.json() == {"route": "show", "params": {"id": "42"}}

    @pytest.mark.asyncio
    async def test_unknown_path_is_404(self, asgi_server):
        async with make_client(asgi_server) as client:
            response = await client.get("/missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ROUTE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_wrong_method_is_405_with_allow(self, asgi_server):
        asgi_server.register("GET", "/users", echo("list"))
        asgi_server.register("POST", "/users", echo("create"))

        async with make_client(asgi_server) as client:
            response = await client.delete("/users")

        assert response.status_code == 405
        assert response.headers["allow"] == "GET, POST"
        assert response.json()["error"]["metadata"] == {"allowed": ["GET", "POST"]}

    @pytest.mark.asyncio
    async def test_head_uses_get_route_without_body(self, asgi_server):
        asgi_server.register("GET", "/users", echo("list"))

        async with make_client(asgi_server) as client:
            get_response = await client.get("/users")
            head_response = await client.head("/users")

        assert head_response.status_code == 200
        assert head_response.content == b""
        assert head_response.headers["content-length"] == get_response.headers["content-length"]

    @pytest.mark.asyncio
    async def test_malformed_json_is_400(self, asgi_server, container):
        RouteCompiler(container, asgi_server).compile(build_controller_descriptor(ItemController))

        async with make_client(asgi_server) as client:
            response = await client.post(
                "/items", content=b"{not json", headers={"Content-Type": "application/json"},
            )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BAD_REQUEST"

    @pytest.mark.asyncio
    async def test_guard_answers_before_malformed_body(self, asgi_server, container):
        RouteCompiler(container, asgi_server).compile(build_controller_descriptor(LockedController))

        async with make_client(asgi_server) as client:
            response = await client.post(
                "/locked", content=b"{not json", headers={"Content-Type": "application/json"},
            )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_compiled_controller_end_to_end(self, asgi_server, container):
        RouteCompiler(container, asgi_server, global_prefix="/api").compile(
            build_controller_descriptor(ItemController)
        )

        async with make_client(asgi_server) as client:
            shown = await client.get("/api/items/9", params={"verbose": "yes"})
            created = await client.post(
                "/api/items", json={"name": "lamp"}, headers={"User-Agent": "pytest-client"},
            )

        assert shown.json() == {"id": "9", "verbose": "yes"}
        assert created.json() == {"received": {"name": "lamp"}, "agent": "pytest-client"}

    @pytest.mark.asyncio
    async def test_form_body_is_decoded(self, asgi_server):
        async def handler(request, reply):
            await request.load()
            reply.send({"body": request.body})
            return reply

        asgi_server.register("POST", "/form", handler)

        async with make_client(asgi_server) as client:
            response = await client.post("/form", data={"a": "1", "b": "two"})

        assert response.json() == {"body": {"a": "1", "b": "two"}}


# ============================================================================
# Lifespan
# ============================================================================

class TestLifespan:

    @pytest.mark.asyncio
    async def test_startup_and_shutdown_hooks(self, asgi_server):
        events = []

        async def started():
            events.append("startup")

        async def stopped():
            events.append("shutdown")

        asgi_server.on_startup(started)
        asgi_server.on_shutdown(stopped)

        incoming = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        sent = []

        async def receive():
            return incoming.pop(0)

        async def send(message):
            sent.append(message["type"])

        await asgi_server({"type": "lifespan"}, receive, send)

        assert events == ["startup", "shutdown"]
        assert sent == ["lifespan.startup.complete", "lifespan.shutdown.complete"]
