"""
Route compiler: paths, ref materialization, ordering, idempotence, conflicts.
"""

import pytest

from strix.di import AsyncResolutionRequiredError, injectable
from strix.faults import RouteConflictError
from strix.guards import use_guards
from strix.interceptors import use_interceptors
from strix.routing import (
    DELETE,
    GET,
    POST,
    RouteCompiler,
    build_controller_descriptor,
    controller,
    header,
    http_code,
    route,
)
from strix.utils.urls import join_paths


class AllowAll:
    def can_activate(self, context):
        return True


# ============================================================================
# Paths
# ============================================================================

class TestJoinPaths:

    @pytest.mark.parametrize("parts,expected", [
        (("/users", "/:id"), "/users/{id}"),
        (("/users/", "/"), "/users"),
        (("users", "profile/"), "/users/profile"),
        (("", ""), "/"),
        (("/api/", "//v1//", "items/:itemId/parts"), "/api/v1/items/{itemId}/parts"),
        (("/files", "{name}"), "/files/{name}"),
    ])
    def test_exactly_one_separating_slash(self, parts, expected):
        assert join_paths(*parts) == expected


# ============================================================================
# Descriptors
# ============================================================================

class TestDescriptors:

    def test_controller_descriptor(self):
        @controller("/users")
        @use_guards(AllowAll)
        class Users:
            @GET("/")
            async def index(self):
                pass

            @http_code(201)
            @header("X-Created", "yes")
            @POST("/")
            async def create(self):
                pass

            async def helper(self):
                pass

        descriptor = build_controller_descriptor(Users)
        assert descriptor.prefix == "/users"
        assert descriptor.guards == (AllowAll,)
        assert [(r.http_method, r.handler_name) for r in descriptor.routes] == [
            ("GET", "index"),
            ("POST", "create"),
        ]
        assert descriptor.routes[1].status_code == 201
        assert descriptor.routes[1].headers == (("X-Created", "yes"),)

    def test_multi_method_route(self):
        @controller
        class Items:
            @route(["GET", "POST"], "/items")
            async def items(self):
                pass

        descriptor = build_controller_descriptor(Items)
        assert descriptor.prefix == ""
        assert sorted(r.http_method for r in descriptor.routes) == ["GET", "POST"]

    def test_unknown_method_is_rejected(self):
        with pytest.raises(ValueError):
            @route("TRACE", "/")
            def handler():
                pass


# ============================================================================
# Compilation
# ============================================================================

class TestCompile:

    def test_routes_are_registered_with_server(self, container, server):
        @controller("/users")
        class Users:
            @GET("/:id")
            async def show(self):
                pass

            @DELETE("/:id")
            async def remove(self):
                pass

        compiler = RouteCompiler(container, server, global_prefix="/api")
        routes = compiler.compile(build_controller_descriptor(Users))

        assert [(r.method, r.path) for r in routes] == [
            ("GET", "/api/users/{id}"),
            ("DELETE", "/api/users/{id}"),
        ]
        assert [(m, p) for m, p, _ in server.registered] == [
            ("GET", "/api/users/{id}"),
            ("DELETE", "/api/users/{id}"),
        ]

    def test_controller_resolved_through_container(self, container, server):
        @injectable
        class Repo:
            pass

        @controller
        class Users:
            def __init__(self, repo: Repo):
                self.repo = repo

            @GET("/")
            async def index(self):
                pass

        container.register_class(Repo)
        container.register_class(Users)

        [compiled] = RouteCompiler(container, server).compile(build_controller_descriptor(Users))

        assert compiled.handler.handler.__self__ is container.resolve(Users)
        assert compiled.handler.handler.__self__.repo is container.resolve(Repo)

    def test_unregistered_refs_are_registered_and_instances_pass_through(self, container, server):
        allow_instance = AllowAll()

        @controller
        @use_guards(AllowAll, allow_instance)
        class Users:
            @GET("/")
            async def index(self):
                pass

        [compiled] = RouteCompiler(container, server).compile(build_controller_descriptor(Users))

        assert container.is_registered(Users)
        assert container.is_registered(AllowAll)
        assert compiled.handler.guards == [container.resolve(AllowAll), allow_instance]

    def test_ordering_global_then_controller_then_method(self, container, server):
        calls = []

        def make_guard(name):
            class Named:
                def can_activate(self, context):
                    calls.append(name)
                    return True
            return Named()

        g_global, g_class, g_method = make_guard("global"), make_guard("class"), make_guard("method")

        class Passthrough:
            async def intercept(self, context, call_handler):
                return await call_handler.handle()

        i_global, i_class, i_method = Passthrough(), Passthrough(), Passthrough()

        @controller
        @use_guards(g_class)
        @use_interceptors(i_class)
        class Users:
            @use_guards(g_method)
            @use_interceptors(i_method)
            @GET("/")
            async def index(self):
                pass

        compiler = RouteCompiler(container, server, guards=[g_global], interceptors=[i_global])
        [compiled] = compiler.compile(build_controller_descriptor(Users))

        assert compiled.handler.guards == [g_global, g_class, g_method]
        assert compiled.handler.interceptors == [i_global, i_class, i_method]

    def test_recompiling_is_idempotent(self, container, server):
        @controller("/users")
        class Users:
            @GET("/")
            async def index(self):
                pass

        compiler = RouteCompiler(container, server)
        descriptor = build_controller_descriptor(Users)

        first = compiler.compile(descriptor)
        second = compiler.compile(build_controller_descriptor(Users))

        assert [(r.method, r.path, r.handler) for r in first] == [(r.method, r.path, r.handler) for r in second]
        assert len(server.registered) == 1
        assert len(compiler.routes) == 1

    def test_conflicting_controllers_are_rejected(self, container, server):
        @controller("/users")
        class First:
            @GET("/")
            async def index(self):
                pass

        @controller("users")
        class Second:
            @POST("/")
            async def create(self):
                pass

            @GET("/")
            async def list_all(self):
                pass

        compiler = RouteCompiler(container, server)
        compiler.compile(build_controller_descriptor(First))

        with pytest.raises(RouteConflictError) as exc_info:
            compiler.compile(build_controller_descriptor(Second))

        err = exc_info.value
        assert "First.index" in err.message and "Second.list_all" in err.message
        # nothing from the rejected controller reached the server
        assert [(m, p) for m, p, _ in server.registered] == [("GET", "/users")]

    def test_sync_compile_refuses_async_controller(self, container, server):
        @controller
        class Users:
            async def on_init(self):
                pass

            @GET("/")
            async def index(self):
                pass

        with pytest.raises(AsyncResolutionRequiredError):
            RouteCompiler(container, server).compile(build_controller_descriptor(Users))
        assert server.registered == []

    @pytest.mark.asyncio
    async def test_compile_async(self, container, server):
        @controller
        class Users:
            async def on_init(self):
                self.ready = True

            @GET("/")
            async def index(self):
                pass

        [compiled] = await RouteCompiler(container, server).compile_async(build_controller_descriptor(Users))
        assert compiled.handler.handler.__self__.ready is True
        assert server.registered[0][2] is compiled.handler

    def test_compiled_routes_do_not_read_metadata_again(self, container, server):
        @controller
        class Users:
            @GET("/")
            async def index(self):
                pass

        [compiled] = RouteCompiler(container, server).compile(build_controller_descriptor(Users))

        # Later decoration does not affect the compiled pipeline
        use_guards(AllowAll)(Users.index)
        assert compiled.handler.guards == []
