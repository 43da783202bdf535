"""
FluentRoute - Route Builder Tests
==================================

What:  Tests for the fluent builder, route registration and the middleware chain.
How:   Builder state is checked directly; chain behaviour is checked by
       registering routes on a server app and calling them over ASGI.

What we test:
    ✅ Method/path handling, snapshots and double registration
    ✅ Middleware order, short-circuiting and error containment
    ✅ Built-in cache, rate limit and authenticate middleware
"""

import dataclasses

import pytest
from fastapi import APIRouter
from starlette.responses import JSONResponse, PlainTextResponse

from fluentroute.exceptions import AuthError
from fluentroute.routing import Param, ParamLocation, Route, Router, compose, route
from fluentroute.routing.route import normalize_path


class TestBuilder:
    def test_default_method_is_get(self):
        assert route("/things").build().method == "GET"

    @pytest.mark.parametrize(
        "factory, method",
        [
            (Router.get, "GET"),
            (Router.post, "POST"),
            (Router.put, "PUT"),
            (Router.patch, "PATCH"),
            (Router.delete, "DELETE"),
        ],
    )
    def test_router_shortcuts(self, factory, method):
        assert factory("/x").build().method == method

    def test_method_is_case_insensitive(self):
        assert Route("/x").method("post").build().method == "POST"

    def test_unsupported_method(self):
        with pytest.raises(ValueError):
            Route("/x").method("TRACE")

    def test_colon_segments_become_placeholders(self):
        assert normalize_path("/users/:id/posts/:post_id") == "/users/{id}/posts/{post_id}"
        assert Router.get("/users/:id").build().path == "/users/{id}"

    def test_build_returns_frozen_snapshot(self):
        builder = Router.get("/x").query_param("a")
        first = builder.build()
        builder.query_param("b")
        second = builder.build()

        assert [p.name for p in first.query_params] == ["a"]
        assert [p.name for p in second.query_params] == ["a", "b"]
        with pytest.raises(dataclasses.FrozenInstanceError):
            first.method = "POST"

    def test_params_sorts_descriptors_by_location(self):
        definition = (
            Router.get("/x/:id")
            .params(
                Param("id", ParamLocation.PATH),
                Param("q", ParamLocation.QUERY, required=True),
                Param("x-key", ParamLocation.HEADER),
            )
            .build()
        )
        assert [p.name for p in definition.path_params] == ["id"]
        assert [p.name for p in definition.query_params] == ["q"]
        assert [p.name for p in definition.header_params] == ["x-key"]

    def test_description_and_tags(self):
        builder = Router.get("/x").describe("List things").tag("things", "public")
        assert builder.description == "List things"
        assert builder.tags == ("things", "public")
        assert builder.build().tags == ("things", "public")

    def test_register_twice_fails(self):
        builder = Router.get("/once").handler(lambda ctx: {})
        builder.register(APIRouter())
        with pytest.raises(RuntimeError):
            builder.register(APIRouter())

    def test_register_adds_route_to_dispatcher(self):
        router = APIRouter()
        definition = Router.put("/things/:id").handler(lambda ctx: {}).register(router)

        assert definition.name == "PUT /things/{id}"
        registered = router.routes[0]
        assert registered.path == "/things/{id}"
        assert "PUT" in registered.methods


class TestCompose:
    @pytest.mark.asyncio
    async def test_runs_middleware_in_order_around_endpoint(self):
        events = []

        def recorder(name):
            async def middleware(request, call_next):
                events.append(f"{name}:before")
                response = await call_next(request)
                events.append(f"{name}:after")
                return response

            return middleware

        async def endpoint(request):
            events.append("endpoint")
            return PlainTextResponse("ok")

        chain = compose([recorder("a"), recorder("b")], endpoint)
        await chain(None)

        assert events == ["a:before", "b:before", "endpoint", "b:after", "a:after"]

    @pytest.mark.asyncio
    async def test_no_middleware_is_the_endpoint(self):
        async def endpoint(request):
            return PlainTextResponse("ok")

        assert compose([], endpoint) is endpoint


class TestRouteMiddleware:
    @pytest.mark.asyncio
    async def test_short_circuit_skips_handler(self, server, make_client):
        calls = []

        async def deny(request, call_next):
            return JSONResponse({"error": "Forbidden"}, status_code=403)

        server.add_route(
            Router.get("/private").use_middleware(deny).handler(lambda ctx: calls.append(1))
        )
        async with make_client(server.get_app()) as client:
            response = await client.get("/private")

        assert response.status_code == 403
        assert calls == []

    @pytest.mark.asyncio
    async def test_middleware_runs_before_parameter_validation(self, server, make_client):
        seen = []

        async def spy(request, call_next):
            seen.append(request.url.path)
            return await call_next(request)

        server.add_route(
            Router.get("/v/:id").use_middleware(spy).path_param("id", validator=str.isdigit)
        )
        async with make_client(server.get_app()) as client:
            response = await client.get("/v/abc")

        assert response.status_code == 400
        assert seen == ["/v/abc"]

    @pytest.mark.asyncio
    async def test_middleware_exception_becomes_json_error(self, server, make_client):
        async def reject(request, call_next):
            raise AuthError("Token revoked")

        server.add_route(Router.get("/revoked").use_middleware(reject).handler(lambda ctx: {}))
        async with make_client(server.get_app()) as client:
            response = await client.get("/revoked")

        assert response.status_code == 401
        assert response.json() == {"error": "Token revoked"}

    @pytest.mark.asyncio
    async def test_middleware_returning_nothing_is_an_error(self, server, make_client):
        async def broken(request, call_next):
            await call_next(request)

        server.add_route(Router.get("/broken").use_middleware(broken).handler(lambda ctx: {}))
        async with make_client(server.get_app()) as client:
            response = await client.get("/broken")

        assert response.status_code == 500
        assert "returned no response" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_cache_sets_header(self, server, make_client):
        server.add_route(Router.get("/cached").cache(120).handler(lambda ctx: {"ok": True}))
        async with make_client(server.get_app()) as client:
            response = await client.get("/cached")

        assert response.headers["cache-control"] == "max-age=120"

    @pytest.mark.asyncio
    async def test_authenticate_requires_header(self, server, make_client):
        server.add_route(Router.get("/me").authenticate().handler(lambda ctx: {"me": True}))
        async with make_client(server.get_app()) as client:
            anonymous = await client.get("/me")
            authorized = await client.get("/me", headers={"Authorization": "Bearer anything"})

        assert anonymous.status_code == 401
        assert anonymous.json() == {"error": "Authentication required"}
        assert authorized.status_code == 200

    @pytest.mark.asyncio
    async def test_rate_limit(self, server, make_client):
        server.add_route(Router.get("/limited").rate_limit(2, 60).handler(lambda ctx: {"ok": True}))
        async with make_client(server.get_app()) as client:
            statuses = [(await client.get("/limited")).status_code for _ in range(3)]
            blocked = await client.get("/limited")

        assert statuses == [200, 200, 429]
        assert int(blocked.headers["retry-after"]) >= 1
        assert "Rate limit exceeded" in blocked.json()["error"]

    def test_rate_limit_arguments(self):
        with pytest.raises(ValueError):
            Router.get("/x").rate_limit(0, 60)
        with pytest.raises(ValueError):
            Router.get("/x").rate_limit(5, 0)
