"""
Unit tests for HTTPServer.dispatch(), without sockets.
"""

import json

import pytest

from microserve import (
    HTTPServer,
    ServerConfig,
    HTTPError,
    Router,
    LoggingMiddleware,
    RecoveryMiddleware,
    create_app,
    ok,
)
from microserve.http import HTTPRequest


def make_request(method: str, path: str) -> HTTPRequest:
    return HTTPRequest(method=method, path=path)


@pytest.fixture
def server(config) -> HTTPServer:
    return HTTPServer(config)


class TestScenarios:
    """End-to-end dispatch through middleware and router."""

    def test_user(self, server):
        """GET /user → 200 "User information"."""
        server.add_route("GET", "/user", lambda request: ok("User information"))

        response = server.dispatch(make_request("GET", "/user"))

        assert response.status == 200
        assert response.body == b"User information"

    def test_no_routes_is_405(self, server):
        """POST /x with nothing registered → 405."""
        response = server.dispatch(make_request("POST", "/x"))

        assert response.status == 405
        assert response.body

    def test_unknown_path_is_404(self, server):
        """Only GET /a registered; GET /b → 404."""
        server.add_route("GET", "/a", lambda request: ok("a"))

        response = server.dispatch(make_request("GET", "/b"))

        assert response.status == 404
        assert response.body

    def test_http_error(self, server):
        """A handler returning HTTPError(400, "bad input") → 400 with the message."""
        server.add_route("GET", "/err", lambda request: HTTPError(400, "bad input"))

        response = server.dispatch(make_request("GET", "/err"))

        assert response.status == 400
        assert b"bad input" in response.body

    def test_fault_recovered_and_serving_continues(self, server):
        """A fault becomes 500 and the next request is served normally."""
        server.use(RecoveryMiddleware())

        def boom(request):
            raise RuntimeError("secret detail")

        server.add_route("GET", "/boom", boom)
        server.add_route("GET", "/user", lambda request: ok("User information"))

        first = server.dispatch(make_request("GET", "/boom"))
        second = server.dispatch(make_request("GET", "/user"))

        assert first.status == 500
        assert b"secret detail" not in first.body
        assert second.status == 200

    def test_bad_body_recovered(self, server):
        """A response whose body cannot be sent becomes a 500 inside the chain."""
        server.use(RecoveryMiddleware())

        def bad_body(request):
            response = ok("fine")
            response.body = ["not", "bytes"]
            return response

        server.add_route("GET", "/bad", bad_body)

        assert server.dispatch(make_request("GET", "/bad")).status == 500

    def test_fault_without_recovery_propagates(self, server):
        """Without recovery middleware, dispatch raises."""
        def boom(request):
            raise RuntimeError("unrecovered")

        server.add_route("GET", "/boom", boom)

        with pytest.raises(RuntimeError):
            server.dispatch(make_request("GET", "/boom"))

    def test_routing_errors_are_responses_not_faults(self, server):
        """404/405 reach middleware as responses."""
        seen = []

        def observe(request, next):
            response = next(request)
            seen.append(response.status)
            return response

        server.use(observe)
        server.add_route("GET", "/a", lambda request: ok())

        server.dispatch(make_request("GET", "/missing"))
        server.dispatch(make_request("DELETE", "/a"))

        assert seen == [404, 405]


class TestMiddlewareOrder:
    """Middleware registration order through the server."""

    def test_entry_and_exit_order(self, server):
        calls = []

        def layer(label):
            def middleware(request, next):
                calls.append(f"{label}>")
                response = next(request)
                calls.append(f"<{label}")
                return response
            return middleware

        server.use(layer("A")).use(layer("B"))

        @server.get("/h")
        def handler(request):
            calls.append("H")
            return ok()

        server.dispatch(make_request("GET", "/h"))

        assert calls == ["A>", "B>", "H", "<B", "<A"]

    def test_use_after_dispatch_rebuilds_chain(self, server):
        """Middleware added later applies to later requests."""
        server.add_route("GET", "/a", lambda request: ok())
        server.dispatch(make_request("GET", "/a"))

        server.use(lambda request, next: next(request).set_header("X-Late", "yes"))

        assert server.dispatch(make_request("GET", "/a")).headers["X-Late"] == "yes"


class TestRegistration:
    """Route registration through the server."""

    def test_injected_router(self, config):
        """A router built elsewhere can be served."""
        router = Router()
        router.add_route("GET", "/x", lambda request: ok("x"))

        server = HTTPServer(config, router=router)

        assert server.router is router
        assert server.dispatch(make_request("GET", "/x")).body == b"x"

    def test_independent_servers(self, config):
        """Two servers never share routes."""
        one = HTTPServer(config)
        two = HTTPServer(config)
        one.add_route("GET", "/only-one", lambda request: ok())

        assert two.dispatch(make_request("GET", "/only-one")).status == 405

    def test_route_added_after_first_dispatch(self, server):
        server.add_route("GET", "/a", lambda request: ok())
        server.dispatch(make_request("GET", "/a"))

        server.add_route("GET", "/b", lambda request: ok("b"))

        assert server.dispatch(make_request("GET", "/b")).body == b"b"

    def test_invalid_config_fails_fast(self):
        with pytest.raises(ValueError):
            HTTPServer(ServerConfig(port=-1))


class TestCreateApp:
    """Tests for create_app()."""

    def test_default_stack(self, config):
        app = create_app(config)
        names = [m.name for m in app.middleware]

        assert names == ["LoggingMiddleware", "RecoveryMiddleware"]

    def test_flags(self, config):
        config.access_log = False
        config.recovery = False

        assert len(create_app(config).middleware) == 0

    def test_json_access_log(self, config):
        config.log_format = "json"
        logging_mw = next(iter(create_app(config).middleware))

        assert isinstance(logging_mw, LoggingMiddleware)
        assert logging_mw.log_format == "json"

    def test_recovered_fault_body(self, config):
        app = create_app(config)

        def boom(request):
            raise ZeroDivisionError

        app.add_route("GET", "/boom", boom)
        response = app.dispatch(make_request("GET", "/boom"))

        assert response.status == 500
        assert json.loads(response.body) == {"error": "Internal Server Error"}
