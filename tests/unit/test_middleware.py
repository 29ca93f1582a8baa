"""
Unit tests for the middleware chain, logging and recovery.
"""

import json
import logging

import pytest

from microserve.http.request import HTTPRequest
from microserve.http.response import HTTPResponse, ok
from microserve.middleware import (
    Middleware,
    MiddlewarePipeline,
    FunctionMiddleware,
    LoggingMiddleware,
    RecoveryMiddleware,
    compose,
    function_middleware,
)


def make_request(method: str = "GET", path: str = "/user") -> HTTPRequest:
    return HTTPRequest(method=method, path=path)


class Recorder(Middleware):
    """Appends enter/exit markers to a shared list."""

    def __init__(self, label: str, calls: list):
        self.label = label
        self.calls = calls

    def __call__(self, request, next):
        self.calls.append(f"{self.label}:enter")
        response = next(request)
        self.calls.append(f"{self.label}:exit")
        return response


class TestCompose:
    """Tests for compose() ordering and wrapping."""

    def test_first_is_outermost(self):
        """[A, B] around H runs A→B→H in, H→B→A out."""
        calls = []

        def handler(request):
            calls.append("H")
            return ok()

        chain = compose([Recorder("A", calls), Recorder("B", calls)], handler)
        chain(make_request())

        assert calls == ["A:enter", "B:enter", "H", "B:exit", "A:exit"]

    def test_empty_chain_is_handler(self):
        """No middleware means the handler itself."""
        def handler(request):
            return ok("bare")

        assert compose([], handler) is handler

    def test_same_middleware_twice_wraps_twice(self):
        """Listing an instance twice runs it twice."""
        calls = []
        a = Recorder("A", calls)

        compose([a, a], lambda request: ok())(make_request())

        assert calls == ["A:enter", "A:enter", "A:exit", "A:exit"]

    def test_short_circuit(self):
        """A middleware that does not call next skips the rest."""
        calls = []

        def deny(request, next):
            return HTTPResponse(status=403, body=b"no")

        def handler(request):
            calls.append("H")
            return ok()

        response = compose([deny, Recorder("B", calls)], handler)(make_request())

        assert response.status == 403
        assert calls == []

    def test_plain_function_accepted(self):
        """Bare (request, next) callables are adapted."""
        def tag(request, next):
            return next(request).set_header("X-Tag", "1")

        response = compose([tag], lambda request: ok())(make_request())

        assert response.headers["X-Tag"] == "1"

    def test_non_callable_rejected(self):
        """Anything not callable is a TypeError."""
        with pytest.raises(TypeError):
            compose([42], lambda request: ok())


class TestPipeline:
    """Tests for MiddlewarePipeline."""

    def test_add_and_wrap(self):
        """Pipeline order equals add order."""
        calls = []
        pipeline = MiddlewarePipeline()
        pipeline.add(Recorder("A", calls)).add(Recorder("B", calls))

        pipeline.wrap(lambda request: ok())(make_request())

        assert len(pipeline) == 2
        assert calls[:2] == ["A:enter", "B:enter"]

    def test_use_many(self):
        """use() appends several at once."""
        pipeline = MiddlewarePipeline()
        pipeline.use(RecoveryMiddleware(), LoggingMiddleware())

        assert [m.name for m in pipeline] == ["RecoveryMiddleware", "LoggingMiddleware"]

    def test_function_middleware_name(self):
        """Decorated functions keep their name."""
        @function_middleware
        def add_header(request, next):
            return next(request)

        assert isinstance(add_header, FunctionMiddleware)
        assert add_header.name == "add_header"


class TestLoggingMiddleware:
    """Tests for LoggingMiddleware."""

    def test_logs_entry_and_completion(self, caplog):
        """Method and path are logged before and status after."""
        mw = LoggingMiddleware()

        with caplog.at_level(logging.INFO, logger="microserve.access"):
            mw(make_request("GET", "/user"), lambda request: ok("User information"))

        messages = [r.getMessage() for r in caplog.records if r.name == "microserve.access"]
        assert messages[0] == "→ GET /user"
        assert messages[1].startswith("← GET /user 200 16B")

    def test_json_format(self, caplog):
        """JSON lines carry the same fields."""
        mw = LoggingMiddleware(log_format="json")

        with caplog.at_level(logging.INFO, logger="microserve.access"):
            mw(make_request("POST", "/x"), lambda request: HTTPResponse(status=201))

        entries = [json.loads(r.getMessage()) for r in caplog.records if r.name == "microserve.access"]
        assert entries[0] == {"event": "request", "method": "POST", "path": "/x"}
        assert entries[1]["status"] == 201
        assert entries[1]["content_length"] == 0

    def test_does_not_alter_response(self):
        """The response object comes back untouched."""
        original = ok("hello")
        headers_before = dict(original.headers)

        response = LoggingMiddleware()(make_request(), lambda request: original)

        assert response is original
        assert response.headers == headers_before
        assert response.body == b"hello"

    def test_logging_failure_is_swallowed(self, monkeypatch):
        """A logger that raises never aborts the request."""
        import microserve.middleware.logging as logging_module

        def broken_log(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(logging_module.logger, "log", broken_log)

        response = LoggingMiddleware()(make_request(), lambda request: ok("fine"))

        assert response.status == 200
        assert response.body == b"fine"

    def test_broken_handler_on_root_logger_is_swallowed(self):
        """A logging.Handler that raises is contained too."""
        class ExplodingHandler(logging.Handler):
            def emit(self, record):
                raise RuntimeError("handler broke")

            def handleError(self, record):
                raise RuntimeError("handler broke again")

        access = logging.getLogger("microserve.access")
        handler = ExplodingHandler()
        access.addHandler(handler)
        old_level = access.level
        access.setLevel(logging.INFO)
        try:
            response = LoggingMiddleware()(make_request(), lambda request: ok("fine"))
        finally:
            access.removeHandler(handler)
            access.setLevel(old_level)

        assert response.body == b"fine"

    def test_reraises_downstream_fault(self, caplog):
        """Faults pass through, logged at ERROR."""
        def handler(request):
            raise ValueError("nope")

        with caplog.at_level(logging.INFO, logger="microserve.access"):
            with pytest.raises(ValueError):
                LoggingMiddleware()(make_request(), handler)

        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_skip_paths(self, caplog):
        """Skipped paths produce no access lines."""
        mw = LoggingMiddleware(skip_paths=["/health"])

        with caplog.at_level(logging.INFO, logger="microserve.access"):
            mw(make_request("GET", "/health"), lambda request: ok())

        assert not [r for r in caplog.records if r.name == "microserve.access"]

    def test_unknown_format_rejected(self):
        with pytest.raises(ValueError):
            LoggingMiddleware(log_format="xml")


class TestRecoveryMiddleware:
    """Tests for RecoveryMiddleware."""

    def test_passes_through(self):
        """Normal responses are returned as-is."""
        response = RecoveryMiddleware()(make_request(), lambda request: ok("fine"))
        assert response.status == 200

    def test_fault_becomes_500(self, caplog):
        """A raised exception becomes a generic 500 and is logged."""
        def handler(request):
            raise RuntimeError("secret detail")

        with caplog.at_level(logging.ERROR):
            response = RecoveryMiddleware()(make_request(), handler)

        assert response.status == 500
        assert json.loads(response.body) == {"error": "Internal Server Error"}
        assert b"secret detail" not in response.body
        assert any(r.exc_info for r in caplog.records)

    def test_keyboard_interrupt_not_caught(self):
        """Process-level signals keep propagating."""
        def handler(request):
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            RecoveryMiddleware()(make_request(), handler)

    def test_logging_outside_recovery_sees_500(self, caplog):
        """With logging outermost, a recovered fault logs as a 500."""
        def handler(request):
            raise RuntimeError("boom")

        chain = compose([LoggingMiddleware(), RecoveryMiddleware()], handler)

        with caplog.at_level(logging.INFO, logger="microserve.access"):
            response = chain(make_request("GET", "/boom"))

        assert response.status == 500
        access = [r.getMessage() for r in caplog.records if r.name == "microserve.access"]
        assert access[-1].startswith("← GET /boom 500")
