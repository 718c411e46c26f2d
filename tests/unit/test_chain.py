"""
Unit tests for the handler contract and the handler chain.
"""

import logging

import pytest

from staticserver.handlers.base import Continuation, Flow, FunctionHandler, Handler, as_handler, handler
from staticserver.handlers.chain import HandlerChain
from staticserver.handlers.static import StaticFileHandler
from staticserver.http.errors import HttpError
from staticserver.http.response import HTTPResponse


def respond(body, status=200):
    def respond_handler(request, response, next):
        response.write_head(status, {"Content-Type": "text/plain"})
        response.end(body)
    return respond_handler


def passthrough(request, response, next):
    next()


def do_nothing(request, response, next):
    return None


class Recorder:
    """Handler that records calls and then defers."""

    def __init__(self):
        self.calls = 0

    def __call__(self, request, response, next):
        self.calls += 1
        next()


class TestAsHandler:
    """Tests for handler validation."""

    def test_function_is_wrapped(self):
        wrapped = as_handler(passthrough)

        assert isinstance(wrapped, FunctionHandler)
        assert wrapped.name == "passthrough"

    def test_handler_instance_is_kept(self):
        class Custom(Handler):
            def __call__(self, request, response, next):
                next()

        custom = Custom()

        assert as_handler(custom) is custom
        assert custom.name == "Custom"

    def test_callable_object_is_accepted(self):
        assert isinstance(as_handler(Recorder()), Handler)

    def test_lambda_is_accepted(self):
        assert isinstance(as_handler(lambda request, response, next: None), Handler)

    def test_non_callable_rejected(self):
        with pytest.raises(TypeError, match="must be callable"):
            as_handler("static")

    def test_wrong_arity_rejected(self):
        def two_args(request, response):
            pass

        with pytest.raises(TypeError, match="request, response, next"):
            as_handler(two_args)

    def test_varargs_accepted(self):
        def anything(*args):
            pass

        assert isinstance(as_handler(anything), Handler)

    def test_decorator(self):
        @handler
        def health(request, response, next):
            next()

        assert isinstance(health, Handler)
        assert health.name == "health"


class TestContinuation:
    """Tests for the per-call continuation."""

    def test_starts_uncalled(self):
        proceed = Continuation()

        assert proceed.called is False
        assert not proceed

    def test_call_marks_called(self):
        proceed = Continuation()
        proceed()

        assert proceed.called is True
        assert proceed


class TestHandlerChain:
    """Tests for HandlerChain.handle()."""

    def test_handler_list_is_frozen(self):
        handlers = [passthrough]
        chain = HandlerChain(handlers)
        handlers.append(respond("late"))

        assert len(chain) == 1
        assert isinstance(chain.handlers, tuple)

    def test_invalid_handler_fails_at_construction(self):
        with pytest.raises(TypeError):
            HandlerChain([passthrough, 42])

    def test_second_handler_responds(self, make_request, response):
        after = Recorder()
        chain = HandlerChain([passthrough, respond("from B"), after])

        chain.handle(make_request("/"), response)

        assert response.finished
        assert response.status == 200
        assert response.body == b"from B"
        assert after.calls == 0

    def test_flow_continue_return_value(self, make_request, response):
        def continue_by_return(request, response, next):
            return Flow.CONTINUE

        chain = HandlerChain([continue_by_return, respond("second")])
        chain.handle(make_request("/"), response)

        assert response.body == b"second"

    def test_flow_stop_overrides_next(self, make_request, response):
        after = Recorder()

        def stop(request, response, next):
            next()
            return Flow.STOP

        HandlerChain([stop, after]).handle(make_request("/"), response)

        assert after.calls == 0
        assert response.status == 404

    def test_handler_that_does_nothing_gives_404(self, make_request, response):
        HandlerChain([do_nothing]).handle(make_request("/"), response)

        assert response.finished
        assert response.status == 404
        assert response.body == b"Not Found"
        assert response.get_header("Content-Type") == "text/plain"

    def test_empty_chain_gives_404(self, make_request, response):
        HandlerChain().handle(make_request("/"), response)

        assert response.status == 404

    def test_all_handlers_defer_gives_404(self, make_request, response):
        recorders = [Recorder(), Recorder()]

        HandlerChain(recorders).handle(make_request("/"), response)

        assert [r.calls for r in recorders] == [1, 1]
        assert response.status == 404

    def test_returned_http_error_is_rendered(self, make_request, response):
        after = Recorder()

        def deny(request, response, next):
            return HttpError(403)

        HandlerChain([deny, after]).handle(make_request("/"), response)

        assert response.status == 403
        assert response.body == b"Forbidden"
        assert after.calls == 0

    def test_raised_http_error_is_rendered(self, make_request, response):
        def gone(request, response, next):
            raise HttpError(410, "Moved away")

        HandlerChain([gone]).handle(make_request("/"), response)

        assert response.status == 410
        assert response.body == b"Moved away"

    def test_unexpected_exception_gives_500(self, make_request, response, caplog):
        def broken(request, response, next):
            raise RuntimeError("database password is hunter2")

        with caplog.at_level(logging.ERROR, logger="staticserver.access"):
            HandlerChain([broken]).handle(make_request("/"), response)

        assert response.status == 500
        assert response.body == b"Internal Server Error"
        assert b"hunter2" not in response.body
        assert "hunter2" in caplog.text
        assert any(record.exc_info for record in caplog.records)

    def test_static_handler_falls_through_to_404(self, public_dir, make_request, response):
        chain = HandlerChain([StaticFileHandler(public_dir)])

        chain.handle(make_request("/missing.txt"), response)

        assert response.status == 404
        assert response.body == b"Not Found"

    def test_custom_handler_runs_before_static(self, public_dir, make_request, response):
        chain = HandlerChain([respond("custom"), StaticFileHandler(public_dir)])

        chain.handle(make_request("/index.html"), response)

        assert response.body == b"custom"

    def test_render_failure_is_logged_not_raised(self, make_request, caplog):
        response = HTTPResponse()

        def half_written(request, response, next):
            response.write("partial")

        with caplog.at_level(logging.WARNING, logger="staticserver.access"):
            HandlerChain([half_written]).handle(make_request("/"), response)

        assert not response.finished
        assert "Could not send 404" in caplog.text

    def test_error_after_response_finished(self, make_request, response, caplog):
        def respond_then_fail(request, response, next):
            response.end("done")
            raise RuntimeError("too late")

        with caplog.at_level(logging.WARNING, logger="staticserver.access"):
            HandlerChain([respond_then_fail]).handle(make_request("/"), response)

        assert response.status == 200
        assert response.body == b"done"
        assert "Could not send 500" in caplog.text

    def test_outcome_is_logged(self, make_request, response, caplog):
        with caplog.at_level(logging.INFO, logger="staticserver.access"):
            HandlerChain([respond("ok")]).handle(make_request("/hello?x=1"), response)

        record = caplog.records[-1]
        assert record.getMessage() == "200 /hello?x=1"
        assert record.status_code == 200
        assert record.url == "/hello?x=1"

    def test_injected_logger(self, make_request, response, caplog):
        custom = logging.getLogger("tests.chain")

        with caplog.at_level(logging.INFO, logger="tests.chain"):
            HandlerChain([do_nothing], logger=custom).handle(make_request("/x"), response)

        assert [r.getMessage() for r in caplog.records if r.name == "tests.chain"] == ["404 /x"]
