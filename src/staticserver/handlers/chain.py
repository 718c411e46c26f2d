"""
=============================================================================
HANDLER CHAIN
=============================================================================

Runs an ordered list of handlers for each request and guarantees exactly
one terminal outcome: a finished response, or a rendered error.

=============================================================================
EXECUTION
=============================================================================

    handlers = [custom_a, custom_b, static_files]

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   for each handler, in order:                                        │
    │       call handler(request, response, next)                          │
    │       ├── returned HttpError ─────────────► render that error        │
    │       ├── response.finished ─────────────► stop (success)            │
    │       └── next() not called ─────────────► stop                      │
    │                                                                      │
    │   after the loop:                                                    │
    │       ├── response.finished ─────────────► log "<status> <url>"     │
    │       └── not finished ──────────────────► render HttpError(404)     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TWO-TIER FAILURE BOUNDARY
=============================================================================

    Tier 1 - classify:
        HttpError          → log "<status> <url>", render it
        anything else      → log full traceback, render HttpError(500)
                             (the exception text never reaches the client)

    Tier 2 - render, best effort:
        write_head(status, text/plain) + end(reason phrase)
        if that fails too (response already finished, body already
        started) → log a warning and give up

handle() never raises, so the transport never sees a handler exception.

=============================================================================
"""

import logging
from typing import Iterable, Optional, Sequence, Tuple, Union

from .base import Continuation, Flow, Handler, HandlerFunc, as_handler
from ..http.errors import HttpError
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


access_logger = logging.getLogger("staticserver.access")


class HandlerChain:
    """
    Ordered handler executor.

    Usage:
        chain = HandlerChain([auth_handler, StaticFileHandler("./public")])

        response = HTTPResponse()
        chain.handle(request, response)
        # response is now finished: either a handler's response or an error

    The handler list is validated and frozen into a tuple at construction.
    """

    def __init__(
        self,
        handlers: Iterable[Union[Handler, HandlerFunc]] = (),
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            handlers: Handlers in execution order.
            logger: Where request outcomes and tracebacks go.
                    Defaults to the "staticserver.access" logger.

        Raises:
            TypeError: If any handler has the wrong shape.
        """
        self._handlers: Tuple[Handler, ...] = tuple(as_handler(h) for h in handlers)
        self.logger = logger or access_logger

    @property
    def handlers(self) -> Sequence[Handler]:
        return self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self):
        return iter(self._handlers)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def handle(self, request: HTTPRequest, response: HTTPResponse) -> None:
        """
        Run the chain for one request. Never raises.
        """
        try:
            failure = self._dispatch(request, response)
            if failure is None:
                if response.finished:
                    self._log_outcome(response.status, request)
                    return
                # Handlers exhausted, or one stopped without responding
                failure = HttpError(HTTPStatus.NOT_FOUND)
            self._log_outcome(failure.status_code, request)
        except HttpError as error:
            failure = error
            self._log_outcome(failure.status_code, request)
        except Exception:
            self.logger.exception(
                "Unhandled error while handling %s %s", request.method, request.url
            )
            failure = HttpError(HTTPStatus.INTERNAL_SERVER_ERROR)
            self._log_outcome(failure.status_code, request)

        self._render(response, failure, request)

    def _dispatch(self, request: HTTPRequest, response: HTTPResponse) -> Optional[HttpError]:
        """
        Call handlers in order until one stops the chain.

        Returns:
            The HttpError a handler returned, or None.
        """
        for current in self._handlers:
            proceed = Continuation()
            result = current(request, response, proceed)

            if isinstance(result, HttpError):
                return result

            continued = (proceed.called or result is Flow.CONTINUE) and result is not Flow.STOP
            if not continued or response.finished:
                break

        return None

    def _render(self, response: HTTPResponse, error: HttpError, request: HTTPRequest) -> None:
        """Write `error` as a text/plain response, best effort."""
        try:
            response.write_head(error.status_code, {"Content-Type": "text/plain"})
            response.end(error.status_message)
        except Exception as render_error:
            self.logger.warning(
                "Could not send %d for %s: %s",
                error.status_code, request.url, render_error,
            )

    def _log_outcome(self, status: int, request: HTTPRequest) -> None:
        self.logger.info(
            "%d %s", status, request.url,
            extra={"status_code": int(status), "url": request.url},
        )
