"""
=============================================================================
HANDLER CONTRACT
=============================================================================

The building block of the request pipeline.

=============================================================================
THE CONTRACT
=============================================================================

Every handler is called with the same three arguments:

    def handler(request, response, next) -> None | Flow | HttpError

and does exactly one of:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        HANDLER OUTCOMES                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   RESPOND     response.write_head(...); response.end(...)            │
    │               → chain stops, response is sent                       │
    │                                                                      │
    │   CONTINUE    next()   or   return Flow.CONTINUE                     │
    │               → the next handler in the list runs                   │
    │                                                                      │
    │   FAIL        raise HttpError(403)   or   return HttpError(403)      │
    │               → chain stops, error is rendered as text/plain        │
    │                                                                      │
    │   NOTHING     return None without calling next()                     │
    │               → chain stops, nobody responded → 404                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONTINUATION IS PER CALL
=============================================================================

`next` is a fresh Continuation object for every handler invocation. It
lives in the chain's loop frame for one request, so nothing is shared
between requests or between handlers:

    for handler in handlers:
        proceed = Continuation()        ← new for this call only
        result = handler(request, response, proceed)
        if not proceed.called ...

=============================================================================
"""

import inspect
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional, Union

from ..http.errors import HttpError
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


class Flow(Enum):
    """Explicit result a handler can return instead of calling next()."""
    CONTINUE = "continue"   # defer to the next handler
    STOP = "stop"           # stop here, even if next() was called


class Continuation:
    """
    The `next` argument passed to handlers.

    Calling it marks the current handler as "continue with the next one".
    It does not run the next handler itself; the chain does that after
    the current handler returns.
    """

    __slots__ = ("called",)

    def __init__(self):
        self.called = False

    def __call__(self) -> None:
        self.called = True

    def __bool__(self) -> bool:
        return self.called


HandlerResult = Union[None, Flow, HttpError]
HandlerFunc = Callable[[HTTPRequest, HTTPResponse, Continuation], HandlerResult]


class Handler(ABC):
    """
    Abstract base class for class-based handlers.

        class RequireHost(Handler):
            def __call__(self, request, response, next):
                if not request.host:
                    return HttpError(400)
                next()
    """

    @abstractmethod
    def __call__(
        self,
        request: HTTPRequest,
        response: HTTPResponse,
        next: Continuation,
    ) -> HandlerResult:
        """
        Process the request.

        Args:
            request: The incoming request (read-only)
            response: The response to write and end()
            next: Call to defer to the next handler

        Returns:
            None, a Flow value, or an HttpError to fail the request
        """

    @property
    def name(self) -> str:
        """Handler name for logging."""
        return self.__class__.__name__


class FunctionHandler(Handler):
    """Wraps a plain function as a Handler."""

    def __init__(self, func: HandlerFunc, name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", repr(func))

    def __call__(self, request, response, next):
        return self._func(request, response, next)

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"FunctionHandler({self._name})"


def as_handler(obj: Union[Handler, HandlerFunc]) -> Handler:
    """
    Validate a handler and normalize it to a Handler instance.

    Called once per handler when a chain is built, so a handler with the
    wrong shape fails at startup instead of on the first request.

    Raises:
        TypeError: If `obj` is not callable or cannot be called with
                   (request, response, next).
    """
    if isinstance(obj, Handler):
        return obj

    if not callable(obj):
        raise TypeError(f"Handler must be callable, got {type(obj).__name__}")

    try:
        signature = inspect.signature(obj)
    except (TypeError, ValueError):
        # Some builtins have no introspectable signature
        return FunctionHandler(obj)

    try:
        signature.bind(None, None, None)
    except TypeError:
        name = getattr(obj, "__name__", repr(obj))
        raise TypeError(
            f"Handler {name!r} must accept (request, response, next), "
            f"signature is {signature}"
        ) from None

    return FunctionHandler(obj)


def handler(func: HandlerFunc) -> Handler:
    """
    Decorator form of as_handler().

        @handler
        def health(request, response, next):
            if request.path != "/health":
                return Flow.CONTINUE
            response.write_head(200, {"Content-Type": "text/plain"})
            response.end("ok")
    """
    return as_handler(func)
