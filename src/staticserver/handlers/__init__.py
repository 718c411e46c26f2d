"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    base.py     Handler contract: (request, response, next) -> outcome
    chain.py    HandlerChain: runs handlers in order, renders failures
    static.py   resolve() and StaticFileHandler: files from a directory

A server is a HandlerChain whose last handler is usually a
StaticFileHandler:

    HandlerChain([custom_a, custom_b, StaticFileHandler("./public")])

=============================================================================
"""

from .base import Continuation, Flow, FunctionHandler, Handler, as_handler, handler
from .chain import HandlerChain
from .static import ResolvedFile, StaticFileHandler, resolve, url_to_path

__all__ = [
    "Continuation",
    "Flow",
    "FunctionHandler",
    "Handler",
    "as_handler",
    "handler",
    "HandlerChain",
    "ResolvedFile",
    "StaticFileHandler",
    "resolve",
    "url_to_path",
]
