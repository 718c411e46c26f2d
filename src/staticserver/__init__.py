"""
=============================================================================
STATIC SERVER
=============================================================================

A small HTTP/1.1 server that serves one directory, with a pluggable chain
of request handlers in front of the static files.

    from staticserver import HttpError, ServerConfig, run_server

    def require_token(request, response, next):
        if request.get_header("authorization") != "Bearer s3cret":
            return HttpError(401)
        next()

    run_server(ServerConfig(directory="./public", port=8080,
                            handlers=[require_token]))

=============================================================================
PACKAGE LAYOUT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ __main__.py     command line (static-server / python -m)           │
    │ server.py       StaticServer, run_server, startup checks            │
    │ config.py       ServerConfig, environment variables                 │
    │ access_log.py   console logging, colored status codes               │
    │ handlers/       handler contract, chain, static file resolver       │
    │ http/           request parsing, write-once response, HttpError     │
    │ core/           listening socket, connections, thread pool          │
    └─────────────────────────────────────────────────────────────────────┘

    request ──► core ──► http.RequestParser ──► HandlerChain
                                                  ├── custom handlers
                                                  └── StaticFileHandler
                                                        └── resolve()

=============================================================================
"""

__version__ = "0.1.0"

from .config import ServerConfig
from .handlers import Flow, Handler, HandlerChain, StaticFileHandler, handler, resolve
from .http import HttpError, HTTPRequest, HTTPResponse
from .server import ServerError, StaticServer, run_server

__all__ = [
    "__version__",
    "ServerConfig",
    "Flow",
    "Handler",
    "HandlerChain",
    "StaticFileHandler",
    "handler",
    "resolve",
    "HttpError",
    "HTTPRequest",
    "HTTPResponse",
    "ServerError",
    "StaticServer",
    "run_server",
]
