"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows about HTTP messages, and nothing that knows about
files or handler chains.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       raw bytes  ──►  HTTPRequest (frozen)               │
    │ response.py      HTTPResponse (write-once)  ──►  raw bytes          │
    │ errors.py        HttpError: status 400-599 + reason phrase          │
    │ status_codes.py  HTTPStatus, reason_phrase()                        │
    │ mime_types.py    ".html" ──► "text/html; charset=utf-8"             │
    └─────────────────────────────────────────────────────────────────────┘

Message format (RFC 7230):

    REQUEST:                          RESPONSE:
    GET /path HTTP/1.1\r\n            HTTP/1.1 200 OK\r\n
    Header: Value\r\n                 Header: Value\r\n
    \r\n                              \r\n
    [body]                            [body]

=============================================================================
"""

from .errors import HttpError
from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import HTTPResponse, ResponseFinalizedError, error_response, format_http_date
from .status_codes import HTTPStatus, reason_phrase
from .mime_types import get_mime_type, get_content_type

__all__ = [
    "HttpError",
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "HTTPResponse",
    "ResponseFinalizedError",
    "error_response",
    "format_http_date",
    "HTTPStatus",
    "reason_phrase",
    "get_mime_type",
    "get_content_type",
]
