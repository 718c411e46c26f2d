"""
=============================================================================
HTTP RESPONSE
=============================================================================

A write-once response object that handlers fill in and the transport
serializes (RFC 7230).

=============================================================================
RESPONSE LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     WRITE-ONCE RESPONSE STATES                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   OPEN                 write_head() / set_header()                   │
    │    │                   status and headers may change freely          │
    │    │                                                                 │
    │    ├── write(b"...") ─► BODY STARTED  (headers_sent = True)          │
    │    │                    more write() allowed, status is fixed        │
    │    │                                                                 │
    │    └── end(b"...") ───► FINISHED      (finished = True)              │
    │                         every further mutation raises                │
    │                         ResponseFinalizedError                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A handler "responds" by calling end(). The handler chain checks `finished`
after every handler to decide whether to keep going, and the transport
only serializes finished responses.

=============================================================================
SERIALIZATION
=============================================================================

    HTTP/1.1 200 OK\r\n                 ← status line
    Content-Type: text/html\r\n         ← headers set by handlers
    Content-Length: 1234\r\n            ← auto-added
    Date: Mon, 19 Oct 2026 ... GMT\r\n  ← auto-added
    Server: static-server/0.1.0\r\n     ← auto-added
    \r\n
    <!DOCTYPE html>...                  ← body (omitted for HEAD)

=============================================================================
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Union

from .status_codes import HTTPStatus, reason_phrase


class ResponseFinalizedError(RuntimeError):
    """Raised when a response is modified after it can no longer change."""


class HTTPResponse:
    """
    Outbound HTTP response.

    Usage:
        response = HTTPResponse()
        response.write_head(200, {"Content-Type": "text/plain"})
        response.end("hello")

        response.finished       # True
        response.write("more")  # raises ResponseFinalizedError
    """

    def __init__(self, version: str = "HTTP/1.1"):
        self.version = version
        self._status: int = int(HTTPStatus.OK)
        self._headers: Dict[str, str] = {}
        self._chunks: list[bytes] = []
        self._headers_sent = False
        self._finished = False

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def status(self) -> int:
        return self._status

    @property
    def headers(self) -> Dict[str, str]:
        """Copy of the current headers (mutate through set_header)."""
        return dict(self._headers)

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)

    @property
    def headers_sent(self) -> bool:
        """True once the body has started; the status is then fixed."""
        return self._headers_sent

    @property
    def finished(self) -> bool:
        """True once end() has been called."""
        return self._finished

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found" """
        return f"{self.version} {self._status} {reason_phrase(self._status)}"

    # =========================================================================
    # HEADERS
    # =========================================================================

    def _ensure_open(self, action: str) -> None:
        if self._finished:
            raise ResponseFinalizedError(f"Cannot {action}: response already finished")

    def _ensure_head_writable(self, action: str) -> None:
        self._ensure_open(action)
        if self._headers_sent:
            raise ResponseFinalizedError(f"Cannot {action}: headers already sent")

    def _find_header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for existing in self._headers:
            if existing.lower() == lowered:
                return existing
        return None

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a header, replacing any existing one with the same name
        (names compare case-insensitively, the new spelling wins).

        Returns:
            Self for method chaining
        """
        self._ensure_head_writable("set header")
        existing = self._find_header(name)
        if existing is not None:
            del self._headers[existing]
        self._headers[name] = str(value)
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        existing = self._find_header(name)
        return self._headers[existing] if existing is not None else default

    def remove_header(self, name: str) -> "HTTPResponse":
        self._ensure_head_writable("remove header")
        existing = self._find_header(name)
        if existing is not None:
            del self._headers[existing]
        return self

    def write_head(
        self,
        status: int,
        headers: Optional[Dict[str, str]] = None
    ) -> "HTTPResponse":
        """
        Set the status code and merge in headers.

        Headers set earlier with set_header() are kept unless `headers`
        overrides them.

        Raises:
            ResponseFinalizedError: If the body has started or the response
                                    is finished.
        """
        self._ensure_head_writable("write head")
        self._status = int(status)
        for name, value in (headers or {}).items():
            self.set_header(name, value)
        return self

    # =========================================================================
    # BODY
    # =========================================================================

    @staticmethod
    def _encode(data: Union[str, bytes]) -> bytes:
        if isinstance(data, str):
            return data.encode("utf-8")
        return bytes(data)

    def write(self, data: Union[str, bytes]) -> "HTTPResponse":
        """Append to the body. Strings are encoded as UTF-8."""
        self._ensure_open("write")
        self._headers_sent = True
        self._chunks.append(self._encode(data))
        return self

    def end(self, data: Union[str, bytes, None] = None) -> "HTTPResponse":
        """
        Optionally write a final chunk, then finalize the response.

        Raises:
            ResponseFinalizedError: If the response is already finished.
        """
        self._ensure_open("end")
        if data:
            self._chunks.append(self._encode(data))
        self._headers_sent = True
        self._finished = True
        return self

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_bytes(
        self,
        server_name: str = "static-server",
        include_body: bool = True,
        connection_headers: Optional[Dict[str, str]] = None,
    ) -> bytes:
        """
        Serialize for socket.sendall().

        Content-Length, Date and Server are added when missing.
        Content-Length always describes the full body, even when
        `include_body` is False (HEAD requests).

        `connection_headers` (Connection, Keep-Alive) are decided by the
        transport after the response is finished and replace any header of
        the same name set by a handler.
        """
        body = self.body
        response_headers = dict(self._headers)
        for name, value in (connection_headers or {}).items():
            existing = self._find_header(name)
            if existing is not None:
                del response_headers[existing]
            response_headers[name] = value

        if self._find_header("Content-Length") is None:
            response_headers["Content-Length"] = str(len(body))
        if self._find_header("Date") is None:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if self._find_header("Server") is None:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + body if include_body else header_bytes

    def __repr__(self) -> str:
        state = "finished" if self._finished else "open"
        return f"<HTTPResponse {self._status} {state}>"


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231), always in GMT.

    Example: Wed, 01 Jan 2026 12:00:00 GMT
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def error_response(status: int, message: str, version: str = "HTTP/1.1") -> HTTPResponse:
    """
    Build a finished text/plain error response with Connection: close.

    Used by the transport for failures that happen outside the handler chain
    (unparseable requests, thread pool full).
    """
    response = HTTPResponse(version=version)
    response.write_head(status, {"Content-Type": "text/plain", "Connection": "close"})
    response.end(message)
    return response
