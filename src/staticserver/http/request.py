"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into HTTPRequest objects (RFC 7230).

=============================================================================
WHAT THE PIPELINE SEES
=============================================================================

    GET /docs/guide.html?lang=en HTTP/1.1\r\n
    ─┬─ ────────────┬──────────  ────┬────
     │              │                │
   method          url            version
                    │
          ┌─────────┴─────────┐
          │                   │
        path               query
    /docs/guide.html       lang=en

    HTTPRequest(
        method="GET",
        url="/docs/guide.html?lang=en",   ← raw target, used in logs
        path="/docs/guide.html",          ← percent-decoded, used for files
        query_params={"lang": ["en"]},
        ...
    )

The request is frozen: handlers can read everything but cannot reassign
fields, so a handler early in the chain can't quietly rewrite the path a
later handler sees.

=============================================================================
PARSING CHALLENGES
=============================================================================

1. LINE ENDINGS: headers end with \r\n\r\n
2. CASE: methods are case-sensitive, header names are not
3. BODY: length comes from Content-Length only (no chunked uploads)
4. PATHS: "/a/../b" is NOT rejected here. The static resolver
   canonicalizes and checks containment itself, and answers 403.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import parse_qs, urlsplit, unquote
import re

from .errors import HttpError
from .status_codes import HTTPStatus


class HTTPParseError(HttpError):
    """
    Raised when HTTP request parsing fails.

    A subclass of HttpError, so a malformed request is rendered exactly like
    any other failure. The detailed reason is kept on `detail` for the log
    and never sent to the client:

        400 Bad Request                - Malformed request syntax
        405 Method Not Allowed         - Unknown method
        413 Payload Too Large          - Request exceeds size limit
        505 HTTP Version Not Supported - Unknown HTTP version
    """

    def __init__(self, detail: str, status_code: int = HTTPStatus.BAD_REQUEST):
        super().__init__(status_code)
        self.detail = detail

    def __str__(self) -> str:
        return self.detail


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         HTTP method ("GET", "HEAD", ...)
        url:            Request target exactly as sent ("/a%20b?x=1")
        path:           Decoded path without query string ("/a b")
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Header dict with LOWERCASE keys
        query_params:   "?a=1&a=2" → {"a": ["1", "2"]}
        body:           Raw body bytes
        client_address: (ip, port) of the peer
    """

    method: str
    url: str
    path: str = "/"
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple = ("", 0)

    @property
    def query_string(self) -> str:
        """Raw query string without the leading "?" ("" if none)."""
        return urlsplit(self.url).query

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_head(self) -> bool:
        """HEAD responses carry headers only."""
        return self.method == "HEAD"

    @property
    def is_keep_alive(self) -> bool:
        """
        Check if this connection should be kept alive.

        HTTP/1.1 keeps alive unless "Connection: close".
        HTTP/1.0 closes unless "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()

        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter, or `default`."""
        values = self.query_params.get(name, [])
        return values[0] if values else default


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

        Raw Request Bytes
              │
              ▼
        1. Size check ─────────────── too large? → 413
        2. Split at \r\n\r\n ──────── missing?   → 400
        3. Request line ───────────── invalid?   → 400 / 405 / 505
        4. Headers (lowercased, duplicates joined with ", ")
        5. Body (exactly Content-Length bytes)
              │
              ▼
        HTTPRequest
    """

    VALID_METHODS = {
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data.

        Args:
            data: Raw request bytes, as returned by Connection.read_request().
            client_address: Peer (ip, port) for logging.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=HTTPStatus.REQUEST_ENTITY_TOO_LARGE,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, url, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0 or len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            url=url,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, str, Dict[str, list[str]], str]:
        """
        Parse "METHOD SP REQUEST-TARGET SP HTTP-VERSION".

        Returns:
            (method, url, path, query_params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, url, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(
                f"Invalid method: {method}",
                status_code=HTTPStatus.METHOD_NOT_ALLOWED,
            )

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )

        # Absolute-form targets ("http://host/x") are reduced to their path
        parsed = urlsplit(url)
        path = unquote(parsed.path) or "/"
        if not path.startswith("/") or "\x00" in path:
            raise HTTPParseError(f"Invalid request target: {url!r}")

        query_params = parse_qs(parsed.query, keep_blank_values=True)
        return method, url, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Obsolete line folding (continuation lines starting with whitespace)
        is appended to the previous header. Repeated headers are joined with
        ", " as RFC 7230 allows.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient: skip malformed header lines

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """Parse one request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
