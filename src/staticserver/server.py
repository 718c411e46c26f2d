"""
=============================================================================
STATIC SERVER
=============================================================================

Wires the pieces together and owns the process-level lifecycle.

=============================================================================
STARTUP
=============================================================================

    run_server(config)
      │
      ├── config.validate()                  ValueError
      ├── directory set?
      │     ├── missing         → ServerError("directory not found <dir>")
      │     ├── unreadable      → ServerError("permission denied <dir>")
      │     ├── not a directory → ServerError("not a directory")
      │     └── ok → StaticFileHandler appended AFTER custom handlers
      ├── HandlerChain(handlers)             TypeError for bad handlers
      ├── bind()                             OSError (address in use, ...)
      │     └── "Serving HTTP on http://[::]:8080 ..."
      │         "Press Ctrl+C to quit"
      └── serve_forever()

    Any failure before serving: "Server error <message>", exit status 1,
    and no socket left bound.

=============================================================================
ONE CONNECTION
=============================================================================

    worker thread:
        while server running:
            raw = conn.read_request()          None → client gone, stop
            request = parser.parse(raw)        HTTPParseError → 4xx/5xx,
                                                 Connection: close, stop
            response = HTTPResponse()
            chain.handle(request, response)    never raises
            not finished?                      → warn, close without reply
            send (no body for HEAD)
            keep-alive?                        → loop, else stop

    Thread pool full → 503 Service Unavailable and close, without parsing.

=============================================================================
"""

import logging
import stat
import sys
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .access_log import configure_logging
from .config import ServerConfig
from .core import Connection, RequestTooLargeError, SocketServer, ThreadPool
from .handlers import HandlerChain, StaticFileHandler
from .handlers.chain import access_logger
from .http import (
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    error_response,
    reason_phrase,
)


logger = logging.getLogger(__name__)


class ServerError(RuntimeError):
    """The server cannot start with the given configuration."""


def validate_directory(directory: Union[str, Path]) -> Path:
    """
    Resolve `directory` and check it can be served.

    Returns:
        The absolute directory path.

    Raises:
        ServerError: Missing, unreadable, or not a directory.
        OSError: Any other stat() failure, unchanged.
    """
    path = Path(directory).resolve()
    try:
        info = path.stat()
    except FileNotFoundError:
        raise ServerError(f"directory not found {path}") from None
    except PermissionError:
        raise ServerError(f"permission denied {path}") from None

    if not stat.S_ISDIR(info.st_mode):
        raise ServerError("not a directory")
    return path


def format_url(host: str, port: int) -> str:
    """http://host[:port], with IPv6 literals in brackets and :80 omitted."""
    if ":" in host:
        host = f"[{host}]"
    if port == 80:
        return f"http://{host}"
    return f"http://{host}:{port}"


def _request_target(raw: bytes) -> str:
    """Best-effort request target of unparseable data, for the log line."""
    first_line = raw.split(b"\r\n", 1)[0].decode("latin-1")
    parts = first_line.split(" ")
    return parts[1] if len(parts) > 1 else "-"


class StaticServer:
    """
    HTTP server for one directory plus optional custom handlers.

    Usage:
        server = StaticServer(ServerConfig(directory="./public", port=8080))
        server.start()          # bind + serve, blocks until shutdown()

    In tests, bind first to learn the port, then serve from a thread:
        server = StaticServer(ServerConfig(directory=tmp_path, host="127.0.0.1"))
        server.bind()
        threading.Thread(target=server.serve_forever, daemon=True).start()
        ...
        server.shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self.directory: Optional[Path] = None
        self.chain: Optional[HandlerChain] = None

        self._socket_server = SocketServer(self.config)
        self._pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def build_chain(self) -> HandlerChain:
        """Validate the directory and freeze the handler list."""
        handlers: List = list(self.config.handlers)
        if self.config.directory is not None:
            self.directory = validate_directory(self.config.directory)
            handlers.append(StaticFileHandler(self.directory))
        return HandlerChain(handlers)

    def bind(self) -> Tuple[str, int]:
        """
        Build the chain and bind the listening socket.

        Raises:
            ServerError, TypeError, OSError: Nothing is bound on failure.
        """
        if self.chain is None:
            self.chain = self.build_chain()

        address = self._socket_server.bind()
        logger.info("Serving HTTP on %s ...", self.url)
        logger.info("Press Ctrl+C to quit")
        return address

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        return self._socket_server.address

    @property
    def url(self) -> Optional[str]:
        address = self.address
        return format_url(*address) if address else None

    def serve_forever(self) -> None:
        """Serve until shutdown() or SIGINT/SIGTERM. Binds first if needed."""
        if not self._socket_server.is_bound:
            self.bind()

        try:
            self._pool.start()
        except Exception:
            self._socket_server.close()
            raise

        try:
            self._socket_server.serve_forever(self._accept)
        finally:
            self._pool.shutdown()
            logger.info("Server stopped")

    def start(self) -> None:
        self.bind()
        self.serve_forever()

    def shutdown(self) -> None:
        """Stop accepting; in-flight requests finish first."""
        self._socket_server.shutdown()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_for_shutdown(timeout)

    def close(self) -> None:
        """Release the listening socket without serving."""
        self._socket_server.close()

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    def _accept(self, conn: Connection) -> None:
        if not self._pool.submit(self._serve_connection, conn):
            logger.warning("[%s] Thread pool full, rejecting connection", conn.id)
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE)
            conn.close()

    def _serve_connection(self, conn: Connection) -> None:
        with conn:
            while self._socket_server.is_running:
                try:
                    if not self._serve_one(conn):
                        break
                except Exception:
                    logger.exception("[%s] Connection error", conn.id)
                    break

    def _serve_one(self, conn: Connection) -> bool:
        """
        Read, handle and answer one request.

        Returns:
            True if the connection stays open for another request.
        """
        try:
            raw = conn.read_request()
        except TimeoutError:
            self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
            return False
        except RequestTooLargeError:
            self._send_error(conn, HTTPStatus.REQUEST_ENTITY_TOO_LARGE)
            return False

        if raw is None:
            return False

        try:
            request = self._parser.parse(raw, conn.client_address)
        except HTTPParseError as e:
            logger.debug("[%s] Bad request: %s", conn.id, e.detail)
            access_logger.info(
                "%d %s", e.status_code, _request_target(raw),
                extra={"status_code": e.status_code, "url": _request_target(raw)},
            )
            self._send_error(conn, e.status_code)
            return False

        response = HTTPResponse()
        self.chain.handle(request, response)

        if not response.finished:
            logger.warning(
                "[%s] No complete response for %s %s, closing connection",
                conn.id, request.method, request.url,
            )
            return False

        keep_alive = self._keep_alive(request, response)
        data = response.to_bytes(
            self.config.server_name,
            include_body=not request.is_head,
            connection_headers=self._connection_headers(keep_alive),
        )
        return conn.send_response(data) and keep_alive

    def _keep_alive(self, request: HTTPRequest, response: HTTPResponse) -> bool:
        if not (self.config.keep_alive and request.is_keep_alive):
            return False
        return (response.get_header("Connection") or "").lower() != "close"

    def _connection_headers(self, keep_alive: bool) -> dict:
        if keep_alive:
            return {
                "Connection": "keep-alive",
                "Keep-Alive": f"timeout={int(self.config.keep_alive_timeout)}",
            }
        return {"Connection": "close"}

    def _send_error(self, conn: Connection, status: int) -> None:
        """Answer outside the handler chain (timeouts, parse errors, overload)."""
        response = error_response(status, reason_phrase(status))
        conn.send_response(response.to_bytes(self.config.server_name))


def run_server(config: Optional[ServerConfig] = None) -> StaticServer:
    """
    Start serving and block until shutdown.

    Any failure while starting or serving is logged as
    "Server error <message>" and ends the process with exit status 1.

    Args:
        config: Defaults to ServerConfig.from_env().

    Returns:
        The stopped server, once serving ends.
    """
    try:
        config = config or ServerConfig.from_env()
        configure_logging(config.log_level)
        server = StaticServer(config)
        server.bind()
        server.serve_forever()
    except Exception as e:
        logger.error("Server error %s", e)
        sys.exit(1)

    return server
