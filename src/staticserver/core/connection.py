"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted socket: reads complete requests off it and writes
responses back, for as many requests as keep-alive allows.

=============================================================================
FRAMING
=============================================================================

TCP delivers a byte stream, not messages. A request is complete when the
header terminator has arrived and Content-Length more bytes after it:

    recv() #1:  "GET /a HTTP/1.1\r\nHo"
    recv() #2:  "st: x\r\n\r\nGET /b HTTP/1.1\r\n..."
                              │
                              └── start of the next request, kept in the
                                  buffer for the next read_request()

=============================================================================
TIMEOUTS
=============================================================================

    first request     config.timeout              (slow clients)
    later requests    config.keep_alive_timeout   (idle keep-alive)

A timeout while waiting for a later request is the normal end of a
keep-alive connection and reads as "no more requests".

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


logger = logging.getLogger(__name__)

HEADER_END = b"\r\n\r\n"


class RequestTooLargeError(ValueError):
    """Raised when buffered request data exceeds max_request_size."""


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One client connection.

    Usage:
        with Connection(sock, addr, timeout=30.0) as conn:
            while (raw := conn.read_request()) is not None:
                conn.send_response(handle(raw))
    """

    socket: socket.socket
    address: Tuple

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.monotonic)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_address(self) -> Tuple[str, int]:
        """(host, port), without the IPv6 flowinfo and scope id."""
        return (self.address[0], self.address[1])

    @property
    def age(self) -> float:
        return time.monotonic() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request.

        Returns:
            The raw request bytes, or None when the client closed the
            connection or an idle keep-alive connection timed out.

        Raises:
            TimeoutError: The first request did not arrive in time.
            RequestTooLargeError: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING
        if self.requests_handled:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while HEADER_END not in self._buffer:
                if not self._fill():
                    return None

            header_end = self._buffer.find(HEADER_END)
            body_start = header_end + len(HEADER_END)
            content_length = self._content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                if not self._fill():
                    break

            request_end = body_start + content_length
            data, self._buffer = self._buffer[:request_end], self._buffer[request_end:]
            self.requests_handled += 1
            return data

        except socket.timeout:
            if self.requests_handled:
                logger.debug("[%s] Keep-alive timeout", self.id)
                return None
            raise TimeoutError("Request read timeout") from None
        finally:
            self.socket.settimeout(self.timeout)

    def _fill(self) -> bool:
        """Append one recv() worth of data. False when the peer is gone."""
        try:
            chunk = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return False
        if not chunk:
            return False

        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLargeError(f"Request too large: {len(self._buffer)} bytes")
        return True

    @staticmethod
    def _content_length(header_section: bytes) -> int:
        """
        Content-Length from raw headers, 0 if absent or malformed.

        The request parser validates the header properly; this only
        decides how many body bytes to wait for.
        """
        for line in header_section.split(b"\r\n")[1:]:
            name, _, value = line.partition(b":")
            if name.strip().lower() == b"content-length":
                try:
                    return max(int(value.strip()), 0)
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING AND CLOSING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """Send all of `data`. False if the client went away."""
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.debug("[%s] Send failed: %s", self.id, e)
            return False
        self.state = ConnectionState.KEEP_ALIVE
        return True

    def close(self):
        """Half-close, drain briefly, then release the socket. Idempotent."""
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            # Peer already gone; socket.timeout is an OSError too
            pass
        finally:
            self.socket.close()
            self.state = ConnectionState.CLOSED

        logger.debug("[%s] Closed after %d requests", self.id, self.requests_handled)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
