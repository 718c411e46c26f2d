"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

One dataclass holds every setting the server reads at startup.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line flags                                             │
    │      └── static-server --port 3000 -d ./public                     │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── STATIC_PORT=3000 static-server                            │
    │                                                                      │
    │   3. Defaults (in this dataclass)                                   │
    └─────────────────────────────────────────────────────────────────────┘

    STATIC_DIR          directory to serve
    STATIC_HOST         host name or address to bind
    STATIC_PORT / PORT  port (STATIC_PORT wins when both are set)
    STATIC_LOG_LEVEL    DEBUG, INFO, WARNING, ERROR, CRITICAL

=============================================================================
UNSET MEANS "LET THE OS DECIDE"
=============================================================================

    host=None   → dual-stack wildcard "::" where supported, else 0.0.0.0
    port=None   → port 0, the OS picks a free port
    directory=None → no static handler, only custom handlers run

The configuration is read-only once the server starts.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from . import __version__


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    Development:
        ServerConfig(directory="./public", host="localhost", port=8080)

    Custom handlers run before the static files:
        ServerConfig(directory="./public", handlers=[require_auth])
    """

    # ─────────────────────────────────────────────────────────────────────
    # WHAT TO SERVE
    # ─────────────────────────────────────────────────────────────────────

    directory: Optional[str] = "."
    handlers: List[Any] = field(default_factory=list)

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: Optional[str] = None
    port: Optional[int] = None
    ipv6: bool = False
    """Force an IPv6-only socket."""

    backlog: int = 128
    buffer_size: int = 8192
    timeout: float = 30.0

    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024  # 10 MB

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING AND IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    server_name: str = f"static-server/{__version__}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ServerConfig":
        """
        Create configuration from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (for tests).
            **overrides: Field values that win over the environment.

        Raises:
            ValueError: If a port variable is not an integer.
        """
        env = os.environ if environ is None else environ
        values = {}

        if env.get("STATIC_DIR"):
            values["directory"] = env["STATIC_DIR"]
        if env.get("STATIC_HOST"):
            values["host"] = env["STATIC_HOST"]

        port = env.get("STATIC_PORT") or env.get("PORT")
        if port:
            try:
                values["port"] = int(port)
            except ValueError:
                raise ValueError(f"Invalid port in environment: {port!r}") from None

        if env.get("STATIC_LOG_LEVEL"):
            values["log_level"] = env["STATIC_LOG_LEVEL"].upper()

        values.update(overrides)
        return cls(**values)

    @property
    def bind_port(self) -> int:
        return 0 if self.port is None else self.port

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    def validate(self) -> None:
        """
        Check settings before anything is bound.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        if self.port is not None and not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError(
                f"max_workers ({self.max_workers}) must be >= "
                f"min_workers ({self.min_workers})"
            )

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be positive")

        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be >= 1024")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {self.log_level}. "
                f"Choose from {', '.join(LOG_LEVELS)}."
            )
