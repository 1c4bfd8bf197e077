"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the file server.

Every knob the server has lives in one dataclass. The worker protocol
itself only needs three of them (document root, server identity, chunk
size); the rest belong to the collaborators around it: the accept loop,
the thread pool and logging.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m webworker --port 3000                           │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 python -m webworker                        │
    │                                                                      │
    │   3. Defaults in this dataclass                                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_SERVER_NAME = "Evan's server"

LOG_FORMATS = ("text", "json")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, max_line_size, timeout

    THREADING SETTINGS
    - min_workers, max_workers, queue_size

    FILES
    - root_dir, restrict_to_root, chunk_size

    IDENTITY
    - server_name

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8080
    """The port number to listen on. 0 lets the OS pick a free port."""

    backlog: int = 128
    """Maximum number of queued connections waiting for accept()."""

    buffer_size: int = 8192
    """Size of the socket receive and send buffers in bytes."""

    max_line_size: int = 64 * 1024
    """
    Longest request or header line we are willing to buffer.
    A longer first line makes the request malformed.
    """

    timeout: Optional[float] = 30.0
    """
    Idle timeout for reads and writes on a client socket, in seconds.
    None = block forever on a stuck client.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads created at startup."""

    max_workers: int = 16
    """Upper bound on worker threads, i.e. on connections served at once."""

    queue_size: int = 100
    """Accepted connections allowed to wait for a free worker thread."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """
    Directory request paths are resolved against.
    "." keeps the classic behavior: paths are relative to the working
    directory of the process.
    """

    restrict_to_root: bool = False
    """
    Refuse paths that resolve outside root_dir (e.g. /../../etc/passwd).
    Refused paths get the ordinary 404 response.
    """

    chunk_size: int = 1024
    """Bytes copied per read when streaming binary files."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = DEFAULT_SERVER_NAME
    """
    Value of the Server header, also substituted for the <cs371server>
    marker in text pages.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST              Server host (default: 127.0.0.1)
        HTTP_PORT              Server port (default: 8080)
        HTTP_WORKERS           Max worker threads (default: 16)
        HTTP_TIMEOUT           Idle timeout in seconds, 0 = none (default: 30)
        HTTP_ROOT_DIR          Document root (default: .)
        HTTP_RESTRICT_TO_ROOT  Refuse paths outside the root (default: off)
        HTTP_SERVER_NAME       Server identity (default: Evan's server)
        HTTP_LOG_LEVEL         Logging level (default: INFO)
        HTTP_LOG_FORMAT        Access log format (default: text)

        =====================================================================
        """
        timeout = float(os.getenv("HTTP_TIMEOUT", "30"))
        max_workers = int(os.getenv("HTTP_WORKERS", "16"))

        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            min_workers=min(cls.min_workers, max_workers),
            max_workers=max_workers,
            timeout=timeout or None,
            root_dir=os.getenv("HTTP_ROOT_DIR", "."),
            restrict_to_root=os.getenv("HTTP_RESTRICT_TO_ROOT", "").lower() in _TRUTHY,
            server_name=os.getenv("HTTP_SERVER_NAME", DEFAULT_SERVER_NAME),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad setting fails the process
        immediately instead of failing the first request.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Invalid log_format: {self.log_format!r}. "
                f"Must be one of {', '.join(LOG_FORMATS)}."
            )

        if not os.path.isdir(self.root_dir):
            raise ValueError(f"Document root does not exist: {self.root_dir}")
