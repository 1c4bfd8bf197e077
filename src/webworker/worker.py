"""
=============================================================================
WEB WORKER
=============================================================================

A WebWorker handles exactly one request on exactly one connection, then
closes it. The accept loop creates one per connection and a pool thread
calls run().

=============================================================================
STATE MACHINE
=============================================================================

    ┌──────┐   ┌─────────────────┐   ┌────────────────┐   ┌─────────────────┐
    │ IDLE │──►│ READING_REQUEST │──►│ WRITING_HEADER │──►│ WRITING_CONTENT │
    └──────┘   └────────┬────────┘   └───────┬────────┘   └────────┬────────┘
                        │                    │                     │
                        │   any failure      │                     │
                        ▼                    ▼                     ▼
                   ┌──────────────────────────────────────────────────┐
                   │                     CLOSED                       │
                   │   flush (best effort), close, write access log   │
                   └──────────────────────────────────────────────────┘

Every path ends in CLOSED. A failure is logged and ends this request
only: it is not retried and it never reaches the accept loop or any
other worker.

    MalformedRequestError  → nothing written, connection closed
    missing resource       → 404 header + <h1>404 Not Found</h1>
    StreamIOError          → response cut short, connection closed

=============================================================================
"""

import logging
import time
from enum import Enum
from typing import Optional

from .access_log import AccessLogger, RequestLog, log_timestamp
from .config import ServerConfig
from .core.connection import Connection, StreamIOError
from .handlers.content import ContentStreamer
from .handlers.resources import Resource, ResourceOutcome
from .http.mime_types import get_mime_type
from .http.request import MalformedRequestError, Request, RequestReader
from .http.response import Clock, ResponseHeaderWriter
from .http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Where a worker is in its single request."""
    IDLE = "idle"
    READING_REQUEST = "reading_request"
    WRITING_HEADER = "writing_header"
    WRITING_CONTENT = "writing_content"
    CLOSED = "closed"


class WebWorker:
    """
    Serves one request on one connection.

    Usage:
        WebWorker(conn, config).run()   # returns once conn is closed
    """

    def __init__(
        self,
        conn: Connection,
        config: Optional[ServerConfig] = None,
        clock: Optional[Clock] = None,
        access_logger: Optional[AccessLogger] = None,
    ):
        """
        Args:
            conn: The accepted connection. The worker closes it.
            config: Server configuration (root, identity, chunk size).
            clock: Time source for the Date header and <cs371date>.
            access_logger: Where the per-request record goes.
        """
        self.conn = conn
        self.config = config or ServerConfig()
        self.state = WorkerState.IDLE

        self.reader = RequestReader()
        self.header_writer = ResponseHeaderWriter(self.config.server_name, clock=clock)
        self.streamer = ContentStreamer(
            self.config.server_name,
            chunk_size=self.config.chunk_size,
            clock=clock,
        )
        self.access_logger = access_logger or AccessLogger(self.config.log_format)

        # Filled in as the stages run; only used for the access log
        self.request: Optional[Request] = None
        self.status: Optional[HTTPStatus] = None
        self.outcome: Optional[ResourceOutcome] = None

    def run(self) -> None:
        """
        Read, answer and close. Never raises.
        """
        conn = self.conn
        start_time = time.time()
        logger.debug(f"[{conn.id}] Handling connection from {conn.client_ip}")

        try:
            # ─────────────────────────────────────────────────────────────
            # READ REQUEST
            # ─────────────────────────────────────────────────────────────
            self.state = WorkerState.READING_REQUEST
            request = self.reader.read(conn)
            self.request = request

            resource = Resource.from_request(request, self.config)
            mime_type = get_mime_type(request.path)

            # ─────────────────────────────────────────────────────────────
            # WRITE HEADER (flushed before any body byte)
            # ─────────────────────────────────────────────────────────────
            self.state = WorkerState.WRITING_HEADER
            self.status = self.header_writer.write(conn, resource, mime_type)
            conn.flush()

            # ─────────────────────────────────────────────────────────────
            # WRITE CONTENT
            # ─────────────────────────────────────────────────────────────
            self.state = WorkerState.WRITING_CONTENT
            self.outcome = self.streamer.stream(conn, resource, mime_type)
            conn.flush()

        except MalformedRequestError as e:
            logger.warning(f"[{conn.id}] Request error: {e}")

        except StreamIOError as e:
            logger.warning(f"[{conn.id}] Output error in {self.state.value}: {e}")

        except Exception as e:
            logger.exception(f"[{conn.id}] Unexpected error in {self.state.value}: {e}")

        finally:
            conn.close()
            self.state = WorkerState.CLOSED

        if self.request is not None:
            self._log_access(start_time)

        logger.debug(f"[{conn.id}] Done handling connection")

    def _log_access(self, start_time: float) -> None:
        request = self.request
        self.access_logger.log(RequestLog(
            request_id=self.conn.id,
            method=request.method,
            path=request.path,
            version=request.version,
            client_ip=self.conn.client_ip,
            status_code=int(self.status) if self.status is not None else 0,
            outcome=self.outcome.value if self.outcome is not None else "aborted",
            bytes_sent=self.conn.bytes_written,
            duration_ms=(time.time() - start_time) * 1000,
            timestamp=log_timestamp(),
        ))
