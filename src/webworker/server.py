"""
=============================================================================
WEB SERVER
=============================================================================

Wires the accept loop to the worker pool:

    SocketServer.start(dispatch)           accept thread
          │
          │ dispatch(conn)
          ▼
    ThreadPool.submit(WebWorker(conn).run) ──► pool thread runs the
          │                                    worker: one request,
          │ queue full?                        then close
          ▼
    conn.close()   (no response: 200 and 404 are the only statuses)

run() blocks until shutdown(), SIGTERM or Ctrl+C, then lets queued
connections finish before returning.

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .worker import WebWorker


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Longest wait for in-flight connections when stopping
DRAIN_TIMEOUT = 30.0


def configure_logging(level_name: str) -> None:
    """Root handler for the process plus the level of the webworker loggers."""
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    logging.getLogger("webworker").setLevel(level)


class WebServer:
    """
    Serve files from config.root_dir, one request per connection.

    Usage:
        server = WebServer(ServerConfig(port=8080, root_dir="./public"))
        server.run()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Raises:
            ValueError: If config does not validate.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._listener = SocketServer(self.config)
        self._pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._serving = False

    @property
    def address(self):
        """(host, port) actually bound once listening."""
        return self._listener.address

    @property
    def is_running(self) -> bool:
        return self._serving

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._listener.wait_until_ready(timeout)

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Serve until stopped. Blocks.

        Args:
            host: Replaces config.host for this run.
            port: Replaces config.port for this run.

        Raises:
            OSError: If the address cannot be bound.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        configure_logging(self.config.log_level)
        self._pool.start()
        self._serving = True
        logger.info(
            f"{self.config.server_name} serving {self.config.root_dir} "
            f"on {self.config.host}:{self.config.port}"
        )

        try:
            self._listener.start(self._dispatch)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self._stop_workers()

    def shutdown(self):
        """Stop accepting; run() returns once queued connections are served."""
        self._listener.shutdown()

    def _stop_workers(self):
        self._serving = False
        self._pool.shutdown(wait=True, timeout=DRAIN_TIMEOUT)
        logger.info("Server stopped")

    def _dispatch(self, conn: Connection):
        """Hand conn to the pool; runs on the accept thread and never blocks."""
        if self._pool.submit(WebWorker(conn, self.config).run, block=False):
            return

        logger.warning(f"[{conn.id}] All workers busy and queue full, closing {conn.client_ip}")
        conn.close()
