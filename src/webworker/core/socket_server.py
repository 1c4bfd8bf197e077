"""
=============================================================================
SOCKET SERVER
=============================================================================

The listening side of the web server. It owns the listening socket and
nothing else: every accepted client socket is wrapped in a Connection and
passed to a callback, which decides who serves it.

    start(handler)
      │
      ├── bind()          socket(), SO_REUSEADDR, bind((host, port)),
      │                   listen(backlog)
      ├── signals         SIGTERM / SIGINT → shutdown()   (main thread only)
      ├── ready           wait_until_ready() returns
      │
      └── serve loop      accept() with a 1s tick
              │
              ├── tick expired     → check the stop flag, accept again
              ├── client accepted  → Connection → handler(conn)
              └── listener closed  → leave the loop

    shutdown()   sets the stop flag; the loop notices within one tick
    stopped      wait_for_shutdown() returns once the socket is closed

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ConnectionHandler = Callable[[Connection], None]

# How often the accept loop wakes up to look at the stop flag
ACCEPT_TICK = 1.0


class SocketServer:
    """
    Accept loop feeding Connections to a handler.

    Usage:
        listener = SocketServer(config)
        listener.start(lambda conn: pool.submit(serve, args=(conn,)))

    start() blocks; call shutdown() from another thread or send SIGTERM.
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._listener: Optional[socket.socket] = None
        self._stopping = threading.Event()
        self._listening = threading.Event()
        self._stopped = threading.Event()
        self._previous_signal_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._listening.is_set() and not self._stopping.is_set()

    @property
    def address(self) -> Tuple[str, int]:
        """
        (host, port) being served. Once listening this is the real
        address, so a configured port of 0 shows the port the OS chose.
        """
        if self._listener is None:
            return (self.config.host, self.config.port)
        bound = self._listener.getsockname()
        return (bound[0], bound[1])

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, handler: ConnectionHandler):
        """
        Bind, listen and run the accept loop until shutdown().

        Args:
            handler: Receives each accepted Connection on the accept
                thread, so it should only queue the connection.

        Raises:
            OSError: If the listening socket cannot be set up.
        """
        self._stopping.clear()
        self._stopped.clear()
        self._listener = self.bind()

        self._install_signal_handlers()
        host, port = self.address
        logger.info(f"Listening on {host}:{port}")
        self._listening.set()

        try:
            self._serve(handler)
        finally:
            self._close_listener()

    def bind(self) -> socket.socket:
        """
        Open the listening socket.

        Raises:
            OSError: If the address is taken or not ours to bind.
        """
        address = (self.config.host, self.config.port)
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        # Restarting must not wait for old connections in TIME_WAIT
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        try:
            listener.bind(address)
            listener.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Cannot listen on {address[0]}:{address[1]}: {e}")
            listener.close()
            raise

        listener.settimeout(ACCEPT_TICK)
        return listener

    def shutdown(self):
        """Ask the accept loop to stop. Idempotent and thread safe."""
        if self._listening.is_set() and not self._stopping.is_set():
            logger.info("Stopping accept loop...")
        self._stopping.set()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. True if it is."""
        return self._listening.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket has been closed. True if it has."""
        return self._stopped.wait(timeout)

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def _serve(self, handler: ConnectionHandler):
        while not self._stopping.is_set():
            try:
                client, peer = self._listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._stopping.is_set():
                    logger.error(f"accept() failed, stopping: {e}")
                return

            self._dispatch(handler, self._wrap(client, peer))

    def _wrap(self, client: socket.socket, peer) -> Connection:
        """Give an accepted socket the configured buffering and idle timeout."""
        conn = Connection(
            socket=client,
            address=peer,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            max_line_size=self.config.max_line_size,
        )
        logger.debug(f"[{conn.id}] Accepted {peer[0]}:{peer[1]}")
        return conn

    def _dispatch(self, handler: ConnectionHandler, conn: Connection):
        # A broken handler costs one connection, not the listener
        try:
            handler(conn)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler rejected connection: {e}")
            conn.close()

    def _close_listener(self):
        self._restore_signal_handlers()

        listener, self._listener = self._listener, None
        if listener is not None:
            try:
                listener.close()
            except OSError as e:
                logger.debug(f"Closing listener: {e}")

        self._listening.clear()
        self._stopped.set()
        logger.info("Accept loop stopped")

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _install_signal_handlers(self):
        """
        SIGTERM (kill, docker stop) and SIGINT (Ctrl+C) stop the loop
        gracefully. Only the main thread may install handlers, so a server
        started on a background thread keeps the process defaults.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.shutdown()

        for signum in (signal.SIGTERM, signal.SIGINT):
            self._previous_signal_handlers[signum] = signal.signal(signum, on_signal)

    def _restore_signal_handlers(self):
        while self._previous_signal_handlers:
            signum, previous = self._previous_signal_handlers.popitem()
            signal.signal(signum, previous)
