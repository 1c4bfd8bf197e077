"""
=============================================================================
CONNECTION WRAPPER
=============================================================================

A Connection is the one bidirectional byte stream a worker is handed.
The worker protocol only ever needs four things from it:

    read_line()   next line of the request, terminator included
    write(data)   queue response bytes
    flush()       push queued bytes onto the wire
    close()       end the conversation (exactly once)

=============================================================================
WHY BUFFER ON BOTH SIDES?
=============================================================================

TCP delivers bytes in arbitrary chunks. One recv() might return half a
request line, or the request line plus every header. We keep what recv()
hands us in _buffer and cut lines out of it.

On the way out, the header writer and the text streamer produce many
tiny writes (one per line of a page). Sending each one with its own
sendall() would cost a syscall and, often, a packet apiece. Writes are
collected in _out and sent once it fills up, or when flush() is called.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Data Flow                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   socket.recv() ──► _buffer ──► read_line() ──► Request Reader     │
    │                                                                      │
    │   Header Writer ──┐                                                 │
    │                   ├──► write() ──► _out ──► flush() ──► sendall()  │
    │   Content Streamer┘                                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class StreamIOError(Exception):
    """
    Raised when response bytes cannot be delivered to the client.

    Not an OSError subclass: the content streamer reads OSError as
    "the file could not be read", and a dead client is not a missing file.
    """

    def __init__(self, message: str, connection_id: str = ""):
        super().__init__(message)
        self.connection_id = connection_id


class ConnectionState(Enum):
    """Connection lifecycle states."""
    NEW = "new"              # Just accepted, nothing read yet
    READING = "reading"      # Reading the request
    WRITING = "writing"      # Sending the response
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    Represents one accepted client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used to prefix log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        bytes_read: Bytes received from the client so far.
        bytes_written: Bytes actually sent to the client so far.
    """

    # Required parameters
    socket: socket.socket
    address: tuple[str, int]

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_read: int = 0
    bytes_written: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_line_size: int = 64 * 1024

    # Internal state
    _buffer: bytes = field(default=b"", repr=False)
    _out: bytearray = field(default_factory=bytearray, repr=False)
    _eof: bool = field(default=False, repr=False)

    def __post_init__(self):
        """Put the socket in blocking mode with the configured idle timeout."""
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        if isinstance(self.address, tuple) and self.address:
            return str(self.address[0])
        return "-"

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_line(self) -> bytes:
        """
        Read one line from the client.

        Returns:
            The line including its b"\\n" terminator. At end of stream the
            unterminated remainder is returned once, then b"".

        Raises:
            ValueError: If the line grows past max_line_size.
            OSError: On socket errors other than a reset (including timeouts).
        """
        self.state = ConnectionState.READING

        while b"\n" not in self._buffer:
            if self._eof:
                line, self._buffer = self._buffer, b""
                return line

            if len(self._buffer) > self.max_line_size:
                raise ValueError(f"Line too long: more than {self.max_line_size} bytes")

            chunk = self._recv()
            if not chunk:
                self._eof = True
            self._buffer += chunk

        end = self._buffer.index(b"\n") + 1
        if end > self.max_line_size:
            raise ValueError(f"Line too long: {end} bytes")

        line, self._buffer = self._buffer[:end], self._buffer[end:]
        return line

    def _recv(self) -> bytes:
        """
        Receive data from the socket.

        A peer that vanished mid-request looks exactly like one that
        closed politely, so resets are reported as end of stream.
        """
        try:
            data = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""
        self.bytes_read += len(data)
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def write(self, data: bytes) -> None:
        """
        Queue response bytes, sending them once the buffer fills.

        Raises:
            StreamIOError: If the connection is closed or the send fails.
        """
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            raise StreamIOError("Write after close", self.id)

        self.state = ConnectionState.WRITING
        self._out += data
        if len(self._out) >= self.buffer_size:
            self.flush()

    def flush(self) -> None:
        """
        Send everything queued by write().

        Raises:
            StreamIOError: If the send fails (client gone, timeout, ...).
        """
        if not self._out:
            return

        pending = bytes(self._out)
        self._out.clear()
        try:
            # sendall() loops until every byte is accepted by the kernel
            self.socket.sendall(pending)
        except OSError as e:
            raise StreamIOError(f"Send failed: {e}", self.id) from e
        self.bytes_written += len(pending)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close the connection. Safe to call more than once.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    Close Sequence                                │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   1. flush()           best effort, the response may be cut     │
        │   2. shutdown(SHUT_WR) send FIN: "no more bytes from us"         │
        │   3. drain             discard unread request bytes             │
        │   4. close()           release the file descriptor              │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Draining matters: closing a socket with unread input makes the
        kernel send RST, and the client may then lose the tail of a
        response it had not read yet.
        """
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return

        if self._out:
            try:
                self.flush()
            except StreamIOError as e:
                logger.debug(f"[{self.id}] Dropping unsent bytes on close: {e}")
                self._out.clear()

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection closed after {self.age:.3f}s "
            f"({self.bytes_read} bytes in, {self.bytes_written} bytes out)"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure connection is closed."""
        self.close()
        return False  # Don't suppress exceptions
