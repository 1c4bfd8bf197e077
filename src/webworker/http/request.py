"""
=============================================================================
REQUEST READER
=============================================================================

Turns the first line of an HTTP request into a Request value.

The server only ever serves files, so of the whole request we care
about a single token: the path.

    GET /pages/index.html HTTP/1.1\r\n     ← request line
    Host: localhost:8080\r\n               ┐
    User-Agent: curl/8.0\r\n               ├ read and discarded
    Accept: */*\r\n                        ┘
    \r\n                                   ← blank line, stop here

=============================================================================
WHY READ THE HEADERS AT ALL?
=============================================================================

We never look at them, but they are sitting in the socket's receive
buffer. Closing a socket with unread input makes the kernel answer with
RST instead of FIN, and browsers may then throw away the response we
just sent. Draining up to the blank line avoids that.

=============================================================================
"""

import logging
from dataclasses import dataclass


logger = logging.getLogger(__name__)


class MalformedRequestError(Exception):
    """
    Raised when no usable request line can be read.

    The worker answers this by closing the connection without writing
    a response.
    """

    def __init__(self, message: str, line: bytes = b""):
        super().__init__(message)
        self.line = line


@dataclass(frozen=True)
class Request:
    """
    The parsed request line.

    Attributes:
        method: First token ("GET"). Logged, otherwise ignored.
        path: Second token, normally starting with "/". Not decoded
              or normalized in any way.
        version: Third token if present ("HTTP/1.1"), else "".
    """
    method: str
    path: str
    version: str = ""

    @property
    def request_line(self) -> str:
        return " ".join(part for part in (self.method, self.path, self.version) if part)


class RequestReader:
    """
    Reads one request from a connection.

    Usage:
        request = RequestReader().read(conn)
        request.path  # "/index.html"

    The connection only needs a read_line() method returning bytes
    (b"" at end of stream).
    """

    def read(self, conn) -> Request:
        """
        Read the request line, then discard headers up to the blank line.

        Raises:
            MalformedRequestError: If the stream ends or fails before a
                request line arrives, or the line has fewer than two tokens.
        """
        request = self._read_request_line(conn)
        self._discard_headers(conn)
        return request

    def _read_request_line(self, conn) -> Request:
        try:
            line = conn.read_line()
        except (OSError, ValueError) as e:
            raise MalformedRequestError(f"Could not read request line: {e}") from e

        if not line:
            raise MalformedRequestError("Connection closed before a request line was sent")

        # Same round trip as os.fsdecode: undecodable bytes reach open() unchanged
        text = line.decode("utf-8", errors="surrogateescape")
        tokens = text.split()
        if len(tokens) < 2:
            raise MalformedRequestError(f"Malformed request line: {text.strip()!r}", line)

        # tokens[0] is the method; only retrieval is supported, so it is not checked
        version = tokens[2] if len(tokens) > 2 else ""
        return Request(method=tokens[0], path=tokens[1], version=version)

    def _discard_headers(self, conn) -> None:
        """
        Consume header lines until the blank line or end of stream.

        A failure here is not fatal; the path is already known.
        """
        while True:
            try:
                line = conn.read_line()
            except (OSError, ValueError) as e:
                logger.debug(f"Stopped reading headers early: {e}")
                return

            if not line:
                return  # End of stream without a blank line

            header = line.rstrip(b"\r\n")
            if not header:
                return

            logger.debug(f"Request header: {header.decode('utf-8', errors='replace')}")


def read_request(conn) -> Request:
    """Read a request from conn with a default RequestReader."""
    return RequestReader().read(conn)
