"""
=============================================================================
RESPONSE HEADER WRITER
=============================================================================

Writes the header block that starts every response.

=============================================================================
HEADER BLOCK
=============================================================================

    HTTP/1.1 200 Ok\n                       ← status line (or 404 Not Found)
    Date: Thu, 15 Jan 2026 12:30:45 GMT\n   ← time the header was written
    Server: Evan's server\n                 ← ServerConfig.server_name
    Connection: close\n                     ← one request per connection
    Content-Type: text/html\n               ← from the MIME resolver
    \n                                      ← blank line ends the headers

Lines end in a bare \n. There is no Content-Length: the body ends when
we close the connection, which Connection: close tells the client to
expect.

=============================================================================
HOW IS THE STATUS CHOSEN?
=============================================================================

By probing: we open the file and immediately close it again. If that
works the status is 200, otherwise 404.

The content streamer opens the file a second time to send it. Between
the two opens the file can appear or disappear; the streamer copes with
either outcome, so the race only ever shows up as a 200 header followed
by the 404 body (or the other way round).

=============================================================================
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


Clock = Callable[[], datetime]

HTTP_VERSION = "HTTP/1.1"


def utc_now() -> datetime:
    """Current time in UTC. The default clock."""
    return datetime.now(timezone.utc)


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Thu, 15 Jan 2026 12:30:45 GMT

    Naive datetimes are taken to be UTC already. Aware ones are converted.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    # Weekday names (0=Monday in Python's datetime)
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

    # Month names (1-indexed, so we subtract 1)
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def status_line(status: HTTPStatus) -> str:
    """
    >>> status_line(HTTPStatus.NOT_FOUND)
    'HTTP/1.1 404 Not Found'
    """
    return f"{HTTP_VERSION} {int(status)} {status.phrase}"


class ResponseHeaderWriter:
    """
    Writes the status line and fixed header fields for one response.

    Usage:
        writer = ResponseHeaderWriter(server_name="Evan's server")
        status = writer.write(conn, resource, "text/html")
    """

    def __init__(self, server_name: str, clock: Optional[Clock] = None):
        """
        Args:
            server_name: Value of the Server header.
            clock: Returns the current time. Injectable so tests get
                   stable Date headers.
        """
        self.server_name = server_name
        self.clock = clock or utc_now

    def build(self, status: HTTPStatus, mime_type: str) -> bytes:
        """Render the complete header block, blank line included."""
        lines = [
            status_line(status),
            f"Date: {format_http_date(self.clock())}",
            f"Server: {self.server_name}",
            "Connection: close",
            f"Content-Type: {mime_type}",
        ]
        return ("\n".join(lines) + "\n\n").encode("utf-8")

    def write(self, conn, resource, mime_type: str) -> HTTPStatus:
        """
        Probe the resource and write the header block to conn.

        A missing resource still gets a complete header block; only the
        status line differs.

        Args:
            conn: Anything with write(bytes).
            resource: The Resource being requested (see handlers.resources).
            mime_type: Resolved Content-Type.

        Returns:
            The status that was written.

        Raises:
            StreamIOError: If the connection cannot take the bytes.
        """
        if resource.exists():
            status = HTTPStatus.OK
        else:
            logger.info(f"{resource.request_path} not found")
            status = HTTPStatus.NOT_FOUND

        conn.write(self.build(status, mime_type))
        return status
