"""
=============================================================================
CONTENT STREAMER
=============================================================================

Writes the response body, after the header block is already out.

=============================================================================
TWO STRATEGIES, ONE CHOICE
=============================================================================

The MIME type is looked at once, and exactly one strategy runs:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    BODY STRATEGIES                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   text/*  ──► LINE TEMPLATE                                         │
    │               • read line by line                                    │
    │               • write each line WITHOUT its terminator              │
    │               • <cs371server>  → also write \n<server name>\n       │
    │               • <cs371date>    → also write the current GMT date    │
    │                                                                      │
    │   other   ──► BINARY COPY                                           │
    │               • read fixed-size chunks (1024 bytes)                 │
    │               • write them untouched                                 │
    │                                                                      │
    │   neither could open the file ──► <h1>404 Not Found</h1>            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Markers only count when they are the WHOLE line. "<cs371date> " (with a
trailing space) or "<p><cs371date></p>" pass through as plain text, as
does any other <tag>.

=============================================================================
WHY ARE LINE BREAKS DROPPED?
=============================================================================

The text strategy writes what is between the line breaks and nothing
else, so a three-line page arrives as one line. For HTML that is
invisible in the browser (newlines are just whitespace). Templates that
need the break can rely on <cs371server>, which brings its own.

=============================================================================
"""

import logging
from typing import Optional

from ..http.mime_types import is_text_type
from ..http.response import Clock, format_http_date, utc_now
from .resources import Resource, ResourceNotFound, ResourceOutcome, TEXT_ENCODING, TEXT_ERRORS


logger = logging.getLogger(__name__)


SERVER_MARKER = "<cs371server>"
DATE_MARKER = "<cs371date>"

NOT_FOUND_BODY = b"<h1>404 Not Found</h1>"

DEFAULT_CHUNK_SIZE = 1024


class ContentStreamer:
    """
    Streams one resource to a connection.

    Usage:
        streamer = ContentStreamer(server_name="Evan's server")
        outcome = streamer.stream(conn, resource, "text/html")
    """

    def __init__(
        self,
        server_name: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            server_name: Substituted for the <cs371server> marker.
            chunk_size: Bytes per read in binary mode.
            clock: Returns the current time, for <cs371date>.
        """
        self.server_name = server_name
        self.chunk_size = chunk_size
        self.clock = clock or utc_now

    def stream(self, conn, resource: Resource, mime_type: str) -> ResourceOutcome:
        """
        Write the body for resource to conn.

        Returns:
            FOUND if the whole file was sent, NOT_FOUND or IO_ERROR if the
            fallback body was sent instead of (or after part of) the file.

        Raises:
            StreamIOError: If writing to the client fails. Never raised for
                problems on the file side.
        """
        if is_text_type(mime_type):
            return self._stream_text(conn, resource)
        return self._stream_binary(conn, resource)

    # ─────────────────────────────────────────────────────────────────────
    # BINARY COPY
    # ─────────────────────────────────────────────────────────────────────

    def _stream_binary(self, conn, resource: Resource) -> ResourceOutcome:
        try:
            source = resource.open_binary()
        except ResourceNotFound as e:
            return self._not_found(conn, e)

        with source:
            try:
                while True:
                    chunk = source.read(self.chunk_size)
                    if not chunk:
                        break
                    conn.write(chunk)
            except OSError as e:
                return self._read_failed(conn, resource, e)

        return ResourceOutcome.FOUND

    # ─────────────────────────────────────────────────────────────────────
    # LINE TEMPLATE
    # ─────────────────────────────────────────────────────────────────────

    def _stream_text(self, conn, resource: Resource) -> ResourceOutcome:
        try:
            source = resource.open_text()
        except ResourceNotFound as e:
            return self._not_found(conn, e)

        with source:
            try:
                for line in source:
                    content = line[:-1] if line.endswith("\n") else line
                    conn.write(content.encode(TEXT_ENCODING, errors=TEXT_ERRORS))

                    substitution = self._substitute(content)
                    if substitution:
                        conn.write(substitution)
            except OSError as e:
                return self._read_failed(conn, resource, e)

        return ResourceOutcome.FOUND

    def _substitute(self, content: str) -> bytes:
        """Bytes to write after a line, b"" unless the line is a marker."""
        if content == SERVER_MARKER:
            return f"\n{self.server_name}\n".encode("utf-8")
        if content == DATE_MARKER:
            return format_http_date(self.clock()).encode("utf-8")
        return b""

    # ─────────────────────────────────────────────────────────────────────
    # FALLBACK
    # ─────────────────────────────────────────────────────────────────────

    def _not_found(self, conn, error: ResourceNotFound) -> ResourceOutcome:
        logger.info(f"Cannot open {error}; sending 404 body")
        conn.write(NOT_FOUND_BODY)
        return ResourceOutcome.NOT_FOUND

    def _read_failed(self, conn, resource: Resource, error: OSError) -> ResourceOutcome:
        logger.error(f"Read error on {resource.request_path}: {error}")
        conn.write(NOT_FOUND_BODY)
        return ResourceOutcome.IO_ERROR
