"""
=============================================================================
ACCESS LOG
=============================================================================

One record per handled request, written after the connection is closed.

=============================================================================
FORMATS
=============================================================================

    text (Apache-like, human readable):

        127.0.0.1 - - [15/Jan/2026:12:30:45 +0000] "GET /index.html HTTP/1.1" 200 1536 2.41ms

    json (one object per line, for log aggregators):

        {"request_id": "3f2a9c1e", "method": "GET", "path": "/index.html", ...}

The logger is "webworker.access" so it can be routed or silenced on its
own:

    logging.getLogger("webworker.access").setLevel(logging.WARNING)

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass, asdict


logger = logging.getLogger("webworker.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one request.

    request_id:     Connection id, also used in other log lines
    method:         Request method token
    path:           Request path as received
    version:        HTTP version token ("" if the client sent none)
    client_ip:      Client's IP address
    status_code:    Status written in the header (200 or 404)
    outcome:        How streaming ended (found, not_found, io_error)
    bytes_sent:     Bytes that reached the socket, header included
    duration_ms:    Time from accept to close
    timestamp:      When the request finished
    """

    request_id: str
    method: str
    path: str
    version: str
    client_ip: str
    status_code: int
    outcome: str
    bytes_sent: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        request_line = " ".join(p for p in (self.method, self.path, self.version) if p)
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{request_line}" {self.status_code} '
            f'{self.bytes_sent} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """Emits RequestLog entries in the configured format."""

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        self.log_format = log_format
        self.log_level = log_level

    def log(self, entry: RequestLog) -> None:
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())


def log_timestamp() -> str:
    """Local time in Apache's [dd/Mon/yyyy:HH:MM:SS +zzzz] layout (no brackets)."""
    return time.strftime("%d/%b/%Y:%H:%M:%S %z")
