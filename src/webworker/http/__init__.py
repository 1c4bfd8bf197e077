"""
HTTP pieces of the worker protocol: reading the request line, choosing
a Content-Type, and writing the header block.
"""

from .request import Request, RequestReader, MalformedRequestError, read_request
from .response import ResponseHeaderWriter, format_http_date, status_line
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, is_text_type, is_binary_type, DEFAULT_MIME_TYPE

__all__ = [
    # Request reading
    "Request",
    "RequestReader",
    "MalformedRequestError",
    "read_request",

    # Header writing
    "ResponseHeaderWriter",
    "format_http_date",
    "status_line",

    # Status codes
    "HTTPStatus",

    # MIME types
    "get_mime_type",
    "is_text_type",
    "is_binary_type",
    "DEFAULT_MIME_TYPE",
]
