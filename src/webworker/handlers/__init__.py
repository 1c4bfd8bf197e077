"""
Body handling: finding the requested file and streaming it out.
"""

from .resources import Resource, ResourceNotFound, ResourceOutcome
from .content import ContentStreamer, NOT_FOUND_BODY, SERVER_MARKER, DATE_MARKER

__all__ = [
    "Resource",
    "ResourceNotFound",
    "ResourceOutcome",
    "ContentStreamer",
    "NOT_FOUND_BODY",
    "SERVER_MARKER",
    "DATE_MARKER",
]
