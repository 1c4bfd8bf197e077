"""
=============================================================================
MIME TYPES
=============================================================================

Maps a requested file name to the Content-Type we announce for it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    MIME TYPE STRUCTURE                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   type/subtype                                                       │
    │                                                                      │
    │   text/html       ← type "text": sent line by line, markers        │
    │   text/plain                       are substituted                  │
    │                                                                      │
    │   image/gif       ← anything else: copied byte for byte            │
    │   image/png                                                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The top-level type therefore decides more than a header value: it picks
the streaming strategy for the whole body.

=============================================================================
"""

from pathlib import PurePosixPath


# Suffixes are matched lowercase, with the dot.
MIME_TYPES = {
    ".html": "text/html",
    ".htm": "text/html",
    ".txt": "text/plain",
    ".gif": "image/gif",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}

# Unknown suffixes are served as text, so markers still work in them.
DEFAULT_MIME_TYPE = "text/plain"


def get_mime_type(path: str, default: str | None = None) -> str:
    """
    Get the MIME type for a request path based on its extension.

    Args:
        path: Request path, leading "/" included ("/img/logo.GIF").
        default: Type for unknown extensions. Uses text/plain if not given.

    Returns:
        The MIME type string.

    Examples:
        >>> get_mime_type("/index.html")
        'text/html'

        >>> get_mime_type("/img/logo.GIF")
        'image/gif'

        >>> get_mime_type("/notes.md")
        'text/plain'
    """
    extension = PurePosixPath(path).suffix.lower()  # .GIF → .gif
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    """
    Check if a MIME type is streamed as text (line by line, with markers).

    Examples:
        >>> is_text_type("text/html")
        True

        >>> is_text_type("image/png")
        False
    """
    return mime_type.split("/", 1)[0].strip().lower() == "text"


def is_binary_type(mime_type: str) -> bool:
    """Check if a MIME type is streamed as raw bytes."""
    return not is_text_type(mime_type)
