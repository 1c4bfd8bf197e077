"""
=============================================================================
RESOURCES
=============================================================================

A Resource is the file a request path points at.

    request path        "/pages/index.html"
         │
         │  strip ONE leading "/"
         ▼
    relative path       "pages/index.html"
         │
         │  join onto root_dir (default ".", the working directory)
         ▼
    filesystem path     "./pages/index.html"

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

By default nothing stops a request like

    GET /../../etc/passwd HTTP/1.1

from reading outside the document root: the path is used as given.
With restrict_to_root=True the joined path is resolved (following ..
and symlinks) and must still lie inside root_dir:

    full_path = (root_dir / relative).resolve()
    full_path.relative_to(root_dir)  # Raises if outside root!

A refused path behaves exactly like a missing file, so the wire output
stays the ordinary 404.

=============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, TextIO


logger = logging.getLogger(__name__)

# Text is decoded only so lines can be compared against the markers.
# surrogateescape lets bytes that are not valid UTF-8 come back out
# unchanged when the line is encoded again.
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "surrogateescape"


class ResourceOutcome(Enum):
    """What happened when a stage touched the resource."""
    FOUND = "found"            # Opened (and, for streaming, fully read)
    NOT_FOUND = "not_found"    # Could not be opened
    IO_ERROR = "io_error"      # Opened, but reading failed part way


class ResourceNotFound(Exception):
    """
    Raised when a resource cannot be opened for reading.

    Covers missing files, directories, permission problems and, with
    restrict_to_root, paths outside the document root.
    """

    def __init__(self, request_path: str, reason: str):
        super().__init__(f"{request_path}: {reason}")
        self.request_path = request_path
        self.reason = reason


@dataclass(frozen=True)
class Resource:
    """
    The file behind a request path.

    Attributes:
        request_path: Path exactly as it appeared in the request line.
        root_dir: Directory relative paths are joined onto.
        restrict_to_root: Refuse paths that resolve outside root_dir.
    """
    request_path: str
    root_dir: Path = Path(".")
    restrict_to_root: bool = False

    @classmethod
    def from_request(cls, request, config) -> "Resource":
        """Build the Resource for a Request under a ServerConfig."""
        return cls(
            request_path=request.path,
            root_dir=Path(config.root_dir),
            restrict_to_root=config.restrict_to_root,
        )

    @property
    def relative_path(self) -> str:
        """The request path with exactly one leading "/" removed."""
        if self.request_path.startswith("/"):
            return self.request_path[1:]
        return self.request_path

    @property
    def fs_path(self) -> Path:
        """Where the file is expected on disk (not checked)."""
        return self.root_dir / self.relative_path

    def _checked_path(self) -> Path:
        """
        Return fs_path, enforcing restrict_to_root if enabled.

        Raises:
            ResourceNotFound: If the path escapes the document root.
        """
        if not self.restrict_to_root:
            return self.fs_path

        try:
            root = self.root_dir.resolve()
            full_path = self.fs_path.resolve()
        except (OSError, ValueError) as e:
            raise ResourceNotFound(self.request_path, str(e)) from e

        try:
            full_path.relative_to(root)
        except ValueError:
            logger.warning(f"Path traversal attempt: {self.request_path}")
            raise ResourceNotFound(self.request_path, "outside document root") from None
        return full_path

    # =========================================================================
    # OPENING
    # =========================================================================

    def open_binary(self) -> BinaryIO:
        """
        Open the resource for reading raw bytes.

        Raises:
            ResourceNotFound: If it cannot be opened.
        """
        path = self._checked_path()
        try:
            return open(path, "rb")
        except OSError as e:
            raise ResourceNotFound(self.request_path, e.strerror or str(e)) from e
        except ValueError as e:
            # open() refuses paths with NUL bytes before touching the disk
            raise ResourceNotFound(self.request_path, str(e)) from e

    def open_text(self) -> TextIO:
        """
        Open the resource for reading lines.

        Universal newlines: \\n, \\r\\n and \\r all end a line and all come
        back as \\n.

        Raises:
            ResourceNotFound: If it cannot be opened.
        """
        path = self._checked_path()
        try:
            return open(path, "r", encoding=TEXT_ENCODING, errors=TEXT_ERRORS, newline=None)
        except OSError as e:
            raise ResourceNotFound(self.request_path, e.strerror or str(e)) from e
        except ValueError as e:
            raise ResourceNotFound(self.request_path, str(e)) from e

    # =========================================================================
    # PROBING
    # =========================================================================

    def probe(self) -> ResourceOutcome:
        """
        Check the resource can be opened, by opening and closing it.

        This is a snapshot. The file may appear or vanish before anyone
        opens it again.
        """
        try:
            with self.open_binary():
                pass
        except ResourceNotFound as e:
            logger.debug(f"Probe failed for {e}")
            return ResourceOutcome.NOT_FOUND
        return ResourceOutcome.FOUND

    def exists(self) -> bool:
        return self.probe() is ResourceOutcome.FOUND
