"""
Unit tests for MIME type resolution.
"""

import pytest

from webworker.http.mime_types import (
    DEFAULT_MIME_TYPE,
    MIME_TYPES,
    get_mime_type,
    is_binary_type,
    is_text_type,
)


class TestGetMimeType:
    """Tests for get_mime_type()."""

    @pytest.mark.parametrize("path, expected", [
        ("/index.html", "text/html"),
        ("/index.htm", "text/html"),
        ("/readme.txt", "text/plain"),
        ("/logo.gif", "image/gif"),
        ("/photo.jpg", "image/jpeg"),
        ("/photo.jpeg", "image/jpeg"),
        ("/icon.png", "image/png"),
    ])
    def test_known_extensions(self, path, expected):
        assert get_mime_type(path) == expected

    def test_table_is_exactly_the_supported_set(self):
        assert set(MIME_TYPES) == {".html", ".htm", ".txt", ".gif", ".jpg", ".jpeg", ".png"}

    @pytest.mark.parametrize("path", ["/INDEX.HTML", "/Logo.GiF", "/a/b/photo.JPEG"])
    def test_case_insensitive(self, path):
        assert get_mime_type(path) == get_mime_type(path.lower())

    @pytest.mark.parametrize("path", [
        "/style.css",
        "/archive.tar.gz",
        "/Makefile",
        "/",
        "/dir.html/file",
        "/.gif",
    ])
    def test_unknown_gets_default(self, path):
        assert get_mime_type(path) == DEFAULT_MIME_TYPE == "text/plain"

    def test_explicit_default(self):
        assert get_mime_type("/data.bin", default="application/octet-stream") == "application/octet-stream"

    def test_nested_path(self):
        assert get_mime_type("/img/2026/logo.png") == "image/png"


class TestCategories:
    """Tests for the text/binary split."""

    def test_text_types(self):
        assert is_text_type("text/html")
        assert is_text_type("text/plain")
        assert not is_binary_type("text/html")

    def test_binary_types(self):
        for mime in ("image/gif", "image/jpeg", "image/png", "application/octet-stream"):
            assert is_binary_type(mime)
            assert not is_text_type(mime)
