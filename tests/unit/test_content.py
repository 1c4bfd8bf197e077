"""
Unit tests for content streaming.
"""

import pytest

from webworker.handlers.content import (
    ContentStreamer,
    DATE_MARKER,
    NOT_FOUND_BODY,
    SERVER_MARKER,
)
from webworker.handlers.resources import Resource, ResourceOutcome

from conftest import FIXED_DATE, GIF_BYTES


@pytest.fixture
def streamer(fixed_clock) -> ContentStreamer:
    return ContentStreamer("Evan's server", clock=fixed_clock)


class TestTextStreaming:
    """Tests for the line template strategy."""

    def test_markers_are_substituted(self, streamer, sink, doc_root):
        outcome = streamer.stream(sink, Resource("/index.html", root_dir=doc_root), "text/html")

        assert outcome is ResourceOutcome.FOUND
        assert bytes(sink.data) == (
            b"<html>"
            b"<body>"
            b"<cs371server>\nEvan's server\n"
            b"<p>Served at</p>"
            b"<cs371date>" + FIXED_DATE.encode() +
            b"<cs371unknown>"
            b"</body>"
            b"</html>"
        )

    def test_server_name_follows_marker_line(self, streamer, sink, doc_root):
        streamer.stream(sink, Resource("/index.html", root_dir=doc_root), "text/html")

        body = bytes(sink.data)
        marker_at = body.index(SERVER_MARKER.encode())
        assert body[marker_at + len(SERVER_MARKER):].startswith(b"\nEvan's server\n")

    def test_line_terminators_are_dropped(self, streamer, sink, doc_root):
        streamer.stream(sink, Resource("/notes.txt", root_dir=doc_root), "text/plain")

        assert bytes(sink.data) == b"first linesecond line"

    def test_marker_must_be_whole_line(self, streamer, sink, tmp_path):
        (tmp_path / "t.html").write_text(
            f" {SERVER_MARKER}\n<p>{DATE_MARKER}</p>\n{DATE_MARKER} \n{SERVER_MARKER.upper()}\n"
        )

        streamer.stream(sink, Resource("/t.html", root_dir=tmp_path), "text/html")

        body = bytes(sink.data)
        assert b"Evan's server" not in body
        assert FIXED_DATE.encode() not in body

    def test_marker_on_last_line_without_newline(self, streamer, sink, tmp_path):
        (tmp_path / "t.txt").write_text(f"hello\n{DATE_MARKER}")

        streamer.stream(sink, Resource("/t.txt", root_dir=tmp_path), "text/plain")

        assert bytes(sink.data) == b"hello" + DATE_MARKER.encode() + FIXED_DATE.encode()

    def test_crlf_marker_line(self, streamer, sink, tmp_path):
        (tmp_path / "t.html").write_bytes(b"<cs371server>\r\nend\r\n")

        streamer.stream(sink, Resource("/t.html", root_dir=tmp_path), "text/html")

        assert bytes(sink.data) == b"<cs371server>\nEvan's server\nend"

    def test_non_utf8_bytes_pass_through(self, streamer, sink, tmp_path):
        (tmp_path / "latin1.txt").write_bytes(b"caf\xe9\nna\xefve\n")

        streamer.stream(sink, Resource("/latin1.txt", root_dir=tmp_path), "text/plain")

        assert bytes(sink.data) == b"caf\xe9na\xefve"

    def test_empty_file(self, streamer, sink, tmp_path):
        (tmp_path / "empty.html").write_bytes(b"")

        outcome = streamer.stream(sink, Resource("/empty.html", root_dir=tmp_path), "text/html")

        assert outcome is ResourceOutcome.FOUND
        assert bytes(sink.data) == b""

    def test_same_request_twice_is_identical(self, streamer, doc_root):
        from conftest import RecordingConnection

        first, second = RecordingConnection(), RecordingConnection()
        resource = Resource("/index.html", root_dir=doc_root)

        streamer.stream(first, resource, "text/html")
        streamer.stream(second, resource, "text/html")

        assert first.data == second.data


class TestBinaryStreaming:
    """Tests for the binary copy strategy."""

    def test_round_trip(self, streamer, sink, doc_root):
        outcome = streamer.stream(sink, Resource("/logo.gif", root_dir=doc_root), "image/gif")

        assert outcome is ResourceOutcome.FOUND
        assert bytes(sink.data) == GIF_BYTES

    def test_no_substitution_in_binary(self, streamer, sink, doc_root):
        streamer.stream(sink, Resource("/logo.gif", root_dir=doc_root), "image/gif")

        assert b"Evan's server" not in bytes(sink.data)

    def test_chunked_reads(self, sink, tmp_path, fixed_clock):
        payload = bytes(range(256)) * 41  # not a multiple of the chunk size
        (tmp_path / "big.png").write_bytes(payload)

        class CountingSink:
            def __init__(self):
                self.chunks = []

            def write(self, data):
                self.chunks.append(data)

        counting = CountingSink()
        ContentStreamer("x", chunk_size=1024, clock=fixed_clock).stream(
            counting, Resource("/big.png", root_dir=tmp_path), "image/png"
        )

        assert b"".join(counting.chunks) == payload
        assert max(len(c) for c in counting.chunks) == 1024
        assert len(counting.chunks) == -(-len(payload) // 1024)

    def test_text_file_served_as_binary_is_untouched(self, streamer, sink, doc_root):
        streamer.stream(sink, Resource("/index.html", root_dir=doc_root), "image/png")

        assert bytes(sink.data) == (doc_root / "index.html").read_bytes()


class TestFallback:
    """Tests for the 404 body."""

    @pytest.mark.parametrize("mime_type", ["text/html", "image/gif"])
    def test_missing_resource(self, streamer, sink, doc_root, mime_type):
        outcome = streamer.stream(sink, Resource("/missing", root_dir=doc_root), mime_type)

        assert outcome is ResourceOutcome.NOT_FOUND
        assert bytes(sink.data) == NOT_FOUND_BODY == b"<h1>404 Not Found</h1>"

    def test_directory(self, streamer, sink, doc_root):
        outcome = streamer.stream(sink, Resource("/pages", root_dir=doc_root), "text/plain")

        assert outcome is ResourceOutcome.NOT_FOUND
        assert bytes(sink.data) == NOT_FOUND_BODY

    def test_read_error_mid_stream(self, streamer, sink, doc_root, monkeypatch):
        class FailingFile:
            def __init__(self):
                self.reads = 0

            def read(self, size):
                self.reads += 1
                if self.reads > 1:
                    raise OSError("disk went away")
                return b"partial"

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

        resource = Resource("/logo.gif", root_dir=doc_root)
        monkeypatch.setattr(Resource, "open_binary", lambda self: FailingFile())

        outcome = streamer.stream(sink, resource, "image/gif")

        assert outcome is ResourceOutcome.IO_ERROR
        assert bytes(sink.data) == b"partial" + NOT_FOUND_BODY

    def test_write_failure_propagates(self, streamer, doc_root):
        from webworker.core.connection import StreamIOError

        class DeadClient:
            def write(self, data):
                raise StreamIOError("Send failed: broken pipe")

        with pytest.raises(StreamIOError):
            streamer.stream(DeadClient(), Resource("/index.html", root_dir=doc_root), "text/html")
