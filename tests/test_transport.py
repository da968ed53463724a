"""Tests for the curl subprocess transport."""

import asyncio
import os
import sys

import pytest

from reqview.transport import CurlTransport, final_status


class TestFinalStatus:
    def test_last_status_line_wins(self):
        lines = ["HTTP/1.1 301 Moved Permanently", "Location: /b", "", "HTTP/2 200", ""]
        assert final_status(lines) == 200

    def test_no_status_line(self):
        assert final_status(["Content-Type: text/plain"]) == 0


class TestFetch:
    def test_collects_body_exit_and_header_dump(self, tmp_path):
        transport = CurlTransport(str(tmp_path))
        headers_path = transport.new_headers_path()
        with open(headers_path, "wb") as f:
            f.write(b"HTTP/1.1 302 Found\r\nLocation: /x\r\n\r\nHTTP/1.1 404\r\n\r\n")

        argv = [sys.executable, "-c", "import sys; sys.stdout.write('body'); sys.exit(0)"]
        raw = asyncio.run(transport.fetch(argv, headers_path))

        assert raw.exit == 0
        assert raw.body == b"body"
        assert raw.status == 404
        assert raw.headers[:2] == ["HTTP/1.1 302 Found", "Location: /x"]
        assert not os.path.exists(headers_path)

    def test_non_zero_exit_without_dump(self, tmp_path):
        transport = CurlTransport(str(tmp_path))
        argv = [sys.executable, "-c", "import sys; sys.stderr.write('nope'); sys.exit(7)"]
        raw = asyncio.run(transport.fetch(argv, transport.new_headers_path()))
        assert raw.exit == 7
        assert raw.headers == []
        assert raw.status == 0

    def test_missing_executable_raises_oserror(self, tmp_path):
        transport = CurlTransport(str(tmp_path))
        with pytest.raises(OSError):
            asyncio.run(
                transport.fetch(["definitely-not-a-real-binary-xyz"], transport.new_headers_path()),
            )

    def test_headers_paths_are_unique(self, tmp_path):
        transport = CurlTransport(str(tmp_path))
        assert transport.new_headers_path() != transport.new_headers_path()
