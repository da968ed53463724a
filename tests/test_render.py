"""Tests for the results surface and rendering blocks."""

import pytest

from reqview import parser
from reqview.errors import SurfaceError
from reqview.models import ParsedResponse
from reqview.render import (
    BINARY_PLACEHOLDER,
    RESULT_CONTENT_TYPE,
    RESULTS_SURFACE,
    obtain_surface,
    render,
)
from reqview.statistics import STATS_MARKER
from tests.conftest import make_raw_result

REDIRECT_HEADERS = [
    "HTTP/1.1 302 Found",
    "Location: http://x/b",
    "",
    "HTTP/2 200",
    "content-type: application/json",
    "",
]


def _response(body='{"ok": true}', headers=None):
    return parser.parse(make_raw_result(headers=headers, body=body))


# ── obtain_surface ───────────────────────────────────────────────────────


class TestObtainSurface:
    def test_creates_once(self, host):
        first = obtain_surface(host)
        second = obtain_surface(host)
        assert first is second
        assert list(host.surfaces) == [RESULTS_SURFACE]

    def test_reset_is_cleared_and_writable(self, host):
        surface = obtain_surface(host)
        host.append_lines(surface, ["old"])
        host.set_writable(surface, False)

        surface = obtain_surface(host)
        assert surface.lines == []
        assert surface.writable
        assert surface.scratch
        assert surface.content_type == RESULT_CONTENT_TYPE

    def test_read_only_append_raises_without_partial_write(self, host):
        surface = obtain_surface(host)
        host.set_writable(surface, False)
        with pytest.raises(SurfaceError):
            host.append_lines(surface, ["a", "b"])
        assert surface.lines == []


# ── render ───────────────────────────────────────────────────────────────


class TestRenderBlocks:
    def test_default_layout(self, host, config):
        surface = render(host, _response(), "curl 'http://x'", "GET http://x", config)
        assert surface.lines == [
            "GET http://x",
            "HTTP/1.1 200 OK",
            "HTTP/1.1 200 OK",
            "Content-Type: application/json; charset=utf-8",
            "Content-Length: 16",
            "",
            '{"ok": true}',
        ]

    def test_redirect_blocks_separated(self, host, config):
        config["result"]["show_url"] = False
        config["result"]["show_http_info"] = False
        surface = render(host, _response(headers=REDIRECT_HEADERS), "", "GET http://x", config)
        assert surface.lines[:6] == [
            "HTTP/1.1 302 Found",
            "Location: http://x/b",
            "",
            "HTTP/2 200 OK",
            "content-type: application/json",
            "",
        ]

    def test_command_preview_toggle(self, host, config):
        config["result"]["show_curl_command"] = True
        surface = render(host, _response(), "curl -sSL 'http://x'", "GET http://x", config)
        assert surface.lines[1:3] == ["Command: curl -sSL 'http://x'", ""]

    def test_everything_off_leaves_body(self, host, config):
        for key in ("show_url", "show_http_info", "show_headers"):
            config["result"][key] = False
        surface = render(host, _response(body="a\nb"), "", "GET http://x", config)
        assert surface.lines == ["a", "b"]

    def test_binary_placeholder(self, host, config):
        headers = ["HTTP/1.1 200 OK", "Content-Type: application/octet-stream", ""]
        resp = _response(body=b"\x00\x01\x02".decode("latin-1"), headers=headers)
        config["result"]["show_headers"] = False
        surface = render(host, resp, "", "GET http://x", config)
        assert surface.lines[-1] == BINARY_PLACEHOLDER
        assert "\x00" not in "".join(surface.lines)
        assert surface.syntax is None

    def test_statistics_block(self, host, config):
        config["result"]["show_statistics"] = True
        config["result"]["show_headers"] = False
        resp = ParsedResponse(
            status=200,
            body=f"hello\n{STATS_MARKER}\ntime_total=0.25",
        )
        surface = render(host, resp, "", "GET http://x", config)
        assert surface.lines[-3:] == ["Total time: 250.00 ms", "", "hello"]
        assert resp.body == "hello"

    def test_statistics_hidden_when_disabled(self, host, config):
        resp = _response(body=f"hello\n{STATS_MARKER}\ntime_total=0.25")
        surface = render(host, resp, "", "GET http://x", config)
        assert "Total time: 250.00 ms" not in surface.lines
        assert surface.lines[-1] == "hello"


class TestRenderDisplay:
    def test_opened_once_and_read_only(self, host, config):
        render(host, _response(), "", "GET http://x", config)
        surface = render(host, _response(), "", "GET http://x", config)
        assert len(host.windows) == 1
        assert not surface.writable
        assert surface.cursor == 1

    def test_split_orientation(self, host, config):
        config["result_split_horizontal"] = True
        config["result_split_in_place"] = True
        render(host, _response(), "", "GET http://x", config)
        window = host.windows[0]
        assert window.vertical is False
        assert window.below is True
        assert host.current_window == 0

    def test_stay_in_current_window(self, host, config):
        config["stay_in_current_window_after_split"] = True
        render(host, _response(), "", "GET http://x", config)
        assert host.current_window is None

    def test_syntax_attached_to_body(self, host, config):
        surface = render(host, _response(), "", "GET http://x", config)
        assert surface.syntax == "json"
        assert surface.lines[surface.syntax_start] == '{"ok": true}'

    def test_no_syntax_for_unknown_subtype(self, host, config):
        headers = ["HTTP/1.1 200 OK", "Content-Type: application/x-made-up-thing", ""]
        surface = render(host, _response(body="x", headers=headers), "", "GET http://x", config)
        assert surface.syntax is None

    def test_second_render_replaces_content(self, host, config):
        render(host, _response(body="first"), "", "GET http://x", config)
        surface = render(host, _response(body="second"), "", "GET http://x", config)
        assert "first" not in surface.lines
        assert surface.lines[-1] == "second"
