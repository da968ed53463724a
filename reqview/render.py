"""reqview render - write a parsed response into the results surface."""

from __future__ import annotations

from typing import Any

from reqview.models import ParsedResponse
from reqview.parser import http_status, is_binary_content_type
from reqview.statistics import normalize_statistics, split_statistics
from reqview.surface import Surface, SurfaceHost

RESULTS_SURFACE = "reqview_results"
RESULT_CONTENT_TYPE = "httpResult"
BINARY_PLACEHOLDER = "Binary answer"


def obtain_surface(host: SurfaceHost) -> Surface:
    """Return the results surface, reset and writable.

    Reuses the existing surface when there is one so repeated requests never
    pile up new surfaces.
    """
    surface = host.find_surface(RESULTS_SURFACE)
    if surface is None:
        surface = host.create_surface(RESULTS_SURFACE)
    host.set_writable(surface, True)
    host.set_scratch(surface, True)
    host.clear(surface)
    host.set_content_type(surface, RESULT_CONTENT_TYPE)
    return surface


def write_block(
    host: SurfaceHost,
    surface: Surface,
    lines: list[str],
    newline: bool = False,
) -> None:
    """Append ``lines``, followed by a blank separator line if ``newline``."""
    block = list(lines)
    if newline:
        block.append("")
    host.append_lines(surface, block)


def body_lines(response: ParsedResponse) -> list[str]:
    if is_binary_content_type(response.content_type):
        return [BINARY_PLACEHOLDER]
    return response.body.split("\n")


def render(
    host: SurfaceHost,
    response: ParsedResponse,
    command_preview: str,
    request_line: str,
    config: dict[str, Any],
) -> Surface:
    """Render ``response`` into the results surface and show it.

    Blocks, each toggled by a ``result.*`` setting: request line, command
    preview, status line, one block per header block, statistics, body.
    """
    result_cfg = config.get("result", {})
    surface = obtain_surface(host)

    if result_cfg.get("show_url", True):
        write_block(host, surface, [request_line])

    if result_cfg.get("show_curl_command", False):
        write_block(host, surface, [f"Command: {command_preview}"], newline=True)

    if result_cfg.get("show_http_info", True):
        write_block(host, surface, [f"HTTP/1.1 {http_status(response.status)}"])

    if result_cfg.get("show_headers", True):
        for block in response.header_blocks:
            write_block(host, surface, block, newline=True)

    stats_cfg = normalize_statistics(result_cfg.get("show_statistics", False))
    if stats_cfg:
        if response.statistics is None:
            response.body, response.statistics = split_statistics(response.body, stats_cfg)
        if response.statistics:
            write_block(host, surface, response.statistics, newline=True)

    body_start = len(surface.lines)
    write_block(host, surface, body_lines(response))

    _show(host, surface, config)
    host.move_cursor(surface, 1)

    subtype = response.content_type
    if subtype and not is_binary_content_type(subtype) and host.has_syntax(subtype):
        host.attach_syntax(surface, subtype, body_start)

    return surface


def _show(host: SurfaceHost, surface: Surface, config: dict[str, Any]) -> None:
    if not host.is_visible(surface):
        host.open_in_split(
            surface,
            vertical=not config.get("result_split_horizontal", False),
            below=bool(config.get("result_split_in_place", False)),
            keep_focus=bool(config.get("stay_in_current_window_after_split", False)),
        )
    host.set_writable(surface, False)
