"""reqview parser - raw curl output to a structured response."""

from __future__ import annotations

import re
from http import HTTPStatus

from reqview.errors import TransferFailed
from reqview.models import ParsedResponse, RawResult
from reqview.statistics import split_statistics

# A status line that carries only the code (curl writes e.g. "HTTP/2 200").
_BARE_STATUS_RE = re.compile(r"^(HTTP/\S+)\s+(\d+)\s*$")
_STATUS_LINE_RE = re.compile(r"^HTTP/")
_APPLICATION_RE = re.compile(r"application/([-a-z]+)")
_TEXT_RE = re.compile(r"text/([a-z]+)")

BINARY_SUBTYPES = frozenset(
    {
        "octet-stream",
        "pdf",
        "zip",
        "gzip",
        "x-gzip",
        "x-tar",
        "x-bzip",
        "x-bzip2",
        "x-7z-compressed",
        "x-rar-compressed",
        "java-archive",
        "wasm",
        "msword",
        "x-shockwave-flash",
    },
)


def http_status(code: int) -> str:
    """'200 OK' for known codes, the bare number otherwise."""
    try:
        return f"{code} {HTTPStatus(code).phrase}"
    except ValueError:
        return str(code)


def is_binary_content_type(subtype: str | None) -> bool:
    return subtype in BINARY_SUBTYPES


def label_status_lines(lines: list[str]) -> list[str]:
    """Append reason phrases to status lines that only carry a code."""
    labelled = []
    for line in lines:
        m = _BARE_STATUS_RE.match(line)
        if m:
            labelled.append(f"{m.group(1)} {http_status(int(m.group(2)))}")
        else:
            labelled.append(line)
    return labelled


def split_header_blocks(lines: list[str]) -> list[list[str]]:
    """Group header lines into one block per response, oldest first.

    A new block starts at every status line. Lines before the first status
    line (rare, but curl can emit them) form their own leading block.
    """
    blocks: list[list[str]] = []
    for line in lines:
        if _STATUS_LINE_RE.match(line) or not blocks:
            blocks.append([line])
        else:
            blocks[-1].append(line)
    return blocks


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Header map from raw lines.

    Keys compare case-insensitively; the last occurrence wins, keeping its
    spelling, so the final hop of a redirect chain decides.
    """
    parsed: dict[str, str] = {}
    for line in lines:
        if not line or ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip()
        if key:
            for existing in [k for k in parsed if k.lower() == key.lower()]:
                del parsed[existing]
            parsed[key] = value.strip()
    return parsed


def content_subtype(content_type: str | None) -> str | None:
    """'application/json; charset=utf-8' → 'json'; unknown shapes → None."""
    if not content_type:
        return None
    m = _APPLICATION_RE.search(content_type) or _TEXT_RE.search(content_type)
    return m.group(1) if m else None


def decode_body(body: bytes | str) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body or ""


def parse(
    raw: RawResult,
    statistics: list[tuple[str, str]] | None = None,
) -> ParsedResponse:
    """Turn a RawResult into a ParsedResponse.

    Raises TransferFailed when curl exited non-zero. Statistics written by
    ``-w`` are always split off the body so formatters never see them.
    """
    if raw.exit != 0:
        raise TransferFailed(raw.exit)

    lines = [h for h in raw.headers if h != ""]
    headers = parse_headers(raw.headers)

    response = ParsedResponse(
        status=raw.status,
        headers=headers,
        header_blocks=split_header_blocks(label_status_lines(lines)),
    )
    response.content_type = content_subtype(response.header("content-type"))
    response.body, response.statistics = split_statistics(
        decode_body(raw.body),
        statistics,
    )
    return response
