"""reqview command - curl invocation and the user-facing preview."""

from __future__ import annotations

import os

from reqview.errors import InvocationError
from reqview.models import RequestSpec
from reqview.statistics import write_out_format

CURL = "curl"

# Flags every invocation carries: silent, show errors, follow redirects.
BASE_FLAGS = ["-sSL"]

HEADER_DUMP_FLAG = "-D"
BINARY_BODY_FLAG = "--data-binary"


def method_flags(spec: RequestSpec) -> list[str]:
    """Flags selecting the request method.

    ``-X`` pins the method on every redirect hop, so it is only passed when
    curl would not pick the method itself: GET without a body, POST with a
    body. HEAD uses ``--head`` and discards the header echo on stdout.
    """
    method = spec.method.upper()
    has_body = spec.body is not None
    if method == "HEAD":
        return ["--head", "-o", os.devnull]
    if method == "GET" and not has_body:
        return []
    if method == "POST" and has_body:
        return []
    return ["-X", method]


def build_invocation(
    spec: RequestSpec,
    headers_path: str,
    statistics: list[tuple[str, str]] | None = None,
    body_path: str | None = None,
) -> list[str]:
    """Build the curl argv for a request spec.

    Order: fixed flags, header dump, method, headers, body, extra options,
    write-out format (when statistics are on), URL. A bytes body is read by
    curl from ``body_path``.
    """
    argv = [CURL, *BASE_FLAGS, HEADER_DUMP_FLAG, headers_path, *method_flags(spec)]

    for key, value in spec.headers.items():
        argv.extend(["-H", f"{key}: {value}"])

    if isinstance(spec.body, bytes):
        if body_path is None:
            raise InvocationError("a bytes body needs a body file")
        argv.extend([BINARY_BODY_FLAG, f"@{body_path}"])
    elif spec.body is not None:
        argv.extend(["--data-raw", spec.body])

    for flag, value in spec.options.items():
        argv.append(flag)
        if value is not None and value is not True:
            argv.append(str(value))

    if statistics:
        argv.extend(["-w", write_out_format(statistics)])

    argv.append(spec.url)
    return argv


def format_curl_cmd(argv: list[str], hidden: tuple[str, ...] = ()) -> str:
    """Render argv as a copy-pasteable command.

    The leading ``-D`` header dump pair and any flag whose value is in
    ``hidden`` (temp file arguments) are left out.
    """
    tokens = list(argv)
    if tokens and tokens[0] == CURL:
        tokens = tokens[1:]

    parts = [CURL]
    dump_seen = False
    i = 0
    while i < len(tokens):
        value = tokens[i]
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        if value == HEADER_DUMP_FLAG and not dump_seen:
            dump_seen = True
            i += 2
            continue
        if nxt is not None and nxt in hidden:
            i += 2
            continue
        parts.append(value if value.startswith("-") else _quote(value))
        i += 1
    return " ".join(parts)


def build(
    spec: RequestSpec,
    headers_path: str,
    statistics: list[tuple[str, str]] | None = None,
    body_path: str | None = None,
) -> tuple[list[str], str]:
    """Return (argv, preview) for ``spec``."""
    argv = build_invocation(spec, headers_path, statistics, body_path)
    hidden = (f"@{body_path}",) if body_path else ()
    return argv, format_curl_cmd(argv, hidden)


def _quote(s: str) -> str:
    return "'" + s.replace("'", "'\\''") + "'"
