"""reqview statistics - curl --write-out timing data embedded in the body."""

from __future__ import annotations

from typing import Any

STATS_MARKER = "__REQVIEW_STATS__"

DEFAULT_STATISTICS: list[tuple[str, str]] = [
    ("time_total", "Total time"),
    ("size_download", "Download size"),
]


def normalize_statistics(value: Any) -> list[tuple[str, str]] | None:
    """Turn the ``result.show_statistics`` setting into (name, title) pairs.

    Accepts a bool (``True`` → defaults), or a list of curl write-out
    variable names and/or ``{name, title}`` mappings. Returns None when
    statistics are disabled.
    """
    if not value:
        return None
    if value is True:
        return list(DEFAULT_STATISTICS)

    stats: list[tuple[str, str]] = []
    for entry in value:
        if isinstance(entry, dict):
            name = str(entry.get("name", "")).strip()
            title = str(entry.get("title") or _default_title(name))
        else:
            name = str(entry).strip()
            title = _default_title(name)
        if name:
            stats.append((name, title))
    return stats or None


def _default_title(name: str) -> str:
    for known, title in DEFAULT_STATISTICS:
        if known == name:
            return title
    return name.replace("_", " ").capitalize()


def write_out_format(stats: list[tuple[str, str]]) -> str:
    """The curl ``-w`` argument that appends the marker and values."""
    parts = [f"\\n{STATS_MARKER}"]
    parts.extend(f"\\n{name}=%{{{name}}}" for name, _ in stats)
    return "".join(parts)


def split_statistics(
    body: str,
    stats: list[tuple[str, str]] | None = None,
) -> tuple[str, list[str] | None]:
    """Split the write-out tail off ``body``.

    Returns (remaining_body, statistics_lines). If no marker is present the
    body is returned untouched with None.
    """
    idx = body.rfind(STATS_MARKER)
    if idx == -1:
        return body, None

    head = body[:idx]
    if head.endswith("\n"):
        head = head[:-1]
    titles = dict(stats or DEFAULT_STATISTICS)

    lines: list[str] = []
    for raw in body[idx + len(STATS_MARKER) :].splitlines():
        if "=" not in raw:
            continue
        name, value = raw.split("=", 1)
        name = name.strip()
        title = titles.get(name) or _default_title(name)
        lines.append(f"{title}: {_format_value(name, value.strip())}")
    return head, lines


def _format_value(name: str, value: str) -> str:
    try:
        number = float(value)
    except ValueError:
        return value
    if name.startswith("time_"):
        return f"{number * 1000:.2f} ms"
    if name.startswith(("size_", "speed_")):
        suffix = " B/s" if name.startswith("speed_") else " B"
        return f"{int(number)}{suffix}"
    return value
